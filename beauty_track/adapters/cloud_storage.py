"""Cloud Storage Adapter

BlobStorage ABC の Google Cloud Storage 実装。
施術写真の保存・削除・公開URLの生成を行う。
"""

from __future__ import annotations

import logging

from google.api_core import exceptions as gexc
from google.cloud import storage

from beauty_track.domain.errors import UploadError, WriteError
from beauty_track.domain.ports import BlobStorage

logger = logging.getLogger(__name__)

_PUBLIC_BASE_URL = "https://storage.googleapis.com"


class GCSBlobStorage(BlobStorage):
    """
    Google Cloud Storage を使った BlobStorage 実装。

    全ファイルは単一バケット内の blob_path で管理する。
    パス規約: {ownerId}/{procedureId}/{epochMillis}_{index}_{tag}.{ext}
    """

    def __init__(self, bucket_name: str, client: storage.Client | None = None) -> None:
        """
        Args:
            bucket_name: GCS バケット名
            client: 初期化済みの GCS クライアント（省略時は ADC で自動初期化）
        """
        self._client = client or storage.Client()
        self._bucket = self._client.bucket(bucket_name)
        self._bucket_name = bucket_name

    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """
        ファイルを GCS にアップロード。

        Args:
            blob_path: GCS 上のパス（例: "uid123/proc456/1718000000000_0_before.jpg"）
            content: バイナリ内容
            content_type: MIME タイプ（例: "image/jpeg"）

        Returns:
            ストレージパス（blob_path と同一）

        Raises:
            UploadError: アップロードに失敗した場合
        """
        blob = self._bucket.blob(blob_path)
        try:
            blob.upload_from_string(content, content_type=content_type)
        except gexc.GoogleAPIError as e:
            raise UploadError(f"Failed to upload photo to {blob_path}: {e}") from e
        logger.info(
            "Uploaded: bucket=%s, path=%s, size=%d bytes",
            self._bucket_name,
            blob_path,
            len(content),
        )
        return blob_path

    def delete(self, blob_path: str) -> None:
        """
        GCS からファイルを削除。

        Note:
            ファイルが存在しない場合は警告ログを出力してスキップする。
        """
        blob = self._bucket.blob(blob_path)
        try:
            blob.delete()
            logger.info("Deleted: bucket=%s, path=%s", self._bucket_name, blob_path)
        except gexc.NotFound:
            logger.warning(
                "Failed to delete (may not exist): bucket=%s, path=%s",
                self._bucket_name,
                blob_path,
            )
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to delete photo {blob_path}: {e}") from e

    def delete_prefix(self, prefix: str) -> int:
        """prefix（例: "uid123/proc456/"）配下のファイルを全て削除"""
        try:
            blobs = list(self._client.list_blobs(self._bucket_name, prefix=prefix))
            for blob in blobs:
                blob.delete()
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to delete photos under {prefix}: {e}") from e
        logger.info(
            "Deleted %d blob(s): bucket=%s, prefix=%s",
            len(blobs),
            self._bucket_name,
            prefix,
        )
        return len(blobs)

    def public_url(self, blob_path: str) -> str:
        return f"{_PUBLIC_BASE_URL}/{self._bucket_name}/{blob_path}"
