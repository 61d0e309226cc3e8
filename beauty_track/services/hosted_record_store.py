"""HostedRecordStore - 認証済みユーザーの施術レコード永続化

ProcedureRepository（行）・BlobStorage（写真バイナリ）・PhotoResizer（縮小）を
組み合わせ、写真のアップロードを含む施術レコードの作成・更新・削除を行う。
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Sequence
from dataclasses import replace
from pathlib import Path

from beauty_track.domain.errors import StorageReadError, UploadError, WriteError
from beauty_track.domain.models import (
    Photo,
    PhotoInput,
    Plan,
    ProcedureFields,
    ProcedureRecord,
    ProcedureUpdate,
    ReminderInput,
)
from beauty_track.domain.photo_policy import ResizePolicy, policy_for
from beauty_track.domain.ports import (
    BlobStorage,
    PhotoResizer,
    ProcedureRepository,
    UserPlanSource,
)

logger = logging.getLogger(__name__)

# 端末上のファイルを指す URI（これ以外は既にアップロード済みとみなす）
LOCAL_URI_PREFIXES = ("file://", "content://", "ph://")

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
}


def is_local_file(uri: str) -> bool:
    """端末上のファイルか（http(s) の URL でなければローカルとみなす）"""
    if uri.startswith(LOCAL_URI_PREFIXES):
        return True
    return not uri.startswith(("http://", "https://"))


def to_local_path(uri: str) -> str:
    """file:// URI をファイルパスに変換。Android の "file:/path" 形式も扱う"""
    if uri.startswith("file://"):
        return uri[len("file://") :]
    if uri.startswith("file:/"):
        return uri[len("file:") :]
    return uri


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class HostedRecordStore:
    """
    ホスト側（Firestore + Cloud Storage）の施術レコードストア。

    写真ごとの失敗の扱い:
    - 通常（strict_photos=False）: エラーログを出してその写真だけスキップし、作成は続行
    - 移行時（strict_photos=True）: UploadError / WriteError をそのまま送出
    """

    def __init__(
        self,
        repository: ProcedureRepository,
        blob_storage: BlobStorage,
        resizer: PhotoResizer,
        plan_source: UserPlanSource,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        """
        Args:
            repository: 施術・写真・リマインダーの行の永続化
            blob_storage: 写真バイナリの保存先
            resizer: アップロード前の縮小
            plan_source: ティア（リサイズ方針）の解決
            clock: 現在時刻（ファイル名生成用、テスト用に差し替え可能）
        """
        self._repo = repository
        self._blobs = blob_storage
        self._resizer = resizer
        self._plans = plan_source
        self._clock = clock

    # ── 読み込み ──────────────────────────────────────────────────────────────

    def list(self, uid: str) -> list[ProcedureRecord]:
        return self._repo.list_procedures(uid)

    def get(self, uid: str, procedure_id: str) -> ProcedureRecord:
        return self._repo.get_procedure(uid, procedure_id)

    # ── 書き込み ──────────────────────────────────────────────────────────────

    def create(
        self,
        uid: str,
        fields: ProcedureFields,
        photos: Sequence[PhotoInput] = (),
        reminder: ReminderInput | None = None,
        *,
        strict_photos: bool = False,
    ) -> ProcedureRecord:
        """
        施術レコードを作成する。

        1. 施術の行を作成（失敗時は WriteError）
        2. 写真ごとに縮小 → アップロード → 写真の行を作成
        3. リマインダーの行を作成（写真の成否とは独立、失敗時は WriteError）

        strict_photos=True の場合、2・3 のいずれかが失敗すると作成途中の行と写真を
        削除してから例外を送出する（ホスト側に中途半端なレコードを残さない）。

        Args:
            uid: 認証済みユーザーID
            fields: 施術の項目
            photos: ローカルファイルを指す写真
            reminder: リマインダー（任意）
            strict_photos: True の場合、写真1枚の失敗で例外を送出する

        Returns:
            作成された施術レコード（アップロードできた写真のみ含む）
        """
        record = self._repo.insert_procedure(uid, fields)
        try:
            uploaded = self._upload_photos(uid, record.id, photos, strict=strict_photos)

            saved_reminder = None
            if reminder is not None:
                saved_reminder = self._repo.upsert_reminder(uid, record.id, reminder)
        except (UploadError, WriteError):
            if strict_photos:
                self._discard(uid, record.id)
            raise

        logger.info(
            "Created hosted procedure: uid=%s, id=%s, photos=%d/%d, reminder=%s",
            uid,
            record.id,
            len(uploaded),
            len(photos),
            saved_reminder is not None,
        )
        return replace(record, photos=tuple(uploaded), reminder=saved_reminder)

    def _discard(self, uid: str, procedure_id: str) -> None:
        """作成途中のレコードを削除する。削除自体の失敗はログのみ"""
        try:
            self._blobs.delete_prefix(f"{uid}/{procedure_id}/")
        except WriteError as e:
            logger.error(
                "Failed to discard photos of partial procedure: uid=%s, id=%s, error=%s",
                uid,
                procedure_id,
                e,
            )
        try:
            self._repo.delete_procedure(uid, procedure_id)
        except WriteError as e:
            logger.error(
                "Failed to discard partial procedure: uid=%s, id=%s, error=%s",
                uid,
                procedure_id,
                e,
            )
            return
        logger.warning("Discarded partial procedure: uid=%s, id=%s", uid, procedure_id)

    def update(
        self,
        uid: str,
        procedure_id: str,
        updates: ProcedureUpdate,
        new_photos: Sequence[PhotoInput] = (),
        reminder: ReminderInput | None = None,
    ) -> ProcedureRecord:
        """
        施術レコードを更新する。

        新しい写真のうちローカルファイルを指すものだけをアップロードする
        （既にアップロード済みの URL は無視）。

        Raises:
            NotFoundError: 施術が存在しない場合
        """
        existing = self._repo.get_procedure(uid, procedure_id)
        self._repo.update_procedure(uid, procedure_id, updates.merged(existing.fields))

        local_photos = [p for p in new_photos if is_local_file(p.uri)]
        self._upload_photos(uid, procedure_id, local_photos, strict=False)

        if reminder is not None:
            self._repo.upsert_reminder(uid, procedure_id, reminder)

        return self._repo.get_procedure(uid, procedure_id)

    def delete(self, uid: str, procedure_id: str) -> None:
        """
        施術レコードと写真・リマインダーを削除する。

        ストレージ上の写真の削除に失敗しても行の削除は続行する。

        Raises:
            NotFoundError: 施術が存在しない場合
            WriteError: 行の削除に失敗した場合
        """
        self._repo.get_procedure(uid, procedure_id)
        try:
            self._blobs.delete_prefix(f"{uid}/{procedure_id}/")
        except WriteError as e:
            logger.error(
                "Failed to delete photos from storage: uid=%s, id=%s, error=%s",
                uid,
                procedure_id,
                e,
            )
        self._repo.delete_procedure(uid, procedure_id)

    def delete_photo(self, uid: str, procedure_id: str, photo_id: str) -> None:
        """写真1枚を削除する。行の削除後のストレージ削除失敗はログのみ"""
        storage_path = self._repo.delete_photo(uid, procedure_id, photo_id)
        try:
            self._blobs.delete(storage_path)
        except WriteError as e:
            logger.error("Failed to delete photo from storage: %s", e)

    # ── 写真 ──────────────────────────────────────────────────────────────────

    def _upload_photos(
        self,
        uid: str,
        procedure_id: str,
        photos: Sequence[PhotoInput],
        strict: bool,
    ) -> list[Photo]:
        if not photos:
            return []

        policy = policy_for(self._resolve_plan(uid))
        uploaded: list[Photo] = []
        for index, photo in enumerate(photos):
            try:
                uploaded.append(
                    self._upload_one(uid, procedure_id, index, photo, policy)
                )
            except (UploadError, WriteError) as e:
                if strict:
                    raise
                # 他の写真の処理は続行
                logger.error(
                    "Error uploading photo: uid=%s, procedure_id=%s, uri=%s, error=%s",
                    uid,
                    procedure_id,
                    photo.uri,
                    e,
                )
        return uploaded

    def _resolve_plan(self, uid: str) -> Plan:
        try:
            return self._plans.get_plan(uid)
        except StorageReadError as e:
            logger.warning("Failed to resolve plan for uid=%s, using free: %s", uid, e)
            return Plan.FREE

    def _upload_one(
        self,
        uid: str,
        procedure_id: str,
        index: int,
        photo: PhotoInput,
        policy: ResizePolicy,
    ) -> Photo:
        path = to_local_path(photo.uri)
        content, extension, content_type = self._prepare(path, policy)

        millis = int(self._clock().timestamp() * 1000)
        storage_path = f"{uid}/{procedure_id}/{millis}_{index}_{photo.tag.value}.{extension}"
        self._blobs.upload(storage_path, content, content_type)
        url = self._blobs.public_url(storage_path)
        return self._repo.insert_photo(uid, procedure_id, storage_path, url, photo.tag)

    def _prepare(self, path: str, policy: ResizePolicy) -> tuple[bytes, str, str]:
        """縮小済みの JPEG を返す。縮小に失敗した場合は元ファイルをそのまま返す"""
        try:
            return self._resizer.resize(path, policy), "jpg", "image/jpeg"
        except Exception as e:
            logger.warning("Resize failed, uploading original: path=%s, error=%s", path, e)

        extension = Path(path).suffix.lstrip(".").lower() or "jpg"
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            raise UploadError(f"Failed to read photo {path}: {e}") from e
        return content, extension, _MIME_TYPES.get(extension, "image/jpeg")
