"""Ports - 外部コラボレーターのインターフェース定義（ABC）

各Port（抽象基底クラス）は外部サービスとの契約を定義します。
実装クラス（Adapter）はこれらのABCを継承し、全ての抽象メソッドを実装する必要があります。
実装漏れはインスタンス化時に即座に検出されます。
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from beauty_track.domain.models import (
    Identity,
    Photo,
    PhotoInput,
    PhotoTag,
    Plan,
    ProcedureFields,
    ProcedureRecord,
    ProcedureUpdate,
    Reminder,
    ReminderInput,
)
from beauty_track.domain.photo_policy import ResizePolicy


# ─── 端末ローカル ─────────────────────────────────────────────────────────────


class KeyValueStorage(ABC):
    """端末のキー・バリューストレージ（文字列の保存・取得・削除）"""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """値を取得。存在しない場合はNoneを返す。読み込み失敗時は StorageReadError"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """値を保存。書き込み失敗時は StorageWriteError"""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """値を削除。存在しない場合は何もしない"""
        pass


class LocalRecordStore(ABC):
    """ゲストIDごとの施術レコード永続化（端末内）"""

    @abstractmethod
    def list(self, guest_id: str) -> list[ProcedureRecord]:
        """ゲストの施術レコード一覧を新しい順で取得"""
        pass

    @abstractmethod
    def get(self, guest_id: str, procedure_id: str) -> ProcedureRecord:
        """施術レコードを取得。存在しない場合は NotFoundError"""
        pass

    @abstractmethod
    def create(
        self,
        guest_id: str,
        fields: ProcedureFields,
        photos: Sequence[PhotoInput] = (),
        reminder: ReminderInput | None = None,
    ) -> ProcedureRecord:
        """施術レコードを作成して先頭に追加"""
        pass

    @abstractmethod
    def update(
        self,
        guest_id: str,
        procedure_id: str,
        updates: ProcedureUpdate,
        new_photos: Sequence[PhotoInput] = (),
        reminder: ReminderInput | None = None,
    ) -> ProcedureRecord:
        """施術レコードを更新。写真は追加のみ、リマインダーは指定時に置き換え"""
        pass

    @abstractmethod
    def delete(self, guest_id: str, procedure_id: str) -> None:
        """施術レコードを削除。存在しない場合は何もしない"""
        pass

    @abstractmethod
    def clear(self, guest_id: str) -> None:
        """ゲストの全レコードを削除（移行完了後のみ使用）"""
        pass


# ─── ホスト側（Firestore / Cloud Storage 等） ─────────────────────────────────


class ProcedureRepository(ABC):
    """施術・写真・リマインダーの行の永続化（Firestore等）"""

    @abstractmethod
    def list_procedures(self, uid: str) -> list[ProcedureRecord]:
        """ユーザーの施術レコード一覧を施術日の新しい順で取得（写真・リマインダー込み）"""
        pass

    @abstractmethod
    def get_procedure(self, uid: str, procedure_id: str) -> ProcedureRecord:
        """施術レコードを取得。存在しない場合は NotFoundError"""
        pass

    @abstractmethod
    def insert_procedure(self, uid: str, fields: ProcedureFields) -> ProcedureRecord:
        """施術の行を作成（写真・リマインダーなし）"""
        pass

    @abstractmethod
    def update_procedure(
        self, uid: str, procedure_id: str, fields: ProcedureFields
    ) -> None:
        """施術の行を上書き更新"""
        pass

    @abstractmethod
    def delete_procedure(self, uid: str, procedure_id: str) -> None:
        """施術の行と、それに紐づく写真・リマインダーの行を削除"""
        pass

    @abstractmethod
    def insert_photo(
        self,
        uid: str,
        procedure_id: str,
        storage_path: str,
        url: str,
        tag: PhotoTag,
    ) -> Photo:
        """写真の行を作成"""
        pass

    @abstractmethod
    def delete_photo(self, uid: str, procedure_id: str, photo_id: str) -> str:
        """写真の行を削除。オブジェクトストレージ上のパスを返す"""
        pass

    @abstractmethod
    def upsert_reminder(
        self, uid: str, procedure_id: str, reminder: ReminderInput
    ) -> Reminder:
        """リマインダーの行を作成、既にあれば更新"""
        pass


class BlobStorage(ABC):
    """バイナリファイルのアップロード・削除（GCS等）"""

    @abstractmethod
    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """ファイルをアップロード。ストレージパス（blob_path）を返す"""
        pass

    @abstractmethod
    def delete(self, blob_path: str) -> None:
        """ファイルを削除"""
        pass

    @abstractmethod
    def delete_prefix(self, prefix: str) -> int:
        """prefix 配下のファイルを全て削除。削除件数を返す"""
        pass

    @abstractmethod
    def public_url(self, blob_path: str) -> str:
        """公開URLを返す"""
        pass


class PhotoResizer(ABC):
    """アップロード前の写真の縮小・再圧縮"""

    @abstractmethod
    def resize(self, source_path: str, policy: ResizePolicy) -> bytes:
        """ローカルファイルを読み込み、方針に従って縮小した JPEG バイト列を返す"""
        pass


class UserPlanSource(ABC):
    """ユーザーのサブスクリプションティアの取得"""

    @abstractmethod
    def get_plan(self, uid: str) -> Plan:
        """ティアを取得。未設定の場合は Plan.FREE"""
        pass


class IdentityVerifier(ABC):
    """外部認証（Firebase Auth等）"""

    @abstractmethod
    def verify(self, id_token: str) -> Identity:
        """IDトークンを検証して認証済み Identity を返す。失敗時は AuthError"""
        pass

    @abstractmethod
    def revoke(self, uid: str) -> None:
        """ユーザーのリフレッシュトークンを無効化（サインアウト）"""
        pass
