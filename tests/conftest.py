"""共通テストフィクスチャ

全テストから利用可能なモックオブジェクト・インメモリ実装とサンプルデータを提供。

モックの作成:
- MagicMock(spec=ABC) でABCのメソッドシグネチャを保持
- 状態を確認したいテストでは InMemory* のフェイク実装を使う
"""

import datetime
import uuid
from dataclasses import replace
from unittest.mock import MagicMock

import pytest

from beauty_track.adapters.local_record_store import LocalProcedureStore
from beauty_track.domain.errors import NotFoundError
from beauty_track.domain.models import (
    Category,
    Photo,
    PhotoInput,
    PhotoTag,
    Plan,
    ProcedureFields,
    ProcedureRecord,
    Reminder,
    ReminderInput,
    ReminderInterval,
)
from beauty_track.domain.ports import (
    BlobStorage,
    IdentityVerifier,
    KeyValueStorage,
    PhotoResizer,
    ProcedureRepository,
    UserPlanSource,
)
from beauty_track.services.hosted_record_store import HostedRecordStore

FIXED_NOW = datetime.datetime(2026, 3, 1, 9, 0, 0, tzinfo=datetime.UTC)


# ========== インメモリ実装 ==========


class InMemoryKeyValueStorage(KeyValueStorage):
    """dict に保存する KeyValueStorage"""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class InMemoryProcedureRepository(ProcedureRepository):
    """dict に保存する ProcedureRepository（uid ごとに施術レコードを保持）"""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, ProcedureRecord]] = {}
        self.storage_paths: dict[str, str] = {}  # photo_id -> storage_path

    def _owned(self, uid: str) -> dict[str, ProcedureRecord]:
        return self.records.setdefault(uid, {})

    def list_procedures(self, uid):
        return sorted(self._owned(uid).values(), key=lambda r: r.date, reverse=True)

    def get_procedure(self, uid, procedure_id):
        try:
            return self._owned(uid)[procedure_id]
        except KeyError:
            raise NotFoundError(f"Procedure not found: {procedure_id}") from None

    def insert_procedure(self, uid, fields):
        record = ProcedureRecord(
            id=f"proc_{uuid.uuid4().hex[:8]}",
            name=fields.name,
            category=fields.category,
            date=fields.date,
            clinic=fields.clinic,
            cost=fields.cost,
            notes=fields.notes,
            product_brand=fields.product_brand,
            created_at=FIXED_NOW,
            updated_at=FIXED_NOW,
        )
        self._owned(uid)[record.id] = record
        return record

    def update_procedure(self, uid, procedure_id, fields):
        existing = self.get_procedure(uid, procedure_id)
        self._owned(uid)[procedure_id] = replace(
            existing,
            name=fields.name,
            category=fields.category,
            date=fields.date,
            clinic=fields.clinic,
            cost=fields.cost,
            notes=fields.notes,
            product_brand=fields.product_brand,
        )

    def delete_procedure(self, uid, procedure_id):
        record = self._owned(uid).pop(procedure_id)
        for photo in record.photos:
            self.storage_paths.pop(photo.id, None)

    def insert_photo(self, uid, procedure_id, storage_path, url, tag):
        existing = self.get_procedure(uid, procedure_id)
        photo = Photo(id=f"photo_{uuid.uuid4().hex[:8]}", uri=url, tag=tag, timestamp=FIXED_NOW)
        self.storage_paths[photo.id] = storage_path
        self._owned(uid)[procedure_id] = replace(
            existing, photos=existing.photos + (photo,)
        )
        return photo

    def delete_photo(self, uid, procedure_id, photo_id):
        existing = self.get_procedure(uid, procedure_id)
        if photo_id not in self.storage_paths:
            raise NotFoundError(f"Photo not found: {photo_id}")
        self._owned(uid)[procedure_id] = replace(
            existing, photos=tuple(p for p in existing.photos if p.id != photo_id)
        )
        return self.storage_paths.pop(photo_id)

    def upsert_reminder(self, uid, procedure_id, reminder):
        existing = self.get_procedure(uid, procedure_id)
        saved = Reminder(
            id=existing.reminder.id if existing.reminder else f"rem_{uuid.uuid4().hex[:8]}",
            procedure_id=procedure_id,
            interval=reminder.interval,
            custom_days=reminder.custom_days,
            next_date=reminder.next_date,
            enabled=reminder.enabled,
        )
        self._owned(uid)[procedure_id] = replace(existing, reminder=saved)
        return saved


# ========== サンプルデータ ==========


@pytest.fixture
def lip_filler_fields() -> ProcedureFields:
    """サンプル施術: Lip Filler"""
    return ProcedureFields(
        name="Lip Filler",
        category=Category.FACE,
        date=datetime.date(2026, 1, 15),
        clinic="Glow Clinic",
        cost=450.0,
        product_brand="Juvederm",
    )


@pytest.fixture
def botox_fields() -> ProcedureFields:
    """サンプル施術: Botox（写真・リマインダーなし）"""
    return ProcedureFields(
        name="Botox",
        category=Category.FACE,
        date=datetime.date(2026, 2, 1),
        cost=300.0,
    )


@pytest.fixture
def local_photo_files(tmp_path) -> list[PhotoInput]:
    """端末上に存在するビフォー/アフター写真（中身はダミーのバイト列）"""
    before = tmp_path / "before.jpg"
    after = tmp_path / "after.jpg"
    before.write_bytes(b"before-bytes")
    after.write_bytes(b"after-bytes")
    return [
        PhotoInput(uri=f"file://{before}", tag=PhotoTag.BEFORE),
        PhotoInput(uri=f"file://{after}", tag=PhotoTag.AFTER),
    ]


@pytest.fixture
def reminder_90days() -> ReminderInput:
    """施術日 2026-01-15 の 90日後リマインダー"""
    return ReminderInput(
        interval=ReminderInterval.DAYS_90, next_date=datetime.date(2026, 4, 15)
    )


# ========== 端末ローカル ==========


@pytest.fixture
def memory_storage() -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage()


@pytest.fixture
def local_store(memory_storage) -> LocalProcedureStore:
    return LocalProcedureStore(memory_storage, clock=lambda: FIXED_NOW)


# ========== ホスト側 ==========


@pytest.fixture
def memory_repository() -> InMemoryProcedureRepository:
    return InMemoryProcedureRepository()


@pytest.fixture
def mock_blob_storage() -> MagicMock:
    """BlobStorage のモック"""
    mock = MagicMock(spec=BlobStorage)
    mock.upload.side_effect = lambda path, content, content_type: path
    mock.public_url.side_effect = (
        lambda path: f"https://storage.googleapis.com/procedure-photos/{path}"
    )
    mock.delete_prefix.return_value = 0
    return mock


@pytest.fixture
def mock_resizer() -> MagicMock:
    """PhotoResizer のモック"""
    mock = MagicMock(spec=PhotoResizer)
    mock.resize.return_value = b"resized-jpeg"
    return mock


@pytest.fixture
def mock_plan_source() -> MagicMock:
    """UserPlanSource のモック（free プラン）"""
    mock = MagicMock(spec=UserPlanSource)
    mock.get_plan.return_value = Plan.FREE
    return mock


@pytest.fixture
def mock_verifier() -> MagicMock:
    """IdentityVerifier のモック"""
    return MagicMock(spec=IdentityVerifier)


@pytest.fixture
def hosted_store(
    memory_repository, mock_blob_storage, mock_resizer, mock_plan_source
) -> HostedRecordStore:
    return HostedRecordStore(
        repository=memory_repository,
        blob_storage=mock_blob_storage,
        resizer=mock_resizer,
        plan_source=mock_plan_source,
        clock=lambda: FIXED_NOW,
    )
