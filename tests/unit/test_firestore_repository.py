"""FirestoreProcedureRepository / FirestoreUserPlanSource のユニットテスト

Firestore クライアントをモックし、行モデルでの検証と削除のカスケードを確認する。
"""

import datetime
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as gexc

from beauty_track.adapters.firestore_repository import (
    FirestoreProcedureRepository,
    FirestoreUserPlanSource,
)
from beauty_track.domain.errors import NotFoundError, StorageReadError, WriteError
from beauty_track.domain.models import (
    Category,
    PhotoTag,
    Plan,
    ReminderInput,
    ReminderInterval,
)

UID = "auth_123"
NOW = datetime.datetime(2026, 3, 1, 9, 0, tzinfo=datetime.UTC)


def _make_snap(doc_id: str, data: dict | None, exists: bool = True) -> MagicMock:
    """Firestore DocumentSnapshot のモックを生成する"""
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = exists
    snap.to_dict.return_value = data
    return snap


def _procedure_data(**overrides) -> dict:
    data = {
        "name": "Lip Filler",
        "category": "face",
        "date": "2026-01-15",
        "clinic": "Glow Clinic",
        "cost": 450.0,
        "notes": None,
        "product_brand": "Juvederm",
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return data


class _FakeDb:
    """users/{uid}/procedures 以下のモックを組み立てる"""

    def __init__(self, procedures=(), photos=(), reminders=()):
        self.db = MagicMock()
        self.procedures = (
            self.db.collection.return_value.document.return_value.collection.return_value
        )
        self.procedures.order_by.return_value.stream.return_value = list(procedures)
        self.doc_ref = self.procedures.document.return_value
        self.photos = MagicMock()
        self.reminders = MagicMock()
        self.doc_ref.collection.side_effect = lambda name: {
            "photos": self.photos,
            "reminders": self.reminders,
        }[name]
        self.photos.order_by.return_value.stream.return_value = list(photos)
        self.photos.stream.return_value = list(photos)
        self.reminders.limit.return_value.stream.return_value = list(reminders)
        self.reminders.stream.return_value = list(reminders)

    def repo(self) -> FirestoreProcedureRepository:
        return FirestoreProcedureRepository(self.db, clock=lambda: NOW)


class TestRead:
    def test_list_loads_photos_and_reminder(self):
        """施術・写真・リマインダーが ProcedureRecord に変換されること"""
        # Arrange
        fake = _FakeDb(
            procedures=[_make_snap("p1", _procedure_data())],
            photos=[
                _make_snap(
                    "ph1",
                    {
                        "storage_path": f"{UID}/p1/1_0_before.jpg",
                        "url": "https://storage.googleapis.com/procedure-photos/a.jpg",
                        "tag": "before",
                        "created_at": NOW,
                    },
                )
            ],
            reminders=[
                _make_snap(
                    "r1",
                    {
                        "interval": "90days",
                        "custom_days": None,
                        "next_date": "2026-04-15",
                        "enabled": True,
                    },
                )
            ],
        )

        # Act
        records = fake.repo().list_procedures(UID)

        # Assert
        assert len(records) == 1
        record = records[0]
        assert record.id == "p1"
        assert record.category == Category.FACE
        assert record.date == datetime.date(2026, 1, 15)
        assert record.photos[0].tag == PhotoTag.BEFORE
        assert record.photos[0].uri.startswith("https://")
        assert record.reminder.interval == ReminderInterval.DAYS_90
        assert record.reminder.procedure_id == "p1"
        fake.db.collection.assert_called_with("users")

    def test_missing_field_raises_read_error(self):
        """必須フィールドが欠けた行は StorageReadError（デフォルト値で補わない）"""
        data = _procedure_data()
        del data["category"]
        fake = _FakeDb(procedures=[_make_snap("p1", data)])

        with pytest.raises(StorageReadError, match="p1"):
            fake.repo().list_procedures(UID)

    def test_unknown_field_raises_read_error(self):
        fake = _FakeDb(procedures=[_make_snap("p1", _procedure_data(rating=5))])
        with pytest.raises(StorageReadError):
            fake.repo().list_procedures(UID)

    def test_unknown_category_raises_read_error(self):
        fake = _FakeDb(procedures=[_make_snap("p1", _procedure_data(category="dental"))])
        with pytest.raises(StorageReadError):
            fake.repo().list_procedures(UID)

    def test_sdk_failure_raises_read_error(self):
        fake = _FakeDb()
        fake.procedures.order_by.return_value.stream.side_effect = gexc.ServiceUnavailable(
            "unavailable"
        )
        with pytest.raises(StorageReadError):
            fake.repo().list_procedures(UID)

    def test_get_unknown_raises_not_found(self):
        fake = _FakeDb()
        fake.doc_ref.get.return_value = _make_snap("missing", None, exists=False)
        with pytest.raises(NotFoundError):
            fake.repo().get_procedure(UID, "missing")


class TestWrite:
    def test_insert_procedure(self, lip_filler_fields):
        """日付は ISO 文字列で保存し、作成時刻を返すこと"""
        fake = _FakeDb()

        record = fake.repo().insert_procedure(UID, lip_filler_fields)

        data = fake.doc_ref.set.call_args.args[0]
        assert data["date"] == "2026-01-15"
        assert data["category"] == "face"
        assert data["created_at"] == NOW
        assert record.name == "Lip Filler"
        assert record.created_at == NOW

    def test_insert_failure_raises_write_error(self, lip_filler_fields):
        fake = _FakeDb()
        fake.doc_ref.set.side_effect = gexc.PermissionDenied("denied")
        with pytest.raises(WriteError):
            fake.repo().insert_procedure(UID, lip_filler_fields)

    def test_update_missing_raises_not_found(self, lip_filler_fields):
        fake = _FakeDb()
        fake.doc_ref.update.side_effect = gexc.NotFound("no document")
        with pytest.raises(NotFoundError):
            fake.repo().update_procedure(UID, "missing", lip_filler_fields)

    def test_delete_procedure_cascades(self):
        """写真・リマインダーの行を施術の行と同じバッチで削除すること"""
        # Arrange
        photo = _make_snap("ph1", {})
        reminder = _make_snap("r1", {})
        fake = _FakeDb(photos=[photo], reminders=[reminder])
        batch = fake.db.batch.return_value

        # Act
        fake.repo().delete_procedure(UID, "p1")

        # Assert
        deleted = [c.args[0] for c in batch.delete.call_args_list]
        assert deleted == [photo.reference, reminder.reference, fake.doc_ref]
        batch.commit.assert_called_once()

    def test_delete_photo_returns_storage_path(self):
        fake = _FakeDb()
        photo_ref = fake.photos.document.return_value
        photo_ref.get.return_value = _make_snap(
            "ph1",
            {
                "storage_path": f"{UID}/p1/1_0_before.jpg",
                "url": "https://storage.googleapis.com/procedure-photos/a.jpg",
                "tag": "before",
                "created_at": NOW,
            },
        )

        path = fake.repo().delete_photo(UID, "p1", "ph1")

        assert path == f"{UID}/p1/1_0_before.jpg"
        photo_ref.delete.assert_called_once()

    def test_upsert_reminder_reuses_existing_id(self):
        """既存のリマインダーがあれば同じドキュメントを上書きすること"""
        fake = _FakeDb(reminders=[_make_snap("r1", {})])

        saved = fake.repo().upsert_reminder(
            UID,
            "p1",
            ReminderInput(
                interval=ReminderInterval.CUSTOM,
                next_date=datetime.date(2026, 3, 1),
                custom_days=45,
            ),
        )

        assert saved.id == "r1"
        fake.reminders.document.assert_called_with("r1")
        data = fake.reminders.document.return_value.set.call_args.args[0]
        assert data == {
            "interval": "custom",
            "custom_days": 45,
            "next_date": "2026-03-01",
            "enabled": True,
        }


class TestFirestoreUserPlanSource:
    def _source(self, snap: MagicMock) -> FirestoreUserPlanSource:
        db = MagicMock()
        db.collection.return_value.document.return_value.get.return_value = snap
        return FirestoreUserPlanSource(db)

    def test_missing_user_is_free(self):
        assert self._source(_make_snap(UID, None, exists=False)).get_plan(UID) == Plan.FREE

    def test_premium(self):
        assert self._source(_make_snap(UID, {"plan": "premium"})).get_plan(UID) == Plan.PREMIUM

    def test_missing_or_unknown_plan_is_free(self):
        assert self._source(_make_snap(UID, {})).get_plan(UID) == Plan.FREE
        assert self._source(_make_snap(UID, {"plan": "gold"})).get_plan(UID) == Plan.FREE

    def test_sdk_failure_raises_read_error(self):
        db = MagicMock()
        db.collection.return_value.document.return_value.get.side_effect = (
            gexc.ServiceUnavailable("unavailable")
        )
        with pytest.raises(StorageReadError):
            FirestoreUserPlanSource(db).get_plan(UID)
