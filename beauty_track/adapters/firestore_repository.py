"""Firestore Repository Adapter

ProcedureRepository と UserPlanSource の Firestore 実装。

Firestore コレクション構造:
  users/{uid}                                              ← ユーザー設定（plan）
  users/{uid}/procedures/{procedureId}                     ← 施術
  users/{uid}/procedures/{procedureId}/photos/{photoId}    ← 写真
  users/{uid}/procedures/{procedureId}/reminders/{id}      ← リマインダー（最大1件）

読み込んだドキュメントは pydantic の行モデルで検証する。
フィールドの欠落・余分なフィールドは StorageReadError とし、黙ってデフォルト値で補わない。
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Callable
from typing import Any

from google.api_core import exceptions as gexc
from google.cloud import firestore
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from beauty_track.domain.errors import NotFoundError, StorageReadError, WriteError
from beauty_track.domain.models import (
    Category,
    Photo,
    PhotoTag,
    Plan,
    ProcedureFields,
    ProcedureRecord,
    Reminder,
    ReminderInput,
    ReminderInterval,
)
from beauty_track.domain.ports import ProcedureRepository, UserPlanSource

logger = logging.getLogger(__name__)

_USERS = "users"
_PROCEDURES = "procedures"
_PHOTOS = "photos"
_REMINDERS = "reminders"


# ── 行モデル（境界での型検証） ──────────────────────────────────────────────────


class ProcedureRow(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    category: Category
    date: datetime.date
    clinic: str | None
    cost: float | None
    notes: str | None
    product_brand: str | None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class PhotoRow(BaseModel):
    model_config = ConfigDict(extra="forbid")

    storage_path: str
    url: str
    tag: PhotoTag
    created_at: datetime.datetime


class ReminderRow(BaseModel):
    model_config = ConfigDict(extra="forbid")

    interval: ReminderInterval
    custom_days: int | None
    next_date: datetime.date
    enabled: bool


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _parse(model: type[BaseModel], path: str, data: dict | None) -> Any:
    """Firestore ドキュメントを行モデルに変換。失敗時は StorageReadError"""
    try:
        return model.model_validate(data or {})
    except PydanticValidationError as e:
        raise StorageReadError(f"Malformed row at {path}: {e}") from e


def _fields_to_dict(fields: ProcedureFields) -> dict[str, Any]:
    return {
        "name": fields.name,
        "category": fields.category.value,
        "date": fields.date.isoformat(),
        "clinic": fields.clinic,
        "cost": fields.cost,
        "notes": fields.notes,
        "product_brand": fields.product_brand,
    }


class FirestoreProcedureRepository(ProcedureRepository):
    """
    Firestore を使った ProcedureRepository 実装。

    users/{uid}/procedures と、その photos, reminders サブコレクションを管理する。
    """

    def __init__(
        self,
        db: firestore.Client,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        """
        Args:
            db: 初期化済みの Firestore クライアント
            clock: 現在時刻（テスト用に差し替え可能）
        """
        self._db = db
        self._clock = clock

    def _procedures(self, uid: str):
        return self._db.collection(_USERS).document(uid).collection(_PROCEDURES)

    # ── 読み込み ──────────────────────────────────────────────────────────────

    def list_procedures(self, uid: str) -> list[ProcedureRecord]:
        """ユーザーの施術一覧を施術日の新しい順で取得"""
        try:
            snaps = list(
                self._procedures(uid)
                .order_by("date", direction=firestore.Query.DESCENDING)
                .stream()
            )
        except gexc.GoogleAPIError as e:
            raise StorageReadError(f"Failed to fetch procedures: {e}") from e
        return [self._load(uid, snap) for snap in snaps]

    def get_procedure(self, uid: str, procedure_id: str) -> ProcedureRecord:
        try:
            snap = self._procedures(uid).document(procedure_id).get()
        except gexc.GoogleAPIError as e:
            raise StorageReadError(f"Failed to fetch procedure: {e}") from e
        if not snap.exists:
            raise NotFoundError(f"Procedure not found: {procedure_id}")
        return self._load(uid, snap)

    def _load(self, uid: str, snap) -> ProcedureRecord:
        """施術ドキュメントと写真・リマインダーのサブコレクションを読み込む"""
        path = f"{_USERS}/{uid}/{_PROCEDURES}/{snap.id}"
        row: ProcedureRow = _parse(ProcedureRow, path, snap.to_dict())
        ref = self._procedures(uid).document(snap.id)

        try:
            photo_snaps = list(ref.collection(_PHOTOS).order_by("created_at").stream())
            reminder_snaps = list(ref.collection(_REMINDERS).limit(1).stream())
        except gexc.GoogleAPIError as e:
            raise StorageReadError(f"Failed to fetch children of {path}: {e}") from e

        photos = []
        for p in photo_snaps:
            photo_row: PhotoRow = _parse(PhotoRow, f"{path}/{_PHOTOS}/{p.id}", p.to_dict())
            photos.append(
                Photo(
                    id=p.id,
                    uri=photo_row.url,
                    tag=photo_row.tag,
                    timestamp=photo_row.created_at,
                )
            )

        reminder = None
        if reminder_snaps:
            r = reminder_snaps[0]
            reminder_row: ReminderRow = _parse(
                ReminderRow, f"{path}/{_REMINDERS}/{r.id}", r.to_dict()
            )
            reminder = Reminder(
                id=r.id,
                procedure_id=snap.id,
                interval=reminder_row.interval,
                custom_days=reminder_row.custom_days,
                next_date=reminder_row.next_date,
                enabled=reminder_row.enabled,
            )

        return ProcedureRecord(
            id=snap.id,
            name=row.name,
            category=row.category,
            date=row.date,
            clinic=row.clinic,
            cost=row.cost,
            notes=row.notes,
            product_brand=row.product_brand,
            photos=tuple(photos),
            reminder=reminder,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    # ── 書き込み ──────────────────────────────────────────────────────────────

    def insert_procedure(self, uid: str, fields: ProcedureFields) -> ProcedureRecord:
        procedure_id = str(uuid.uuid4())
        now = self._clock()
        data = {**_fields_to_dict(fields), "created_at": now, "updated_at": now}
        try:
            self._procedures(uid).document(procedure_id).set(data)
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to create procedure: {e}") from e
        logger.info("Created procedure: uid=%s, id=%s", uid, procedure_id)
        return ProcedureRecord(
            id=procedure_id,
            name=fields.name,
            category=fields.category,
            date=fields.date,
            clinic=fields.clinic,
            cost=fields.cost,
            notes=fields.notes,
            product_brand=fields.product_brand,
            created_at=now,
            updated_at=now,
        )

    def update_procedure(
        self, uid: str, procedure_id: str, fields: ProcedureFields
    ) -> None:
        data = {**_fields_to_dict(fields), "updated_at": self._clock()}
        try:
            self._procedures(uid).document(procedure_id).update(data)
        except gexc.NotFound as e:
            raise NotFoundError(f"Procedure not found: {procedure_id}") from e
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to update procedure: {e}") from e
        logger.info("Updated procedure: uid=%s, id=%s", uid, procedure_id)

    def delete_procedure(self, uid: str, procedure_id: str) -> None:
        """施術ドキュメントと photos/reminders サブコレクションをバッチで削除"""
        ref = self._procedures(uid).document(procedure_id)
        try:
            batch = self._db.batch()
            children = 0
            for name in (_PHOTOS, _REMINDERS):
                for child in ref.collection(name).stream():
                    batch.delete(child.reference)
                    children += 1
            batch.delete(ref)
            batch.commit()
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to delete procedure: {e}") from e
        logger.info(
            "Deleted procedure: uid=%s, id=%s, children=%d", uid, procedure_id, children
        )

    def insert_photo(
        self,
        uid: str,
        procedure_id: str,
        storage_path: str,
        url: str,
        tag: PhotoTag,
    ) -> Photo:
        photo_id = str(uuid.uuid4())
        now = self._clock()
        try:
            (
                self._procedures(uid)
                .document(procedure_id)
                .collection(_PHOTOS)
                .document(photo_id)
                .set(
                    {
                        "storage_path": storage_path,
                        "url": url,
                        "tag": tag.value,
                        "created_at": now,
                    }
                )
            )
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to save photo record: {e}") from e
        return Photo(id=photo_id, uri=url, tag=tag, timestamp=now)

    def delete_photo(self, uid: str, procedure_id: str, photo_id: str) -> str:
        ref = (
            self._procedures(uid)
            .document(procedure_id)
            .collection(_PHOTOS)
            .document(photo_id)
        )
        path = f"{_USERS}/{uid}/{_PROCEDURES}/{procedure_id}/{_PHOTOS}/{photo_id}"
        try:
            snap = ref.get()
            if not snap.exists:
                raise NotFoundError(f"Photo not found: {photo_id}")
            row: PhotoRow = _parse(PhotoRow, path, snap.to_dict())
            ref.delete()
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to delete photo record: {e}") from e
        logger.info("Deleted photo: uid=%s, photo_id=%s", uid, photo_id)
        return row.storage_path

    def upsert_reminder(
        self, uid: str, procedure_id: str, reminder: ReminderInput
    ) -> Reminder:
        col = self._procedures(uid).document(procedure_id).collection(_REMINDERS)
        data = {
            "interval": reminder.interval.value,
            "custom_days": reminder.custom_days,
            "next_date": reminder.next_date.isoformat(),
            "enabled": reminder.enabled,
        }
        try:
            existing = list(col.limit(1).stream())
            reminder_id = existing[0].id if existing else str(uuid.uuid4())
            col.document(reminder_id).set(data)
        except gexc.GoogleAPIError as e:
            raise WriteError(f"Failed to save reminder: {e}") from e
        logger.info(
            "Saved reminder: uid=%s, procedure_id=%s, next_date=%s",
            uid,
            procedure_id,
            reminder.next_date,
        )
        return Reminder(
            id=reminder_id,
            procedure_id=procedure_id,
            interval=reminder.interval,
            custom_days=reminder.custom_days,
            next_date=reminder.next_date,
            enabled=reminder.enabled,
        )


class FirestoreUserPlanSource(UserPlanSource):
    """users/{uid}.plan からティアを解決する UserPlanSource 実装"""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def get_plan(self, uid: str) -> Plan:
        try:
            snap = self._db.collection(_USERS).document(uid).get()
        except gexc.GoogleAPIError as e:
            raise StorageReadError(f"Failed to fetch user: {e}") from e
        if not snap.exists:
            return Plan.FREE
        value = (snap.to_dict() or {}).get("plan") or Plan.FREE.value
        try:
            return Plan(value)
        except ValueError:
            logger.warning("Unknown plan for uid=%s: %r, treating as free", uid, value)
            return Plan.FREE
