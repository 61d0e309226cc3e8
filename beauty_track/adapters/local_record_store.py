"""Local Record Store Adapter

LocalRecordStore ABC の端末ローカル実装（ゲストモード用）。

保存形式:
  キー   @beauty_track_guest_procedures_{guestId}
  値     施術レコードの JSON 配列（新しい順、日付は ISO-8601）

JSON は pydantic モデルで検証してからドメインモデルに変換する。
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import asdict, replace

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from beauty_track.domain.errors import NotFoundError
from beauty_track.domain.models import (
    Category,
    Photo,
    PhotoInput,
    PhotoTag,
    ProcedureFields,
    ProcedureRecord,
    ProcedureUpdate,
    Reminder,
    ReminderInput,
    ReminderInterval,
)
from beauty_track.domain.ports import KeyValueStorage, LocalRecordStore

logger = logging.getLogger(__name__)

GUEST_PROCEDURES_KEY = "@beauty_track_guest_procedures"


class StoredPhoto(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    uri: str
    tag: PhotoTag
    timestamp: datetime.datetime


class StoredReminder(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    procedure_id: str
    interval: ReminderInterval
    custom_days: int | None = None
    next_date: datetime.date
    enabled: bool


class StoredProcedure(BaseModel):
    """端末に保存される施術レコード1件分"""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    category: Category
    date: datetime.date
    clinic: str | None = None
    cost: float | None = None
    notes: str | None = None
    product_brand: str | None = None
    photos: list[StoredPhoto] = []
    reminder: StoredReminder | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


_RECORDS = TypeAdapter(list[StoredProcedure])


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class LocalProcedureStore(LocalRecordStore):
    """
    KeyValueStorage 上に施術レコードを保存する LocalRecordStore 実装。

    単一端末・単一アプリインスタンスからの書き込みを前提とし、ロックは行わない。
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ) -> None:
        """
        Args:
            storage: 端末のキー・バリューストレージ
            clock: 現在時刻（テスト用に差し替え可能）
        """
        self._storage = storage
        self._clock = clock

    def list(self, guest_id: str) -> list[ProcedureRecord]:
        """
        ゲストの施術レコード一覧を新しい順で返す。

        Raises:
            StorageReadError: 端末ストレージ自体の読み込みに失敗した場合

        Note:
            保存内容のデコード・検証に失敗した場合はエラーログを出して空リストを返す。
        """
        raw = self._storage.get(self._key(guest_id))
        if not raw:
            return []
        try:
            stored = _RECORDS.validate_json(raw)
        except PydanticValidationError as e:
            logger.error(
                "Failed to decode guest procedures: guest_id=%s, error=%s", guest_id, e
            )
            return []
        return [self._to_record(s) for s in stored]

    def get(self, guest_id: str, procedure_id: str) -> ProcedureRecord:
        for record in self.list(guest_id):
            if record.id == procedure_id:
                return record
        raise NotFoundError(f"Procedure not found: {procedure_id}")

    def create(
        self,
        guest_id: str,
        fields: ProcedureFields,
        photos: Sequence[PhotoInput] = (),
        reminder: ReminderInput | None = None,
    ) -> ProcedureRecord:
        now = self._clock()
        procedure_id = _new_id("guest_proc")
        record = ProcedureRecord(
            id=procedure_id,
            **asdict(fields),
            photos=self._new_photos(photos, now),
            reminder=(
                self._new_reminder(procedure_id, reminder, None)
                if reminder is not None
                else None
            ),
            created_at=now,
            updated_at=now,
        )

        records = [record, *self.list(guest_id)]
        self._save(guest_id, records)
        logger.info(
            "Created guest procedure: guest_id=%s, id=%s, photos=%d",
            guest_id,
            procedure_id,
            len(record.photos),
        )
        return record

    def update(
        self,
        guest_id: str,
        procedure_id: str,
        updates: ProcedureUpdate,
        new_photos: Sequence[PhotoInput] = (),
        reminder: ReminderInput | None = None,
    ) -> ProcedureRecord:
        records = self.list(guest_id)
        index = next(
            (i for i, r in enumerate(records) if r.id == procedure_id), None
        )
        if index is None:
            raise NotFoundError(f"Procedure not found: {procedure_id}")

        existing = records[index]
        now = self._clock()
        updated = replace(
            existing,
            **asdict(updates.merged(existing.fields)),
            photos=existing.photos + self._new_photos(new_photos, now),
            reminder=(
                self._new_reminder(procedure_id, reminder, existing.reminder)
                if reminder is not None
                else existing.reminder
            ),
            updated_at=now,
        )

        records[index] = updated
        self._save(guest_id, records)
        logger.info(
            "Updated guest procedure: guest_id=%s, id=%s", guest_id, procedure_id
        )
        return updated

    def delete(self, guest_id: str, procedure_id: str) -> None:
        records = self.list(guest_id)
        remaining = [r for r in records if r.id != procedure_id]
        if len(remaining) == len(records):
            logger.debug(
                "Guest procedure already absent: guest_id=%s, id=%s",
                guest_id,
                procedure_id,
            )
            return
        self._save(guest_id, remaining)
        logger.info(
            "Deleted guest procedure: guest_id=%s, id=%s", guest_id, procedure_id
        )

    def clear(self, guest_id: str) -> None:
        self._storage.remove(self._key(guest_id))
        logger.info("Cleared guest procedures: guest_id=%s", guest_id)

    # ── ヘルパー ──────────────────────────────────────────────────────────────

    @staticmethod
    def _key(guest_id: str) -> str:
        return f"{GUEST_PROCEDURES_KEY}_{guest_id}"

    def _save(self, guest_id: str, records: list[ProcedureRecord]) -> None:
        payload = _RECORDS.dump_json([self._to_stored(r) for r in records])
        self._storage.set(self._key(guest_id), payload.decode("utf-8"))

    @staticmethod
    def _new_photos(
        photos: Sequence[PhotoInput], now: datetime.datetime
    ) -> tuple[Photo, ...]:
        return tuple(
            Photo(id=_new_id("guest_photo"), uri=p.uri, tag=p.tag, timestamp=now)
            for p in photos
        )

    @staticmethod
    def _new_reminder(
        procedure_id: str, reminder: ReminderInput, existing: Reminder | None
    ) -> Reminder:
        return Reminder(
            id=existing.id if existing else _new_id("guest_reminder"),
            procedure_id=procedure_id,
            interval=reminder.interval,
            custom_days=reminder.custom_days,
            next_date=reminder.next_date,
            enabled=reminder.enabled,
        )

    @staticmethod
    def _to_stored(record: ProcedureRecord) -> StoredProcedure:
        reminder = record.reminder
        return StoredProcedure(
            id=record.id,
            name=record.name,
            category=record.category,
            date=record.date,
            clinic=record.clinic,
            cost=record.cost,
            notes=record.notes,
            product_brand=record.product_brand,
            photos=[
                StoredPhoto(id=p.id, uri=p.uri, tag=p.tag, timestamp=p.timestamp)
                for p in record.photos
            ],
            reminder=(
                StoredReminder(
                    id=reminder.id,
                    procedure_id=reminder.procedure_id,
                    interval=reminder.interval,
                    custom_days=reminder.custom_days,
                    next_date=reminder.next_date,
                    enabled=reminder.enabled,
                )
                if reminder
                else None
            ),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    @staticmethod
    def _to_record(stored: StoredProcedure) -> ProcedureRecord:
        r = stored.reminder
        return ProcedureRecord(
            id=stored.id,
            name=stored.name,
            category=stored.category,
            date=stored.date,
            clinic=stored.clinic,
            cost=stored.cost,
            notes=stored.notes,
            product_brand=stored.product_brand,
            photos=tuple(
                Photo(id=p.id, uri=p.uri, tag=p.tag, timestamp=p.timestamp)
                for p in stored.photos
            ),
            reminder=(
                Reminder(
                    id=r.id,
                    procedure_id=r.procedure_id,
                    interval=r.interval,
                    custom_days=r.custom_days,
                    next_date=r.next_date,
                    enabled=r.enabled,
                )
                if r
                else None
            ),
            created_at=stored.created_at,
            updated_at=stored.updated_at,
        )
