"""JournalService - 施術記録の追加・編集・削除・閲覧

現在の利用者IDに応じて、ゲストならローカルストア、認証済みならホスト側ストアへ
振り分ける。エラーは全て呼び出し元に伝播し、再試行はしない。
"""

from __future__ import annotations

import datetime
import logging
from collections import Counter
from collections.abc import Callable, Sequence

from beauty_track.domain.errors import BeautyTrackError, NotAuthenticatedError
from beauty_track.domain.models import (
    Identity,
    JournalStats,
    PhotoInput,
    PhotoTag,
    Plan,
    ProcedureFields,
    ProcedureRecord,
    ProcedureUpdate,
    ReminderInterval,
)
from beauty_track.domain.ports import LocalRecordStore, UserPlanSource
from beauty_track.domain.reminders import build_reminder, upcoming_reminders
from beauty_track.services.hosted_record_store import HostedRecordStore
from beauty_track.services.session import SessionService

logger = logging.getLogger(__name__)

# 無料プランの表示上の上限（超過しても保存は止めない）
FREE_MAX_PROCEDURES = 3
FREE_MAX_PHOTOS = 10


class JournalService:
    """利用者IDに応じたストアで施術記録を操作する"""

    def __init__(
        self,
        session: SessionService,
        local: LocalRecordStore,
        hosted: HostedRecordStore | None = None,
        plan_source: UserPlanSource | None = None,
        today: Callable[[], datetime.date] = datetime.date.today,
    ) -> None:
        """
        Args:
            session: 現在の利用者ID
            local: ゲスト用ストア
            hosted: 認証済み用ストア（未設定の場合はゲストモードのみ）
            plan_source: ティアの解決（集計用）
            today: 今日の日付（テスト用に差し替え可能）
        """
        self._session = session
        self._local = local
        self._hosted = hosted
        self._plans = plan_source
        self._today = today

    def _identity(self) -> Identity:
        identity = self._session.current_identity()
        if identity is None:
            raise NotAuthenticatedError("You must be logged in to save procedures.")
        return identity

    def _hosted_store(self) -> HostedRecordStore:
        if self._hosted is None:
            raise BeautyTrackError("Hosted storage is not configured (PROJECT_ID is not set)")
        return self._hosted

    # ── 閲覧 ──────────────────────────────────────────────────────────────────

    def list(self) -> list[ProcedureRecord]:
        identity = self._identity()
        if identity.is_guest:
            return self._local.list(identity.user_id)
        return self._hosted_store().list(identity.user_id)

    def get(self, procedure_id: str) -> ProcedureRecord:
        identity = self._identity()
        if identity.is_guest:
            return self._local.get(identity.user_id, procedure_id)
        return self._hosted_store().get(identity.user_id, procedure_id)

    def before_after(self, procedure_id: str) -> tuple[list[str], list[str]]:
        """比較スライダー用に、ビフォー/アフターの写真URIを返す"""
        record = self.get(procedure_id)
        return (
            [p.uri for p in record.photos_by_tag(PhotoTag.BEFORE)],
            [p.uri for p in record.photos_by_tag(PhotoTag.AFTER)],
        )

    def upcoming(self, today: datetime.date | None = None) -> list[ProcedureRecord]:
        """30日以内（期限切れ含む）に予定日を迎えるリマインダー付きの施術"""
        return upcoming_reminders(self.list(), today or self._today())

    def stats(self) -> JournalStats:
        identity = self._identity()
        records = self.list()
        plan = Plan.FREE
        if not identity.is_guest and self._plans is not None:
            plan = self._plans.get_plan(identity.user_id)

        is_free = plan == Plan.FREE
        return JournalStats(
            procedure_count=len(records),
            photo_count=sum(len(r.photos) for r in records),
            total_cost=sum(r.cost or 0 for r in records),
            by_category=dict(Counter(r.category for r in records)),
            plan=plan,
            max_procedures=FREE_MAX_PROCEDURES if is_free else None,
            max_photos=FREE_MAX_PHOTOS if is_free else None,
        )

    # ── 書き込み ──────────────────────────────────────────────────────────────

    def add(
        self,
        fields: ProcedureFields,
        photos: Sequence[PhotoInput] = (),
        reminder_interval: ReminderInterval | None = None,
        custom_days: int | None = None,
    ) -> ProcedureRecord:
        """
        施術を記録する。

        reminder_interval を指定した場合、施術日から次回予定日を計算してリマインダーを付ける。
        """
        identity = self._identity()
        reminder = (
            build_reminder(reminder_interval, fields.date, custom_days)
            if reminder_interval is not None
            else None
        )
        if identity.is_guest:
            return self._local.create(identity.user_id, fields, photos, reminder)
        return self._hosted_store().create(identity.user_id, fields, photos, reminder)

    def edit(
        self,
        procedure_id: str,
        updates: ProcedureUpdate,
        new_photos: Sequence[PhotoInput] = (),
        reminder_interval: ReminderInterval | None = None,
        custom_days: int | None = None,
    ) -> ProcedureRecord:
        """
        施術を編集する。写真は追加のみ。

        リマインダーの予定日は更新後の施術日から再計算する。
        """
        identity = self._identity()
        reminder = None
        if reminder_interval is not None:
            procedure_date = updates.date or self.get(procedure_id).date
            reminder = build_reminder(reminder_interval, procedure_date, custom_days)

        if identity.is_guest:
            return self._local.update(
                identity.user_id, procedure_id, updates, new_photos, reminder
            )
        return self._hosted_store().update(
            identity.user_id, procedure_id, updates, new_photos, reminder
        )

    def remove(self, procedure_id: str) -> None:
        """施術と、その写真・リマインダーを削除する"""
        identity = self._identity()
        if identity.is_guest:
            self._local.delete(identity.user_id, procedure_id)
        else:
            self._hosted_store().delete(identity.user_id, procedure_id)
        logger.info("Removed procedure: id=%s", procedure_id)
