"""リマインダーの次回予定日計算

next_due_date は副作用のない純粋関数。datetime.date はイミュータブルなので
base_date が変更されることはない。
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable

from dateutil.relativedelta import relativedelta

from beauty_track.domain.models import ProcedureRecord, ReminderInput, ReminderInterval

_OFFSETS: dict[ReminderInterval, relativedelta] = {
    ReminderInterval.DAYS_30: relativedelta(days=30),
    ReminderInterval.DAYS_90: relativedelta(days=90),
    ReminderInterval.MONTHS_6: relativedelta(months=6),
    ReminderInterval.YEAR_1: relativedelta(years=1),
}

UPCOMING_WINDOW_DAYS = 30


def next_due_date(
    interval: ReminderInterval,
    base_date: datetime.date,
    custom_days: int | None = None,
) -> datetime.date:
    """
    施術日にインターバルを加算した次回予定日を返す。

    月・年の加算は月末で切り詰める（8/31 + 6ヶ月 = 2/28 or 2/29）。
    CUSTOM で custom_days が未指定（または0）の場合は base_date をそのまま返すため、
    予定日は施術日当日になる。

    Args:
        interval: リマインダー間隔
        base_date: 起点日（施術日）
        custom_days: CUSTOM の場合の日数

    Returns:
        次回予定日
    """
    if interval == ReminderInterval.CUSTOM:
        if not custom_days:
            return base_date
        return base_date + datetime.timedelta(days=custom_days)
    return base_date + _OFFSETS[interval]


def build_reminder(
    interval: ReminderInterval,
    procedure_date: datetime.date,
    custom_days: int | None = None,
    enabled: bool = True,
) -> ReminderInput:
    """施術日から次回予定日を計算して ReminderInput を組み立てる"""
    return ReminderInput(
        interval=interval,
        next_date=next_due_date(interval, procedure_date, custom_days),
        custom_days=custom_days if interval == ReminderInterval.CUSTOM else None,
        enabled=enabled,
    )


def upcoming_reminders(
    records: Iterable[ProcedureRecord],
    today: datetime.date,
    window_days: int = UPCOMING_WINDOW_DAYS,
) -> list[ProcedureRecord]:
    """
    有効なリマインダーのうち、今日から window_days 日以内（期限切れ含む）のものを
    予定日の昇順で返す。
    """
    limit = today + datetime.timedelta(days=window_days)
    due = [
        r
        for r in records
        if r.reminder is not None and r.reminder.enabled and r.reminder.next_date <= limit
    ]
    return sorted(due, key=lambda r: r.reminder.next_date)  # type: ignore[union-attr]
