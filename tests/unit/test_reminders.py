"""リマインダー予定日計算のユニットテスト"""

import datetime

import pytest

from beauty_track.domain.models import (
    Category,
    ProcedureRecord,
    Reminder,
    ReminderInterval,
)
from beauty_track.domain.reminders import (
    build_reminder,
    next_due_date,
    upcoming_reminders,
)


class TestNextDueDate:
    """next_due_date() の計算"""

    @pytest.mark.parametrize(
        ("interval", "expected"),
        [
            (ReminderInterval.DAYS_30, datetime.date(2026, 2, 14)),
            (ReminderInterval.DAYS_90, datetime.date(2026, 4, 15)),
            (ReminderInterval.MONTHS_6, datetime.date(2026, 7, 15)),
            (ReminderInterval.YEAR_1, datetime.date(2027, 1, 15)),
        ],
    )
    def test_fixed_intervals(self, interval, expected):
        """固定インターバルが施術日に加算されること"""
        assert next_due_date(interval, datetime.date(2026, 1, 15)) == expected

    def test_custom_days(self):
        """CUSTOM は custom_days 日後"""
        assert next_due_date(
            ReminderInterval.CUSTOM, datetime.date(2026, 1, 15), custom_days=45
        ) == datetime.date(2026, 3, 1)

    @pytest.mark.parametrize("custom_days", [None, 0])
    def test_custom_without_days_returns_base_date(self, custom_days):
        """CUSTOM で日数が未指定なら施術日そのもの"""
        base = datetime.date(2026, 1, 15)
        assert next_due_date(ReminderInterval.CUSTOM, base, custom_days) == base

    def test_custom_days_ignored_for_fixed_interval(self):
        """固定インターバルでは custom_days を無視すること"""
        assert next_due_date(
            ReminderInterval.DAYS_30, datetime.date(2026, 1, 15), custom_days=5
        ) == datetime.date(2026, 2, 14)

    def test_month_end_is_clamped(self):
        """月末起点の6ヶ月後は月末に切り詰められること"""
        assert next_due_date(
            ReminderInterval.MONTHS_6, datetime.date(2025, 8, 31)
        ) == datetime.date(2026, 2, 28)

    def test_leap_day_plus_one_year(self):
        """2/29 + 1年 は 2/28"""
        assert next_due_date(
            ReminderInterval.YEAR_1, datetime.date(2028, 2, 29)
        ) == datetime.date(2029, 2, 28)

    def test_base_date_is_not_modified(self):
        """入力の日付が変更されないこと"""
        base = datetime.date(2026, 1, 15)
        next_due_date(ReminderInterval.DAYS_90, base)
        assert base == datetime.date(2026, 1, 15)


class TestBuildReminder:
    def test_builds_from_procedure_date(self):
        reminder = build_reminder(ReminderInterval.DAYS_90, datetime.date(2026, 1, 15))
        assert reminder.next_date == datetime.date(2026, 4, 15)
        assert reminder.custom_days is None
        assert reminder.enabled is True

    def test_custom_days_kept_only_for_custom(self):
        """custom_days は CUSTOM の場合のみ保持されること"""
        fixed = build_reminder(ReminderInterval.DAYS_30, datetime.date(2026, 1, 15), 10)
        custom = build_reminder(ReminderInterval.CUSTOM, datetime.date(2026, 1, 15), 10)
        assert fixed.custom_days is None
        assert custom.custom_days == 10
        assert custom.next_date == datetime.date(2026, 1, 25)


class TestUpcomingReminders:
    """upcoming_reminders() の絞り込みと並び順"""

    def _record(
        self, record_id: str, next_date: datetime.date | None, enabled: bool = True
    ) -> ProcedureRecord:
        now = datetime.datetime(2026, 1, 1, tzinfo=datetime.UTC)
        reminder = (
            Reminder(
                id=f"r_{record_id}",
                procedure_id=record_id,
                interval=ReminderInterval.DAYS_30,
                next_date=next_date,
                enabled=enabled,
            )
            if next_date
            else None
        )
        return ProcedureRecord(
            id=record_id,
            name=record_id,
            category=Category.SKIN,
            date=datetime.date(2026, 1, 1),
            created_at=now,
            updated_at=now,
            reminder=reminder,
        )

    def test_filters_and_sorts(self):
        """30日以内（期限切れ含む）の有効なリマインダーだけが昇順で返ること"""
        # Arrange
        today = datetime.date(2026, 3, 1)
        records = [
            self._record("later", datetime.date(2026, 3, 25)),
            self._record("overdue", datetime.date(2026, 2, 20)),
            self._record("far", datetime.date(2026, 5, 1)),
            self._record("disabled", datetime.date(2026, 3, 5), enabled=False),
            self._record("none", None),
            self._record("edge", datetime.date(2026, 3, 31)),
        ]

        # Act
        result = upcoming_reminders(records, today)

        # Assert
        assert [r.id for r in result] == ["overdue", "later", "edge"]
