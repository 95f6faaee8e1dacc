"""
Tests for report schedules, the cron evaluator and reporting value objects.
"""

from datetime import UTC, datetime, timedelta

import pytest

from nexus_modules.reporting.cron import CalendarCronEvaluator, parse_cron
from nexus_modules.reporting.exceptions import InvalidScheduleError
from nexus_modules.reporting.models import (
    DistributionChannel,
    DistributionResult,
    ReportFormat,
    RetentionTier,
    ScheduleType,
)
from nexus_modules.reporting.schedule import ReportSchedule, add_months


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


@pytest.fixture
def cron():
    return CalendarCronEvaluator()


class TestPeriodicSchedules:

    def test_daily_before_start_returns_start(self):
        schedule = ReportSchedule.daily(utc(2024, 1, 1, 8))
        assert schedule.next_run_after(utc(2024, 1, 1, 7)) == utc(2024, 1, 1, 8)

    def test_daily_is_strictly_after(self):
        schedule = ReportSchedule.daily(utc(2024, 1, 1, 8))
        assert schedule.next_run_after(utc(2024, 1, 1, 8)) == utc(2024, 1, 2, 8)
        assert schedule.next_run_after(utc(2024, 1, 3, 9, 30)) == utc(2024, 1, 4, 8)

    def test_weekly(self):
        schedule = ReportSchedule.weekly(utc(2024, 1, 1, 9))
        assert schedule.next_run_after(utc(2024, 1, 3)) == utc(2024, 1, 8, 9)

    def test_max_occurrences(self):
        schedule = ReportSchedule.daily(utc(2024, 1, 1, 8), max_occurrences=3)
        assert schedule.next_run_after(utc(2024, 1, 2, 9)) == utc(2024, 1, 3, 8)
        assert schedule.next_run_after(utc(2024, 1, 3, 8)) is None

    def test_ends_at_is_inclusive(self):
        schedule = ReportSchedule.daily(utc(2024, 1, 1, 8), ends_at=utc(2024, 1, 5, 8))
        assert schedule.next_run_after(utc(2024, 1, 4, 12)) == utc(2024, 1, 5, 8)
        assert schedule.next_run_after(utc(2024, 1, 5, 8)) is None

    def test_monthly_month_end_does_not_drift(self):
        schedule = ReportSchedule.monthly(utc(2024, 1, 31))
        assert schedule.next_run_after(utc(2024, 1, 31)) == utc(2024, 2, 29)
        assert schedule.next_run_after(utc(2024, 2, 29)) == utc(2024, 3, 31)

    def test_yearly_leap_day(self):
        schedule = ReportSchedule.yearly(utc(2024, 2, 29))
        assert schedule.next_run_after(utc(2024, 3, 1)) == utc(2025, 2, 28)

    def test_add_months_across_year(self):
        assert add_months(utc(2024, 11, 30), 3) == utc(2025, 2, 28)


class TestOnceAndCron:

    def test_once(self):
        schedule = ReportSchedule.once(utc(2024, 1, 10))
        assert schedule.schedule_type is ScheduleType.ONCE
        assert not schedule.is_recurring
        assert schedule.next_run_after(utc(2024, 1, 1)) == utc(2024, 1, 10)
        assert schedule.next_run_after(utc(2024, 1, 11)) is None
        assert schedule.next_run_after(utc(2024, 1, 1), completed_runs=1) is None

    def test_cron_requires_evaluator(self):
        schedule = ReportSchedule.cron("0 17 * * 5", utc(2024, 1, 1))
        with pytest.raises(InvalidScheduleError):
            schedule.next_run_after(utc(2024, 1, 1))

    def test_cron_includes_start(self, cron):
        schedule = ReportSchedule.cron("0 0 * * *", utc(2024, 1, 1))
        assert schedule.next_run_after(utc(2023, 12, 25), cron=cron) == utc(2024, 1, 1)

    def test_cron_next_friday(self, cron):
        schedule = ReportSchedule.cron("0 17 * * 5", utc(2024, 1, 1))
        assert schedule.next_run_after(utc(2024, 1, 2), cron=cron) == utc(2024, 1, 5, 17)

    def test_cron_max_occurrences(self, cron):
        schedule = ReportSchedule.cron("0 17 * * 5", utc(2024, 1, 1), max_occurrences=2)
        assert schedule.next_run_after(utc(2024, 1, 20), completed_runs=2, cron=cron) is None


class TestScheduleValidation:

    def test_ends_before_start(self):
        with pytest.raises(InvalidScheduleError, match="before it starts"):
            ReportSchedule.daily(utc(2024, 2, 1), ends_at=utc(2024, 1, 1))

    def test_max_occurrences_positive(self):
        with pytest.raises(InvalidScheduleError):
            ReportSchedule.weekly(utc(2024, 1, 1), max_occurrences=0)

    def test_cron_needs_expression(self):
        with pytest.raises(InvalidScheduleError, match="cron expression"):
            ReportSchedule(ScheduleType.CRON, utc(2024, 1, 1))


class TestCronEvaluator:

    @pytest.mark.parametrize(
        "expression,after,expected",
        [
            ("*/15 * * * *", utc(2024, 1, 1, 10, 7), utc(2024, 1, 1, 10, 15)),
            ("0 9 * * 1-5", utc(2024, 1, 5, 10), utc(2024, 1, 8, 9)),
            ("0 0 1 * *", utc(2024, 1, 15), utc(2024, 2, 1)),
            ("0 0 * * 7", utc(2024, 1, 1), utc(2024, 1, 7)),
            ("30 8 1,15 * *", utc(2024, 1, 2), utc(2024, 1, 15, 8, 30)),
        ],
    )
    def test_next_run(self, cron, expression, after, expected):
        assert cron.next_run(expression, after) == expected

    def test_day_fields_match_either_when_both_restricted(self, cron):
        assert cron.next_run("0 0 13 * 5", utc(2024, 1, 1)) == utc(2024, 1, 5)

    def test_stepped_wildcard_day_is_unrestricted(self, cron):
        # both fields must hold: odd day and Monday, so not Jan 3 or Jan 8
        assert cron.next_run("0 0 */2 * 1", utc(2024, 1, 1)) == utc(2024, 1, 15)
        assert parse_cron("0 0 */2 * 1").day_of_month_restricted is False

    def test_stepped_wildcard_weekday_is_unrestricted(self, cron):
        # Jan 15 2024 is a Monday; Feb 15 is the first 15th on an even weekday
        assert cron.next_run("0 0 15 * */2", utc(2024, 1, 1)) == utc(2024, 2, 15)

    def test_impossible_date(self, cron):
        assert cron.next_run("0 0 30 2 *", utc(2024, 1, 1)) is None

    @pytest.mark.parametrize("expression", ["61 * * * *", "* * *", "a * * * *", "5-1 * * * *"])
    def test_invalid(self, cron, expression):
        assert not cron.is_valid(expression)
        with pytest.raises(InvalidScheduleError):
            parse_cron(expression)

    def test_sunday_aliases(self):
        assert parse_cron("0 0 * * 7").days_of_week == frozenset({0})


class TestValueObjects:

    def test_format_metadata(self):
        assert ReportFormat.EXCEL.extension == "xlsx"
        assert ReportFormat.PDF.mime_type == "application/pdf"
        assert ReportFormat.CSV.mime_type == "text/csv"

    def test_retention_expiry(self):
        generated = utc(2024, 1, 1)
        assert RetentionTier.ACTIVE.expires_at(generated) == generated + timedelta(days=90)
        assert RetentionTier.ARCHIVE.expires_at(generated) == generated + timedelta(days=2555)
        assert RetentionTier.COMPLIANCE.expires_at(generated) is None
        assert RetentionTier.ACTIVE.expires_at(generated, 30) == generated + timedelta(days=30)

    def test_distribution_counts(self):
        result = DistributionResult("RPT-1", DistributionChannel.EMAIL, ("a@x.com",), {"b@x.com": "bounced"})
        assert result.success_count == 1
        assert result.failure_count == 1
        assert not result.is_complete_success
        assert DistributionResult("RPT-1", DistributionChannel.SLACK, ("#ops",)).is_complete_success
