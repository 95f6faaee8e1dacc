"""
Report Schedules (``nexus_modules.reporting.schedule``).

Responsibility
--------------
When a scheduled report runs next. Periodic schedules are anchored on
``starts_at``: occurrence *k* is ``starts_at`` plus *k* days, weeks,
months or years, with month-end dates clamped to shorter months. Cron
schedules delegate to a ``CronEvaluator``.

Invariants enforced
-------------------
* ``ends_at`` is not before ``starts_at``.
* ``max_occurrences`` is at least 1 when given.
* A cron schedule carries an expression.
* ``next_run_after`` never returns a run after ``ends_at`` or beyond
  ``max_occurrences``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol, Self

from nexus_modules.reporting.exceptions import InvalidScheduleError
from nexus_modules.reporting.models import DistributionChannel, ScheduleType

_FIXED_STEPS = {
    ScheduleType.DAILY: timedelta(days=1),
    ScheduleType.WEEKLY: timedelta(weeks=1),
}

_MONTH_STEPS = {
    ScheduleType.MONTHLY: 1,
    ScheduleType.YEARLY: 12,
}


class CronEvaluator(Protocol):
    def next_run(self, expression: str, after: datetime) -> datetime | None:
        """First run strictly after ``after``, or None."""
        ...


def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    index = moment.month - 1 + months
    year, month = moment.year + index // 12, index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class ReportSchedule:
    schedule_type: ScheduleType
    starts_at: datetime
    ends_at: datetime | None = None
    max_occurrences: int | None = None
    cron_expression: str | None = None

    def __post_init__(self) -> None:
        if self.ends_at is not None and self.ends_at < self.starts_at:
            raise InvalidScheduleError.ends_before_start(self.starts_at.isoformat(), self.ends_at.isoformat())
        if self.max_occurrences is not None and self.max_occurrences < 1:
            raise InvalidScheduleError.invalid_max_occurrences(self.max_occurrences)
        if self.schedule_type is ScheduleType.CRON and not self.cron_expression:
            raise InvalidScheduleError.missing_cron_expression()

    # -- factories ---------------------------------------------------------

    @classmethod
    def once(cls, run_at: datetime) -> Self:
        return cls(ScheduleType.ONCE, run_at, max_occurrences=1)

    @classmethod
    def daily(cls, starts_at: datetime, ends_at: datetime | None = None, max_occurrences: int | None = None) -> Self:
        return cls(ScheduleType.DAILY, starts_at, ends_at, max_occurrences)

    @classmethod
    def weekly(cls, starts_at: datetime, ends_at: datetime | None = None, max_occurrences: int | None = None) -> Self:
        return cls(ScheduleType.WEEKLY, starts_at, ends_at, max_occurrences)

    @classmethod
    def monthly(cls, starts_at: datetime, ends_at: datetime | None = None, max_occurrences: int | None = None) -> Self:
        return cls(ScheduleType.MONTHLY, starts_at, ends_at, max_occurrences)

    @classmethod
    def yearly(cls, starts_at: datetime, ends_at: datetime | None = None, max_occurrences: int | None = None) -> Self:
        return cls(ScheduleType.YEARLY, starts_at, ends_at, max_occurrences)

    @classmethod
    def cron(
        cls,
        expression: str,
        starts_at: datetime,
        ends_at: datetime | None = None,
        max_occurrences: int | None = None,
    ) -> Self:
        return cls(ScheduleType.CRON, starts_at, ends_at, max_occurrences, expression)

    # -- evaluation --------------------------------------------------------

    @property
    def is_recurring(self) -> bool:
        return self.schedule_type is not ScheduleType.ONCE

    def next_run_after(
        self,
        moment: datetime,
        *,
        completed_runs: int = 0,
        cron: CronEvaluator | None = None,
    ) -> datetime | None:
        """
        The first run strictly after ``moment``, or None when exhausted.

        ``completed_runs`` counts cron and one-off runs already made;
        periodic schedules derive their occurrence count from ``starts_at``.
        """
        if self.schedule_type is ScheduleType.CRON:
            candidate = self._next_cron(moment, completed_runs, cron)
        elif self.schedule_type is ScheduleType.ONCE:
            candidate = self.starts_at if completed_runs == 0 and self.starts_at > moment else None
        else:
            candidate = self._next_periodic(moment)

        if candidate is None:
            return None
        if self.ends_at is not None and candidate > self.ends_at:
            return None
        return candidate

    def _next_cron(self, moment: datetime, completed_runs: int, cron: CronEvaluator | None) -> datetime | None:
        if cron is None:
            raise InvalidScheduleError.no_cron_evaluator()
        if self.max_occurrences is not None and completed_runs >= self.max_occurrences:
            return None
        after = moment if moment >= self.starts_at else self.starts_at - timedelta(microseconds=1)
        return cron.next_run(self.cron_expression, after)

    def _next_periodic(self, moment: datetime) -> datetime | None:
        if moment < self.starts_at:
            index, candidate = 0, self.starts_at
        elif self.schedule_type in _FIXED_STEPS:
            step = _FIXED_STEPS[self.schedule_type]
            index = (moment - self.starts_at) // step + 1
            candidate = self.starts_at + step * index
        else:
            months = _MONTH_STEPS[self.schedule_type]
            elapsed = (moment.year - self.starts_at.year) * 12 + moment.month - self.starts_at.month
            index = max(0, elapsed // months)
            candidate = add_months(self.starts_at, index * months)
            while candidate <= moment:
                index += 1
                candidate = add_months(self.starts_at, index * months)

        if self.max_occurrences is not None and index >= self.max_occurrences:
            return None
        return candidate


@dataclass(frozen=True)
class ScheduledReportJob:
    job_id: str
    report_id: str
    tenant_id: str
    schedule: ReportSchedule
    recipients: tuple[str, ...]
    channel: DistributionChannel
    next_run_at: datetime
    created_at: datetime
