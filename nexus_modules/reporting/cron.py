"""
Five-field cron evaluation (``nexus_modules.reporting.cron``).

``minute hour day-of-month month day-of-week`` with ``*``, lists, ranges
and steps. Day-of-week uses 0 (or 7) for Sunday. When both day fields are
restricted, a time matches if either matches, as in Vixie cron. A field
written with a leading ``*`` (``*/2`` included) counts as unrestricted.

Pure: no clock, no I/O. Times are evaluated in the tzinfo of ``after``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from nexus_modules.reporting.exceptions import InvalidScheduleError

SEARCH_LIMIT_DAYS = 366

_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day_of_month", 1, 31),
    ("month", 1, 12),
    ("day_of_week", 0, 7),
)


@dataclass(frozen=True)
class ParsedCron:
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]
    day_of_month_restricted: bool = False
    day_of_week_restricted: bool = False

    def matches_day(self, moment: datetime) -> bool:
        if moment.month not in self.months:
            return False
        dom = moment.day in self.days_of_month
        dow = moment.isoweekday() % 7 in self.days_of_week
        if self.day_of_month_restricted and self.day_of_week_restricted:
            return dom or dow
        return dom and dow

    def matches(self, moment: datetime) -> bool:
        return self.matches_day(moment) and moment.hour in self.hours and moment.minute in self.minutes


def _parse_field(text: str, name: str, low: int, high: int) -> frozenset[int]:
    values: set[int] = set()
    for part in text.split(","):
        step = 1
        if "/" in part:
            part, step_text = part.split("/", 1)
            step = int(step_text)
            if step < 1:
                raise ValueError(f"{name}: step must be positive")
        if part == "*":
            start, end = low, high
        elif "-" in part:
            start_text, end_text = part.split("-", 1)
            start, end = int(start_text), int(end_text)
        else:
            start = int(part)
            end = high if step > 1 else start
        if start > end:
            raise ValueError(f"{name}: range {start}-{end} is reversed")
        if start < low or end > high:
            raise ValueError(f"{name}: values must be within {low}-{high}")
        values.update(range(start, end + 1, step))
    return frozenset(values)


def parse_cron(expression: str) -> ParsedCron:
    """Parse ``expression``; raises ``InvalidScheduleError`` when malformed."""
    parts = expression.split()
    if len(parts) != len(_FIELDS):
        raise InvalidScheduleError.invalid_cron_expression(expression, f"expected 5 fields, got {len(parts)}")
    try:
        fields = [_parse_field(part, *bounds) for part, bounds in zip(parts, _FIELDS)]
    except ValueError as exc:
        raise InvalidScheduleError.invalid_cron_expression(expression, str(exc)) from exc

    minutes, hours, days_of_month, months, days_of_week = fields
    if 7 in days_of_week:
        days_of_week = (days_of_week - {7}) | {0}
    return ParsedCron(
        minutes=minutes,
        hours=hours,
        days_of_month=days_of_month,
        months=months,
        days_of_week=days_of_week,
        day_of_month_restricted=not parts[2].startswith("*"),
        day_of_week_restricted=not parts[4].startswith("*"),
    )


class CalendarCronEvaluator:
    """``CronEvaluator`` backed by ``parse_cron``."""

    def is_valid(self, expression: str) -> bool:
        try:
            parse_cron(expression)
        except InvalidScheduleError:
            return False
        return True

    def next_run(self, expression: str, after: datetime) -> datetime | None:
        """First matching minute strictly after ``after``, or None within a year."""
        parsed = parse_cron(expression)
        candidate = after.replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = after + timedelta(days=SEARCH_LIMIT_DAYS)
        while candidate <= limit:
            if not parsed.matches_day(candidate):
                candidate = candidate.replace(hour=0, minute=0) + timedelta(days=1)
                continue
            if candidate.hour not in parsed.hours:
                candidate = candidate.replace(minute=0) + timedelta(hours=1)
                continue
            if candidate.minute in parsed.minutes:
                return candidate
            candidate += timedelta(minutes=1)
        return None
