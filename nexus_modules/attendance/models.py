"""
Attendance Models.

Work schedules, worked-time quantities and the check-in/check-out record.
Records are frozen; every change returns a new instance.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Self

from nexus_kernel.ids import generate_id
from nexus_modules.attendance.exceptions import AttendanceAlreadyClosedError, InvalidCheckOutTimeError

WEEKDAYS = (1, 2, 3, 4, 5)
MINUTES_PER_HOUR = 60


class AttendanceStatus(str, Enum):
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    AUTO_CLOSED = "auto_closed"

    @property
    def is_open(self) -> bool:
        return self is AttendanceStatus.CHECKED_IN


@dataclass(frozen=True)
class WorkHours:
    """A span of worked time in whole minutes."""

    minutes: int

    def __post_init__(self) -> None:
        if self.minutes < 0:
            raise ValueError("Work minutes cannot be negative")

    @classmethod
    def between(cls, start: datetime, end: datetime) -> Self:
        """Whole minutes from ``start`` to ``end``; partial minutes are dropped."""
        return cls(max(0, int((end - start).total_seconds()) // 60))

    @classmethod
    def zero(cls) -> Self:
        return cls(0)

    @property
    def hours(self) -> Decimal:
        return (Decimal(self.minutes) / MINUTES_PER_HOUR).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def format(self) -> str:
        hours, minutes = divmod(self.minutes, MINUTES_PER_HOUR)
        return f"{hours}h {minutes}m"

    def __add__(self, other: WorkHours) -> WorkHours:
        if not isinstance(other, WorkHours):
            return NotImplemented
        return WorkHours(self.minutes + other.minutes)

    def minus(self, other: WorkHours) -> WorkHours:
        """Difference floored at zero."""
        return WorkHours(max(0, self.minutes - other.minutes))


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class WorkSchedule:
    """
    A same-day working pattern.

    ``days_of_week`` uses ISO numbering (1 = Monday, 7 = Sunday). Start and
    end are wall-clock times in the employee's local time; the end must
    fall after the start on the same day.
    """

    schedule_id: str
    tenant_id: str
    name: str
    start_time: time
    end_time: time
    effective_from: date
    days_of_week: tuple[int, ...] = WEEKDAYS
    grace_minutes: int = 0
    effective_to: date | None = None

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(f"Schedule {self.schedule_id}: end time must be after start time")
        if not self.days_of_week or any(not 1 <= day <= 7 for day in self.days_of_week):
            raise ValueError(f"Schedule {self.schedule_id}: days_of_week must be within 1-7")
        if self.grace_minutes < 0:
            raise ValueError(f"Schedule {self.schedule_id}: grace minutes cannot be negative")
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValueError(f"Schedule {self.schedule_id}: effective_to precedes effective_from")

    def is_effective_on(self, on: date) -> bool:
        if on < self.effective_from:
            return False
        return self.effective_to is None or on <= self.effective_to

    def applies_to_day(self, iso_weekday: int) -> bool:
        return iso_weekday in self.days_of_week

    def is_work_day(self, on: date) -> bool:
        return self.is_effective_on(on) and self.applies_to_day(on.isoweekday())

    @property
    def scheduled_hours(self) -> WorkHours:
        start = datetime.combine(date.min, self.start_time)
        end = datetime.combine(date.min, self.end_time)
        return WorkHours.between(start, end)

    def start_on(self, on: date, like: datetime) -> datetime:
        """Scheduled start on ``on`` in the timezone of ``like``."""
        return datetime.combine(on, self.start_time, tzinfo=like.tzinfo)

    def end_on(self, on: date, like: datetime) -> datetime:
        return datetime.combine(on, self.end_time, tzinfo=like.tzinfo)


@dataclass(frozen=True)
class AttendanceRecord:
    attendance_id: str
    employee_id: str
    tenant_id: str
    check_in_time: datetime
    check_out_time: datetime | None = None
    status: AttendanceStatus = AttendanceStatus.CHECKED_IN
    check_in_coordinates: Coordinates | None = None
    check_out_coordinates: Coordinates | None = None
    notes: str | None = None

    @classmethod
    def open(
        cls,
        employee_id: str,
        tenant_id: str,
        check_in_time: datetime,
        coordinates: Coordinates | None = None,
        notes: str | None = None,
    ) -> Self:
        return cls(
            attendance_id=generate_id("ATT"),
            employee_id=employee_id,
            tenant_id=tenant_id,
            check_in_time=check_in_time,
            check_in_coordinates=coordinates,
            notes=notes,
        )

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @property
    def work_date(self) -> date:
        return self.check_in_time.date()

    @property
    def work_hours(self) -> WorkHours | None:
        if self.check_out_time is None:
            return None
        return WorkHours.between(self.check_in_time, self.check_out_time)

    def duration_until(self, moment: datetime) -> timedelta:
        end = self.check_out_time or moment
        return end - self.check_in_time

    def check_out(
        self,
        check_out_time: datetime,
        coordinates: Coordinates | None = None,
        *,
        status: AttendanceStatus = AttendanceStatus.CHECKED_OUT,
    ) -> Self:
        if not self.is_open:
            raise AttendanceAlreadyClosedError(self.attendance_id, self.status.value)
        if check_out_time <= self.check_in_time:
            raise InvalidCheckOutTimeError(self.attendance_id, self.check_in_time, check_out_time)
        return replace(
            self,
            check_out_time=check_out_time,
            check_out_coordinates=coordinates,
            status=status,
        )

    def with_notes(self, notes: str | None) -> Self:
        return replace(self, notes=notes)


@dataclass(frozen=True)
class LateArrival:
    attendance_id: str
    work_date: date
    scheduled_start: time
    actual_check_in: datetime
    grace_minutes: int
    late_minutes: int


@dataclass(frozen=True)
class WeeklyHours:
    employee_id: str
    week_start: date
    daily: dict[date, WorkHours]

    @property
    def week_end(self) -> date:
        return self.week_start + timedelta(days=6)

    @property
    def total(self) -> WorkHours:
        return sum(self.daily.values(), WorkHours.zero())

    @property
    def working_days(self) -> int:
        return sum(1 for hours in self.daily.values() if hours.minutes > 0)

    @property
    def average_daily_hours(self) -> Decimal:
        if not self.working_days:
            return Decimal("0.00")
        return (self.total.hours / self.working_days).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class AttendanceCompliance:
    employee_id: str
    start: date
    end: date
    expected_days: tuple[date, ...]
    attended_days: tuple[date, ...]

    @property
    def missing_days(self) -> tuple[date, ...]:
        attended = set(self.attended_days)
        return tuple(day for day in self.expected_days if day not in attended)

    @property
    def attendance_rate(self) -> Decimal:
        """Percentage of expected days attended, to two places."""
        if not self.expected_days:
            return Decimal("0.00")
        attended = len(set(self.expected_days) & set(self.attended_days))
        rate = Decimal(attended) * 100 / len(self.expected_days)
        return rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
