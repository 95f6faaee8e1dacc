"""
Attendance Manager (``nexus_modules.attendance.service``).

Responsibility
--------------
Records check-ins and check-outs, closes records employees forgot to
close, and derives lateness, weekly hours and schedule compliance.

Architecture position
---------------------
**Modules layer** -- orchestration over an ``AttendanceRepository`` and a
``WorkScheduleRepository``; all calculations live in ``helpers``.

Invariants enforced
-------------------
* An employee has at most one open record.
* Check-out is strictly after check-in.
* Auto-closing uses the schedule end on the check-in date, in the
  check-in's timezone.

Failure modes
-------------
* ``AlreadyCheckedInError`` -- check-in while a record is open.
* ``AttendanceNotFoundError`` -- unknown attendance id.
* ``InvalidCheckOutTimeError`` -- check-out not after check-in.
* ``AttendanceAlreadyClosedError`` -- check-out of a closed record.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from typing import Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.attendance.exceptions import AlreadyCheckedInError, AttendanceNotFoundError
from nexus_modules.attendance.helpers import daily_hours, late_minutes
from nexus_modules.attendance.models import (
    AttendanceCompliance,
    AttendanceRecord,
    AttendanceStatus,
    Coordinates,
    LateArrival,
    WeeklyHours,
    WorkSchedule,
)

logger = get_logger("modules.attendance.service")


class AttendanceRepository(Protocol):
    def save(self, record: AttendanceRecord) -> None: ...

    def get(self, attendance_id: str) -> AttendanceRecord | None: ...

    def find_open(self, employee_id: str) -> AttendanceRecord | None: ...

    def find_by_employee(self, employee_id: str, start: date, end: date) -> Sequence[AttendanceRecord]:
        """Records whose check-in date falls in ``start``..``end`` inclusive."""
        ...

    def find_open_on(self, on_date: date) -> Sequence[AttendanceRecord]: ...


class WorkScheduleRepository(Protocol):
    def resolve(self, employee_id: str, on: date) -> WorkSchedule | None:
        """The schedule in force for ``employee_id`` on ``on``, if any."""
        ...


class AttendanceManager:
    """
    Orchestrates attendance capture.

    Contract
    --------
    * ``check_in`` and ``check_out`` default to the clock's current time.
    * Every change is saved before it is returned.
    """

    def __init__(
        self,
        attendance_repo: AttendanceRepository,
        schedule_repo: WorkScheduleRepository,
        clock: Clock | None = None,
    ):
        self._attendance = attendance_repo
        self._schedules = schedule_repo
        self._clock = clock or SystemClock()

    # -- capture -------------------------------------------------------------

    def check_in(
        self,
        employee_id: str,
        tenant_id: str,
        check_in_time: datetime | None = None,
        coordinates: Coordinates | None = None,
        notes: str | None = None,
    ) -> AttendanceRecord:
        existing = self._attendance.find_open(employee_id)
        if existing is not None:
            raise AlreadyCheckedInError(employee_id, existing.attendance_id)

        record = AttendanceRecord.open(
            employee_id,
            tenant_id,
            check_in_time or self._clock.now(),
            coordinates=coordinates,
            notes=notes,
        )
        self._attendance.save(record)
        logger.info(
            "attendance_checked_in",
            extra={
                "attendance_id": record.attendance_id,
                "employee_id": employee_id,
                "tenant_id": tenant_id,
                "check_in_time": record.check_in_time.isoformat(),
            },
        )
        return record

    def check_out(
        self,
        attendance_id: str,
        check_out_time: datetime | None = None,
        coordinates: Coordinates | None = None,
    ) -> AttendanceRecord:
        record = self.get_attendance(attendance_id)
        closed = record.check_out(check_out_time or self._clock.now(), coordinates)
        self._attendance.save(closed)
        logger.info(
            "attendance_checked_out",
            extra={
                "attendance_id": attendance_id,
                "employee_id": closed.employee_id,
                "worked_minutes": closed.work_hours.minutes,
            },
        )
        return closed

    def get_attendance(self, attendance_id: str) -> AttendanceRecord:
        record = self._attendance.get(attendance_id)
        if record is None:
            raise AttendanceNotFoundError(attendance_id)
        return record

    def open_record(self, employee_id: str) -> AttendanceRecord | None:
        return self._attendance.find_open(employee_id)

    # -- maintenance ---------------------------------------------------------

    def auto_close_open_records(self, on_date: date) -> list[AttendanceRecord]:
        """
        Close every record still open from ``on_date`` at its schedule end.

        Records without a schedule, or checked in after the scheduled end,
        are left open and logged.
        """
        closed: list[AttendanceRecord] = []
        for record in self._attendance.find_open_on(on_date):
            schedule = self._schedules.resolve(record.employee_id, record.work_date)
            if schedule is None:
                logger.warning(
                    "attendance_auto_close_skipped",
                    extra={"attendance_id": record.attendance_id, "reason": "no_schedule"},
                )
                continue
            end = schedule.end_on(record.work_date, record.check_in_time)
            if end <= record.check_in_time:
                logger.warning(
                    "attendance_auto_close_skipped",
                    extra={"attendance_id": record.attendance_id, "reason": "checked_in_after_schedule_end"},
                )
                continue
            updated = record.check_out(end, status=AttendanceStatus.AUTO_CLOSED)
            self._attendance.save(updated)
            closed.append(updated)

        logger.info(
            "attendance_auto_closed",
            extra={"on_date": on_date.isoformat(), "closed_count": len(closed)},
        )
        return closed

    # -- analysis ------------------------------------------------------------

    def detect_late_arrivals(self, employee_id: str, start: date, end: date) -> list[LateArrival]:
        arrivals: list[LateArrival] = []
        for record in self._attendance.find_by_employee(employee_id, start, end):
            schedule = self._schedules.resolve(employee_id, record.work_date)
            if schedule is None or not schedule.is_work_day(record.work_date):
                continue
            minutes = late_minutes(record, schedule)
            if minutes > 0:
                arrivals.append(
                    LateArrival(
                        attendance_id=record.attendance_id,
                        work_date=record.work_date,
                        scheduled_start=schedule.start_time,
                        actual_check_in=record.check_in_time,
                        grace_minutes=schedule.grace_minutes,
                        late_minutes=minutes,
                    )
                )
        arrivals.sort(key=lambda arrival: arrival.actual_check_in)
        return arrivals

    def weekly_hours(self, employee_id: str, week_start: date) -> WeeklyHours:
        """Hours for the Monday-to-Sunday week containing ``week_start``."""
        monday = week_start - timedelta(days=week_start.weekday())
        records = self._attendance.find_by_employee(employee_id, monday, monday + timedelta(days=6))
        return WeeklyHours(employee_id=employee_id, week_start=monday, daily=daily_hours(records))

    def compliance_report(self, employee_id: str, start: date, end: date) -> AttendanceCompliance:
        if end < start:
            raise ValueError("end must not precede start")

        expected: list[date] = []
        day = start
        while day <= end:
            schedule = self._schedules.resolve(employee_id, day)
            if schedule is not None and schedule.is_work_day(day):
                expected.append(day)
            day += timedelta(days=1)

        attended = sorted({r.work_date for r in self._attendance.find_by_employee(employee_id, start, end)})
        return AttendanceCompliance(
            employee_id=employee_id,
            start=start,
            end=end,
            expected_days=tuple(expected),
            attended_days=tuple(attended),
        )
