"""
Attendance Calculation Helpers (``nexus_modules.attendance.helpers``).

Pure functions over records and schedules: lateness against the grace
period, overtime beyond the scheduled day, and hours grouped by date.
No I/O, no clock.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import date

from nexus_modules.attendance.models import AttendanceRecord, WorkHours, WorkSchedule


def late_minutes(record: AttendanceRecord, schedule: WorkSchedule) -> int:
    """
    Minutes late beyond the grace period, rounded up; 0 when on time.

    Compared on the check-in's own wall clock, so a 09:00 start means
    09:00 wherever the record was taken.
    """
    scheduled = schedule.start_on(record.work_date, record.check_in_time)
    late_seconds = (record.check_in_time - scheduled).total_seconds() - schedule.grace_minutes * 60
    if late_seconds <= 0:
        return 0
    return math.ceil(late_seconds / 60)


def overtime_hours(record: AttendanceRecord, schedule: WorkSchedule) -> WorkHours:
    worked = record.work_hours
    if worked is None:
        return WorkHours.zero()
    return worked.minus(schedule.scheduled_hours)


def daily_hours(records: Iterable[AttendanceRecord]) -> dict[date, WorkHours]:
    """Worked time per check-in date; open records contribute nothing."""
    totals: dict[date, WorkHours] = {}
    for record in records:
        worked = record.work_hours
        if worked is None:
            continue
        totals[record.work_date] = totals.get(record.work_date, WorkHours.zero()) + worked
    return totals
