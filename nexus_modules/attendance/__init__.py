"""
Attendance Module (``nexus_modules.attendance``).

Check-in/check-out capture against work schedules, with lateness,
overtime and weekly-hours calculations.
"""

from nexus_modules.attendance.exceptions import (
    AlreadyCheckedInError,
    AttendanceAlreadyClosedError,
    AttendanceError,
    AttendanceNotFoundError,
    InvalidCheckOutTimeError,
)
from nexus_modules.attendance.helpers import daily_hours, late_minutes, overtime_hours
from nexus_modules.attendance.models import (
    AttendanceCompliance,
    AttendanceRecord,
    AttendanceStatus,
    Coordinates,
    LateArrival,
    WeeklyHours,
    WorkHours,
    WorkSchedule,
)
from nexus_modules.attendance.service import (
    AttendanceManager,
    AttendanceRepository,
    WorkScheduleRepository,
)

__all__ = [
    "AlreadyCheckedInError",
    "AttendanceAlreadyClosedError",
    "AttendanceCompliance",
    "AttendanceError",
    "AttendanceManager",
    "AttendanceNotFoundError",
    "AttendanceRecord",
    "AttendanceRepository",
    "AttendanceStatus",
    "Coordinates",
    "InvalidCheckOutTimeError",
    "LateArrival",
    "WeeklyHours",
    "WorkHours",
    "WorkSchedule",
    "WorkScheduleRepository",
    "daily_hours",
    "late_minutes",
    "overtime_hours",
]
