"""Attendance exceptions."""

from datetime import datetime

from nexus_kernel.exceptions import NexusError


class AttendanceError(NexusError):
    """Base exception for the attendance package."""

    code: str = "ATTENDANCE_ERROR"


class AlreadyCheckedInError(AttendanceError):
    code: str = "ALREADY_CHECKED_IN"

    def __init__(self, employee_id: str, attendance_id: str):
        self.employee_id = employee_id
        self.attendance_id = attendance_id
        super().__init__(
            f"Employee {employee_id} is already checked in (attendance {attendance_id})",
            employee_id=employee_id,
            attendance_id=attendance_id,
        )


class AttendanceNotFoundError(AttendanceError):
    code: str = "ATTENDANCE_NOT_FOUND"

    def __init__(self, attendance_id: str):
        self.attendance_id = attendance_id
        super().__init__(f"Attendance record not found: {attendance_id}", attendance_id=attendance_id)


class InvalidCheckOutTimeError(AttendanceError, ValueError):
    """Check-out at or before check-in."""

    code: str = "INVALID_CHECK_OUT_TIME"

    def __init__(self, attendance_id: str, check_in_time: datetime, check_out_time: datetime):
        self.attendance_id = attendance_id
        self.check_in_time = check_in_time
        self.check_out_time = check_out_time
        super().__init__(
            f"Attendance {attendance_id}: check-out {check_out_time.isoformat()} "
            f"must be after check-in {check_in_time.isoformat()}",
            attendance_id=attendance_id,
        )


class AttendanceAlreadyClosedError(AttendanceError):
    code: str = "ATTENDANCE_ALREADY_CLOSED"

    def __init__(self, attendance_id: str, status: str):
        self.attendance_id = attendance_id
        self.status = status
        super().__init__(f"Attendance {attendance_id} is already closed ({status})", attendance_id=attendance_id)
