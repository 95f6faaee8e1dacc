"""
Disbursement Scheduling (``nexus_modules.payment.scheduling``).

Responsibility
--------------
Immediate, one-off and recurring schedules for disbursements, and the
``DisbursementScheduler`` that stores them and walks recurring ones
forward one occurrence at a time.

Architecture position
---------------------
**Modules layer** -- schedules live in a host-supplied
``DisbursementScheduleStorage`` keyed by disbursement id; disbursements
come from the same ``DisbursementRepository`` the manager uses.

Invariants enforced
-------------------
* Occurrence ``n`` is always computed from the start date, so monthly
  schedules starting on the 31st do not drift after short months.
* A recurring schedule stops at ``max_occurrences`` or at the last
  occurrence on or before ``recurrence_end_date``, whichever comes first.
* New schedules never start in the past.

Failure modes
-------------
* ``InvalidDisbursementScheduleError`` -- malformed schedule, or a
  recurring step asked of a one-off or exhausted schedule.
* ``PaymentValidationError`` -- start date in the past.
* ``DisbursementNotFoundError`` -- unknown disbursement or no schedule.
"""

from __future__ import annotations

import calendar
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol, Self

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.payment.exceptions import (
    DisbursementNotFoundError,
    InvalidDisbursementScheduleError,
    PaymentValidationError,
)
from nexus_modules.payment.models import Disbursement, DisbursementStatus
from nexus_modules.payment.service import DisbursementRepository

logger = get_logger("modules.payment.scheduling")

DEFAULT_DUE_LIMIT = 100
DEFAULT_UPCOMING_LIMIT = 50

_PROCESSABLE = frozenset(
    {DisbursementStatus.DRAFT, DisbursementStatus.PENDING_APPROVAL, DisbursementStatus.APPROVED}
)


class ScheduleType(str, Enum):
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    RECURRING = "recurring"

    @property
    def supports_recurrence(self) -> bool:
        return self is ScheduleType.RECURRING


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


_DAY_STEPS = {
    RecurrenceFrequency.DAILY: 1,
    RecurrenceFrequency.WEEKLY: 7,
    RecurrenceFrequency.BIWEEKLY: 14,
}
_MONTH_STEPS = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.QUARTERLY: 3,
    RecurrenceFrequency.ANNUALLY: 12,
}


def _shift_months(moment: datetime, months: int) -> datetime:
    index = moment.month - 1 + months
    year, month = moment.year + index // 12, index % 12 + 1
    return moment.replace(year=year, month=month, day=min(moment.day, calendar.monthrange(year, month)[1]))


@dataclass(frozen=True)
class DisbursementSchedule:
    """
    When a disbursement should run.

    ``current_occurrence`` is 1-based: a fresh recurring schedule is due
    on ``scheduled_date`` and each ``increment_occurrence`` moves it one
    step along.
    """

    schedule_type: ScheduleType
    scheduled_date: datetime | None = None
    recurrence_frequency: RecurrenceFrequency | None = None
    recurrence_end_date: datetime | None = None
    max_occurrences: int | None = None
    current_occurrence: int = 1

    def __post_init__(self) -> None:
        if self.schedule_type is not ScheduleType.IMMEDIATE and self.scheduled_date is None:
            raise InvalidDisbursementScheduleError.scheduled_date_required()
        if self.schedule_type.supports_recurrence and self.recurrence_frequency is None:
            raise InvalidDisbursementScheduleError.frequency_required()
        if (
            self.recurrence_end_date is not None
            and self.scheduled_date is not None
            and self.recurrence_end_date <= self.scheduled_date
        ):
            raise InvalidDisbursementScheduleError.end_before_start(
                self.scheduled_date.isoformat(), self.recurrence_end_date.isoformat()
            )
        if self.max_occurrences is not None and self.max_occurrences < 1:
            raise InvalidDisbursementScheduleError.invalid_max_occurrences(self.max_occurrences)

    @classmethod
    def immediate(cls) -> Self:
        return cls(ScheduleType.IMMEDIATE)

    @classmethod
    def scheduled(cls, when: datetime) -> Self:
        return cls(ScheduleType.SCHEDULED, when)

    @classmethod
    def recurring(
        cls,
        start: datetime,
        frequency: RecurrenceFrequency,
        end: datetime | None = None,
        max_occurrences: int | None = None,
    ) -> Self:
        return cls(ScheduleType.RECURRING, start, frequency, end, max_occurrences)

    def occurrence_date(self, occurrence: int) -> datetime | None:
        """Date of the 1-based ``occurrence``; None for an immediate schedule."""
        if self.scheduled_date is None:
            return None
        steps = occurrence - 1
        if steps == 0 or self.recurrence_frequency is None:
            return self.scheduled_date
        if self.recurrence_frequency in _DAY_STEPS:
            return self.scheduled_date + timedelta(days=_DAY_STEPS[self.recurrence_frequency] * steps)
        return _shift_months(self.scheduled_date, _MONTH_STEPS[self.recurrence_frequency] * steps)

    @property
    def next_due_date(self) -> datetime | None:
        return self.occurrence_date(self.current_occurrence)

    @property
    def has_more_occurrences(self) -> bool:
        if not self.schedule_type.supports_recurrence:
            return False
        if self.max_occurrences is not None and self.current_occurrence >= self.max_occurrences:
            return False
        following = self.occurrence_date(self.current_occurrence + 1)
        return self.recurrence_end_date is None or following <= self.recurrence_end_date

    def calculate_next_occurrence(self) -> datetime | None:
        if not self.has_more_occurrences:
            return None
        return self.occurrence_date(self.current_occurrence + 1)

    def increment_occurrence(self) -> Self:
        return replace(self, current_occurrence=self.current_occurrence + 1)

    def is_ready_for_processing(self, as_of: datetime) -> bool:
        due = self.next_due_date
        return due is None or due <= as_of


class DisbursementScheduleStorage(Protocol):
    """Schedules keyed by disbursement id; implemented by the host application."""

    def save_schedule(self, disbursement_id: str, schedule: DisbursementSchedule) -> None: ...

    def get_schedule(self, disbursement_id: str) -> DisbursementSchedule | None: ...

    def remove_schedule(self, disbursement_id: str) -> None: ...

    def all_schedules(self) -> Mapping[str, DisbursementSchedule]: ...


class DisbursementScheduler:
    """
    Schedules disbursements for a date or on a recurrence.

    Usage::

        scheduler = DisbursementScheduler(repository, storage, clock=clock)
        scheduler.schedule_recurring(dsb.disbursement_id, first_run, RecurrenceFrequency.MONTHLY,
                                     max_occurrences=12)
        for dsb_id, dsb in scheduler.due_for_processing("tenant-1").items():
            ...
            scheduler.process_next_occurrence(dsb_id)
    """

    def __init__(
        self,
        repository: DisbursementRepository,
        storage: DisbursementScheduleStorage,
        clock: Clock | None = None,
    ):
        self._repository = repository
        self._storage = storage
        self._clock = clock or SystemClock()

    def schedule_for_date(self, disbursement_id: str, when: datetime) -> Disbursement:
        return self._apply(disbursement_id, DisbursementSchedule.scheduled(when), "disbursement_schedule_saved")

    def schedule_recurring(
        self,
        disbursement_id: str,
        start: datetime,
        frequency: RecurrenceFrequency,
        *,
        end: datetime | None = None,
        max_occurrences: int | None = None,
    ) -> Disbursement:
        schedule = DisbursementSchedule.recurring(start, frequency, end, max_occurrences)
        return self._apply(disbursement_id, schedule, "disbursement_recurring_schedule_saved")

    def _apply(self, disbursement_id: str, schedule: DisbursementSchedule, event: str) -> Disbursement:
        disbursement = self._get_disbursement(disbursement_id)
        if schedule.scheduled_date is not None and schedule.scheduled_date < self._clock.now():
            raise PaymentValidationError.scheduled_in_past(disbursement_id)

        self._storage.save_schedule(disbursement_id, schedule)
        updated = disbursement.schedule(schedule.scheduled_date)
        self._repository.save(updated)
        logger.info(
            event,
            extra={
                "disbursement_id": disbursement_id,
                "schedule_type": schedule.schedule_type.value,
                "scheduled_date": schedule.scheduled_date.isoformat(),
                "frequency": schedule.recurrence_frequency.value if schedule.recurrence_frequency else None,
            },
        )
        return updated

    def cancel_schedule(self, disbursement_id: str, cancelled_by: str, reason: str | None = None) -> Disbursement:
        """Drop the stored schedule; the disbursement itself is left as is."""
        if self._storage.get_schedule(disbursement_id) is not None:
            self._storage.remove_schedule(disbursement_id)
            logger.info(
                "disbursement_schedule_cancelled",
                extra={"disbursement_id": disbursement_id, "cancelled_by": cancelled_by, "reason": reason},
            )
        return self._get_disbursement(disbursement_id)

    def get_schedule(self, disbursement_id: str) -> DisbursementSchedule | None:
        return self._storage.get_schedule(disbursement_id)

    def due_for_processing(
        self, tenant_id: str, as_of: datetime | None = None, limit: int = DEFAULT_DUE_LIMIT
    ) -> dict[str, Disbursement]:
        """Scheduled disbursements due by ``as_of`` that have not been finalized."""
        as_of = as_of or self._clock.now()
        due: dict[str, Disbursement] = {}
        for disbursement_id, schedule in self._ordered_schedules():
            if len(due) >= limit:
                break
            if not schedule.is_ready_for_processing(as_of):
                continue
            disbursement = self._repository.get(disbursement_id)
            if disbursement is None or disbursement.tenant_id != tenant_id:
                continue
            if disbursement.status in _PROCESSABLE:
                due[disbursement_id] = disbursement
        return due

    def upcoming(self, tenant_id: str, days: int = 7, limit: int = DEFAULT_UPCOMING_LIMIT) -> dict[str, Disbursement]:
        """Disbursements whose next due date falls within the coming ``days``."""
        start = self._clock.now()
        end = start + timedelta(days=days)
        found: dict[str, Disbursement] = {}
        for disbursement_id, schedule in self._ordered_schedules():
            if len(found) >= limit:
                break
            due = schedule.next_due_date
            if due is None or not start <= due <= end:
                continue
            disbursement = self._repository.get(disbursement_id)
            if disbursement is not None and disbursement.tenant_id == tenant_id:
                found[disbursement_id] = disbursement
        return found

    def process_next_occurrence(self, disbursement_id: str) -> Disbursement:
        """Advance a recurring schedule by one occurrence."""
        schedule = self._storage.get_schedule(disbursement_id)
        if schedule is None:
            raise DisbursementNotFoundError(disbursement_id)
        if not schedule.schedule_type.supports_recurrence:
            raise InvalidDisbursementScheduleError.not_recurring(disbursement_id)
        if not schedule.has_more_occurrences:
            raise InvalidDisbursementScheduleError.no_more_occurrences(disbursement_id)

        disbursement = self._get_disbursement(disbursement_id)
        next_date = schedule.calculate_next_occurrence()
        advanced = schedule.increment_occurrence()
        self._storage.save_schedule(disbursement_id, advanced)
        logger.info(
            "disbursement_next_occurrence_scheduled",
            extra={
                "disbursement_id": disbursement_id,
                "occurrence": advanced.current_occurrence,
                "next_date": next_date.isoformat(),
            },
        )
        return disbursement

    def has_more_occurrences(self, disbursement_id: str) -> bool:
        schedule = self._storage.get_schedule(disbursement_id)
        return schedule is not None and schedule.has_more_occurrences

    def _ordered_schedules(self) -> list[tuple[str, DisbursementSchedule]]:
        # immediate schedules have no date and sort first
        return sorted(
            self._storage.all_schedules().items(),
            key=lambda item: (
                item[1].next_due_date is not None,
                item[1].next_due_date or datetime.min,
                item[0],
            ),
        )

    def _get_disbursement(self, disbursement_id: str) -> Disbursement:
        disbursement = self._repository.get(disbursement_id)
        if disbursement is None:
            raise DisbursementNotFoundError(disbursement_id)
        return disbursement
