"""
Disbursement Manager (``nexus_modules.payment.service``).

Responsibility
--------------
Creates outgoing disbursements under the tenant's limits and moves them
through approval, scheduling and execution, persisting every version.

Architecture position
---------------------
**Modules layer** -- thin orchestration. Storage goes through a
``DisbursementRepository``; period usage for limit checks comes from an
optional ``DisbursementUsageProvider``.

Invariants enforced
-------------------
* Status changes follow ``DISBURSEMENT_WORKFLOW``.
* An amount above the per-transaction limit is rejected, or forced
  through approval when the limits say so.
* A scheduled disbursement is not processed before its date.

Failure modes
-------------
* ``DisbursementLimitExceededError`` -- amount or count limit breached.
* ``DisbursementNotFoundError`` -- unknown id.
* ``InvalidDisbursementTransitionError`` -- illegal status change.
* ``PaymentValidationError`` -- bad amount or schedule.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment.config import DisbursementConfig
from nexus_modules.payment.exceptions import DisbursementNotFoundError, PaymentValidationError
from nexus_modules.payment.limits import DisbursementLimits, LimitPeriod
from nexus_modules.payment.models import (
    Disbursement,
    DisbursementStatus,
    PaymentMethodType,
    Recipient,
)

logger = get_logger("modules.payment.service")

_CHECKED_PERIODS = (LimitPeriod.DAILY, LimitPeriod.WEEKLY, LimitPeriod.MONTHLY)


class DisbursementRepository(Protocol):
    """Persistence for disbursements; implemented by the host application."""

    def save(self, disbursement: Disbursement) -> None: ...

    def get(self, disbursement_id: str) -> Disbursement | None: ...

    def find_by_status(self, status: DisbursementStatus) -> Sequence[Disbursement]: ...


class DisbursementUsageProvider(Protocol):
    """Amounts and counts already disbursed in the period containing ``as_of``."""

    def amount_used(self, tenant_id: str, period: LimitPeriod, as_of: datetime) -> Money: ...

    def count_used(self, tenant_id: str, period: LimitPeriod, as_of: datetime) -> int: ...


class DisbursementManager:
    """
    Orchestrates the disbursement lifecycle.

    Contract
    --------
    * Every mutating method loads the disbursement, applies a copy-on-write
      change, saves it and returns the new instance.
    * Limits come from ``limits`` when given, else from ``config``.
    """

    def __init__(
        self,
        repository: DisbursementRepository,
        clock: Clock | None = None,
        config: DisbursementConfig | None = None,
        limits: DisbursementLimits | None = None,
        usage_provider: DisbursementUsageProvider | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._config = config or DisbursementConfig.with_defaults()
        self._limits = limits or self._config.to_limits()
        self._usage = usage_provider

    @property
    def limits(self) -> DisbursementLimits:
        return self._limits

    # -- creation ----------------------------------------------------------

    def create_disbursement(
        self,
        tenant_id: str,
        amount: Money,
        recipient: Recipient,
        method: PaymentMethodType,
        created_by: str,
        *,
        description: str | None = None,
        source_document_ids: Sequence[str] = (),
        scheduled_for: datetime | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Disbursement:
        if not amount.is_positive:
            raise PaymentValidationError.non_positive_amount(amount)

        now = self._clock.now()
        requires_approval = self._config.requires_approval_by_default
        if self._limits.requires_approval(amount):
            requires_approval = True
            logger.info(
                "disbursement_limit_requires_approval",
                extra={
                    "tenant_id": tenant_id,
                    "amount": str(amount.amount),
                    "limit": str(self._limits.per_transaction.amount),
                },
            )
        else:
            self._limits.validate_amount(amount)
        self._check_period_limits(tenant_id, amount, now)

        disbursement = Disbursement.create(
            tenant_id,
            amount,
            recipient,
            method,
            created_by,
            now,
            requires_approval=requires_approval,
            description=description,
            source_document_ids=tuple(source_document_ids),
            scheduled_for=scheduled_for,
            metadata=metadata,
        )
        self._repository.save(disbursement)
        logger.info(
            "disbursement_created",
            extra={
                "disbursement_id": disbursement.disbursement_id,
                "reference_number": disbursement.reference_number,
                "tenant_id": tenant_id,
                "amount": amount.format(),
                "recipient": recipient.name,
                "status": disbursement.status.value,
            },
        )
        return disbursement

    def _check_period_limits(self, tenant_id: str, amount: Money, now: datetime) -> None:
        if self._usage is None:
            return
        for period in _CHECKED_PERIODS:
            if self._limits.limit_for(period) is not None:
                used = self._usage.amount_used(tenant_id, period, now)
                self._limits.validate_period_amount(amount, used, period)
            if self._limits.count_limit_for(period) is not None:
                count = self._usage.count_used(tenant_id, period, now)
                self._limits.validate_period_count(count, period)

    # -- workflow ----------------------------------------------------------

    def submit_for_approval(self, disbursement_id: str) -> Disbursement:
        updated = self.find_by_id(disbursement_id).submit_for_approval()
        return self._save(updated, "disbursement_submitted_for_approval")

    def approve(self, disbursement_id: str, approved_by: str, notes: str | None = None) -> Disbursement:
        updated = self.find_by_id(disbursement_id).approve(approved_by, self._clock.now(), notes)
        return self._save(updated, "disbursement_approved", approved_by=approved_by)

    def reject(self, disbursement_id: str, rejected_by: str, reason: str) -> Disbursement:
        updated = self.find_by_id(disbursement_id).reject(rejected_by, reason, self._clock.now())
        return self._save(updated, "disbursement_rejected", rejected_by=rejected_by, reason=reason)

    def cancel(self, disbursement_id: str, reason: str | None = None) -> Disbursement:
        updated = self.find_by_id(disbursement_id).cancel(reason)
        return self._save(updated, "disbursement_cancelled", reason=reason)

    def schedule(self, disbursement_id: str, when: datetime) -> Disbursement:
        disbursement = self.find_by_id(disbursement_id)
        if when <= self._clock.now():
            raise PaymentValidationError.scheduled_in_past(disbursement_id)
        updated = disbursement.schedule(when)
        return self._save(updated, "disbursement_scheduled", scheduled_for=when.isoformat())

    def mark_processing(self, disbursement_id: str) -> Disbursement:
        disbursement = self.find_by_id(disbursement_id)
        now = self._clock.now()
        if disbursement.status is DisbursementStatus.APPROVED and not disbursement.is_ready_for_processing(now):
            raise PaymentValidationError.not_yet_due(
                disbursement_id, disbursement.scheduled_for.date().isoformat()
            )
        return self._save(disbursement.mark_processing(now), "disbursement_processing")

    def mark_completed(self, disbursement_id: str, payment_transaction_id: str) -> Disbursement:
        updated = self.find_by_id(disbursement_id).mark_completed(
            payment_transaction_id, self._clock.now()
        )
        return self._save(
            updated, "disbursement_completed", payment_transaction_id=payment_transaction_id
        )

    def mark_failed(self, disbursement_id: str, failure_code: str, failure_message: str) -> Disbursement:
        updated = self.find_by_id(disbursement_id).mark_failed(failure_code, failure_message)
        logger.error(
            "disbursement_failed",
            extra={
                "disbursement_id": disbursement_id,
                "failure_code": failure_code,
                "failure_message": failure_message,
            },
        )
        self._repository.save(updated)
        return updated

    def link_source_documents(self, disbursement_id: str, document_ids: Sequence[str]) -> Disbursement:
        updated = self.find_by_id(disbursement_id).link_source_documents(tuple(document_ids))
        return self._save(updated, "disbursement_documents_linked", document_ids=list(document_ids))

    # -- queries -----------------------------------------------------------

    def find_by_id(self, disbursement_id: str) -> Disbursement:
        disbursement = self._repository.get(disbursement_id)
        if disbursement is None:
            raise DisbursementNotFoundError(disbursement_id)
        return disbursement

    def pending_approvals(self, tenant_id: str | None = None) -> list[Disbursement]:
        return [
            d for d in self._repository.find_by_status(DisbursementStatus.PENDING_APPROVAL)
            if tenant_id is None or d.tenant_id == tenant_id
        ]

    def due_for_processing(self, tenant_id: str | None = None) -> list[Disbursement]:
        """Approved disbursements whose schedule, if any, has been reached."""
        now = self._clock.now()
        return [
            d for d in self._repository.find_by_status(DisbursementStatus.APPROVED)
            if d.is_ready_for_processing(now) and (tenant_id is None or d.tenant_id == tenant_id)
        ]

    def _save(self, disbursement: Disbursement, event: str, **context: Any) -> Disbursement:
        self._repository.save(disbursement)
        logger.info(
            event,
            extra={
                "disbursement_id": disbursement.disbursement_id,
                "status": disbursement.status.value,
                **context,
            },
        )
        return disbursement
