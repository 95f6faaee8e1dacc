"""
Settlement Batches (``nexus_modules.payment.settlement``).

A processor settlement batch collects captured payments, is closed with
an expected net settlement, and is later reconciled against what the
processor actually paid out.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Self

from nexus_kernel.exceptions import CurrencyMismatchError
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import InvalidSettlementBatchStatusError
from nexus_modules.payment.workflows import SETTLEMENT_BATCH_WORKFLOW

logger = get_logger("modules.payment.settlement")


class SettlementBatchStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    RECONCILED = "reconciled"
    DISPUTED = "disputed"

    @property
    def is_open(self) -> bool:
        return self is SettlementBatchStatus.OPEN

    def can_transition_to(self, target: SettlementBatchStatus) -> bool:
        return SETTLEMENT_BATCH_WORKFLOW.can_transition(self, target)


@dataclass(frozen=True)
class SettlementBatch:
    """
    Payments settled together by one processor, in one currency.

    Guarantees: ``net == gross - fees`` and every amount is in ``currency``.
    """

    batch_id: str
    tenant_id: str
    processor_id: str
    currency: str
    opened_at: datetime
    status: SettlementBatchStatus = SettlementBatchStatus.OPEN
    payment_ids: tuple[str, ...] = ()
    gross: Money | None = None
    fees: Money | None = None
    closed_at: datetime | None = None
    settlement_date: date | None = None
    expected_settlement: Money | None = None
    actual_settlement: Money | None = None
    processor_batch_reference: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        zero = Money.zero(self.currency)
        if self.gross is None:
            object.__setattr__(self, "gross", zero)
        if self.fees is None:
            object.__setattr__(self, "fees", zero)

    @classmethod
    def open(
        cls,
        batch_id: str,
        tenant_id: str,
        processor_id: str,
        currency: str,
        opened_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> Self:
        return cls(
            batch_id=batch_id,
            tenant_id=tenant_id,
            processor_id=processor_id,
            currency=currency,
            opened_at=opened_at,
            metadata=dict(metadata or {}),
        )

    # -- totals ------------------------------------------------------------

    @property
    def net(self) -> Money:
        return self.gross - self.fees

    @property
    def payment_count(self) -> int:
        return len(self.payment_ids)

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @property
    def discrepancy(self) -> Money | None:
        """Actual minus expected settlement, once both are known."""
        if self.expected_settlement is None or self.actual_settlement is None:
            return None
        return self.actual_settlement - self.expected_settlement

    @property
    def has_discrepancy(self) -> bool:
        discrepancy = self.discrepancy
        return discrepancy is not None and not discrepancy.is_zero

    # -- membership --------------------------------------------------------

    def add_payment(self, payment_id: str, amount: Money, fee: Money) -> Self:
        self._assert_open()
        self._assert_currency(amount, fee)
        if payment_id in self.payment_ids:
            return self
        return replace(
            self,
            payment_ids=(*self.payment_ids, payment_id),
            gross=self.gross + amount,
            fees=self.fees + fee,
        )

    def remove_payment(self, payment_id: str, amount: Money, fee: Money) -> Self:
        self._assert_open()
        self._assert_currency(amount, fee)
        if payment_id not in self.payment_ids:
            return self
        return replace(
            self,
            payment_ids=tuple(p for p in self.payment_ids if p != payment_id),
            gross=self.gross - amount,
            fees=self.fees - fee,
        )

    # -- lifecycle ---------------------------------------------------------

    def close(self, at: datetime) -> Self:
        closed = self._transition(SettlementBatchStatus.CLOSED, closed_at=at, expected_settlement=self.net)
        logger.info(
            "settlement_batch_closed",
            extra={
                "batch_id": self.batch_id,
                "payment_count": self.payment_count,
                "net": str(self.net.amount),
                "currency": self.currency,
            },
        )
        return closed

    def with_expected_settlement(self, amount: Money) -> Self:
        self._assert_currency(amount)
        return replace(self, expected_settlement=amount)

    def with_settlement_date(self, on: date) -> Self:
        return replace(self, settlement_date=on)

    def reconcile(self, actual: Money, reference: str | None = None) -> Self:
        self._assert_currency(actual)
        reconciled = self._transition(
            SettlementBatchStatus.RECONCILED,
            actual_settlement=actual,
            processor_batch_reference=reference or self.processor_batch_reference,
        )
        if reconciled.has_discrepancy:
            logger.warning(
                "settlement_discrepancy_detected",
                extra={
                    "batch_id": self.batch_id,
                    "expected": str(reconciled.expected_settlement.amount),
                    "actual": str(actual.amount),
                    "discrepancy": str(reconciled.discrepancy.amount),
                },
            )
        return reconciled

    def mark_disputed(self, reason: str, at: datetime) -> Self:
        metadata = {**self.metadata, "dispute_reason": reason, "disputed_at": at.isoformat()}
        return self._transition(SettlementBatchStatus.DISPUTED, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "tenant_id": self.tenant_id,
            "processor_id": self.processor_id,
            "currency": self.currency,
            "status": self.status.value,
            "payment_ids": list(self.payment_ids),
            "gross": str(self.gross.amount),
            "fees": str(self.fees.amount),
            "net": str(self.net.amount),
            "expected_settlement": str(self.expected_settlement.amount) if self.expected_settlement else None,
            "actual_settlement": str(self.actual_settlement.amount) if self.actual_settlement else None,
            "processor_batch_reference": self.processor_batch_reference,
        }

    # -- internals ---------------------------------------------------------

    def _transition(self, status: SettlementBatchStatus, **changes: Any) -> Self:
        if not self.status.can_transition_to(status):
            raise InvalidSettlementBatchStatusError(self.batch_id, self.status.value, status.value)
        return replace(self, status=status, **changes)

    def _assert_open(self) -> None:
        if not self.is_open:
            raise InvalidSettlementBatchStatusError(
                self.batch_id,
                self.status.value,
                SettlementBatchStatus.OPEN.value,
                reason=f"Cannot modify settlement batch {self.batch_id} once it is {self.status.value}",
            )

    def _assert_currency(self, *amounts: Money) -> None:
        for amount in amounts:
            if amount.currency.code != self.currency:
                raise CurrencyMismatchError(self.currency, amount.currency.code, "settle")
