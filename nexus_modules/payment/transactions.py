"""
Payment Transactions.

A single inbound or outbound payment moving through execution, plus the
``PaymentResult`` an executor reports back.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Self

from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import InvalidPaymentTransitionError
from nexus_modules.payment.models import PaymentMethodType, PaymentReference
from nexus_modules.payment.workflows import PAYMENT_TRANSACTION_WORKFLOW

logger = get_logger("modules.payment.transactions")


class PaymentDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REVERSED = "reversed"

    @property
    def is_terminal(self) -> bool:
        return PAYMENT_TRANSACTION_WORKFLOW.is_terminal(self)

    def can_transition_to(self, target: PaymentStatus) -> bool:
        return PAYMENT_TRANSACTION_WORKFLOW.can_transition(self, target)


@dataclass(frozen=True)
class PaymentResult:
    """What an executor reports for one execution or refund attempt."""

    success: bool
    provider_transaction_id: str | None = None
    settled_amount: Money | None = None
    failure_code: str | None = None
    failure_message: str | None = None

    @classmethod
    def succeeded(cls, provider_transaction_id: str | None = None, settled_amount: Money | None = None) -> Self:
        return cls(True, provider_transaction_id=provider_transaction_id, settled_amount=settled_amount)

    @classmethod
    def failed(cls, failure_code: str, failure_message: str) -> Self:
        return cls(False, failure_code=failure_code, failure_message=failure_message)


@dataclass(frozen=True)
class PaymentTransaction:
    """
    One payment and its execution history.

    Copy-on-write like ``Disbursement``: each lifecycle method returns a
    new instance and illegal moves raise ``InvalidPaymentTransitionError``.
    ``attempt_count`` goes up every time the payment enters PROCESSING.
    """

    payment_id: str
    tenant_id: str
    reference: PaymentReference
    direction: PaymentDirection
    amount: Money
    method: PaymentMethodType
    created_at: datetime
    payer_id: str | None = None
    payee_id: str | None = None
    payment_method_id: str | None = None
    idempotency_key: str | None = None
    status: PaymentStatus = PaymentStatus.PENDING
    attempt_count: int = 0
    executor_name: str | None = None
    provider_transaction_id: str | None = None
    settled_amount: Money | None = None
    failure_code: str | None = None
    failure_message: str | None = None
    processed_at: datetime | None = None
    completed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.amount.is_positive:
            raise ValueError("Payment amount must be positive")
        if not self.tenant_id:
            raise ValueError("Tenant ID is required")

    @classmethod
    def create(
        cls,
        tenant_id: str,
        reference: PaymentReference,
        direction: PaymentDirection,
        amount: Money,
        method: PaymentMethodType,
        created_at: datetime,
        *,
        payer_id: str | None = None,
        payee_id: str | None = None,
        payment_method_id: str | None = None,
        idempotency_key: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Self:
        return cls(
            payment_id=generate_id("PAY"),
            tenant_id=tenant_id,
            reference=reference,
            direction=direction,
            amount=amount,
            method=method,
            created_at=created_at,
            payer_id=payer_id,
            payee_id=payee_id,
            payment_method_id=payment_method_id,
            idempotency_key=idempotency_key,
            metadata=dict(metadata or {}),
        )

    @property
    def is_successful(self) -> bool:
        return self.status is PaymentStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status is PaymentStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def can_transition_to(self, status: PaymentStatus) -> bool:
        return self.status.can_transition_to(status)

    # -- lifecycle ---------------------------------------------------------

    def _transition(self, status: PaymentStatus, **changes: Any) -> Self:
        if not self.can_transition_to(status):
            raise InvalidPaymentTransitionError(self.payment_id, self.status.value, status.value)
        logger.debug(
            "payment_status_changed",
            extra={
                "payment_id": self.payment_id,
                "from_status": self.status.value,
                "to_status": status.value,
            },
        )
        return replace(self, status=status, **changes)

    def mark_processing(self, at: datetime, executor_name: str | None = None) -> Self:
        return self._transition(
            PaymentStatus.PROCESSING,
            processed_at=at,
            executor_name=executor_name,
            attempt_count=self.attempt_count + 1,
            failure_code=None,
            failure_message=None,
        )

    def mark_completed(
        self, settled_amount: Money, at: datetime, provider_transaction_id: str | None = None
    ) -> Self:
        return self._transition(
            PaymentStatus.COMPLETED,
            settled_amount=settled_amount,
            completed_at=at,
            provider_transaction_id=provider_transaction_id or self.provider_transaction_id,
        )

    def mark_failed(self, failure_code: str, failure_message: str) -> Self:
        return self._transition(
            PaymentStatus.FAILED, failure_code=failure_code, failure_message=failure_message
        )

    def cancel(self, reason: str) -> Self:
        return self._transition(
            PaymentStatus.CANCELLED, metadata={**self.metadata, "cancellation_reason": reason}
        )

    def mark_reversed(
        self, reversed_amount: Money, reason: str | None = None, reversal_transaction_id: str | None = None
    ) -> Self:
        metadata = {**self.metadata, "reversed_amount": str(reversed_amount.amount)}
        if reason is not None:
            metadata["reversal_reason"] = reason
        if reversal_transaction_id is not None:
            metadata["reversal_transaction_id"] = reversal_transaction_id
        return self._transition(PaymentStatus.REVERSED, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "tenant_id": self.tenant_id,
            "reference": self.reference.formatted(),
            "direction": self.direction.value,
            "amount": self.amount.to_dict(),
            "method": self.method.value,
            "status": self.status.value,
            "attempt_count": self.attempt_count,
            "provider_transaction_id": self.provider_transaction_id,
            "settled_amount": self.settled_amount.to_dict() if self.settled_amount else None,
            "failure_code": self.failure_code,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "metadata": dict(self.metadata),
        }
