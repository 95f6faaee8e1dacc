"""
Payment Domain Models.

Exchange-rate snapshots, payment references, recipients and the
``Disbursement`` aggregate for outgoing payments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Self

from nexus_kernel.ids import generate_dated_id, generate_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import InvalidDisbursementTransitionError
from nexus_modules.payment.workflows import DISBURSEMENT_WORKFLOW

logger = get_logger("modules.payment.models")

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")
_CONVERSION_PLACES = Decimal("0.000001")
_INVERSE_PLACES = Decimal("0.0000000001")
MAX_REFERENCE_LENGTH = 140


# =============================================================================
# Exchange rates
# =============================================================================


def _positive_rate(value: str | Decimal) -> Decimal:
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise ValueError("Exchange rate must be a positive number") from None
    if not rate.is_finite() or rate <= 0:
        raise ValueError("Exchange rate must be a positive number")
    return rate


@dataclass(frozen=True)
class ExchangeRateSnapshot:
    """
    A rate as observed at a point in time, kept with the payment it priced.

    Currency codes are any three uppercase letters so that non-ISO assets
    such as BTC can be priced. ``rate`` keeps the exact string it was
    captured with.
    """

    source_currency: str
    target_currency: str
    rate: str
    captured_at: datetime
    provider: str | None = None
    rate_type: str | None = None

    def __post_init__(self) -> None:
        for code in (self.source_currency, self.target_currency):
            if not _CURRENCY_CODE.match(code or ""):
                raise ValueError(f"Currency code must be three uppercase letters, got '{code}'")
        _positive_rate(self.rate)
        if not isinstance(self.rate, str):
            object.__setattr__(self, "rate", str(self.rate))

    @classmethod
    def capture(
        cls,
        source_currency: str,
        target_currency: str,
        rate: str | Decimal,
        captured_at: datetime,
        provider: str | None = None,
        rate_type: str | None = None,
    ) -> Self:
        return cls(
            source_currency=source_currency,
            target_currency=target_currency,
            rate=str(rate),
            captured_at=captured_at,
            provider=provider,
            rate_type=rate_type,
        )

    @classmethod
    def same_currency(cls, currency: str, captured_at: datetime) -> Self:
        return cls(
            source_currency=currency,
            target_currency=currency,
            rate="1.000000",
            captured_at=captured_at,
            provider="system",
            rate_type="identity",
        )

    @property
    def rate_decimal(self) -> Decimal:
        return Decimal(self.rate)

    @property
    def currency_pair(self) -> str:
        return f"{self.source_currency}/{self.target_currency}"

    @property
    def is_same_currency(self) -> bool:
        return self.source_currency == self.target_currency

    @property
    def inverse_rate(self) -> str:
        return str((Decimal(1) / self.rate_decimal).quantize(_INVERSE_PLACES))

    def convert(self, amount: Decimal | str | int) -> Decimal:
        """Source amount in target currency, to six decimal places."""
        return (Decimal(str(amount)) * self.rate_decimal).quantize(_CONVERSION_PLACES)

    def convert_back(self, amount: Decimal | str | int) -> Decimal:
        """Target amount back in source currency, to six decimal places."""
        return (Decimal(str(amount)) / self.rate_decimal).quantize(_CONVERSION_PLACES)

    def inverse(self) -> Self:
        return replace(
            self,
            source_currency=self.target_currency,
            target_currency=self.source_currency,
            rate=self.inverse_rate,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_currency": self.source_currency,
            "target_currency": self.target_currency,
            "rate": self.rate,
            "captured_at": self.captured_at.isoformat(),
            "provider": self.provider,
            "rate_type": self.rate_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        missing = [k for k in ("source_currency", "target_currency", "rate", "captured_at") if k not in data]
        if missing:
            raise ValueError(f"Exchange rate snapshot is missing fields: {', '.join(missing)}")
        return cls(
            source_currency=data["source_currency"],
            target_currency=data["target_currency"],
            rate=str(data["rate"]),
            captured_at=datetime.fromisoformat(data["captured_at"]),
            provider=data.get("provider"),
            rate_type=data.get("rate_type"),
        )


# =============================================================================
# References and recipients
# =============================================================================


class PaymentReferenceType(str, Enum):
    INVOICE = "invoice"
    PURCHASE_ORDER = "purchase_order"
    BILL = "bill"
    PAYROLL = "payroll"
    REFUND = "refund"
    OTHER = "other"

    @property
    def prefix(self) -> str:
        return _REFERENCE_PREFIXES[self]


_REFERENCE_PREFIXES = {
    PaymentReferenceType.INVOICE: "INV",
    PaymentReferenceType.PURCHASE_ORDER: "PO",
    PaymentReferenceType.BILL: "BILL",
    PaymentReferenceType.PAYROLL: "PAYROLL",
    PaymentReferenceType.REFUND: "REFUND",
    PaymentReferenceType.OTHER: "REF",
}


@dataclass(frozen=True)
class PaymentReference:
    """The business document a payment settles."""

    reference_type: PaymentReferenceType
    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError("Payment reference cannot be empty")
        if len(self.value) > MAX_REFERENCE_LENGTH:
            raise ValueError(
                f"Payment reference cannot exceed {MAX_REFERENCE_LENGTH} characters"
            )

    @classmethod
    def invoice(cls, value: str) -> Self:
        return cls(PaymentReferenceType.INVOICE, value)

    @classmethod
    def purchase_order(cls, value: str) -> Self:
        return cls(PaymentReferenceType.PURCHASE_ORDER, value)

    @classmethod
    def payroll(cls, value: str) -> Self:
        return cls(PaymentReferenceType.PAYROLL, value)

    def formatted(self) -> str:
        return f"{self.reference_type.prefix}: {self.value}"

    def __str__(self) -> str:
        return self.formatted()


class PaymentMethodType(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    ACH = "ach"
    WIRE = "wire"
    CHECK = "check"
    CARD = "card"
    VIRTUAL_CARD = "virtual_card"


@dataclass(frozen=True)
class Recipient:
    """Payee of a disbursement."""
    recipient_id: str
    name: str
    account_number: str | None = None
    bank_code: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Recipient name is required")


# =============================================================================
# Disbursement
# =============================================================================


class DisbursementStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return DISBURSEMENT_WORKFLOW.is_terminal(self)

    def allowed_transitions(self) -> frozenset[DisbursementStatus]:
        return frozenset(DisbursementStatus(s) for s in DISBURSEMENT_WORKFLOW.allowed_targets(self))

    def can_transition_to(self, target: DisbursementStatus) -> bool:
        return DISBURSEMENT_WORKFLOW.can_transition(self, target)


@dataclass(frozen=True)
class Disbursement:
    """
    An outgoing payment to a vendor or other party.

    Copy-on-write: every lifecycle method returns a new instance. Illegal
    moves raise ``InvalidDisbursementTransitionError``.
    """

    disbursement_id: str
    tenant_id: str
    reference_number: str
    amount: Money
    recipient: Recipient
    method: PaymentMethodType
    created_by: str
    created_at: datetime
    requires_approval: bool = True
    status: DisbursementStatus = DisbursementStatus.DRAFT
    description: str | None = None
    source_account_id: str | None = None
    source_document_ids: tuple[str, ...] = ()
    scheduled_for: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    approval_notes: str | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    processed_at: datetime | None = None
    completed_at: datetime | None = None
    payment_transaction_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.amount.is_positive:
            raise ValueError("Disbursement amount must be positive")
        if not self.tenant_id:
            raise ValueError("Tenant ID is required")

    @classmethod
    def create(
        cls,
        tenant_id: str,
        amount: Money,
        recipient: Recipient,
        method: PaymentMethodType,
        created_by: str,
        created_at: datetime,
        *,
        requires_approval: bool = True,
        description: str | None = None,
        source_account_id: str | None = None,
        source_document_ids: tuple[str, ...] | list[str] = (),
        scheduled_for: datetime | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Self:
        """New disbursement: DRAFT when approval is required, otherwise APPROVED."""
        return cls(
            disbursement_id=generate_id("DSB"),
            tenant_id=tenant_id,
            reference_number=generate_dated_id("DISB", created_at.date()),
            amount=amount,
            recipient=recipient,
            method=method,
            created_by=created_by,
            created_at=created_at,
            requires_approval=requires_approval,
            status=DisbursementStatus.DRAFT if requires_approval else DisbursementStatus.APPROVED,
            description=description,
            source_account_id=source_account_id,
            source_document_ids=tuple(dict.fromkeys(source_document_ids)),
            scheduled_for=scheduled_for,
            metadata=dict(metadata or {}),
        )

    # -- predicates --------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_completed(self) -> bool:
        return self.status is DisbursementStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status is DisbursementStatus.FAILED

    @property
    def is_cancelled(self) -> bool:
        return self.status is DisbursementStatus.CANCELLED

    def can_transition_to(self, status: DisbursementStatus) -> bool:
        return self.status.can_transition_to(status)

    def is_ready_for_processing(self, now: datetime) -> bool:
        if self.status is not DisbursementStatus.APPROVED:
            return False
        return self.scheduled_for is None or self.scheduled_for <= now

    # -- lifecycle ---------------------------------------------------------

    def _transition(self, status: DisbursementStatus, **changes: Any) -> Self:
        if not self.can_transition_to(status):
            raise InvalidDisbursementTransitionError(
                self.disbursement_id, self.status.value, status.value
            )
        logger.debug(
            "disbursement_status_changed",
            extra={
                "disbursement_id": self.disbursement_id,
                "from_status": self.status.value,
                "to_status": status.value,
            },
        )
        return replace(self, status=status, **changes)

    def submit_for_approval(self) -> Self:
        return self._transition(DisbursementStatus.PENDING_APPROVAL)

    def approve(self, approved_by: str, at: datetime, notes: str | None = None) -> Self:
        metadata = dict(self.metadata)
        if notes is not None:
            metadata["approval_notes"] = notes
        return self._transition(
            DisbursementStatus.APPROVED,
            approved_by=approved_by,
            approved_at=at,
            approval_notes=notes,
            metadata=metadata,
        )

    def reject(self, rejected_by: str, reason: str, at: datetime) -> Self:
        return self._transition(
            DisbursementStatus.REJECTED,
            rejected_by=rejected_by,
            rejection_reason=reason,
            rejected_at=at,
        )

    def mark_processing(self, at: datetime) -> Self:
        return self._transition(DisbursementStatus.PROCESSING, processed_at=at)

    def mark_completed(self, payment_transaction_id: str, at: datetime) -> Self:
        return self._transition(
            DisbursementStatus.COMPLETED,
            payment_transaction_id=payment_transaction_id,
            completed_at=at,
        )

    def mark_failed(self, failure_code: str, failure_message: str) -> Self:
        metadata = {
            **self.metadata,
            "failure_code": failure_code,
            "failure_message": failure_message,
        }
        return self._transition(DisbursementStatus.FAILED, metadata=metadata)

    def cancel(self, reason: str | None = None) -> Self:
        metadata = dict(self.metadata)
        if reason is not None:
            metadata["cancellation_reason"] = reason
        return self._transition(DisbursementStatus.CANCELLED, metadata=metadata)

    def schedule(self, when: datetime) -> Self:
        if self.is_terminal:
            raise InvalidDisbursementTransitionError(
                self.disbursement_id,
                self.status.value,
                self.status.value,
                reason=f"cannot schedule a {self.status.value} disbursement",
            )
        return replace(self, scheduled_for=when)

    def link_source_documents(self, document_ids: list[str] | tuple[str, ...]) -> Self:
        merged = tuple(dict.fromkeys((*self.source_document_ids, *document_ids)))
        return replace(self, source_document_ids=merged)

    def with_metadata(self, **metadata: Any) -> Self:
        return replace(self, metadata={**self.metadata, **metadata})

    def to_dict(self) -> dict[str, Any]:
        return {
            "disbursement_id": self.disbursement_id,
            "tenant_id": self.tenant_id,
            "reference_number": self.reference_number,
            "amount": self.amount.to_dict(),
            "recipient_id": self.recipient.recipient_id,
            "recipient_name": self.recipient.name,
            "method": self.method.value,
            "status": self.status.value,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat(),
            "scheduled_for": self.scheduled_for.isoformat() if self.scheduled_for else None,
            "approved_by": self.approved_by,
            "rejection_reason": self.rejection_reason,
            "payment_transaction_id": self.payment_transaction_id,
            "source_document_ids": list(self.source_document_ids),
            "metadata": dict(self.metadata),
        }
