"""
Payment Gateway Models.

Provider enums, operation requests and results, credentials and the
attempt record handed to a ``TransactionRecorder``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Self

from nexus_kernel.values import Money


class GatewayProvider(str, Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    ADYEN = "adyen"
    SQUARE = "square"
    BRAINTREE = "braintree"
    TEST = "test"


class GatewayStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"
    MAINTENANCE = "maintenance"

    @property
    def is_available(self) -> bool:
        """Degraded gateways still accept traffic."""
        return self in (GatewayStatus.HEALTHY, GatewayStatus.DEGRADED)


class TransactionStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    PARTIALLY_CAPTURED = "partially_captured"
    VOIDED = "voided"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    FAILED = "failed"
    REQUIRES_ACTION = "requires_action"


class RefundType(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


class AuthorizationType(str, Enum):
    AUTH_ONLY = "auth_only"
    AUTH_CAPTURE = "auth_capture"


# =============================================================================
# Credentials
# =============================================================================


def _mask_secret(value: str | None) -> str | None:
    if value is None:
        return None
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}****"


@dataclass(frozen=True)
class GatewayCredentials:
    """API credentials for one provider account. ``repr`` never shows secrets."""

    api_key: str
    secret_key: str | None = None
    merchant_id: str | None = None
    sandbox: bool = True

    def __post_init__(self) -> None:
        if not self.api_key or not self.api_key.strip():
            raise ValueError("Gateway API key cannot be empty")

    def __repr__(self) -> str:
        return (
            f"GatewayCredentials(api_key={_mask_secret(self.api_key)!r}, "
            f"secret_key={_mask_secret(self.secret_key)!r}, "
            f"merchant_id={self.merchant_id!r}, sandbox={self.sandbox!r})"
        )

    __str__ = __repr__


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class AuthorizeRequest:
    amount: Money
    payment_method_token: str
    authorization_type: AuthorizationType = AuthorizationType.AUTH_ONLY
    customer_id: str | None = None
    description: str | None = None
    order_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_auto_capture(self) -> bool:
        return self.authorization_type is AuthorizationType.AUTH_CAPTURE


@dataclass(frozen=True)
class CaptureRequest:
    """Capture a prior authorization. ``amount=None`` captures it in full."""

    authorization_id: str
    amount: Money | None = None


@dataclass(frozen=True)
class RefundRequest:
    """Refund a capture. ``amount=None`` refunds whatever remains."""

    transaction_id: str
    amount: Money | None = None
    reason: str | None = None


@dataclass(frozen=True)
class VoidRequest:
    authorization_id: str
    reason: str | None = None


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class AuthorizationResult:
    success: bool
    status: TransactionStatus
    authorization_id: str | None = None
    transaction_id: str | None = None
    authorized_amount: Money | None = None
    expires_at: datetime | None = None
    three_ds_url: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(
        cls,
        authorization_id: str,
        amount: Money,
        transaction_id: str | None = None,
        expires_at: datetime | None = None,
        *,
        status: TransactionStatus = TransactionStatus.AUTHORIZED,
        raw_response: dict[str, Any] | None = None,
    ) -> Self:
        return cls(
            success=True,
            status=status,
            authorization_id=authorization_id,
            transaction_id=transaction_id,
            authorized_amount=amount,
            expires_at=expires_at,
            raw_response=raw_response or {},
        )

    @classmethod
    def requires_3ds(
        cls,
        authorization_id: str,
        three_ds_url: str,
        raw_response: dict[str, Any] | None = None,
    ) -> Self:
        return cls(
            success=False,
            status=TransactionStatus.REQUIRES_ACTION,
            authorization_id=authorization_id,
            three_ds_url=three_ds_url,
            raw_response=raw_response or {},
        )

    @classmethod
    def failed(cls, error_code: str, error_message: str, raw_response: dict[str, Any] | None = None) -> Self:
        return cls(
            success=False,
            status=TransactionStatus.FAILED,
            error_code=error_code,
            error_message=error_message,
            raw_response=raw_response or {},
        )

    @property
    def requires_action(self) -> bool:
        return self.status is TransactionStatus.REQUIRES_ACTION

    @property
    def reference_id(self) -> str | None:
        return self.authorization_id


@dataclass(frozen=True)
class CaptureResult:
    success: bool
    status: TransactionStatus
    capture_id: str | None = None
    captured_amount: Money | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(
        cls,
        capture_id: str,
        amount: Money,
        status: TransactionStatus = TransactionStatus.CAPTURED,
        raw_response: dict[str, Any] | None = None,
    ) -> Self:
        return cls(True, status, capture_id, amount, raw_response=raw_response or {})

    @classmethod
    def failed(cls, error_code: str, error_message: str) -> Self:
        return cls(False, TransactionStatus.FAILED, error_code=error_code, error_message=error_message)

    @property
    def reference_id(self) -> str | None:
        return self.capture_id


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: str | None = None
    refunded_amount: Money | None = None
    refund_type: RefundType | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(
        cls,
        refund_id: str,
        amount: Money,
        refund_type: RefundType,
        raw_response: dict[str, Any] | None = None,
    ) -> Self:
        return cls(True, refund_id, amount, refund_type, raw_response=raw_response or {})

    @classmethod
    def failed(cls, error_code: str, error_message: str) -> Self:
        return cls(False, error_code=error_code, error_message=error_message)

    @property
    def status(self) -> TransactionStatus:
        if not self.success:
            return TransactionStatus.FAILED
        if self.refund_type is RefundType.FULL:
            return TransactionStatus.REFUNDED
        return TransactionStatus.PARTIALLY_REFUNDED

    @property
    def reference_id(self) -> str | None:
        return self.refund_id


@dataclass(frozen=True)
class VoidResult:
    success: bool
    void_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def succeeded(cls, void_id: str, raw_response: dict[str, Any] | None = None) -> Self:
        return cls(True, void_id, raw_response=raw_response or {})

    @classmethod
    def failed(cls, error_code: str, error_message: str) -> Self:
        return cls(False, error_code=error_code, error_message=error_message)

    @property
    def status(self) -> TransactionStatus:
        return TransactionStatus.VOIDED if self.success else TransactionStatus.FAILED

    @property
    def reference_id(self) -> str | None:
        return self.void_id


# =============================================================================
# Attempt record
# =============================================================================


@dataclass(frozen=True)
class GatewayTransactionAttempt:
    """One call through ``GatewayManager``, successful or not."""

    provider: GatewayProvider
    operation: str
    success: bool
    occurred_at: datetime
    request_reference: str | None = None
    result_reference: str | None = None
    amount: Money | None = None
    status: TransactionStatus | None = None
    error_code: str | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider.value,
            "operation": self.operation,
            "success": self.success,
            "occurred_at": self.occurred_at.isoformat(),
            "request_reference": self.request_reference,
            "result_reference": self.result_reference,
            "amount": self.amount.to_dict() if self.amount else None,
            "status": self.status.value if self.status else None,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
