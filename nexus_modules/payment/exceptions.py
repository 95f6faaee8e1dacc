"""Payment and disbursement exceptions."""

from typing import Any

from nexus_kernel.exceptions import LimitExceededError, NexusError
from nexus_kernel.values import Money


class PaymentError(NexusError):
    """Base exception for the payment package."""

    code: str = "PAYMENT_ERROR"


class PaymentValidationError(PaymentError):
    """A payment request failed a business rule."""

    code: str = "PAYMENT_VALIDATION_FAILED"

    @classmethod
    def scheduled_in_past(cls, disbursement_id: str) -> "PaymentValidationError":
        return cls(
            f"Disbursement {disbursement_id}: scheduled date must be in the future",
            disbursement_id=disbursement_id,
        )

    @classmethod
    def not_yet_due(cls, disbursement_id: str, scheduled_for: str) -> "PaymentValidationError":
        return cls(
            f"Disbursement {disbursement_id} is scheduled for {scheduled_for} and cannot be processed yet",
            disbursement_id=disbursement_id,
            scheduled_for=scheduled_for,
        )

    @classmethod
    def non_positive_amount(cls, amount: Money) -> "PaymentValidationError":
        return cls(f"Disbursement amount must be positive, got {amount.format()}", amount=str(amount.amount))

    @classmethod
    def non_positive_payment_amount(cls, amount: Money) -> "PaymentValidationError":
        return cls(f"Payment amount must be positive, got {amount.format()}", amount=str(amount.amount))

    @classmethod
    def reversal_exceeds_payment(cls, payment_id: str, amount: Money, original: Money) -> "PaymentValidationError":
        return cls(
            f"Reversal of {amount.format()} exceeds payment {payment_id} amount of {original.format()}",
            payment_id=payment_id,
            amount=str(amount.amount),
        )


class DisbursementNotFoundError(PaymentError):
    code: str = "DISBURSEMENT_NOT_FOUND"

    def __init__(self, disbursement_id: str):
        self.disbursement_id = disbursement_id
        super().__init__(f"Disbursement not found: {disbursement_id}")


class InvalidDisbursementTransitionError(PaymentError):
    """A disbursement was asked to move to a status its current status does not allow."""

    code: str = "INVALID_DISBURSEMENT_TRANSITION"

    def __init__(self, disbursement_id: str, from_status: str, to_status: str, reason: str | None = None):
        self.disbursement_id = disbursement_id
        self.from_status = from_status
        self.to_status = to_status
        message = f"Disbursement {disbursement_id} cannot transition from {from_status} to {to_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidSettlementBatchStatusError(PaymentError):
    code: str = "INVALID_SETTLEMENT_BATCH_STATUS"

    def __init__(self, batch_id: str, current: str, requested: str, reason: str | None = None):
        self.batch_id = batch_id
        self.current = current
        self.requested = requested
        message = reason or f"Settlement batch {batch_id} cannot move from {current} to {requested}"
        super().__init__(message, batch_id=batch_id)


class DisbursementLimitExceededError(PaymentError, LimitExceededError):
    """A disbursement would breach a configured amount or count limit."""

    code: str = "DISBURSEMENT_LIMIT_EXCEEDED"

    def __init__(self, message: str, *, period: str, **context: Any):
        self.period = period
        super().__init__(message, period=period, **context)

    @classmethod
    def per_transaction_limit_exceeded(cls, amount: Money, limit: Money) -> "DisbursementLimitExceededError":
        return cls(
            f"Amount {amount.format()} exceeds per-transaction limit of {limit.format()}",
            period="per_transaction",
            amount=str(amount.amount),
            limit=str(limit.amount),
        )

    @classmethod
    def period_limit_exceeded(
        cls,
        amount: Money,
        current_usage: Money,
        limit: Money,
        period: str,
    ) -> "DisbursementLimitExceededError":
        return cls(
            f"Amount {amount.format()} would bring {period} total to "
            f"{(current_usage + amount).format()}, exceeding the limit of {limit.format()}",
            period=period,
            amount=str(amount.amount),
            current_usage=str(current_usage.amount),
            limit=str(limit.amount),
        )

    @classmethod
    def count_limit_exceeded(cls, current_count: int, limit: int, period: str) -> "DisbursementLimitExceededError":
        return cls(
            f"{period.capitalize()} disbursement count limit of {limit} reached ({current_count} already made)",
            period=period,
            current_count=current_count,
            limit=limit,
        )


class InvalidDisbursementScheduleError(PaymentError, ValueError):
    """A disbursement schedule is malformed or cannot advance."""

    code: str = "INVALID_DISBURSEMENT_SCHEDULE"

    @classmethod
    def scheduled_date_required(cls) -> "InvalidDisbursementScheduleError":
        return cls("A scheduled date is required for scheduled and recurring disbursements")

    @classmethod
    def frequency_required(cls) -> "InvalidDisbursementScheduleError":
        return cls("A recurrence frequency is required for recurring disbursements")

    @classmethod
    def end_before_start(cls, start: str, end: str) -> "InvalidDisbursementScheduleError":
        return cls(f"Recurrence end {end} must be after start {start}", start=start, end=end)

    @classmethod
    def invalid_max_occurrences(cls, value: int) -> "InvalidDisbursementScheduleError":
        return cls(f"Maximum occurrences must be at least 1, got {value}", max_occurrences=value)

    @classmethod
    def not_recurring(cls, disbursement_id: str) -> "InvalidDisbursementScheduleError":
        return cls(
            f"Disbursement {disbursement_id} does not have a recurring schedule",
            disbursement_id=disbursement_id,
        )

    @classmethod
    def no_more_occurrences(cls, disbursement_id: str) -> "InvalidDisbursementScheduleError":
        return cls(f"Disbursement {disbursement_id} has no occurrences left", disbursement_id=disbursement_id)


class PaymentNotFoundError(PaymentError):
    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {payment_id}")


class DuplicatePaymentError(PaymentError):
    """An idempotency key was reused within the same tenant."""

    code: str = "DUPLICATE_PAYMENT"

    def __init__(self, idempotency_key: str, existing_payment_id: str):
        self.idempotency_key = idempotency_key
        self.existing_payment_id = existing_payment_id
        super().__init__(
            f"Payment with idempotency key {idempotency_key} already exists: {existing_payment_id}",
            idempotency_key=idempotency_key,
            existing_payment_id=existing_payment_id,
        )


class InvalidPaymentTransitionError(PaymentError):
    code: str = "INVALID_PAYMENT_TRANSITION"

    def __init__(self, payment_id: str, from_status: str, to_status: str, reason: str | None = None):
        self.payment_id = payment_id
        self.from_status = from_status
        self.to_status = to_status
        message = f"Payment {payment_id} cannot transition from {from_status} to {to_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PaymentExecutionError(PaymentError):
    """Executing or reversing a payment could not be completed."""

    code: str = "PAYMENT_EXECUTION_FAILED"

    def __init__(
        self, message: str, *, payment_id: str | None = None, reason: str | None = None, **context: Any
    ):
        self.payment_id = payment_id
        self.reason = reason
        super().__init__(message, payment_id=payment_id, reason=reason, **context)

    @classmethod
    def no_executor(cls, payment_id: str) -> "PaymentExecutionError":
        return cls(f"No payment executor configured for {payment_id}", payment_id=payment_id, reason="no_executor")

    @classmethod
    def idempotency_collision(
        cls, idempotency_key: str, tenant_id: str, existing_tenant_id: str
    ) -> "PaymentExecutionError":
        return cls(
            "Idempotency key collision across tenants",
            reason="idempotency_tenant_collision",
            idempotency_key=idempotency_key,
            tenant_id=tenant_id,
            existing_tenant_id=existing_tenant_id,
        )

    @classmethod
    def from_executor(cls, payment_id: str, cause: Exception, action: str = "execution") -> "PaymentExecutionError":
        return cls(
            f"Payment {action} failed: {cause}",
            payment_id=payment_id,
            reason=f"{action}_exception",
            error_type=type(cause).__name__,
        )
