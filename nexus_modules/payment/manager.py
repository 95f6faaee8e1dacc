"""
Payment Manager (``nexus_modules.payment.manager``).

Responsibility
--------------
Creates payment transactions and drives them through execution,
cancellation, reversal and retry against a pluggable executor.

Architecture position
---------------------
**Modules layer** -- orchestration over a host-supplied
``PaymentTransactionRepository``. Moving money is the job of a
``PaymentExecutor`` (a gateway adapter, a bank file writer and so on).

Invariants enforced
-------------------
* Status changes follow ``PAYMENT_TRANSACTION_WORKFLOW``.
* An idempotency key identifies at most one payment. Reuse within a
  tenant is a duplicate; reuse across tenants is refused and logged.
* Every attempt is persisted before the executor is called, so a crash
  mid-execution leaves the payment in PROCESSING, never PENDING.
* A reversal never exceeds the original amount.

Failure modes
-------------
* ``PaymentValidationError`` -- non-positive amount or oversize reversal.
* ``DuplicatePaymentError`` -- idempotency key already used in the tenant.
* ``PaymentNotFoundError`` -- unknown id.
* ``InvalidPaymentTransitionError`` -- e.g. reversing a pending payment.
* ``PaymentExecutionError`` -- no executor, key collision, or the
  executor raised.
"""

from __future__ import annotations

from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import (
    DuplicatePaymentError,
    InvalidPaymentTransitionError,
    PaymentExecutionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from nexus_modules.payment.models import PaymentMethodType, PaymentReference
from nexus_modules.payment.transactions import (
    PaymentDirection,
    PaymentResult,
    PaymentStatus,
    PaymentTransaction,
)

logger = get_logger("modules.payment.manager")


class PaymentTransactionRepository(Protocol):
    """Persistence for payment transactions; implemented by the host application."""

    def save(self, payment: PaymentTransaction) -> None: ...

    def get(self, payment_id: str) -> PaymentTransaction | None: ...

    def find_by_idempotency_key(self, idempotency_key: str) -> PaymentTransaction | None: ...


class PaymentExecutor(Protocol):
    """Moves the money for a payment, or gives it back."""

    def execute(self, payment: PaymentTransaction) -> PaymentResult: ...

    def refund(self, payment: PaymentTransaction, amount: Money, reason: str | None) -> PaymentResult: ...


class PaymentManager:
    """
    Orchestrates the payment transaction lifecycle.

    Usage::

        manager = PaymentManager(repository, executor=gateway_executor)
        payment = manager.create(
            "tenant-1", PaymentReference.invoice("INV-001"), PaymentDirection.OUTBOUND,
            Money.of("250.00", "USD"), PaymentMethodType.ACH, idempotency_key="order-77",
        )
        result = manager.execute(payment.payment_id)
    """

    def __init__(
        self,
        repository: PaymentTransactionRepository,
        executor: PaymentExecutor | None = None,
        clock: Clock | None = None,
    ):
        self._repository = repository
        self._executor = executor
        self._clock = clock or SystemClock()

    # -- creation ----------------------------------------------------------

    def create(
        self,
        tenant_id: str,
        reference: PaymentReference,
        direction: PaymentDirection,
        amount: Money,
        method: PaymentMethodType,
        *,
        payer_id: str | None = None,
        payee_id: str | None = None,
        payment_method_id: str | None = None,
        idempotency_key: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> PaymentTransaction:
        if not amount.is_positive:
            raise PaymentValidationError.non_positive_payment_amount(amount)
        if idempotency_key is not None:
            self._ensure_key_unused(tenant_id, idempotency_key)

        payment = PaymentTransaction.create(
            tenant_id,
            reference,
            direction,
            amount,
            method,
            self._clock.now(),
            payer_id=payer_id,
            payee_id=payee_id,
            payment_method_id=payment_method_id,
            idempotency_key=idempotency_key,
            metadata=metadata,
        )
        self._repository.save(payment)
        logger.info(
            "payment_created",
            extra={
                "payment_id": payment.payment_id,
                "tenant_id": tenant_id,
                "reference": reference.formatted(),
                "direction": direction.value,
                "amount": str(amount.amount),
                "currency": amount.currency.code,
            },
        )
        return payment

    def _ensure_key_unused(self, tenant_id: str, idempotency_key: str) -> None:
        existing = self._repository.find_by_idempotency_key(idempotency_key)
        if existing is None:
            return
        if existing.tenant_id == tenant_id:
            raise DuplicatePaymentError(idempotency_key, existing.payment_id)
        logger.warning(
            "payment_idempotency_key_collision",
            extra={
                "idempotency_key": idempotency_key,
                "tenant_id": tenant_id,
                "existing_tenant_id": existing.tenant_id,
                "existing_payment_id": existing.payment_id,
            },
        )
        raise PaymentExecutionError.idempotency_collision(idempotency_key, tenant_id, existing.tenant_id)

    # -- execution ---------------------------------------------------------

    def execute(self, payment_id: str, executor: PaymentExecutor | None = None) -> PaymentResult:
        """
        Run one execution attempt and record its outcome.

        A failed result leaves the payment FAILED and is returned; an
        executor exception also leaves it FAILED but is re-raised as
        ``PaymentExecutionError``.
        """
        payment = self.find_by_id(payment_id)
        executor = executor or self._executor
        if executor is None:
            raise PaymentExecutionError.no_executor(payment_id)

        payment = payment.mark_processing(self._clock.now(), type(executor).__name__)
        self._repository.save(payment)
        logger.info(
            "payment_processing",
            extra={"payment_id": payment_id, "attempt": payment.attempt_count, "executor": payment.executor_name},
        )

        try:
            result = executor.execute(payment)
        except Exception as exc:
            failed = payment.mark_failed("EXCEPTION", str(exc))
            self._repository.save(failed)
            logger.exception("payment_execution_error", extra={"payment_id": payment_id})
            raise PaymentExecutionError.from_executor(payment_id, exc) from exc

        if result.success:
            payment = payment.mark_completed(
                payment.amount if result.settled_amount is None else result.settled_amount,
                self._clock.now(),
                result.provider_transaction_id,
            )
            logger.info(
                "payment_completed",
                extra={"payment_id": payment_id, "provider_transaction_id": result.provider_transaction_id},
            )
        else:
            payment = payment.mark_failed(
                result.failure_code or "UNKNOWN", result.failure_message or "Unknown error"
            )
            logger.warning(
                "payment_failed",
                extra={
                    "payment_id": payment_id,
                    "failure_code": payment.failure_code,
                    "attempt": payment.attempt_count,
                },
            )
        self._repository.save(payment)
        return result

    def retry(self, payment_id: str, executor: PaymentExecutor | None = None) -> PaymentResult:
        payment = self.find_by_id(payment_id)
        if payment.status is not PaymentStatus.FAILED:
            raise InvalidPaymentTransitionError(
                payment_id,
                payment.status.value,
                PaymentStatus.PROCESSING.value,
                reason="only failed payments can be retried",
            )
        return self.execute(payment_id, executor)

    def cancel(self, payment_id: str, reason: str, cancelled_by: str | None = None) -> PaymentTransaction:
        payment = self.find_by_id(payment_id).cancel(reason)
        self._repository.save(payment)
        logger.info(
            "payment_cancelled",
            extra={"payment_id": payment_id, "reason": reason, "cancelled_by": cancelled_by or "system"},
        )
        return payment

    def reverse(
        self,
        payment_id: str,
        amount: Money | None = None,
        reason: str | None = None,
        executor: PaymentExecutor | None = None,
    ) -> PaymentResult:
        """
        Refund a completed payment, fully or in part.

        The payment only becomes REVERSED when the executor reports
        success; a failed refund result is returned unchanged.
        """
        payment = self.find_by_id(payment_id)
        if not payment.can_transition_to(PaymentStatus.REVERSED):
            raise InvalidPaymentTransitionError(payment_id, payment.status.value, PaymentStatus.REVERSED.value)

        reversal_amount = payment.amount if amount is None else amount
        if reversal_amount > payment.amount:
            raise PaymentValidationError.reversal_exceeds_payment(payment_id, reversal_amount, payment.amount)

        executor = executor or self._executor
        if executor is None:
            raise PaymentExecutionError.no_executor(payment_id)

        try:
            result = executor.refund(payment, reversal_amount, reason)
        except Exception as exc:
            logger.exception("payment_reversal_error", extra={"payment_id": payment_id})
            raise PaymentExecutionError.from_executor(payment_id, exc, action="reversal") from exc

        if result.success:
            reversed_payment = payment.mark_reversed(reversal_amount, reason, result.provider_transaction_id)
            self._repository.save(reversed_payment)
            logger.info(
                "payment_reversed",
                extra={"payment_id": payment_id, "reversed_amount": str(reversal_amount.amount)},
            )
        else:
            logger.warning(
                "payment_reversal_declined",
                extra={"payment_id": payment_id, "failure_code": result.failure_code},
            )
        return result

    # -- queries -----------------------------------------------------------

    def find_by_id(self, payment_id: str) -> PaymentTransaction:
        payment = self._repository.get(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    def get_status(self, payment_id: str) -> PaymentStatus:
        return self.find_by_id(payment_id).status
