"""
Payment Manager Tests.

Payment transactions are created, executed, retried, cancelled and
reversed through ``PaymentManager`` with scripted executors.
"""

import pytest

from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import (
    DuplicatePaymentError,
    InvalidPaymentTransitionError,
    PaymentExecutionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from nexus_modules.payment.manager import PaymentManager
from nexus_modules.payment.models import PaymentMethodType, PaymentReference
from nexus_modules.payment.transactions import (
    PaymentDirection,
    PaymentResult,
    PaymentStatus,
    PaymentTransaction,
)


def usd(amount):
    return Money.of(amount, "USD")


class InMemoryPaymentRepository:
    def __init__(self):
        self.items = {}
        self.history = []

    def save(self, payment):
        self.items[payment.payment_id] = payment
        self.history.append(payment.status)

    def get(self, payment_id):
        return self.items.get(payment_id)

    def find_by_idempotency_key(self, idempotency_key):
        return next((p for p in self.items.values() if p.idempotency_key == idempotency_key), None)


class ScriptedExecutor:
    """Returns queued results in order; an exception in the queue is raised."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.executed = []
        self.refunds = []

    def _next(self):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def execute(self, payment):
        self.executed.append(payment)
        return self._next()

    def refund(self, payment, amount, reason):
        self.refunds.append((payment.payment_id, amount, reason))
        return self._next()


@pytest.fixture
def repository():
    return InMemoryPaymentRepository()


def make_manager(repository, clock, *outcomes):
    executor = ScriptedExecutor(*outcomes)
    return PaymentManager(repository, executor=executor, clock=clock), executor


def create(manager, amount="250.00", tenant_id="tenant-1", **kwargs):
    return manager.create(
        tenant_id,
        PaymentReference.invoice("INV-001"),
        PaymentDirection.OUTBOUND,
        usd(amount),
        PaymentMethodType.ACH,
        **kwargs,
    )


class TestPaymentTransaction:

    def test_pending_transitions(self, deterministic_clock):
        payment = PaymentTransaction.create(
            "tenant-1", PaymentReference.invoice("INV-1"), PaymentDirection.INBOUND,
            usd("10"), PaymentMethodType.CARD, deterministic_clock.now(),
        )
        assert payment.status is PaymentStatus.PENDING
        assert payment.attempt_count == 0
        assert payment.payment_id.startswith("PAY-")
        assert payment.can_transition_to(PaymentStatus.PROCESSING)
        assert payment.can_transition_to(PaymentStatus.CANCELLED)
        assert not payment.can_transition_to(PaymentStatus.COMPLETED)
        assert not payment.can_transition_to(PaymentStatus.REVERSED)

    def test_completed_cannot_process_again(self, deterministic_clock):
        now = deterministic_clock.now()
        payment = PaymentTransaction.create(
            "tenant-1", PaymentReference.invoice("INV-1"), PaymentDirection.INBOUND,
            usd("10"), PaymentMethodType.CARD, now,
        )
        completed = payment.mark_processing(now).mark_completed(usd("10"), now, "prov-1")
        assert completed.is_successful
        with pytest.raises(InvalidPaymentTransitionError, match="from completed to processing"):
            completed.mark_processing(now)

    def test_non_positive_amount_rejected(self, deterministic_clock):
        with pytest.raises(ValueError, match="must be positive"):
            PaymentTransaction.create(
                "tenant-1", PaymentReference.invoice("INV-1"), PaymentDirection.INBOUND,
                usd("0"), PaymentMethodType.CARD, deterministic_clock.now(),
            )


class TestCreate:

    def test_saved_pending(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        payment = create(manager, metadata={"order": "77"})

        assert repository.get(payment.payment_id) == payment
        assert payment.status is PaymentStatus.PENDING
        assert payment.created_at == deterministic_clock.now()
        assert payment.metadata == {"order": "77"}

    def test_non_positive_amount(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        with pytest.raises(PaymentValidationError, match="Payment amount must be positive"):
            create(manager, amount="-1")

    def test_duplicate_idempotency_key_in_tenant(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        first = create(manager, idempotency_key="order-77")
        with pytest.raises(DuplicatePaymentError) as exc:
            create(manager, idempotency_key="order-77")
        assert exc.value.existing_payment_id == first.payment_id
        assert len(repository.items) == 1

    def test_idempotency_key_collision_across_tenants(self, repository, deterministic_clock, captured_logs):
        manager, _ = make_manager(repository, deterministic_clock)
        create(manager, idempotency_key="order-77")
        with pytest.raises(PaymentExecutionError) as exc:
            create(manager, tenant_id="tenant-2", idempotency_key="order-77")
        assert exc.value.reason == "idempotency_tenant_collision"
        assert any(r["message"] == "payment_idempotency_key_collision" for r in captured_logs())


class TestExecute:

    def test_success_settles(self, repository, deterministic_clock):
        manager, executor = make_manager(
            repository, deterministic_clock, PaymentResult.succeeded("prov-1", usd("249.50"))
        )
        payment = create(manager)
        result = manager.execute(payment.payment_id)

        stored = repository.get(payment.payment_id)
        assert result.success
        assert stored.status is PaymentStatus.COMPLETED
        assert stored.settled_amount == usd("249.50")
        assert stored.provider_transaction_id == "prov-1"
        assert stored.attempt_count == 1
        assert stored.executor_name == "ScriptedExecutor"
        assert executor.executed[0].status is PaymentStatus.PROCESSING
        assert repository.history == [PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.COMPLETED]

    def test_settled_amount_defaults_to_amount(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock, PaymentResult.succeeded("prov-1"))
        payment = create(manager)
        manager.execute(payment.payment_id)
        assert repository.get(payment.payment_id).settled_amount == usd("250.00")

    def test_failed_result(self, repository, deterministic_clock):
        manager, _ = make_manager(
            repository, deterministic_clock, PaymentResult.failed("INSUFFICIENT_FUNDS", "Not enough balance")
        )
        payment = create(manager)
        result = manager.execute(payment.payment_id)

        stored = repository.get(payment.payment_id)
        assert not result.success
        assert stored.is_failed
        assert stored.failure_code == "INSUFFICIENT_FUNDS"

    def test_executor_exception_marks_failed_and_raises(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock, RuntimeError("socket closed"))
        payment = create(manager)
        with pytest.raises(PaymentExecutionError, match="socket closed") as exc:
            manager.execute(payment.payment_id)

        assert isinstance(exc.value.__cause__, RuntimeError)
        stored = repository.get(payment.payment_id)
        assert stored.status is PaymentStatus.FAILED
        assert stored.failure_code == "EXCEPTION"

    def test_no_executor(self, repository, deterministic_clock):
        manager = PaymentManager(repository, clock=deterministic_clock)
        payment = create(manager)
        with pytest.raises(PaymentExecutionError) as exc:
            manager.execute(payment.payment_id)
        assert exc.value.reason == "no_executor"
        assert repository.get(payment.payment_id).status is PaymentStatus.PENDING

    def test_unknown_payment(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        with pytest.raises(PaymentNotFoundError):
            manager.execute("PAY-missing")


class TestRetry:

    def test_retry_after_failure(self, repository, deterministic_clock):
        manager, _ = make_manager(
            repository,
            deterministic_clock,
            PaymentResult.failed("TIMEOUT", "Provider timed out"),
            PaymentResult.succeeded("prov-2"),
        )
        payment = create(manager)
        manager.execute(payment.payment_id)
        result = manager.retry(payment.payment_id)

        stored = repository.get(payment.payment_id)
        assert result.success
        assert stored.status is PaymentStatus.COMPLETED
        assert stored.attempt_count == 2
        assert stored.failure_code is None

    def test_only_failed_payments_retry(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        payment = create(manager)
        with pytest.raises(InvalidPaymentTransitionError, match="only failed payments"):
            manager.retry(payment.payment_id)


class TestCancel:

    def test_cancel_pending(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        payment = create(manager)
        cancelled = manager.cancel(payment.payment_id, "User requested cancellation")

        assert cancelled.status is PaymentStatus.CANCELLED
        assert cancelled.metadata["cancellation_reason"] == "User requested cancellation"
        assert manager.get_status(payment.payment_id) is PaymentStatus.CANCELLED

    def test_cannot_cancel_completed(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock, PaymentResult.succeeded("prov-1"))
        payment = create(manager)
        manager.execute(payment.payment_id)
        with pytest.raises(InvalidPaymentTransitionError):
            manager.cancel(payment.payment_id, "too late")


class TestReverse:

    def _completed(self, repository, clock, *refund_outcomes):
        manager, executor = make_manager(repository, clock, PaymentResult.succeeded("prov-1"), *refund_outcomes)
        payment = create(manager)
        manager.execute(payment.payment_id)
        return manager, executor, payment.payment_id

    def test_full_reversal(self, repository, deterministic_clock):
        manager, executor, payment_id = self._completed(
            repository, deterministic_clock, PaymentResult.succeeded("rev-1")
        )
        result = manager.reverse(payment_id, reason="Fraudulent transaction")

        stored = repository.get(payment_id)
        assert result.success
        assert stored.status is PaymentStatus.REVERSED
        assert stored.metadata["reversal_reason"] == "Fraudulent transaction"
        assert stored.metadata["reversal_transaction_id"] == "rev-1"
        assert executor.refunds == [(payment_id, usd("250.00"), "Fraudulent transaction")]

    def test_partial_reversal_amount_recorded(self, repository, deterministic_clock):
        manager, executor, payment_id = self._completed(
            repository, deterministic_clock, PaymentResult.succeeded("rev-1")
        )
        manager.reverse(payment_id, usd("50"))
        assert repository.get(payment_id).metadata["reversed_amount"] == "50"

    def test_reversal_cannot_exceed_amount(self, repository, deterministic_clock):
        manager, executor, payment_id = self._completed(repository, deterministic_clock)
        with pytest.raises(PaymentValidationError, match="exceeds payment"):
            manager.reverse(payment_id, usd("250.01"))
        assert executor.refunds == []

    def test_declined_reversal_keeps_completed(self, repository, deterministic_clock):
        manager, _, payment_id = self._completed(
            repository, deterministic_clock, PaymentResult.failed("REFUND_DECLINED", "Declined")
        )
        result = manager.reverse(payment_id)
        assert not result.success
        assert repository.get(payment_id).status is PaymentStatus.COMPLETED

    def test_executor_exception_wrapped(self, repository, deterministic_clock):
        manager, _, payment_id = self._completed(repository, deterministic_clock, RuntimeError("down"))
        with pytest.raises(PaymentExecutionError, match="reversal failed") as exc:
            manager.reverse(payment_id)
        assert exc.value.reason == "reversal_exception"

    def test_pending_cannot_be_reversed(self, repository, deterministic_clock):
        manager, _ = make_manager(repository, deterministic_clock)
        payment = create(manager)
        with pytest.raises(InvalidPaymentTransitionError):
            manager.reverse(payment.payment_id)
