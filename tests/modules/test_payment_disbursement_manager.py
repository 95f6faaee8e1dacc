"""
Disbursement Manager Tests.

Drives disbursements through ``DisbursementManager`` backed by an
in-memory repository, a stub usage provider and a deterministic clock.
"""

from datetime import timedelta

import pytest

from nexus_kernel.values import Money
from nexus_modules.payment.config import DisbursementConfig
from nexus_modules.payment.exceptions import (
    DisbursementLimitExceededError,
    DisbursementNotFoundError,
    InvalidDisbursementTransitionError,
    PaymentValidationError,
)
from nexus_modules.payment.limits import DisbursementLimits, LimitPeriod
from nexus_modules.payment.models import DisbursementStatus, PaymentMethodType, Recipient
from nexus_modules.payment.service import DisbursementManager

VENDOR = Recipient("VND-1", "Acme Supplies", account_number="000123456789")


def usd(amount):
    return Money.of(amount, "USD")


class InMemoryDisbursementRepository:
    def __init__(self):
        self.items = {}
        self.saves = 0

    def save(self, disbursement):
        self.items[disbursement.disbursement_id] = disbursement
        self.saves += 1

    def get(self, disbursement_id):
        return self.items.get(disbursement_id)

    def find_by_status(self, status):
        return [d for d in self.items.values() if d.status is status]


class StubUsage:
    def __init__(self, amount="0", count=0):
        self.amount = usd(amount)
        self.count = count
        self.periods = []

    def amount_used(self, tenant_id, period, as_of):
        self.periods.append(period)
        return self.amount

    def count_used(self, tenant_id, period, as_of):
        return self.count


@pytest.fixture
def repository():
    return InMemoryDisbursementRepository()


@pytest.fixture
def manager(repository, deterministic_clock):
    return DisbursementManager(repository, deterministic_clock)


def create(manager, amount="2500"):
    return manager.create_disbursement(
        "tenant-1", usd(amount), VENDOR, PaymentMethodType.ACH, "clerk-1",
        source_document_ids=["INV-1"],
    )


class TestCreateDisbursement:

    def test_created_in_draft_and_saved(self, manager, repository):
        disbursement = create(manager)

        assert disbursement.status is DisbursementStatus.DRAFT
        assert repository.get(disbursement.disbursement_id) == disbursement
        assert disbursement.source_document_ids == ("INV-1",)

    def test_no_approval_config_creates_approved(self, repository, deterministic_clock):
        manager = DisbursementManager(
            repository, deterministic_clock,
            config=DisbursementConfig(requires_approval_by_default=False),
        )
        assert create(manager).status is DisbursementStatus.APPROVED

    def test_over_limit_rejected(self, repository, deterministic_clock):
        manager = DisbursementManager(
            repository, deterministic_clock,
            limits=DisbursementLimits(per_transaction=usd("1000")),
        )
        with pytest.raises(DisbursementLimitExceededError):
            create(manager)
        assert repository.items == {}

    def test_over_limit_forces_approval(self, repository, deterministic_clock):
        manager = DisbursementManager(
            repository, deterministic_clock,
            config=DisbursementConfig(requires_approval_by_default=False),
            limits=DisbursementLimits(per_transaction=usd("1000"), requires_approval_above_limit=True),
        )
        assert create(manager).status is DisbursementStatus.DRAFT
        assert create(manager, "500").status is DisbursementStatus.APPROVED

    def test_period_limits_use_usage_provider(self, repository, deterministic_clock):
        usage = StubUsage(amount="9000")
        manager = DisbursementManager(
            repository, deterministic_clock,
            limits=DisbursementLimits(daily=usd("10000")),
            usage_provider=usage,
        )
        with pytest.raises(DisbursementLimitExceededError, match="daily"):
            create(manager, "1500")
        assert usage.periods == [LimitPeriod.DAILY]

    def test_count_limit(self, repository, deterministic_clock):
        manager = DisbursementManager(
            repository, deterministic_clock,
            limits=DisbursementLimits(monthly_count=3),
            usage_provider=StubUsage(count=3),
        )
        with pytest.raises(DisbursementLimitExceededError, match="Monthly"):
            create(manager)

    def test_non_positive_amount(self, manager):
        with pytest.raises(PaymentValidationError, match="positive"):
            create(manager, "0")

    def test_logs_creation(self, manager, captured_logs):
        disbursement = create(manager)
        records = [r for r in captured_logs() if r["message"] == "disbursement_created"]
        assert records[0]["disbursement_id"] == disbursement.disbursement_id
        assert records[0]["amount"] == "USD 2,500.00"


class TestDisbursementWorkflow:

    def test_approval_and_execution(self, manager, repository):
        disbursement = create(manager)
        manager.submit_for_approval(disbursement.disbursement_id)
        manager.approve(disbursement.disbursement_id, "manager-1", notes="within budget")
        manager.mark_processing(disbursement.disbursement_id)
        completed = manager.mark_completed(disbursement.disbursement_id, "PTX-99")

        assert completed.status is DisbursementStatus.COMPLETED
        assert repository.get(disbursement.disbursement_id).payment_transaction_id == "PTX-99"
        assert repository.saves == 5

    def test_reject(self, manager):
        disbursement = create(manager)
        manager.submit_for_approval(disbursement.disbursement_id)
        rejected = manager.reject(disbursement.disbursement_id, "manager-1", "duplicate invoice")
        assert rejected.status is DisbursementStatus.REJECTED

    def test_cannot_approve_draft(self, manager):
        disbursement = create(manager)
        with pytest.raises(InvalidDisbursementTransitionError):
            manager.approve(disbursement.disbursement_id, "manager-1")

    def test_failure_and_cancel(self, manager):
        disbursement = create(manager)
        manager.submit_for_approval(disbursement.disbursement_id)
        manager.approve(disbursement.disbursement_id, "manager-1")
        manager.mark_processing(disbursement.disbursement_id)
        failed = manager.mark_failed(disbursement.disbursement_id, "R01", "Insufficient funds")
        cancelled = manager.cancel(disbursement.disbursement_id, "vendor request")

        assert failed.metadata["failure_message"] == "Insufficient funds"
        assert cancelled.status is DisbursementStatus.CANCELLED

    def test_unknown_id(self, manager):
        with pytest.raises(DisbursementNotFoundError):
            manager.submit_for_approval("DSB-MISSING")


class TestScheduling:

    def test_schedule_must_be_future(self, manager, deterministic_clock):
        disbursement = create(manager)
        with pytest.raises(PaymentValidationError, match="future"):
            manager.schedule(disbursement.disbursement_id, deterministic_clock.now())

    def test_scheduled_not_processed_early(self, manager, deterministic_clock):
        disbursement = create(manager)
        manager.submit_for_approval(disbursement.disbursement_id)
        manager.approve(disbursement.disbursement_id, "manager-1")
        manager.schedule(disbursement.disbursement_id, deterministic_clock.now() + timedelta(days=2))

        assert manager.due_for_processing() == []
        with pytest.raises(PaymentValidationError, match="2024-01-03"):
            manager.mark_processing(disbursement.disbursement_id)

        deterministic_clock.advance(days=2)
        assert [d.disbursement_id for d in manager.due_for_processing("tenant-1")] == [
            disbursement.disbursement_id
        ]
        assert manager.mark_processing(disbursement.disbursement_id).status is DisbursementStatus.PROCESSING

    def test_pending_approvals_by_tenant(self, manager):
        disbursement = create(manager)
        manager.submit_for_approval(disbursement.disbursement_id)

        assert len(manager.pending_approvals("tenant-1")) == 1
        assert manager.pending_approvals("tenant-2") == []

    def test_link_documents(self, manager):
        disbursement = create(manager)
        linked = manager.link_source_documents(disbursement.disbursement_id, ["INV-2", "INV-1"])
        assert linked.source_document_ids == ("INV-1", "INV-2")
