"""
SAR Manager Tests.

Drives the SAR lifecycle through ``SarManager`` backed by an in-memory
repository and a deterministic clock.
"""

from datetime import UTC, date, datetime, timedelta

import pytest

from nexus_kernel.values import Money
from nexus_modules.aml.exceptions import SarGenerationFailedError
from nexus_modules.aml.models import (
    AmlRiskScore,
    RiskFactors,
    SarStatus,
    SarType,
    Transaction,
)
from nexus_modules.aml.monitoring import TransactionMonitor
from nexus_modules.aml.service import SarManager, sar_type_for_patterns

NARRATIVE = (
    "Customer deposited cash in amounts just under the 10,000 reporting threshold on "
    "three consecutive days and immediately wired the funds to an unrelated third party."
)


class InMemorySarRepository:
    def __init__(self):
        self.items = {}

    def save(self, sar):
        self.items[sar.sar_id] = sar

    def get(self, sar_id):
        return self.items.get(sar_id)

    def find_by_status(self, status):
        return [s for s in self.items.values() if s.status is status]

    def find_by_party(self, party_id):
        return [s for s in self.items.values() if s.party_id == party_id]


class FixedGateway:
    def __init__(self, reference="BSA-0001"):
        self.reference = reference
        self.filed = []

    def file(self, sar):
        self.filed.append(sar.sar_id)
        return self.reference


class BrokenGateway:
    def file(self, sar):
        raise ConnectionError("regulator endpoint unreachable")


@pytest.fixture
def repository():
    return InMemorySarRepository()


@pytest.fixture
def manager(repository, deterministic_clock):
    return SarManager(repository, deterministic_clock)


@pytest.fixture
def draft(manager):
    return manager.create_manual(
        "PTY-1", SarType.STRUCTURING, NARRATIVE, "analyst-1", transaction_ids=["TXN-1", "TXN-2"]
    )


def _approved(manager, sar_id):
    manager.submit_for_review(sar_id)
    return manager.approve(sar_id, "officer-2")


class TestCreation:
    """SAR creation paths."""

    def test_create_manual(self, manager, draft, repository, captured_logs):
        assert draft.status is SarStatus.DRAFT
        assert draft.sar_id.startswith("SAR-20240101-")
        assert repository.get(draft.sar_id) == draft
        assert manager.exists(draft.sar_id)

    def test_create_manual_logs(self, manager, captured_logs):
        sar = manager.create_manual("PTY-1", SarType.FRAUD, NARRATIVE, "analyst-1")
        created = [r for r in captured_logs() if r["message"] == "sar_created"]
        assert created[0]["sar_id"] == sar.sar_id

    def test_create_manual_bad_dates(self, manager):
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.create_manual(
                "PTY-1", SarType.FRAUD, NARRATIVE, "analyst-1",
                activity_start=date(2024, 1, 10), activity_end=date(2024, 1, 1),
            )
        assert exc_info.value.reason == "validation_failed"

    def test_create_from_monitoring(self, manager, deterministic_clock):
        start = datetime(2023, 12, 1, tzinfo=UTC)
        txns = [
            Transaction(f"TXN-{i}", Money.of(amount, "USD"), start + timedelta(days=i))
            for i, amount in enumerate(["9500", "9200", "8600"])
        ]
        result = TransactionMonitor(clock=deterministic_clock).analyze("PTY-7", txns)

        sar = manager.create_from_monitoring(result, "system")
        assert sar.sar_type is SarType.STRUCTURING
        assert sar.transaction_ids == ("TXN-0", "TXN-1", "TXN-2")
        assert sar.total_amount == Money.of("27300", "USD")
        assert sar.activity_start == date(2023, 12, 1)
        assert sar.activity_end == date(2023, 12, 3)
        assert "PTY-7" in sar.narrative
        assert len(sar.narrative) >= 100
        assert manager.validate(sar) == []

    def test_clean_monitoring_is_insufficient(self, manager, deterministic_clock):
        result = TransactionMonitor(clock=deterministic_clock).analyze("PTY-7", [])
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.create_from_monitoring(result, "system")
        assert exc_info.value.reason == "insufficient_evidence"
        assert exc_info.value.party_id == "PTY-7"

    def test_create_from_high_risk_assessment(self, manager, deterministic_clock):
        score = AmlRiskScore.from_factors("PTY-8", RiskFactors(100, 100, 100, 100), deterministic_clock.now())
        sar = manager.create_from_risk_assessment(score, "analyst-1", NARRATIVE)
        assert sar.sar_type is SarType.SUSPICIOUS_PARTY
        assert sar.metadata["risk_score"] == 100

    def test_low_risk_assessment_is_insufficient(self, manager, deterministic_clock):
        score = AmlRiskScore.from_factors("PTY-8", RiskFactors.zero(), deterministic_clock.now())
        with pytest.raises(SarGenerationFailedError, match="Insufficient evidence"):
            manager.create_from_risk_assessment(score, "analyst-1", NARRATIVE)

    @pytest.mark.parametrize(
        "patterns,expected",
        [
            (("velocity", "structuring"), SarType.STRUCTURING),
            (("layering",), SarType.MONEY_LAUNDERING),
            (("velocity", "geographic"), SarType.SANCTIONS_EVASION),
            (("velocity",), SarType.OTHER),
            (("round_amounts",), SarType.STRUCTURING),
            (("dormancy",), SarType.OTHER),
        ],
    )
    def test_pattern_type_priority(self, patterns, expected):
        assert sar_type_for_patterns(patterns) is expected


class TestEditing:
    """Narrative and evidence changes."""

    def test_update_narrative_and_add_transactions(self, manager, draft):
        manager.update_narrative(draft.sar_id, NARRATIVE + " Updated.")
        sar = manager.add_transactions(draft.sar_id, ["TXN-3"])
        assert sar.narrative.endswith("Updated.")
        assert sar.transaction_ids == ("TXN-1", "TXN-2", "TXN-3")

    def test_cannot_edit_under_review(self, manager, draft):
        manager.submit_for_review(draft.sar_id)
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.update_narrative(draft.sar_id, NARRATIVE)
        assert exc_info.value.reason == "not_editable"

    def test_assign_officer(self, manager, draft):
        assert manager.assign_officer(draft.sar_id, "officer-5").assigned_officer == "officer-5"


class TestWorkflow:
    """Review, approval and filing."""

    def test_full_lifecycle(self, manager, draft, deterministic_clock):
        manager.submit_for_review(draft.sar_id)
        approved = manager.approve(draft.sar_id, "officer-2")
        assert approved.status is SarStatus.APPROVED
        assert approved.approved_by == "officer-2"

        deterministic_clock.advance(days=3)
        submitted = manager.submit_to_authority(draft.sar_id, "BSA-123")
        assert submitted.status is SarStatus.SUBMITTED
        assert submitted.submitted_at == deterministic_clock.now()
        assert submitted.filing_reference == "BSA-123"

        closed = manager.close(draft.sar_id, "Acknowledged by regulator")
        assert closed.status is SarStatus.CLOSED
        assert closed.closure_reason == "Acknowledged by regulator"

    def test_validation_blocks_review(self, manager):
        sar = manager.create_manual("PTY-1", SarType.FRAUD, "Too short.", "analyst-1")
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.submit_for_review(sar.sar_id)
        assert exc_info.value.reason == "validation_failed"
        errors = exc_info.value.context["errors"]
        assert len(errors) == 2

    def test_preparer_cannot_approve(self, manager, draft):
        manager.submit_for_review(draft.sar_id)
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.approve(draft.sar_id, "analyst-1")
        assert exc_info.value.reason == "approval_required"
        assert exc_info.value.context["requirement"] == "different_officer"

    def test_submit_requires_approval(self, manager, draft):
        manager.submit_for_review(draft.sar_id)
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.submit_to_authority(draft.sar_id, "BSA-1")
        assert exc_info.value.context["requirement"] == "approval"

    def test_reject_then_reopen(self, manager, draft):
        manager.submit_for_review(draft.sar_id)
        rejected = manager.reject(draft.sar_id, "Add counterparty details")
        assert rejected.status is SarStatus.REJECTED
        assert rejected.rejection_reason == "Add counterparty details"
        assert manager.reopen(draft.sar_id).status is SarStatus.DRAFT

    def test_reject_requires_pending_review(self, manager, draft):
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.reject(draft.sar_id, "no")
        assert exc_info.value.reason == "invalid_transition"

    def test_filing_gateway_supplies_reference(self, repository, deterministic_clock, draft):
        gateway = FixedGateway()
        manager = SarManager(repository, deterministic_clock, filing_gateway=gateway)
        _approved(manager, draft.sar_id)
        sar = manager.submit_to_authority(draft.sar_id)
        assert sar.filing_reference == "BSA-0001"
        assert gateway.filed == [draft.sar_id]

    def test_filing_gateway_failure_wrapped(self, repository, deterministic_clock, draft):
        manager = SarManager(repository, deterministic_clock, filing_gateway=BrokenGateway())
        _approved(manager, draft.sar_id)
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.submit_to_authority(draft.sar_id)
        assert exc_info.value.reason == "filing_service_error"
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert manager.find_by_id(draft.sar_id).status is SarStatus.APPROVED

    def test_cannot_cancel_submitted(self, manager, draft):
        _approved(manager, draft.sar_id)
        manager.submit_to_authority(draft.sar_id, "BSA-9")
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.cancel(draft.sar_id, "duplicate")
        assert exc_info.value.reason == "already_submitted"

    def test_resubmit_is_already_submitted(self, manager, draft):
        _approved(manager, draft.sar_id)
        manager.submit_to_authority(draft.sar_id, "BSA-9")
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.submit_to_authority(draft.sar_id, "BSA-10")
        assert exc_info.value.reason == "already_submitted"

    def test_cancel_is_final(self, manager, draft):
        cancelled = manager.cancel(draft.sar_id, "Opened in error")
        assert cancelled.status is SarStatus.CANCELLED
        assert cancelled.cancellation_reason == "Opened in error"
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.cancel(draft.sar_id, "again")
        assert exc_info.value.reason == "invalid_transition"


class TestQueries:
    """Lookup, overdue tracking and summaries."""

    def test_not_found(self, manager):
        with pytest.raises(SarGenerationFailedError) as exc_info:
            manager.find_by_id("SAR-MISSING")
        assert exc_info.value.reason == "not_found"
        assert not manager.exists("SAR-MISSING")

    def test_find_overdue(self, manager, draft, deterministic_clock):
        assert manager.find_overdue() == []
        deterministic_clock.advance(days=31)
        assert [s.sar_id for s in manager.find_overdue()] == [draft.sar_id]

    def test_find_by_party(self, manager, draft):
        assert manager.find_by_party("PTY-1") == [draft]

    def test_summary(self, manager, draft, deterministic_clock):
        deterministic_clock.advance(days=10)
        summary = manager.generate_summary(draft)
        assert summary["type_label"] == "Structuring"
        assert summary["transaction_count"] == 2
        assert summary["days_until_deadline"] == 20
        assert summary["is_overdue"] is False
