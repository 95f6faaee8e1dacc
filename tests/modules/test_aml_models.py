"""
AML Model Tests.

Tests cover the immutable AML value objects:
- Risk level bands and review frequencies
- Weighted risk factor composites
- Risk score construction and comparison
- SAR status transitions and copy-on-write changes
- Alert severity factories and monitoring result queries
"""

from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from nexus_kernel.values import Money
from nexus_modules.aml.exceptions import SarGenerationFailedError
from nexus_modules.aml.models import (
    AlertSeverity,
    AmlRiskScore,
    RiskFactors,
    RiskLevel,
    SarStatus,
    SarType,
    SuspiciousActivityReport,
    TransactionAlert,
    TransactionMonitoringResult,
)

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def _draft(**overrides) -> SuspiciousActivityReport:
    params = dict(
        party_id="PTY-100",
        sar_type=SarType.STRUCTURING,
        created_at=NOW,
        narrative="Customer made repeated cash deposits just below the reporting threshold.",
        total_amount=Money.of("28500.00", "USD"),
        activity_start=date(2023, 12, 1),
        activity_end=date(2023, 12, 15),
        transaction_ids=("TXN-1", "TXN-2"),
        created_by="analyst-1",
    )
    params.update(overrides)
    return SuspiciousActivityReport.create_draft(**params)


class TestRiskLevel:
    """Score bands and derived policy."""

    @pytest.mark.parametrize(
        "score,expected",
        [(0, RiskLevel.LOW), (39, RiskLevel.LOW), (40, RiskLevel.MEDIUM),
         (69, RiskLevel.MEDIUM), (70, RiskLevel.HIGH), (100, RiskLevel.HIGH)],
    )
    def test_from_score(self, score, expected):
        assert RiskLevel.from_score(score) is expected

    def test_review_frequency(self):
        assert RiskLevel.LOW.review_frequency_days == 365
        assert RiskLevel.MEDIUM.review_frequency_days == 180
        assert RiskLevel.HIGH.review_frequency_days == 90

    def test_edd_and_monitoring(self):
        assert RiskLevel.HIGH.requires_edd
        assert not RiskLevel.MEDIUM.requires_edd
        assert RiskLevel.MEDIUM.requires_enhanced_monitoring
        assert not RiskLevel.LOW.requires_enhanced_monitoring

    def test_is_higher_than(self):
        assert RiskLevel.HIGH.is_higher_than(RiskLevel.MEDIUM)
        assert not RiskLevel.LOW.is_higher_than(RiskLevel.LOW)


class TestRiskFactors:
    """Weighted composite of the four factor scores."""

    def test_composite_is_weighted_sum(self):
        factors = RiskFactors(80, 60, 0, 40)
        # 80*.3 + 60*.2 + 0*.3 + 40*.2 = 24 + 12 + 0 + 8
        assert factors.composite_score == 44
        assert factors.risk_level is RiskLevel.MEDIUM

    def test_all_max_is_100(self):
        assert RiskFactors(100, 100, 100, 100).composite_score == 100

    def test_zero(self):
        assert RiskFactors.zero().composite_score == 0
        assert RiskFactors.zero().risk_level is RiskLevel.LOW

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError, match="jurisdiction"):
            RiskFactors(jurisdiction_score=101)
        with pytest.raises(ValueError, match="sanctions"):
            RiskFactors(sanctions_score=-1)

    def test_highest_factor_and_threshold(self):
        factors = RiskFactors(80, 60, 90, 40)
        assert factors.highest_risk_factor == "sanctions"
        assert factors.max_score == 90
        assert factors.factors_above_threshold(60) == ["jurisdiction", "sanctions"]
        assert factors.has_high_risk_factor
        assert factors.has_sanctions_risk

    def test_with_copies(self):
        factors = RiskFactors.zero().with_transaction_score(50)
        assert factors.transaction_score == 50
        assert RiskFactors.zero().transaction_score == 0

    def test_to_dict_includes_composite(self):
        data = RiskFactors(80, 60, 0, 40).to_dict()
        assert data["composite_score"] == 44
        assert RiskFactors.from_dict(data) == RiskFactors(80, 60, 0, 40)


class TestAmlRiskScore:
    """Risk assessment snapshots."""

    def test_from_factors_sets_review_date(self):
        score = AmlRiskScore.from_factors("PTY-1", RiskFactors(80, 60, 0, 40), NOW)
        assert score.overall_score == 44
        assert score.risk_level is RiskLevel.MEDIUM
        assert score.next_review_date == date(2024, 1, 1) + timedelta(days=180)
        assert score.recommendations

    def test_override_score_drives_level(self):
        score = AmlRiskScore.from_factors("PTY-1", RiskFactors(80, 60, 0, 40), NOW, overall_score=88)
        assert score.risk_level is RiskLevel.HIGH
        assert score.requires_edd
        assert "Conduct enhanced due diligence" in score.recommendations

    def test_invalid_score_rejected(self):
        with pytest.raises(ValueError):
            AmlRiskScore(
                party_id="PTY-1",
                overall_score=120,
                risk_level=RiskLevel.HIGH,
                factors=RiskFactors.zero(),
                assessed_at=NOW,
                next_review_date=date(2024, 4, 1),
            )

    def test_review_dates(self):
        score = AmlRiskScore.from_factors("PTY-1", RiskFactors(100, 100, 100, 100), NOW)
        review = score.next_review_date
        assert score.days_until_review(review - timedelta(days=10)) == 10
        assert score.is_review_due_soon(review - timedelta(days=10))
        assert not score.is_review_overdue(review)
        assert score.is_review_overdue(review + timedelta(days=1))

    def test_comparison_with_previous(self):
        before = AmlRiskScore.from_factors("PTY-1", RiskFactors(20, 20, 0, 0), NOW)
        after = AmlRiskScore.from_factors("PTY-1", RiskFactors(100, 100, 100, 100), NOW)
        assert after.score_change(before) == 100 - before.overall_score
        assert after.has_increased_from(before)
        assert after.has_escalated_from(before)
        assert not before.has_escalated_from(after)

    def test_round_trip(self):
        score = AmlRiskScore.from_factors("PTY-1", RiskFactors(80, 60, 0, 40), NOW).with_metadata(
            source="onboarding"
        )
        assert AmlRiskScore.from_dict(score.to_dict()) == score


class TestSarStatus:
    """SAR lifecycle table."""

    def test_allowed_transitions(self):
        assert SarStatus.DRAFT.allowed_transitions() == {SarStatus.PENDING_REVIEW, SarStatus.CANCELLED}
        assert SarStatus.SUBMITTED.allowed_transitions() == {SarStatus.CLOSED}
        assert SarStatus.CLOSED.allowed_transitions() == frozenset()

    def test_illegal_jump_rejected(self):
        assert not SarStatus.DRAFT.can_transition_to(SarStatus.SUBMITTED)
        assert SarStatus.REJECTED.can_transition_to(SarStatus.DRAFT)

    def test_predicates(self):
        assert SarStatus.REJECTED.is_editable
        assert SarStatus.APPROVED.is_pending
        assert SarStatus.CANCELLED.is_final
        assert SarStatus.CLOSED.is_submitted
        assert not SarStatus.APPROVED.is_submitted

    def test_type_labels(self):
        assert SarType.MONEY_LAUNDERING.label == "Money Laundering"
        assert SarType.BRIBERY_CORRUPTION.label == "Bribery/Corruption"


class TestSuspiciousActivityReport:
    """Immutable SAR value object."""

    def test_create_draft_id_format(self):
        sar = _draft()
        assert sar.status is SarStatus.DRAFT
        assert sar.sar_id.startswith("SAR-20240101-")
        assert len(sar.sar_id) == len("SAR-20240101-") + 8

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="Activity end date cannot be before start date"):
            _draft(activity_start=date(2024, 1, 10), activity_end=date(2024, 1, 1))

    def test_full_lifecycle_stamps_times(self):
        sar = _draft()
        sar = sar.submit_for_review(NOW)
        sar = sar.approve("officer-2", NOW)
        submitted_at = NOW + timedelta(days=2)
        sar = sar.submit_to_authority("FINCEN-123", submitted_at)
        assert sar.status is SarStatus.SUBMITTED
        assert sar.submitted_at == submitted_at
        assert sar.filing_reference == "FINCEN-123"
        assert sar.approved_by == "officer-2"

        closed = sar.close("Filed and acknowledged", NOW + timedelta(days=5))
        assert closed.status is SarStatus.CLOSED
        assert closed.closed_at == NOW + timedelta(days=5)

    def test_draft_to_submitted_rejected(self):
        sar = _draft()
        with pytest.raises(SarGenerationFailedError) as exc_info:
            sar.transition_to(SarStatus.SUBMITTED, NOW)
        assert exc_info.value.reason == "invalid_transition"
        assert sar.status is SarStatus.DRAFT

    def test_copy_on_write(self):
        sar = _draft()
        updated = sar.with_transaction_ids(("TXN-2", "TXN-3")).with_assigned_officer("officer-9")
        assert updated.transaction_ids == ("TXN-1", "TXN-2", "TXN-3")
        assert updated.assigned_officer == "officer-9"
        assert sar.transaction_ids == ("TXN-1", "TXN-2")
        assert sar.assigned_officer is None

    def test_overdue_after_thirty_days(self):
        sar = _draft()
        assert not sar.is_overdue(NOW + timedelta(days=30))
        assert sar.is_overdue(NOW + timedelta(days=31))
        assert sar.days_until_deadline(NOW + timedelta(days=10)) == 20

    def test_submitted_is_never_overdue(self):
        sar = _draft().submit_for_review(NOW).approve("officer-2", NOW)
        sar = sar.submit_to_authority("REF", NOW)
        assert not sar.is_overdue(NOW + timedelta(days=90))

    def test_activity_period_days(self):
        assert _draft().activity_period_days == 15
        assert _draft(activity_start=None, activity_end=None).activity_period_days is None

    def test_round_trip(self):
        sar = _draft().submit_for_review(NOW).with_metadata(case="C-1")
        restored = SuspiciousActivityReport.from_dict(sar.to_dict())
        assert restored == sar

    def test_round_trip_keeps_alerts(self):
        threshold = Money.of("50000", "USD")
        alerts = (
            TransactionAlert.large_amount("TXN-1", Money.of("300000", "USD"), threshold, NOW),
            TransactionAlert.round_amounts(("TXN-1", "TXN-2"), Decimal("0.8"), NOW),
        )
        sar = _draft(alerts=alerts)
        restored = SuspiciousActivityReport.from_dict(sar.to_dict())
        assert restored.alerts == alerts
        assert restored == sar


class TestTransactionAlerts:
    """Alert factories and severity rules."""

    @pytest.mark.parametrize(
        "ratio,severity",
        [("5", AlertSeverity.CRITICAL), ("3", AlertSeverity.HIGH),
         ("1.5", AlertSeverity.MEDIUM), ("1.2", AlertSeverity.LOW)],
    )
    def test_velocity_severity(self, ratio, severity):
        alert = TransactionAlert.velocity(Decimal(ratio), Money.of("1000", "USD"), NOW)
        assert alert.severity is severity

    def test_large_amount_severity(self):
        threshold = Money.of("50000", "USD")
        assert TransactionAlert.large_amount("T1", Money.of("250000", "USD"), threshold, NOW).severity \
            is AlertSeverity.HIGH
        assert TransactionAlert.large_amount("T1", Money.of("60000", "USD"), threshold, NOW).severity \
            is AlertSeverity.MEDIUM

    def test_severity_tables(self):
        assert AlertSeverity.CRITICAL.sla_hours == 4
        assert AlertSeverity.LOW.sla_hours == 168
        assert str(AlertSeverity.HIGH.weight) == "1.3"


class TestTransactionMonitoringResult:
    """Derived monitoring queries."""

    def test_clean(self):
        result = TransactionMonitoringResult.clean("PTY-1", NOW)
        assert not result.is_suspicious
        assert result.highest_severity is None
        assert not result.should_consider_sar
        assert result.review_deadline_hours is None

    def test_high_alert_warrants_sar(self):
        alert = TransactionAlert.large_amount(
            "T1", Money.of("300000", "USD"), Money.of("50000", "USD"), NOW
        )
        result = TransactionMonitoringResult(
            party_id="PTY-1",
            is_suspicious=False,
            risk_score=20,
            analyzed_at=NOW,
            alerts=(alert,),
            transaction_count=2,
            total_volume=Money.of("300001", "USD"),
        )
        assert result.should_consider_sar
        assert result.highest_severity is AlertSeverity.HIGH
        assert result.alert_count_by_severity()[AlertSeverity.HIGH] == 1
        assert result.average_transaction_value == Money.of("150000.50", "USD")
        assert result.review_deadline_hours == 24
        assert result.requires_review
        assert not result.requires_immediate_action

    def test_score_out_of_range(self):
        with pytest.raises(ValueError):
            TransactionMonitoringResult(party_id="P", is_suspicious=True, risk_score=101, analyzed_at=NOW)
