"""
AML Domain Models.

Risk levels and factor scores, risk assessments, transaction alerts,
monitoring results and the Suspicious Activity Report itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Self

from nexus_kernel.ids import generate_dated_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.aml.exceptions import SarGenerationFailedError
from nexus_modules.aml.workflows import SAR_WORKFLOW

logger = get_logger("modules.aml.models")


def round_score(value: Decimal | int | float) -> int:
    """Round half up and clamp to the 0-100 score range."""
    rounded = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, rounded))


# =============================================================================
# Risk levels and factors
# =============================================================================


class RiskLevel(str, Enum):
    """Customer risk rating bands."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_score(cls, score: int) -> RiskLevel:
        if score < 40:
            return cls.LOW
        if score < 70:
            return cls.MEDIUM
        return cls.HIGH

    @property
    def review_frequency_days(self) -> int:
        return {RiskLevel.LOW: 365, RiskLevel.MEDIUM: 180, RiskLevel.HIGH: 90}[self]

    @property
    def rank(self) -> int:
        return {RiskLevel.LOW: 1, RiskLevel.MEDIUM: 2, RiskLevel.HIGH: 3}[self]

    @property
    def requires_edd(self) -> bool:
        return self is RiskLevel.HIGH

    @property
    def requires_enhanced_monitoring(self) -> bool:
        return self.rank >= RiskLevel.MEDIUM.rank

    def is_higher_than(self, other: RiskLevel) -> bool:
        return self.rank > other.rank


@dataclass(frozen=True)
class RiskFactors:
    """
    The four weighted components of an AML risk score, each 0-100.

    Weights sum to 1: jurisdiction 0.30, business type 0.20,
    sanctions 0.30, transaction behaviour 0.20.
    """

    jurisdiction_score: int = 0
    business_type_score: int = 0
    sanctions_score: int = 0
    transaction_score: int = 0

    JURISDICTION_WEIGHT = Decimal("0.30")
    BUSINESS_TYPE_WEIGHT = Decimal("0.20")
    SANCTIONS_WEIGHT = Decimal("0.30")
    TRANSACTION_WEIGHT = Decimal("0.20")

    HIGH_RISK_THRESHOLD = 70

    def __post_init__(self) -> None:
        for name, value in self._named_scores().items():
            if not 0 <= value <= 100:
                raise ValueError(f"{name} score must be between 0 and 100, got {value}")

    def _named_scores(self) -> dict[str, int]:
        return {
            "jurisdiction": self.jurisdiction_score,
            "business_type": self.business_type_score,
            "sanctions": self.sanctions_score,
            "transaction": self.transaction_score,
        }

    @classmethod
    def zero(cls) -> Self:
        return cls()

    @property
    def composite_score(self) -> int:
        weighted = (
            self.jurisdiction_score * self.JURISDICTION_WEIGHT
            + self.business_type_score * self.BUSINESS_TYPE_WEIGHT
            + self.sanctions_score * self.SANCTIONS_WEIGHT
            + self.transaction_score * self.TRANSACTION_WEIGHT
        )
        return round_score(weighted)

    @property
    def risk_level(self) -> RiskLevel:
        return RiskLevel.from_score(self.composite_score)

    @property
    def max_score(self) -> int:
        return max(self._named_scores().values())

    @property
    def highest_risk_factor(self) -> str:
        """Name of the highest-scoring factor; ties resolve in declaration order."""
        scores = self._named_scores()
        return max(scores, key=lambda name: scores[name])

    def factors_above_threshold(self, threshold: int) -> list[str]:
        return [name for name, value in self._named_scores().items() if value > threshold]

    @property
    def has_high_risk_factor(self) -> bool:
        return self.max_score >= self.HIGH_RISK_THRESHOLD

    @property
    def has_sanctions_risk(self) -> bool:
        return self.sanctions_score > 0

    def with_jurisdiction_score(self, score: int) -> Self:
        return replace(self, jurisdiction_score=score)

    def with_business_type_score(self, score: int) -> Self:
        return replace(self, business_type_score=score)

    def with_sanctions_score(self, score: int) -> Self:
        return replace(self, sanctions_score=score)

    def with_transaction_score(self, score: int) -> Self:
        return replace(self, transaction_score=score)

    def to_dict(self) -> dict[str, int]:
        return {
            "jurisdiction_score": self.jurisdiction_score,
            "business_type_score": self.business_type_score,
            "sanctions_score": self.sanctions_score,
            "transaction_score": self.transaction_score,
            "composite_score": self.composite_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            jurisdiction_score=int(data.get("jurisdiction_score", 0)),
            business_type_score=int(data.get("business_type_score", 0)),
            sanctions_score=int(data.get("sanctions_score", 0)),
            transaction_score=int(data.get("transaction_score", 0)),
        )


def _recommendations_for(level: RiskLevel, factors: RiskFactors) -> tuple[str, ...]:
    recs: list[str] = []
    if level is RiskLevel.HIGH:
        recs.append("Conduct enhanced due diligence")
        recs.append("Obtain senior management approval to continue the relationship")
    elif level is RiskLevel.MEDIUM:
        recs.append("Apply enhanced transaction monitoring")
    else:
        recs.append("Maintain standard customer due diligence")

    if factors.has_sanctions_risk:
        recs.append("Review and disposition sanctions screening matches")
    if factors.jurisdiction_score >= RiskFactors.HIGH_RISK_THRESHOLD:
        recs.append("Verify source of funds for high-risk jurisdiction exposure")
    if factors.transaction_score >= RiskFactors.HIGH_RISK_THRESHOLD:
        recs.append("Investigate unusual transaction behaviour")
    return tuple(recs)


@dataclass(frozen=True)
class AmlRiskScore:
    """Point-in-time AML risk assessment for a party."""

    party_id: str
    overall_score: int
    risk_level: RiskLevel
    factors: RiskFactors
    assessed_at: datetime
    next_review_date: date
    recommendations: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 <= self.overall_score <= 100:
            raise ValueError(f"Risk score must be between 0 and 100, got {self.overall_score}")

    @classmethod
    def from_factors(
        cls,
        party_id: str,
        factors: RiskFactors,
        assessed_at: datetime,
        *,
        overall_score: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Self:
        """
        Build a score from its factors.

        ``overall_score`` overrides the factor composite (used when a PEP
        multiplier has been applied); the level and review date follow it.
        """
        score = factors.composite_score if overall_score is None else overall_score
        level = RiskLevel.from_score(score)
        return cls(
            party_id=party_id,
            overall_score=score,
            risk_level=level,
            factors=factors,
            assessed_at=assessed_at,
            next_review_date=assessed_at.date() + timedelta(days=level.review_frequency_days),
            recommendations=_recommendations_for(level, factors),
            metadata=dict(metadata or {}),
        )

    @property
    def requires_edd(self) -> bool:
        return self.risk_level.requires_edd

    def is_review_overdue(self, today: date) -> bool:
        return today > self.next_review_date

    def is_review_due_soon(self, today: date, days: int = 30) -> bool:
        return 0 <= self.days_until_review(today) <= days

    def days_until_review(self, today: date) -> int:
        return (self.next_review_date - today).days

    def score_change(self, previous: AmlRiskScore) -> int:
        return self.overall_score - previous.overall_score

    def has_increased_from(self, previous: AmlRiskScore) -> bool:
        return self.score_change(previous) > 0

    def has_escalated_from(self, previous: AmlRiskScore) -> bool:
        return self.risk_level.is_higher_than(previous.risk_level)

    def with_metadata(self, **metadata: Any) -> Self:
        return replace(self, metadata={**self.metadata, **metadata})

    def to_dict(self) -> dict[str, Any]:
        return {
            "party_id": self.party_id,
            "overall_score": self.overall_score,
            "risk_level": self.risk_level.value,
            "factors": self.factors.to_dict(),
            "assessed_at": self.assessed_at.isoformat(),
            "next_review_date": self.next_review_date.isoformat(),
            "recommendations": list(self.recommendations),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            party_id=data["party_id"],
            overall_score=int(data["overall_score"]),
            risk_level=RiskLevel(data["risk_level"]),
            factors=RiskFactors.from_dict(data.get("factors", {})),
            assessed_at=datetime.fromisoformat(data["assessed_at"]),
            next_review_date=date.fromisoformat(data["next_review_date"]),
            recommendations=tuple(data.get("recommendations", ())),
            metadata=dict(data.get("metadata", {})),
        )


# =============================================================================
# Transactions, alerts and monitoring results
# =============================================================================


class TransactionDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class Transaction:
    """A monitored transaction as supplied by the host ledger."""
    transaction_id: str
    amount: Money
    occurred_at: datetime
    direction: TransactionDirection = TransactionDirection.OUTBOUND
    counterparty_id: str | None = None
    counterparty_country: str | None = None


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return {
            AlertSeverity.LOW: 1,
            AlertSeverity.MEDIUM: 2,
            AlertSeverity.HIGH: 3,
            AlertSeverity.CRITICAL: 4,
        }[self]

    @property
    def weight(self) -> Decimal:
        """Risk score multiplier applied when this is the worst alert."""
        return {
            AlertSeverity.LOW: Decimal("1.0"),
            AlertSeverity.MEDIUM: Decimal("1.1"),
            AlertSeverity.HIGH: Decimal("1.3"),
            AlertSeverity.CRITICAL: Decimal("1.5"),
        }[self]

    @property
    def sla_hours(self) -> int:
        return {
            AlertSeverity.LOW: 168,
            AlertSeverity.MEDIUM: 72,
            AlertSeverity.HIGH: 24,
            AlertSeverity.CRITICAL: 4,
        }[self]


class AlertType(str, Enum):
    STRUCTURING = "structuring"
    VELOCITY = "velocity"
    GEOGRAPHIC = "geographic"
    AMOUNT = "amount"
    COUNTERPARTY = "counterparty"
    PATTERN = "pattern"
    THRESHOLD = "threshold"
    DORMANCY = "dormancy"


@dataclass(frozen=True)
class TransactionAlert:
    """A single red flag raised by transaction monitoring."""

    alert_type: AlertType
    severity: AlertSeverity
    description: str
    detected_at: datetime
    transaction_ids: tuple[str, ...] = ()
    amount: Money | None = None
    evidence: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def structuring(
        cls,
        transaction_ids: tuple[str, ...],
        total: Money,
        threshold: Money,
        detected_at: datetime,
    ) -> Self:
        return cls(
            alert_type=AlertType.STRUCTURING,
            severity=AlertSeverity.HIGH,
            description=(
                f"{len(transaction_ids)} transactions just below the "
                f"{threshold.format()} reporting threshold"
            ),
            detected_at=detected_at,
            transaction_ids=tuple(transaction_ids),
            amount=total,
            evidence={"count": len(transaction_ids), "threshold": str(threshold.amount)},
        )

    @classmethod
    def velocity(
        cls,
        ratio: Decimal,
        total: Money,
        detected_at: datetime,
        *,
        basis: str = "historical average",
        evidence: dict[str, Any] | None = None,
    ) -> Self:
        """``ratio`` is current activity over ``basis``."""
        if ratio >= 5:
            severity = AlertSeverity.CRITICAL
        elif ratio >= 3:
            severity = AlertSeverity.HIGH
        elif ratio >= Decimal("1.5"):
            severity = AlertSeverity.MEDIUM
        else:
            severity = AlertSeverity.LOW
        percent = int((ratio * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return cls(
            alert_type=AlertType.VELOCITY,
            severity=severity,
            description=f"Transaction activity at {percent}% of {basis}",
            detected_at=detected_at,
            amount=total,
            evidence={"ratio": str(ratio), **(evidence or {})},
        )

    @classmethod
    def geographic(
        cls,
        countries: tuple[str, ...],
        high_risk_countries: tuple[str, ...],
        detected_at: datetime,
    ) -> Self:
        severity = AlertSeverity.HIGH if high_risk_countries else AlertSeverity.MEDIUM
        return cls(
            alert_type=AlertType.GEOGRAPHIC,
            severity=severity,
            description=f"Activity across {len(countries)} countries",
            detected_at=detected_at,
            evidence={
                "countries": list(countries),
                "high_risk_countries": list(high_risk_countries),
            },
        )

    @classmethod
    def large_amount(
        cls,
        transaction_id: str,
        amount: Money,
        threshold: Money,
        detected_at: datetime,
    ) -> Self:
        severity = AlertSeverity.HIGH if amount >= threshold * 5 else AlertSeverity.MEDIUM
        return cls(
            alert_type=AlertType.AMOUNT,
            severity=severity,
            description=f"Large transaction of {amount.format()}",
            detected_at=detected_at,
            transaction_ids=(transaction_id,),
            amount=amount,
            evidence={"threshold": str(threshold.amount)},
        )

    @classmethod
    def round_amounts(
        cls,
        transaction_ids: tuple[str, ...],
        ratio: Decimal,
        detected_at: datetime,
    ) -> Self:
        return cls(
            alert_type=AlertType.PATTERN,
            severity=AlertSeverity.MEDIUM,
            description=f"{len(transaction_ids)} round-amount transactions",
            detected_at=detected_at,
            transaction_ids=tuple(transaction_ids),
            evidence={"pattern": "round_amounts", "ratio": str(ratio)},
        )

    @classmethod
    def daily_aggregation(
        cls,
        day: date,
        total: Money,
        limit: Money,
        transaction_ids: tuple[str, ...],
        detected_at: datetime,
    ) -> Self:
        severity = AlertSeverity.HIGH if total > limit * 2 else AlertSeverity.MEDIUM
        return cls(
            alert_type=AlertType.THRESHOLD,
            severity=severity,
            description=f"Daily total {total.format()} on {day.isoformat()} exceeds {limit.format()}",
            detected_at=detected_at,
            transaction_ids=tuple(transaction_ids),
            amount=total,
            evidence={"day": day.isoformat(), "limit": str(limit.amount)},
        )

    @classmethod
    def dormancy(cls, dormant_days: int, transaction_ids: tuple[str, ...], detected_at: datetime) -> Self:
        return cls(
            alert_type=AlertType.DORMANCY,
            severity=AlertSeverity.MEDIUM,
            description=f"Account reactivated after {dormant_days} dormant days",
            detected_at=detected_at,
            transaction_ids=tuple(transaction_ids),
            evidence={"dormant_days": dormant_days},
        )

    @property
    def is_high_priority(self) -> bool:
        return self.severity.rank >= AlertSeverity.HIGH.rank

    @property
    def requires_immediate_action(self) -> bool:
        return self.severity is AlertSeverity.CRITICAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.alert_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "detected_at": self.detected_at.isoformat(),
            "transaction_ids": list(self.transaction_ids),
            "amount": self.amount.to_dict() if self.amount else None,
            "evidence": dict(self.evidence),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        amount = data.get("amount")
        return cls(
            alert_type=AlertType(data["type"]),
            severity=AlertSeverity(data["severity"]),
            description=data["description"],
            detected_at=datetime.fromisoformat(data["detected_at"]),
            transaction_ids=tuple(data.get("transaction_ids", ())),
            amount=Money.from_dict(amount) if amount else None,
            evidence=dict(data.get("evidence") or {}),
        )


@dataclass(frozen=True)
class TransactionMonitoringResult:
    """Outcome of analyzing a party's transactions over a period."""

    party_id: str
    is_suspicious: bool
    risk_score: int
    analyzed_at: datetime
    alerts: tuple[TransactionAlert, ...] = ()
    patterns: tuple[str, ...] = ()
    transaction_count: int = 0
    total_volume: Money | None = None
    period_start: datetime | None = None
    period_end: datetime | None = None

    SAR_SCORE_THRESHOLD = 70

    def __post_init__(self) -> None:
        if not 0 <= self.risk_score <= 100:
            raise ValueError(f"Risk score must be between 0 and 100, got {self.risk_score}")

    @classmethod
    def clean(
        cls,
        party_id: str,
        analyzed_at: datetime,
        transaction_count: int = 0,
        total_volume: Money | None = None,
    ) -> Self:
        return cls(
            party_id=party_id,
            is_suspicious=False,
            risk_score=0,
            analyzed_at=analyzed_at,
            transaction_count=transaction_count,
            total_volume=total_volume,
        )

    @property
    def has_alerts(self) -> bool:
        return bool(self.alerts)

    @property
    def highest_severity(self) -> AlertSeverity | None:
        if not self.alerts:
            return None
        return max((a.severity for a in self.alerts), key=lambda s: s.rank)

    @property
    def should_consider_sar(self) -> bool:
        if self.is_suspicious and self.risk_score >= self.SAR_SCORE_THRESHOLD:
            return True
        return any(a.is_high_priority for a in self.alerts)

    def alerts_by_severity(self, severity: AlertSeverity) -> tuple[TransactionAlert, ...]:
        return tuple(a for a in self.alerts if a.severity is severity)

    def alert_count_by_severity(self) -> dict[AlertSeverity, int]:
        return {s: len(self.alerts_by_severity(s)) for s in AlertSeverity}

    @property
    def average_transaction_value(self) -> Money | None:
        if self.total_volume is None or self.transaction_count == 0:
            return None
        return (self.total_volume / self.transaction_count).round()

    @property
    def requires_immediate_action(self) -> bool:
        return any(a.requires_immediate_action for a in self.alerts)

    @property
    def requires_review(self) -> bool:
        return self.is_suspicious or self.has_alerts

    @property
    def review_deadline_hours(self) -> int | None:
        highest = self.highest_severity
        return highest.sla_hours if highest else None


# =============================================================================
# Suspicious Activity Reports
# =============================================================================


class SarStatus(str, Enum):
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUBMITTED = "submitted"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @property
    def is_editable(self) -> bool:
        return self in (SarStatus.DRAFT, SarStatus.REJECTED)

    @property
    def is_pending(self) -> bool:
        return self in (SarStatus.PENDING_REVIEW, SarStatus.APPROVED)

    @property
    def is_final(self) -> bool:
        return SAR_WORKFLOW.is_terminal(self)

    @property
    def is_submitted(self) -> bool:
        return self in (SarStatus.SUBMITTED, SarStatus.CLOSED)

    def allowed_transitions(self) -> frozenset[SarStatus]:
        return frozenset(SarStatus(s) for s in SAR_WORKFLOW.allowed_targets(self))

    def can_transition_to(self, target: SarStatus) -> bool:
        return SAR_WORKFLOW.can_transition(self, target)


class SarType(str, Enum):
    STRUCTURING = "structuring"
    MONEY_LAUNDERING = "money_laundering"
    TERRORIST_FINANCING = "terrorist_financing"
    FRAUD = "fraud"
    IDENTITY_THEFT = "identity_theft"
    SANCTIONS_EVASION = "sanctions_evasion"
    BRIBERY_CORRUPTION = "bribery_corruption"
    TAX_EVASION = "tax_evasion"
    INSIDER_TRADING = "insider_trading"
    SUSPICIOUS_PARTY = "suspicious_party"
    OTHER = "other"

    @property
    def label(self) -> str:
        if self is SarType.BRIBERY_CORRUPTION:
            return "Bribery/Corruption"
        return self.value.replace("_", " ").title()


FILING_DEADLINE_DAYS = 30


@dataclass(frozen=True)
class SuspiciousActivityReport:
    """
    Immutable SAR. Every change returns a new instance.

    The filing clock starts at ``created_at``; a SAR not yet submitted
    more than ``FILING_DEADLINE_DAYS`` later is overdue.
    """

    sar_id: str
    party_id: str
    sar_type: SarType
    created_at: datetime
    status: SarStatus = SarStatus.DRAFT
    narrative: str = ""
    total_amount: Money | None = None
    activity_start: date | None = None
    activity_end: date | None = None
    transaction_ids: tuple[str, ...] = ()
    alerts: tuple[TransactionAlert, ...] = ()
    filing_reference: str | None = None
    assigned_officer: str | None = None
    created_by: str = "system"
    approved_by: str | None = None
    submitted_at: datetime | None = None
    closed_at: datetime | None = None
    closure_reason: str | None = None
    rejection_reason: str | None = None
    cancellation_reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.party_id:
            raise ValueError("Party ID is required")
        if (
            self.activity_start is not None
            and self.activity_end is not None
            and self.activity_end < self.activity_start
        ):
            raise ValueError("Activity end date cannot be before start date")

    @classmethod
    def create_draft(
        cls,
        party_id: str,
        sar_type: SarType,
        created_at: datetime,
        *,
        narrative: str = "",
        total_amount: Money | None = None,
        activity_start: date | None = None,
        activity_end: date | None = None,
        transaction_ids: tuple[str, ...] = (),
        alerts: tuple[TransactionAlert, ...] = (),
        created_by: str = "system",
        metadata: dict[str, Any] | None = None,
    ) -> Self:
        return cls(
            sar_id=generate_dated_id("SAR", created_at.date()),
            party_id=party_id,
            sar_type=sar_type,
            created_at=created_at,
            narrative=narrative,
            total_amount=total_amount,
            activity_start=activity_start,
            activity_end=activity_end,
            transaction_ids=tuple(transaction_ids),
            alerts=tuple(alerts),
            created_by=created_by,
            metadata=dict(metadata or {}),
        )

    # -- lifecycle ---------------------------------------------------------

    def transition_to(self, status: SarStatus, at: datetime) -> Self:
        """
        Move to ``status``, stamping ``submitted_at`` or ``closed_at``.

        Raises:
            SarGenerationFailedError: reason ``invalid_transition``.
        """
        if not self.status.can_transition_to(status):
            raise SarGenerationFailedError.invalid_transition(
                self.sar_id, self.status.value, status.value
            )
        changes: dict[str, Any] = {"status": status}
        if status is SarStatus.SUBMITTED:
            changes["submitted_at"] = at
        elif status is SarStatus.CLOSED:
            changes["closed_at"] = at
        logger.debug(
            "sar_status_changed",
            extra={"sar_id": self.sar_id, "from": self.status.value, "to": status.value},
        )
        return replace(self, **changes)

    def submit_for_review(self, at: datetime) -> Self:
        return self.transition_to(SarStatus.PENDING_REVIEW, at)

    def approve(self, approver: str, at: datetime) -> Self:
        return replace(self.transition_to(SarStatus.APPROVED, at), approved_by=approver)

    def reject(self, reason: str, at: datetime) -> Self:
        return self.transition_to(SarStatus.REJECTED, at).with_rejection_reason(reason)

    def submit_to_authority(self, filing_reference: str, at: datetime) -> Self:
        return self.transition_to(SarStatus.SUBMITTED, at).with_filing_reference(filing_reference)

    def close(self, reason: str, at: datetime) -> Self:
        return replace(self.transition_to(SarStatus.CLOSED, at), closure_reason=reason)

    def cancel(self, reason: str, at: datetime) -> Self:
        return self.transition_to(SarStatus.CANCELLED, at).with_cancellation_reason(reason)

    # -- copy-on-write -----------------------------------------------------

    def with_narrative(self, narrative: str) -> Self:
        return replace(self, narrative=narrative)

    def with_transaction_ids(self, transaction_ids: tuple[str, ...]) -> Self:
        merged = tuple(dict.fromkeys((*self.transaction_ids, *transaction_ids)))
        return replace(self, transaction_ids=merged)

    def with_assigned_officer(self, officer_id: str) -> Self:
        return replace(self, assigned_officer=officer_id)

    def with_rejection_reason(self, reason: str) -> Self:
        return replace(self, rejection_reason=reason)

    def with_cancellation_reason(self, reason: str) -> Self:
        return replace(self, cancellation_reason=reason)

    def with_filing_reference(self, reference: str) -> Self:
        return replace(self, filing_reference=reference)

    def with_metadata(self, **metadata: Any) -> Self:
        return replace(self, metadata={**self.metadata, **metadata})

    # -- derived -----------------------------------------------------------

    @property
    def filing_deadline(self) -> date:
        return self.created_at.date() + timedelta(days=FILING_DEADLINE_DAYS)

    def is_overdue(self, now: datetime) -> bool:
        if self.status.is_submitted or self.status.is_final:
            return False
        return (now - self.created_at) > timedelta(days=FILING_DEADLINE_DAYS)

    def days_until_deadline(self, now: datetime) -> int:
        return (self.filing_deadline - now.date()).days

    @property
    def activity_period_days(self) -> int | None:
        if self.activity_start is None or self.activity_end is None:
            return None
        return (self.activity_end - self.activity_start).days + 1

    @property
    def type_label(self) -> str:
        return self.sar_type.label

    # -- serialization -----------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        def _iso(value: date | datetime | None) -> str | None:
            return value.isoformat() if value is not None else None

        return {
            "sar_id": self.sar_id,
            "party_id": self.party_id,
            "status": self.status.value,
            "type": self.sar_type.value,
            "narrative": self.narrative,
            "total_amount": str(self.total_amount.amount) if self.total_amount else None,
            "currency": self.total_amount.currency.code if self.total_amount else None,
            "activity_start": _iso(self.activity_start),
            "activity_end": _iso(self.activity_end),
            "transaction_ids": list(self.transaction_ids),
            "alerts": [a.to_dict() for a in self.alerts],
            "filing_reference": self.filing_reference,
            "assigned_officer": self.assigned_officer,
            "created_by": self.created_by,
            "approved_by": self.approved_by,
            "created_at": _iso(self.created_at),
            "submitted_at": _iso(self.submitted_at),
            "closed_at": _iso(self.closed_at),
            "closure_reason": self.closure_reason,
            "rejection_reason": self.rejection_reason,
            "cancellation_reason": self.cancellation_reason,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Rebuild a SAR from ``to_dict`` output, alerts included."""
        def _dt(key: str) -> datetime | None:
            value = data.get(key)
            return datetime.fromisoformat(value) if value else None

        def _d(key: str) -> date | None:
            value = data.get(key)
            return date.fromisoformat(value) if value else None

        amount = None
        if data.get("total_amount") is not None:
            amount = Money.of(data["total_amount"], data["currency"])

        return cls(
            sar_id=data["sar_id"],
            party_id=data["party_id"],
            sar_type=SarType(data["type"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            status=SarStatus(data.get("status", SarStatus.DRAFT.value)),
            narrative=data.get("narrative", ""),
            total_amount=amount,
            activity_start=_d("activity_start"),
            activity_end=_d("activity_end"),
            transaction_ids=tuple(data.get("transaction_ids", ())),
            alerts=tuple(TransactionAlert.from_dict(a) for a in data.get("alerts", ())),
            filing_reference=data.get("filing_reference"),
            assigned_officer=data.get("assigned_officer"),
            created_by=data.get("created_by", "system"),
            approved_by=data.get("approved_by"),
            submitted_at=_dt("submitted_at"),
            closed_at=_dt("closed_at"),
            closure_reason=data.get("closure_reason"),
            rejection_reason=data.get("rejection_reason"),
            cancellation_reason=data.get("cancellation_reason"),
            metadata=dict(data.get("metadata", {})),
        )
