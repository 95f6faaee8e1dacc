"""
SAR Management Service (``nexus_modules.aml.service``).

Responsibility
--------------
Creates Suspicious Activity Reports from monitoring results, risk
assessments or manual referrals, and drives them through review,
approval and regulatory filing.

Architecture position
---------------------
**Modules layer** -- thin orchestration. Persistence is delegated to a
``SarRepository`` and, optionally, filing to a ``SarFilingGateway``; both
are supplied by the host application.

Invariants enforced
-------------------
* Status changes follow ``SAR_WORKFLOW``.
* A SAR is approved by a different officer than the one who created it.
* Only APPROVED reports are submitted to the authority.
* Narrative and evidence are validated before review.

Failure modes
-------------
* Every rejection raises ``SarGenerationFailedError`` with a ``reason``.

Audit relevance
---------------
Each lifecycle step logs the SAR id, party and acting officer.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.aml.exceptions import SarGenerationFailedError
from nexus_modules.aml.models import (
    FILING_DEADLINE_DAYS,
    AmlRiskScore,
    SarStatus,
    SarType,
    SuspiciousActivityReport,
    TransactionMonitoringResult,
)

logger = get_logger("modules.aml.service")

MIN_NARRATIVE_LENGTH = 100

# First matching pattern wins.
_PATTERN_TYPES: tuple[tuple[str, SarType], ...] = (
    ("structuring", SarType.STRUCTURING),
    ("layering", SarType.MONEY_LAUNDERING),
    ("geographic", SarType.SANCTIONS_EVASION),
    ("velocity", SarType.OTHER),
    ("round_amounts", SarType.STRUCTURING),
)


class SarRepository(Protocol):
    """Persistence for SARs; implemented by the host application."""

    def save(self, sar: SuspiciousActivityReport) -> None: ...

    def get(self, sar_id: str) -> SuspiciousActivityReport | None: ...

    def find_by_status(self, status: SarStatus) -> Sequence[SuspiciousActivityReport]: ...

    def find_by_party(self, party_id: str) -> Sequence[SuspiciousActivityReport]: ...


class SarFilingGateway(Protocol):
    """Submits an approved SAR to the regulator and returns its reference."""

    def file(self, sar: SuspiciousActivityReport) -> str: ...


def sar_type_for_patterns(patterns: Sequence[str]) -> SarType:
    for pattern, sar_type in _PATTERN_TYPES:
        if pattern in patterns:
            return sar_type
    return SarType.OTHER


class SarManager:
    """
    Orchestrates the SAR lifecycle.

    Contract
    --------
    * Every mutating method loads the SAR, applies a copy-on-write change,
      saves it and returns the new instance.
    * The clock stamps creation, submission and closure times.
    """

    def __init__(
        self,
        repository: SarRepository,
        clock: Clock | None = None,
        filing_gateway: SarFilingGateway | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._filing_gateway = filing_gateway

    # -- creation ----------------------------------------------------------

    def create_from_monitoring(
        self,
        result: TransactionMonitoringResult,
        created_by: str,
    ) -> SuspiciousActivityReport:
        if not result.should_consider_sar:
            logger.info(
                "sar_not_warranted",
                extra={"party_id": result.party_id, "risk_score": result.risk_score},
            )
            raise SarGenerationFailedError.insufficient_evidence(result.party_id, result.risk_score)

        transaction_ids: list[str] = []
        for alert in result.alerts:
            transaction_ids.extend(alert.transaction_ids)

        sar = SuspiciousActivityReport.create_draft(
            result.party_id,
            sar_type_for_patterns(result.patterns),
            self._clock.now(),
            narrative=self.generate_narrative(result),
            total_amount=result.total_volume,
            activity_start=result.period_start.date() if result.period_start else None,
            activity_end=result.period_end.date() if result.period_end else None,
            transaction_ids=tuple(dict.fromkeys(transaction_ids)),
            alerts=result.alerts,
            created_by=created_by,
            metadata={"source": "monitoring", "risk_score": result.risk_score},
        )
        return self._store_new(sar)

    def create_from_risk_assessment(
        self,
        score: AmlRiskScore,
        created_by: str,
        narrative: str,
    ) -> SuspiciousActivityReport:
        if not score.requires_edd:
            raise SarGenerationFailedError.insufficient_evidence(score.party_id, score.overall_score)
        sar = SuspiciousActivityReport.create_draft(
            score.party_id,
            SarType.SUSPICIOUS_PARTY,
            self._clock.now(),
            narrative=narrative,
            created_by=created_by,
            metadata={
                "source": "risk_assessment",
                "risk_score": score.overall_score,
                "highest_factor": score.factors.highest_risk_factor,
            },
        )
        return self._store_new(sar)

    def create_manual(
        self,
        party_id: str,
        sar_type: SarType,
        narrative: str,
        created_by: str,
        *,
        activity_start: date | None = None,
        activity_end: date | None = None,
        total_amount: Money | None = None,
        transaction_ids: Sequence[str] = (),
    ) -> SuspiciousActivityReport:
        if activity_start and activity_end and activity_end < activity_start:
            raise SarGenerationFailedError.validation_failed(
                "new", ["Activity end date cannot be before start date"]
            )
        sar = SuspiciousActivityReport.create_draft(
            party_id,
            sar_type,
            self._clock.now(),
            narrative=narrative,
            total_amount=total_amount,
            activity_start=activity_start,
            activity_end=activity_end,
            transaction_ids=tuple(transaction_ids),
            created_by=created_by,
            metadata={"source": "manual"},
        )
        return self._store_new(sar)

    def _store_new(self, sar: SuspiciousActivityReport) -> SuspiciousActivityReport:
        self._repository.save(sar)
        logger.info(
            "sar_created",
            extra={
                "sar_id": sar.sar_id,
                "party_id": sar.party_id,
                "sar_type": sar.sar_type.value,
                "created_by": sar.created_by,
            },
        )
        return sar

    # -- editing -----------------------------------------------------------

    def update_narrative(self, sar_id: str, narrative: str) -> SuspiciousActivityReport:
        sar = self._editable(sar_id)
        return self._save(sar.with_narrative(narrative), "sar_narrative_updated")

    def add_transactions(self, sar_id: str, transaction_ids: Sequence[str]) -> SuspiciousActivityReport:
        sar = self._editable(sar_id)
        return self._save(
            sar.with_transaction_ids(tuple(transaction_ids)),
            "sar_transactions_added",
            count=len(transaction_ids),
        )

    def assign_officer(self, sar_id: str, officer_id: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        if sar.status.is_final:
            raise SarGenerationFailedError.not_editable(sar_id, sar.status.value)
        return self._save(sar.with_assigned_officer(officer_id), "sar_officer_assigned", officer_id=officer_id)

    def _editable(self, sar_id: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        if not sar.status.is_editable:
            raise SarGenerationFailedError.not_editable(sar_id, sar.status.value)
        return sar

    # -- workflow ----------------------------------------------------------

    def submit_for_review(self, sar_id: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        errors = self.validate(sar)
        if errors:
            logger.warning("sar_validation_failed", extra={"sar_id": sar_id, "errors": errors})
            raise SarGenerationFailedError.validation_failed(sar_id, errors)
        return self._save(sar.submit_for_review(self._clock.now()), "sar_submitted_for_review")

    def reopen(self, sar_id: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        return self._save(sar.transition_to(SarStatus.DRAFT, self._clock.now()), "sar_reopened")

    def approve(self, sar_id: str, approver: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        if approver == sar.created_by:
            raise SarGenerationFailedError.approval_required(sar_id, "different_officer")
        return self._save(sar.approve(approver, self._clock.now()), "sar_approved", approver=approver)

    def reject(self, sar_id: str, reason: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        if sar.status is not SarStatus.PENDING_REVIEW:
            raise SarGenerationFailedError.invalid_transition(
                sar_id, sar.status.value, SarStatus.REJECTED.value
            )
        return self._save(sar.reject(reason, self._clock.now()), "sar_rejected", reason=reason)

    def submit_to_authority(
        self,
        sar_id: str,
        filing_reference: str | None = None,
    ) -> SuspiciousActivityReport:
        """
        File an APPROVED SAR.

        Without an explicit ``filing_reference`` the configured filing
        gateway is called and its reference recorded.
        """
        sar = self.find_by_id(sar_id)
        if sar.status.is_submitted:
            raise SarGenerationFailedError.already_submitted(sar_id)
        if sar.status is not SarStatus.APPROVED:
            raise SarGenerationFailedError.approval_required(sar_id, "approval")

        if filing_reference is None:
            filing_reference = self._file(sar)

        return self._save(
            sar.submit_to_authority(filing_reference, self._clock.now()),
            "sar_submitted_to_authority",
            filing_reference=filing_reference,
        )

    def _file(self, sar: SuspiciousActivityReport) -> str:
        if self._filing_gateway is None:
            raise SarGenerationFailedError.filing_service_error(
                sar.sar_id, "no filing reference supplied and no filing gateway configured"
            )
        try:
            return self._filing_gateway.file(sar)
        except SarGenerationFailedError:
            raise
        except Exception as exc:
            logger.error(
                "sar_filing_failed",
                extra={"sar_id": sar.sar_id, "error": str(exc)},
            )
            raise SarGenerationFailedError.filing_service_error(sar.sar_id, str(exc)) from exc

    def close(self, sar_id: str, reason: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        return self._save(sar.close(reason, self._clock.now()), "sar_closed", reason=reason)

    def cancel(self, sar_id: str, reason: str) -> SuspiciousActivityReport:
        sar = self.find_by_id(sar_id)
        if sar.status is SarStatus.SUBMITTED:
            raise SarGenerationFailedError.already_submitted(sar_id)
        return self._save(sar.cancel(reason, self._clock.now()), "sar_cancelled", reason=reason)

    def _save(self, sar: SuspiciousActivityReport, event: str, **extra: Any) -> SuspiciousActivityReport:
        self._repository.save(sar)
        logger.info(event, extra={"sar_id": sar.sar_id, "status": sar.status.value, **extra})
        return sar

    # -- queries -----------------------------------------------------------

    def find_by_id(self, sar_id: str) -> SuspiciousActivityReport:
        sar = self._repository.get(sar_id)
        if sar is None:
            raise SarGenerationFailedError.not_found(sar_id)
        return sar

    def exists(self, sar_id: str) -> bool:
        return self._repository.get(sar_id) is not None

    def find_by_party(self, party_id: str) -> list[SuspiciousActivityReport]:
        return list(self._repository.find_by_party(party_id))

    def find_overdue(self) -> list[SuspiciousActivityReport]:
        now = self._clock.now()
        open_statuses = [s for s in SarStatus if not s.is_final and not s.is_submitted]
        overdue = [
            sar
            for status in open_statuses
            for sar in self._repository.find_by_status(status)
            if sar.is_overdue(now)
        ]
        return sorted(overdue, key=lambda s: s.created_at)

    def validate(self, sar: SuspiciousActivityReport) -> list[str]:
        errors: list[str] = []
        if len(sar.narrative.strip()) < MIN_NARRATIVE_LENGTH:
            errors.append(f"Narrative must be at least {MIN_NARRATIVE_LENGTH} characters")
        if not sar.transaction_ids and not sar.alerts:
            errors.append("At least one transaction or alert must be referenced")
        if sar.total_amount is not None and sar.total_amount.is_negative:
            errors.append("Total amount cannot be negative")
        return errors

    def generate_summary(self, sar: SuspiciousActivityReport) -> dict[str, Any]:
        now = self._clock.now()
        return {
            "sar_id": sar.sar_id,
            "party_id": sar.party_id,
            "type": sar.sar_type.value,
            "type_label": sar.type_label,
            "status": sar.status.value,
            "total_amount": sar.total_amount.format() if sar.total_amount else None,
            "transaction_count": len(sar.transaction_ids),
            "alert_count": len(sar.alerts),
            "activity_period_days": sar.activity_period_days,
            "filing_deadline": sar.filing_deadline.isoformat(),
            "days_until_deadline": sar.days_until_deadline(now),
            "is_overdue": sar.is_overdue(now),
            "assigned_officer": sar.assigned_officer,
            "filing_reference": sar.filing_reference,
        }

    def generate_narrative(self, result: TransactionMonitoringResult) -> str:
        lines = [
            f"Automated transaction monitoring flagged party {result.party_id} "
            f"with a risk score of {result.risk_score}/100.",
        ]
        if result.period_start and result.period_end:
            lines.append(
                f"Review period {result.period_start.date().isoformat()} to "
                f"{result.period_end.date().isoformat()} covered "
                f"{result.transaction_count} transactions"
                + (f" totalling {result.total_volume.format()}." if result.total_volume else ".")
            )
        if result.patterns:
            lines.append("Detected patterns: " + ", ".join(result.patterns) + ".")
        for alert in result.alerts:
            lines.append(f"- [{alert.severity.value.upper()}] {alert.description}")
        lines.append(
            f"This report must be filed within {FILING_DEADLINE_DAYS} days of detection."
        )
        return "\n".join(lines)
