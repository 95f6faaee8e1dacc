"""
AML Risk Assessment (``nexus_modules.aml.assessment``).

Responsibility
--------------
Turns a ``PartyProfile`` into an ``AmlRiskScore`` by scoring jurisdiction,
business type, sanctions and transaction behaviour, then applying the
politically-exposed-person multiplier to the weighted composite.

Architecture position
---------------------
**Modules layer** -- orchestration over pure helpers. Country and
industry risk tables come from an injected ``RiskDataProvider``.

Invariants enforced
-------------------
* Every factor and the overall score lie in [0, 100].
* The PEP multiplier is applied after weighting, then capped at 100.

Failure modes
-------------
* Primary country prohibited  -> ``AmlAssessmentError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.aml.exceptions import AmlAssessmentError
from nexus_modules.aml.helpers import (
    PROHIBITED_ASSOCIATION_SCORE,
    apply_pep_multiplier,
    business_type_score,
    jurisdiction_score,
    sanctions_score,
    transaction_behaviour_score,
)
from nexus_modules.aml.models import (
    AlertType,
    AmlRiskScore,
    RiskFactors,
    TransactionMonitoringResult,
)

logger = get_logger("modules.aml.assessment")


class RiskDataProvider(Protocol):
    """Country and industry risk reference data supplied by the host."""

    def country_risk(self, country: str) -> int: ...

    def industry_risk(self, industry: str) -> int | None: ...

    def is_prohibited(self, country: str) -> bool: ...


@dataclass(frozen=True)
class SanctionsScreening:
    """Result of screening a party against sanctions lists."""
    is_blocked: bool = False
    match_scores: tuple[int, ...] = ()
    is_confirmed: bool = False


@dataclass(frozen=True)
class TransactionProfile:
    """Behavioural summary of a party's recent activity."""

    volume: Decimal = Decimal("0")
    expected_volume: Decimal | None = None
    frequency_ratio: Decimal = Decimal("0")
    country_count: int = 0
    high_risk_country_share: Decimal = Decimal("0")
    structuring_detected: bool = False
    round_amount_share: Decimal = Decimal("0")

    @classmethod
    def from_monitoring(
        cls,
        result: TransactionMonitoringResult,
        expected_volume: Decimal | None = None,
    ) -> TransactionProfile:
        """Summarize a monitoring run for the transaction factor."""
        countries: list[str] = []
        high_risk: list[str] = []
        round_ratio = Decimal("0")
        for alert in result.alerts:
            if alert.alert_type is AlertType.GEOGRAPHIC:
                countries = list(alert.evidence.get("countries", []))
                high_risk = list(alert.evidence.get("high_risk_countries", []))
            elif alert.evidence.get("pattern") == "round_amounts":
                round_ratio = Decimal(alert.evidence["ratio"])
        share = Decimal(len(high_risk)) / Decimal(len(countries)) if countries else Decimal("0")
        return cls(
            volume=result.total_volume.abs().amount if result.total_volume else Decimal("0"),
            expected_volume=expected_volume,
            country_count=len(countries),
            high_risk_country_share=share,
            structuring_detected="structuring" in result.patterns,
            round_amount_share=round_ratio,
        )


@dataclass(frozen=True)
class PartyProfile:
    """Everything the assessor needs to know about one party."""

    party_id: str
    country: str
    associated_countries: tuple[str, ...] = ()
    beneficial_owner_risk: int = 0
    industry: str | None = None
    is_cash_intensive: bool = False
    is_high_value: bool = False
    operating_countries: tuple[str, ...] = ()
    pep_level: int | None = None
    sanctions: SanctionsScreening = SanctionsScreening()
    transaction_profile: TransactionProfile | None = None

    def __post_init__(self) -> None:
        if not self.party_id:
            raise ValueError("Party ID is required")
        if not 0 <= self.beneficial_owner_risk <= 100:
            raise ValueError("beneficial_owner_risk must be between 0 and 100")
        if self.pep_level is not None and not 1 <= self.pep_level <= 5:
            raise ValueError("pep_level must be between 1 and 5")


class AmlRiskAssessor:
    """
    Scores parties for AML risk.

    Usage::

        assessor = AmlRiskAssessor(risk_data, clock=clock)
        score = assessor.assess(profile)
        if score.requires_edd:
            ...
    """

    def __init__(self, risk_data: RiskDataProvider, clock: Clock | None = None):
        self._risk_data = risk_data
        self._clock = clock or SystemClock()

    def assess(self, profile: PartyProfile) -> AmlRiskScore:
        factors = RiskFactors(
            jurisdiction_score=self.score_jurisdiction(profile),
            business_type_score=self.score_business_type(profile),
            sanctions_score=self.score_sanctions(profile),
            transaction_score=self.score_transactions(profile),
        )
        overall = apply_pep_multiplier(factors.composite_score, profile.pep_level)
        score = AmlRiskScore.from_factors(
            profile.party_id,
            factors,
            self._clock.now(),
            overall_score=overall,
            metadata={"pep_level": profile.pep_level} if profile.pep_level else None,
        )
        logger.info(
            "aml_risk_assessed",
            extra={
                "party_id": profile.party_id,
                "overall_score": score.overall_score,
                "risk_level": score.risk_level.value,
                "highest_factor": factors.highest_risk_factor,
            },
        )
        return score

    def score_jurisdiction(self, profile: PartyProfile) -> int:
        if self._risk_data.is_prohibited(profile.country):
            logger.warning(
                "aml_prohibited_jurisdiction",
                extra={"party_id": profile.party_id, "country": profile.country},
            )
            raise AmlAssessmentError.prohibited_jurisdiction(profile.party_id, profile.country)

        associated = [
            PROHIBITED_ASSOCIATION_SCORE
            if self._risk_data.is_prohibited(c)
            else self._risk_data.country_risk(c)
            for c in profile.associated_countries
        ]
        return jurisdiction_score(
            self._risk_data.country_risk(profile.country),
            associated,
            profile.beneficial_owner_risk,
        )

    def score_business_type(self, profile: PartyProfile) -> int:
        industry = self._risk_data.industry_risk(profile.industry) if profile.industry else None
        return business_type_score(
            industry,
            is_cash_intensive=profile.is_cash_intensive,
            is_high_value=profile.is_high_value,
            operating_country_count=len(profile.operating_countries),
        )

    def score_sanctions(self, profile: PartyProfile) -> int:
        s = profile.sanctions
        return sanctions_score(
            is_blocked=s.is_blocked,
            match_scores=s.match_scores,
            is_confirmed=s.is_confirmed,
        )

    def score_transactions(self, profile: PartyProfile) -> int:
        tp = profile.transaction_profile
        if tp is None:
            return 0
        return transaction_behaviour_score(
            volume=tp.volume,
            expected_volume=tp.expected_volume,
            frequency_ratio=tp.frequency_ratio,
            country_count=tp.country_count,
            high_risk_country_share=tp.high_risk_country_share,
            structuring_detected=tp.structuring_detected,
            round_amount_share=tp.round_amount_share,
        )
