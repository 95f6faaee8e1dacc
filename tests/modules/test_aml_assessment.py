"""
AML Risk Assessment Tests.

Uses a static in-memory ``RiskDataProvider``.
"""

from decimal import Decimal

import pytest

from nexus_modules.aml.assessment import (
    AmlRiskAssessor,
    PartyProfile,
    SanctionsScreening,
    TransactionProfile,
)
from nexus_modules.aml.exceptions import AmlAssessmentError
from nexus_modules.aml.helpers import apply_pep_multiplier, sanctions_score, transaction_behaviour_score
from nexus_modules.aml.models import RiskLevel


class StaticRiskData:
    """In-memory country and industry risk tables."""

    COUNTRIES = {"US": 20, "MY": 40, "IR": 90, "KP": 100}
    INDUSTRIES = {"casino": 80, "software": 20}
    PROHIBITED = {"KP"}

    def country_risk(self, country: str) -> int:
        return self.COUNTRIES.get(country, 50)

    def industry_risk(self, industry: str) -> int | None:
        return self.INDUSTRIES.get(industry)

    def is_prohibited(self, country: str) -> bool:
        return country in self.PROHIBITED


@pytest.fixture
def assessor(deterministic_clock):
    return AmlRiskAssessor(StaticRiskData(), clock=deterministic_clock)


class TestJurisdictionScore:
    """Primary and associated country exposure."""

    def test_primary_only(self, assessor):
        assert assessor.score_jurisdiction(PartyProfile("P1", "US")) == 20

    def test_associated_and_beneficial_owner(self, assessor):
        profile = PartyProfile("P1", "US", associated_countries=("IR", "MY"), beneficial_owner_risk=50)
        # 20*.7 + 90*.3 = 41, plus 50*.2 = 10
        assert assessor.score_jurisdiction(profile) == 51

    def test_prohibited_association_scores_95(self, assessor):
        profile = PartyProfile("P1", "US", associated_countries=("KP",))
        # 14 + 28.5 = 42.5 -> 43
        assert assessor.score_jurisdiction(profile) == 43

    def test_prohibited_primary_raises(self, assessor):
        with pytest.raises(AmlAssessmentError) as exc_info:
            assessor.assess(PartyProfile("P1", "KP"))
        assert exc_info.value.party_id == "P1"
        assert exc_info.value.context["country"] == "KP"


class TestBusinessTypeScore:
    """Industry baseline plus business-shape modifiers."""

    def test_unknown_industry_defaults_to_50(self, assessor):
        assert assessor.score_business_type(PartyProfile("P1", "US")) == 50

    def test_modifiers_are_capped(self, assessor):
        profile = PartyProfile(
            "P1", "US",
            industry="casino",
            is_cash_intensive=True,
            is_high_value=True,
            operating_countries=("US", "MY", "SG", "GB"),
        )
        assert assessor.score_business_type(profile) == 100

    def test_low_risk_industry(self, assessor):
        assert assessor.score_business_type(PartyProfile("P1", "US", industry="software")) == 20


class TestSanctionsScore:
    """Screening outcomes."""

    def test_blocked(self):
        assert sanctions_score(is_blocked=True) == 100

    def test_no_matches(self):
        assert sanctions_score() == 0

    def test_confirmed(self):
        assert sanctions_score(match_scores=(60,), is_confirmed=True) == 90

    def test_fuzzy_matches_amplified(self):
        # 70 * min(1.5, 1 + 0.1 * 2)
        assert sanctions_score(match_scores=(60, 70)) == 84


class TestTransactionScore:
    """Behavioural red flags."""

    def test_volume_over_expected_and_structuring(self):
        score = transaction_behaviour_score(
            volume=Decimal("15000"),
            expected_volume=Decimal("10000"),
            structuring_detected=True,
        )
        # 30 * (1.5 - 1) + 30
        assert score == 45

    def test_country_spread_and_round_amounts(self):
        score = transaction_behaviour_score(
            country_count=8,
            high_risk_country_share=Decimal("0.2"),
            round_amount_share=Decimal("0.8"),
        )
        # min(15, 9) + 25*0.2 + (0.8-0.6)*50 = 9 + 5 + 10
        assert score == 24

    def test_capped_at_100(self):
        score = transaction_behaviour_score(
            volume=Decimal("50000"),
            expected_volume=Decimal("1000"),
            frequency_ratio=Decimal("10"),
            country_count=20,
            high_risk_country_share=Decimal("1"),
            structuring_detected=True,
            round_amount_share=Decimal("1"),
        )
        assert score == 100


class TestAssess:
    """End-to-end assessment."""

    def test_low_risk_party(self, assessor, deterministic_clock):
        score = assessor.assess(PartyProfile("P1", "US"))
        # 20*.3 + 50*.2
        assert score.overall_score == 16
        assert score.risk_level is RiskLevel.LOW
        assert score.assessed_at == deterministic_clock.now()

    def test_pep_multiplier(self, assessor):
        score = assessor.assess(PartyProfile("P1", "US", pep_level=1))
        assert score.overall_score == 32
        assert score.factors.composite_score == 16
        assert score.metadata["pep_level"] == 1

    def test_high_risk_party(self, assessor):
        profile = PartyProfile(
            "P2", "IR",
            industry="casino",
            is_cash_intensive=True,
            sanctions=SanctionsScreening(match_scores=(80,)),
            transaction_profile=TransactionProfile(structuring_detected=True),
            pep_level=2,
        )
        score = assessor.assess(profile)
        assert score.risk_level is RiskLevel.HIGH
        assert score.requires_edd

    def test_pep_multiplier_caps(self):
        assert apply_pep_multiplier(80, 1) == 100
        assert apply_pep_multiplier(50, None) == 50

    def test_invalid_pep_level(self):
        with pytest.raises(ValueError):
            PartyProfile("P1", "US", pep_level=9)
