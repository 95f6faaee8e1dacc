"""
AML Scoring Helpers (``nexus_modules.aml.helpers``).

Responsibility
--------------
Pure scoring functions for the four AML risk factors and the small
amount tests shared by monitoring and assessment.

Architecture position
---------------------
**Modules layer** -- pure helper functions. No I/O, no clock. Called by
``AmlRiskAssessor`` and ``TransactionMonitor`` or from tests.

Invariants enforced
-------------------
* All arithmetic is ``Decimal``; scores are rounded half up.
* Every score is clamped to [0, 100].
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from nexus_modules.aml.models import round_score

PEP_MULTIPLIERS: dict[int, Decimal] = {
    1: Decimal("2.0"),
    2: Decimal("1.8"),
    3: Decimal("1.5"),
    4: Decimal("1.3"),
    5: Decimal("1.2"),
}

PROHIBITED_ASSOCIATION_SCORE = 95
DEFAULT_INDUSTRY_SCORE = 50


def is_round_amount(amount: Decimal) -> bool:
    """Divisible by 1000 or 500, or at least 100 and divisible by 100."""
    value = abs(amount)
    if value == 0:
        return False
    if value % 1000 == 0 or value % 500 == 0:
        return True
    return value >= 100 and value % 100 == 0


def jurisdiction_score(
    primary_score: int,
    associated_scores: Sequence[int] = (),
    beneficial_owner_risk: int = 0,
) -> int:
    """
    Weighted jurisdiction exposure.

    Primary country counts 70%, the riskiest associated country 30%.
    With no associations the primary score stands alone. Beneficial
    owner risk adds a fifth of its value on top.
    """
    if associated_scores:
        base = Decimal(primary_score) * Decimal("0.7") + Decimal(max(associated_scores)) * Decimal("0.3")
    else:
        base = Decimal(primary_score)
    bonus = round_score(Decimal(beneficial_owner_risk) * Decimal("0.2"))
    return round_score(base + bonus)


def business_type_score(
    industry_score: int | None,
    *,
    is_cash_intensive: bool = False,
    is_high_value: bool = False,
    operating_country_count: int = 0,
) -> int:
    score = DEFAULT_INDUSTRY_SCORE if industry_score is None else industry_score
    if is_cash_intensive:
        score += 15
    if is_high_value:
        score += 10
    if operating_country_count > 3:
        score += 10
    return round_score(score)


def sanctions_score(
    *,
    is_blocked: bool = False,
    match_scores: Sequence[int] = (),
    is_confirmed: bool = False,
) -> int:
    """Blocked parties score 100; confirmed matches 90; else the best fuzzy match amplified."""
    if is_blocked:
        return 100
    if not match_scores:
        return 0
    if is_confirmed:
        return 90
    amplifier = min(Decimal("1.5"), Decimal("1") + Decimal("0.1") * len(match_scores))
    return round_score(Decimal(max(match_scores)) * amplifier)


def transaction_behaviour_score(
    *,
    volume: Decimal = Decimal("0"),
    expected_volume: Decimal | None = None,
    frequency_ratio: Decimal = Decimal("0"),
    country_count: int = 0,
    high_risk_country_share: Decimal = Decimal("0"),
    structuring_detected: bool = False,
    round_amount_share: Decimal = Decimal("0"),
) -> int:
    """Sum of behavioural red flags, capped at 100."""
    total = Decimal("0")
    if expected_volume and expected_volume > 0 and volume > expected_volume:
        ratio = min(volume / expected_volume, Decimal("2"))
        total += Decimal("30") * (ratio - 1)
    if frequency_ratio > 2:
        total += min(Decimal("20"), (frequency_ratio - 2) * 10)
    if country_count > 5:
        total += min(Decimal("15"), Decimal(country_count - 5) * 3)
    total += Decimal("25") * high_risk_country_share
    if structuring_detected:
        total += Decimal("30")
    if round_amount_share > Decimal("0.6"):
        total += (round_amount_share - Decimal("0.6")) * 50
    return round_score(total)


def apply_pep_multiplier(score: int, pep_level: int | None) -> int:
    """Scale a composite score by politically-exposed-person level (1 highest)."""
    if pep_level is None:
        return score
    multiplier = PEP_MULTIPLIERS.get(pep_level)
    if multiplier is None:
        return score
    return round_score(Decimal(score) * multiplier)
