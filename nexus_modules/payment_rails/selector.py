"""
Rail selection (``nexus_modules.payment_rails.selector``).

Responsibility
--------------
Picks the rail best suited to a payment from the rails the host offers.
A rail is first filtered for eligibility (availability, currency, limits,
urgency, recurring support and per-rail rules) and the survivors are
scored out of 100 on speed, cost, fit and caller preference.

Failure modes
-------------
* ``NoEligibleRailError`` -- no offered rail can carry the payment.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment_rails.exceptions import NoEligibleRailError
from nexus_modules.payment_rails.models import PaymentRail, RailCapabilities, RailType

logger = get_logger("modules.payment_rails.selector")

HIGH_VALUE_THRESHOLD = Decimal("100000")
MEDIUM_VALUE_THRESHOLD = Decimal("10000")
LOW_VALUE_THRESHOLD = Decimal("1000")

BASE_SCORE = 50.0
MAX_COMPONENT = 25.0


class Urgency(str, Enum):
    STANDARD = "standard"
    URGENT = "urgent"
    REAL_TIME = "real_time"


# Relative cost, cheapest first.
COST_RANKING: dict[RailType, int] = {
    RailType.ACH: 1,
    RailType.CHECK: 2,
    RailType.VIRTUAL_CARD: 3,
    RailType.WIRE: 4,
    RailType.RTGS: 5,
}


@dataclass(frozen=True)
class RailSelectionCriteria:
    amount: Money
    is_international: bool = False
    urgency: Urgency = Urgency.STANDARD
    prefer_low_cost: bool = True
    requires_recurring: bool = False
    beneficiary_type: str | None = None
    preferred_rail: RailType | None = None

    @property
    def currency(self) -> str:
        return self.amount.currency.code


class RailSelector:
    """Ranks the configured rails for a payment and returns the best one."""

    def __init__(self, rails: list[PaymentRail]):
        self._rails = list(rails)

    def select(self, criteria: RailSelectionCriteria) -> PaymentRail:
        eligible = self.eligible_rails(criteria)
        if not eligible:
            raise NoEligibleRailError(str(criteria.amount.amount), criteria.currency, criteria.urgency.value)

        # max() keeps the first of equal scores, so registration order breaks ties.
        selected = max(eligible, key=lambda rail: self.score(rail, criteria))
        logger.info(
            "payment_rail_selected",
            extra={
                "rail_type": selected.rail_type.value,
                "score": self.score(selected, criteria),
                "amount": str(criteria.amount.amount),
                "currency": criteria.currency,
                "urgency": criteria.urgency.value,
            },
        )
        return selected

    def eligible_rails(self, criteria: RailSelectionCriteria) -> list[PaymentRail]:
        return [rail for rail in self._rails if self._is_eligible(rail, criteria)]

    def fastest(self, criteria: RailSelectionCriteria) -> PaymentRail:
        return self.select(replace(criteria, urgency=Urgency.URGENT, prefer_low_cost=False))

    def cheapest(self, criteria: RailSelectionCriteria) -> PaymentRail:
        return self.select(replace(criteria, urgency=Urgency.STANDARD, prefer_low_cost=True))

    # -- eligibility -------------------------------------------------------

    def _is_eligible(self, rail: PaymentRail, criteria: RailSelectionCriteria) -> bool:
        if not rail.is_available():
            return False
        capabilities = rail.capabilities
        if not capabilities.supports_currency(criteria.currency):
            return False
        if not capabilities.is_amount_within_limits(criteria.amount):
            return False
        if criteria.urgency is Urgency.URGENT and capabilities.typical_settlement_days > 1:
            return False
        if criteria.urgency is Urgency.REAL_TIME and not capabilities.is_real_time:
            return False
        if criteria.requires_recurring and not capabilities.supports_recurring:
            return False
        return self._rail_type_allows(rail.rail_type, criteria)

    @staticmethod
    def _rail_type_allows(rail_type: RailType, criteria: RailSelectionCriteria) -> bool:
        value = criteria.amount.amount
        if rail_type is RailType.ACH:
            return criteria.currency == "USD" and not criteria.is_international
        if rail_type is RailType.WIRE:
            return criteria.is_international or value >= MEDIUM_VALUE_THRESHOLD
        if rail_type is RailType.CHECK:
            return (
                criteria.urgency is Urgency.STANDARD
                and not criteria.is_international
                and value <= HIGH_VALUE_THRESHOLD
            )
        if rail_type is RailType.RTGS:
            return value >= MEDIUM_VALUE_THRESHOLD and not criteria.is_international
        if rail_type is RailType.VIRTUAL_CARD:
            return criteria.beneficiary_type == "vendor" and criteria.urgency is not Urgency.REAL_TIME
        return False

    # -- scoring -----------------------------------------------------------

    def score(self, rail: PaymentRail, criteria: RailSelectionCriteria) -> float:
        capabilities = rail.capabilities
        total = (
            BASE_SCORE
            + self._speed_score(capabilities, criteria)
            + self._cost_score(rail.rail_type, criteria)
            + self._fit_score(capabilities, criteria)
            + self._preference_score(rail.rail_type, criteria)
        )
        return min(100.0, max(0.0, total))

    @staticmethod
    def _speed_score(capabilities: RailCapabilities, criteria: RailSelectionCriteria) -> float:
        real_time = capabilities.is_real_time
        days = capabilities.typical_settlement_days
        if criteria.urgency is Urgency.REAL_TIME:
            return MAX_COMPONENT if real_time else 0.0
        if criteria.urgency is Urgency.URGENT:
            if real_time:
                return MAX_COMPONENT
            return 15.0 if days == 1 else 5.0
        if real_time:
            return 20.0
        if days <= 1:
            return 15.0
        if days <= 2:
            return 12.0
        return 10.0

    @staticmethod
    def _cost_score(rail_type: RailType, criteria: RailSelectionCriteria) -> float:
        step = 6 if criteria.prefer_low_cost else 3
        return MAX_COMPONENT - (COST_RANKING[rail_type] - 1) * step

    @staticmethod
    def _fit_score(capabilities: RailCapabilities, criteria: RailSelectionCriteria) -> float:
        score = 10.0
        if criteria.requires_recurring and capabilities.supports_recurring:
            score += 5.0
        if capabilities.get_capability("supports_refunds", False):
            score += 3.0
        utilization = capabilities.utilization(criteria.amount)
        if utilization is not None and utilization > Decimal("0.9"):
            score -= 5.0
        return max(0.0, min(MAX_COMPONENT, score))

    @staticmethod
    def _preference_score(rail_type: RailType, criteria: RailSelectionCriteria) -> float:
        score = 0.0
        if criteria.preferred_rail is rail_type:
            score += 15.0
        value = criteria.amount.amount
        if value >= HIGH_VALUE_THRESHOLD:
            if rail_type in (RailType.RTGS, RailType.WIRE):
                score += 10.0
        elif value <= LOW_VALUE_THRESHOLD:
            if rail_type in (RailType.ACH, RailType.CHECK):
                score += 5.0
        return min(MAX_COMPONENT, score)
