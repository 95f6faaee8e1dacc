"""
Disbursement Limits (``nexus_modules.payment.limits``).

Per-transaction, period-amount and period-count controls on outgoing
payments. Every limit is optional; ``DisbursementLimits.none()`` imposes
nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Self

from nexus_kernel.values import Money
from nexus_modules.payment.exceptions import DisbursementLimitExceededError


class LimitPeriod(str, Enum):
    PER_TRANSACTION = "per_transaction"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


_AMOUNT_KEYS = ("per_transaction", "daily", "weekly", "monthly")
_COUNT_KEYS = ("daily_count", "weekly_count", "monthly_count")


def _money_or_none(data: dict[str, Any] | None) -> Money | None:
    if data is None:
        return None
    return Money.of(str(data["amount"]), data["currency"])


@dataclass(frozen=True)
class DisbursementLimits:
    """
    Limits applied before a disbursement is created.

    ``requires_approval_above_limit`` turns a per-transaction breach into
    a request for manual approval instead of a rejection.
    """

    per_transaction: Money | None = None
    daily: Money | None = None
    weekly: Money | None = None
    monthly: Money | None = None
    daily_count: int | None = None
    weekly_count: int | None = None
    monthly_count: int | None = None
    requires_approval_above_limit: bool = False

    def __post_init__(self) -> None:
        for name in _AMOUNT_KEYS:
            limit = getattr(self, name)
            if limit is not None and limit.is_negative:
                raise ValueError(f"{name} limit cannot be negative")
        for name in _COUNT_KEYS:
            count = getattr(self, name)
            if count is not None and count < 0:
                raise ValueError(f"{name} limit cannot be negative")

    @classmethod
    def none(cls) -> Self:
        return cls()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Self:
        """
        Build from a mapping such as::

            {"per_transaction": {"amount": "5000", "currency": "USD"},
             "daily_count": 20, "requires_approval_above_limit": True}
        """
        return cls(
            per_transaction=_money_or_none(config.get("per_transaction")),
            daily=_money_or_none(config.get("daily")),
            weekly=_money_or_none(config.get("weekly")),
            monthly=_money_or_none(config.get("monthly")),
            daily_count=config.get("daily_count"),
            weekly_count=config.get("weekly_count"),
            monthly_count=config.get("monthly_count"),
            requires_approval_above_limit=bool(config.get("requires_approval_above_limit", False)),
        )

    # -- lookup ------------------------------------------------------------

    def limit_for(self, period: LimitPeriod) -> Money | None:
        return {
            LimitPeriod.PER_TRANSACTION: self.per_transaction,
            LimitPeriod.DAILY: self.daily,
            LimitPeriod.WEEKLY: self.weekly,
            LimitPeriod.MONTHLY: self.monthly,
        }.get(period)

    def count_limit_for(self, period: LimitPeriod) -> int | None:
        return {
            LimitPeriod.DAILY: self.daily_count,
            LimitPeriod.WEEKLY: self.weekly_count,
            LimitPeriod.MONTHLY: self.monthly_count,
        }.get(period)

    @property
    def has_limits(self) -> bool:
        return any(getattr(self, name) is not None for name in _AMOUNT_KEYS + _COUNT_KEYS)

    # -- checks ------------------------------------------------------------

    def exceeds_per_transaction_limit(self, amount: Money) -> bool:
        return self.per_transaction is not None and amount > self.per_transaction

    def requires_approval(self, amount: Money) -> bool:
        return self.requires_approval_above_limit and self.exceeds_per_transaction_limit(amount)

    def validate_amount(self, amount: Money) -> None:
        if self.exceeds_per_transaction_limit(amount):
            raise DisbursementLimitExceededError.per_transaction_limit_exceeded(
                amount, self.per_transaction
            )

    def validate_period_amount(self, amount: Money, current_usage: Money, period: LimitPeriod) -> None:
        """``current_usage`` excludes ``amount``."""
        limit = self.limit_for(period)
        if limit is None:
            return
        if current_usage + amount > limit:
            raise DisbursementLimitExceededError.period_limit_exceeded(
                amount, current_usage, limit, period.value
            )

    def validate_period_count(self, current_count: int, period: LimitPeriod) -> None:
        limit = self.count_limit_for(period)
        if limit is None:
            return
        if current_count >= limit:
            raise DisbursementLimitExceededError.count_limit_exceeded(
                current_count, limit, period.value
            )

    # -- copy-on-write -----------------------------------------------------

    def with_per_transaction_limit(self, limit: Money) -> Self:
        return replace(self, per_transaction=limit)

    def with_daily_limit(self, limit: Money) -> Self:
        return replace(self, daily=limit)

    def with_weekly_limit(self, limit: Money) -> Self:
        return replace(self, weekly=limit)

    def with_monthly_limit(self, limit: Money) -> Self:
        return replace(self, monthly=limit)

    def with_daily_count_limit(self, limit: int) -> Self:
        return replace(self, daily_count=limit)

    def with_weekly_count_limit(self, limit: int) -> Self:
        return replace(self, weekly_count=limit)

    def with_monthly_count_limit(self, limit: int) -> Self:
        return replace(self, monthly_count=limit)

    def with_approval_required(self, required: bool = True) -> Self:
        return replace(self, requires_approval_above_limit=required)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            name: getattr(self, name).to_dict() if getattr(self, name) is not None else None
            for name in _AMOUNT_KEYS
        }
        data.update({name: getattr(self, name) for name in _COUNT_KEYS})
        data["requires_approval_above_limit"] = self.requires_approval_above_limit
        return data
