"""
Fixed Asset Depreciation Domain Models.

Assets, depreciation methods, per-period depreciation amounts and
depreciation schedules.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.fixed_assets.exceptions import DepreciationError

logger = get_logger("modules.fixed_assets.models")


class DepreciationMethod(str, Enum):
    """Supported depreciation methods."""
    STRAIGHT_LINE = "straight_line"
    STRAIGHT_LINE_DAILY = "straight_line_daily"
    DOUBLE_DECLINING = "double_declining"
    DECLINING_150 = "declining_150"
    SUM_OF_YEARS = "sum_of_years"
    UNITS_OF_PRODUCTION = "units_of_production"
    BONUS = "bonus"
    MACRS = "macrs"
    ANNUITY = "annuity"

    @property
    def is_accelerated(self) -> bool:
        return self in (
            DepreciationMethod.DOUBLE_DECLINING,
            DepreciationMethod.DECLINING_150,
            DepreciationMethod.SUM_OF_YEARS,
            DepreciationMethod.MACRS,
        )

    @property
    def requires_units(self) -> bool:
        return self is DepreciationMethod.UNITS_OF_PRODUCTION

    @property
    def is_declining_balance(self) -> bool:
        return self in (DepreciationMethod.DOUBLE_DECLINING, DepreciationMethod.DECLINING_150)

    @property
    def supports_recalculation(self) -> bool:
        return self in (
            DepreciationMethod.STRAIGHT_LINE,
            DepreciationMethod.STRAIGHT_LINE_DAILY,
            DepreciationMethod.DOUBLE_DECLINING,
            DepreciationMethod.DECLINING_150,
            DepreciationMethod.SUM_OF_YEARS,
            DepreciationMethod.ANNUITY,
        )


def period_id_for(on: date) -> str:
    """``YYYY-MM`` accounting period containing ``on``."""
    return f"{on.year:04d}-{on.month:02d}"


def add_months(on: date, months: int) -> date:
    """First day of the month ``months`` after ``on``'s month."""
    index = on.year * 12 + (on.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_end(on: date) -> date:
    return date(on.year, on.month, calendar.monthrange(on.year, on.month)[1])


@dataclass(frozen=True)
class FixedAsset:
    """
    An asset as seen by the depreciation engine.

    ``total_units`` is required for units of production; ``property_class``
    selects the MACRS table.
    """

    asset_id: str
    name: str
    cost: Money
    salvage_value: Money
    useful_life_months: int
    acquisition_date: date
    method: DepreciationMethod = DepreciationMethod.STRAIGHT_LINE
    total_units: Decimal | None = None
    property_class: int | None = None
    is_new_property: bool = True

    def __post_init__(self) -> None:
        if not self.asset_id:
            raise ValueError("Asset ID is required")
        if self.cost.currency != self.salvage_value.currency:
            raise ValueError("Cost and salvage value must share a currency")

    @property
    def currency(self) -> str:
        return self.cost.currency.code

    @property
    def depreciable_amount(self) -> Money:
        return self.cost - self.salvage_value


@dataclass(frozen=True)
class DepreciationAmount:
    """Depreciation booked for one asset in one period."""

    amount: Money
    method: DepreciationMethod
    period_id: str
    accumulated: Money
    book_value_after: Money

    def __post_init__(self) -> None:
        if self.amount.is_negative:
            raise ValueError("Depreciation amount cannot be negative")

    @classmethod
    def zero(
        cls,
        method: DepreciationMethod,
        period_id: str,
        accumulated: Money,
        book_value: Money,
    ) -> DepreciationAmount:
        return cls(
            amount=Money.zero(accumulated.currency),
            method=method,
            period_id=period_id,
            accumulated=accumulated,
            book_value_after=book_value,
        )

    @property
    def is_zero(self) -> bool:
        return self.amount.is_zero

    def add(self, other: DepreciationAmount) -> DepreciationAmount:
        """Combine a second charge for the same period (e.g. bonus on top of MACRS)."""
        if other.period_id != self.period_id:
            raise ValueError(
                f"Cannot add depreciation for period {other.period_id} to {self.period_id}"
            )
        return DepreciationAmount(
            amount=self.amount + other.amount,
            method=self.method,
            period_id=self.period_id,
            accumulated=self.accumulated + other.amount,
            book_value_after=self.book_value_after - other.amount,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": str(self.amount.amount),
            "currency": self.amount.currency.code,
            "method": self.method.value,
            "period_id": self.period_id,
            "accumulated": str(self.accumulated.amount),
            "book_value_after": str(self.book_value_after.amount),
        }


@dataclass(frozen=True)
class DepreciationPeriod:
    """One month of a depreciation schedule."""
    period_number: int
    period_id: str
    period_start: date
    period_end: date
    opening_book_value: Money
    depreciation: Money
    accumulated: Money
    closing_book_value: Money

    def to_dict(self) -> dict[str, Any]:
        return {
            "period_number": self.period_number,
            "period_id": self.period_id,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "opening_book_value": str(self.opening_book_value.amount),
            "depreciation": str(self.depreciation.amount),
            "accumulated": str(self.accumulated.amount),
            "closing_book_value": str(self.closing_book_value.amount),
        }


@dataclass(frozen=True)
class DepreciationSchedule:
    """
    Month-by-month depreciation projection for one asset.

    Guarantees: periods are consecutive and each period's opening book
    value equals the previous period's closing book value.
    """

    schedule_id: str
    asset_id: str
    method: DepreciationMethod
    cost: Money
    salvage_value: Money
    useful_life_months: int
    start_date: date
    periods: tuple[DepreciationPeriod, ...] = field(default_factory=tuple)

    @property
    def total_depreciation(self) -> Money:
        if not self.periods:
            return Money.zero(self.cost.currency)
        return self.periods[-1].accumulated

    @property
    def final_book_value(self) -> Money:
        if not self.periods:
            return self.cost
        return self.periods[-1].closing_book_value

    @property
    def first_period_id(self) -> str | None:
        return self.periods[0].period_id if self.periods else None

    @property
    def last_period_id(self) -> str | None:
        return self.periods[-1].period_id if self.periods else None

    def period(self, period_id: str) -> DepreciationPeriod | None:
        for p in self.periods:
            if p.period_id == period_id:
                return p
        return None

    def index_of(self, period_id: str) -> int:
        for i, p in enumerate(self.periods):
            if p.period_id == period_id:
                return i
        raise DepreciationError.period_not_found(self.schedule_id, period_id)

    def book_value_at(self, period_id: str) -> Money:
        """Closing book value of ``period_id``."""
        return self.periods[self.index_of(period_id)].closing_book_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "schedule_id": self.schedule_id,
            "asset_id": self.asset_id,
            "method": self.method.value,
            "currency": self.cost.currency.code,
            "cost": str(self.cost.amount),
            "salvage_value": str(self.salvage_value.amount),
            "useful_life_months": self.useful_life_months,
            "start_date": self.start_date.isoformat(),
            "total_depreciation": str(self.total_depreciation.amount),
            "periods": [p.to_dict() for p in self.periods],
        }
