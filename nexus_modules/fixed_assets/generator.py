"""
Depreciation Schedule Generator (``nexus_modules.fixed_assets.generator``).

Responsibility
--------------
Projects an asset's depreciation month by month from its acquisition
month until book value reaches salvage, and re-projects the remainder of
a schedule when useful life or salvage value is revised.

Architecture position
---------------------
**Modules layer** -- stateless calculator composed of the pure formulas in
``helpers.py``. No I/O, no clock.

Invariants enforced
-------------------
* Book value never drops below salvage (zero for MACRS).
* The final month of useful life absorbs rounding so that total
  depreciation equals the depreciable amount exactly.
* Revisions are prospective: periods before the revision are kept as-is.

Failure modes
-------------
* Invalid cost, life or salvage  -> ``DepreciationError`` factories.
* Units of production without a unit estimate  -> ``units_required``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from nexus_kernel.ids import random_hex
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Currency, Money
from nexus_modules.fixed_assets.config import DepreciationConfig
from nexus_modules.fixed_assets.exceptions import DepreciationError
from nexus_modules.fixed_assets.helpers import (
    MIN_DECLINING_LIFE_MONTHS,
    ZERO,
    annuity_monthly,
    bonus_depreciation,
    declining_balance_monthly,
    macrs,
    macrs_recovery_years,
    straight_line_daily,
    straight_line_monthly,
    sum_of_years_digits_monthly,
    units_of_production,
)
from nexus_modules.fixed_assets.models import (
    DepreciationMethod,
    DepreciationPeriod,
    DepreciationSchedule,
    FixedAsset,
    add_months,
    month_end,
    period_id_for,
)

logger = get_logger("modules.fixed_assets.generator")

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class _Projection:
    """Inputs for one projection run; ``cost`` is the basis being depreciated."""
    method: DepreciationMethod
    currency: Currency
    cost: Decimal
    salvage: Decimal
    life_months: int
    first_month: date
    first_day: int = 1
    first_number: int = 1
    prior_accumulated: Decimal = ZERO
    total_units: Decimal | None = None
    units_by_period: Mapping[str, Decimal] | None = None
    property_class: int = 5
    is_new_property: bool = True


class DepreciationScheduleGenerator:
    """
    Builds ``DepreciationSchedule`` objects.

    Usage::

        generator = DepreciationScheduleGenerator()
        schedule = generator.generate(asset)
        revised = generator.recalculate_from_period(
            schedule, "2025-01", new_useful_life_months=48,
        )
    """

    def __init__(self, config: DepreciationConfig | None = None):
        self._config = config or DepreciationConfig.with_defaults()

    # -- public API --------------------------------------------------------

    def generate(
        self,
        asset: FixedAsset,
        method: DepreciationMethod | None = None,
        *,
        units_by_period: Mapping[str, Decimal] | None = None,
        schedule_id: str | None = None,
    ) -> DepreciationSchedule:
        method = method or asset.method
        self._validate_asset(asset, method)

        property_class = asset.property_class or self._config.default_macrs_class
        if method is DepreciationMethod.MACRS:
            salvage = ZERO
            life = macrs_recovery_years(property_class) * 12
        else:
            salvage = asset.salvage_value.amount
            life = asset.useful_life_months

        projection = _Projection(
            method=method,
            currency=asset.cost.currency,
            cost=asset.cost.amount,
            salvage=salvage,
            life_months=life,
            first_month=date(asset.acquisition_date.year, asset.acquisition_date.month, 1),
            first_day=asset.acquisition_date.day,
            total_units=asset.total_units,
            units_by_period=units_by_period,
            property_class=property_class,
            is_new_property=asset.is_new_property,
        )
        schedule = DepreciationSchedule(
            schedule_id=schedule_id or f"SCH-{asset.asset_id}-{random_hex(8)}",
            asset_id=asset.asset_id,
            method=method,
            cost=asset.cost,
            salvage_value=Money(amount=salvage, currency=asset.cost.currency),
            useful_life_months=life,
            start_date=asset.acquisition_date,
            periods=tuple(self._project(projection)),
        )
        logger.info(
            "depreciation_schedule_generated",
            extra={
                "asset_id": asset.asset_id,
                "schedule_id": schedule.schedule_id,
                "method": method.value,
                "periods": len(schedule.periods),
                "total_depreciation": str(schedule.total_depreciation.amount),
            },
        )
        return schedule

    def validate_adjustment(
        self,
        schedule: DepreciationSchedule,
        period_id: str,
        *,
        new_useful_life_months: int | None = None,
        new_salvage: Money | None = None,
    ) -> list[str]:
        """Problems with revising ``schedule`` from ``period_id`` onward."""
        period = schedule.period(period_id)
        if period is None:
            return [f"Period {period_id} is not part of schedule {schedule.schedule_id}"]

        errors: list[str] = []
        elapsed = period.period_number - 1
        life = (
            new_useful_life_months
            if new_useful_life_months is not None
            else schedule.useful_life_months
        )
        if life <= elapsed:
            errors.append(f"Useful life must exceed the {elapsed} months already depreciated")
        if new_salvage is not None:
            if new_salvage.currency != schedule.cost.currency:
                errors.append("Salvage value currency must match the asset cost")
            elif new_salvage.is_negative:
                errors.append("Salvage value cannot be negative")
            elif new_salvage >= period.opening_book_value:
                errors.append("Salvage value must be less than the current book value")
        return errors

    def recalculate_from_period(
        self,
        schedule: DepreciationSchedule,
        period_id: str,
        *,
        new_useful_life_months: int | None = None,
        new_salvage: Money | None = None,
    ) -> DepreciationSchedule:
        """
        Keep periods before ``period_id`` and re-project the rest.

        ``new_useful_life_months`` is the revised total life measured from
        acquisition. The remaining book value is spread over what is left.
        """
        if not schedule.method.supports_recalculation:
            raise DepreciationError.unsupported_method(schedule.method.value, "recalculation")
        errors = self.validate_adjustment(
            schedule,
            period_id,
            new_useful_life_months=new_useful_life_months,
            new_salvage=new_salvage,
        )
        if errors:
            raise DepreciationError.invalid_adjustment(schedule.asset_id, errors)

        index = schedule.index_of(period_id)
        kept = schedule.periods[:index]
        revised_period = schedule.periods[index]
        life = new_useful_life_months or schedule.useful_life_months
        salvage = new_salvage or schedule.salvage_value

        projection = _Projection(
            method=schedule.method,
            currency=schedule.cost.currency,
            cost=revised_period.opening_book_value.amount,
            salvage=salvage.amount,
            life_months=life - index,
            first_month=revised_period.period_start.replace(day=1),
            first_number=revised_period.period_number,
            prior_accumulated=kept[-1].accumulated.amount if kept else ZERO,
            property_class=self._config.default_macrs_class,
        )
        revised = DepreciationSchedule(
            schedule_id=schedule.schedule_id,
            asset_id=schedule.asset_id,
            method=schedule.method,
            cost=schedule.cost,
            salvage_value=salvage,
            useful_life_months=life,
            start_date=schedule.start_date,
            periods=tuple(kept) + tuple(self._project(projection)),
        )
        logger.info(
            "depreciation_schedule_recalculated",
            extra={
                "asset_id": schedule.asset_id,
                "schedule_id": schedule.schedule_id,
                "from_period": period_id,
                "useful_life_months": life,
                "salvage_value": str(salvage.amount),
            },
        )
        return revised

    # -- internals ---------------------------------------------------------

    def _validate_asset(self, asset: FixedAsset, method: DepreciationMethod) -> None:
        cost = asset.cost.amount
        if cost <= 0:
            raise DepreciationError.invalid_cost(asset.asset_id, cost)
        if method is not DepreciationMethod.MACRS:
            if asset.useful_life_months <= 0:
                raise DepreciationError.invalid_useful_life(asset.asset_id, asset.useful_life_months)
            if method.is_declining_balance and asset.useful_life_months < MIN_DECLINING_LIFE_MONTHS:
                raise DepreciationError.invalid_useful_life(
                    asset.asset_id, asset.useful_life_months, MIN_DECLINING_LIFE_MONTHS
                )
            if asset.salvage_value.amount >= cost:
                raise DepreciationError.salvage_exceeds_cost(
                    asset.asset_id, asset.salvage_value.amount, cost
                )
        if method.requires_units and not asset.total_units:
            raise DepreciationError.units_required(asset.asset_id)

    def _project(self, p: _Projection) -> list[DepreciationPeriod]:
        periods: list[DepreciationPeriod] = []
        if p.life_months <= 0:
            return periods

        months = p.life_months
        if p.method is DepreciationMethod.STRAIGHT_LINE_DAILY and p.first_day > 1:
            # Partial first month pushes the tail into one extra month
            months += 1

        bonus = ZERO
        if p.method is DepreciationMethod.BONUS:
            bonus = min(
                bonus_depreciation(p.cost, self._config.bonus_rate, 1, p.is_new_property),
                p.cost - p.salvage,
            )

        accumulated = ZERO
        for n in range(1, months + 1):
            book_value = p.cost - accumulated
            if book_value <= p.salvage:
                break
            start = add_months(p.first_month, n - 1)
            period_id = period_id_for(start)
            remaining_depreciable = p.cost - p.salvage - accumulated

            if n == months and not p.method.requires_units:
                amount = remaining_depreciable
            else:
                amount = self._amount(p, n, months, start, book_value, accumulated, bonus)
            amount = min(amount, remaining_depreciable)

            new_accumulated = accumulated + amount
            periods.append(
                DepreciationPeriod(
                    period_number=p.first_number + n - 1,
                    period_id=period_id,
                    period_start=start if n > 1 else start.replace(day=p.first_day),
                    period_end=month_end(start),
                    opening_book_value=self._money(book_value, p),
                    depreciation=self._money(amount, p),
                    accumulated=self._money(p.prior_accumulated + new_accumulated, p),
                    closing_book_value=self._money(p.cost - new_accumulated, p),
                )
            )
            accumulated = new_accumulated
        return periods

    def _amount(
        self,
        p: _Projection,
        n: int,
        months: int,
        start: date,
        book_value: Decimal,
        accumulated: Decimal,
        bonus: Decimal,
    ) -> Decimal:
        method = p.method
        if method is DepreciationMethod.STRAIGHT_LINE:
            return straight_line_monthly(p.cost, p.salvage, p.life_months, accumulated)

        if method is DepreciationMethod.STRAIGHT_LINE_DAILY:
            days = (month_end(start) - start.replace(day=p.first_day if n == 1 else 1)).days + 1
            return straight_line_daily(p.cost, p.salvage, p.life_months, days, accumulated)

        if method.is_declining_balance:
            factor = (
                Decimal("1.5")
                if method is DepreciationMethod.DECLINING_150
                else self._config.declining_balance_factor
            )
            return declining_balance_monthly(
                p.cost,
                p.salvage,
                p.life_months,
                book_value,
                months - n + 1,
                factor,
                self._config.switch_to_straight_line,
            )

        if method is DepreciationMethod.SUM_OF_YEARS:
            return sum_of_years_digits_monthly(p.cost, p.salvage, p.life_months, n, accumulated)

        if method is DepreciationMethod.UNITS_OF_PRODUCTION:
            units = (p.units_by_period or {}).get(period_id_for(start), ZERO)
            return units_of_production(
                p.cost, p.salvage, p.total_units or ZERO, Decimal(units), accumulated
            )

        if method is DepreciationMethod.BONUS:
            if bonus <= 0:
                return straight_line_monthly(p.cost, p.salvage, p.life_months, accumulated)
            if n == 1:
                return bonus
            return straight_line_monthly(
                p.cost - bonus, p.salvage, p.life_months - 1, accumulated - bonus
            )

        if method is DepreciationMethod.ANNUITY:
            return annuity_monthly(
                p.cost, p.salvage, p.life_months, n, self._config.annuity_interest_rate, accumulated
            )

        if method is DepreciationMethod.MACRS:
            year = -(-n // 12)
            annual = macrs(p.cost, p.property_class, year)
            return (annual / Decimal(12)).quantize(_CENT)

        raise DepreciationError.unsupported_method(method.value)

    @staticmethod
    def _money(value: Decimal, p: _Projection) -> Money:
        return Money(amount=value, currency=p.currency)
