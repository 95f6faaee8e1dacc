"""
Fixed Asset Depreciation Helpers (``nexus_modules.fixed_assets.helpers``).

Responsibility
--------------
Pure per-period depreciation formulas: straight-line (monthly and daily),
declining balance with a straight-line switch, sum-of-years'-digits,
units-of-production, bonus depreciation, MACRS and annuity.

Architecture position
---------------------
**Modules layer** -- pure helper functions. No I/O, no clock. Called by
``DepreciationScheduleGenerator`` or from tests.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal``.
* Results are quantized to cents, half up.
* No formula depreciates past the remaining depreciable amount.

Failure modes
-------------
* Degenerate inputs (zero life, zero units, out-of-table MACRS year)
  return ``Decimal("0")`` rather than raising.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0")
DAYS_PER_YEAR = 365
MIN_DECLINING_LIFE_MONTHS = 12

# Half-year convention percentages (IRS Publication 946, Table A-1)
MACRS_RATES: dict[int, tuple[Decimal, ...]] = {
    3: tuple(Decimal(r) for r in ("0.3333", "0.4445", "0.1481", "0.0741")),
    5: tuple(Decimal(r) for r in ("0.20", "0.32", "0.192", "0.1152", "0.1152", "0.0576")),
    7: tuple(
        Decimal(r)
        for r in ("0.1429", "0.2449", "0.1749", "0.1249", "0.0893", "0.0892", "0.0893", "0.0446")
    ),
    10: tuple(
        Decimal(r)
        for r in (
            "0.10", "0.18", "0.144", "0.1152", "0.0922", "0.0737",
            "0.0655", "0.0655", "0.0656", "0.0655", "0.0328",
        )
    ),
    15: tuple(
        Decimal(r)
        for r in (
            "0.05", "0.095", "0.0855", "0.077", "0.0693", "0.0623", "0.059", "0.059",
            "0.0591", "0.059", "0.0591", "0.059", "0.0591", "0.059", "0.0591", "0.0295",
        )
    ),
    20: tuple(
        Decimal(r)
        for r in (
            "0.0375", "0.07219", "0.06677", "0.06177", "0.05713", "0.05285", "0.04888",
            "0.04522", "0.04462", "0.04461", "0.04462", "0.04461", "0.04462", "0.04461",
            "0.04462", "0.04461", "0.04462", "0.04461", "0.04462", "0.04461", "0.02231",
        )
    ),
}


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _remaining(cost: Decimal, salvage: Decimal, accumulated: Decimal) -> Decimal:
    return max(ZERO, cost - salvage - accumulated)


def validate_inputs(cost: Decimal, salvage: Decimal, life_months: int) -> list[str]:
    """Human-readable problems with the basic depreciation inputs."""
    errors: list[str] = []
    if cost <= 0:
        errors.append("Cost must be positive")
    if salvage < 0:
        errors.append("Salvage value cannot be negative")
    if salvage >= cost:
        errors.append("Salvage value must be less than cost")
    if life_months <= 0:
        errors.append("Useful life months must be positive")
    return errors


def straight_line_monthly(
    cost: Decimal,
    salvage: Decimal,
    life_months: int,
    accumulated: Decimal = ZERO,
) -> Decimal:
    """(cost - salvage) / life, capped at what is left to depreciate."""
    remaining = _remaining(cost, salvage, accumulated)
    if life_months <= 0 or remaining <= 0:
        return ZERO
    monthly = (cost - salvage) / Decimal(life_months)
    return _cents(min(monthly, remaining))


def straight_line_daily(
    cost: Decimal,
    salvage: Decimal,
    life_months: int,
    days_in_period: int,
    accumulated: Decimal = ZERO,
) -> Decimal:
    """Straight-line prorated by days held, on a 365-day year."""
    remaining = _remaining(cost, salvage, accumulated)
    if life_months <= 0 or days_in_period <= 0 or remaining <= 0:
        return ZERO
    annual = (cost - salvage) * Decimal(12) / Decimal(life_months)
    daily = annual / Decimal(DAYS_PER_YEAR)
    return _cents(min(daily * Decimal(days_in_period), remaining))


def declining_balance_monthly(
    cost: Decimal,
    salvage: Decimal,
    life_months: int,
    book_value: Decimal,
    remaining_months: int,
    factor: Decimal = Decimal("2"),
    switch_to_straight_line: bool = True,
) -> Decimal:
    """
    Declining balance at ``factor`` / life-in-years, applied monthly.

    Switches to straight-line over the remaining months once that yields
    more. Never depreciates below salvage.
    """
    if life_months <= 0 or factor <= 0 or book_value <= salvage:
        return ZERO
    remaining = max(ZERO, book_value - salvage)
    monthly_rate = factor / (Decimal(life_months) / Decimal(12)) / Decimal(12)
    amount = book_value * monthly_rate
    if switch_to_straight_line and remaining_months > 0:
        straight = remaining / Decimal(remaining_months)
        if straight > amount:
            amount = straight
    return _cents(max(ZERO, min(amount, remaining)))


def sum_of_years_digits_monthly(
    cost: Decimal,
    salvage: Decimal,
    life_months: int,
    month_index: int,
    accumulated: Decimal = ZERO,
) -> Decimal:
    """
    One twelfth of the SYD amount for the year containing ``month_index``.

    ``month_index`` is 1-based; life is rounded up to whole years.
    """
    remaining = _remaining(cost, salvage, accumulated)
    years = -(-life_months // 12)
    if years <= 0 or month_index <= 0 or remaining <= 0:
        return ZERO
    current_year = -(-month_index // 12)
    remaining_life = max(0, years - current_year + 1)
    sum_digits = Decimal(years * (years + 1) // 2)
    yearly = (cost - salvage) * Decimal(remaining_life) / sum_digits
    return _cents(min(yearly / Decimal(12), remaining))


def units_of_production(
    cost: Decimal,
    salvage: Decimal,
    total_units: Decimal,
    units_produced: Decimal,
    accumulated: Decimal = ZERO,
) -> Decimal:
    remaining = _remaining(cost, salvage, accumulated)
    if total_units <= 0 or units_produced <= 0 or remaining <= 0:
        return ZERO
    per_unit = (cost - salvage) / total_units
    return _cents(min(per_unit * units_produced, remaining))


def bonus_depreciation(
    cost: Decimal,
    rate: Decimal = Decimal("1.0"),
    recovery_year: int = 1,
    is_new_property: bool = True,
    accumulated: Decimal = ZERO,
) -> Decimal:
    """First-year bonus: ``cost * rate`` for new property in recovery year 1."""
    if rate < 0 or rate > 1 or recovery_year != 1 or not is_new_property:
        return ZERO
    return _cents(max(ZERO, min(cost * rate, cost - accumulated)))


def macrs(
    cost: Decimal,
    property_class: int,
    recovery_year: int,
    accumulated: Decimal = ZERO,
    bonus_rate: Decimal = ZERO,
) -> Decimal:
    """
    Annual MACRS deduction for ``recovery_year`` (1-based).

    Salvage is ignored, as the tax code requires. A year-one bonus is
    added on top of the table rate when ``bonus_rate`` is positive.
    """
    rates = MACRS_RATES.get(property_class)
    if rates is None or not 1 <= recovery_year <= len(rates):
        return ZERO
    amount = cost * rates[recovery_year - 1]
    if bonus_rate > 0 and recovery_year == 1:
        amount += cost * bonus_rate
    return _cents(max(ZERO, min(amount, cost - accumulated)))


def macrs_recovery_years(property_class: int) -> int:
    """Number of tax years over which a class is recovered (class + 1 under half-year)."""
    rates = MACRS_RATES.get(property_class)
    return len(rates) if rates else 0


def annuity_monthly(
    cost: Decimal,
    salvage: Decimal,
    life_months: int,
    month_index: int,
    annual_rate: Decimal,
    accumulated: Decimal = ZERO,
) -> Decimal:
    """
    Sinking-fund annuity depreciation for 1-based ``month_index``.

    Charges grow by ``(1 + i)`` each month, ``i`` being the monthly rate,
    so that over ``life_months`` they sum to cost less salvage. A zero
    rate degenerates to straight-line.
    """
    remaining = _remaining(cost, salvage, accumulated)
    if life_months <= 0 or month_index <= 0 or remaining <= 0:
        return ZERO
    monthly_rate = annual_rate / Decimal(12)
    if monthly_rate <= 0:
        return straight_line_monthly(cost, salvage, life_months, accumulated)
    growth = Decimal(1) + monthly_rate
    first = (cost - salvage) * monthly_rate / (growth**life_months - Decimal(1))
    return _cents(min(first * growth ** (month_index - 1), remaining))
