"""
Payroll Helpers (``nexus_modules.payroll.helpers``).

Responsibility
--------------
Pure calculation functions for component amounts and statutory
contributions.

Architecture position
---------------------
**Modules layer** -- pure helper functions. No I/O, no clock. Called by
``PayloadBuilder``, ``PayrollEngine`` and ``MalaysiaStatutoryCalculator``.

Invariants enforced
-------------------
* All amounts are ``Money``; rates are ``Decimal`` fractions.
* Contributions are rounded up to the next minor unit (sen).
* An employee override amount always wins over the component's method.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_CEILING, Decimal

from nexus_kernel.values import Money
from nexus_modules.payroll.models import (
    CalculationMethod,
    EmployeeComponent,
    PayComponent,
    PayLine,
)

ComponentAssignment = tuple[EmployeeComponent, PayComponent]


def round_up(amount: Money) -> Money:
    return amount.round(ROUND_CEILING)


def contribution(wages: Money, rate: Decimal, ceiling: Decimal | None = None) -> Money:
    """``rate`` of ``wages`` (capped at ``ceiling`` when given), rounded up."""
    base = wages
    if ceiling is not None:
        cap = Money.of(ceiling, wages.currency)
        base = min(wages, cap)
    return round_up(base * rate)


def component_amount(assignment: EmployeeComponent, component: PayComponent, basic_salary: Money) -> Money:
    if assignment.amount is not None:
        return assignment.amount
    currency = basic_salary.currency
    if component.calculation_method is CalculationMethod.PERCENTAGE_OF_BASIC:
        if component.percentage is None:
            return Money.zero(currency)
        return (basic_salary * component.percentage / 100).round()
    return component.fixed_amount or Money.zero(currency)


def basic_salary(assignments: Sequence[ComponentAssignment], basic_code: str, currency: str) -> Money:
    """
    The employee's basic salary.

    The earning whose code is ``basic_code``; without one, the sum of the
    non-percentage earnings.
    """
    zero = Money.zero(currency)
    for assignment, component in assignments:
        if component.is_earning and component.code == basic_code:
            return component_amount(assignment, component, zero)
    total = zero
    for assignment, component in assignments:
        if component.is_earning and component.calculation_method is not CalculationMethod.PERCENTAGE_OF_BASIC:
            total = total + component_amount(assignment, component, zero)
    return total


def earning_lines(assignments: Sequence[ComponentAssignment], basic: Money) -> tuple[PayLine, ...]:
    return tuple(
        PayLine(component.code, component.name, component_amount(assignment, component, basic), component.is_taxable)
        for assignment, component in assignments
        if component.is_earning
    )


def deduction_lines(assignments: Sequence[ComponentAssignment], basic: Money) -> tuple[PayLine, ...]:
    """Non-statutory deductions; statutory ones come from the calculator."""
    return tuple(
        PayLine(component.code, component.name, component_amount(assignment, component, basic), False)
        for assignment, component in assignments
        if component.is_deduction and not component.is_statutory
    )


def total(lines: Sequence[PayLine], currency: str) -> Money:
    return sum((line.amount for line in lines), Money.zero(currency))
