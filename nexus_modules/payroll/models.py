"""
Payroll Models.

Pay components and their employee assignments, the statutory payload and
result, and the payslip produced by a payroll run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Self

from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payroll.exceptions import InvalidPayslipTransitionError
from nexus_modules.payroll.workflows import PAYSLIP_WORKFLOW

logger = get_logger("modules.payroll.models")


class ComponentKind(str, Enum):
    EARNING = "earning"
    DEDUCTION = "deduction"


class CalculationMethod(str, Enum):
    FIXED_AMOUNT = "fixed_amount"
    PERCENTAGE_OF_BASIC = "percentage_of_basic"


class PayslipStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return PAYSLIP_WORKFLOW.is_terminal(self)

    def can_transition_to(self, target: PayslipStatus) -> bool:
        return PAYSLIP_WORKFLOW.can_transition(self, target)


@dataclass(frozen=True)
class PayComponent:
    """
    A configured earning or deduction.

    ``percentage`` is expressed in percent (``Decimal("10")`` is 10%) and
    applies to the employee's basic salary.
    """

    component_id: str
    code: str
    name: str
    kind: ComponentKind
    calculation_method: CalculationMethod = CalculationMethod.FIXED_AMOUNT
    fixed_amount: Money | None = None
    percentage: Decimal | None = None
    is_taxable: bool = True
    is_statutory: bool = False

    def __post_init__(self) -> None:
        if self.percentage is not None and not Decimal("0") <= self.percentage <= Decimal("100"):
            raise ValueError(f"Component {self.code}: percentage must be within 0-100")
        if self.fixed_amount is not None and self.fixed_amount.is_negative:
            raise ValueError(f"Component {self.code}: fixed amount cannot be negative")

    @property
    def is_earning(self) -> bool:
        return self.kind is ComponentKind.EARNING

    @property
    def is_deduction(self) -> bool:
        return self.kind is ComponentKind.DEDUCTION


@dataclass(frozen=True)
class EmployeeComponent:
    """Assignment of a component to an employee; ``amount`` overrides the calculation."""

    employee_id: str
    component_id: str
    amount: Money | None = None


@dataclass(frozen=True)
class PayLine:
    code: str
    name: str
    amount: Money
    is_taxable: bool = True


@dataclass(frozen=True)
class EmployeeRecord:
    """Employee data supplied by HR for a payroll run."""

    employee_id: str
    tenant_id: str
    employee_number: str
    full_name: str
    hire_date: date
    tax_id: str | None = None
    citizenship: str | None = None
    employment_type: str = "permanent"
    department_id: str | None = None
    pay_group_id: str | None = None
    bank_name: str | None = None
    bank_account_number: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class YtdPayroll:
    ytd_gross_pay: Money
    ytd_tax_paid: Money


@dataclass(frozen=True)
class PayrollPayload:
    """Everything a statutory calculator needs for one employee and period."""

    employee_id: str
    tenant_id: str
    period_start: date
    period_end: date
    gross_pay: Money
    taxable_income: Money
    basic_salary: Money
    earnings_breakdown: dict[str, Money]
    ytd_gross_pay: Money
    ytd_tax_paid: Money
    employee_metadata: dict[str, Any] = field(default_factory=dict)
    company_metadata: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def currency(self) -> str:
        return self.gross_pay.currency.code


@dataclass(frozen=True)
class StatutoryResult:
    currency: str
    employee_deductions: tuple[PayLine, ...] = ()
    employer_contributions: tuple[PayLine, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def total_employee_deductions(self) -> Money:
        return sum((line.amount for line in self.employee_deductions), Money.zero(self.currency))

    @property
    def total_employer_contributions(self) -> Money:
        return sum((line.amount for line in self.employer_contributions), Money.zero(self.currency))

    def total_cost_to_employer(self, gross_pay: Money) -> Money:
        return gross_pay + self.total_employer_contributions


@dataclass(frozen=True)
class Payslip:
    payslip_id: str
    tenant_id: str
    employee_id: str
    period_start: date
    period_end: date
    pay_date: date
    gross_pay: Money
    total_deductions: Money
    net_pay: Money
    earnings: tuple[PayLine, ...]
    deductions: tuple[PayLine, ...]
    employer_contributions: tuple[PayLine, ...]
    created_at: datetime
    status: PayslipStatus = PayslipStatus.DRAFT
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def draft(
        cls,
        tenant_id: str,
        employee_id: str,
        period_start: date,
        period_end: date,
        earnings: tuple[PayLine, ...],
        deductions: tuple[PayLine, ...],
        statutory: StatutoryResult,
        created_at: datetime,
    ) -> Self:
        currency = statutory.currency
        gross = sum((line.amount for line in earnings), Money.zero(currency))
        total_deductions = sum((line.amount for line in deductions), Money.zero(currency))
        return cls(
            payslip_id=generate_id("PSL"),
            tenant_id=tenant_id,
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            pay_date=period_end,
            gross_pay=gross,
            total_deductions=total_deductions,
            net_pay=gross - total_deductions,
            earnings=earnings,
            deductions=deductions,
            employer_contributions=statutory.employer_contributions,
            created_at=created_at,
            metadata={
                "calculation_metadata": dict(statutory.metadata),
                "total_cost_to_employer": str(statutory.total_cost_to_employer(gross).amount),
            },
        )

    @property
    def is_live(self) -> bool:
        return self.status is not PayslipStatus.CANCELLED

    def approve(self) -> Self:
        return self._transition(PayslipStatus.APPROVED)

    def mark_paid(self) -> Self:
        return self._transition(PayslipStatus.PAID)

    def cancel(self) -> Self:
        return self._transition(PayslipStatus.CANCELLED)

    def _transition(self, status: PayslipStatus) -> Self:
        if not self.status.can_transition_to(status):
            raise InvalidPayslipTransitionError(self.payslip_id, self.status.value, status.value)
        logger.debug(
            "payslip_status_changed",
            extra={"payslip_id": self.payslip_id, "from_status": self.status.value, "to_status": status.value},
        )
        return replace(self, status=status)
