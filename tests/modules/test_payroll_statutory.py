"""
Tests for payroll helpers, statutory configuration and the Malaysian calculator.
"""

from datetime import date
from decimal import Decimal

import pytest

from nexus_kernel.values import Money
from nexus_modules.payroll.config import PayrollStatutoryConfig
from nexus_modules.payroll.exceptions import PayloadValidationError
from nexus_modules.payroll.helpers import basic_salary, component_amount, contribution, round_up
from nexus_modules.payroll.models import (
    CalculationMethod,
    ComponentKind,
    EmployeeComponent,
    PayComponent,
    PayrollPayload,
)
from nexus_modules.payroll.statutory import MalaysiaStatutoryCalculator


def myr(amount) -> Money:
    return Money.of(str(amount), "MYR")


def payload(gross, currency="MYR") -> PayrollPayload:
    amount = Money.of(str(gross), currency)
    return PayrollPayload(
        employee_id="EMP-1",
        tenant_id="T1",
        period_start=date(2024, 1, 1),
        period_end=date(2024, 1, 31),
        gross_pay=amount,
        taxable_income=amount,
        basic_salary=amount,
        earnings_breakdown={"BASIC": amount},
        ytd_gross_pay=Money.zero(currency),
        ytd_tax_paid=Money.zero(currency),
    )


def lines(result_lines):
    return {line.code: line.amount for line in result_lines}


BASIC = PayComponent("C1", "BASIC", "Basic salary", ComponentKind.EARNING, fixed_amount=myr(4000))
HOUSING = PayComponent(
    "C2",
    "HOUSING",
    "Housing allowance",
    ComponentKind.EARNING,
    calculation_method=CalculationMethod.PERCENTAGE_OF_BASIC,
    percentage=Decimal("10"),
)


class TestHelpers:

    def test_round_up_to_sen(self):
        assert round_up(myr("16.66665")) == myr("16.67")
        assert round_up(myr("16.66")) == myr("16.66")

    def test_contribution_respects_ceiling(self):
        assert contribution(myr(8000), Decimal("0.005"), Decimal("6000")) == myr("30.00")
        assert contribution(myr(4000), Decimal("0.005"), Decimal("6000")) == myr("20.00")

    def test_fixed_and_percentage_components(self):
        basic = myr(4000)
        assert component_amount(EmployeeComponent("E", "C1"), BASIC, basic) == myr(4000)
        assert component_amount(EmployeeComponent("E", "C2"), HOUSING, basic) == myr("400.00")

    def test_override_wins(self):
        assert component_amount(EmployeeComponent("E", "C2", amount=myr(555)), HOUSING, myr(4000)) == myr(555)

    def test_basic_salary_by_code(self):
        pairs = [(EmployeeComponent("E", "C2"), HOUSING), (EmployeeComponent("E", "C1"), BASIC)]
        assert basic_salary(pairs, "BASIC", "MYR") == myr(4000)

    def test_basic_salary_without_basic_component(self):
        other = PayComponent("C3", "WAGE", "Wage", ComponentKind.EARNING, fixed_amount=myr(2500))
        pairs = [(EmployeeComponent("E", "C3"), other), (EmployeeComponent("E", "C2"), HOUSING)]
        assert basic_salary(pairs, "BASIC", "MYR") == myr(2500)

    def test_percentage_bounds(self):
        with pytest.raises(ValueError, match="percentage"):
            PayComponent("C9", "X", "X", ComponentKind.EARNING, percentage=Decimal("101"))


class TestStatutoryConfig:

    def test_defaults(self):
        config = PayrollStatutoryConfig.with_defaults()
        assert config.epf_employee_rate == Decimal("0.11")
        assert config.socso_wage_ceiling == Decimal("6000")

    def test_from_dict_converts_decimals(self):
        config = PayrollStatutoryConfig.from_dict({"epf_employee_rate": "0.09", "eis_wage_ceiling": 5000})
        assert config.epf_employee_rate == Decimal("0.09")
        assert config.eis_wage_ceiling == Decimal("5000")

    def test_rates_must_be_fractions(self):
        with pytest.raises(ValueError, match="cannot exceed"):
            PayrollStatutoryConfig(epf_employee_rate=Decimal("11"))


class TestMalaysiaCalculator:

    @pytest.fixture
    def calculator(self):
        return MalaysiaStatutoryCalculator()

    def test_low_wage_contributions(self, calculator):
        result = calculator.calculate(payload(4000))
        assert lines(result.employee_deductions) == {
            "EPF_EE": myr("440.00"),
            "SOCSO_EE": myr("20.00"),
            "EIS_EE": myr("8.00"),
        }
        assert lines(result.employer_contributions) == {
            "EPF_ER": myr("520.00"),
            "SOCSO_ER": myr("70.00"),
            "EIS_ER": myr("8.00"),
        }
        assert result.total_employee_deductions == myr("468.00")
        assert result.total_cost_to_employer(myr(4000)) == myr("4598.00")

    def test_ceilings_above_6000(self, calculator):
        result = calculator.calculate(payload(7000))
        employee = lines(result.employee_deductions)
        employer = lines(result.employer_contributions)
        assert employee["EPF_EE"] == myr("770.00")
        assert employer["EPF_ER"] == myr("840.00")
        assert employee["SOCSO_EE"] == myr("30.00")
        assert employer["SOCSO_ER"] == myr("105.00")
        assert employee["EIS_EE"] == employer["EIS_ER"] == myr("12.00")

    @pytest.mark.parametrize(
        "gross,expected",
        [("5000", "650.00"), ("5000.01", "600.01")],
    )
    def test_employer_epf_threshold(self, calculator, gross, expected):
        assert lines(calculator.calculate(payload(gross)).employer_contributions)["EPF_ER"] == myr(expected)

    def test_rounds_up_to_sen(self, calculator):
        result = calculator.calculate(payload("3333.33"))
        employee = lines(result.employee_deductions)
        employer = lines(result.employer_contributions)
        assert employee["EPF_EE"] == myr("366.67")
        assert employer["EPF_ER"] == myr("433.34")
        assert employee["SOCSO_EE"] == myr("16.67")
        assert employer["SOCSO_ER"] == myr("58.34")
        assert employee["EIS_EE"] == myr("6.67")

    def test_rates_from_config(self):
        calculator = MalaysiaStatutoryCalculator(PayrollStatutoryConfig(epf_employee_rate=Decimal("0.09")))
        assert lines(calculator.calculate(payload(4000)).employee_deductions)["EPF_EE"] == myr("360.00")

    def test_currency_mismatch(self, calculator):
        with pytest.raises(PayloadValidationError, match="currency"):
            calculator.calculate(payload(4000, currency="USD"))
