"""
Payroll Engine (``nexus_modules.payroll.service``).

Responsibility
--------------
Country-agnostic payroll processing: earnings from pay components,
non-statutory deductions, statutory deductions from the injected
calculator, and a draft payslip per employee and period.

Architecture position
---------------------
**Modules layer** -- orchestration. Employee data, components and
payslips are reached through protocols; statutory rules live behind
``StatutoryCalculator``.

Invariants enforced
-------------------
* net pay = gross pay - (non-statutory + statutory employee deductions).
* New payslips are DRAFT and persisted before being returned.
* At most one live (non-cancelled) payslip per employee and period.

Failure modes
-------------
* ``PayloadValidationError`` -- missing tenant or unknown employee.
* ``DuplicatePayslipError`` -- employee already paid for the period.
* ``PayslipNotFoundError`` -- unknown payslip id.
* ``InvalidPayslipTransitionError`` -- illegal status change.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.payroll.builder import ComponentResolver, EmployeeDataProvider, PayloadBuilder
from nexus_modules.payroll.exceptions import DuplicatePayslipError, PayslipNotFoundError
from nexus_modules.payroll.helpers import basic_salary, deduction_lines, earning_lines
from nexus_modules.payroll.models import Payslip
from nexus_modules.payroll.statutory import StatutoryCalculator

logger = get_logger("modules.payroll.service")


class PayslipRepository(Protocol):
    def save(self, payslip: Payslip) -> None: ...

    def get(self, payslip_id: str) -> Payslip | None: ...

    def find_for_employee(self, employee_id: str, period_start: date, period_end: date) -> Sequence[Payslip]: ...


class PayrollEngine:
    """
    Runs payroll for one employee or a whole period.

    Contract
    --------
    * ``filters`` for ``process_period`` accepts ``employee_ids``,
      ``department_id`` and ``effective_date``; explicit ids bypass the
      active-employee lookup.
    """

    def __init__(
        self,
        employee_data: EmployeeDataProvider,
        resolver: ComponentResolver,
        payload_builder: PayloadBuilder,
        statutory_calculator: StatutoryCalculator,
        payslips: PayslipRepository,
        currency: str = "MYR",
        basic_component_code: str = "BASIC",
        clock: Clock | None = None,
    ):
        self._employee_data = employee_data
        self._resolver = resolver
        self._builder = payload_builder
        self._statutory = statutory_calculator
        self._payslips = payslips
        self._currency = currency
        self._basic_code = basic_component_code
        self._clock = clock or SystemClock()

    def process_employee(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
        tenant_id: str | None = None,
    ) -> Payslip:
        for existing in self._payslips.find_for_employee(employee_id, period_start, period_end):
            if existing.is_live:
                raise DuplicatePayslipError(
                    employee_id, period_start.isoformat(), period_end.isoformat(), existing.payslip_id
                )

        assignments = self._resolver.resolve(employee_id)
        basic = basic_salary(assignments, self._basic_code, self._currency)
        earnings = earning_lines(assignments, basic)
        other_deductions = deduction_lines(assignments, basic)

        payload = self._builder.build(employee_id, period_start, period_end, tenant_id)
        statutory = self._statutory.calculate(payload)

        payslip = Payslip.draft(
            tenant_id=payload.tenant_id,
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            earnings=earnings,
            deductions=other_deductions + statutory.employee_deductions,
            statutory=statutory,
            created_at=self._clock.now(),
        )
        self._payslips.save(payslip)
        logger.info(
            "payslip_created",
            extra={
                "payslip_id": payslip.payslip_id,
                "employee_id": employee_id,
                "tenant_id": payslip.tenant_id,
                "gross_pay": str(payslip.gross_pay.amount),
                "net_pay": str(payslip.net_pay.amount),
            },
        )
        return payslip

    def process_period(
        self,
        tenant_id: str,
        period_start: date,
        period_end: date,
        filters: Mapping[str, Any] | None = None,
    ) -> list[Payslip]:
        filters = filters or {}
        employee_ids = filters.get("employee_ids")
        if employee_ids is None:
            employee_ids = self._active_employee_ids(tenant_id, period_end, filters)

        logger.info(
            "payroll_period_started",
            extra={
                "tenant_id": tenant_id,
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "employee_count": len(employee_ids),
            },
        )
        payslips = [self.process_employee(eid, period_start, period_end, tenant_id) for eid in employee_ids]
        logger.info(
            "payroll_period_completed",
            extra={"tenant_id": tenant_id, "payslip_count": len(payslips)},
        )
        return payslips

    def get_payslip(self, payslip_id: str) -> Payslip:
        payslip = self._payslips.get(payslip_id)
        if payslip is None:
            raise PayslipNotFoundError(payslip_id)
        return payslip

    def approve_payslip(self, payslip_id: str) -> Payslip:
        return self._save(self.get_payslip(payslip_id).approve())

    def mark_paid(self, payslip_id: str) -> Payslip:
        return self._save(self.get_payslip(payslip_id).mark_paid())

    def cancel_payslip(self, payslip_id: str) -> Payslip:
        return self._save(self.get_payslip(payslip_id).cancel())

    def _save(self, payslip: Payslip) -> Payslip:
        self._payslips.save(payslip)
        logger.info(
            "payslip_status_updated",
            extra={"payslip_id": payslip.payslip_id, "status": payslip.status.value},
        )
        return payslip

    def _active_employee_ids(self, tenant_id: str, period_end: date, filters: Mapping[str, Any]) -> list[str]:
        effective_date = filters.get("effective_date") or period_end
        employees = self._employee_data.get_active_employees(tenant_id, effective_date)
        department_id = filters.get("department_id")
        if department_id is not None:
            employees = [e for e in employees if e.department_id == department_id]
        return [e.employee_id for e in employees]
