"""
Payload Builder (``nexus_modules.payroll.builder``).

Responsibility
--------------
Assembles a ``PayrollPayload`` per employee from HR data, component
assignments and year-to-date figures.

Architecture position
---------------------
**Modules layer** -- reads through the ``EmployeeDataProvider``,
``ComponentRepository`` and ``EmployeeComponentRepository`` protocols.

Failure modes
-------------
* ``PayloadValidationError`` -- missing tenant, unknown employee, or a
  period that ends before it starts.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.payroll.exceptions import PayloadValidationError, PayrollError
from nexus_modules.payroll.helpers import ComponentAssignment, basic_salary, earning_lines, total
from nexus_modules.payroll.models import (
    EmployeeComponent,
    EmployeeRecord,
    PayComponent,
    PayrollPayload,
    YtdPayroll,
)

logger = get_logger("modules.payroll.builder")


class EmployeeDataProvider(Protocol):
    def get_active_employees(self, tenant_id: str, effective_date: date) -> Sequence[EmployeeRecord]: ...

    def get_employees_by_ids(self, tenant_id: str, employee_ids: Sequence[str]) -> Sequence[EmployeeRecord]: ...

    def get_ytd_payroll(self, employee_id: str, year: int) -> YtdPayroll: ...


class ComponentRepository(Protocol):
    def get(self, component_id: str) -> PayComponent | None: ...


class EmployeeComponentRepository(Protocol):
    def active_for_employee(self, employee_id: str) -> Sequence[EmployeeComponent]: ...


class ComponentResolver:
    """Pairs an employee's active assignments with their component definitions."""

    def __init__(self, components: ComponentRepository, employee_components: EmployeeComponentRepository):
        self._components = components
        self._employee_components = employee_components

    def resolve(self, employee_id: str) -> list[ComponentAssignment]:
        pairs: list[ComponentAssignment] = []
        for assignment in self._employee_components.active_for_employee(employee_id):
            component = self._components.get(assignment.component_id)
            if component is None:
                logger.warning(
                    "payroll_component_missing",
                    extra={"employee_id": employee_id, "component_id": assignment.component_id},
                )
                continue
            pairs.append((assignment, component))
        return pairs


@dataclass(frozen=True)
class PayloadBatch:
    payloads: dict[str, PayrollPayload] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class PayloadBuilder:
    def __init__(
        self,
        employee_data: EmployeeDataProvider,
        resolver: ComponentResolver,
        currency: str = "MYR",
        basic_component_code: str = "BASIC",
        clock: Clock | None = None,
    ):
        self._employee_data = employee_data
        self._resolver = resolver
        self._currency = currency
        self._basic_code = basic_component_code
        self._clock = clock or SystemClock()

    def build(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
        tenant_id: str | None,
        *,
        company_metadata: Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> PayrollPayload:
        if not tenant_id:
            raise PayloadValidationError.missing_tenant(employee_id)
        if period_end < period_start:
            raise PayloadValidationError.invalid_period(period_start.isoformat(), period_end.isoformat())

        employees = self._employee_data.get_employees_by_ids(tenant_id, [employee_id])
        if not employees:
            raise PayloadValidationError.employee_not_found(employee_id, tenant_id)
        employee = employees[0]

        ytd = self._employee_data.get_ytd_payroll(employee_id, period_end.year)
        assignments = self._resolver.resolve(employee_id)
        basic = basic_salary(assignments, self._basic_code, self._currency)
        earnings = earning_lines(assignments, basic)

        breakdown = {line.code: line.amount for line in earnings}
        gross = total(earnings, self._currency)
        taxable = total([line for line in earnings if line.is_taxable], self._currency)

        return PayrollPayload(
            employee_id=employee_id,
            tenant_id=tenant_id,
            period_start=period_start,
            period_end=period_end,
            gross_pay=gross,
            taxable_income=taxable,
            basic_salary=basic,
            earnings_breakdown=breakdown,
            ytd_gross_pay=ytd.ytd_gross_pay,
            ytd_tax_paid=ytd.ytd_tax_paid,
            employee_metadata=_employee_metadata(employee),
            company_metadata=dict(company_metadata or {}),
            metadata={
                **dict(metadata or {}),
                "tenant_id": tenant_id,
                "built_at": self._clock.now().isoformat(),
            },
        )

    def build_batch(
        self,
        employee_ids: Sequence[str],
        period_start: date,
        period_end: date,
        tenant_id: str,
        **options: Any,
    ) -> PayloadBatch:
        """Build payloads for many employees; failures are collected, not raised."""
        batch = PayloadBatch()
        for employee_id in employee_ids:
            try:
                batch.payloads[employee_id] = self.build(employee_id, period_start, period_end, tenant_id, **options)
            except PayrollError as exc:
                logger.warning(
                    "payroll_payload_failed",
                    extra={"employee_id": employee_id, "error_code": exc.code, "error": str(exc)},
                )
                batch.failures[employee_id] = str(exc)
        return batch


def _employee_metadata(employee: EmployeeRecord) -> dict[str, Any]:
    return {
        "employee_number": employee.employee_number,
        "full_name": employee.full_name,
        "tax_id": employee.tax_id,
        "citizenship": employee.citizenship,
        "employment_type": employee.employment_type,
        "pay_group_id": employee.pay_group_id,
        "department_id": employee.department_id,
        "hire_date": employee.hire_date.isoformat(),
        "bank_account": {
            "bank": employee.bank_name,
            "number": employee.bank_account_number,
        },
    }
