"""Payroll exceptions."""

from nexus_kernel.exceptions import NexusError


class PayrollError(NexusError):
    """Base exception for the payroll package."""

    code: str = "PAYROLL_ERROR"


class PayloadValidationError(PayrollError):
    """A statutory payload could not be assembled."""

    code: str = "PAYLOAD_VALIDATION_FAILED"

    @classmethod
    def missing_tenant(cls, employee_id: str) -> "PayloadValidationError":
        return cls(f"tenant_id is required to build a payload for employee {employee_id}", employee_id=employee_id)

    @classmethod
    def employee_not_found(cls, employee_id: str, tenant_id: str) -> "PayloadValidationError":
        return cls(f"Employee not found: {employee_id}", employee_id=employee_id, tenant_id=tenant_id)

    @classmethod
    def invalid_period(cls, period_start: str, period_end: str) -> "PayloadValidationError":
        return cls(
            f"Pay period end {period_end} precedes start {period_start}",
            period_start=period_start,
            period_end=period_end,
        )


class PayslipNotFoundError(PayrollError):
    code: str = "PAYSLIP_NOT_FOUND"

    def __init__(self, payslip_id: str):
        self.payslip_id = payslip_id
        super().__init__(f"Payslip not found: {payslip_id}", payslip_id=payslip_id)


class DuplicatePayslipError(PayrollError):
    """A live payslip already exists for the employee and period."""

    code: str = "DUPLICATE_PAYSLIP"

    def __init__(self, employee_id: str, period_start: str, period_end: str, existing_id: str):
        self.employee_id = employee_id
        self.existing_id = existing_id
        super().__init__(
            f"Employee {employee_id} already has payslip {existing_id} for {period_start}..{period_end}",
            employee_id=employee_id,
            existing_id=existing_id,
        )


class InvalidPayslipTransitionError(PayrollError):
    code: str = "INVALID_PAYSLIP_TRANSITION"

    def __init__(self, payslip_id: str, from_status: str, to_status: str):
        self.payslip_id = payslip_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Payslip {payslip_id} cannot transition from {from_status} to {to_status}",
            payslip_id=payslip_id,
        )
