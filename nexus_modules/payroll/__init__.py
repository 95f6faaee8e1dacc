"""
Payroll Module (``nexus_modules.payroll``).

Responsibility
--------------
Country-agnostic payroll processing with pluggable statutory calculators.
Ships a Malaysian calculator for EPF, SOCSO and EIS.

Architecture position
---------------------
**Modules layer** -- ``PayrollEngine`` orchestrates; ``PayloadBuilder``
gathers HR data; ``StatutoryCalculator`` implementations apply country
rules; ``helpers`` holds the arithmetic.

Invariants enforced
-------------------
* Money only; no floats.
* Statutory contributions round up to the next sen.
* Payslips follow ``PAYSLIP_WORKFLOW`` (draft -> approved -> paid).
"""

from nexus_modules.payroll.builder import (
    ComponentRepository,
    ComponentResolver,
    EmployeeComponentRepository,
    EmployeeDataProvider,
    PayloadBatch,
    PayloadBuilder,
)
from nexus_modules.payroll.config import PayrollStatutoryConfig
from nexus_modules.payroll.exceptions import (
    DuplicatePayslipError,
    InvalidPayslipTransitionError,
    PayloadValidationError,
    PayrollError,
    PayslipNotFoundError,
)
from nexus_modules.payroll.models import (
    CalculationMethod,
    ComponentKind,
    EmployeeComponent,
    EmployeeRecord,
    PayComponent,
    PayLine,
    PayrollPayload,
    Payslip,
    PayslipStatus,
    StatutoryResult,
    YtdPayroll,
)
from nexus_modules.payroll.service import PayrollEngine, PayslipRepository
from nexus_modules.payroll.statutory import MalaysiaStatutoryCalculator, StatutoryCalculator
from nexus_modules.payroll.workflows import PAYSLIP_WORKFLOW

__all__ = [
    "PAYSLIP_WORKFLOW",
    "CalculationMethod",
    "ComponentKind",
    "ComponentRepository",
    "ComponentResolver",
    "DuplicatePayslipError",
    "EmployeeComponent",
    "EmployeeComponentRepository",
    "EmployeeDataProvider",
    "EmployeeRecord",
    "InvalidPayslipTransitionError",
    "MalaysiaStatutoryCalculator",
    "PayComponent",
    "PayLine",
    "PayloadBatch",
    "PayloadBuilder",
    "PayloadValidationError",
    "PayrollEngine",
    "PayrollError",
    "PayrollPayload",
    "PayrollStatutoryConfig",
    "Payslip",
    "PayslipNotFoundError",
    "PayslipRepository",
    "PayslipStatus",
    "StatutoryCalculator",
    "StatutoryResult",
    "YtdPayroll",
]
