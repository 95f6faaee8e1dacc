"""
Statutory Calculators (``nexus_modules.payroll.statutory``).

Responsibility
--------------
Country-specific employee deductions and employer contributions computed
from a ``PayrollPayload``. The payroll engine is country-agnostic and
depends only on the ``StatutoryCalculator`` protocol.

Invariants enforced
-------------------
* The Malaysian calculator reads every rate and ceiling from
  ``PayrollStatutoryConfig``.
* Each contribution is rounded up to the next sen.
* Results are in the payload's currency.

Failure modes
-------------
* ``PayloadValidationError`` -- payload currency differs from the
  configured currency.
"""

from __future__ import annotations

from typing import Protocol

from nexus_kernel.logging_config import get_logger
from nexus_modules.payroll.config import PayrollStatutoryConfig
from nexus_modules.payroll.exceptions import PayloadValidationError
from nexus_modules.payroll.helpers import contribution
from nexus_modules.payroll.models import PayLine, PayrollPayload, StatutoryResult

logger = get_logger("modules.payroll.statutory")


class StatutoryCalculator(Protocol):
    def calculate(self, payload: PayrollPayload) -> StatutoryResult: ...


class MalaysiaStatutoryCalculator:
    """
    EPF, SOCSO and EIS contributions on the period's gross wages.

    EPF has no wage ceiling; the employer rate steps down above the
    low-wage threshold. SOCSO and EIS apply to wages up to their ceilings.
    PCB income tax is not computed here.
    """

    def __init__(self, config: PayrollStatutoryConfig | None = None):
        self._config = config or PayrollStatutoryConfig.with_defaults()

    @property
    def config(self) -> PayrollStatutoryConfig:
        return self._config

    def calculate(self, payload: PayrollPayload) -> StatutoryResult:
        cfg = self._config
        if payload.currency != cfg.currency:
            raise PayloadValidationError(
                f"Payload currency {payload.currency} does not match statutory currency {cfg.currency}",
                employee_id=payload.employee_id,
            )

        wages = payload.gross_pay
        low_wage = wages.amount <= cfg.epf_low_wage_threshold
        epf_employer_rate = cfg.epf_employer_rate_low_wage if low_wage else cfg.epf_employer_rate

        employee = (
            PayLine("EPF_EE", "EPF (employee)", contribution(wages, cfg.epf_employee_rate), False),
            PayLine("SOCSO_EE", "SOCSO (employee)", contribution(wages, cfg.socso_employee_rate, cfg.socso_wage_ceiling), False),
            PayLine("EIS_EE", "EIS (employee)", contribution(wages, cfg.eis_employee_rate, cfg.eis_wage_ceiling), False),
        )
        employer = (
            PayLine("EPF_ER", "EPF (employer)", contribution(wages, epf_employer_rate), False),
            PayLine("SOCSO_ER", "SOCSO (employer)", contribution(wages, cfg.socso_employer_rate, cfg.socso_wage_ceiling), False),
            PayLine("EIS_ER", "EIS (employer)", contribution(wages, cfg.eis_employer_rate, cfg.eis_wage_ceiling), False),
        )
        result = StatutoryResult(
            currency=cfg.currency,
            employee_deductions=employee,
            employer_contributions=employer,
            metadata={
                "country": "MY",
                "epf_employer_rate": str(epf_employer_rate),
                "socso_wage_base": str(min(wages.amount, cfg.socso_wage_ceiling)),
                "eis_wage_base": str(min(wages.amount, cfg.eis_wage_ceiling)),
            },
        )
        logger.debug(
            "statutory_contributions_calculated",
            extra={
                "employee_id": payload.employee_id,
                "gross_pay": str(wages.amount),
                "employee_total": str(result.total_employee_deductions.amount),
                "employer_total": str(result.total_employer_contributions.amount),
            },
        )
        return result
