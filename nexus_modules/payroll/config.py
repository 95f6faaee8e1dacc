"""
Payroll Statutory Configuration.

Malaysian statutory contribution rates (EPF, SOCSO, EIS) with the
published defaults. Loaded from the ``payroll`` section of a package
configuration file; rates are fractions, not percentages.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Self

from nexus_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.config")


@dataclass
class PayrollStatutoryConfig:
    """Configuration schema for the Malaysian statutory calculator."""

    currency: str = "MYR"
    basic_component_code: str = "BASIC"

    # EPF
    epf_employee_rate: Decimal = Decimal("0.11")
    epf_employer_rate_low_wage: Decimal = Decimal("0.13")
    epf_employer_rate: Decimal = Decimal("0.12")
    epf_low_wage_threshold: Decimal = Decimal("5000")

    # SOCSO
    socso_employee_rate: Decimal = Decimal("0.005")
    socso_employer_rate: Decimal = Decimal("0.0175")
    socso_wage_ceiling: Decimal = Decimal("6000")

    # EIS
    eis_employee_rate: Decimal = Decimal("0.002")
    eis_employer_rate: Decimal = Decimal("0.002")
    eis_wage_ceiling: Decimal = Decimal("6000")

    _RATE_FIELDS = (
        "epf_employee_rate",
        "epf_employer_rate_low_wage",
        "epf_employer_rate",
        "socso_employee_rate",
        "socso_employer_rate",
        "eis_employee_rate",
        "eis_employer_rate",
    )
    _AMOUNT_FIELDS = ("epf_low_wage_threshold", "socso_wage_ceiling", "eis_wage_ceiling")

    def __post_init__(self):
        for name in self._RATE_FIELDS:
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative")
            if value > 1:
                raise ValueError(f"{name} cannot exceed 1 (100%)")
        for name in self._AMOUNT_FIELDS:
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not self.basic_component_code:
            raise ValueError("basic_component_code is required")

        logger.info(
            "payroll_statutory_config_initialized",
            extra={
                "currency": self.currency,
                "epf_employee_rate": str(self.epf_employee_rate),
                "epf_low_wage_threshold": str(self.epf_low_wage_threshold),
                "socso_wage_ceiling": str(self.socso_wage_ceiling),
                "eis_wage_ceiling": str(self.eis_wage_ceiling),
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("payroll_statutory_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        logger.info(
            "payroll_statutory_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        values = dict(data)
        for name in cls._RATE_FIELDS + cls._AMOUNT_FIELDS:
            if name in values:
                values[name] = Decimal(str(values[name]))
        return cls(**values)
