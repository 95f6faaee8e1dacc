"""
Depreciation Configuration (``nexus_modules.fixed_assets.config``).

Responsibility
--------------
Defaults for schedule generation: the fallback method, declining-balance
factor, bonus rate, MACRS property class and annuity interest rate.

Architecture position
---------------------
**Modules layer** -- configuration schema only. Loaded from the
``fixed_assets`` section of a package configuration file.

Invariants enforced
-------------------
* ``bonus_rate`` lies in [0, 1]; ``declining_balance_factor`` is positive.
* ``annuity_interest_rate`` is an annual rate and not negative.
* ``default_method`` names a known ``DepreciationMethod``.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Self

from nexus_kernel.logging_config import get_logger
from nexus_modules.fixed_assets.helpers import MACRS_RATES
from nexus_modules.fixed_assets.models import DepreciationMethod

logger = get_logger("modules.fixed_assets.config")


@dataclass
class DepreciationConfig:
    """Configuration schema for depreciation schedules."""

    default_method: str = DepreciationMethod.STRAIGHT_LINE.value
    declining_balance_factor: Decimal = Decimal("2")
    switch_to_straight_line: bool = True
    bonus_rate: Decimal = Decimal("1.0")
    default_macrs_class: int = 5
    annuity_interest_rate: Decimal = Decimal("0.10")

    _DECIMAL_FIELDS = ("declining_balance_factor", "bonus_rate", "annuity_interest_rate")

    def __post_init__(self):
        valid = {m.value for m in DepreciationMethod}
        if self.default_method not in valid:
            raise ValueError(
                f"default_method must be one of {sorted(valid)}, got '{self.default_method}'"
            )
        if self.declining_balance_factor <= 0:
            raise ValueError("declining_balance_factor must be positive")
        if not Decimal("0") <= self.bonus_rate <= Decimal("1"):
            raise ValueError("bonus_rate must be between 0 and 1")
        if self.default_macrs_class not in MACRS_RATES:
            raise ValueError(f"default_macrs_class must be one of {sorted(MACRS_RATES)}")
        if self.annuity_interest_rate < 0:
            raise ValueError("annuity_interest_rate cannot be negative")

        logger.info(
            "depreciation_config_initialized",
            extra={
                "default_method": self.default_method,
                "declining_balance_factor": str(self.declining_balance_factor),
                "switch_to_straight_line": self.switch_to_straight_line,
                "bonus_rate": str(self.bonus_rate),
                "default_macrs_class": self.default_macrs_class,
                "annuity_interest_rate": str(self.annuity_interest_rate),
            },
        )

    @property
    def method(self) -> DepreciationMethod:
        return DepreciationMethod(self.default_method)

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("depreciation_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        logger.info(
            "depreciation_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        values = dict(data)
        for name in cls._DECIMAL_FIELDS:
            if name in values:
                values[name] = Decimal(str(values[name]))
        return cls(**values)
