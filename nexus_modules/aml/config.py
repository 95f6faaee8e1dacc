"""
AML Monitoring Configuration (``nexus_modules.aml.config``).

Responsibility
--------------
Thresholds and pattern weights for ``TransactionMonitor``. Defaults follow
common bank practice (10,000 cash reporting threshold, 180-day dormancy).

Architecture position
---------------------
**Modules layer** -- configuration schema only. Loaded from the ``aml``
section of a package configuration file via ``from_dict``.

Invariants enforced
-------------------
* Monetary thresholds and ratios are ``Decimal``.
* Ratios lie in [0, 1]; counts and day thresholds are positive.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Self

from nexus_kernel.logging_config import get_logger

logger = get_logger("modules.aml.config")


def _default_pattern_weights() -> dict[str, int]:
    return {
        "structuring": 35,
        "velocity": 20,
        "geographic": 25,
        "round_amounts": 15,
        "large_amount": 20,
        "daily_aggregation": 25,
        "dormancy": 15,
    }


@dataclass
class AmlMonitoringConfig:
    """
    Configuration schema for AML transaction monitoring.

        config = AmlMonitoringConfig(large_amount_threshold=Decimal("30000"))
    """

    currency: str = "USD"

    # Structuring: repeated amounts just under the reporting threshold
    structuring_threshold: Decimal = Decimal("10000")
    structuring_margin: Decimal = Decimal("0.15")
    structuring_min_count: int = 3

    velocity_multiplier: Decimal = Decimal("3")

    dormancy_days: int = 180

    round_amount_ratio: Decimal = Decimal("0.8")
    round_amount_min_count: int = 5

    # More than this many distinct counterparty countries is flagged
    geographic_country_limit: int = 5
    high_risk_countries: tuple[str, ...] = ("AF", "IR", "KP", "MM", "SY", "YE")

    large_amount_threshold: Decimal = Decimal("50000")
    daily_aggregate_limit: Decimal = Decimal("25000")

    pattern_weights: dict[str, int] = field(default_factory=_default_pattern_weights)

    _DECIMAL_FIELDS = (
        "structuring_threshold",
        "structuring_margin",
        "velocity_multiplier",
        "round_amount_ratio",
        "large_amount_threshold",
        "daily_aggregate_limit",
    )

    def __post_init__(self):
        if not 0 <= self.structuring_margin < 1:
            raise ValueError("structuring_margin must be in [0, 1)")
        if not 0 <= self.round_amount_ratio <= 1:
            raise ValueError("round_amount_ratio must be in [0, 1]")
        for name in ("structuring_min_count", "round_amount_min_count", "dormancy_days"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.velocity_multiplier <= 0:
            raise ValueError("velocity_multiplier must be positive")
        if self.structuring_threshold <= 0 or self.large_amount_threshold <= 0:
            raise ValueError("monetary thresholds must be positive")
        if self.daily_aggregate_limit <= 0:
            raise ValueError("daily_aggregate_limit must be positive")
        if any(w < 0 for w in self.pattern_weights.values()):
            raise ValueError("pattern weights cannot be negative")

        logger.info(
            "aml_monitoring_config_initialized",
            extra={
                "currency": self.currency,
                "structuring_threshold": str(self.structuring_threshold),
                "large_amount_threshold": str(self.large_amount_threshold),
                "daily_aggregate_limit": str(self.daily_aggregate_limit),
                "dormancy_days": self.dormancy_days,
            },
        )

    def weight_for(self, pattern: str) -> int:
        return self.pattern_weights.get(pattern, 0)

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("aml_monitoring_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create config from a mapping (e.g., the ``aml`` YAML section).

        Numeric strings and ints for Decimal fields are coerced.
        """
        logger.info(
            "aml_monitoring_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        values = dict(data)
        for name in cls._DECIMAL_FIELDS:
            if name in values:
                values[name] = Decimal(str(values[name]))
        if "high_risk_countries" in values:
            values["high_risk_countries"] = tuple(values["high_risk_countries"])
        if "pattern_weights" in values:
            values["pattern_weights"] = {
                **_default_pattern_weights(),
                **{k: int(v) for k, v in values["pattern_weights"].items()},
            }
        return cls(**values)
