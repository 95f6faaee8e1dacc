"""
Disbursement Configuration (``nexus_modules.payment.config``).

Responsibility
--------------
Tenant-level disbursement controls: whether new disbursements need
approval, and the amount and count limits enforced at creation.

Architecture position
---------------------
**Modules layer** -- configuration schema only. Loaded from the
``payment`` section of a package configuration file.

Invariants enforced
-------------------
* Amount limits are non-negative and share ``currency``.
* Count limits are non-negative integers.

Failure modes
-------------
* ``ValueError`` at construction if any constraint is violated.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Self

from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment.limits import DisbursementLimits

logger = get_logger("modules.payment.config")


@dataclass
class DisbursementConfig:
    """Configuration schema for disbursement controls."""

    currency: str = "USD"
    requires_approval_by_default: bool = True
    per_transaction_limit: Decimal | None = None
    daily_limit: Decimal | None = None
    weekly_limit: Decimal | None = None
    monthly_limit: Decimal | None = None
    daily_count_limit: int | None = None
    weekly_count_limit: int | None = None
    monthly_count_limit: int | None = None
    requires_approval_above_limit: bool = False

    _DECIMAL_FIELDS = ("per_transaction_limit", "daily_limit", "weekly_limit", "monthly_limit")
    _COUNT_FIELDS = ("daily_count_limit", "weekly_count_limit", "monthly_count_limit")

    def __post_init__(self):
        for name in self._DECIMAL_FIELDS:
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative")
        for name in self._COUNT_FIELDS:
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} cannot be negative")

        logger.info(
            "disbursement_config_initialized",
            extra={
                "currency": self.currency,
                "requires_approval_by_default": self.requires_approval_by_default,
                "per_transaction_limit": str(self.per_transaction_limit),
                "requires_approval_above_limit": self.requires_approval_above_limit,
            },
        )

    def _money(self, value: Decimal | None) -> Money | None:
        return Money.of(value, self.currency) if value is not None else None

    def to_limits(self) -> DisbursementLimits:
        return DisbursementLimits(
            per_transaction=self._money(self.per_transaction_limit),
            daily=self._money(self.daily_limit),
            weekly=self._money(self.weekly_limit),
            monthly=self._money(self.monthly_limit),
            daily_count=self.daily_count_limit,
            weekly_count=self.weekly_count_limit,
            monthly_count=self.monthly_count_limit,
            requires_approval_above_limit=self.requires_approval_above_limit,
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("disbursement_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        logger.info(
            "disbursement_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        values = dict(data)
        for name in cls._DECIMAL_FIELDS:
            if values.get(name) is not None:
                values[name] = Decimal(str(values[name]))
        return cls(**values)
