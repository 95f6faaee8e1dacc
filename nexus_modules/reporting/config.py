"""
Reporting Configuration Schema.

Retention periods per tier and defaults for new report definitions.
Loaded from the ``reporting`` section of a package configuration file.
"""

from dataclasses import dataclass
from typing import Any, Self

from nexus_kernel.logging_config import get_logger
from nexus_modules.reporting.models import ReportFormat, RetentionTier

logger = get_logger("modules.reporting.config")


@dataclass
class ReportingConfig:
    """Configuration schema for the reporting module."""

    active_retention_days: int = 90
    archive_retention_days: int = 2555
    default_format: ReportFormat = ReportFormat.PDF
    default_retention_tier: RetentionTier = RetentionTier.ACTIVE
    max_recipients_per_distribution: int = 100

    def __post_init__(self):
        self.default_format = ReportFormat(self.default_format)
        self.default_retention_tier = RetentionTier(self.default_retention_tier)
        if self.active_retention_days <= 0:
            raise ValueError("active_retention_days must be positive")
        if self.archive_retention_days < self.active_retention_days:
            raise ValueError("archive_retention_days cannot be shorter than active_retention_days")
        if self.max_recipients_per_distribution < 1:
            raise ValueError("max_recipients_per_distribution must be at least 1")

        logger.info(
            "reporting_config_initialized",
            extra={
                "active_retention_days": self.active_retention_days,
                "archive_retention_days": self.archive_retention_days,
                "default_format": self.default_format.value,
                "default_retention_tier": self.default_retention_tier.value,
            },
        )

    def retention_days(self, tier: RetentionTier) -> int | None:
        """Configured days for ``tier``; None for permanent tiers."""
        if tier is RetentionTier.ACTIVE:
            return self.active_retention_days
        if tier is RetentionTier.ARCHIVE:
            return self.archive_retention_days
        return None

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("reporting_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
