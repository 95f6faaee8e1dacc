"""
Reporting Models.

Report definitions, generation and distribution results, retention tiers
and statutory filings. All value objects are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Self

from nexus_kernel.ids import generate_id


class ReportFormat(str, Enum):
    PDF = "pdf"
    EXCEL = "excel"
    CSV = "csv"
    JSON = "json"
    HTML = "html"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_MIME_TYPES = {
    ReportFormat.PDF: "application/pdf",
    ReportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ReportFormat.CSV: "text/csv",
    ReportFormat.JSON: "application/json",
    ReportFormat.HTML: "text/html",
}

_EXTENSIONS = {
    ReportFormat.PDF: "pdf",
    ReportFormat.EXCEL: "xlsx",
    ReportFormat.CSV: "csv",
    ReportFormat.JSON: "json",
    ReportFormat.HTML: "html",
}


class ScheduleType(str, Enum):
    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CRON = "cron"


class RetentionTier(str, Enum):
    """How long generated output is kept; ``COMPLIANCE`` is permanent."""

    ACTIVE = "active"
    ARCHIVE = "archive"
    COMPLIANCE = "compliance"

    @property
    def retention_days(self) -> int | None:
        return _RETENTION_DAYS[self]

    @property
    def is_permanent(self) -> bool:
        return self.retention_days is None

    def expires_at(self, generated_at: datetime, retention_days: int | None = None) -> datetime | None:
        days = self.retention_days if retention_days is None else retention_days
        if self.is_permanent:
            return None
        return generated_at + timedelta(days=days)


_RETENTION_DAYS = {
    RetentionTier.ACTIVE: 90,
    RetentionTier.ARCHIVE: 2555,
    RetentionTier.COMPLIANCE: None,
}


class DistributionChannel(str, Enum):
    EMAIL = "email"
    SLACK = "slack"
    WEBHOOK = "webhook"
    IN_APP = "in_app"


@dataclass(frozen=True)
class ReportDefinition:
    """A saved report: what to query and how to render it."""

    report_id: str
    tenant_id: str
    name: str
    query_id: str
    format: ReportFormat
    created_at: datetime
    parameters: dict[str, Any] = field(default_factory=dict)
    retention_tier: RetentionTier = RetentionTier.ACTIVE
    created_by: str | None = None
    description: str | None = None
    last_generated_at: datetime | None = None

    @classmethod
    def create(
        cls,
        tenant_id: str,
        name: str,
        query_id: str,
        report_format: ReportFormat,
        created_at: datetime,
        **optional: Any,
    ) -> Self:
        return cls(
            report_id=generate_id("RPT"),
            tenant_id=tenant_id,
            name=name,
            query_id=query_id,
            format=report_format,
            created_at=created_at,
            **optional,
        )

    def with_last_generated(self, moment: datetime) -> Self:
        return replace(self, last_generated_at=moment)


@dataclass(frozen=True)
class GeneratedContent:
    """What a generator hands back: where the rendered file lives."""

    file_path: str
    file_size: int
    duration_ms: int = 0
    query_result_id: str | None = None


@dataclass(frozen=True)
class ReportResult:
    result_id: str
    report_id: str
    format: ReportFormat
    file_path: str
    file_size: int
    duration_ms: int
    retention_tier: RetentionTier
    generated_at: datetime
    expires_at: datetime | None = None
    query_result_id: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


@dataclass(frozen=True)
class DistributionResult:
    report_id: str
    channel: DistributionChannel
    delivered: tuple[str, ...] = ()
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.delivered)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def recipient_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def is_complete_success(self) -> bool:
        return self.failure_count == 0 and self.success_count > 0


@dataclass(frozen=True)
class StatutoryReport:
    """A persisted statutory filing with the checksum of its canonical content."""

    report_id: str
    tenant_id: str
    report_type: str
    period_start: date
    period_end: date
    format: ReportFormat
    schema_identifier: str
    checksum: str
    generated_at: datetime


@dataclass(frozen=True)
class StatutoryReportOutput:
    report: StatutoryReport
    content: str
    metadata: dict[str, Any]

    @property
    def checksum(self) -> str:
        return self.report.checksum
