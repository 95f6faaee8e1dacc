"""
Reporting Module (``nexus_modules.reporting``).

Responsibility
--------------
Saved reports with generation, multi-channel distribution, scheduling
and tiered retention, plus the statutory filing pipeline (profit and
loss, balance sheet, trial balance) with content checksums.

Architecture position
---------------------
**Modules layer** -- ``ReportManager`` and ``StatutoryReportManager``
orchestrate host-supplied protocols; ``schedule`` and ``cron`` are pure.
"""

from nexus_modules.reporting.config import ReportingConfig
from nexus_modules.reporting.cron import CalendarCronEvaluator, ParsedCron, parse_cron
from nexus_modules.reporting.exceptions import (
    InvalidReportTypeError,
    InvalidScheduleError,
    ReportDistributionError,
    ReportGenerationError,
    ReportingError,
    ReportNotFoundError,
    StatutoryReportError,
    StatutoryValidationError,
)
from nexus_modules.reporting.helpers import canonical_json, content_checksum, render_to_dict
from nexus_modules.reporting.models import (
    DistributionChannel,
    DistributionResult,
    GeneratedContent,
    ReportDefinition,
    ReportFormat,
    ReportResult,
    RetentionTier,
    ScheduleType,
    StatutoryReport,
    StatutoryReportOutput,
)
from nexus_modules.reporting.schedule import CronEvaluator, ReportSchedule, ScheduledReportJob
from nexus_modules.reporting.service import (
    JobScheduler,
    ReportDistributor,
    ReportGenerator,
    ReportManager,
    ReportRepository,
)
from nexus_modules.reporting.statutory import (
    FinanceDataExtractor,
    SchemaValidator,
    StatutoryReportManager,
    StatutoryReportRepository,
    StatutoryReportType,
)

__all__ = [
    "CalendarCronEvaluator",
    "CronEvaluator",
    "DistributionChannel",
    "DistributionResult",
    "FinanceDataExtractor",
    "GeneratedContent",
    "InvalidReportTypeError",
    "InvalidScheduleError",
    "JobScheduler",
    "ParsedCron",
    "ReportDefinition",
    "ReportDistributionError",
    "ReportDistributor",
    "ReportFormat",
    "ReportGenerationError",
    "ReportGenerator",
    "ReportManager",
    "ReportNotFoundError",
    "ReportRepository",
    "ReportResult",
    "ReportSchedule",
    "ReportingConfig",
    "ReportingError",
    "RetentionTier",
    "ScheduleType",
    "ScheduledReportJob",
    "SchemaValidator",
    "StatutoryReport",
    "StatutoryReportError",
    "StatutoryReportManager",
    "StatutoryReportOutput",
    "StatutoryReportRepository",
    "StatutoryReportType",
    "StatutoryValidationError",
    "canonical_json",
    "content_checksum",
    "parse_cron",
    "render_to_dict",
]
