"""Reporting exceptions."""

from collections.abc import Sequence

from nexus_kernel.exceptions import NexusError, ValidationError


class ReportingError(NexusError):
    """Base exception for the reporting package."""

    code: str = "REPORTING_ERROR"


class ReportNotFoundError(ReportingError):
    code: str = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}", report_id=report_id)


class ReportGenerationError(ReportingError):
    code: str = "REPORT_GENERATION_FAILED"

    @classmethod
    def generation_failed(cls, report_id: str, reason: str) -> "ReportGenerationError":
        return cls(f"Report {report_id} generation failed: {reason}", report_id=report_id)

    @classmethod
    def unsupported_format(cls, report_id: str, report_format: str) -> "ReportGenerationError":
        return cls(
            f"Report {report_id}: format '{report_format}' is not supported by the generator",
            report_id=report_id,
            format=report_format,
        )


class ReportDistributionError(ReportingError):
    code: str = "REPORT_DISTRIBUTION_FAILED"

    @classmethod
    def no_recipients(cls, report_id: str) -> "ReportDistributionError":
        return cls(f"Report {report_id}: at least one recipient is required", report_id=report_id)

    @classmethod
    def not_generated(cls, report_id: str) -> "ReportDistributionError":
        return cls(f"Report {report_id} has not been generated yet", report_id=report_id)

    @classmethod
    def unsupported_channel(cls, channel: str) -> "ReportDistributionError":
        return cls(f"Unsupported distribution channel: {channel}", channel=channel)

    @classmethod
    def too_many_recipients(cls, report_id: str, count: int, limit: int) -> "ReportDistributionError":
        return cls(
            f"Report {report_id}: {count} recipients exceeds the limit of {limit}",
            report_id=report_id,
            count=count,
            limit=limit,
        )


class InvalidScheduleError(ReportingError, ValueError):
    code: str = "INVALID_REPORT_SCHEDULE"

    @classmethod
    def ends_before_start(cls, starts_at: str, ends_at: str) -> "InvalidScheduleError":
        return cls(f"Schedule ends at {ends_at}, before it starts at {starts_at}")

    @classmethod
    def invalid_max_occurrences(cls, value: int) -> "InvalidScheduleError":
        return cls(f"max_occurrences must be at least 1, got {value}")

    @classmethod
    def missing_cron_expression(cls) -> "InvalidScheduleError":
        return cls("A cron schedule requires a cron expression")

    @classmethod
    def invalid_cron_expression(cls, expression: str, reason: str) -> "InvalidScheduleError":
        return cls(f"Invalid cron expression '{expression}': {reason}", expression=expression)

    @classmethod
    def no_cron_evaluator(cls) -> "InvalidScheduleError":
        return cls("A cron evaluator is required to compute cron schedule runs")

    @classmethod
    def no_future_runs(cls, report_id: str) -> "InvalidScheduleError":
        return cls(f"Schedule for report {report_id} has no future runs", report_id=report_id)


class StatutoryReportError(ReportingError):
    code: str = "STATUTORY_REPORT_ERROR"


class InvalidReportTypeError(StatutoryReportError, ValueError):
    code: str = "INVALID_REPORT_TYPE"

    def __init__(self, report_type: str, supported: Sequence[str] = ()):
        self.report_type = report_type
        self.supported = tuple(supported)
        message = f"Unsupported statutory report type: {report_type}"
        if self.supported:
            message = f"{message} (supported: {', '.join(self.supported)})"
        super().__init__(message, report_type=report_type)


class StatutoryValidationError(StatutoryReportError, ValidationError):
    """Extracted report data failed schema validation."""

    code: str = "STATUTORY_VALIDATION_FAILED"

    def __init__(self, report_type: str, errors: Sequence[str]):
        self.report_type = report_type
        super().__init__(
            f"Statutory report '{report_type}' failed validation with {len(errors)} error(s)",
            errors=list(errors),
            report_type=report_type,
        )
