"""
Statutory Report Manager (``nexus_modules.reporting.statutory``).

Responsibility
--------------
Runs the statutory filing pipeline: extract figures from finance data,
validate them against the report type's schema, render canonical
content, checksum it and persist the filing record.

Architecture position
---------------------
**Modules layer** -- orchestration over ``FinanceDataExtractor``,
``SchemaValidator`` and ``StatutoryReportRepository``.

Invariants enforced
-------------------
* Only profit_loss, balance_sheet and trial_balance are accepted.
* Nothing is persisted unless schema validation passes.
* The checksum is SHA-256 over canonical JSON, so identical data gives
  an identical checksum.

Failure modes
-------------
* ``InvalidReportTypeError`` -- unsupported report type.
* ``StatutoryValidationError`` -- schema errors or an inverted period.
* ``ReportNotFoundError`` -- unknown filing id.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from enum import Enum
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_modules.reporting.exceptions import (
    InvalidReportTypeError,
    ReportNotFoundError,
    StatutoryValidationError,
)
from nexus_modules.reporting.helpers import canonical_json, content_checksum
from nexus_modules.reporting.models import ReportFormat, StatutoryReport, StatutoryReportOutput

logger = get_logger("modules.reporting.statutory")


class StatutoryReportType(str, Enum):
    PROFIT_LOSS = "profit_loss"
    BALANCE_SHEET = "balance_sheet"
    TRIAL_BALANCE = "trial_balance"


DEFAULT_SCHEMAS = {
    StatutoryReportType.PROFIT_LOSS: "statutory/profit_loss/v1",
    StatutoryReportType.BALANCE_SHEET: "statutory/balance_sheet/v1",
    StatutoryReportType.TRIAL_BALANCE: "statutory/trial_balance/v1",
}


class FinanceDataExtractor(Protocol):
    def extract_profit_loss(
        self, tenant_id: str, period_start: date, period_end: date, account_data: Mapping[str, Any]
    ) -> dict[str, Any]: ...

    def extract_balance_sheet(
        self, tenant_id: str, as_of: date, account_data: Mapping[str, Any]
    ) -> dict[str, Any]: ...

    def extract_trial_balance(
        self, tenant_id: str, period_start: date, period_end: date, account_data: Mapping[str, Any]
    ) -> dict[str, Any]: ...


class SchemaValidator(Protocol):
    def validate(self, schema_identifier: str, data: Mapping[str, Any]) -> Sequence[str]:
        """Validation errors; empty when ``data`` conforms."""
        ...


class StatutoryReportRepository(Protocol):
    def save(self, report: StatutoryReport) -> None: ...

    def get(self, report_id: str) -> StatutoryReport | None: ...

    def find(
        self,
        tenant_id: str,
        report_type: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> Sequence[StatutoryReport]: ...


class StatutoryReportManager:
    def __init__(
        self,
        repository: StatutoryReportRepository,
        extractor: FinanceDataExtractor,
        validator: SchemaValidator,
        clock: Clock | None = None,
        schemas: Mapping[StatutoryReportType, str] | None = None,
    ):
        self._repository = repository
        self._extractor = extractor
        self._validator = validator
        self._clock = clock or SystemClock()
        self._schemas = {**DEFAULT_SCHEMAS, **dict(schemas or {})}

    def available_report_types(self) -> list[str]:
        return [t.value for t in StatutoryReportType]

    def generate_report(
        self,
        tenant_id: str,
        report_type: StatutoryReportType | str,
        period_start: date,
        period_end: date,
        report_format: ReportFormat | str,
        account_data: Mapping[str, Any],
    ) -> StatutoryReport:
        """Extract, validate and persist; returns the filing record."""
        return self.generate_with_metadata(
            tenant_id, report_type, period_start, period_end, report_format, account_data
        ).report

    def generate_with_metadata(
        self,
        tenant_id: str,
        report_type: StatutoryReportType | str,
        period_start: date,
        period_end: date,
        report_format: ReportFormat | str,
        account_data: Mapping[str, Any],
    ) -> StatutoryReportOutput:
        """
        Run the pipeline and return the canonical content with its metadata.

        The content is canonical JSON of the extracted data; the checksum
        in both the record and the metadata is its SHA-256.
        """
        kind = self._report_type(report_type)
        if period_end < period_start:
            raise StatutoryValidationError(kind.value, ["period_end precedes period_start"])

        logger.info(
            "statutory_report_generation_started",
            extra={
                "tenant_id": tenant_id,
                "report_type": kind.value,
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
            },
        )
        data = self._extract(kind, tenant_id, period_start, period_end, account_data)

        schema = self._schemas[kind]
        errors = list(self._validator.validate(schema, data))
        if errors:
            logger.error(
                "statutory_report_validation_failed",
                extra={"report_type": kind.value, "schema_identifier": schema, "errors": errors},
            )
            raise StatutoryValidationError(kind.value, errors)

        content = canonical_json(data)
        checksum = content_checksum(content)
        generated_at = self._clock.now()
        report = StatutoryReport(
            report_id=generate_id("STAT"),
            tenant_id=tenant_id,
            report_type=kind.value,
            period_start=period_start,
            period_end=period_end,
            format=ReportFormat(report_format),
            schema_identifier=schema,
            checksum=checksum,
            generated_at=generated_at,
        )
        self._repository.save(report)
        logger.info(
            "statutory_report_generated",
            extra={"report_id": report.report_id, "report_type": kind.value, "checksum": checksum},
        )
        return StatutoryReportOutput(
            report=report,
            content=content,
            metadata={
                "tenant_id": tenant_id,
                "report_type": kind.value,
                "start_date": period_start.isoformat(),
                "end_date": period_end.isoformat(),
                "schema_identifier": schema,
                "generated_at": generated_at.isoformat(),
                "checksum": checksum,
            },
        )

    def get_report(self, report_id: str) -> StatutoryReport:
        report = self._repository.get(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    def get_reports(
        self,
        tenant_id: str,
        report_type: StatutoryReportType | str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[StatutoryReport]:
        kind = self._report_type(report_type).value if report_type is not None else None
        return list(self._repository.find(tenant_id, kind, start, end))

    def _report_type(self, report_type: StatutoryReportType | str) -> StatutoryReportType:
        try:
            return StatutoryReportType(report_type)
        except ValueError as exc:
            raise InvalidReportTypeError(str(report_type), self.available_report_types()) from exc

    def _extract(
        self,
        kind: StatutoryReportType,
        tenant_id: str,
        period_start: date,
        period_end: date,
        account_data: Mapping[str, Any],
    ) -> dict[str, Any]:
        if kind is StatutoryReportType.PROFIT_LOSS:
            return self._extractor.extract_profit_loss(tenant_id, period_start, period_end, account_data)
        if kind is StatutoryReportType.BALANCE_SHEET:
            return self._extractor.extract_balance_sheet(tenant_id, period_end, account_data)
        return self._extractor.extract_trial_balance(tenant_id, period_start, period_end, account_data)
