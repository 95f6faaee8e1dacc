"""
Report Manager (``nexus_modules.reporting.service``).

Responsibility
--------------
Lifecycle of saved reports: definition, generation, distribution,
scheduling and retention expiry.

Architecture position
---------------------
**Modules layer** -- thin orchestration. Rendering, delivery, storage and
job execution belong to the host through ``ReportGenerator``,
``ReportDistributor``, ``ReportRepository`` and ``JobScheduler``.

Invariants enforced
-------------------
* Generator failures surface as ``ReportGenerationError`` with the cause
  chained.
* Distribution requires a generated result and at least one recipient.
* A schedule is accepted only if it has a future run.
* Every result carries the expiry implied by its retention tier.

Failure modes
-------------
* ``ReportNotFoundError`` -- unknown report id.
* ``ReportGenerationError`` -- unsupported format or generator failure.
* ``ReportDistributionError`` -- nothing generated, no recipients, or an
  unknown channel.
* ``InvalidScheduleError`` -- schedule with no future run.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.exceptions import ValidationError
from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_modules.reporting.config import ReportingConfig
from nexus_modules.reporting.cron import CalendarCronEvaluator
from nexus_modules.reporting.exceptions import (
    InvalidScheduleError,
    ReportDistributionError,
    ReportGenerationError,
    ReportingError,
    ReportNotFoundError,
)
from nexus_modules.reporting.models import (
    DistributionChannel,
    DistributionResult,
    GeneratedContent,
    ReportDefinition,
    ReportFormat,
    ReportResult,
    RetentionTier,
)
from nexus_modules.reporting.schedule import CronEvaluator, ReportSchedule, ScheduledReportJob

logger = get_logger("modules.reporting.service")


class ReportRepository(Protocol):
    def save(self, definition: ReportDefinition) -> None: ...

    def get(self, report_id: str) -> ReportDefinition | None: ...

    def save_result(self, result: ReportResult) -> None: ...

    def latest_result(self, report_id: str) -> ReportResult | None: ...

    def list_results(self) -> Sequence[ReportResult]: ...


class ReportGenerator(Protocol):
    def supports(self, report_format: ReportFormat) -> bool: ...

    def generate(self, definition: ReportDefinition, report_format: ReportFormat) -> GeneratedContent: ...


class ReportDistributor(Protocol):
    def distribute(
        self,
        result: ReportResult,
        recipients: Sequence[str],
        channel: DistributionChannel,
    ) -> DistributionResult: ...


class JobScheduler(Protocol):
    def schedule(self, job: ScheduledReportJob) -> str:
        """Register ``job``; returns the scheduler's job id."""
        ...


class ReportManager:
    """
    Orchestrates saved reports.

    Contract
    --------
    * ``format`` arguments accept a ``ReportFormat`` or its value.
    * ``channel`` arguments accept a ``DistributionChannel`` or its value.
    """

    def __init__(
        self,
        repository: ReportRepository,
        generator: ReportGenerator,
        distributor: ReportDistributor,
        scheduler: JobScheduler,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        cron_evaluator: CronEvaluator | None = None,
    ):
        self._repository = repository
        self._generator = generator
        self._distributor = distributor
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._cron = cron_evaluator or CalendarCronEvaluator()

    # -- definitions ---------------------------------------------------------

    def create_report(
        self,
        tenant_id: str,
        name: str,
        query_id: str,
        report_format: ReportFormat | str | None = None,
        parameters: Mapping[str, Any] | None = None,
        retention_tier: RetentionTier | str | None = None,
        created_by: str | None = None,
        description: str | None = None,
    ) -> ReportDefinition:
        errors = []
        if not name or not name.strip():
            errors.append("name is required")
        if not query_id:
            errors.append("query_id is required")
        if errors:
            raise ValidationError("Invalid report definition", errors=errors, tenant_id=tenant_id)

        definition = ReportDefinition.create(
            tenant_id,
            name.strip(),
            query_id,
            ReportFormat(report_format or self._config.default_format),
            self._clock.now(),
            parameters=dict(parameters or {}),
            retention_tier=RetentionTier(retention_tier or self._config.default_retention_tier),
            created_by=created_by,
            description=description,
        )
        self._repository.save(definition)
        logger.info(
            "report_definition_created",
            extra={
                "report_id": definition.report_id,
                "tenant_id": tenant_id,
                "format": definition.format.value,
                "retention_tier": definition.retention_tier.value,
            },
        )
        return definition

    def get_report(self, report_id: str) -> ReportDefinition:
        definition = self._repository.get(report_id)
        if definition is None:
            raise ReportNotFoundError(report_id)
        return definition

    # -- generation ----------------------------------------------------------

    def generate_report(self, report_id: str, report_format: ReportFormat | str | None = None) -> ReportResult:
        definition = self.get_report(report_id)
        fmt = ReportFormat(report_format or definition.format)
        if not self._generator.supports(fmt):
            raise ReportGenerationError.unsupported_format(report_id, fmt.value)

        try:
            content = self._generator.generate(definition, fmt)
        except ReportingError:
            raise
        except Exception as exc:
            logger.error(
                "report_generation_failed",
                extra={"report_id": report_id, "format": fmt.value, "error": str(exc)},
            )
            raise ReportGenerationError.generation_failed(report_id, str(exc)) from exc

        generated_at = self._clock.now()
        tier = definition.retention_tier
        result = ReportResult(
            result_id=generate_id("RRES"),
            report_id=report_id,
            format=fmt,
            file_path=content.file_path,
            file_size=content.file_size,
            duration_ms=content.duration_ms,
            retention_tier=tier,
            generated_at=generated_at,
            expires_at=tier.expires_at(generated_at, self._config.retention_days(tier)),
            query_result_id=content.query_result_id,
        )
        self._repository.save_result(result)
        self._repository.save(definition.with_last_generated(generated_at))
        logger.info(
            "report_generated",
            extra={
                "report_id": report_id,
                "result_id": result.result_id,
                "format": fmt.value,
                "file_size": result.file_size,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    # -- distribution --------------------------------------------------------

    def distribute_report(
        self,
        report_id: str,
        recipients: Sequence[str],
        channel: DistributionChannel | str,
    ) -> DistributionResult:
        self.get_report(report_id)
        resolved = self._channel(channel)
        recipients = self._check_recipients(report_id, recipients)

        result = self._repository.latest_result(report_id)
        if result is None:
            raise ReportDistributionError.not_generated(report_id)

        outcome = self._distributor.distribute(result, recipients, resolved)
        log = logger.info if outcome.is_complete_success else logger.warning
        log(
            "report_distributed",
            extra={
                "report_id": report_id,
                "channel": resolved.value,
                "recipient_count": len(recipients),
                "success_count": outcome.success_count,
                "failure_count": outcome.failure_count,
            },
        )
        return outcome

    # -- scheduling ----------------------------------------------------------

    def schedule_report(
        self,
        report_id: str,
        schedule: ReportSchedule,
        recipients: Sequence[str],
        channel: DistributionChannel | str,
    ) -> str:
        definition = self.get_report(report_id)
        resolved = self._channel(channel)
        recipients = self._check_recipients(report_id, recipients)

        now = self._clock.now()
        next_run = schedule.next_run_after(now, cron=self._cron)
        if next_run is None:
            raise InvalidScheduleError.no_future_runs(report_id)

        job = ScheduledReportJob(
            job_id=generate_id("RJOB"),
            report_id=report_id,
            tenant_id=definition.tenant_id,
            schedule=schedule,
            recipients=recipients,
            channel=resolved,
            next_run_at=next_run,
            created_at=now,
        )
        job_id = self._scheduler.schedule(job)
        logger.info(
            "report_scheduled",
            extra={
                "report_id": report_id,
                "job_id": job_id,
                "schedule_type": schedule.schedule_type.value,
                "next_run_at": next_run.isoformat(),
            },
        )
        return job_id

    # -- retention -----------------------------------------------------------

    def expired_reports(self, now: datetime | None = None) -> list[ReportResult]:
        moment = now or self._clock.now()
        expired = [r for r in self._repository.list_results() if r.is_expired(moment)]
        logger.debug("report_expiry_checked", extra={"expired_count": len(expired)})
        return expired

    # -- internals -----------------------------------------------------------

    @staticmethod
    def _channel(channel: DistributionChannel | str) -> DistributionChannel:
        try:
            return DistributionChannel(channel)
        except ValueError as exc:
            raise ReportDistributionError.unsupported_channel(str(channel)) from exc

    def _check_recipients(self, report_id: str, recipients: Sequence[str]) -> tuple[str, ...]:
        cleaned = tuple(r for r in recipients if r and r.strip())
        if not cleaned:
            raise ReportDistributionError.no_recipients(report_id)
        limit = self._config.max_recipients_per_distribution
        if len(cleaned) > limit:
            raise ReportDistributionError.too_many_recipients(report_id, len(cleaned), limit)
        return cleaned
