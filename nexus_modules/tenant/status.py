"""
Tenant Status Queries.

Read-side views over tenants by status, including trials that have run
past their end date.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.tenant.models import Tenant, TenantStatus
from nexus_modules.tenant.service import TenantRepository

logger = get_logger("modules.tenant.status")


class TenantStatusService:
    def __init__(self, repository: TenantRepository, clock: Clock | None = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def active_tenants(self) -> list[Tenant]:
        return list(self._repository.find_by_status(TenantStatus.ACTIVE))

    def suspended_tenants(self) -> list[Tenant]:
        return list(self._repository.find_by_status(TenantStatus.SUSPENDED))

    def trial_tenants(self) -> list[Tenant]:
        return list(self._repository.find_by_status(TenantStatus.TRIAL))

    def statistics(self) -> dict[str, int]:
        """Tenant counts keyed by status value, plus ``total``."""
        tenants = self._repository.all()
        counts = Counter(t.status for t in tenants)
        stats = {status.value: counts.get(status, 0) for status in TenantStatus}
        stats["total"] = len(tenants)
        return stats

    def expired_trials(self, now: datetime | None = None) -> list[Tenant]:
        moment = now or self._clock.now()
        expired = [t for t in self.trial_tenants() if t.is_trial_expired(moment)]
        if expired:
            logger.info("tenant_trials_expired", extra={"count": len(expired)})
        return expired
