"""
Tenant Context (``nexus_modules.tenant.context``).

Holds the tenant of the current request or task in a ``ContextVar`` so
concurrent requests and asyncio tasks never see each other's tenant.
Setting a tenant also binds ``tenant_id`` into ``LogContext`` so every
log line emitted under it carries the tenant.

Tenant records are cached per manager instance; call
``refresh_tenant_cache`` after the record changes.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from nexus_kernel.logging_config import LogContext, get_logger
from nexus_modules.tenant.exceptions import TenantContextNotSetError, TenantNotFoundError
from nexus_modules.tenant.models import Tenant
from nexus_modules.tenant.service import TenantRepository

logger = get_logger("modules.tenant.context")

_current_tenant_id: ContextVar[str | None] = ContextVar("nexus_current_tenant_id", default=None)


class TenantContextManager:
    def __init__(self, repository: TenantRepository):
        self._repository = repository
        self._cache: dict[str, Tenant] = {}

    def set_tenant(self, tenant_id: str) -> Tenant:
        """Make ``tenant_id`` current; raises ``TenantNotFoundError`` if unknown."""
        tenant = self._load(tenant_id)
        _current_tenant_id.set(tenant_id)
        LogContext.set(tenant_id=tenant_id)
        logger.debug("tenant_context_set", extra={"tenant_code": tenant.code})
        return tenant

    def current_tenant_id(self) -> str | None:
        return _current_tenant_id.get()

    def current_tenant(self) -> Tenant | None:
        tenant_id = _current_tenant_id.get()
        if tenant_id is None:
            return None
        return self._load(tenant_id)

    def has_tenant(self) -> bool:
        return _current_tenant_id.get() is not None

    def require_tenant(self) -> Tenant:
        tenant = self.current_tenant()
        if tenant is None:
            raise TenantContextNotSetError()
        return tenant

    def clear_tenant(self) -> None:
        _current_tenant_id.set(None)
        LogContext.unset("tenant_id")

    @contextmanager
    def tenant_scope(self, tenant_id: str) -> Iterator[Tenant]:
        """Run a block under ``tenant_id``, restoring the previous tenant on exit."""
        tenant = self._load(tenant_id)
        token = _current_tenant_id.set(tenant_id)
        try:
            with LogContext.bind(tenant_id=tenant_id):
                yield tenant
        finally:
            _current_tenant_id.reset(token)

    # -- cache ---------------------------------------------------------------

    def refresh_tenant_cache(self, tenant_id: str | None = None) -> Tenant | None:
        """Reload ``tenant_id`` (default: the current tenant) from the repository."""
        target = tenant_id or _current_tenant_id.get()
        if target is None:
            return None
        self._cache.pop(target, None)
        return self._load(target)

    def clear_all_tenant_caches(self) -> None:
        count = len(self._cache)
        self._cache.clear()
        logger.debug("tenant_cache_cleared", extra={"entries": count})

    def _load(self, tenant_id: str) -> Tenant:
        cached = self._cache.get(tenant_id)
        if cached is not None:
            return cached
        tenant = self._repository.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        self._cache[tenant_id] = tenant
        return tenant
