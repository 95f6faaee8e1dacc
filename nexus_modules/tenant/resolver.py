"""
Tenant Resolver.

Maps an incoming host name, subdomain or tenant code to its tenant.
Lookups are normalized the same way the lifecycle service stores them,
and archived tenants never resolve.
"""

from __future__ import annotations

from nexus_kernel.logging_config import get_logger
from nexus_modules.tenant.models import Tenant
from nexus_modules.tenant.service import TenantRepository, normalize_code, normalize_host

logger = get_logger("modules.tenant.resolver")


class TenantResolverService:
    def __init__(self, repository: TenantRepository):
        self._repository = repository

    def resolve_by_domain(self, domain: str) -> Tenant | None:
        host = normalize_host(domain)
        if host is None:
            return None
        return self._resolved("domain", host, self._repository.find_by_domain(host))

    def resolve_by_subdomain(self, subdomain: str) -> Tenant | None:
        label = normalize_host(subdomain)
        if label is None:
            return None
        return self._resolved("subdomain", label, self._repository.find_by_subdomain(label))

    def resolve_by_code(self, code: str) -> Tenant | None:
        normalized = normalize_code(code)
        if not normalized:
            return None
        return self._resolved("code", normalized, self._repository.find_by_code(normalized))

    @staticmethod
    def _resolved(lookup: str, value: str, tenant: Tenant | None) -> Tenant | None:
        if tenant is None or tenant.is_archived:
            logger.debug("tenant_unresolved", extra={"lookup": lookup, "value": value})
            return None
        return tenant
