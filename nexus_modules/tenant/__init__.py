"""
Tenant Module (``nexus_modules.tenant``).

Responsibility
--------------
Multi-tenant account management: tenant lifecycle, the current-tenant
context for requests and tasks, host and code resolution, and status
reporting.

Architecture position
---------------------
**Modules layer** -- services over a host-supplied ``TenantRepository``.
"""

from nexus_modules.tenant.context import TenantContextManager
from nexus_modules.tenant.exceptions import (
    DuplicateTenantCodeError,
    DuplicateTenantDomainError,
    DuplicateTenantSubdomainError,
    InvalidTenantCodeError,
    InvalidTenantTransitionError,
    TenantArchivedError,
    TenantContextNotSetError,
    TenantError,
    TenantNotFoundError,
)
from nexus_modules.tenant.models import Tenant, TenantStatus
from nexus_modules.tenant.resolver import TenantResolverService
from nexus_modules.tenant.service import TenantLifecycleService, TenantRepository
from nexus_modules.tenant.status import TenantStatusService
from nexus_modules.tenant.workflows import TENANT_WORKFLOW

__all__ = [
    "DuplicateTenantCodeError",
    "DuplicateTenantDomainError",
    "DuplicateTenantSubdomainError",
    "InvalidTenantCodeError",
    "InvalidTenantTransitionError",
    "TENANT_WORKFLOW",
    "Tenant",
    "TenantArchivedError",
    "TenantContextManager",
    "TenantContextNotSetError",
    "TenantError",
    "TenantLifecycleService",
    "TenantNotFoundError",
    "TenantRepository",
    "TenantResolverService",
    "TenantStatus",
    "TenantStatusService",
]
