"""
Tenant Lifecycle Service (``nexus_modules.tenant.service``).

Responsibility
--------------
Creates tenants and drives them through their lifecycle: activation,
trials, suspension, reactivation and archiving, plus profile updates.

Architecture position
---------------------
**Modules layer** -- orchestration over a host-supplied
``TenantRepository``. Provisioning of databases, users or billing is
outside this package.

Invariants enforced
-------------------
* Tenant codes, domains and subdomains are unique across all tenants.
* Codes are stored uppercase; domains and subdomains lowercase.
* A child tenant's parent must exist.
* Status changes follow ``TENANT_WORKFLOW``; archived tenants are
  read-only.
* ``update_tenant`` only touches ``UPDATABLE_FIELDS``.

Failure modes
-------------
* ``ValidationError`` -- missing name or malformed email.
* ``InvalidTenantCodeError`` -- code outside 2-20 uppercase alphanumerics.
* ``DuplicateTenantCodeError`` / ``DuplicateTenantDomainError`` /
  ``DuplicateTenantSubdomainError`` -- clash with an existing tenant.
* ``TenantNotFoundError`` -- unknown tenant or parent.
* ``InvalidTenantTransitionError`` -- status change not allowed.
* ``TenantArchivedError`` -- update of an archived tenant.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import timedelta
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.exceptions import ValidationError
from nexus_kernel.logging_config import get_logger
from nexus_modules.tenant.exceptions import (
    DuplicateTenantCodeError,
    DuplicateTenantDomainError,
    DuplicateTenantSubdomainError,
    InvalidTenantTransitionError,
    TenantArchivedError,
    TenantNotFoundError,
)
from nexus_modules.tenant.models import Tenant, TenantStatus

logger = get_logger("modules.tenant.service")

DEFAULT_TRIAL_DAYS = 14
DEFAULT_SUSPENSION_REASON = "Suspended by administrator"
UPDATABLE_FIELDS = frozenset({"name", "email", "domain", "subdomain", "metadata"})


class TenantRepository(Protocol):
    def save(self, tenant: Tenant) -> None: ...

    def get(self, tenant_id: str) -> Tenant | None: ...

    def find_by_code(self, code: str) -> Tenant | None: ...

    def find_by_domain(self, domain: str) -> Tenant | None: ...

    def find_by_subdomain(self, subdomain: str) -> Tenant | None: ...

    def find_by_status(self, status: TenantStatus) -> Sequence[Tenant]: ...

    def all(self) -> Sequence[Tenant]: ...


def normalize_code(code: str) -> str:
    return code.strip().upper()


def normalize_host(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip().lower().rstrip(".")
    return cleaned or None


class TenantLifecycleService:
    """
    Tenant creation and status management.

    Contract
    --------
    * Every mutating call persists the new ``Tenant`` and returns it.
    * ``start_trial`` sets ``trial_ends_at`` to now plus ``days``;
      activation clears it.
    * ``reactivate_tenant`` clears ``suspension_reason``.
    """

    def __init__(self, repository: TenantRepository, clock: Clock | None = None):
        self._repository = repository
        self._clock = clock or SystemClock()

    def create_tenant(
        self,
        code: str,
        name: str,
        email: str,
        domain: str | None = None,
        *,
        subdomain: str | None = None,
        parent_id: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Tenant:
        code = normalize_code(code)
        domain = normalize_host(domain)
        subdomain = normalize_host(subdomain)
        self._validate_profile(name, email)

        if self._repository.find_by_code(code) is not None:
            raise DuplicateTenantCodeError(code)
        if domain is not None:
            self._ensure_domain_free(domain)
        if subdomain is not None:
            self._ensure_subdomain_free(subdomain)
        if parent_id is not None and self._repository.get(parent_id) is None:
            raise TenantNotFoundError(parent_id, lookup="parent_id")

        tenant = Tenant.create(
            code,
            name.strip(),
            email.strip(),
            self._clock.now(),
            domain=domain,
            subdomain=subdomain,
            parent_id=parent_id,
            metadata=dict(metadata or {}),
        )
        self._repository.save(tenant)
        logger.info(
            "tenant_created",
            extra={"tenant_id": tenant.tenant_id, "tenant_code": code, "parent_id": parent_id},
        )
        return tenant

    def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = self._repository.get(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    # -- status changes ------------------------------------------------------

    def activate_tenant(self, tenant_id: str) -> Tenant:
        return self._change_status(tenant_id, TenantStatus.ACTIVE, "tenant_activated", trial_ends_at=None)

    def start_trial(self, tenant_id: str, days: int = DEFAULT_TRIAL_DAYS) -> Tenant:
        if days <= 0:
            raise ValidationError("Trial length must be positive", days=days)
        ends_at = self._clock.now() + timedelta(days=days)
        return self._change_status(tenant_id, TenantStatus.TRIAL, "tenant_trial_started", trial_ends_at=ends_at)

    def suspend_tenant(self, tenant_id: str, reason: str | None = None) -> Tenant:
        return self._change_status(
            tenant_id,
            TenantStatus.SUSPENDED,
            "tenant_suspended",
            suspension_reason=reason or DEFAULT_SUSPENSION_REASON,
        )

    def reactivate_tenant(self, tenant_id: str) -> Tenant:
        tenant = self.get_tenant(tenant_id)
        if not tenant.is_suspended:
            raise InvalidTenantTransitionError(tenant_id, tenant.status.value, TenantStatus.ACTIVE.value)
        return self._change_status(tenant_id, TenantStatus.ACTIVE, "tenant_reactivated", suspension_reason=None)

    def archive_tenant(self, tenant_id: str, reason: str | None = None) -> Tenant:
        tenant = self.get_tenant(tenant_id)
        metadata = dict(tenant.metadata)
        if reason:
            metadata["archive_reason"] = reason
        return self._change_status(tenant_id, TenantStatus.ARCHIVED, "tenant_archived", metadata=metadata)

    # -- profile -------------------------------------------------------------

    def update_tenant(self, tenant_id: str, data: Mapping[str, Any]) -> Tenant:
        """Apply the ``UPDATABLE_FIELDS`` present in ``data``; other keys are ignored."""
        tenant = self.get_tenant(tenant_id)
        if tenant.is_archived:
            raise TenantArchivedError(tenant_id)

        changes = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}
        ignored = sorted(set(data) - UPDATABLE_FIELDS)
        if ignored:
            logger.debug("tenant_update_fields_ignored", extra={"tenant_id": tenant_id, "fields": ignored})

        if "name" in changes or "email" in changes:
            self._validate_profile(changes.get("name", tenant.name), changes.get("email", tenant.email))
            if "name" in changes:
                changes["name"] = changes["name"].strip()
            if "email" in changes:
                changes["email"] = changes["email"].strip()
        if "domain" in changes:
            changes["domain"] = normalize_host(changes["domain"])
            if changes["domain"] is not None and changes["domain"] != tenant.domain:
                self._ensure_domain_free(changes["domain"])
        if "subdomain" in changes:
            changes["subdomain"] = normalize_host(changes["subdomain"])
            if changes["subdomain"] is not None and changes["subdomain"] != tenant.subdomain:
                self._ensure_subdomain_free(changes["subdomain"])
        if "metadata" in changes:
            changes["metadata"] = dict(changes["metadata"] or {})

        if not changes:
            return tenant
        updated = tenant.with_changes(self._clock.now(), **changes)
        self._repository.save(updated)
        logger.info("tenant_updated", extra={"tenant_id": tenant_id, "fields": sorted(changes)})
        return updated

    # -- internals -----------------------------------------------------------

    def _change_status(self, tenant_id: str, status: TenantStatus, event: str, **changes: Any) -> Tenant:
        tenant = self.get_tenant(tenant_id)
        updated = tenant.transition(status, self._clock.now(), **changes)
        self._repository.save(updated)
        logger.info(
            event,
            extra={"tenant_id": tenant_id, "from_status": tenant.status.value, "to_status": status.value},
        )
        return updated

    def _ensure_domain_free(self, domain: str) -> None:
        if self._repository.find_by_domain(domain) is not None:
            raise DuplicateTenantDomainError(domain)

    def _ensure_subdomain_free(self, subdomain: str) -> None:
        if self._repository.find_by_subdomain(subdomain) is not None:
            raise DuplicateTenantSubdomainError(subdomain)

    @staticmethod
    def _validate_profile(name: str, email: str) -> None:
        errors = []
        if not name or not name.strip():
            errors.append("name is required")
        if not email or "@" not in email or email.strip().startswith("@") or email.strip().endswith("@"):
            errors.append("a valid email is required")
        if errors:
            raise ValidationError("Invalid tenant profile", errors=errors)
