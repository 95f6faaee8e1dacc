"""Tenant exceptions."""

from nexus_kernel.exceptions import NexusError


class TenantError(NexusError):
    """Base exception for the tenant package."""

    code: str = "TENANT_ERROR"


class TenantNotFoundError(TenantError):
    code: str = "TENANT_NOT_FOUND"

    def __init__(self, identifier: str, lookup: str = "id"):
        self.identifier = identifier
        self.lookup = lookup
        super().__init__(f"Tenant not found by {lookup}: {identifier}", identifier=identifier, lookup=lookup)


class DuplicateTenantCodeError(TenantError):
    code: str = "DUPLICATE_TENANT_CODE"

    def __init__(self, tenant_code: str):
        self.tenant_code = tenant_code
        super().__init__(f"Tenant code already in use: {tenant_code}", tenant_code=tenant_code)


class DuplicateTenantDomainError(TenantError):
    code: str = "DUPLICATE_TENANT_DOMAIN"

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Tenant domain already in use: {domain}", domain=domain)


class DuplicateTenantSubdomainError(TenantError):
    code: str = "DUPLICATE_TENANT_SUBDOMAIN"

    def __init__(self, subdomain: str):
        self.subdomain = subdomain
        super().__init__(f"Tenant subdomain already in use: {subdomain}", subdomain=subdomain)


class InvalidTenantCodeError(TenantError, ValueError):
    code: str = "INVALID_TENANT_CODE"

    def __init__(self, tenant_code: str):
        self.tenant_code = tenant_code
        super().__init__(
            f"Tenant code must be 2-20 uppercase letters or digits: {tenant_code!r}",
            tenant_code=tenant_code,
        )


class InvalidTenantTransitionError(TenantError):
    code: str = "INVALID_TENANT_TRANSITION"

    def __init__(self, tenant_id: str, from_status: str, to_status: str):
        self.tenant_id = tenant_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Tenant {tenant_id} cannot transition from {from_status} to {to_status}",
            tenant_id=tenant_id,
        )


class TenantArchivedError(TenantError):
    """Archived tenants are read-only."""

    code: str = "TENANT_ARCHIVED"

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} is archived and cannot be modified", tenant_id=tenant_id)


class TenantContextNotSetError(TenantError):
    code: str = "TENANT_CONTEXT_NOT_SET"

    def __init__(self):
        super().__init__("No tenant is set for the current context")
