"""
Tenant Models.

The tenant record and its lifecycle status. Tenants are immutable; every
status change returns a new ``Tenant`` with ``updated_at`` moved forward.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Self

from nexus_kernel.ids import generate_id
from nexus_kernel.logging_config import get_logger
from nexus_modules.tenant.exceptions import InvalidTenantCodeError, InvalidTenantTransitionError
from nexus_modules.tenant.workflows import TENANT_WORKFLOW

logger = get_logger("modules.tenant.models")

TENANT_CODE_PATTERN = re.compile(r"^[A-Z0-9]{2,20}$")


class TenantStatus(str, Enum):
    PENDING = "pending"
    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"

    @property
    def is_terminal(self) -> bool:
        return TENANT_WORKFLOW.is_terminal(self)

    def can_transition_to(self, target: TenantStatus) -> bool:
        return TENANT_WORKFLOW.can_transition(self, target)


@dataclass(frozen=True)
class Tenant:
    tenant_id: str
    code: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    status: TenantStatus = TenantStatus.PENDING
    domain: str | None = None
    subdomain: str | None = None
    parent_id: str | None = None
    trial_ends_at: datetime | None = None
    suspension_reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not TENANT_CODE_PATTERN.match(self.code):
            raise InvalidTenantCodeError(self.code)

    @classmethod
    def create(
        cls,
        code: str,
        name: str,
        email: str,
        created_at: datetime,
        *,
        domain: str | None = None,
        subdomain: str | None = None,
        parent_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Self:
        return cls(
            tenant_id=generate_id("TEN"),
            code=code,
            name=name,
            email=email,
            created_at=created_at,
            updated_at=created_at,
            domain=domain,
            subdomain=subdomain,
            parent_id=parent_id,
            metadata=dict(metadata or {}),
        )

    @property
    def is_active(self) -> bool:
        return self.status is TenantStatus.ACTIVE

    @property
    def is_suspended(self) -> bool:
        return self.status is TenantStatus.SUSPENDED

    @property
    def is_trial(self) -> bool:
        return self.status is TenantStatus.TRIAL

    @property
    def is_archived(self) -> bool:
        return self.status is TenantStatus.ARCHIVED

    @property
    def is_child(self) -> bool:
        return self.parent_id is not None

    def is_trial_expired(self, now: datetime) -> bool:
        return self.is_trial and self.trial_ends_at is not None and self.trial_ends_at <= now

    def transition(self, status: TenantStatus, now: datetime, **changes: Any) -> Self:
        """Move to ``status``, applying ``changes`` alongside it."""
        if not self.status.can_transition_to(status):
            raise InvalidTenantTransitionError(self.tenant_id, self.status.value, status.value)
        logger.debug(
            "tenant_status_changed",
            extra={"tenant_id": self.tenant_id, "from_status": self.status.value, "to_status": status.value},
        )
        return replace(self, status=status, updated_at=now, **changes)

    def with_changes(self, now: datetime, **changes: Any) -> Self:
        return replace(self, updated_at=now, **changes)
