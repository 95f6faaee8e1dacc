"""
Payment Gateway Module (``nexus_modules.payment_gateway``).

Responsibility
--------------
Card-acquirer style operations (authorize, capture, refund, void) behind a
provider-neutral adapter, plus a manager that routes calls per provider.

Architecture position
---------------------
**Modules layer** -- ``AbstractGateway`` adapters do the provider work;
``GatewayManager`` routes, logs and records. ``TestGateway`` simulates a
provider in memory.

Invariants enforced
-------------------
* No operation reaches a provider before the gateway is initialised.
* Requests are validated before the provider is called.
* Provider failures surface as the operation's ``*FailedError``.
* A gateway reporting DOWN or MAINTENANCE receives no traffic.

Failure modes
-------------
* ``AuthorizationFailedError`` / ``CaptureFailedError`` /
  ``RefundFailedError`` / ``VoidFailedError`` -- the operation failed.
* ``GatewayNotInitializedError`` -- no credentials yet.
* ``GatewayNotFoundError`` -- provider not registered.
* ``GatewayUnavailableError`` -- provider not accepting traffic.

Audit relevance
---------------
Every call through ``GatewayManager`` produces a
``GatewayTransactionAttempt`` for the optional ``TransactionRecorder``.
"""

from nexus_modules.payment_gateway.exceptions import (
    AuthorizationFailedError,
    CaptureFailedError,
    GatewayError,
    GatewayNotFoundError,
    GatewayNotInitializedError,
    GatewayOperationFailedError,
    GatewayUnavailableError,
    RefundFailedError,
    VoidFailedError,
)
from nexus_modules.payment_gateway.gateway import AbstractGateway, TestGateway
from nexus_modules.payment_gateway.models import (
    AuthorizationResult,
    AuthorizationType,
    AuthorizeRequest,
    CaptureRequest,
    CaptureResult,
    GatewayCredentials,
    GatewayProvider,
    GatewayStatus,
    GatewayTransactionAttempt,
    RefundRequest,
    RefundResult,
    RefundType,
    TransactionStatus,
    VoidRequest,
    VoidResult,
)
from nexus_modules.payment_gateway.service import GatewayManager, TransactionRecorder

__all__ = [
    "AbstractGateway",
    "AuthorizationFailedError",
    "AuthorizationResult",
    "AuthorizationType",
    "AuthorizeRequest",
    "CaptureFailedError",
    "CaptureRequest",
    "CaptureResult",
    "GatewayCredentials",
    "GatewayError",
    "GatewayManager",
    "GatewayNotFoundError",
    "GatewayNotInitializedError",
    "GatewayOperationFailedError",
    "GatewayProvider",
    "GatewayStatus",
    "GatewayTransactionAttempt",
    "GatewayUnavailableError",
    "RefundFailedError",
    "RefundRequest",
    "RefundResult",
    "RefundType",
    "TestGateway",
    "TransactionRecorder",
    "TransactionStatus",
    "VoidFailedError",
    "VoidRequest",
    "VoidResult",
]
