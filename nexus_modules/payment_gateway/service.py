"""
Gateway Manager (``nexus_modules.payment_gateway.service``).

Responsibility
--------------
Holds the initialised gateway per provider and routes authorize, capture,
refund and void calls to it, logging and recording every attempt.

Architecture position
---------------------
**Modules layer** -- thin orchestration over ``AbstractGateway`` adapters.
Attempt history goes to an optional ``TransactionRecorder``.

Failure modes
-------------
* ``GatewayNotFoundError`` -- no gateway registered for the provider.
* ``GatewayUnavailableError`` -- the gateway reports DOWN or MAINTENANCE.
* Operation errors from the gateway are recorded, logged and re-raised.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, TypeVar

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment_gateway.exceptions import (
    GatewayError,
    GatewayNotFoundError,
    GatewayUnavailableError,
)
from nexus_modules.payment_gateway.gateway import AbstractGateway
from nexus_modules.payment_gateway.models import (
    AuthorizationResult,
    AuthorizeRequest,
    CaptureRequest,
    CaptureResult,
    GatewayCredentials,
    GatewayProvider,
    GatewayStatus,
    GatewayTransactionAttempt,
    RefundRequest,
    RefundResult,
    TransactionStatus,
    VoidRequest,
    VoidResult,
)

logger = get_logger("modules.payment_gateway.service")

_R = TypeVar("_R", AuthorizationResult, CaptureResult, RefundResult, VoidResult)


class TransactionRecorder(Protocol):
    """Receives one record per gateway call; implemented by the host application."""

    def record(self, attempt: GatewayTransactionAttempt) -> None: ...


class GatewayManager:
    """Routes payment operations to the registered provider gateways."""

    def __init__(self, clock: Clock | None = None, recorder: TransactionRecorder | None = None):
        self._clock = clock or SystemClock()
        self._recorder = recorder
        self._gateways: dict[GatewayProvider, AbstractGateway] = {}

    def register_gateway(self, gateway: AbstractGateway, credentials: GatewayCredentials) -> None:
        gateway.initialize(credentials)
        self._gateways[gateway.provider] = gateway
        logger.info("gateway_registered", extra={"provider": gateway.provider.value})

    def get_gateway(self, provider: GatewayProvider) -> AbstractGateway:
        gateway = self._gateways.get(provider)
        if gateway is None:
            raise GatewayNotFoundError(provider.value)
        return gateway

    def has_gateway(self, provider: GatewayProvider) -> bool:
        return provider in self._gateways

    @property
    def providers(self) -> list[GatewayProvider]:
        return list(self._gateways)

    def health(self) -> dict[GatewayProvider, GatewayStatus]:
        return {provider: gateway.status() for provider, gateway in self._gateways.items()}

    # -- operations --------------------------------------------------------

    def authorize(self, provider: GatewayProvider, request: AuthorizeRequest) -> AuthorizationResult:
        return self._execute(
            provider, "authorize", lambda gateway: gateway.authorize(request),
            request_reference=request.order_id, amount=request.amount,
        )

    def capture(self, provider: GatewayProvider, request: CaptureRequest) -> CaptureResult:
        return self._execute(
            provider, "capture", lambda gateway: gateway.capture(request),
            request_reference=request.authorization_id, amount=request.amount,
        )

    def refund(self, provider: GatewayProvider, request: RefundRequest) -> RefundResult:
        return self._execute(
            provider, "refund", lambda gateway: gateway.refund(request),
            request_reference=request.transaction_id, amount=request.amount,
            reason=request.reason,
        )

    def void(self, provider: GatewayProvider, request: VoidRequest) -> VoidResult:
        return self._execute(
            provider, "void", lambda gateway: gateway.void(request),
            request_reference=request.authorization_id, amount=None,
            reason=request.reason,
        )

    def _available_gateway(self, provider: GatewayProvider) -> AbstractGateway:
        gateway = self.get_gateway(provider)
        status = gateway.status()
        if not status.is_available:
            logger.warning(
                "gateway_unavailable",
                extra={"provider": provider.value, "gateway_status": status.value},
            )
            raise GatewayUnavailableError(provider.value, status.value)
        return gateway

    def _execute(
        self,
        provider: GatewayProvider,
        operation: str,
        call: Callable[[AbstractGateway], _R],
        *,
        request_reference: str | None,
        amount: Money | None,
        **context: Any,
    ) -> _R:
        gateway = self._available_gateway(provider)
        try:
            result = call(gateway)
        except GatewayError as exc:
            logger.error(
                f"gateway_{operation}_failed",
                extra={
                    "provider": provider.value,
                    "request_reference": request_reference,
                    "error_code": exc.gateway_error_code or exc.code,
                    "error": str(exc),
                    **context,
                },
            )
            self._record(
                provider, operation, False,
                request_reference=request_reference,
                amount=amount,
                error_code=exc.gateway_error_code or exc.code,
                error_message=str(exc),
            )
            raise

        recorded_amount = amount
        for attribute in ("authorized_amount", "captured_amount", "refunded_amount"):
            if getattr(result, attribute, None) is not None:
                recorded_amount = getattr(result, attribute)

        if result.success:
            log, event = logger.info, f"gateway_{operation}_succeeded"
        elif result.status is TransactionStatus.REQUIRES_ACTION:
            log, event = logger.info, f"gateway_{operation}_requires_action"
        else:
            log, event = logger.warning, f"gateway_{operation}_failed"
        log(
            event,
            extra={
                "provider": provider.value,
                "request_reference": request_reference,
                "result_reference": result.reference_id,
                "amount": recorded_amount.format() if recorded_amount else None,
                "transaction_status": result.status.value,
                **context,
            },
        )
        self._record(
            provider, operation, result.success,
            request_reference=request_reference,
            result_reference=result.reference_id,
            amount=recorded_amount,
            status=result.status,
            error_code=result.error_code,
            error_message=result.error_message,
        )
        return result

    def _record(self, provider: GatewayProvider, operation: str, success: bool, **fields: Any) -> None:
        if self._recorder is None:
            return
        self._recorder.record(
            GatewayTransactionAttempt(
                provider=provider,
                operation=operation,
                success=success,
                occurred_at=self._clock.now(),
                **fields,
            )
        )
