"""
Gateway adapters (``nexus_modules.payment_gateway.gateway``).

Responsibility
--------------
``AbstractGateway`` is the template every provider adapter extends: it
validates requests, delegates to the provider-specific ``_do_*`` hooks and
normalises failures. ``TestGateway`` is an in-memory provider for tests and
sandboxes.

Failure modes
-------------
* ``GatewayNotInitializedError`` -- operation before ``initialize``.
* ``AuthorizationFailedError`` / ``CaptureFailedError`` /
  ``RefundFailedError`` / ``VoidFailedError`` -- invalid request, provider
  decline, or an unexpected provider exception (code ``GATEWAY_ERROR``).
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TypeVar

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.ids import random_hex
from nexus_kernel.logging_config import get_logger
from nexus_kernel.values import Money
from nexus_modules.payment_gateway.exceptions import (
    AuthorizationFailedError,
    CaptureFailedError,
    GatewayError,
    GatewayNotInitializedError,
    GatewayOperationFailedError,
    RefundFailedError,
    VoidFailedError,
)
from nexus_modules.payment_gateway.models import (
    AuthorizationResult,
    AuthorizeRequest,
    CaptureRequest,
    CaptureResult,
    GatewayCredentials,
    GatewayProvider,
    GatewayStatus,
    RefundRequest,
    RefundResult,
    RefundType,
    TransactionStatus,
    VoidRequest,
    VoidResult,
)

logger = get_logger("modules.payment_gateway.gateway")

_R = TypeVar("_R")
_Q = TypeVar("_Q")


class AbstractGateway(ABC):
    """
    Template for provider adapters.

    Subclasses set ``provider`` and ``name`` and implement the ``_do_*``
    hooks. The public methods are final in spirit: they run the shared
    validation and error handling around the hook.
    """

    provider: GatewayProvider
    name: str = "Gateway"

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._credentials: GatewayCredentials | None = None

    def initialize(self, credentials: GatewayCredentials) -> None:
        self._credentials = credentials
        logger.info(
            "gateway_initialized",
            extra={"provider": self.provider.value, "sandbox": credentials.sandbox},
        )

    @property
    def is_initialized(self) -> bool:
        return self._credentials is not None

    @property
    def credentials(self) -> GatewayCredentials | None:
        return self._credentials

    # -- operations --------------------------------------------------------

    def authorize(self, request: AuthorizeRequest) -> AuthorizationResult:
        self._require_initialized()
        if not request.amount.is_positive:
            raise AuthorizationFailedError.invalid_request(
                "INVALID_AMOUNT", "Authorization amount must be positive"
            )
        if not request.payment_method_token or not request.payment_method_token.strip():
            raise AuthorizationFailedError.invalid_request(
                "INVALID_TOKEN", "Payment method token is required"
            )
        return self._run("authorize", AuthorizationFailedError, self._do_authorize, request)

    def capture(self, request: CaptureRequest) -> CaptureResult:
        self._require_initialized()
        if not request.authorization_id:
            raise CaptureFailedError.invalid_request(
                "INVALID_AUTHORIZATION", "Authorization id is required for capture"
            )
        if request.amount is not None and not request.amount.is_positive:
            raise CaptureFailedError.invalid_request("INVALID_AMOUNT", "Capture amount must be positive")
        return self._run("capture", CaptureFailedError, self._do_capture, request)

    def refund(self, request: RefundRequest) -> RefundResult:
        self._require_initialized()
        if not request.transaction_id:
            raise RefundFailedError.invalid_request(
                "INVALID_TRANSACTION", "Transaction id is required for refund"
            )
        if request.amount is not None and not request.amount.is_positive:
            raise RefundFailedError.invalid_request("INVALID_AMOUNT", "Refund amount must be positive")
        return self._run("refund", RefundFailedError, self._do_refund, request)

    def void(self, request: VoidRequest) -> VoidResult:
        self._require_initialized()
        if not request.authorization_id:
            raise VoidFailedError.invalid_request(
                "INVALID_AUTHORIZATION", "Authorization id is required for void"
            )
        return self._run("void", VoidFailedError, self._do_void, request)

    def status(self) -> GatewayStatus:
        """Provider health; a failing health check reports ``DOWN``."""
        try:
            return self._do_status()
        except Exception:
            logger.exception("gateway_status_check_failed", extra={"provider": self.provider.value})
            return GatewayStatus.DOWN

    def generate_transaction_id(self) -> str:
        return f"{self.provider.value.upper()}_{random_hex(16)}"

    def _require_initialized(self) -> None:
        if self._credentials is None:
            raise GatewayNotInitializedError(self.provider.value)

    def _run(
        self,
        operation: str,
        error_type: type[GatewayOperationFailedError],
        hook: Callable[[_Q], _R],
        request: _Q,
    ) -> _R:
        try:
            return hook(request)
        except GatewayError:
            raise
        except Exception as exc:
            logger.exception(
                "gateway_unexpected_error",
                extra={"provider": self.provider.value, "operation": operation},
            )
            raise error_type.from_unexpected(exc) from exc

    # -- provider hooks ----------------------------------------------------

    @abstractmethod
    def _do_authorize(self, request: AuthorizeRequest) -> AuthorizationResult: ...

    @abstractmethod
    def _do_capture(self, request: CaptureRequest) -> CaptureResult: ...

    @abstractmethod
    def _do_refund(self, request: RefundRequest) -> RefundResult: ...

    @abstractmethod
    def _do_void(self, request: VoidRequest) -> VoidResult: ...

    def _do_status(self) -> GatewayStatus:
        return GatewayStatus.HEALTHY


# =============================================================================
# In-memory test provider
# =============================================================================


@dataclass
class _Authorization:
    amount: Money
    status: TransactionStatus
    transaction_id: str
    created_at: datetime
    captured_amount: Money

    @property
    def captured(self) -> bool:
        return self.status in (TransactionStatus.CAPTURED, TransactionStatus.PARTIALLY_CAPTURED)


@dataclass
class _Capture:
    authorization_id: str
    amount: Money
    created_at: datetime
    refunded_amount: Money

    @property
    def remaining(self) -> Money:
        return self.amount - self.refunded_amount


class TestGateway(AbstractGateway):
    """
    Simulated provider driven by the payment-method token.

    * ``tok_decline...`` -- declined with ``card_declined``.
    * ``tok_error...`` -- provider error ``gateway_error``.
    * ``tok_3ds...`` -- 3-D Secure challenge required.
    * anything else -- authorized (and captured when auto-capture).
    """

    __test__ = False

    TOKEN_SUCCESS = "tok_success"
    TOKEN_DECLINE = "tok_decline"
    TOKEN_ERROR = "tok_error"
    TOKEN_3DS = "tok_3ds"

    AUTHORIZATION_TTL = timedelta(days=7)

    provider = GatewayProvider.TEST
    name = "Test Gateway"

    def __init__(self, clock: Clock | None = None):
        super().__init__(clock)
        self._status = GatewayStatus.HEALTHY
        self._authorizations: dict[str, _Authorization] = {}
        self._captures: dict[str, _Capture] = {}

    def set_status(self, status: GatewayStatus) -> None:
        self._status = status

    @property
    def authorizations(self) -> dict[str, _Authorization]:
        return dict(self._authorizations)

    @property
    def captures(self) -> dict[str, _Capture]:
        return dict(self._captures)

    def reset(self) -> None:
        self._authorizations.clear()
        self._captures.clear()

    def _do_status(self) -> GatewayStatus:
        return self._status

    def _do_authorize(self, request: AuthorizeRequest) -> AuthorizationResult:
        token = request.payment_method_token
        if token.startswith(self.TOKEN_DECLINE):
            raise AuthorizationFailedError.declined(
                "card_declined", "Your card was declined.", self.generate_transaction_id()
            )
        if token.startswith(self.TOKEN_ERROR):
            raise AuthorizationFailedError(
                "Gateway error occurred",
                gateway_error_code="gateway_error",
                gateway_message="Test gateway error simulation",
            )

        authorization_id = f"auth_{secrets.token_hex(12)}"
        if token.startswith(self.TOKEN_3DS):
            return AuthorizationResult.requires_3ds(
                authorization_id,
                f"https://3ds.test/authenticate/{authorization_id}",
                raw_response={"type": "3ds_required"},
            )

        now = self._clock.now()
        transaction_id = self.generate_transaction_id()
        currency = request.amount.currency
        if request.is_auto_capture:
            self._authorizations[authorization_id] = _Authorization(
                request.amount, TransactionStatus.CAPTURED, transaction_id, now, request.amount
            )
            return AuthorizationResult.succeeded(
                authorization_id,
                request.amount,
                transaction_id,
                status=TransactionStatus.CAPTURED,
                raw_response={"type": "auth_capture", "test": True},
            )

        self._authorizations[authorization_id] = _Authorization(
            request.amount, TransactionStatus.AUTHORIZED, transaction_id, now, Money.zero(currency)
        )
        return AuthorizationResult.succeeded(
            authorization_id,
            request.amount,
            transaction_id,
            expires_at=now + self.AUTHORIZATION_TTL,
            raw_response={"type": "authorization", "test": True},
        )

    def _do_capture(self, request: CaptureRequest) -> CaptureResult:
        authorization = self._authorizations.get(request.authorization_id)
        if authorization is None:
            raise CaptureFailedError(
                "Authorization not found",
                gateway_error_code="authorization_not_found",
                gateway_message="The authorization was not found or has expired",
                authorization_id=request.authorization_id,
            )
        if authorization.captured:
            raise CaptureFailedError(
                "Authorization already captured",
                gateway_error_code="already_captured",
                gateway_message="This authorization has already been captured",
                authorization_id=request.authorization_id,
            )
        if authorization.status is TransactionStatus.VOIDED:
            raise CaptureFailedError(
                "Authorization voided",
                gateway_error_code="authorization_voided",
                gateway_message="This authorization has been voided and cannot be captured",
                authorization_id=request.authorization_id,
            )

        amount = authorization.amount if request.amount is None else request.amount
        if amount > authorization.amount:
            raise CaptureFailedError(
                "Capture amount exceeds authorization",
                gateway_error_code="amount_too_large",
                gateway_message="Capture amount cannot exceed authorized amount",
                authorization_id=request.authorization_id,
                attempted_amount=str(amount.amount),
            )

        status = (
            TransactionStatus.CAPTURED
            if amount == authorization.amount
            else TransactionStatus.PARTIALLY_CAPTURED
        )
        authorization.status = status
        authorization.captured_amount = amount

        capture_id = f"cap_{secrets.token_hex(12)}"
        self._captures[capture_id] = _Capture(
            request.authorization_id, amount, self._clock.now(), Money.zero(amount.currency)
        )
        return CaptureResult.succeeded(capture_id, amount, status, raw_response={"type": "capture", "test": True})

    def _do_refund(self, request: RefundRequest) -> RefundResult:
        capture = self._captures.get(request.transaction_id)
        if capture is None:
            raise RefundFailedError(
                "Capture not found",
                gateway_error_code="capture_not_found",
                gateway_message="The capture was not found",
                transaction_id=request.transaction_id,
            )

        if not capture.remaining.is_positive:
            raise RefundFailedError(
                "Capture already fully refunded",
                gateway_error_code="already_refunded",
                gateway_message="Nothing remains to refund on this capture",
                transaction_id=request.transaction_id,
            )

        amount = capture.remaining if request.amount is None else request.amount
        if amount > capture.remaining:
            raise RefundFailedError(
                "Refund amount exceeds captured amount",
                gateway_error_code="amount_too_large",
                gateway_message="Refund amount cannot exceed remaining captured amount",
                transaction_id=request.transaction_id,
                attempted_amount=str(amount.amount),
            )

        capture.refunded_amount = capture.refunded_amount + amount
        refund_type = RefundType.FULL if capture.refunded_amount == capture.amount else RefundType.PARTIAL
        return RefundResult.succeeded(
            f"ref_{secrets.token_hex(12)}", amount, refund_type, raw_response={"type": "refund", "test": True}
        )

    def _do_void(self, request: VoidRequest) -> VoidResult:
        authorization = self._authorizations.get(request.authorization_id)
        if authorization is None:
            raise VoidFailedError(
                "Authorization not found",
                gateway_error_code="authorization_not_found",
                gateway_message="The authorization was not found or has expired",
                authorization_id=request.authorization_id,
            )
        if authorization.captured:
            raise VoidFailedError(
                "Cannot void captured authorization",
                gateway_error_code="already_captured",
                gateway_message="This authorization has been captured and cannot be voided. Use refund instead.",
                authorization_id=request.authorization_id,
            )
        if authorization.status is TransactionStatus.VOIDED:
            raise VoidFailedError(
                "Authorization already voided",
                gateway_error_code="authorization_voided",
                gateway_message="This authorization has already been voided",
                authorization_id=request.authorization_id,
            )

        authorization.status = TransactionStatus.VOIDED
        return VoidResult.succeeded(f"void_{secrets.token_hex(12)}", raw_response={"type": "void", "test": True})
