"""Payment gateway exceptions."""

from typing import Any

from nexus_kernel.exceptions import NexusError


class GatewayError(NexusError):
    """Base exception for the payment gateway package."""

    code: str = "GATEWAY_ERROR"
    gateway_error_code: str | None = None


class GatewayOperationFailedError(GatewayError):
    """
    A gateway operation did not complete.

    ``gateway_error_code`` and ``gateway_message`` carry what the provider
    (or the request validation in front of it) reported.
    """

    code: str = "GATEWAY_OPERATION_FAILED"
    operation: str = "operation"

    def __init__(
        self,
        message: str,
        *,
        gateway_error_code: str | None = None,
        gateway_message: str | None = None,
        **context: Any,
    ):
        self.gateway_error_code = gateway_error_code
        self.gateway_message = gateway_message
        super().__init__(message, gateway_error_code=gateway_error_code, **context)

    @classmethod
    def invalid_request(cls, error_code: str, message: str, **context: Any) -> "GatewayOperationFailedError":
        return cls(message, gateway_error_code=error_code, gateway_message=message, **context)

    @classmethod
    def from_unexpected(cls, cause: Exception) -> "GatewayOperationFailedError":
        return cls(
            f"{cls.operation.capitalize()} failed due to gateway error",
            gateway_error_code="GATEWAY_ERROR",
            gateway_message=str(cause),
            cause=type(cause).__name__,
        )


class AuthorizationFailedError(GatewayOperationFailedError):
    code: str = "AUTHORIZATION_FAILED"
    operation: str = "authorization"

    def __init__(
        self,
        message: str,
        *,
        gateway_error_code: str | None = None,
        gateway_message: str | None = None,
        decline_code: str | None = None,
        transaction_id: str | None = None,
        **context: Any,
    ):
        self.decline_code = decline_code
        self.transaction_id = transaction_id
        super().__init__(
            message,
            gateway_error_code=gateway_error_code,
            gateway_message=gateway_message,
            **context,
        )

    @classmethod
    def declined(cls, decline_code: str, reason: str, transaction_id: str | None = None) -> "AuthorizationFailedError":
        return cls(
            f"Payment declined: {reason}",
            gateway_error_code=decline_code,
            gateway_message=reason,
            decline_code=decline_code,
            transaction_id=transaction_id,
        )

    @property
    def is_decline(self) -> bool:
        return self.decline_code is not None


class CaptureFailedError(GatewayOperationFailedError):
    code: str = "CAPTURE_FAILED"
    operation: str = "capture"


class RefundFailedError(GatewayOperationFailedError):
    code: str = "REFUND_FAILED"
    operation: str = "refund"


class VoidFailedError(GatewayOperationFailedError):
    code: str = "VOID_FAILED"
    operation: str = "void"


class GatewayNotInitializedError(GatewayError):
    code: str = "GATEWAY_NOT_INITIALIZED"

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Gateway {provider} has not been initialized with credentials", provider=provider)


class GatewayNotFoundError(GatewayError):
    code: str = "GATEWAY_NOT_FOUND"

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"No gateway registered for provider: {provider}", provider=provider)


class GatewayUnavailableError(GatewayError):
    """The gateway reported a status that does not accept traffic."""

    code: str = "GATEWAY_UNAVAILABLE"

    def __init__(self, provider: str, status: str):
        self.provider = provider
        self.status = status
        super().__init__(f"Gateway {provider} is unavailable (status: {status})", provider=provider, status=status)
