"""Payment rail exceptions."""

from nexus_kernel.exceptions import NexusError, ValidationError


class RailError(NexusError):
    """Base exception for the payment rails package."""

    code: str = "RAIL_ERROR"


class RailValidationError(RailError, ValidationError):
    """A rail transaction request failed one or more rules; ``errors`` lists them all."""

    code: str = "RAIL_VALIDATION_FAILED"

    @classmethod
    def with_errors(cls, errors: list[str], rail_type: str | None = None) -> "RailValidationError":
        return cls(
            f"Rail transaction validation failed: {'; '.join(errors)}",
            errors=errors,
            rail_type=rail_type,
        )


class InvalidRoutingNumberError(RailError, ValueError):
    code: str = "INVALID_ROUTING_NUMBER"

    def __init__(self, routing_number: str, reason: str):
        self.routing_number = routing_number
        self.reason = reason
        super().__init__(f"Invalid routing number '{routing_number}': {reason}", routing_number=routing_number)


class NachaFormatError(RailError):
    """NACHA content could not be parsed."""

    code: str = "NACHA_FORMAT_ERROR"

    @classmethod
    def empty(cls) -> "NachaFormatError":
        return cls("NACHA content is empty")

    @classmethod
    def missing_file_header(cls) -> "NachaFormatError":
        return cls("Missing file header record")

    @classmethod
    def invalid_record(cls, record_number: int, reason: str) -> "NachaFormatError":
        return cls(f"Record {record_number}: {reason}", record_number=record_number)


class NoEligibleRailError(RailError):
    code: str = "NO_ELIGIBLE_RAIL"

    def __init__(self, amount: str, currency: str, urgency: str):
        self.amount = amount
        self.currency = currency
        self.urgency = urgency
        super().__init__(
            f"No payment rail can carry {currency} {amount} with {urgency} urgency",
            amount=amount,
            currency=currency,
            urgency=urgency,
        )
