"""
Typed exception hierarchy shared by every Nexus domain package.

Every error carries a ``code`` class attribute (machine readable, API safe)
and stores its context as attributes rather than only in the message, so
callers catch by type and read structured fields:

    try:
        manager.approve(sar_id, approver="officer-2")
    except SarGenerationFailedError as e:
        return {"error": e.code, "sar_id": e.sar_id, "reason": e.reason}

Hierarchy
---------

    NexusError (base)
    |
    +-- ValidationError
    +-- NotFoundError
    +-- InvalidTransitionError
    +-- LimitExceededError
    +-- ConfigurationError
    +-- CurrencyError
        +-- InvalidCurrencyError
        +-- CurrencyMismatchError

Domain packages root their own hierarchy on ``NexusError`` (for example
``AmlError`` in ``nexus_modules.aml.exceptions``) and may additionally mix
in one of the category classes above so that middleware can treat, say,
every not-found error the same way regardless of package.

Named constructors are classmethods on the concrete error:

    raise SarGenerationFailedError.insufficient_evidence(party_id, score)

Value objects that reject malformed constructor input raise ``ValueError``
instead; those are programming errors at the boundary, not domain outcomes.
"""

from typing import Any


class NexusError(Exception):
    """
    Base exception for all Nexus domain errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "NEXUS_ERROR"

    def __init__(self, message: str = "", **context: Any):
        self.context = dict(context)
        super().__init__(message or self.code)


class ValidationError(NexusError):
    """Input failed domain validation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[str] | None = None, **context: Any):
        self.errors = list(errors) if errors else [message]
        super().__init__(message, **context)


class NotFoundError(NexusError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class InvalidTransitionError(NexusError):
    """A state machine rejected a status change."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity: str, from_state: str, to_state: str, reason: str | None = None):
        self.entity = entity
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        message = f"Cannot transition {entity} from {from_state} to {to_state}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class LimitExceededError(NexusError):
    """A configured limit was exceeded."""

    code: str = "LIMIT_EXCEEDED"


class ConfigurationError(NexusError):
    """Configuration is missing or malformed."""

    code: str = "CONFIGURATION_ERROR"


# Currency-related exceptions


class CurrencyError(NexusError):
    """Base exception for currency-related errors."""

    code: str = "CURRENCY_ERROR"


class InvalidCurrencyError(CurrencyError):
    """Invalid ISO 4217 currency code provided."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class CurrencyMismatchError(CurrencyError, ValueError):
    """Attempted operation on mismatched currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str, operation: str = "combine"):
        self.currency1 = currency1
        self.currency2 = currency2
        self.operation = operation
        super().__init__(
            f"Cannot {operation} Money with different currencies: {currency1} and {currency2}"
        )
