"""Data protection exceptions."""

from typing import Any

from nexus_kernel.exceptions import NexusError, NotFoundError


class CryptoError(NexusError):
    """Base exception for the data protection package."""

    code: str = "CRYPTO_ERROR"


class AnonymizationError(CryptoError):
    """
    Anonymization or pseudonymization could not be completed.

    ``reason`` is one of ``missing_option``, ``invalid_hierarchy``,
    ``pseudonymization_failed`` or ``de_pseudonymization_failed``.
    Messages never include the data being protected.
    """

    code: str = "ANONYMIZATION_FAILED"

    def __init__(self, message: str, *, reason: str, **context: Any):
        self.reason = reason
        super().__init__(message, **context)

    @classmethod
    def missing_option(cls, option: str, method: str) -> "AnonymizationError":
        return cls(
            f"Anonymization method '{method}' requires option '{option}'",
            reason="missing_option",
            option=option,
            method=method,
        )

    @classmethod
    def invalid_hierarchy(cls, detail: str) -> "AnonymizationError":
        return cls(f"Invalid generalization hierarchy: {detail}", reason="invalid_hierarchy")

    @classmethod
    def pseudonymization_failed(cls, detail: str) -> "AnonymizationError":
        return cls(f"Pseudonymization failed: {detail}", reason="pseudonymization_failed")

    @classmethod
    def de_pseudonymization_failed(cls, detail: str) -> "AnonymizationError":
        return cls(f"De-pseudonymization failed: {detail}", reason="de_pseudonymization_failed")


class KeyNotFoundError(CryptoError, NotFoundError):
    code: str = "KEY_NOT_FOUND"

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__("Encryption key", key_id)


class KeyManagementError(CryptoError, ValueError):
    """A key operation was asked for something the key cannot do."""

    code: str = "KEY_MANAGEMENT_ERROR"

    @classmethod
    def key_id_mismatch(cls, expected: str, actual: str) -> "KeyManagementError":
        return cls(f"Key ID mismatch: expected '{expected}', got '{actual}'", expected=expected, actual=actual)

    @classmethod
    def key_expired(cls, key_id: str) -> "KeyManagementError":
        return cls(f"Encryption key '{key_id}' has expired", key_id=key_id)

    @classmethod
    def invalid_length(cls, length: int) -> "KeyManagementError":
        return cls(f"Random byte length must be positive, got {length}", length=length)

    @classmethod
    def invalid_expiration(cls, days: int) -> "KeyManagementError":
        return cls(f"Key expiration must be at least 1 day, got {days}", expiration_days=days)
