"""
Data Protection Models.

Masking patterns, anonymization methods and the frozen records produced by
anonymizing or pseudonymizing a value, plus the key and ciphertext shapes
exchanged with the host's key storage and encryptor.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Self


class MaskingPattern(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    CREDIT_CARD = "credit_card"
    NATIONAL_ID = "national_id"
    IBAN = "iban"
    NAME = "name"
    ADDRESS = "address"
    DATE_OF_BIRTH = "date_of_birth"
    FULL_REDACTION = "full_redaction"


class AnonymizationMethod(str, Enum):
    """Irreversible transformations; none of them can be undone."""

    HASH_BASED = "hash_based"
    SALTED_HASH = "salted_hash"
    HMAC_BASED = "hmac_based"
    K_ANONYMITY = "k_anonymity"
    SUPPRESSION = "suppression"

    @property
    def is_deterministic(self) -> bool:
        """Same input always yields the same output."""
        return self is not AnonymizationMethod.SALTED_HASH

    @property
    def is_reversible(self) -> bool:
        return False

    @property
    def security_level(self) -> str:
        return _SECURITY_LEVELS[self]

    @property
    def required_options(self) -> tuple[str, ...]:
        return _REQUIRED_OPTIONS.get(self, ())


_SECURITY_LEVELS: dict[AnonymizationMethod, str] = {
    AnonymizationMethod.HASH_BASED: "low",
    AnonymizationMethod.SALTED_HASH: "high",
    AnonymizationMethod.HMAC_BASED: "high",
    AnonymizationMethod.K_ANONYMITY: "medium",
    AnonymizationMethod.SUPPRESSION: "maximum",
}

_REQUIRED_OPTIONS: dict[AnonymizationMethod, tuple[str, ...]] = {
    AnonymizationMethod.HMAC_BASED: ("key_id",),
    AnonymizationMethod.K_ANONYMITY: ("hierarchy",),
}


@dataclass(frozen=True)
class AnonymizedData:
    anonymized_value: str
    method: AnonymizationMethod
    anonymized_at: datetime
    salt: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_deterministic(self) -> bool:
        return self.method.is_deterministic

    @property
    def is_correlatable(self) -> bool:
        """Whether two records anonymized this way can be matched to each other."""
        return self.is_deterministic and self.method is not AnonymizationMethod.SUPPRESSION


_PSEUDONYMIZED_FIELDS = ("pseudonym", "key_id", "key_version", "pseudonymized_at")


@dataclass(frozen=True)
class PseudonymizedData:
    """An encrypted stand-in for a value; reversible by whoever holds ``key_id``."""

    pseudonym: str
    key_id: str
    key_version: int
    pseudonymized_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_current_key_version(self, current_version: int) -> bool:
        return self.key_version == current_version

    def needs_key_rotation(self, current_version: int, max_versions_behind: int = 1) -> bool:
        return current_version - self.key_version > max_versions_behind

    def to_dict(self) -> dict[str, Any]:
        return {
            "pseudonym": self.pseudonym,
            "key_id": self.key_id,
            "key_version": self.key_version,
            "pseudonymized_at": self.pseudonymized_at.isoformat(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        for name in _PSEUDONYMIZED_FIELDS:
            if name not in data:
                raise ValueError(f"Missing required field: {name}")
        try:
            pseudonymized_at = datetime.fromisoformat(data["pseudonymized_at"])
        except (TypeError, ValueError):
            raise ValueError("pseudonymized_at must be an ISO 8601 datetime") from None
        return cls(
            pseudonym=data["pseudonym"],
            key_id=data["key_id"],
            key_version=int(data["key_version"]),
            pseudonymized_at=pseudonymized_at,
            metadata=dict(data.get("metadata") or {}),
        )


# =============================================================================
# Key material and ciphertext
# =============================================================================


@dataclass(frozen=True)
class EncryptionKey:
    key_id: str
    material: bytes = field(repr=False)
    algorithm: str = "aes-256-gcm"
    version: int = 1
    created_at: datetime | None = None
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.material:
            raise ValueError("Key material cannot be empty")
        if self.version < 1:
            raise ValueError("Key version must be positive")

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def expires_within(self, now: datetime, days: int) -> bool:
        """True when the key lapses within ``days`` of ``now``, or already has."""
        return self.expires_at is not None and self.expires_at <= now + timedelta(days=days)


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


@dataclass(frozen=True)
class EncryptedData:
    ciphertext: bytes
    iv: bytes
    algorithm: str
    tag: bytes | None = None
    key_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ciphertext": _b64(self.ciphertext),
            "iv": _b64(self.iv),
            "tag": _b64(self.tag) if self.tag is not None else None,
            "algorithm": self.algorithm,
            "key_id": self.key_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        tag = data.get("tag")
        return cls(
            ciphertext=base64.b64decode(data["ciphertext"]),
            iv=base64.b64decode(data["iv"]),
            algorithm=data["algorithm"],
            tag=base64.b64decode(tag) if tag is not None else None,
            key_id=data.get("key_id"),
        )


# =============================================================================
# Hashing
# =============================================================================


class HashAlgorithm(str, Enum):
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"
    BLAKE2B = "blake2b"


@dataclass(frozen=True)
class HashResult:
    """Hex digest of some data and the algorithm that produced it."""

    hash: str
    algorithm: HashAlgorithm

    def to_dict(self) -> dict[str, Any]:
        return {"hash": self.hash, "algorithm": self.algorithm.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(hash=data["hash"], algorithm=HashAlgorithm(data["algorithm"]))
