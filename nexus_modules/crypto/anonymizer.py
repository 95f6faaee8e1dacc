"""
Anonymization and pseudonymization (``nexus_modules.crypto.anonymizer``).

Responsibility
--------------
Irreversible anonymization (plain hash, salted hash, keyed HMAC,
k-anonymity generalization, suppression), reversible pseudonymization by
encryption under a stored key, and stable keyed pseudonyms for joining
records across contexts.

Architecture position
---------------------
Key material and the cipher stay outside the package: ``KeyStorage`` hands
out ``EncryptionKey``s and ``SymmetricEncryptor`` does the encryption.
Hashing uses ``hashlib`` and ``hmac``; salts come from ``secrets``.

Failure modes
-------------
* ``AnonymizationError`` -- missing options, a malformed hierarchy, or any
  failure while pseudonymizing or reversing a pseudonym.
* ``KeyNotFoundError`` -- from ``KeyStorage``; wrapped in
  ``AnonymizationError`` by the pseudonymization calls.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import re
import secrets
from collections.abc import Mapping
from typing import Any, Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.crypto.exceptions import AnonymizationError, CryptoError
from nexus_modules.crypto.models import (
    AnonymizationMethod,
    AnonymizedData,
    EncryptedData,
    EncryptionKey,
    PseudonymizedData,
)

logger = get_logger("modules.crypto.anonymizer")

SALT_BYTES = 16
SUPPRESSED = "[SUPPRESSED]"
GENERALIZED = "[GENERALIZED]"
PSEUDONYM_SEPARATOR = "\x00"

_RANGE_KEY = re.compile(r"^(-?\d+(?:\.\d+)?)-(-?\d+(?:\.\d+)?)$")


class KeyStorage(Protocol):
    """Host-provided key lookup; raises ``KeyNotFoundError`` for unknown ids."""

    def retrieve(self, key_id: str) -> EncryptionKey: ...


class SymmetricEncryptor(Protocol):
    def encrypt(self, plaintext: bytes, key: EncryptionKey) -> EncryptedData: ...

    def decrypt(self, encrypted: EncryptedData, key: EncryptionKey) -> bytes: ...


def _sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _hmac_sha256(key: bytes, data: str) -> str:
    return hmac.new(key, data.encode("utf-8"), hashlib.sha256).hexdigest()


def generalize(value: str, hierarchy: Mapping[str, Any]) -> str:
    """
    Map ``value`` to its k-anonymity bucket.

    Tried in order: an exact key, a numeric ``low-high`` range key, a
    ``prefix*`` key, then the ``*`` or ``default`` key, and finally
    ``[GENERALIZED]``.
    """
    if value in hierarchy:
        return str(hierarchy[value])

    try:
        number = float(value)
    except ValueError:
        number = None
    if number is not None:
        for key, bucket in hierarchy.items():
            match = _RANGE_KEY.match(str(key))
            if match and float(match.group(1)) <= number <= float(match.group(2)):
                return str(bucket)

    for key, bucket in hierarchy.items():
        prefix = str(key).rstrip("*")
        if str(key).endswith("*") and prefix and value.startswith(prefix):
            return str(bucket)

    for fallback in ("*", "default"):
        if fallback in hierarchy:
            return str(hierarchy[fallback])
    return GENERALIZED


class Anonymizer:
    """
    Anonymizes and pseudonymizes values.

    Logs carry the method and key id only; never the data or key material.
    """

    def __init__(
        self,
        key_storage: KeyStorage,
        encryptor: SymmetricEncryptor,
        clock: Clock | None = None,
    ):
        self._keys = key_storage
        self._encryptor = encryptor
        self._clock = clock or SystemClock()

    def anonymize(
        self,
        data: str,
        method: AnonymizationMethod = AnonymizationMethod.SALTED_HASH,
        options: Mapping[str, Any] | None = None,
    ) -> AnonymizedData:
        options = options or {}
        for required in method.required_options:
            if options.get(required) is None:
                raise AnonymizationError.missing_option(required, method.value)

        salt = None
        if method is AnonymizationMethod.HASH_BASED:
            value = _sha256(data.encode("utf-8"))
        elif method is AnonymizationMethod.SALTED_HASH:
            salt_bytes = secrets.token_bytes(SALT_BYTES)
            salt = salt_bytes.hex()
            value = f"{salt}:{_sha256(salt_bytes + data.encode('utf-8'))}"
        elif method is AnonymizationMethod.HMAC_BASED:
            key = self._keys.retrieve(options["key_id"])
            value = _hmac_sha256(key.material, data)
        elif method is AnonymizationMethod.K_ANONYMITY:
            hierarchy = options["hierarchy"]
            if not isinstance(hierarchy, Mapping):
                raise AnonymizationError.invalid_hierarchy("hierarchy must be a mapping")
            value = generalize(data, hierarchy)
        else:
            value = SUPPRESSED

        logger.info(
            "data_anonymized",
            extra={"method": method.value, "security_level": method.security_level},
        )
        return AnonymizedData(
            anonymized_value=value,
            method=method,
            anonymized_at=self._clock.now(),
            salt=salt,
            metadata={
                "security_level": method.security_level,
                "is_deterministic": method.is_deterministic,
            },
        )

    def pseudonymize(self, data: str, key_id: str) -> PseudonymizedData:
        try:
            key = self._keys.retrieve(key_id)
            encrypted = self._encryptor.encrypt(data.encode("utf-8"), key)
            pseudonym = base64.b64encode(json.dumps(encrypted.to_dict()).encode("utf-8")).decode("ascii")
        except Exception as exc:
            logger.error("pseudonymization_failed", extra={"key_id": key_id, "error": str(exc)})
            raise AnonymizationError.pseudonymization_failed(str(exc)) from exc

        logger.info("data_pseudonymized", extra={"key_id": key_id, "key_version": key.version})
        return PseudonymizedData(
            pseudonym=pseudonym,
            key_id=key_id,
            key_version=key.version,
            pseudonymized_at=self._clock.now(),
            metadata={"algorithm": key.algorithm},
        )

    def de_pseudonymize(self, pseudonymized: PseudonymizedData) -> str:
        key_id = pseudonymized.key_id
        try:
            key = self._keys.retrieve(key_id)
            encrypted = self._deserialize(pseudonymized.pseudonym)
            plaintext = self._encryptor.decrypt(encrypted, key).decode("utf-8")
        except AnonymizationError:
            logger.error("de_pseudonymization_failed", extra={"key_id": key_id})
            raise
        except Exception as exc:
            logger.error("de_pseudonymization_failed", extra={"key_id": key_id, "error": str(exc)})
            raise AnonymizationError.de_pseudonymization_failed(str(exc)) from exc

        logger.info("data_de_pseudonymized", extra={"key_id": key_id})
        return plaintext

    def generate_pseudonym(self, data: str, context: str, key_id: str) -> str:
        """Stable HMAC-SHA256 of ``context`` and ``data``; the same pair always gives the same pseudonym."""
        try:
            key = self._keys.retrieve(key_id)
        except CryptoError as exc:
            logger.error("pseudonym_generation_failed", extra={"key_id": key_id, "context": context})
            raise AnonymizationError.pseudonymization_failed(str(exc)) from exc
        return _hmac_sha256(key.material, f"{context}{PSEUDONYM_SEPARATOR}{data}")

    def verify_anonymized(
        self,
        data: str,
        anonymized: AnonymizedData,
        options: Mapping[str, Any] | None = None,
    ) -> bool:
        """Whether ``data`` anonymizes to ``anonymized``; always False for methods that cannot be replayed."""
        if not anonymized.is_deterministic or anonymized.method is AnonymizationMethod.SUPPRESSION:
            return False
        try:
            replay = self.anonymize(data, anonymized.method, options)
        except CryptoError:
            return False
        return hmac.compare_digest(anonymized.anonymized_value, replay.anonymized_value)

    @staticmethod
    def _deserialize(pseudonym: str) -> EncryptedData:
        try:
            decoded = base64.b64decode(pseudonym, validate=True)
        except binascii.Error:
            raise AnonymizationError.de_pseudonymization_failed("Invalid base64 encoding") from None
        try:
            return EncryptedData.from_dict(json.loads(decoded))
        except (ValueError, KeyError, TypeError) as exc:
            raise AnonymizationError.de_pseudonymization_failed(f"Invalid JSON format: {exc}") from None
