"""
Crypto Manager (``nexus_modules.crypto.manager``).

Responsibility
--------------
Integrity hashes, HMAC signatures, random bytes, and the lifecycle of
symmetric keys (generation, rotation, expiry) plus encryption under a
named key.

Architecture position
---------------------
**Modules layer** -- key persistence is the host's ``ManagedKeyStorage``
and the cipher is the host's ``SymmetricEncryptor``. Digests come from
``hashlib`` and ``hmac``; key material and random bytes from ``secrets``.

Invariants enforced
-------------------
* Every comparison of a digest or signature is constant time.
* A rotated key keeps its id and algorithm, gets fresh material and the
  next version, and keeps the lifetime of the key it replaces.
* Expired keys may still decrypt but never encrypt.
* Key material never appears in logs or error messages.

Failure modes
-------------
* ``KeyNotFoundError`` -- raised by key storage for unknown ids.
* ``KeyManagementError`` -- expired key, key id mismatch on decrypt,
  non-positive lengths or lifetimes.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from collections.abc import Sequence
from datetime import timedelta
from typing import Protocol

from nexus_kernel.clock import Clock, SystemClock
from nexus_kernel.logging_config import get_logger
from nexus_modules.crypto.anonymizer import KeyStorage, SymmetricEncryptor
from nexus_modules.crypto.exceptions import KeyManagementError
from nexus_modules.crypto.models import EncryptedData, EncryptionKey, HashAlgorithm, HashResult

logger = get_logger("modules.crypto.manager")

DEFAULT_ALGORITHM = "aes-256-gcm"
DEFAULT_EXPIRATION_DAYS = 90
DEFAULT_KEY_BYTES = 32

_KEY_BYTES = {
    "aes-128-gcm": 16,
    "aes-256-gcm": 32,
    "aes-256-cbc": 32,
    "chacha20-poly1305": 32,
}


class ManagedKeyStorage(KeyStorage, Protocol):
    """Key storage that can also persist and list keys."""

    def store(self, key: EncryptionKey) -> None:
        """Save ``key`` as the current version for its id."""
        ...

    def all_keys(self) -> Sequence[EncryptionKey]: ...


def _as_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


class CryptoManager:
    """
    Hashing, signing and key management over host-supplied storage.

    Usage::

        crypto = CryptoManager(key_storage, encryptor)
        crypto.generate_encryption_key("pii-key")
        sealed = crypto.encrypt_with_key(b"secret", "pii-key")
        expiring = crypto.find_expiring_keys(days=14)
    """

    def __init__(
        self,
        key_storage: ManagedKeyStorage,
        encryptor: SymmetricEncryptor | None = None,
        clock: Clock | None = None,
    ):
        self._keys = key_storage
        self._encryptor = encryptor
        self._clock = clock or SystemClock()

    # -- hashing -----------------------------------------------------------

    def hash(self, data: str | bytes, algorithm: HashAlgorithm = HashAlgorithm.SHA256) -> HashResult:
        digest = hashlib.new(algorithm.value, _as_bytes(data)).hexdigest()
        return HashResult(digest, algorithm)

    def verify_hash(self, data: str | bytes, expected: HashResult) -> bool:
        actual = self.hash(data, expected.algorithm)
        return hmac.compare_digest(actual.hash, expected.hash)

    def hmac(self, data: str | bytes, secret: str | bytes) -> str:
        """Hex HMAC-SHA256 of ``data``."""
        return hmac.new(_as_bytes(secret), _as_bytes(data), hashlib.sha256).hexdigest()

    def verify_hmac(self, data: str | bytes, signature: str, secret: str | bytes) -> bool:
        return hmac.compare_digest(self.hmac(data, secret), signature)

    def random_bytes(self, length: int) -> bytes:
        if length < 1:
            raise KeyManagementError.invalid_length(length)
        return secrets.token_bytes(length)

    # -- key management ----------------------------------------------------

    def generate_encryption_key(
        self,
        key_id: str,
        algorithm: str = DEFAULT_ALGORITHM,
        expiration_days: int | None = DEFAULT_EXPIRATION_DAYS,
    ) -> EncryptionKey:
        """Create and store version 1 of ``key_id``; no expiry when ``expiration_days`` is None."""
        if expiration_days is not None and expiration_days < 1:
            raise KeyManagementError.invalid_expiration(expiration_days)
        now = self._clock.now()
        key = EncryptionKey(
            key_id,
            secrets.token_bytes(_KEY_BYTES.get(algorithm, DEFAULT_KEY_BYTES)),
            algorithm=algorithm,
            created_at=now,
            expires_at=now + timedelta(days=expiration_days) if expiration_days is not None else None,
        )
        self._keys.store(key)
        logger.info(
            "encryption_key_generated",
            extra={"key_id": key_id, "algorithm": algorithm, "expiration_days": expiration_days},
        )
        return key

    def get_key(self, key_id: str) -> EncryptionKey:
        return self._keys.retrieve(key_id)

    def rotate_key(self, key_id: str) -> EncryptionKey:
        current = self._keys.retrieve(key_id)
        now = self._clock.now()
        expires_at = None
        if current.expires_at is not None:
            lifetime = current.expires_at - (current.created_at or now)
            expires_at = now + max(lifetime, timedelta(days=1))

        rotated = EncryptionKey(
            key_id,
            secrets.token_bytes(len(current.material)),
            algorithm=current.algorithm,
            version=current.version + 1,
            created_at=now,
            expires_at=expires_at,
        )
        self._keys.store(rotated)
        logger.warning(
            "encryption_key_rotated",
            extra={"key_id": key_id, "from_version": current.version, "to_version": rotated.version},
        )
        return rotated

    def find_expiring_keys(self, days: int = 7) -> list[str]:
        """Ids of keys that expire within ``days``, including ones already expired."""
        now = self._clock.now()
        return sorted(key.key_id for key in self._keys.all_keys() if key.expires_within(now, days))

    # -- encryption --------------------------------------------------------

    def encrypt_with_key(self, plaintext: str | bytes, key_id: str) -> EncryptedData:
        key = self._keys.retrieve(key_id)
        if key.is_expired(self._clock.now()):
            raise KeyManagementError.key_expired(key_id)
        encrypted = self._require_encryptor().encrypt(_as_bytes(plaintext), key)
        logger.debug("data_encrypted", extra={"key_id": key_id, "algorithm": key.algorithm})
        return EncryptedData(
            encrypted.ciphertext, encrypted.iv, encrypted.algorithm, tag=encrypted.tag, key_id=key_id
        )

    def decrypt_with_key(self, encrypted: EncryptedData, key_id: str) -> bytes:
        if encrypted.key_id is not None and encrypted.key_id != key_id:
            raise KeyManagementError.key_id_mismatch(encrypted.key_id, key_id)
        key = self._keys.retrieve(key_id)
        logger.debug("data_decrypted", extra={"key_id": key_id})
        return self._require_encryptor().decrypt(encrypted, key)

    def _require_encryptor(self) -> SymmetricEncryptor:
        if self._encryptor is None:
            raise KeyManagementError("No symmetric encryptor configured")
        return self._encryptor
