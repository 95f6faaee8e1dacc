"""
Data Protection Module (``nexus_modules.crypto``).

Responsibility
--------------
Protects personal data at rest and on screen: format-preserving masking,
irreversible anonymization, reversible pseudonymization under a managed
key, and the hashing, HMAC and key lifecycle operations of ``CryptoManager``.

Architecture position
---------------------
**Modules layer** -- ``DataMasker`` is pure. ``Anonymizer`` depends on the
host's ``KeyStorage`` and ``SymmetricEncryptor`` through Protocols and
uses the standard library's ``hashlib``, ``hmac`` and ``secrets`` for
hashing and salts.

Invariants enforced
-------------------
* No anonymization method is reversible.
* Deterministic methods give the same output for the same input and options.
* Neither protected data nor key material appears in logs or error messages.

Failure modes
-------------
* ``ValueError`` -- national-ID masking through ``mask`` without a country.
* ``AnonymizationError`` -- missing options, bad hierarchy, or a failed
  (de)pseudonymization.
* ``KeyNotFoundError`` -- raised by key storage for unknown key ids.
* ``KeyManagementError`` -- expired key, key id mismatch or bad lengths.
"""

from nexus_modules.crypto.anonymizer import Anonymizer, KeyStorage, SymmetricEncryptor, generalize
from nexus_modules.crypto.exceptions import AnonymizationError, CryptoError, KeyManagementError, KeyNotFoundError
from nexus_modules.crypto.manager import CryptoManager, ManagedKeyStorage
from nexus_modules.crypto.masking import DataMasker
from nexus_modules.crypto.models import (
    AnonymizationMethod,
    AnonymizedData,
    EncryptedData,
    EncryptionKey,
    HashAlgorithm,
    HashResult,
    MaskingPattern,
    PseudonymizedData,
)

__all__ = [
    "AnonymizationError",
    "AnonymizationMethod",
    "AnonymizedData",
    "Anonymizer",
    "CryptoError",
    "CryptoManager",
    "DataMasker",
    "EncryptedData",
    "EncryptionKey",
    "HashAlgorithm",
    "HashResult",
    "KeyManagementError",
    "KeyNotFoundError",
    "KeyStorage",
    "ManagedKeyStorage",
    "MaskingPattern",
    "PseudonymizedData",
    "SymmetricEncryptor",
    "generalize",
]
