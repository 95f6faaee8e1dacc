"""
Tests for Anonymizer and the pseudonymization records.
"""

import base64
import hashlib
import hmac
import secrets
from datetime import UTC, datetime

import pytest

from nexus_modules.crypto.anonymizer import Anonymizer
from nexus_modules.crypto.exceptions import AnonymizationError, KeyNotFoundError
from nexus_modules.crypto.models import (
    AnonymizationMethod,
    EncryptedData,
    EncryptionKey,
    PseudonymizedData,
)

KEY = EncryptionKey("pii-key", b"k" * 32, version=2)
EMAIL = "alice@example.com"


class InMemoryKeyStorage:

    def __init__(self, *keys):
        self._keys = {key.key_id: key for key in keys}

    def retrieve(self, key_id):
        try:
            return self._keys[key_id]
        except KeyError:
            raise KeyNotFoundError(key_id) from None


class XorEncryptor:
    """SHA-256 keystream XOR standing in for a real cipher."""

    def encrypt(self, plaintext, key):
        iv = secrets.token_bytes(12)
        return EncryptedData(self._xor(plaintext, key, iv), iv, key.algorithm, tag=b"tag")

    def decrypt(self, encrypted, key):
        return self._xor(encrypted.ciphertext, key, encrypted.iv)

    @staticmethod
    def _xor(data, key, iv):
        stream = hashlib.sha256(key.material + iv).digest()
        while len(stream) < len(data):
            stream += hashlib.sha256(stream).digest()
        return bytes(a ^ b for a, b in zip(data, stream))


class FailingEncryptor:

    def encrypt(self, plaintext, key):
        raise RuntimeError("cipher offline")

    def decrypt(self, encrypted, key):
        raise RuntimeError("cipher offline")


@pytest.fixture
def anonymizer(deterministic_clock):
    return Anonymizer(InMemoryKeyStorage(KEY), XorEncryptor(), deterministic_clock)


class TestAnonymizationMethod:

    def test_properties(self):
        assert AnonymizationMethod.HASH_BASED.is_deterministic
        assert not AnonymizationMethod.SALTED_HASH.is_deterministic
        assert not any(method.is_reversible for method in AnonymizationMethod)
        assert AnonymizationMethod.HMAC_BASED.required_options == ("key_id",)
        assert AnonymizationMethod.K_ANONYMITY.required_options == ("hierarchy",)
        assert AnonymizationMethod.SUPPRESSION.required_options == ()
        assert AnonymizationMethod.SUPPRESSION.security_level == "maximum"


class TestHashing:

    def test_hash_based(self, anonymizer, deterministic_clock):
        result = anonymizer.anonymize(EMAIL, AnonymizationMethod.HASH_BASED)
        assert result.anonymized_value == hashlib.sha256(EMAIL.encode()).hexdigest()
        assert result.salt is None
        assert result.is_deterministic
        assert result.anonymized_at == deterministic_clock.now()
        assert result.metadata == {"security_level": "low", "is_deterministic": True}

    def test_salted_hash_is_default_and_random(self, anonymizer):
        first = anonymizer.anonymize(EMAIL)
        second = anonymizer.anonymize(EMAIL)
        assert first.method is AnonymizationMethod.SALTED_HASH
        assert len(first.salt) == 32
        assert first.salt != second.salt
        assert first.anonymized_value != second.anonymized_value

        salt, digest = first.anonymized_value.split(":")
        assert salt == first.salt
        assert digest == hashlib.sha256(bytes.fromhex(salt) + EMAIL.encode()).hexdigest()

    def test_hmac_based(self, anonymizer):
        result = anonymizer.anonymize(EMAIL, AnonymizationMethod.HMAC_BASED, {"key_id": "pii-key"})
        assert result.anonymized_value == hmac.new(KEY.material, EMAIL.encode(), hashlib.sha256).hexdigest()
        assert len(result.anonymized_value) == 64
        assert result.is_correlatable

    def test_hmac_requires_key_id(self, anonymizer):
        with pytest.raises(AnonymizationError) as exc_info:
            anonymizer.anonymize(EMAIL, AnonymizationMethod.HMAC_BASED)
        assert exc_info.value.reason == "missing_option"
        assert "key_id" in str(exc_info.value)

    def test_logs_exclude_data(self, anonymizer, captured_logs):
        anonymizer.anonymize(EMAIL, AnonymizationMethod.HASH_BASED)
        records = captured_logs()
        assert [r["method"] for r in records if r["message"] == "data_anonymized"] == ["hash_based"]
        assert all(EMAIL not in str(record) for record in records)


class TestKAnonymity:

    @pytest.mark.parametrize(
        "value,hierarchy,expected",
        [
            ("25", {"25": "20-30"}, "20-30"),
            ("25", {"20-29": "20s age group"}, "20s age group"),
            ("12345", {"123*": "123**"}, "123**"),
            ("99999", {"123*": "123**", "*": "other"}, "other"),
            ("99999", {"default": "unknown"}, "unknown"),
            ("99999", {"123*": "123**"}, "[GENERALIZED]"),
        ],
    )
    def test_generalization_order(self, anonymizer, value, hierarchy, expected):
        result = anonymizer.anonymize(value, AnonymizationMethod.K_ANONYMITY, {"hierarchy": hierarchy})
        assert result.anonymized_value == expected

    def test_exact_match_beats_wildcard(self, anonymizer):
        result = anonymizer.anonymize(
            "12345", AnonymizationMethod.K_ANONYMITY, {"hierarchy": {"*": "other", "12345": "exact"}}
        )
        assert result.anonymized_value == "exact"

    def test_hierarchy_required(self, anonymizer):
        with pytest.raises(AnonymizationError, match="hierarchy"):
            anonymizer.anonymize("25", AnonymizationMethod.K_ANONYMITY)

    def test_hierarchy_must_be_mapping(self, anonymizer):
        with pytest.raises(AnonymizationError) as exc_info:
            anonymizer.anonymize("25", AnonymizationMethod.K_ANONYMITY, {"hierarchy": ["20-30"]})
        assert exc_info.value.reason == "invalid_hierarchy"

    def test_suppression(self, anonymizer):
        result = anonymizer.anonymize(EMAIL, AnonymizationMethod.SUPPRESSION)
        assert result.anonymized_value == "[SUPPRESSED]"
        assert result.is_deterministic
        assert not result.is_correlatable


class TestPseudonymization:

    def test_reversible_with_key(self, anonymizer, deterministic_clock):
        result = anonymizer.pseudonymize(EMAIL, "pii-key")
        assert result.key_id == "pii-key"
        assert result.key_version == 2
        assert result.pseudonymized_at == deterministic_clock.now()
        assert result.metadata == {"algorithm": "aes-256-gcm"}
        assert EMAIL not in result.pseudonym
        assert anonymizer.de_pseudonymize(result) == EMAIL

    def test_unknown_key(self, anonymizer):
        with pytest.raises(AnonymizationError) as exc_info:
            anonymizer.pseudonymize(EMAIL, "missing")
        assert exc_info.value.reason == "pseudonymization_failed"
        assert isinstance(exc_info.value.__cause__, KeyNotFoundError)

    def test_encryptor_failure(self, deterministic_clock):
        anonymizer = Anonymizer(InMemoryKeyStorage(KEY), FailingEncryptor(), deterministic_clock)
        with pytest.raises(AnonymizationError, match="cipher offline"):
            anonymizer.pseudonymize(EMAIL, "pii-key")

    def test_invalid_base64(self, anonymizer, deterministic_clock):
        record = PseudonymizedData("not base64!!", "pii-key", 2, deterministic_clock.now())
        with pytest.raises(AnonymizationError, match="Invalid base64 encoding") as exc_info:
            anonymizer.de_pseudonymize(record)
        assert exc_info.value.reason == "de_pseudonymization_failed"

    def test_invalid_json(self, anonymizer, deterministic_clock):
        pseudonym = base64.b64encode(b"not json").decode()
        record = PseudonymizedData(pseudonym, "pii-key", 2, deterministic_clock.now())
        with pytest.raises(AnonymizationError, match="Invalid JSON format"):
            anonymizer.de_pseudonymize(record)

    def test_de_pseudonymize_unknown_key(self, anonymizer):
        record = anonymizer.pseudonymize(EMAIL, "pii-key")
        other = Anonymizer(InMemoryKeyStorage(), XorEncryptor())
        with pytest.raises(AnonymizationError) as exc_info:
            other.de_pseudonymize(record)
        assert exc_info.value.reason == "de_pseudonymization_failed"


class TestGeneratePseudonym:

    def test_stable_per_context(self, anonymizer):
        first = anonymizer.generate_pseudonym(EMAIL, "billing", "pii-key")
        assert first == anonymizer.generate_pseudonym(EMAIL, "billing", "pii-key")
        assert first != anonymizer.generate_pseudonym(EMAIL, "support", "pii-key")
        assert len(first) == 64
        expected = hmac.new(KEY.material, f"billing\x00{EMAIL}".encode(), hashlib.sha256).hexdigest()
        assert first == expected

    def test_unknown_key(self, anonymizer):
        with pytest.raises(AnonymizationError):
            anonymizer.generate_pseudonym(EMAIL, "billing", "missing")


class TestVerifyAnonymized:

    def test_matching_hash(self, anonymizer):
        anonymized = anonymizer.anonymize(EMAIL, AnonymizationMethod.HASH_BASED)
        assert anonymizer.verify_anonymized(EMAIL, anonymized)
        assert not anonymizer.verify_anonymized("bob@example.com", anonymized)

    def test_matching_hmac(self, anonymizer):
        options = {"key_id": "pii-key"}
        anonymized = anonymizer.anonymize(EMAIL, AnonymizationMethod.HMAC_BASED, options)
        assert anonymizer.verify_anonymized(EMAIL, anonymized, options)
        assert not anonymizer.verify_anonymized(EMAIL, anonymized, {"key_id": "missing"})

    def test_non_replayable_methods(self, anonymizer):
        salted = anonymizer.anonymize(EMAIL)
        suppressed = anonymizer.anonymize(EMAIL, AnonymizationMethod.SUPPRESSION)
        assert not anonymizer.verify_anonymized(EMAIL, salted)
        assert not anonymizer.verify_anonymized(EMAIL, suppressed)


class TestPseudonymizedData:

    @pytest.mark.parametrize(
        "version,current,max_behind,expected",
        [
            (3, 3, 1, False),
            (2, 3, 1, False),
            (1, 3, 1, True),
            (1, 3, 2, False),
            (1, 4, 2, True),
            (0, 5, 3, True),
        ],
    )
    def test_needs_key_rotation(self, version, current, max_behind, expected):
        record = PseudonymizedData("p", "k", version, datetime(2024, 1, 1, tzinfo=UTC))
        assert record.needs_key_rotation(current, max_behind) is expected

    def test_current_version(self):
        record = PseudonymizedData("p", "k", 2, datetime(2024, 1, 1, tzinfo=UTC))
        assert record.is_current_key_version(2)
        assert not record.is_current_key_version(3)
        assert not record.needs_key_rotation(3)

    def test_from_dict(self):
        record = PseudonymizedData.from_dict(
            {
                "pseudonym": "PSE_restored",
                "key_id": "key-002",
                "key_version": 5,
                "pseudonymized_at": "2024-06-20T14:00:00+00:00",
                "metadata": {"restored": True},
            }
        )
        assert record.key_version == 5
        assert record.pseudonymized_at == datetime(2024, 6, 20, 14, 0, tzinfo=UTC)
        assert record.metadata == {"restored": True}
        assert PseudonymizedData.from_dict(record.to_dict()) == record

    @pytest.mark.parametrize("missing", ["pseudonym", "key_id", "key_version", "pseudonymized_at"])
    def test_from_dict_missing_field(self, missing):
        data = {
            "pseudonym": "p",
            "key_id": "k",
            "key_version": 1,
            "pseudonymized_at": "2024-01-01T00:00:00+00:00",
        }
        del data[missing]
        with pytest.raises(ValueError, match=missing):
            PseudonymizedData.from_dict(data)

    def test_from_dict_bad_date(self):
        with pytest.raises(ValueError, match="ISO 8601"):
            PseudonymizedData.from_dict(
                {"pseudonym": "p", "key_id": "k", "key_version": 1, "pseudonymized_at": "invalid-date-format"}
            )

    def test_key_material_not_in_repr(self):
        assert "kkkk" not in repr(KEY)
