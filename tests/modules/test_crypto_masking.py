"""
Tests for DataMasker.
"""

import pytest

from nexus_modules.crypto.masking import DataMasker
from nexus_modules.crypto.models import MaskingPattern


@pytest.fixture
def masker():
    return DataMasker()


class TestEmail:

    @pytest.mark.parametrize(
        "email,expected",
        [
            ("john.doe@example.com", "jo******@example.com"),
            ("ab@x.com", "a*@x.com"),
            ("abcdefghijkl@corp.my", "abc*********@corp.my"),
        ],
    )
    def test_local_part_partially_visible(self, masker, email, expected):
        assert masker.mask_email(email) == expected

    def test_without_at_sign(self, masker):
        assert masker.mask_email("johndoe") == "j******"

    def test_custom_mask_char(self):
        assert DataMasker("#").mask_email("john.doe@example.com") == "jo######@example.com"

    def test_mask_char_must_be_single(self):
        with pytest.raises(ValueError):
            DataMasker("##")


class TestPhoneAndCard:

    def test_phone_keeps_last_four_and_format(self, masker):
        assert masker.mask_phone("+1 (555) 123-4567") == "+* (***) ***-4567"
        assert masker.mask_phone("0123456789") == "******6789"

    def test_short_phone_unchanged(self, masker):
        assert masker.mask_phone("1234") == "1234"

    @pytest.mark.parametrize(
        "card,expected",
        [
            ("4111111111111111", "411111******1111"),
            ("4111 1111 1111 1111", "4111 11** **** 1111"),
            ("4111-1111-1111-1111", "4111-11**-****-1111"),
            ("378282246310005", "378282*****0005"),
        ],
    )
    def test_card_shows_first_six_last_four(self, masker, card, expected):
        assert masker.mask_credit_card(card) == expected

    def test_non_numeric_card(self, masker):
        assert masker.mask_credit_card("4111abcd11111111") == "4111********1111"


class TestNationalId:

    @pytest.mark.parametrize(
        "value,country,expected",
        [
            ("900101-14-5678", "MY", "90****-**-5678"),
            ("900101145678", "my", "90****-**-5678"),
            ("123-45-6789", "US", "***-**-6789"),
            ("AB 12 34 56 C", "GB", "AB ** ** ** C"),
            ("ab123456c", "UK", "AB ** ** ** C"),
            ("S1234567A", "SG", "S****567A"),
            ("1234567890", "FR", "12******90"),
        ],
    )
    def test_country_formats(self, masker, value, country, expected):
        assert masker.mask_national_id(value, country) == expected

    def test_mask_requires_country(self, masker):
        with pytest.raises(ValueError, match="country"):
            masker.mask("123-45-6789", MaskingPattern.NATIONAL_ID)


class TestOtherPatterns:

    def test_iban_grouped(self, masker):
        assert masker.mask_iban("GB82 WEST 1234 5698 7654 32") == "GB82 **** **** **** **54 32"

    def test_short_iban(self, masker):
        assert masker.mask_iban("GB82WEST") == "GB****ST"

    def test_name(self, masker):
        assert masker.mask_name("John Michael Doe") == "J*** M****** D**"
        assert masker.mask_name("  Ali  ") == "A**"
        assert masker.mask_name("") == ""

    def test_address(self, masker):
        address = "123 Main Street\nApt 4B\nKuala Lumpur 50450"
        assert masker.mask_address(address) == "123********, Ap****, Kuala ********"

    @pytest.mark.parametrize(
        "dob,expected",
        [
            ("1990-05-15", "1990-**-**"),
            ("15/05/1990", "**/**/1990"),
            ("15-05-1990", "**-**-1990"),
            ("15.05.1990", "**.**.1990"),
            ("May 15, 1990", "********1990"),
        ],
    )
    def test_date_of_birth_keeps_year(self, masker, dob, expected):
        assert masker.mask_date_of_birth(dob) == expected

    def test_dispatch_by_pattern(self, masker):
        assert masker.mask("john.doe@example.com", MaskingPattern.EMAIL) == "jo******@example.com"
        assert masker.mask("anything", MaskingPattern.FULL_REDACTION) == "[REDACTED]"

    def test_redact_with_replacement(self, masker):
        assert masker.redact("secret", "[HIDDEN]") == "[HIDDEN]"


class TestCustomPattern:

    def test_template(self, masker):
        assert masker.mask_with_pattern("1234567890", "###-***-####") == "123-***-7890"

    def test_excess_data_masked(self, masker):
        assert masker.mask_with_pattern("abcdef", "##") == "ab****"

    def test_custom_char(self, masker):
        assert masker.mask_with_pattern("abcd", "#*#*", mask_char="x") == "axcx"


class TestAlreadyMasked:

    @pytest.mark.parametrize("value", ["****1234", "[redacted]", "card XXXX 1234"])
    def test_masked_values(self, masker, value):
        assert masker.is_already_masked(value)

    @pytest.mark.parametrize("value", ["john", "", "a*bcdefgh"])
    def test_clear_values(self, masker, value):
        assert not masker.is_already_masked(value)
