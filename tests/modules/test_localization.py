"""
Tests for locales, the locale formatter and LocalizationManager.
"""

from datetime import date, datetime, time
from decimal import Decimal

import pytest

from nexus_kernel.exceptions import ConfigurationError
from nexus_kernel.values import Money
from nexus_modules.localization import (
    InvalidLocaleCodeError,
    Locale,
    LocaleFormatter,
    LocaleNotActiveError,
    LocaleNotFoundError,
    LocaleStatus,
    LocalizationManager,
    NumberParseError,
    TextDirection,
    YamlLocaleRepository,
    normalize_locale_code,
)


class InMemoryLocaleRepository:
    def __init__(self, *locales):
        self.locales = {locale.code: locale for locale in locales}

    def get(self, code):
        return self.locales.get(code)

    def all(self):
        return list(self.locales.values())


@pytest.fixture(scope="module")
def bundled():
    return YamlLocaleRepository()


@pytest.fixture
def manager(bundled):
    return LocalizationManager(bundled)


def formatter_for(manager, code):
    return LocaleFormatter(manager.get_locale(code))


class TestLocale:

    def test_language_and_region(self):
        locale = Locale("ms_MY", "Malay (Malaysia)", "Bahasa Melayu")
        assert locale.language == "ms"
        assert locale.region == "MY"
        assert Locale("ms", "Malay", "Bahasa Melayu").region is None

    @pytest.mark.parametrize("code", ["EN", "en_us", "eng", "en-US", ""])
    def test_invalid_code(self, code):
        with pytest.raises(InvalidLocaleCodeError):
            Locale(code, "Name", "Name")

    def test_separators_must_differ(self):
        with pytest.raises(ValueError):
            Locale("xx", "X", "X", decimal_separator=",", thousands_separator=",")

    def test_symbols_are_read_only(self):
        locale = Locale("en", "English", "English", currency_symbols={"USD": "$"})
        with pytest.raises(TypeError):
            locale.currency_symbols["EUR"] = "€"
        assert locale.currency_symbol("EUR") == "EUR"

    @pytest.mark.parametrize("raw,expected", [("en-us", "en_US"), ("EN_gb", "en_GB"), (" MS ", "ms")])
    def test_normalize(self, raw, expected):
        assert normalize_locale_code(raw) == expected

    def test_bundled_rtl(self, bundled):
        arabic = bundled.get("ar_SA")
        assert arabic.text_direction is TextDirection.RTL
        assert arabic.is_rtl


class TestNumbers:

    def test_en_us(self, manager):
        fmt = formatter_for(manager, "en_US")
        assert fmt.format_number(Decimal("1234567.891")) == "1,234,567.89"
        assert fmt.format_number(Decimal("-0.005")) == "-0.01"
        assert fmt.format_number(42, decimals=0) == "42"

    def test_de_de(self, manager):
        assert formatter_for(manager, "de_DE").format_number("1234567.895") == "1.234.567,90"

    def test_fr_fr_narrow_space(self, manager):
        assert formatter_for(manager, "fr_FR").format_number("1234.5") == "1\u202f234,50"

    @pytest.mark.parametrize(
        "code,text,expected",
        [
            ("en_US", "1,234.50", Decimal("1234.50")),
            ("en_US", "-12", Decimal("-12")),
            ("de_DE", "1.234,5", Decimal("1234.5")),
            ("fr_FR", "1 234,5", Decimal("1234.5")),
            ("fr_FR", "1\u202f234,5", Decimal("1234.5")),
        ],
    )
    def test_parse(self, manager, code, text, expected):
        assert formatter_for(manager, code).parse_number(text) == expected

    @pytest.mark.parametrize("text", ["abc", "1.2.3", "", "12-"])
    def test_parse_rejects(self, manager, text):
        with pytest.raises(NumberParseError):
            formatter_for(manager, "en_US").parse_number(text)


class TestCurrency:

    def test_symbol_before(self, manager):
        fmt = formatter_for(manager, "en_US")
        assert fmt.format_currency(Money.of("1234.5", "USD")) == "$1,234.50"
        assert fmt.format_currency(Money.of("-1234.5", "USD")) == "-$1,234.50"
        assert fmt.format_currency(Money.of("99", "MYR")) == "RM99.00"

    def test_symbol_after_with_space(self, manager):
        assert formatter_for(manager, "de_DE").format_currency(Money.of("1234.5", "EUR")) == "1.234,50 €"

    def test_falls_back_to_iso_code(self, manager):
        assert formatter_for(manager, "en_GB").format_currency(Money.of("10", "MYR")) == "MYR10.00"

    def test_zero_decimal_currency(self, manager):
        assert formatter_for(manager, "ja_JP").format_currency(Money.of("1234", "JPY")) == "¥1,234"


class TestDates:

    def test_locale_patterns(self, manager):
        day = date(2024, 3, 5)
        assert formatter_for(manager, "en_US").format_date(day) == "03/05/2024"
        assert formatter_for(manager, "en_GB").format_date(day) == "05/03/2024"
        assert formatter_for(manager, "ja_JP").format_date(day) == "2024/03/05"

    def test_twelve_hour_clock(self, manager):
        fmt = formatter_for(manager, "en_US")
        assert fmt.format_time(time(14, 5)) == "2:05 PM"
        assert fmt.format_time(time(0, 30)) == "12:30 AM"
        assert formatter_for(manager, "ms_MY").format_time(time(14, 5)) == "2:05 PTG"

    def test_datetime(self, manager):
        moment = datetime(2024, 3, 5, 9, 7)
        assert formatter_for(manager, "de_DE").format_datetime(moment) == "05.03.2024, 09:07"
        assert formatter_for(manager, "en_US").format_datetime(moment) == "03/05/2024 9:07 AM"

    def test_month_names(self, manager):
        day = date(2024, 3, 5)
        assert formatter_for(manager, "ms_MY").apply_pattern("d MMMM yyyy", day) == "5 Mac 2024"
        assert formatter_for(manager, "en").apply_pattern("MMM d, yy", day) == "Mar 5, 24"
        assert formatter_for(manager, "de_DE").apply_pattern("d. MMMM", day) == "5. März"

    def test_literals(self, manager):
        fmt = formatter_for(manager, "en")
        assert fmt.apply_pattern("d 'de' MMMM", date(2024, 3, 5)) == "5 de March"
        assert fmt.apply_pattern("HH''mm''ss", time(14, 5, 9)) == "14'05'09"

    def test_time_token_needs_time(self, manager):
        with pytest.raises(ValueError):
            formatter_for(manager, "en").format_time(date(2024, 3, 5))


class TestLocalizationManager:

    def test_get_locale_normalizes(self, manager):
        assert manager.get_locale("en-us").code == "en_US"

    def test_unknown(self, manager):
        with pytest.raises(LocaleNotFoundError):
            manager.get_locale("pt_BR")

    def test_inactive_requires_opt_in(self, manager):
        with pytest.raises(LocaleNotActiveError) as exc:
            manager.get_locale("th_TH")
        assert exc.value.status == "draft"
        assert manager.get_locale("th_TH", include_inactive=True).status is LocaleStatus.DRAFT

    @pytest.mark.parametrize(
        "code,chain",
        [
            ("ms_MY", ["ms_MY", "ms", "en_US"]),
            ("en_GB", ["en_GB", "en", "en_US"]),
            ("en_US", ["en_US", "en"]),
            ("pt_BR", ["pt_BR", "pt", "en_US"]),
        ],
    )
    def test_fallback_chain(self, manager, code, chain):
        assert manager.fallback_chain(code) == chain

    def test_fallback_chain_survives_cycles(self):
        repo = InMemoryLocaleRepository(
            Locale("aa_AA", "A", "A", parent_code="bb_BB"),
            Locale("bb_BB", "B", "B", parent_code="aa_AA"),
        )
        assert LocalizationManager(repo).fallback_chain("aa_AA") == ["aa_AA", "bb_BB", "aa", "en_US"]

    def test_resolve_skips_inactive(self, manager):
        assert manager.resolve("ms_SG").code == "ms"
        assert manager.resolve("th_TH").code == "en_US"
        assert manager.resolve("pt-BR").code == "en_US"

    def test_resolve_without_any_active(self):
        repo = InMemoryLocaleRepository(Locale("xx", "X", "X", status=LocaleStatus.DRAFT))
        with pytest.raises(LocaleNotFoundError):
            LocalizationManager(repo).resolve("xx")

    def test_formatter(self, manager):
        assert manager.formatter("ms-my").locale.code == "ms_MY"
        assert manager.formatter().locale.code == "en_US"

    def test_active_locales(self, manager):
        codes = [locale.code for locale in manager.active_locales()]
        assert codes == sorted(codes)
        assert "th_TH" not in codes
        assert "ms_SG" not in codes
        assert {"en_US", "ms_MY", "de_DE"} <= set(codes)


class TestYamlLocaleRepository:

    def test_custom_file(self, tmp_path):
        path = tmp_path / "locales.yaml"
        path.write_text("locales:\n  id_ID:\n    name: Indonesian\n    native_name: Bahasa Indonesia\n")
        repo = YamlLocaleRepository(path)
        assert repo.get("id_ID").native_name == "Bahasa Indonesia"

    def test_requires_locales_mapping(self, tmp_path):
        path = tmp_path / "locales.yaml"
        path.write_text("locales:\n  - en\n")
        with pytest.raises(ConfigurationError):
            YamlLocaleRepository(path)

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "locales.yaml"
        path.write_text("locales:\n  EN:\n    name: English\n    native_name: English\n")
        with pytest.raises(ConfigurationError, match="EN"):
            YamlLocaleRepository(path)
