"""Currency -- ISO 4217 registry and precision lookups."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str
    symbol: str | None = None

    @property
    def minor_unit(self) -> Decimal:
        """Smallest representable amount, e.g. ``0.01`` for USD."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (self.decimal_places - 1) + "1")

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


def _table(*rows: tuple[str, int, str, str | None]) -> dict[str, CurrencyInfo]:
    return {code: CurrencyInfo(code, places, name, symbol) for code, places, name, symbol in rows}


class CurrencyRegistry:
    """Registry of ISO 4217 currencies with their decimal places."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = _table(
        # Settlement and reporting currencies
        ("USD", 2, "US Dollar", "$"),
        ("EUR", 2, "Euro", "€"),
        ("GBP", 2, "Pound Sterling", "£"),
        ("CHF", 2, "Swiss Franc", "CHF"),
        ("CAD", 2, "Canadian Dollar", "CA$"),
        ("AUD", 2, "Australian Dollar", "A$"),
        ("NZD", 2, "New Zealand Dollar", "NZ$"),
        ("CNY", 2, "Yuan Renminbi", "¥"),
        ("HKD", 2, "Hong Kong Dollar", "HK$"),
        # Southeast Asia
        ("MYR", 2, "Malaysian Ringgit", "RM"),
        ("SGD", 2, "Singapore Dollar", "S$"),
        ("IDR", 2, "Rupiah", "Rp"),
        ("THB", 2, "Baht", "฿"),
        ("PHP", 2, "Philippine Peso", "₱"),
        ("BND", 2, "Brunei Dollar", "B$"),
        ("INR", 2, "Indian Rupee", "₹"),
        ("AED", 2, "UAE Dirham", "AED"),
        ("SAR", 2, "Saudi Riyal", "SAR"),
        ("ZAR", 2, "Rand", "R"),
        ("BRL", 2, "Brazilian Real", "R$"),
        ("MXN", 2, "Mexican Peso", "MX$"),
        ("SEK", 2, "Swedish Krona", "kr"),
        ("NOK", 2, "Norwegian Krone", "kr"),
        ("DKK", 2, "Danish Krone", "kr"),
        # Zero decimal currencies
        ("JPY", 0, "Yen", "¥"),
        ("KRW", 0, "Won", "₩"),
        ("VND", 0, "Dong", "₫"),
        ("CLP", 0, "Chilean Peso", None),
        ("ISK", 0, "Iceland Krona", None),
        ("XAF", 0, "CFA Franc BEAC", None),
        ("XOF", 0, "CFA Franc BCEAO", None),
        # Three decimal currencies
        ("BHD", 3, "Bahraini Dinar", None),
        ("JOD", 3, "Jordanian Dinar", None),
        ("KWD", 3, "Kuwaiti Dinar", None),
        ("OMR", 3, "Rial Omani", None),
        ("TND", 3, "Tunisian Dinar", None),
        # Four decimal currencies
        ("CLF", 4, "Unidad de Fomento", None),
    )

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is a known ISO 4217 code."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_symbol(cls, code: str) -> str | None:
        info = cls.get_info(code)
        return info.symbol if info else None

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()

        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")

        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")

        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES.keys())
