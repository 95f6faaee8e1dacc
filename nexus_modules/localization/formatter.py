"""
Locale Formatter (``nexus_modules.localization.formatter``).

Formats and parses numbers, money and dates for a single ``Locale``.

Date and time patterns use the CLDR tokens ``yyyy yy MMMM MMM MM M dd d
HH H hh h mm ss a``; text inside single quotes is copied literally and
``''`` is a literal quote.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from nexus_kernel.values import Money
from nexus_modules.localization.exceptions import NumberParseError
from nexus_modules.localization.models import CurrencyPosition, Locale

_TOKEN_PATTERN = re.compile(r"'[^']*'|yyyy|yy|MMMM|MMM|MM|M|dd|d|HH|H|hh|h|mm|ss|a")
_PLAIN_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


def _group_digits(digits: str, separator: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return separator.join(groups)


class LocaleFormatter:
    def __init__(self, locale: Locale):
        self.locale = locale

    # -- numbers -------------------------------------------------------------

    def format_number(self, value: Decimal | int | str, decimals: int = 2) -> str:
        """Round half-up to ``decimals`` places and apply the locale's separators."""
        amount = Decimal(value).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
        negative = amount < 0
        integral, _, fraction = f"{abs(amount):f}".partition(".")
        text = _group_digits(integral, self.locale.thousands_separator)
        if fraction:
            text = f"{text}{self.locale.decimal_separator}{fraction}"
        return f"-{text}" if negative else text

    def format_currency(self, money: Money) -> str:
        """Format ``money`` to its currency's minor unit with the locale's symbol placement."""
        number = self.format_number(abs(money.amount), money.currency.decimal_places)
        symbol = self.locale.currency_symbol(money.currency.code)
        position = self.locale.currency_position
        if position is CurrencyPosition.BEFORE:
            text = f"{symbol}{number}"
        elif position is CurrencyPosition.BEFORE_SPACE:
            text = f"{symbol} {number}"
        elif position is CurrencyPosition.AFTER:
            text = f"{number}{symbol}"
        else:
            text = f"{number} {symbol}"
        return f"-{text}" if money.amount < 0 else text

    def parse_number(self, text: str) -> Decimal:
        """Parse a number written in this locale's notation."""
        cleaned = text.strip()
        for separator in (self.locale.thousands_separator, " ", "\u00a0", "\u202f"):
            cleaned = cleaned.replace(separator, "")
        cleaned = cleaned.replace(self.locale.decimal_separator, ".")
        if not _PLAIN_NUMBER.match(cleaned):
            raise NumberParseError(text, self.locale.code)
        try:
            return Decimal(cleaned)
        except InvalidOperation as exc:
            raise NumberParseError(text, self.locale.code) from exc

    # -- dates ---------------------------------------------------------------

    def format_date(self, value: date) -> str:
        return self.apply_pattern(self.locale.date_format, value)

    def format_time(self, value: time | datetime) -> str:
        return self.apply_pattern(self.locale.time_format, value)

    def format_datetime(self, value: datetime) -> str:
        return self.apply_pattern(self.locale.datetime_format, value)

    def apply_pattern(self, pattern: str, value: date | time | datetime) -> str:
        return _TOKEN_PATTERN.sub(lambda match: self._token(match.group(0), value), pattern)

    def _token(self, token: str, value: date | time | datetime) -> str:
        if token.startswith("'"):
            return token[1:-1] or "'"
        if token[0] in "yMd":
            return self._date_token(token, value)
        return self._time_token(token, value)

    def _date_token(self, token: str, value: date | time | datetime) -> str:
        if not isinstance(value, date):
            raise ValueError(f"Pattern token {token!r} needs a date, got {type(value).__name__}")
        if token == "yyyy":
            return f"{value.year:04d}"
        if token == "yy":
            return f"{value.year % 100:02d}"
        if token == "MMMM":
            return self.locale.month_names[value.month - 1]
        if token == "MMM":
            return self.locale.month_names[value.month - 1][:3]
        if token == "MM":
            return f"{value.month:02d}"
        if token == "M":
            return str(value.month)
        if token == "dd":
            return f"{value.day:02d}"
        return str(value.day)

    def _time_token(self, token: str, value: date | time | datetime) -> str:
        if not isinstance(value, (time, datetime)):
            raise ValueError(f"Pattern token {token!r} needs a time, got {type(value).__name__}")
        hour12 = value.hour % 12 or 12
        if token == "HH":
            return f"{value.hour:02d}"
        if token == "H":
            return str(value.hour)
        if token == "hh":
            return f"{hour12:02d}"
        if token == "h":
            return str(hour12)
        if token == "mm":
            return f"{value.minute:02d}"
        if token == "ss":
            return f"{value.second:02d}"
        return self.locale.day_periods[0 if value.hour < 12 else 1]
