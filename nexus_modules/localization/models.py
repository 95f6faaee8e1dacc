"""
Localization Models.

``Locale`` carries everything needed to format numbers, money and dates
for one language/region: separators, CLDR date and time patterns,
currency placement and symbols, and month and day-period names.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Self

from nexus_modules.localization.exceptions import InvalidLocaleCodeError

LOCALE_CODE_PATTERN = re.compile(r"^[a-z]{2}(_[A-Z]{2})?$")

ENGLISH_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class TextDirection(str, Enum):
    LTR = "ltr"
    RTL = "rtl"


class LocaleStatus(str, Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    DEPRECATED = "deprecated"


class CurrencyPosition(str, Enum):
    BEFORE = "before"
    AFTER = "after"
    BEFORE_SPACE = "before_space"
    AFTER_SPACE = "after_space"


def normalize_locale_code(code: str) -> str:
    """``en-us`` and ``EN_us`` both become ``en_US``."""
    language, _, region = code.strip().replace("-", "_").partition("_")
    return f"{language.lower()}_{region.upper()}" if region else language.lower()


@dataclass(frozen=True)
class Locale:
    code: str
    name: str
    native_name: str
    parent_code: str | None = None
    text_direction: TextDirection = TextDirection.LTR
    status: LocaleStatus = LocaleStatus.ACTIVE
    decimal_separator: str = "."
    thousands_separator: str = ","
    date_format: str = "yyyy-MM-dd"
    time_format: str = "HH:mm"
    datetime_format: str = "yyyy-MM-dd HH:mm"
    currency_position: CurrencyPosition = CurrencyPosition.BEFORE
    first_day_of_week: int = 1
    currency_symbols: Mapping[str, str] = field(default_factory=dict)
    month_names: tuple[str, ...] = ENGLISH_MONTHS
    day_periods: tuple[str, str] = ("AM", "PM")

    def __post_init__(self) -> None:
        if not LOCALE_CODE_PATTERN.match(self.code):
            raise InvalidLocaleCodeError(self.code)
        if self.parent_code is not None and not LOCALE_CODE_PATTERN.match(self.parent_code):
            raise InvalidLocaleCodeError(self.parent_code)
        if self.decimal_separator == self.thousands_separator:
            raise ValueError(f"Locale {self.code}: decimal and thousands separators must differ")
        if len(self.month_names) != 12:
            raise ValueError(f"Locale {self.code}: expected 12 month names, got {len(self.month_names)}")
        if not 1 <= self.first_day_of_week <= 7:
            raise ValueError(f"Locale {self.code}: first_day_of_week must be 1 (Monday) to 7 (Sunday)")
        object.__setattr__(self, "currency_symbols", MappingProxyType(dict(self.currency_symbols)))

    @classmethod
    def from_dict(cls, code: str, data: Mapping[str, Any]) -> Self:
        """Build a locale from a ``locales.yaml`` entry."""
        values = dict(data)
        for key, enum_type in (
            ("text_direction", TextDirection),
            ("status", LocaleStatus),
            ("currency_position", CurrencyPosition),
        ):
            if key in values:
                values[key] = enum_type(values[key])
        for key in ("month_names", "day_periods"):
            if key in values:
                values[key] = tuple(values[key])
        return cls(code=code, **values)

    @property
    def language(self) -> str:
        return self.code.split("_")[0]

    @property
    def region(self) -> str | None:
        _, _, region = self.code.partition("_")
        return region or None

    @property
    def is_active(self) -> bool:
        return self.status is LocaleStatus.ACTIVE

    @property
    def is_rtl(self) -> bool:
        return self.text_direction is TextDirection.RTL

    def currency_symbol(self, currency_code: str) -> str:
        return self.currency_symbols.get(currency_code, currency_code)
