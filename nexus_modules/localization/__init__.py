"""
Localization Module (``nexus_modules.localization``).

Responsibility
--------------
Locale definitions, locale fallback and locale-aware formatting of
numbers, money, dates and times.

Architecture position
---------------------
**Modules layer** -- ``LocalizationManager`` over a ``LocaleRepository``;
locale seed data ships as ``locales.yaml``.
"""

from nexus_modules.localization.exceptions import (
    InvalidLocaleCodeError,
    LocaleNotActiveError,
    LocaleNotFoundError,
    LocalizationError,
    NumberParseError,
)
from nexus_modules.localization.formatter import LocaleFormatter
from nexus_modules.localization.models import (
    CurrencyPosition,
    Locale,
    LocaleStatus,
    TextDirection,
    normalize_locale_code,
)
from nexus_modules.localization.repository import LocaleRepository, YamlLocaleRepository
from nexus_modules.localization.service import DEFAULT_LOCALE, LocalizationManager

__all__ = [
    "CurrencyPosition",
    "DEFAULT_LOCALE",
    "InvalidLocaleCodeError",
    "Locale",
    "LocaleFormatter",
    "LocaleNotActiveError",
    "LocaleNotFoundError",
    "LocaleRepository",
    "LocaleStatus",
    "LocalizationError",
    "LocalizationManager",
    "NumberParseError",
    "TextDirection",
    "YamlLocaleRepository",
    "normalize_locale_code",
]
