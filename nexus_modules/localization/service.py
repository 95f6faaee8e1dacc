"""
Localization Manager (``nexus_modules.localization.service``).

Responsibility
--------------
Locale lookup, fallback resolution and formatter construction.

Architecture position
---------------------
**Modules layer** -- reads locales through ``LocaleRepository``; the
bundled ``YamlLocaleRepository`` is the default.

Invariants enforced
-------------------
* ``get_locale`` never returns a draft or deprecated locale unless the
  caller passes ``include_inactive=True``.
* Fallback chains contain each code at most once and always end with
  the default locale, so parent cycles in the data cannot loop.

Failure modes
-------------
* ``LocaleNotFoundError`` -- unknown code, or no active locale anywhere
  in the fallback chain.
* ``LocaleNotActiveError`` -- locale exists but is not active.
"""

from __future__ import annotations

from nexus_kernel.logging_config import get_logger
from nexus_modules.localization.exceptions import LocaleNotActiveError, LocaleNotFoundError
from nexus_modules.localization.formatter import LocaleFormatter
from nexus_modules.localization.models import Locale, normalize_locale_code
from nexus_modules.localization.repository import LocaleRepository, YamlLocaleRepository

logger = get_logger("modules.localization.service")

DEFAULT_LOCALE = "en_US"


class LocalizationManager:
    """
    Locale access for the rest of the platform.

    Contract
    --------
    * Codes are normalized first, so ``en-us`` finds ``en_US``.
    * ``resolve`` never raises for a code whose chain reaches an active
      default locale.
    """

    def __init__(self, repository: LocaleRepository | None = None, default_code: str = DEFAULT_LOCALE):
        self._repository = repository or YamlLocaleRepository()
        self.default_code = normalize_locale_code(default_code)

    def get_locale(self, code: str, *, include_inactive: bool = False) -> Locale:
        normalized = normalize_locale_code(code)
        locale = self._repository.get(normalized)
        if locale is None:
            raise LocaleNotFoundError(normalized)
        if not include_inactive and not locale.is_active:
            raise LocaleNotActiveError(normalized, locale.status.value)
        return locale

    def fallback_chain(self, code: str) -> list[str]:
        """
        Candidate codes in lookup order.

        The requested code, then its ``parent_code`` ancestry, then the
        bare language, then the default locale. Unknown codes stay in
        the chain; ``resolve`` skips them.
        """
        normalized = normalize_locale_code(code)
        chain: list[str] = []

        current: str | None = normalized
        while current is not None and current not in chain:
            chain.append(current)
            locale = self._repository.get(current)
            current = locale.parent_code if locale is not None else None

        for candidate in (normalized.split("_")[0], self.default_code):
            if candidate not in chain:
                chain.append(candidate)
        return chain

    def resolve(self, code: str) -> Locale:
        """The first active locale in ``fallback_chain(code)``."""
        chain = self.fallback_chain(code)
        for candidate in chain:
            locale = self._repository.get(candidate)
            if locale is not None and locale.is_active:
                if candidate != chain[0]:
                    logger.debug(
                        "locale_fallback_used",
                        extra={"requested_locale": chain[0], "resolved_locale": candidate},
                    )
                return locale
        logger.warning("locale_unresolved", extra={"requested_locale": chain[0], "chain": chain})
        raise LocaleNotFoundError(chain[0])

    def formatter(self, code: str | None = None) -> LocaleFormatter:
        return LocaleFormatter(self.resolve(code or self.default_code))

    def active_locales(self) -> list[Locale]:
        active = [locale for locale in self._repository.all() if locale.is_active]
        return sorted(active, key=lambda locale: locale.code)
