"""
Locale Repositories.

``LocaleRepository`` is the lookup the manager depends on.
``YamlLocaleRepository`` serves the locale definitions bundled in
``locales.yaml`` (or any file with the same layout): a top-level
``locales`` mapping from locale code to its fields.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from nexus_config.loader import load_yaml_file
from nexus_kernel.exceptions import ConfigurationError
from nexus_kernel.logging_config import get_logger
from nexus_modules.localization.models import Locale

logger = get_logger("modules.localization.repository")

BUNDLED_LOCALES = Path(__file__).with_name("locales.yaml")


class LocaleRepository(Protocol):
    def get(self, code: str) -> Locale | None: ...

    def all(self) -> Sequence[Locale]: ...


class YamlLocaleRepository:
    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path is not None else BUNDLED_LOCALES
        self._locales = self._load(self.path)

    def get(self, code: str) -> Locale | None:
        return self._locales.get(code)

    def all(self) -> list[Locale]:
        return list(self._locales.values())

    @staticmethod
    def _load(path: Path) -> dict[str, Locale]:
        data = load_yaml_file(path)
        entries = data.get("locales")
        if not isinstance(entries, dict):
            raise ConfigurationError(f"{path} must contain a 'locales' mapping", path=str(path))

        locales = {}
        for code, fields in entries.items():
            try:
                locales[code] = Locale.from_dict(code, fields or {})
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid locale '{code}' in {path}: {exc}", path=str(path)) from exc
        logger.info("locales_loaded", extra={"path": str(path), "locale_count": len(locales)})
        return locales
