"""
Configuration Loader (``nexus_config.loader``).

Responsibility
--------------
Loads YAML configuration files and exposes them as a frozen
``PackageConfiguration`` whose sections feed the ``from_dict``
constructors of the per-package config dataclasses
(``AmlMonitoringConfig``, ``DepreciationConfig``, ``DisbursementConfig``,
``PayrollStatutoryConfig``, ``ReportingConfig``).

Architecture position
---------------------
**Config layer** -- infrastructure tooling. It has no dependency on
``nexus_modules``; packages pull their own section out by name.

Invariants enforced
-------------------
* The top level of a configuration file is a mapping.
* Every section is a mapping.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong shape  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from nexus_kernel.exceptions import ConfigurationError
from nexus_kernel.logging_config import get_logger

logger = get_logger("config.loader")

KNOWN_SECTIONS = (
    "aml",
    "fixed_assets",
    "payment",
    "payroll",
    "reporting",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Preconditions:
        - ``path`` must point to an existing, readable YAML file.
    Postconditions:
        - Returns a ``dict`` (empty if the YAML document is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain a mapping, got {type(data).__name__}",
            path=str(path),
        )
    return data


def compute_checksum(data: Mapping[str, Any]) -> str:
    """SHA-256 over canonical JSON (sorted keys, no whitespace)."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class PackageConfiguration:
    """Parsed configuration file, one read-only mapping per section."""

    sections: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    source: str | None = None
    checksum: str = ""

    def section(self, name: str) -> dict[str, Any]:
        """Copy of the named section, or an empty dict if absent."""
        return dict(self.sections.get(name, {}))

    def has_section(self, name: str) -> bool:
        return name in self.sections


def parse_package_config(data: Mapping[str, Any], source: str | None = None) -> PackageConfiguration:
    """Validate the shape of already-loaded configuration data."""
    sections: dict[str, Mapping[str, Any]] = {}
    for name, body in data.items():
        if body is None:
            body = {}
        if not isinstance(body, dict):
            raise ConfigurationError(
                f"Configuration section '{name}' must be a mapping",
                section=name,
            )
        if name not in KNOWN_SECTIONS:
            logger.warning("config_unknown_section", extra={"section": name, "source": source})
        sections[name] = MappingProxyType(dict(body))

    config = PackageConfiguration(
        sections=MappingProxyType(sections),
        source=source,
        checksum=compute_checksum(data),
    )
    logger.info(
        "package_config_loaded",
        extra={"source": source, "sections": sorted(sections), "checksum": config.checksum},
    )
    return config


def load_package_config(path: Path | str) -> PackageConfiguration:
    """Load and parse a configuration file."""
    path = Path(path)
    return parse_package_config(load_yaml_file(path), source=str(path))
