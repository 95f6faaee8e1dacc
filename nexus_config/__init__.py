"""
YAML configuration for the Nexus domain packages.

Each package owns a config dataclass with sensible defaults; a YAML file
overrides them per deployment:

    config = load_package_config("settings.yaml")
    aml = AmlMonitoringConfig.from_dict(config.section("aml"))
"""

from nexus_config.loader import (
    PackageConfiguration,
    compute_checksum,
    load_package_config,
    load_yaml_file,
    parse_package_config,
)

__all__ = [
    "PackageConfiguration",
    "compute_checksum",
    "load_package_config",
    "load_yaml_file",
    "parse_package_config",
]
