"""
Tests for configuration file loading (nexus_config.loader).

Covers:
- load_yaml_file -- mapping enforcement, empty documents, missing files
- parse_package_config -- section shape validation and unknown sections
- compute_checksum -- determinism and key-order independence
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType

import pytest
import yaml

from nexus_config.loader import (
    KNOWN_SECTIONS,
    PackageConfiguration,
    compute_checksum,
    load_package_config,
    load_yaml_file,
    parse_package_config,
)
from nexus_kernel.exceptions import ConfigurationError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "nexus.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadYamlFile:

    def test_mapping_loaded(self, tmp_path):
        path = _write(tmp_path, "aml:\n  dormancy_days: 90\n")
        assert load_yaml_file(path) == {"aml": {"dormancy_days": 90}}

    def test_empty_document(self, tmp_path):
        assert load_yaml_file(_write(tmp_path, "")) == {}

    def test_list_document_rejected(self, tmp_path):
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_yaml_file(_write(tmp_path, "- a\n- b\n"))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(_write(tmp_path, "aml: [unclosed\n"))


class TestParsePackageConfig:

    def test_sections_read_only(self):
        config = parse_package_config({"payment": {"currency": "MYR"}})
        assert isinstance(config.sections["payment"], MappingProxyType)
        with pytest.raises(TypeError):
            config.sections["payment"]["currency"] = "USD"

    def test_section_returns_copy(self):
        config = parse_package_config({"payment": {"currency": "MYR"}})
        section = config.section("payment")
        section["currency"] = "USD"
        assert config.section("payment") == {"currency": "MYR"}

    def test_absent_section_is_empty(self):
        config = parse_package_config({})
        assert config.section("payroll") == {}
        assert not config.has_section("payroll")

    def test_null_section_becomes_empty(self):
        config = parse_package_config({"reporting": None})
        assert config.has_section("reporting")
        assert config.section("reporting") == {}

    def test_non_mapping_section_rejected(self):
        with pytest.raises(ConfigurationError) as exc:
            parse_package_config({"aml": [1, 2]})
        assert exc.value.context["section"] == "aml"

    def test_unknown_section_warns(self, captured_logs):
        parse_package_config({"ledger": {"x": 1}}, source="inline")
        warnings = [r for r in captured_logs() if r["message"] == "config_unknown_section"]
        assert warnings
        assert warnings[0]["section"] == "ledger"

    def test_known_sections(self):
        assert set(KNOWN_SECTIONS) == {"aml", "fixed_assets", "payment", "payroll", "reporting"}

    def test_checksum_recorded(self):
        data = {"aml": {"dormancy_days": 90}}
        assert parse_package_config(data).checksum == compute_checksum(data)


class TestLoadPackageConfig:

    def test_source_is_path(self, tmp_path):
        path = _write(tmp_path, "fixed_assets:\n  bonus_rate: '0.6'\n")
        config = load_package_config(path)
        assert isinstance(config, PackageConfiguration)
        assert config.source == str(path)
        assert config.section("fixed_assets") == {"bonus_rate": "0.6"}

    def test_accepts_str_path(self, tmp_path):
        path = _write(tmp_path, "payroll: {}\n")
        assert load_package_config(str(path)).has_section("payroll")


class TestComputeChecksum:

    def test_key_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_content_sensitive(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_sha256_hex(self):
        checksum = compute_checksum({"a": 1})
        assert len(checksum) == 64
        int(checksum, 16)
