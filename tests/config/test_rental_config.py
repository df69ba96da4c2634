"""
rental_config: YAML defaults, override files, environment, and the bridge
into the kernel's ContractPolicy.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
import yaml

from rental_config import DEFAULTS_PATH, get_active_config
from rental_config.bridges import build_contract_policy
from rental_config.loader import load_yaml_file, merge, parse_config
from rental_kernel.exceptions import InvalidCurrencyError


def _write(tmp_path, data: dict, name: str = "override.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_defaults(self):
        config = get_active_config(environ={})
        assert config.source == str(DEFAULTS_PATH)
        assert config.contracts.contract_number_start == 15500
        assert config.contracts.default_vat_percentage == "5"
        assert config.contracts.default_currency == "AED"
        assert config.logging.level == "INFO"
        assert config.database.url.startswith("sqlite")

    def test_loaded_event_logged(self, captured_logs):
        config = get_active_config(environ={})
        loaded = [r for r in captured_logs() if r["message"] == "rental_config_loaded"]
        assert loaded[0]["checksum"] == config.checksum


class TestOverrides:
    def test_override_file_merges(self, tmp_path):
        path = _write(tmp_path, {"contracts": {"default_currency": "usd"}})
        config = get_active_config(path, environ={})
        assert config.source == str(path)
        assert config.contracts.default_currency == "USD"
        assert config.contracts.contract_number_start == 15500

    def test_override_path_from_environment(self, tmp_path):
        path = _write(tmp_path, {"logging": {"level": "debug"}})
        config = get_active_config(environ={"RENTAL_CONFIG_PATH": str(path)})
        assert config.logging.level == "DEBUG"

    def test_database_url_from_environment(self):
        config = get_active_config(environ={"DATABASE_URL": "postgresql://u:p@db/rental"})
        assert config.database.url == "postgresql://u:p@db/rental"

    def test_missing_override_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml", environ={})

    def test_merge_is_recursive(self):
        merged = merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1}


class TestParsing:
    @pytest.fixture
    def data(self):
        return load_yaml_file(DEFAULTS_PATH)

    def test_float_money_rejected(self, data):
        data["contracts"]["default_vat_percentage"] = 5.5
        with pytest.raises(ValueError, match="default_vat_percentage"):
            parse_config(data)

    def test_negative_deposit_rejected(self, data):
        data["contracts"]["default_security_deposit"] = "-1"
        with pytest.raises(ValueError):
            parse_config(data)

    def test_missing_key(self, data):
        del data["contracts"]["contract_number_start"]
        with pytest.raises(KeyError):
            parse_config(data)

    def test_missing_section(self, data):
        del data["database"]
        with pytest.raises(KeyError):
            parse_config(data)

    def test_bad_log_level(self, data):
        data["logging"]["level"] = "chatty"
        with pytest.raises(ValueError, match="logging.level"):
            parse_config(data)

    def test_bool_is_not_an_integer(self, data):
        data["database"]["pool_size"] = True
        with pytest.raises(ValueError):
            parse_config(data)

    def test_checksum_deterministic(self, data):
        assert parse_config(data).checksum == parse_config(dict(data)).checksum

    def test_checksum_tracks_content(self, data):
        before = parse_config(data).checksum
        data["contracts"]["contract_number_start"] = 20000
        assert parse_config(data).checksum != before


class TestBridge:
    def test_build_contract_policy(self, tmp_path):
        path = _write(
            tmp_path,
            {"contracts": {"default_vat_percentage": "7.5", "default_security_deposit": 300}},
        )
        policy = build_contract_policy(get_active_config(path, environ={}))
        assert policy.contract_number_start == 15500
        assert policy.default_vat_percentage == Decimal("7.5")
        assert policy.default_security_deposit == Decimal("300")
        assert policy.default_currency == "AED"

    def test_unknown_currency_rejected_by_kernel(self, tmp_path):
        path = _write(tmp_path, {"contracts": {"default_currency": "XXX"}})
        config = get_active_config(path, environ={})
        with pytest.raises(InvalidCurrencyError):
            build_contract_policy(config)
