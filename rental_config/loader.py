"""
Configuration loader (``rental_config.loader``).

Responsibility
--------------
Reads YAML files with ``yaml.safe_load``, deep-merges an override file
over the packaged defaults, applies environment overrides, and parses
the result into ``rental_config.schema`` dataclasses.  Callers use
``rental_config.get_active_config()``; this module is its machinery.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; a key that is present with the wrong type is never replaced
  by a default.
* ``compute_checksum`` is deterministic for identical merged data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing section or required key  -> ``KeyError``.
* Wrong value type  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from rental_config.schema import (
    ContractsConfig,
    DatabaseConfig,
    LoggingConfig,
    RentalConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; ``override`` wins on scalar conflicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """``DATABASE_URL`` replaces ``database.url``."""
    url = environ.get("DATABASE_URL")
    if url:
        data = merge(data, {"database": {"url": url}})
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data[name]
    if not isinstance(section, Mapping):
        raise ValueError(f"{name}: must be a mapping, got {type(section).__name__}")
    return section


def _bool(section: str, key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{section}.{key}: expected a boolean, got {value!r}")
    return value


def _int(section: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{section}.{key}: expected an integer, got {value!r}")
    return value


def _decimal_str(section: str, key: str, value: Any) -> str:
    """Decimal-valued settings are written as strings or ints, never floats."""
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"{section}.{key}: expected a decimal string, got {value!r}")
    try:
        parsed = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"{section}.{key}: not a decimal: {value!r}") from exc
    if not parsed.is_finite() or parsed < 0:
        raise ValueError(f"{section}.{key}: must be a non-negative decimal, got {value!r}")
    return str(value).strip()


def parse_database(data: Mapping[str, Any]) -> DatabaseConfig:
    if not isinstance(data["url"], str) or not data["url"]:
        raise ValueError(f"database.url: expected a non-empty string, got {data['url']!r}")
    return DatabaseConfig(
        url=data["url"],
        echo=_bool("database", "echo", data.get("echo", False)),
        pool_size=_int("database", "pool_size", data.get("pool_size", 5)),
        max_overflow=_int("database", "max_overflow", data.get("max_overflow", 10)),
    )


def parse_logging(data: Mapping[str, Any]) -> LoggingConfig:
    level = data.get("level", "INFO")
    if not isinstance(level, str):
        raise ValueError(f"logging.level: expected a string, got {level!r}")
    return LoggingConfig(level=level.upper())


def parse_contracts(data: Mapping[str, Any]) -> ContractsConfig:
    start = _int("contracts", "contract_number_start", data["contract_number_start"])
    if start < 1:
        raise ValueError(f"contracts.contract_number_start: must be positive, got {start}")
    currency = data["default_currency"]
    if not isinstance(currency, str) or len(currency.strip()) != 3:
        raise ValueError(
            f"contracts.default_currency: expected a 3-letter code, got {currency!r}"
        )
    return ContractsConfig(
        contract_number_start=start,
        default_vat_percentage=_decimal_str(
            "contracts", "default_vat_percentage", data["default_vat_percentage"]
        ),
        default_currency=currency.strip().upper(),
        default_security_deposit=_decimal_str(
            "contracts",
            "default_security_deposit",
            data.get("default_security_deposit", "0.00"),
        ),
    )


def parse_config(data: Mapping[str, Any], source: str = "") -> RentalConfig:
    """
    Parse a merged configuration dict.

    Raises:
        KeyError: A required section or key is missing.
        ValueError: A value has the wrong type or range.
    """
    return RentalConfig(
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        contracts=parse_contracts(_section(data, "contracts")),
        checksum=compute_checksum(dict(data)),
        source=source,
    )
