"""
rental_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``rental_kernel``.  The kernel MUST NEVER
    import from ``rental_config``; ``rental_config.bridges`` translates the
    loaded configuration into kernel inputs (ContractPolicy, engine).

Invariants enforced:
    - Layering: packaged ``defaults.yaml`` < override file < environment.
    - Deterministic checksum: identical merged data yields the same
      ``RentalConfig.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the override path does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` / ``ValueError`` -- missing keys or wrong types.

Audit relevance:
    Every successful call emits one ``rental_config_loaded`` log entry
    with the source path and checksum, tying contract numbering and
    default VAT/currency back to an exact configuration.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from rental_config.loader import apply_env_overrides, load_yaml_file, merge, parse_config
from rental_config.schema import (
    ContractsConfig,
    DatabaseConfig,
    LoggingConfig,
    RentalConfig,
)
from rental_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> RentalConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override YAML file.  Defaults to ``RENTAL_CONFIG_PATH``
            from the environment; no override when neither is set.
        environ: Environment mapping.  Defaults to ``os.environ``.

    Raises:
        FileNotFoundError: If the override file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value has the wrong type.
    """
    env = os.environ if environ is None else environ
    data = load_yaml_file(DEFAULTS_PATH)

    override = config_path or env.get("RENTAL_CONFIG_PATH")
    source = str(DEFAULTS_PATH)
    if override:
        override_path = Path(override)
        data = merge(data, load_yaml_file(override_path))
        source = str(override_path)

    data = apply_env_overrides(data, env)
    config = parse_config(data, source=source)

    _logger.info(
        "rental_config_loaded",
        extra={
            "source": source,
            "checksum": config.checksum,
            "contract_number_start": config.contracts.contract_number_start,
            "default_currency": config.contracts.default_currency,
        },
    )
    return config


__all__ = [
    "ContractsConfig",
    "DatabaseConfig",
    "DEFAULTS_PATH",
    "LoggingConfig",
    "RentalConfig",
    "get_active_config",
]
