"""
RentalConfig schema.

Typed, frozen view of the merged YAML configuration.  The loader parses
raw dicts into these types; nothing else constructs them from YAML.
"""

from __future__ import annotations

from dataclasses import dataclass

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ValueError(
                f"logging.level must be one of {', '.join(_LOG_LEVELS)}, got {self.level!r}"
            )


@dataclass(frozen=True)
class ContractsConfig:
    """Contract numbering and the fallbacks for missing collaborator data.

    Money and percentages stay strings here; the bridge converts them to
    Decimal when building the kernel's ContractPolicy.
    """

    contract_number_start: int
    default_vat_percentage: str
    default_currency: str
    default_security_deposit: str = "0.00"


@dataclass(frozen=True)
class RentalConfig:
    """The complete runtime configuration."""

    database: DatabaseConfig
    logging: LoggingConfig
    contracts: ContractsConfig
    checksum: str = ""
    source: str = ""
