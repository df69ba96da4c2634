"""
Config -> Kernel bridges.

Functions that turn a RentalConfig into kernel inputs.  They live here
because the kernel must never import rental_config.

Usage:
    config = get_active_config()
    engine = init_engine_from_config(config)
    policy = build_contract_policy(config)
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.engine import Engine

from rental_config.schema import RentalConfig
from rental_kernel.db.engine import init_engine_from_url
from rental_kernel.domain.policy import ContractPolicy
from rental_kernel.logging_config import configure_logging


def build_contract_policy(config: RentalConfig) -> ContractPolicy:
    """
    Raises:
        InvalidCurrencyError: default_currency is not a supported ISO 4217 code.
    """
    contracts = config.contracts
    return ContractPolicy(
        contract_number_start=contracts.contract_number_start,
        default_vat_percentage=Decimal(contracts.default_vat_percentage),
        default_currency=contracts.default_currency,
        default_security_deposit=Decimal(contracts.default_security_deposit),
    )


def init_engine_from_config(config: RentalConfig) -> Engine:
    """Configure logging at the configured level, then create the engine."""
    configure_logging(level=config.logging.level)
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
    )
