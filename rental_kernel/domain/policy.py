"""
ContractPolicy -- kernel-side view of the contract configuration.

The kernel never reads configuration itself; ``rental_config.bridges``
builds this value from the loaded YAML and hands it to ContractService.
"""

from dataclasses import dataclass
from decimal import Decimal

from rental_kernel.domain.money import ZERO, money_from_str, validate_currency


@dataclass(frozen=True)
class ContractPolicy:
    """
    Fallbacks used when the collaborators supply nothing.

    contract_number_start: first contract number ever issued.
    default_vat_percentage: used when company settings carry no VAT rate.
    default_currency: used when company settings carry no currency.
    default_security_deposit: used when the vehicle record has none.
    """

    contract_number_start: int = 15500
    default_vat_percentage: Decimal = Decimal("5")
    default_currency: str = "AED"
    default_security_deposit: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.contract_number_start < 1:
            raise ValueError(
                f"contract_number_start must be positive, got {self.contract_number_start}"
            )
        object.__setattr__(
            self, "default_vat_percentage", money_from_str(self.default_vat_percentage)
        )
        if self.default_vat_percentage < 0:
            raise ValueError("default_vat_percentage must not be negative")
        object.__setattr__(
            self, "default_security_deposit", money_from_str(self.default_security_deposit)
        )
        if self.default_security_deposit < 0:
            raise ValueError("default_security_deposit must not be negative")
        object.__setattr__(self, "default_currency", validate_currency(self.default_currency))
