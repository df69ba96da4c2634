"""Read-only query selectors."""

from rental_kernel.selectors.base import BaseSelector
from rental_kernel.selectors.contract_selector import ContractSelector

__all__ = [
    "BaseSelector",
    "ContractSelector",
]
