"""
Module: rental_kernel.domain.money
Responsibility: Money parsing, rounding, and currency validation.
    Centralizes precision and rounding so that the calculator, the
    services, and the DTOs use identical definitions.
Architecture position: Kernel > Domain.  Pure functions, zero I/O.

Invariants enforced:
    - ISO 4217 enforcement: validate_currency() rejects anything that is
      not a recognized 3-character currency code.
    - round_money() is the ONLY sanctioned rounding function for money.
      Currency rounding is half-up to 2 decimal places.
    - No floats: money_from_str() refuses float input.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from rental_kernel.exceptions import InvalidCurrencyError

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")


def money_from_str(value: Any) -> Decimal:
    """
    Create a Decimal money value from a string, int or Decimal.

    Company settings and legacy records carry amounts as strings
    ("315.00", "5"); floats are rejected outright.

    Raises:
        ValueError: If value is a float or cannot be parsed.
    """
    if isinstance(value, float):
        raise ValueError(f"Float money values are not accepted: {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the ONLY sanctioned rounding function for money values.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "0"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


ISO_4217_CURRENCIES: frozenset[str] = frozenset({
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    "AED", "BHD", "EGP", "INR", "JOD", "KWD", "LBP", "MAD", "OMR", "PKR",
    "QAR", "SAR", "TND", "TRY", "ZAR", "CNY", "HKD", "SGD", "SEK", "NOK",
    "DKK", "PLN", "CZK", "HUF", "RON", "BGN", "MXN", "BRL", "ARS", "CLP",
    "COP", "PEN", "KRW", "THB", "MYR", "IDR", "PHP", "VND", "NGN", "KES",
})


def validate_currency(currency: str) -> str:
    """
    Validate that a currency code is a supported ISO 4217 code.

    Returns:
        The validated currency code (uppercase).

    Raises:
        InvalidCurrencyError: If the currency code is not valid.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))

    normalized = currency.upper().strip()

    if len(normalized) != 3 or normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)

    return normalized
