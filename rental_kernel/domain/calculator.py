"""
Module: rental_kernel.domain.calculator
Responsibility:
    Pure functions deriving every monetary field of a rental contract:
    rental days, subtotal, VAT, total, extra-kilometre charge, total extra
    charges and outstanding balance.  These are the ONLY producers of
    derived money; caller-submitted values for these fields are never used.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    ContractService on create, on every draft edit, and at complete.

Invariants enforced:
    - All money is Decimal; float input is rejected.
    - Currency rounding is half-up to 2 decimal places via round_money().
    - compute_total(subtotal, vat) == subtotal + vat exactly, because both
      inputs are already 2-decimal values.
    - compute_outstanding_balance() does not clamp: a negative result is a
      credit owed to the customer.

Failure modes:
    - ContractValidationError for a missing rate, negative rate, or a VAT
      percentage that is not a non-negative decimal.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from rental_kernel.domain.money import ZERO, money_from_str, round_money
from rental_kernel.exceptions import ContractValidationError

_SECONDS_PER_DAY = 86400

# Billing period length in days, per rental type
_PERIOD_DAYS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}

# Contract column holding the rate for each rental type
RATE_FIELDS = {
    "daily": "daily_rate",
    "weekly": "weekly_rate",
    "monthly": "monthly_rate",
}


def _rental_type_key(rental_type: str) -> str:
    key = str(getattr(rental_type, "value", rental_type))
    if key not in _PERIOD_DAYS:
        raise ContractValidationError("rental_type", f"unknown rental type {key!r}")
    return key


@dataclass(frozen=True)
class RentalCharges:
    """Money derived from rental terms."""

    total_days: int
    subtotal: Decimal
    vat_percentage: Decimal
    vat_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class ExtraKmResult:
    driven: int
    allowed: int | None
    extra_km_driven: int
    extra_km_charge: Decimal


def compute_total_days(start: date | datetime, end: date | datetime) -> int:
    """
    Number of billable days: ``max(1, ceil((end - start) / 1 day))``.

    A same-day rental and a partial day both bill as one day.
    """
    delta = end - start
    days = math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)
    return max(1, days)


def billing_periods(rental_type: str, total_days: int) -> int:
    """Number of rate units billed: days, started weeks, or started 30-day months."""
    period = _PERIOD_DAYS[_rental_type_key(rental_type)]
    return math.ceil(total_days / period)


def rate_for(
    rental_type: str,
    daily_rate: Decimal | None,
    weekly_rate: Decimal | None,
    monthly_rate: Decimal | None,
) -> Decimal:
    """
    Pick the rate that applies to ``rental_type``.

    Raises:
        ContractValidationError: The rate for the rental type is missing
            or negative.
    """
    key = _rental_type_key(rental_type)
    rate = {"daily": daily_rate, "weekly": weekly_rate, "monthly": monthly_rate}[key]
    field = RATE_FIELDS[key]
    if rate is None:
        raise ContractValidationError(field, f"required for {key} rentals")
    try:
        rate = money_from_str(rate)
    except ValueError as exc:
        raise ContractValidationError(field, str(exc)) from exc
    if rate < 0:
        raise ContractValidationError(field, "must not be negative")
    return rate


def compute_subtotal(rental_type: str, rate: Decimal, total_days: int) -> Decimal:
    """
    Rental amount before VAT.

    daily   -> rate * total_days
    weekly  -> rate * ceil(total_days / 7)
    monthly -> rate * ceil(total_days / 30)
    """
    return round_money(money_from_str(rate) * billing_periods(rental_type, total_days))


def compute_vat(subtotal: Decimal, vat_percentage: Decimal) -> Decimal:
    """VAT on the subtotal, half-up to 2 decimals."""
    return round_money(money_from_str(subtotal) * money_from_str(vat_percentage) / Decimal(100))


def compute_total(subtotal: Decimal, vat_amount: Decimal) -> Decimal:
    return round_money(money_from_str(subtotal) + money_from_str(vat_amount))


def resolve_vat_percentage(configured: str | Decimal | None, default: Decimal) -> Decimal:
    """
    Interpret the company's string-encoded VAT percentage.

    Unset or blank falls back to ``default``.

    Raises:
        ContractValidationError: The configured value is not a
            non-negative decimal.
    """
    if configured is None or (isinstance(configured, str) and not configured.strip()):
        return default
    try:
        pct = money_from_str(configured)
    except ValueError as exc:
        raise ContractValidationError("vat_percentage", str(exc)) from exc
    if not pct.is_finite() or pct < 0:
        raise ContractValidationError("vat_percentage", f"not a valid percentage: {configured!r}")
    return pct


def compute_rental_charges(
    rental_type: str,
    start: date | datetime,
    end: date | datetime,
    daily_rate: Decimal | None,
    weekly_rate: Decimal | None,
    monthly_rate: Decimal | None,
    vat_percentage: Decimal,
) -> RentalCharges:
    """Derive total_days, subtotal, VAT and total for a set of rental terms."""
    total_days = compute_total_days(start, end)
    rate = rate_for(rental_type, daily_rate, weekly_rate, monthly_rate)
    subtotal = compute_subtotal(rental_type, rate, total_days)
    vat_amount = compute_vat(subtotal, vat_percentage)
    return RentalCharges(
        total_days=total_days,
        subtotal=subtotal,
        vat_percentage=vat_percentage,
        vat_amount=vat_amount,
        total_amount=compute_total(subtotal, vat_amount),
    )


def compute_extra_km(
    odometer_start: int,
    odometer_end: int,
    mileage_limit_per_day: int | None,
    total_days: int,
    extra_km_rate: Decimal | None,
) -> ExtraKmResult:
    """
    Kilometres driven beyond the allowance and their charge.

    allowed         = mileage_limit_per_day * total_days
    extra_km_driven = max(0, driven - allowed)
    extra_km_charge = extra_km_driven * extra_km_rate

    No mileage limit means unlimited kilometres; no rate means the excess
    is not charged.
    """
    driven = odometer_end - odometer_start
    if mileage_limit_per_day is None:
        return ExtraKmResult(driven=driven, allowed=None, extra_km_driven=0, extra_km_charge=ZERO)

    allowed = mileage_limit_per_day * total_days
    extra = max(0, driven - allowed)
    rate = money_from_str(extra_km_rate) if extra_km_rate is not None else ZERO
    return ExtraKmResult(
        driven=driven,
        allowed=allowed,
        extra_km_driven=extra,
        extra_km_charge=round_money(rate * extra),
    )


def compute_total_extra_charges(
    extra_km_charge: Decimal,
    fuel_charge: Decimal,
    damage_charge: Decimal,
    other_charges: Decimal,
) -> Decimal:
    return round_money(
        sum(
            (money_from_str(v) for v in (extra_km_charge, fuel_charge, damage_charge, other_charges)),
            ZERO,
        )
    )


def compute_outstanding_balance(
    total_amount: Decimal,
    total_extra_charges: Decimal,
    deposit_paid: bool,
    security_deposit: Decimal,
) -> Decimal:
    """
    ``total_amount + total_extra_charges - (security_deposit if deposit_paid)``.

    Not clamped; negative means the customer is owed a credit.
    """
    credit = money_from_str(security_deposit) if deposit_paid else ZERO
    return round_money(
        money_from_str(total_amount) + money_from_str(total_extra_charges) - credit
    )
