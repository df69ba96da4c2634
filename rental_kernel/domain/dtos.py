"""
Data Transfer Objects for the rental kernel.

Immutable value objects passed between the orchestrator, the services and
callers.  Inputs (ContractTerms, HandoverInputs, SettlementInputs) carry
only what a caller may set; outputs (ContractInfo, EditRecordInfo,
AuditEntryInfo) are read-only snapshots of persisted rows.

Derived money never appears on an input type.  ContractTerms.from_mapping
rejects such keys outright with ProtectedFieldError.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from rental_kernel.domain.lifecycle import PAYMENT_STATE_LABELS
from rental_kernel.domain.money import ZERO, money_from_str
from rental_kernel.exceptions import (
    ContractValidationError,
    ProtectedFieldError,
)

RENTAL_TYPES = ("daily", "weekly", "monthly")
HIRER_TYPES = ("direct", "with_sponsor", "from_company")
PAYMENT_METHODS = ("cash", "card", "bank_transfer")

# Set only by the kernel
PROTECTED_FIELDS = frozenset({
    "id",
    "contract_number",
    "status",
    "version",
    "currency",
    "vat_percentage",
    "total_days",
    "subtotal",
    "vat_amount",
    "total_amount",
    "security_deposit",
    "odometer_start",
    "odometer_end",
    "fuel_level_start",
    "fuel_level_end",
    "extra_km_driven",
    "extra_km_charge",
    "fuel_charge",
    "damage_charge",
    "other_charges",
    "total_extra_charges",
    "outstanding_balance",
    "deposit_paid",
    "deposit_paid_date",
    "deposit_paid_method",
    "final_payment_received",
    "final_payment_date",
    "final_payment_method",
    "deposit_refunded",
    "deposit_refunded_date",
    "payment_status",
    "created_by_id",
    "created_at",
    "confirmed_by_id",
    "confirmed_at",
    "activated_by_id",
    "activated_at",
    "completed_by_id",
    "completed_at",
    "closed_by_id",
    "closed_at",
    "finalized_by_id",
    "finalized_at",
    "disabled",
    "disabled_by_id",
    "disabled_at",
})

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

_UUID_FIELDS = ("customer_id", "vehicle_id", "sponsor_person_id")
_DECIMAL_FIELDS = ("daily_rate", "weekly_rate", "monthly_rate", "extra_km_rate", "accident_liability")
_DATE_FIELDS = ("start_date", "end_date")


def _coerce(name: str, value: Any) -> Any:
    """Normalize a caller-supplied term value to its field type."""
    if value is None:
        return None
    try:
        if name in _UUID_FIELDS:
            return value if isinstance(value, UUID) else UUID(str(value))
        if name in _DECIMAL_FIELDS:
            return money_from_str(value)
        if name in _DATE_FIELDS:
            if isinstance(value, datetime):
                return value.date()
            if isinstance(value, date):
                return value
            return date.fromisoformat(str(value))
        if name in ("rental_type", "hirer_type"):
            return str(getattr(value, "value", value))
        if name == "mileage_limit":
            if isinstance(value, bool):
                raise ValueError("not an integer")
            return int(value)
    except (TypeError, ValueError) as exc:
        raise ContractValidationError(name, str(exc)) from exc
    return value


def _json_value(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class ContractTerms:
    """Caller-settable fields of a contract (create and draft edit)."""

    customer_id: UUID
    vehicle_id: UUID
    start_date: date
    end_date: date
    rental_type: str = "daily"
    hirer_type: str = "direct"
    daily_rate: Decimal | None = None
    weekly_rate: Decimal | None = None
    monthly_rate: Decimal | None = None
    mileage_limit: int | None = None
    extra_km_rate: Decimal | None = None
    sponsor_person_id: UUID | None = None
    company_name: str | None = None
    rental_start_time: str | None = None
    rental_end_time: str | None = None
    pickup_location: str | None = None
    dropoff_location: str | None = None
    accident_liability: Decimal | None = None
    vehicle_condition: str | None = None
    notes: str | None = None
    terms_accepted: bool = False

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def check_keys(cls, keys) -> None:
        """
        Raises:
            ProtectedFieldError: Any key is a kernel-derived field.
            ContractValidationError: Any key is not a contract term.
        """
        keys = set(keys)
        protected = keys & PROTECTED_FIELDS
        if protected:
            raise ProtectedFieldError(tuple(sorted(protected)))
        unknown = keys - set(cls.field_names())
        if unknown:
            raise ContractValidationError(
                ", ".join(sorted(unknown)), "not a contract term"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ContractTerms:
        cls.check_keys(data.keys())
        for required in ("customer_id", "vehicle_id", "start_date", "end_date"):
            if data.get(required) is None:
                raise ContractValidationError(required, "is required")
        return cls(**{k: _coerce(k, v) for k, v in data.items()})

    def with_changes(self, changes: Mapping[str, Any]) -> ContractTerms:
        self.check_keys(changes.keys())
        return replace(self, **{k: _coerce(k, v) for k, v in changes.items()})

    def validate(self) -> None:
        """
        Structural checks independent of the calculator.

        Raises:
            ContractValidationError: On the first invalid field.
        """
        if self.rental_type not in RENTAL_TYPES:
            raise ContractValidationError("rental_type", f"must be one of {', '.join(RENTAL_TYPES)}")
        if self.hirer_type not in HIRER_TYPES:
            raise ContractValidationError("hirer_type", f"must be one of {', '.join(HIRER_TYPES)}")
        if self.end_date < self.start_date:
            raise ContractValidationError("end_date", "must not be before start_date")
        if self.hirer_type == "with_sponsor" and self.sponsor_person_id is None:
            raise ContractValidationError("sponsor_person_id", "required when hirer_type is with_sponsor")
        if self.hirer_type == "from_company" and not (self.company_name or "").strip():
            raise ContractValidationError("company_name", "required when hirer_type is from_company")
        if self.mileage_limit is not None and self.mileage_limit < 0:
            raise ContractValidationError("mileage_limit", "must not be negative")
        for name in ("extra_km_rate", "accident_liability"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ContractValidationError(name, "must not be negative")
        for name in ("rental_start_time", "rental_end_time"):
            value = getattr(self, name)
            if value is not None and not _TIME_PATTERN.match(value):
                raise ContractValidationError(name, "must be HH:MM")

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe dict of every term."""
        return {f.name: _json_value(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class HandoverInputs:
    """Optional vehicle state recorded at activate."""

    odometer_start: int | None = None
    fuel_level_start: str | None = None

    def validate(self) -> None:
        if self.odometer_start is not None and self.odometer_start < 0:
            raise ContractValidationError("odometer_start", "must not be negative")


@dataclass(frozen=True)
class SettlementInputs:
    """Return data supplied at complete."""

    odometer_end: int
    fuel_level_end: str
    fuel_charge: Decimal = ZERO
    damage_charge: Decimal = ZERO
    other_charges: Decimal = ZERO
    vehicle_condition: str | None = None

    def __post_init__(self) -> None:
        for name in ("fuel_charge", "damage_charge", "other_charges"):
            value = getattr(self, name)
            try:
                object.__setattr__(self, name, money_from_str(value if value is not None else ZERO))
            except ValueError as exc:
                raise ContractValidationError(name, str(exc)) from exc

    def validate(self) -> None:
        if self.odometer_end is None or self.odometer_end < 0:
            raise ContractValidationError("odometer_end", "required and must not be negative")
        if not (self.fuel_level_end or "").strip():
            raise ContractValidationError("fuel_level_end", "is required")
        for name in ("fuel_charge", "damage_charge", "other_charges"):
            if getattr(self, name) < 0:
                raise ContractValidationError(name, "must not be negative")


@dataclass(frozen=True)
class ContractInfo:
    """Read-only snapshot of a rental contract."""

    id: UUID
    contract_number: int
    status: str
    version: int
    terms: ContractTerms
    total_days: int
    currency: str
    vat_percentage: Decimal
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    security_deposit: Decimal
    odometer_start: int | None
    odometer_end: int | None
    fuel_level_start: str | None
    fuel_level_end: str | None
    extra_km_driven: int | None
    extra_km_charge: Decimal | None
    fuel_charge: Decimal | None
    damage_charge: Decimal | None
    other_charges: Decimal | None
    total_extra_charges: Decimal | None
    outstanding_balance: Decimal | None
    deposit_paid: bool
    deposit_paid_date: datetime | None
    deposit_paid_method: str | None
    final_payment_received: bool
    final_payment_date: datetime | None
    final_payment_method: str | None
    deposit_refunded: bool
    deposit_refunded_date: datetime | None
    payment_status: str
    created_by_id: UUID
    created_at: datetime | None
    confirmed_by_id: UUID | None = None
    confirmed_at: datetime | None = None
    activated_by_id: UUID | None = None
    activated_at: datetime | None = None
    completed_by_id: UUID | None = None
    completed_at: datetime | None = None
    closed_by_id: UUID | None = None
    closed_at: datetime | None = None
    disabled: bool = False
    disabled_by_id: UUID | None = None
    disabled_at: datetime | None = None

    @property
    def payment_state(self) -> str:
        """Payment sub-state name: unpaid, deposit_paid, fully_paid or refunded."""
        return PAYMENT_STATE_LABELS[self.payment_status]

    @property
    def has_credit(self) -> bool:
        """True when settlement left the customer owed money."""
        return self.outstanding_balance is not None and self.outstanding_balance < 0

    @property
    def is_editable(self) -> bool:
        return self.status == "draft" and not self.disabled


@dataclass(frozen=True)
class EditRecordInfo:
    id: UUID
    contract_id: UUID
    edited_by_id: UUID
    edited_at: datetime
    edit_reason: str
    changes_summary: tuple[str, ...]
    fields_before: dict[str, Any] = field(default_factory=dict)
    fields_after: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None


@dataclass(frozen=True)
class AuditEntryInfo:
    id: UUID
    seq: int
    user_id: UUID
    action: str
    contract_id: UUID | None
    details: str | None
    payload: dict[str, Any] | None
    ip_address: str | None
    created_at: datetime
    hash: str
    prev_hash: str | None
