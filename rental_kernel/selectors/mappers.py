"""
Row -> DTO conversion shared by selectors and services.

SQLite returns naive datetimes and un-quantized Numeric values; these
helpers normalize both so that callers see the same DTO on every backend.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from rental_kernel.domain.dtos import (
    AuditEntryInfo,
    ContractInfo,
    ContractTerms,
    EditRecordInfo,
)
from rental_kernel.domain.money import round_money
from rental_kernel.models.audit_log import AuditLogEntry
from rental_kernel.models.contract import RentalContract
from rental_kernel.models.contract_edit import ContractEdit


def _utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _money(value: Decimal | None) -> Decimal | None:
    return round_money(value) if value is not None else None


def _percentage(value: Decimal) -> Decimal:
    # normalize() alone turns 10 into 1E+1
    normalized = value.normalize()
    return normalized.quantize(Decimal(1)) if normalized == normalized.to_integral() else normalized


def _value(enum_or_str: Any) -> str:
    return str(getattr(enum_or_str, "value", enum_or_str))


def terms_from_contract(row: RentalContract) -> ContractTerms:
    """Rebuild the caller-settable terms from a contract row."""
    return ContractTerms(
        customer_id=row.customer_id,
        vehicle_id=row.vehicle_id,
        start_date=row.start_date,
        end_date=row.end_date,
        rental_type=_value(row.rental_type),
        hirer_type=_value(row.hirer_type),
        daily_rate=_money(row.daily_rate),
        weekly_rate=_money(row.weekly_rate),
        monthly_rate=_money(row.monthly_rate),
        mileage_limit=row.mileage_limit,
        extra_km_rate=_money(row.extra_km_rate),
        sponsor_person_id=row.sponsor_person_id,
        company_name=row.company_name,
        rental_start_time=row.rental_start_time,
        rental_end_time=row.rental_end_time,
        pickup_location=row.pickup_location,
        dropoff_location=row.dropoff_location,
        accident_liability=_money(row.accident_liability),
        vehicle_condition=row.vehicle_condition,
        notes=row.notes,
        terms_accepted=bool(row.terms_accepted),
    )


def snapshot_contract(row: RentalContract) -> dict[str, Any]:
    """
    Full editable field set plus the money derived from it.

    Used for ContractEdit.fields_before / fields_after.
    """
    snapshot = terms_from_contract(row).snapshot()
    snapshot.update(
        {
            "total_days": row.total_days,
            "currency": row.currency,
            "vat_percentage": str(_percentage(row.vat_percentage)),
            "subtotal": str(_money(row.subtotal)),
            "vat_amount": str(_money(row.vat_amount)),
            "total_amount": str(_money(row.total_amount)),
            "security_deposit": str(_money(row.security_deposit)),
        }
    )
    return snapshot


def contract_to_info(row: RentalContract) -> ContractInfo:
    return ContractInfo(
        id=row.id,
        contract_number=row.contract_number,
        status=_value(row.status),
        version=row.version,
        terms=terms_from_contract(row),
        total_days=row.total_days,
        currency=row.currency,
        vat_percentage=_percentage(row.vat_percentage),
        subtotal=_money(row.subtotal),
        vat_amount=_money(row.vat_amount),
        total_amount=_money(row.total_amount),
        security_deposit=_money(row.security_deposit),
        odometer_start=row.odometer_start,
        odometer_end=row.odometer_end,
        fuel_level_start=row.fuel_level_start,
        fuel_level_end=row.fuel_level_end,
        extra_km_driven=row.extra_km_driven,
        extra_km_charge=_money(row.extra_km_charge),
        fuel_charge=_money(row.fuel_charge),
        damage_charge=_money(row.damage_charge),
        other_charges=_money(row.other_charges),
        total_extra_charges=_money(row.total_extra_charges),
        outstanding_balance=_money(row.outstanding_balance),
        deposit_paid=bool(row.deposit_paid),
        deposit_paid_date=_utc(row.deposit_paid_date),
        deposit_paid_method=row.deposit_paid_method,
        final_payment_received=bool(row.final_payment_received),
        final_payment_date=_utc(row.final_payment_date),
        final_payment_method=row.final_payment_method,
        deposit_refunded=bool(row.deposit_refunded),
        deposit_refunded_date=_utc(row.deposit_refunded_date),
        payment_status=_value(row.payment_status),
        created_by_id=row.created_by_id,
        created_at=_utc(row.created_at),
        confirmed_by_id=row.confirmed_by_id,
        confirmed_at=_utc(row.confirmed_at),
        activated_by_id=row.activated_by_id,
        activated_at=_utc(row.activated_at),
        completed_by_id=row.completed_by_id,
        completed_at=_utc(row.completed_at),
        closed_by_id=row.closed_by_id,
        closed_at=_utc(row.closed_at),
        disabled=bool(row.disabled),
        disabled_by_id=row.disabled_by_id,
        disabled_at=_utc(row.disabled_at),
    )


def edit_to_info(row: ContractEdit) -> EditRecordInfo:
    return EditRecordInfo(
        id=row.id,
        contract_id=row.contract_id,
        edited_by_id=row.edited_by_id,
        edited_at=_utc(row.edited_at),
        edit_reason=row.edit_reason,
        changes_summary=tuple(row.changes_summary),
        fields_before=dict(row.fields_before),
        fields_after=dict(row.fields_after),
        ip_address=row.ip_address,
    )


def audit_to_info(row: AuditLogEntry) -> AuditEntryInfo:
    return AuditEntryInfo(
        id=row.id,
        seq=row.seq,
        user_id=row.user_id,
        action=_value(row.action),
        contract_id=row.contract_id,
        details=row.details,
        payload=dict(row.payload) if row.payload is not None else None,
        ip_address=row.ip_address,
        created_at=_utc(row.created_at),
        hash=row.hash,
        prev_hash=row.prev_hash,
    )
