"""
End-to-end rental through the committed orchestrator.

Three days at 100.00 with 5% VAT, 50 km/day included and 1.00 per extra
km.  The customer drives 250 km against 150 included, so settlement adds
100.00 and nothing has been paid yet.
"""

from decimal import Decimal

import pytest

from rental_kernel.domain.dtos import HandoverInputs, SettlementInputs
from rental_kernel.exceptions import ClosureBlockedError, VehicleUnavailableError
from rental_kernel.selectors.contract_selector import ContractSelector
from rental_kernel.services.audit_recorder import AuditRecorder


def test_full_rental(orchestrator, make_terms, staff, manager, session, clock):
    info = orchestrator.create_contract(staff, make_terms())
    assert info.status == "draft"
    assert info.total_days == 3
    assert info.subtotal == Decimal("300.00")
    assert info.vat_amount == Decimal("15.00")
    assert info.total_amount == Decimal("315.00")

    info = orchestrator.confirm(manager, info.id)
    assert info.status == "confirmed"

    clock.advance(3600)
    info = orchestrator.activate(
        manager, info.id, HandoverInputs(odometer_start=1000, fuel_level_start="Full")
    )
    assert info.status == "active"

    clock.advance(3 * 86400)
    info = orchestrator.complete(
        manager,
        info.id,
        SettlementInputs(odometer_end=1250, fuel_level_end="Full"),
    )
    assert info.extra_km_driven == 100
    assert info.extra_km_charge == Decimal("100.00")
    assert info.total_extra_charges == Decimal("100.00")
    assert info.outstanding_balance == Decimal("415.00")

    with pytest.raises(ClosureBlockedError) as exc_info:
        orchestrator.close(manager, info.id)
    assert exc_info.value.outstanding_balance == "415.00"

    info = orchestrator.record_final_payment(manager, info.id, "card")
    assert info.outstanding_balance == Decimal("0.00")

    info = orchestrator.close(manager, info.id)
    assert info.status == "closed"
    assert info.payment_status == "paid"
    assert info.closed_by_id == manager.user_id

    assert AuditRecorder(session, clock).validate_chain()
    assert len(ContractSelector(session).audit_trail(info.id)) == 6


def test_deposit_refunded_after_close(orchestrator, make_terms, staff, manager):
    info = orchestrator.create_contract(staff, make_terms())
    orchestrator.record_deposit(manager, info.id, "cash")
    orchestrator.confirm(manager, info.id)
    orchestrator.activate(manager, info.id, HandoverInputs(odometer_start=5000))
    info = orchestrator.complete(manager, info.id, SettlementInputs(odometer_end=5100))
    # 315.00 - 500.00 deposit, no extra km
    assert info.outstanding_balance == Decimal("-185.00")
    assert info.has_credit

    orchestrator.record_final_payment(manager, info.id, "cash")
    orchestrator.close(manager, info.id)
    info = orchestrator.record_refund(manager, info.id)
    assert info.deposit_refunded
    assert info.payment_status == "refunded"


def test_double_booking_rejected(orchestrator, make_terms, staff, manager):
    first = orchestrator.create_contract(staff, make_terms())
    second = orchestrator.create_contract(
        staff, make_terms(start_date="2024-03-02", end_date="2024-03-03")
    )
    orchestrator.confirm(manager, first.id)

    with pytest.raises(VehicleUnavailableError):
        orchestrator.confirm(manager, second.id)
    assert orchestrator.contracts.get(second.id).status == "draft"


def test_edit_then_confirm_locks_terms(orchestrator, make_terms, staff, manager):
    info = orchestrator.create_contract(staff, make_terms())
    info = orchestrator.edit_contract(
        staff, info.id, {"end_date": "2024-03-06"}, "customer extended by two days"
    )
    assert info.total_days == 5
    assert info.total_amount == Decimal("525.00")

    info = orchestrator.confirm(manager, info.id)
    assert not info.is_editable
