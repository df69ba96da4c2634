"""Audit event kinds: closed action set and JSON-safe payloads."""

from decimal import Decimal
from uuid import uuid4

from rental_kernel.domain.audit_events import (
    EVENT_KIND_BY_ACTION,
    EVENT_KINDS,
    ContractCompleted,
    ContractCreated,
    ContractEdited,
    ContractPrinted,
)
from rental_kernel.models.audit_log import AuditAction


def test_every_kind_has_a_stored_action():
    assert {kind.action for kind in EVENT_KINDS} == {a.value for a in AuditAction}


def test_lookup_by_action():
    assert EVENT_KIND_BY_ACTION["contract_created"] is ContractCreated


def test_payload_is_json_safe():
    edit_id = uuid4()
    event = ContractEdited(
        contract_id=uuid4(),
        contract_number=15500,
        edit_id=edit_id,
        reason="customer asked",
        changed_fields=("daily_rate", "subtotal"),
    )
    payload = event.payload()
    assert payload == {
        "contract_number": 15500,
        "edit_id": str(edit_id),
        "reason": "customer asked",
        "changed_fields": ["daily_rate", "subtotal"],
    }
    assert "contract_id" not in payload


def test_details_are_human_readable():
    event = ContractCompleted(
        contract_id=uuid4(),
        contract_number=15501,
        odometer_end=1250,
        extra_km_driven=100,
        total_extra_charges=Decimal("100.00"),
        outstanding_balance=Decimal("415.00"),
    )
    assert event.details() == (
        "Completed contract #15501: extra charges 100.00, outstanding 415.00"
    )
    assert event.payload()["outstanding_balance"] == "415.00"


def test_default_details():
    event = ContractPrinted(contract_id=uuid4(), contract_number=15502)
    assert event.details() == "Contract #15502: contract printed"
