"""
ContractTerms, HandoverInputs and SettlementInputs.

Caller input is coerced and validated here before any service sees it;
kernel-derived fields are refused by name.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from rental_kernel.domain.dtos import (
    PROTECTED_FIELDS,
    ContractTerms,
    HandoverInputs,
    SettlementInputs,
)
from rental_kernel.exceptions import ContractValidationError, ProtectedFieldError


def _mapping(**overrides):
    data = {
        "customer_id": str(uuid4()),
        "vehicle_id": str(uuid4()),
        "start_date": "2024-03-01",
        "end_date": "2024-03-04",
        "daily_rate": "100",
    }
    data.update(overrides)
    return data


class TestFromMapping:
    def test_coerces_types(self):
        terms = ContractTerms.from_mapping(_mapping(mileage_limit="50"))
        assert terms.start_date == date(2024, 3, 1)
        assert terms.daily_rate == Decimal("100")
        assert terms.mileage_limit == 50
        assert terms.rental_type == "daily"

    def test_datetime_truncated_to_date(self):
        terms = ContractTerms.from_mapping(_mapping(start_date=datetime(2024, 3, 1, 18, 30)))
        assert terms.start_date == date(2024, 3, 1)

    @pytest.mark.parametrize("field", ["subtotal", "total_amount", "outstanding_balance", "status"])
    def test_protected_fields_refused(self, field):
        with pytest.raises(ProtectedFieldError) as exc_info:
            ContractTerms.from_mapping(_mapping(**{field: "1"}))
        assert field in exc_info.value.fields

    def test_unknown_field_refused(self):
        with pytest.raises(ContractValidationError) as exc_info:
            ContractTerms.from_mapping(_mapping(colour="red"))
        assert exc_info.value.field == "colour"

    @pytest.mark.parametrize("field", ["customer_id", "vehicle_id", "start_date", "end_date"])
    def test_required_fields(self, field):
        with pytest.raises(ContractValidationError) as exc_info:
            ContractTerms.from_mapping(_mapping(**{field: None}))
        assert exc_info.value.field == field

    def test_float_rate_refused(self):
        with pytest.raises(ContractValidationError) as exc_info:
            ContractTerms.from_mapping(_mapping(daily_rate=100.0))
        assert exc_info.value.field == "daily_rate"

    def test_bad_uuid_refused(self):
        with pytest.raises(ContractValidationError):
            ContractTerms.from_mapping(_mapping(customer_id="not-a-uuid"))

    def test_bool_mileage_refused(self):
        with pytest.raises(ContractValidationError):
            ContractTerms.from_mapping(_mapping(mileage_limit=True))

    def test_every_derived_field_is_protected(self):
        assert not PROTECTED_FIELDS & set(ContractTerms.field_names())


class TestValidate:
    def _terms(self, **overrides):
        return ContractTerms.from_mapping(_mapping(**overrides))

    def test_valid_terms(self):
        self._terms().validate()

    def test_end_before_start(self):
        with pytest.raises(ContractValidationError, match="end_date"):
            self._terms(start_date="2024-03-04", end_date="2024-03-01").validate()

    def test_sponsor_required_for_sponsored_hire(self):
        with pytest.raises(ContractValidationError) as exc_info:
            self._terms(hirer_type="with_sponsor").validate()
        assert exc_info.value.field == "sponsor_person_id"

    def test_company_required_for_company_hire(self):
        with pytest.raises(ContractValidationError) as exc_info:
            self._terms(hirer_type="from_company", company_name="  ").validate()
        assert exc_info.value.field == "company_name"

    def test_unknown_rental_type(self):
        with pytest.raises(ContractValidationError):
            self._terms(rental_type="hourly").validate()

    @pytest.mark.parametrize("value", ["9:00", "24:00", "12:60", "noon"])
    def test_bad_times(self, value):
        with pytest.raises(ContractValidationError):
            self._terms(rental_start_time=value).validate()

    def test_good_time(self):
        self._terms(rental_start_time="09:30", rental_end_time="23:59").validate()

    def test_negative_mileage(self):
        with pytest.raises(ContractValidationError):
            self._terms(mileage_limit=-1).validate()


class TestWithChanges:
    def test_merges_changes(self):
        terms = ContractTerms.from_mapping(_mapping())
        updated = terms.with_changes({"daily_rate": "120", "notes": "VIP"})
        assert updated.daily_rate == Decimal("120")
        assert updated.notes == "VIP"
        assert updated.customer_id == terms.customer_id

    def test_protected_change_refused(self):
        terms = ContractTerms.from_mapping(_mapping())
        with pytest.raises(ProtectedFieldError):
            terms.with_changes({"vat_amount": "0"})

    def test_snapshot_is_json_safe(self):
        snap = ContractTerms.from_mapping(_mapping()).snapshot()
        assert snap["start_date"] == "2024-03-01"
        assert snap["daily_rate"] == "100"
        assert isinstance(snap["customer_id"], str)


class TestHandoverAndSettlement:
    def test_negative_odometer_start(self):
        with pytest.raises(ContractValidationError):
            HandoverInputs(odometer_start=-5).validate()

    def test_settlement_charges_coerced(self):
        s = SettlementInputs(odometer_end=1250, fuel_level_end="Full", fuel_charge="25.5")
        assert s.fuel_charge == Decimal("25.5")
        assert s.damage_charge == Decimal("0.00")

    def test_settlement_float_charge_refused(self):
        with pytest.raises(ContractValidationError):
            SettlementInputs(odometer_end=1250, fuel_level_end="Full", damage_charge=10.0)

    def test_settlement_requires_fuel_level(self):
        with pytest.raises(ContractValidationError) as exc_info:
            SettlementInputs(odometer_end=1250, fuel_level_end=" ").validate()
        assert exc_info.value.field == "fuel_level_end"

    def test_settlement_negative_charge(self):
        with pytest.raises(ContractValidationError):
            SettlementInputs(odometer_end=1, fuel_level_end="Half", other_charges="-1").validate()
