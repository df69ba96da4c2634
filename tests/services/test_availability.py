"""
Vehicle double-booking guard.

A vehicle is held by every confirmed, active or completed contract that is
not disabled.  Overlap is inclusive on both ends.
"""

from datetime import date

import pytest
from sqlalchemy import select

from rental_kernel.exceptions import VehicleUnavailableError
from rental_kernel.models.vehicle_booking_lock import VehicleBookingLock
from rental_kernel.services.availability_service import AvailabilityService


@pytest.fixture
def availability(session, clock):
    return AvailabilityService(session, clock)


class TestConfirmGuard:
    def test_overlapping_confirm_rejected(self, create, contract_service, manager):
        first = create()
        second = create(start_date="2024-03-03", end_date="2024-03-06")
        contract_service.confirm(manager, first.id)

        with pytest.raises(VehicleUnavailableError) as exc_info:
            contract_service.confirm(manager, second.id)
        assert exc_info.value.conflicting_contract_ids == (str(first.id),)
        assert exc_info.value.start_date == "2024-03-03"
        assert contract_service.get(second.id).status == "draft"

    def test_shared_boundary_day_overlaps(self, create, contract_service, manager):
        first = create()
        second = create(start_date="2024-03-04", end_date="2024-03-05")
        contract_service.confirm(manager, first.id)
        with pytest.raises(VehicleUnavailableError):
            contract_service.confirm(manager, second.id)

    def test_adjacent_ranges_allowed(self, create, contract_service, manager):
        first = create()
        second = create(start_date="2024-03-05", end_date="2024-03-07")
        contract_service.confirm(manager, first.id)
        assert contract_service.confirm(manager, second.id).status == "confirmed"

    def test_other_vehicle_unaffected(self, create, contract_service, manager, second_vehicle_id):
        first = create()
        second = create(vehicle_id=second_vehicle_id)
        contract_service.confirm(manager, first.id)
        assert contract_service.confirm(manager, second.id).status == "confirmed"

    def test_drafts_do_not_block(self, create, contract_service, manager):
        create()
        second = create()
        assert contract_service.confirm(manager, second.id).status == "confirmed"

    def test_disabled_contract_does_not_block(self, create, contract_service, manager, admin):
        first = create()
        second = create()
        contract_service.confirm(manager, first.id)
        contract_service.disable(admin, first.id)
        assert contract_service.confirm(manager, second.id).status == "confirmed"

    def test_closed_contract_releases_vehicle(self, create, drive, contract_service, manager):
        first = drive(create(), "completed")
        second = create()
        with pytest.raises(VehicleUnavailableError):
            contract_service.confirm(manager, second.id)

        contract_service.record_final_payment(manager, first.id, "cash")
        contract_service.close(manager, first.id)
        assert contract_service.confirm(manager, second.id).status == "confirmed"

    def test_activate_rechecks(self, create, contract_service, manager, admin):
        first = create()
        second = create()
        contract_service.confirm(manager, first.id)
        contract_service.disable(admin, first.id)
        contract_service.confirm(manager, second.id)
        contract_service.enable(admin, first.id)

        with pytest.raises(VehicleUnavailableError) as exc_info:
            contract_service.activate(manager, first.id)
        assert exc_info.value.conflicting_contract_ids == (str(second.id),)

    def test_rejection_logged(self, create, contract_service, manager, captured_logs):
        first = create()
        second = create()
        contract_service.confirm(manager, first.id)
        with pytest.raises(VehicleUnavailableError):
            contract_service.confirm(manager, second.id)
        records = [r for r in captured_logs() if r["message"] == "vehicle_unavailable"]
        assert records[0]["conflicting_contract_ids"] == [str(first.id)]


class TestAvailabilityService:
    def test_query_excludes_self(self, create, contract_service, manager, availability, vehicle_id):
        info = contract_service.confirm(manager, create().id)
        assert not availability.is_vehicle_available(
            vehicle_id, date(2024, 3, 2), date(2024, 3, 2)
        )
        assert availability.is_vehicle_available(
            vehicle_id, date(2024, 3, 2), date(2024, 3, 2), exclude_contract_id=info.id
        )

    def test_lock_row_created_once(self, session, availability, vehicle_id, clock):
        availability.lock_vehicle(vehicle_id, action="confirm")
        clock.advance(60)
        lock = availability.lock_vehicle(vehicle_id, action="activate")

        rows = session.execute(
            select(VehicleBookingLock).where(VehicleBookingLock.vehicle_id == vehicle_id)
        ).scalars().all()
        assert len(rows) == 1
        assert lock.last_action == "activate"
        assert lock.last_locked_at == clock.now()

    def test_confirm_takes_lock(self, create, contract_service, manager, session, vehicle_id):
        info = contract_service.confirm(manager, create().id)
        lock = session.execute(
            select(VehicleBookingLock).where(VehicleBookingLock.vehicle_id == vehicle_id)
        ).scalar_one()
        assert lock.last_contract_id == info.id
        assert lock.last_action == "confirm"
