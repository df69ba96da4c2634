"""
AvailabilityService -- vehicle double-booking guard.

Responsibility:
    Answers whether a vehicle is free for a date range, and serializes the
    availability read against the status write it gates.

Architecture position:
    Kernel > Services -- imperative shell.  Called by ContractService at
    ``confirm`` and ``activate``.

Invariants enforced:
    - A vehicle is unavailable when another contract for it, with status
      in BLOCKING_STATUSES and not disabled, has a date range overlapping
      ``[start, end]``: ``NOT (existing.end < start OR existing.start > end)``.
    - Draft, closed, legacy finalized and disabled contracts never block.
    - Exclusivity: ``ensure_available`` first takes a per-vehicle row lock
      (``vehicle_booking_locks``, SELECT ... FOR UPDATE).  Two transactions
      booking the same vehicle therefore run check-then-write one after
      the other; the second sees the first's committed status.

Failure modes:
    - VehicleUnavailableError with the conflicting contract ids.
    - IntegrityError: concurrent creation of the same lock row (handled via
      savepoint rollback and re-read).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import and_, not_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.lifecycle import BLOCKING_STATUSES
from rental_kernel.exceptions import VehicleUnavailableError
from rental_kernel.logging_config import get_logger
from rental_kernel.models.contract import RentalContract
from rental_kernel.models.vehicle_booking_lock import VehicleBookingLock

logger = get_logger("services.availability")


class AvailabilityService:
    """
    Overlap queries and per-vehicle locking.

    Non-goals:
        - Does NOT call ``session.commit()``; the lock is held until the
          caller's transaction ends.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _locked_row(self, vehicle_id: UUID) -> VehicleBookingLock | None:
        return self._session.execute(
            select(VehicleBookingLock)
            .where(VehicleBookingLock.vehicle_id == vehicle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def lock_vehicle(
        self,
        vehicle_id: UUID,
        contract_id: UUID | None = None,
        action: str | None = None,
    ) -> VehicleBookingLock:
        """
        Take the booking lock for ``vehicle_id``, creating it on first use.

        Postconditions:
            - The lock row is locked until the transaction ends.
        """
        lock = self._locked_row(vehicle_id)
        if lock is None:
            savepoint = self._session.begin_nested()
            try:
                lock = VehicleBookingLock(vehicle_id=vehicle_id)
                self._session.add(lock)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                lock = self._locked_row(vehicle_id)
                if lock is None:
                    raise

        lock.last_contract_id = contract_id
        lock.last_locked_at = self._clock.now()
        lock.last_action = action
        self._session.flush()
        return lock

    def find_conflicts(
        self,
        vehicle_id: UUID,
        start_date: date,
        end_date: date,
        exclude_contract_id: UUID | None = None,
    ) -> list[RentalContract]:
        """Blocking contracts for the vehicle whose range overlaps ``[start, end]``."""
        overlap = not_(
            or_(
                RentalContract.end_date < start_date,
                RentalContract.start_date > end_date,
            )
        )
        conditions = [
            RentalContract.vehicle_id == vehicle_id,
            RentalContract.status.in_(BLOCKING_STATUSES),
            RentalContract.disabled.is_(False),
            overlap,
        ]
        if exclude_contract_id is not None:
            conditions.append(RentalContract.id != exclude_contract_id)

        return list(
            self._session.execute(
                select(RentalContract)
                .where(and_(*conditions))
                .order_by(RentalContract.contract_number)
            ).scalars().all()
        )

    def is_vehicle_available(
        self,
        vehicle_id: UUID,
        start_date: date,
        end_date: date,
        exclude_contract_id: UUID | None = None,
    ) -> bool:
        return not self.find_conflicts(vehicle_id, start_date, end_date, exclude_contract_id)

    def ensure_available(
        self,
        vehicle_id: UUID,
        start_date: date,
        end_date: date,
        exclude_contract_id: UUID | None = None,
        action: str | None = None,
    ) -> None:
        """
        Lock the vehicle, then verify no blocking contract overlaps.

        Raises:
            VehicleUnavailableError: At least one conflicting contract.
        """
        self.lock_vehicle(vehicle_id, contract_id=exclude_contract_id, action=action)
        conflicts = self.find_conflicts(vehicle_id, start_date, end_date, exclude_contract_id)
        if conflicts:
            conflict_ids = tuple(str(c.id) for c in conflicts)
            logger.warning(
                "vehicle_unavailable",
                extra={
                    "vehicle_id": str(vehicle_id),
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                    "conflicting_contract_ids": list(conflict_ids),
                },
            )
            raise VehicleUnavailableError(
                str(vehicle_id),
                start_date.isoformat(),
                end_date.isoformat(),
                conflict_ids,
            )
