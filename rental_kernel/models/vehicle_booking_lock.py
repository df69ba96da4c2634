"""
Module: rental_kernel.models.vehicle_booking_lock
Responsibility: One lock row per vehicle.  AvailabilityService takes
    SELECT ... FOR UPDATE on it before reading overlapping contracts, so
    the availability read and the status write it gates are serialized
    per vehicle.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - vehicle_id is unique (one row per vehicle, created on first use).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, UUIDString


class VehicleBookingLock(Base):
    __tablename__ = "vehicle_booking_locks"

    vehicle_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False, unique=True)

    # Last contract whose booking passed through this lock
    last_contract_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    last_locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Free-form marker of the action that took the lock
    last_action: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<VehicleBookingLock {self.vehicle_id}>"
