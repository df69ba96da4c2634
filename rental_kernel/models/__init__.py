"""ORM models for the rental kernel."""

from rental_kernel.models.audit_log import AuditAction, AuditLogEntry
from rental_kernel.models.contract import (
    ContractStatus,
    HirerType,
    PaymentStatus,
    RentalContract,
    RentalType,
)
from rental_kernel.models.contract_edit import ContractEdit
from rental_kernel.models.sequence_counter import SequenceCounter
from rental_kernel.models.vehicle_booking_lock import VehicleBookingLock

__all__ = [
    "RentalContract",
    "ContractStatus",
    "RentalType",
    "HirerType",
    "PaymentStatus",
    "ContractEdit",
    "AuditLogEntry",
    "AuditAction",
    "SequenceCounter",
    "VehicleBookingLock",
]
