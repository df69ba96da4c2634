"""
Module: rental_kernel.domain.collaborators
Responsibility:
    Ports for the systems the kernel reads but does not own: the
    customer/vehicle/person directory and the company settings store.
    Also provides small in-memory implementations used by tests and by
    callers that already hold the records.

Architecture position:
    Kernel > Domain -- Protocols and frozen records, zero I/O.  Concrete
    adapters over a real directory live outside the kernel.

Contract:
    - Lookups return None for a missing record; they never raise.
    - A record with ``disabled=True`` exists but may not be referenced by
      a new or activated contract.
    - ``vat_percentage`` is string-encoded, as stored by the settings
      store; None or blank means "use the configured default".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import UUID


@dataclass(frozen=True)
class CustomerRecord:
    id: UUID
    name: str = ""
    disabled: bool = False


@dataclass(frozen=True)
class VehicleRecord:
    """Directory view of a vehicle.  security_deposit overrides the configured default."""

    id: UUID
    registration: str = ""
    security_deposit: Decimal | None = None
    disabled: bool = False


@dataclass(frozen=True)
class PersonRecord:
    id: UUID
    name: str = ""
    disabled: bool = False


@dataclass(frozen=True)
class CompanySettings:
    vat_percentage: str | None = None
    currency: str | None = None


@runtime_checkable
class Directory(Protocol):
    """Read access to customer, vehicle and person records by id."""

    def get_customer(self, customer_id: UUID) -> CustomerRecord | None:
        ...

    def get_vehicle(self, vehicle_id: UUID) -> VehicleRecord | None:
        ...

    def get_person(self, person_id: UUID) -> PersonRecord | None:
        ...


@runtime_checkable
class CompanySettingsProvider(Protocol):
    def get_company_settings(self) -> CompanySettings | None:
        """Return the current settings, or None if none are stored."""
        ...


@dataclass
class InMemoryDirectory:
    """Directory backed by dicts keyed by id."""

    customers: dict[UUID, CustomerRecord] = field(default_factory=dict)
    vehicles: dict[UUID, VehicleRecord] = field(default_factory=dict)
    persons: dict[UUID, PersonRecord] = field(default_factory=dict)

    def add(self, record: CustomerRecord | VehicleRecord | PersonRecord) -> None:
        if isinstance(record, CustomerRecord):
            self.customers[record.id] = record
        elif isinstance(record, VehicleRecord):
            self.vehicles[record.id] = record
        elif isinstance(record, PersonRecord):
            self.persons[record.id] = record
        else:
            raise TypeError(f"Unsupported directory record: {type(record).__name__}")

    def get_customer(self, customer_id: UUID) -> CustomerRecord | None:
        return self.customers.get(customer_id)

    def get_vehicle(self, vehicle_id: UUID) -> VehicleRecord | None:
        return self.vehicles.get(vehicle_id)

    def get_person(self, person_id: UUID) -> PersonRecord | None:
        return self.persons.get(person_id)


@dataclass(frozen=True)
class StaticCompanySettings:
    """Settings provider returning a fixed value (None means nothing stored)."""

    settings: CompanySettings | None = None

    def get_company_settings(self) -> CompanySettings | None:
        return self.settings
