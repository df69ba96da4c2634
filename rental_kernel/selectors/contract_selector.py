"""
Module: rental_kernel.selectors.contract_selector
Responsibility: Read-only queries over contracts, their edit history and
    the audit log.  Every method returns frozen DTOs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only: no add/flush/commit.
    - Listings exclude nothing silently: active and disabled contracts are
      separate queries, and both are ordered newest first.
"""

from uuid import UUID

from sqlalchemy import select

from rental_kernel.domain.dtos import AuditEntryInfo, ContractInfo, EditRecordInfo
from rental_kernel.exceptions import ContractNotFoundError
from rental_kernel.models.audit_log import AuditLogEntry
from rental_kernel.models.contract import RentalContract
from rental_kernel.models.contract_edit import ContractEdit
from rental_kernel.selectors.base import BaseSelector
from rental_kernel.selectors.mappers import audit_to_info, contract_to_info, edit_to_info


class ContractSelector(BaseSelector[RentalContract]):
    """Lookup and listing queries for the contract read side."""

    def get(self, contract_id: UUID) -> ContractInfo:
        """
        Raises:
            ContractNotFoundError: No contract with that id.
        """
        row = self.session.get(RentalContract, contract_id)
        if row is None:
            raise ContractNotFoundError(str(contract_id))
        return contract_to_info(row)

    def get_by_number(self, contract_number: int) -> ContractInfo | None:
        row = self.session.execute(
            select(RentalContract).where(RentalContract.contract_number == contract_number)
        ).scalar_one_or_none()
        return contract_to_info(row) if row is not None else None

    def list_active(self, limit: int | None = None) -> list[ContractInfo]:
        """Contracts that are not disabled, newest first."""
        stmt = (
            select(RentalContract)
            .where(RentalContract.disabled.is_(False))
            .order_by(RentalContract.created_at.desc(), RentalContract.contract_number.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [contract_to_info(r) for r in self.session.execute(stmt).scalars()]

    def list_disabled(self) -> list[ContractInfo]:
        """Soft-deleted contracts, most recently disabled first."""
        rows = self.session.execute(
            select(RentalContract)
            .where(RentalContract.disabled.is_(True))
            .order_by(RentalContract.disabled_at.desc(), RentalContract.contract_number.desc())
        ).scalars()
        return [contract_to_info(r) for r in rows]

    def list_by_vehicle(self, vehicle_id: UUID) -> list[ContractInfo]:
        rows = self.session.execute(
            select(RentalContract)
            .where(RentalContract.vehicle_id == vehicle_id)
            .order_by(RentalContract.start_date, RentalContract.contract_number)
        ).scalars()
        return [contract_to_info(r) for r in rows]

    def edit_history(self, contract_id: UUID) -> list[EditRecordInfo]:
        """Edits of one contract in the order they happened."""
        rows = self.session.execute(
            select(ContractEdit)
            .where(ContractEdit.contract_id == contract_id)
            .order_by(ContractEdit.edited_at, ContractEdit.id)
        ).scalars()
        return [edit_to_info(r) for r in rows]

    def audit_trail(self, contract_id: UUID) -> list[AuditEntryInfo]:
        """Audit entries of one contract, oldest first."""
        rows = self.session.execute(
            select(AuditLogEntry)
            .where(AuditLogEntry.contract_id == contract_id)
            .order_by(AuditLogEntry.seq)
        ).scalars()
        return [audit_to_info(r) for r in rows]

    def recent_audit_entries(self, limit: int = 100) -> list[AuditEntryInfo]:
        """Most recent audit entries across all contracts, newest first."""
        rows = self.session.execute(
            select(AuditLogEntry).order_by(AuditLogEntry.seq.desc()).limit(limit)
        ).scalars()
        return [audit_to_info(r) for r in rows]
