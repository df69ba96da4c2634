"""
Module: rental_kernel.models.contract_edit
Responsibility: ORM persistence for the append-only history of draft edits.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (ORM listener in db/immutability.py).
    - edit_reason is never blank (EditTracker rejects blank reasons before
      a row is built).
    - fields_before/fields_after hold FULL snapshots of the editable field
      set, not diffs, so history replays without knowing the schema at the
      time of the edit.

Audit relevance:
    Answers "who changed the quote, what did it look like before, and why".
    contract_id is a weak reference (lookup only, no FK cascade).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, UUIDString


class ContractEdit(Base):
    """One accepted edit of a draft contract."""

    __tablename__ = "contract_edits"

    __table_args__ = (
        Index("idx_contract_edit_contract", "contract_id", "edited_at"),
    )

    contract_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    edited_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    edited_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    edit_reason: Mapped[str] = mapped_column(Text, nullable=False)

    # Sorted names of fields whose value differs between the snapshots
    changes_summary: Mapped[list] = mapped_column(JSON, nullable=False)

    fields_before: Mapped[dict] = mapped_column(JSON, nullable=False)

    fields_after: Mapped[dict] = mapped_column(JSON, nullable=False)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    def __repr__(self) -> str:
        return f"<ContractEdit {self.contract_id} at {self.edited_at}>"
