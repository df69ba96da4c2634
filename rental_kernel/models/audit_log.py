"""
Module: rental_kernel.models.audit_log
Responsibility: ORM persistence for the tamper-evident audit log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only; no UPDATE or DELETE (ORM listener in db/immutability.py).
    - Hash chain: hash = H(action | contract_id | payload_hash | prev_hash).
      Validated by AuditRecorder.validate_chain().
    - seq is monotonically increasing, allocated by SequenceService.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.

Audit relevance:
    One row per successful lifecycle action or payment event.  The action
    column is a closed set (AuditAction) and payload holds the typed
    fields of the matching audit event variant.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rental_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Closed set of auditable contract actions.

    Every member has exactly one event class in domain/audit_events.py.
    """

    CONTRACT_CREATED = "contract_created"
    CONTRACT_EDITED = "contract_edited"
    CONTRACT_CONFIRMED = "contract_confirmed"
    CONTRACT_ACTIVATED = "contract_activated"
    CONTRACT_COMPLETED = "contract_completed"
    CONTRACT_CLOSED = "contract_closed"

    DEPOSIT_RECORDED = "deposit_recorded"
    FINAL_PAYMENT_RECORDED = "final_payment_recorded"
    DEPOSIT_REFUNDED = "deposit_refunded"

    CONTRACT_PRINTED = "contract_printed"
    CONTRACT_DISABLED = "contract_disabled"
    CONTRACT_ENABLED = "contract_enabled"


class AuditLogEntry(Base):
    """
    Audit log row with hash chain for tamper evidence.

    Guarantees:
        - seq is unique and monotonically increasing.
        - prev_hash is None only for the genesis entry.

    Non-goals:
        - Hash correctness is not checked at INSERT time; that is the
          responsibility of AuditRecorder.
    """

    __tablename__ = "audit_log_entries"

    __table_args__ = (
        Index("idx_audit_log_contract", "contract_id"),
        Index("idx_audit_log_action", "action"),
        Index("idx_audit_log_created", "created_at"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[AuditAction] = mapped_column(String(50), nullable=False)

    # Null for actions that do not concern a single contract
    contract_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Human-readable summary
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Typed event fields
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry #{self.seq} {self.action} on {self.contract_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
