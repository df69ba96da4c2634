"""
AuditRecorder -- tamper-evident, best-effort audit log.

Responsibility:
    Appends one hash-chained AuditLogEntry per successful lifecycle action
    or payment event, and validates the chain on demand.

Architecture position:
    Kernel > Services -- imperative shell, called by ContractService after
    the state change it describes has been flushed.

Invariants enforced:
    - Closed action set: entries are built only from ContractAuditEvent
      kinds; ``action`` is the kind's class attribute, never caller text.
    - Sequence monotonicity via SequenceService (never raw SQL max+1).
    - Chain integrity: ``hash = H(action | contract_id | payload_hash | prev_hash)``.
    - Append-only (ORM listener in db/immutability.py).

Failure modes:
    - An audit write failure does NOT fail the operation it describes.
      The write runs in a SAVEPOINT; on any database error the savepoint
      is rolled back, ``audit_write_failed`` is logged at ERROR with the
      traceback, and ``record`` returns None.  The business transition is
      authoritative; monitoring must alert on ``audit_write_failed``.
    - Every append takes SELECT ... FOR UPDATE on the single audit_log
      counter row and holds it until the caller commits, so all contract
      operations that write audit entries serialize on that lock.
    - AuditChainBrokenError from ``validate_chain``.

Audit relevance:
    This IS the audit trail.  Successful writes are logged as
    ``audit_entry_recorded`` with the seq number.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rental_kernel.domain.audit_events import ContractAuditEvent
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.dtos import AuditEntryInfo
from rental_kernel.exceptions import AuditChainBrokenError, ImmutabilityError
from rental_kernel.logging_config import get_logger
from rental_kernel.models.audit_log import AuditLogEntry
from rental_kernel.selectors.mappers import audit_to_info
from rental_kernel.services.sequence_service import SequenceService
from rental_kernel.utils.hashing import hash_audit_entry, hash_payload

logger = get_logger("services.audit_recorder")


class AuditRecorder:
    """
    Writes and verifies the audit log.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT record failed operations; those are logged by the
          orchestrator as ``contract_operation_rejected``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        """Hash of the entry with the highest seq."""
        last = self._session.execute(
            select(AuditLogEntry).order_by(AuditLogEntry.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last.hash if last else None

    def _append(
        self,
        actor_id: UUID,
        event: ContractAuditEvent,
        ip_address: str | None,
    ) -> AuditLogEntry:
        # The counter row lock also serializes reading the chain tail
        seq = self._sequence_service.next_value(SequenceService.AUDIT_LOG)
        prev_hash = self._get_last_hash()

        payload = event.payload()
        payload_hash = hash_payload(payload)
        entry = AuditLogEntry(
            seq=seq,
            user_id=actor_id,
            action=event.action,
            contract_id=event.contract_id,
            details=event.details(),
            payload=payload,
            ip_address=ip_address,
            created_at=self._clock.now(),
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=hash_audit_entry(
                action=event.action,
                contract_id=str(event.contract_id) if event.contract_id else None,
                payload_hash=payload_hash,
                prev_hash=prev_hash,
            ),
        )
        self._session.add(entry)
        self._session.flush()
        return entry

    def record(
        self,
        actor_id: UUID,
        event: ContractAuditEvent,
        ip_address: str | None = None,
    ) -> AuditEntryInfo | None:
        """
        Append an audit entry for ``event``.

        Postconditions:
            - On success, exactly one entry is flushed and returned.
            - On a database error, nothing is written, the error is logged
              at ERROR, and None is returned.  The caller's own pending
              changes are untouched.
        """
        try:
            with self._session.begin_nested():
                entry = self._append(actor_id, event, ip_address)
        except (SQLAlchemyError, ImmutabilityError):
            logger.error(
                "audit_write_failed",
                extra={
                    "audit_action": event.action,
                    "contract_id": str(event.contract_id),
                    "user_id": str(actor_id),
                },
                exc_info=True,
            )
            return None

        logger.info(
            "audit_entry_recorded",
            extra={
                "audit_action": entry.action,
                "contract_id": str(entry.contract_id),
                "seq": entry.seq,
            },
        )
        return audit_to_info(entry)

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Postconditions:
            - Returns True only if every entry's payload still hashes to
              ``payload_hash``, every ``hash`` matches its recomputed value,
              and every ``prev_hash`` equals its predecessor's ``hash``.

        Raises:
            AuditChainBrokenError: At the first entry that fails.
        """
        entries = self._session.execute(
            select(AuditLogEntry).order_by(AuditLogEntry.seq)
        ).scalars().all()

        if not entries:
            return True

        if entries[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": entries[0].seq})
            raise AuditChainBrokenError(str(entries[0].id), "None", entries[0].prev_hash)

        for i, entry in enumerate(entries):
            payload_hash = hash_payload(entry.payload or {})
            if payload_hash != entry.payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(str(entry.id), payload_hash, entry.payload_hash)

            action = str(getattr(entry.action, "value", entry.action))
            expected_hash = hash_audit_entry(
                action=action,
                contract_id=str(entry.contract_id) if entry.contract_id else None,
                payload_hash=entry.payload_hash,
                prev_hash=entry.prev_hash,
            )
            if entry.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(str(entry.id), expected_hash, entry.hash)

            if i > 0:
                expected_prev = entries[i - 1].hash
                if entry.prev_hash != expected_prev:
                    logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                    raise AuditChainBrokenError(
                        str(entry.id), expected_prev, entry.prev_hash or "None"
                    )

        logger.info("audit_chain_valid", extra={"entry_count": len(entries)})
        return True
