"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing numbers for contract numbers and audit
    log entries.  Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) so that two concurrent callers never
    receive the same value.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by ContractService (via ContractNumberAllocator) and
    AuditRecorder.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of truth
      for the next value.  MAX(contract_number) + 1 is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.
    - Never reused: disabling a contract does not give its number back.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).

Audit relevance:
    Allocation is logged at DEBUG as ``sequence_allocated`` with the
    sequence name and value.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rental_kernel.logging_config import get_logger
from rental_kernel.models.sequence_counter import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations for
          the same sequence.
        - The first value of a new sequence is ``start``; every later
          value is the previous one plus one.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    # Well-known sequence names
    CONTRACT_NUMBER = "contract_number"
    AUDIT_LOG = "audit_log"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str, start: int = 1) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - The caller is within an active database transaction.
            - ``start`` > 0; it only matters on first use of the name.

        Postconditions:
            - Returns an integer strictly greater than any value
              previously committed for this sequence name.
            - The counter row stays locked until the transaction ends.
        """
        if start < 1:
            raise ValueError(f"Sequence start must be positive, got {start}")

        counter = self._locked_counter(sequence_name)

        if counter is None:
            # First use; another transaction may be creating the same row
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=start)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": start},
                )
                return start
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing, or None if unused."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None


class ContractNumberAllocator:
    """
    Issues contract numbers from the ``contract_number`` sequence.

    The first number ever issued is ``first_number`` (configured as
    ``contracts.contract_number_start``).
    """

    def __init__(self, session: Session, first_number: int):
        self._sequence = SequenceService(session)
        self._first_number = first_number

    def next_contract_number(self) -> int:
        return self._sequence.next_value(
            SequenceService.CONTRACT_NUMBER, start=self._first_number
        )
