"""
EditTracker -- append-only history of draft contract edits.

Responsibility:
    Persists one ContractEdit row per accepted edit: who, when, why, and
    the full editable field set before and after the change.

Architecture position:
    Kernel > Services -- imperative shell.  Called by ContractService.edit
    after the new terms have been validated and the money recomputed.

Invariants enforced:
    - The edit reason is never blank (EditReasonRequiredError otherwise).
    - Snapshots are stored whole, not as diffs; ``changes_summary`` is
      derived from them and lists the differing keys in sorted order.
    - Rows are never updated or deleted (ORM listener in db/immutability.py).
"""

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.dtos import EditRecordInfo
from rental_kernel.exceptions import EditReasonRequiredError
from rental_kernel.logging_config import get_logger
from rental_kernel.models.contract_edit import ContractEdit
from rental_kernel.selectors.mappers import edit_to_info

logger = get_logger("services.edit_tracker")


def changed_fields(before: Mapping[str, Any], after: Mapping[str, Any]) -> tuple[str, ...]:
    """Sorted keys whose values differ (a key missing on one side counts)."""
    keys = set(before) | set(after)
    return tuple(sorted(k for k in keys if before.get(k) != after.get(k)))


def require_reason(contract_id: UUID, reason: str | None) -> str:
    """
    Raises:
        EditReasonRequiredError: ``reason`` is None, empty or whitespace.
    """
    if reason is None or not reason.strip():
        raise EditReasonRequiredError(str(contract_id))
    return reason.strip()


class EditTracker:
    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def record_edit(
        self,
        contract_id: UUID,
        editor_id: UUID,
        reason: str | None,
        before: Mapping[str, Any],
        after: Mapping[str, Any],
        ip_address: str | None = None,
    ) -> EditRecordInfo:
        """
        Append an edit record.

        Preconditions:
            - ``before`` and ``after`` are JSON-safe snapshots.

        Raises:
            EditReasonRequiredError: Blank reason; nothing is written.
        """
        reason = require_reason(contract_id, reason)
        summary = changed_fields(before, after)

        edit = ContractEdit(
            contract_id=contract_id,
            edited_by_id=editor_id,
            edited_at=self._clock.now(),
            edit_reason=reason,
            changes_summary=list(summary),
            fields_before=dict(before),
            fields_after=dict(after),
            ip_address=ip_address,
        )
        self._session.add(edit)
        self._session.flush()

        logger.info(
            "contract_edit_recorded",
            extra={
                "contract_id": str(contract_id),
                "edit_id": str(edit.id),
                "changed_fields": list(summary),
            },
        )
        return edit_to_info(edit)
