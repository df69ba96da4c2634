"""
ORM-Level Immutability Enforcement.

===============================================================================
PURPOSE
===============================================================================

Edit history and the audit log are append-only.  A closed contract is the
settled record of a rental.  The services never issue writes that break
either rule; these listeners reject them from any other ORM code path.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

If a check fails, ImmutabilityViolationError is raised and the flush is
aborted.  The database is never modified.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable                     | What may still change
----------------|------------------------------------|------------------------------
ContractEdit    | ALWAYS (from creation)             | nothing
AuditLogEntry   | ALWAYS (from creation)             | nothing
RentalContract  | contract_number: once assigned     | -
RentalContract  | lifecycle stamps: once written     | disabled_by_id/disabled_at
RentalContract  | everything: once closed/finalized  | refund, payment_status,
                |                                    | soft-delete, audit metadata
RentalContract  | DELETE: always                     | use disable() instead

===============================================================================
NOTES
===============================================================================

1. updated_at, updated_by_id and version are bookkeeping columns and may
   change on any row.

2. The sealed check uses the status BEFORE the flush (attribute history),
   so the completed -> closed transition itself passes.

3. Models are imported inside _listener_table(); models import db.

===============================================================================
USAGE
===============================================================================

    from rental_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY - never in production):

    unregister_immutability_listeners()
    # ... do forbidden operation ...
    register_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from rental_kernel.exceptions import ImmutabilityViolationError
from rental_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Bookkeeping columns that may change on any row
_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id", "version"})

# Fields a closed (or legacy finalized) contract may still change
SEALED_CONTRACT_MUTABLE_FIELDS = frozenset({
    "deposit_refunded",
    "deposit_refunded_date",
    "payment_status",
    "disabled",
    "disabled_by_id",
    "disabled_at",
}) | _METADATA_FIELDS

# Written exactly once by the transition that owns them
LIFECYCLE_STAMP_FIELDS = (
    "created_by_id",
    "confirmed_by_id",
    "confirmed_at",
    "activated_by_id",
    "activated_at",
    "completed_by_id",
    "completed_at",
    "closed_by_id",
    "closed_at",
    "finalized_by_id",
    "finalized_at",
)

_SEALED_STATUSES = ("closed", "finalized")


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    extra = {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "operation": operation,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


# =============================================================================
# Append-only logs
# =============================================================================


def _check_contract_edit_immutability(mapper, connection, target):
    """Contract edits are never modified."""
    _block("ContractEdit", target.id, "UPDATE", "Contract edit records are immutable")


def _check_contract_edit_delete(mapper, connection, target):
    _block("ContractEdit", target.id, "DELETE", "Contract edit records cannot be deleted")


def _check_audit_log_immutability(mapper, connection, target):
    """Audit log entries are never modified."""
    _block("AuditLogEntry", target.id, "UPDATE", "Audit log entries are immutable")


def _check_audit_log_delete(mapper, connection, target):
    _block("AuditLogEntry", target.id, "DELETE", "Audit log entries cannot be deleted")


# =============================================================================
# RentalContract
# =============================================================================


def _was_sealed(target) -> bool:
    """True if the row was closed/finalized BEFORE this flush."""
    status_history = get_history(target, "status")
    if status_history.deleted:
        old_status = status_history.deleted[0]
        return str(getattr(old_status, "value", old_status)) in _SEALED_STATUSES
    if not status_history.added:
        current = target.status
        return str(getattr(current, "value", current)) in _SEALED_STATUSES
    return False


def _check_rental_contract_immutability(mapper, connection, target):
    """
    Guard contract numbers, lifecycle stamps and sealed contracts.

    Logic:
        1. contract_number may never change once assigned.
        2. A lifecycle stamp that already held a value may not be
           overwritten or cleared.
        3. If the contract was already closed/finalized, only the fields
           in SEALED_CONTRACT_MUTABLE_FIELDS may change.
    """
    number_history = get_history(target, "contract_number")
    if number_history.deleted and number_history.deleted[0] is not None:
        _block(
            "RentalContract",
            target.id,
            "UPDATE",
            "contract_number is immutable once assigned",
            field="contract_number",
        )

    for field in LIFECYCLE_STAMP_FIELDS:
        hist = get_history(target, field)
        if hist.deleted and hist.deleted[0] is not None:
            _block(
                "RentalContract",
                target.id,
                "UPDATE",
                f"Lifecycle stamp '{field}' is already set",
                field=field,
            )

    if _was_sealed(target):
        insp = inspect(target)
        for attr in insp.attrs:
            if attr.key in SEALED_CONTRACT_MUTABLE_FIELDS:
                continue
            if attr.history.has_changes():
                _block(
                    "RentalContract",
                    target.id,
                    "UPDATE",
                    f"Cannot modify field '{attr.key}' on a closed contract",
                    field=attr.key,
                )


def _check_rental_contract_delete(mapper, connection, target):
    _block(
        "RentalContract",
        target.id,
        "DELETE",
        "Contracts cannot be deleted; disable them instead",
    )


# =============================================================================
# Registration
# =============================================================================


def _listener_table():
    from rental_kernel.models.audit_log import AuditLogEntry
    from rental_kernel.models.contract import RentalContract
    from rental_kernel.models.contract_edit import ContractEdit

    return (
        (ContractEdit, "before_update", _check_contract_edit_immutability),
        (ContractEdit, "before_delete", _check_contract_edit_delete),
        (AuditLogEntry, "before_update", _check_audit_log_immutability),
        (AuditLogEntry, "before_delete", _check_audit_log_delete),
        (RentalContract, "before_update", _check_rental_contract_immutability),
        (RentalContract, "before_delete", _check_rental_contract_delete),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are skipped.
    """
    for target, event_name, listener_fn in _listener_table():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)

    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests.
    """
    for target, event_name, listener_fn in _listener_table():
        _safe_remove_listener(target, event_name, listener_fn)
