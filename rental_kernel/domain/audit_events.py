"""
Module: rental_kernel.domain.audit_events
Responsibility:
    The closed set of audit event kinds.  Each kind is a frozen dataclass
    with its own typed fields; the stored ``action`` string is a class
    attribute, never free text supplied by a caller.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O.  Built by
    ContractService, persisted by AuditRecorder.

Invariants enforced:
    - Every kind has a unique ``action`` (checked at import time).
    - ``payload()`` is JSON-safe: Decimals and UUIDs become strings,
      tuples become lists.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID


def _json_safe(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, tuple):
        return [_json_safe(v) for v in value]
    return value


@dataclass(frozen=True)
class ContractAuditEvent:
    """Base of all audit event kinds."""

    action: ClassVar[str] = ""

    contract_id: UUID
    contract_number: int

    def payload(self) -> dict[str, Any]:
        return {
            f.name: _json_safe(getattr(self, f.name))
            for f in fields(self)
            if f.name != "contract_id"
        }

    def details(self) -> str:
        """One-line human summary stored next to the payload."""
        return f"Contract #{self.contract_number}: {self.action.replace('_', ' ')}"


@dataclass(frozen=True)
class ContractCreated(ContractAuditEvent):
    action: ClassVar[str] = "contract_created"

    total_amount: Decimal
    currency: str

    def details(self) -> str:
        return f"Created contract #{self.contract_number} ({self.total_amount} {self.currency})"


@dataclass(frozen=True)
class ContractEdited(ContractAuditEvent):
    action: ClassVar[str] = "contract_edited"

    edit_id: UUID
    reason: str
    changed_fields: tuple[str, ...]

    def details(self) -> str:
        changed = ", ".join(self.changed_fields) or "no field changes"
        return f"Edited contract #{self.contract_number} ({changed}): {self.reason}"


@dataclass(frozen=True)
class ContractConfirmed(ContractAuditEvent):
    action: ClassVar[str] = "contract_confirmed"


@dataclass(frozen=True)
class ContractActivated(ContractAuditEvent):
    action: ClassVar[str] = "contract_activated"

    vehicle_id: UUID
    odometer_start: int | None = None
    fuel_level_start: str | None = None


@dataclass(frozen=True)
class ContractCompleted(ContractAuditEvent):
    action: ClassVar[str] = "contract_completed"

    odometer_end: int
    extra_km_driven: int
    total_extra_charges: Decimal
    outstanding_balance: Decimal

    def details(self) -> str:
        return (
            f"Completed contract #{self.contract_number}: extra charges "
            f"{self.total_extra_charges}, outstanding {self.outstanding_balance}"
        )


@dataclass(frozen=True)
class ContractClosed(ContractAuditEvent):
    action: ClassVar[str] = "contract_closed"

    outstanding_balance: Decimal
    final_payment_received: bool


@dataclass(frozen=True)
class DepositRecorded(ContractAuditEvent):
    action: ClassVar[str] = "deposit_recorded"

    amount: Decimal
    method: str

    def details(self) -> str:
        return f"Deposit {self.amount} received for contract #{self.contract_number} ({self.method})"


@dataclass(frozen=True)
class FinalPaymentRecorded(ContractAuditEvent):
    action: ClassVar[str] = "final_payment_recorded"

    method: str
    balance_settled: Decimal

    def details(self) -> str:
        return (
            f"Final payment received for contract #{self.contract_number} "
            f"({self.method}, settled {self.balance_settled})"
        )


@dataclass(frozen=True)
class DepositRefunded(ContractAuditEvent):
    action: ClassVar[str] = "deposit_refunded"

    amount: Decimal

    def details(self) -> str:
        return f"Deposit {self.amount} refunded for contract #{self.contract_number}"


@dataclass(frozen=True)
class ContractPrinted(ContractAuditEvent):
    action: ClassVar[str] = "contract_printed"


@dataclass(frozen=True)
class ContractDisabled(ContractAuditEvent):
    action: ClassVar[str] = "contract_disabled"


@dataclass(frozen=True)
class ContractEnabled(ContractAuditEvent):
    action: ClassVar[str] = "contract_enabled"


EVENT_KINDS: tuple[type[ContractAuditEvent], ...] = (
    ContractCreated,
    ContractEdited,
    ContractConfirmed,
    ContractActivated,
    ContractCompleted,
    ContractClosed,
    DepositRecorded,
    FinalPaymentRecorded,
    DepositRefunded,
    ContractPrinted,
    ContractDisabled,
    ContractEnabled,
)

EVENT_KIND_BY_ACTION: dict[str, type[ContractAuditEvent]] = {
    kind.action: kind for kind in EVENT_KINDS
}

if len(EVENT_KIND_BY_ACTION) != len(EVENT_KINDS):
    raise RuntimeError("Duplicate audit event action")
