"""
Module: rental_kernel.domain.lifecycle
Responsibility:
    Declarative state machines for the rental contract: the main lifecycle
    (draft -> confirmed -> active -> completed -> closed) and the payment
    sub-state (unpaid -> deposit_paid -> fully_paid -> refunded).

Architecture:
    Kernel domain layer -- frozen dataclasses, no I/O.  ContractService
    resolves every status change through these tables; a status change
    that is not listed here cannot happen.

Invariants:
    - State names equal the ContractStatus / PaymentStatus values stored
      on the contract row.
    - ``closed`` and the legacy ``finalized`` are terminal.  ``finalized``
      has no incoming or outgoing transitions; it exists only so that old
      rows load and are treated as locked.
    - Payment events never move the main lifecycle, and the main
      lifecycle only touches the payment state at ``close``.

Failure modes:
    - A missing (state, action) entry is reported by the caller as
      InvalidTransitionError.
"""

from rental_kernel.domain.workflow import Guard, Transition, Workflow

# Guards
EDIT_REASON_GIVEN = Guard("edit_reason_given", "A non-blank edit reason is supplied")
MANAGER_APPROVAL = Guard("manager_approval", "Caller holds manager or admin role")
VEHICLE_AVAILABLE = Guard(
    "vehicle_available",
    "No other confirmed/active/completed contract holds the vehicle for an overlapping window",
)
RETURN_RECORDED = Guard("return_recorded", "Odometer and fuel level at return are supplied")
BALANCE_SETTLED = Guard(
    "balance_settled", "Outstanding balance is zero or the final payment was received"
)

CONTRACT_WORKFLOW = Workflow(
    name="rental_contract",
    description="Vehicle rental contract lifecycle",
    initial_state="draft",
    states=("draft", "confirmed", "active", "completed", "closed", "finalized"),
    transitions=(
        Transition("draft", "draft", action="edit", guard=EDIT_REASON_GIVEN),
        Transition("draft", "confirmed", action="confirm", guard=MANAGER_APPROVAL, stamp="confirmed"),
        Transition("confirmed", "active", action="activate", guard=VEHICLE_AVAILABLE, stamp="activated"),
        Transition("active", "completed", action="complete", guard=RETURN_RECORDED, stamp="completed"),
        Transition("completed", "closed", action="close", guard=BALANCE_SETTLED, stamp="closed"),
    ),
    terminal_states=("closed", "finalized"),
)

# Statuses that hold the vehicle for the contract's date range
BLOCKING_STATUSES: tuple[str, ...] = ("confirmed", "active", "completed")

# Payment events are accepted while the contract is in one of these
PAYMENT_OPEN_STATUSES: tuple[str, ...] = ("draft", "confirmed", "active", "completed")


# Guards
DEPOSIT_NOT_RECORDED = Guard("deposit_not_recorded", "Deposit has not been recorded yet")
FINAL_PAYMENT_NOT_RECORDED = Guard(
    "final_payment_not_recorded", "Final payment has not been recorded yet"
)
REFUNDABLE_DEPOSIT = Guard(
    "refundable_deposit", "Contract is closed, deposit was paid and not yet refunded"
)

PAYMENT_WORKFLOW = Workflow(
    name="rental_payment",
    description="Deposit, final payment and refund sub-state",
    initial_state="pending",
    states=("pending", "partial", "paid", "refunded"),
    transitions=(
        Transition("pending", "partial", action="record_deposit", guard=DEPOSIT_NOT_RECORDED),
        # Deposit taken after the rental was already settled
        Transition("paid", "paid", action="record_deposit", guard=DEPOSIT_NOT_RECORDED),
        Transition("pending", "paid", action="record_final_payment", guard=FINAL_PAYMENT_NOT_RECORDED),
        Transition("partial", "paid", action="record_final_payment", guard=FINAL_PAYMENT_NOT_RECORDED),
        Transition("pending", "paid", action="close"),
        Transition("partial", "paid", action="close"),
        Transition("paid", "paid", action="close"),
        Transition("paid", "refunded", action="record_refund", guard=REFUNDABLE_DEPOSIT),
    ),
    terminal_states=("refunded",),
)

# Stored payment status -> payment sub-state name
PAYMENT_STATE_LABELS: dict[str, str] = {
    "pending": "unpaid",
    "partial": "deposit_paid",
    "paid": "fully_paid",
    "refunded": "refunded",
}
