"""
ContractService -- the rental contract aggregate.

Responsibility:
    Owns every write to a RentalContract: creation, draft edits, the five
    lifecycle transitions, the payment sub-transitions, soft delete and
    print logging.  Each operation validates its preconditions, derives
    money through the calculator, flushes the new state and records one
    audit entry.

Architecture position:
    Kernel > Services -- imperative shell.  Called by
    ContractLifecycleOrchestrator (or directly by tests inside their own
    transaction).  Depends on AvailabilityService, EditTracker,
    AuditRecorder and the sequence allocator; reads collaborators through
    the Directory and CompanySettingsProvider protocols.

Invariants enforced:
    - Transition legality: every status change is looked up in
      CONTRACT_WORKFLOW; payment state changes in PAYMENT_WORKFLOW.  An
      illegal action raises InvalidTransitionError before any field is
      touched.
    - Linearized transitions: the contract row is read with
      SELECT ... FOR UPDATE, and every UPDATE is guarded by the ORM
      version column.  A lost race surfaces as StateConflictError.
    - Server-side money: subtotal, VAT, totals, deposit and settlement
      figures are always recomputed here; callers cannot supply them.
    - Lifecycle stamps: each ``<stamp>_by_id``/``<stamp>_at`` pair is
      written once, by the transition that owns it.
    - Exclusivity: confirm, activate and enable (of a confirmed, active
      or completed contract) hold the vehicle booking lock while checking
      for overlapping blocking contracts.

Failure modes:
    - InvalidTransitionError, ClosureBlockedError, ContractDisabledError,
      ContractLockedError, EditReasonRequiredError
    - StateConflictError, VehicleUnavailableError, ForbiddenRoleError
    - ContractNotFoundError and the directory NotFound variants
    - ContractValidationError, ProtectedFieldError, InvalidCurrencyError

Audit relevance:
    Exactly one AuditLogEntry per successful operation; rejected
    operations write nothing.
"""

from __future__ import annotations

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from rental_kernel.domain.audit_events import (
    ContractActivated,
    ContractAuditEvent,
    ContractClosed,
    ContractCompleted,
    ContractConfirmed,
    ContractCreated,
    ContractDisabled,
    ContractEdited,
    ContractEnabled,
    ContractPrinted,
    DepositRecorded,
    DepositRefunded,
    FinalPaymentRecorded,
)
from rental_kernel.domain.calculator import (
    compute_extra_km,
    compute_outstanding_balance,
    compute_rental_charges,
    compute_total_extra_charges,
    resolve_vat_percentage,
)
from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.collaborators import (
    CompanySettingsProvider,
    Directory,
    VehicleRecord,
)
from rental_kernel.domain.dtos import (
    PAYMENT_METHODS,
    ContractInfo,
    ContractTerms,
    HandoverInputs,
    SettlementInputs,
)
from rental_kernel.domain.identity import Actor, Capability, require, require_edit
from rental_kernel.domain.lifecycle import (
    BLOCKING_STATUSES,
    CONTRACT_WORKFLOW,
    PAYMENT_OPEN_STATUSES,
    PAYMENT_WORKFLOW,
)
from rental_kernel.domain.money import ZERO, money_from_str, round_money, validate_currency
from rental_kernel.domain.policy import ContractPolicy
from rental_kernel.domain.workflow import Transition
from rental_kernel.exceptions import (
    ClosureBlockedError,
    ContractDisabledError,
    ContractLockedError,
    ContractNotFoundError,
    ContractValidationError,
    CustomerNotFoundError,
    DirectoryRecordDisabledError,
    InvalidTransitionError,
    PersonNotFoundError,
    StateConflictError,
    VehicleNotFoundError,
)
from rental_kernel.logging_config import get_logger
from rental_kernel.models.contract import (
    ContractStatus,
    PaymentStatus,
    RentalContract,
)
from rental_kernel.selectors.mappers import (
    contract_to_info,
    snapshot_contract,
    terms_from_contract,
)
from rental_kernel.services.audit_recorder import AuditRecorder
from rental_kernel.services.availability_service import AvailabilityService
from rental_kernel.services.base import BaseService
from rental_kernel.services.edit_tracker import EditTracker, require_reason
from rental_kernel.services.sequence_service import ContractNumberAllocator

logger = get_logger("services.contract")


def _status(row: RentalContract) -> str:
    return str(getattr(row.status, "value", row.status))


def _payment_status(row: RentalContract) -> str:
    return str(getattr(row.payment_status, "value", row.payment_status))


class ContractService(BaseService[RentalContract]):
    """
    Every write operation on a rental contract.

    Contract:
        Each public method takes the acting ``Actor`` and returns a fresh
        ``ContractInfo`` snapshot of the contract after the operation.

    Non-goals:
        - Does NOT commit; the orchestrator owns the transaction.
        - Does NOT render or print documents; ``record_print`` only logs
          that a print happened.
    """

    def __init__(
        self,
        session: Session,
        directory: Directory,
        settings_provider: CompanySettingsProvider,
        policy: ContractPolicy | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._directory = directory
        self._settings_provider = settings_provider
        self._policy = policy or ContractPolicy()
        self._clock = clock or SystemClock()
        self._numbers = ContractNumberAllocator(session, self._policy.contract_number_start)
        self._availability = AvailabilityService(session, self._clock)
        self._edits = EditTracker(session, self._clock)
        self._audit = AuditRecorder(session, self._clock)

    # =========================================================================
    # Loading and guards
    # =========================================================================

    def _load(self, contract_id: UUID, for_update: bool = True) -> RentalContract:
        stmt = select(RentalContract).where(RentalContract.id == contract_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise ContractNotFoundError(str(contract_id))
        return row

    @staticmethod
    def _ensure_enabled(row: RentalContract, action: str) -> None:
        if row.disabled:
            raise ContractDisabledError(str(row.id), action, _status(row))

    @staticmethod
    def _require_transition(row: RentalContract, action: str) -> Transition:
        """
        Raises:
            InvalidTransitionError: ``action`` is not legal from the
                contract's current status.
        """
        status = _status(row)
        transition = CONTRACT_WORKFLOW.transition_for(status, action)
        if transition is None:
            sources = CONTRACT_WORKFLOW.sources_for(action)
            raise InvalidTransitionError(
                str(row.id),
                action,
                status,
                reason=f"requires status {' or '.join(sources)}" if sources else None,
            )
        return transition

    @staticmethod
    def _require_payment_transition(row: RentalContract, action: str, reason: str) -> str:
        """Resolve the payment sub-state change; returns the new payment status."""
        transition = PAYMENT_WORKFLOW.transition_for(_payment_status(row), action)
        if transition is None:
            raise InvalidTransitionError(str(row.id), action, _status(row), reason=reason)
        return transition.to_state

    def _flush(self, row: RentalContract, action: str, expected_status: str) -> None:
        """
        Flush pending changes to ``row``.

        Raises:
            StateConflictError: Another transaction updated the row since
                it was read (version mismatch).
        """
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "contract_state_conflict",
                extra={
                    "contract_id": str(row.id),
                    "transition": action,
                    "expected_status": expected_status,
                },
            )
            raise StateConflictError(str(row.id), action, expected_status) from exc

    def _transition(self, row: RentalContract, action: str, actor: Actor) -> Transition:
        """
        Apply a lifecycle transition to an already-loaded row.

        Preconditions:
            - Guards specific to ``action`` have been checked and any
              fields the transition sets have been assigned on ``row``.

        Postconditions:
            - status is the transition's target, the stamp pair (if any)
              is written, and the row is flushed.
        """
        transition = self._require_transition(row, action)
        from_status = _status(row)
        now = self._clock.now()

        row.status = transition.to_state
        if transition.stamp:
            setattr(row, f"{transition.stamp}_by_id", actor.user_id)
            setattr(row, f"{transition.stamp}_at", now)
        row.updated_by_id = actor.user_id
        row.updated_at = now
        self._flush(row, action, from_status)

        logger.info(
            "contract_transitioned",
            extra={
                "contract_id": str(row.id),
                "contract_number": row.contract_number,
                "transition": action,
                "from_status": from_status,
                "to_status": transition.to_state,
            },
        )
        return transition

    def _record(self, actor: Actor, event: ContractAuditEvent) -> None:
        self._audit.record(actor.user_id, event, ip_address=actor.ip_address)

    # =========================================================================
    # Collaborators and derived money
    # =========================================================================

    def _require_parties(self, terms: ContractTerms) -> VehicleRecord:
        """
        Check that every directory record the terms reference exists and
        is enabled.

        Raises:
            CustomerNotFoundError, VehicleNotFoundError, PersonNotFoundError,
            DirectoryRecordDisabledError
        """
        customer = self._directory.get_customer(terms.customer_id)
        if customer is None:
            raise CustomerNotFoundError(str(terms.customer_id))
        if customer.disabled:
            raise DirectoryRecordDisabledError("Customer", str(terms.customer_id))

        vehicle = self._directory.get_vehicle(terms.vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(str(terms.vehicle_id))
        if vehicle.disabled:
            raise DirectoryRecordDisabledError("Vehicle", str(terms.vehicle_id))

        if terms.sponsor_person_id is not None:
            person = self._directory.get_person(terms.sponsor_person_id)
            if person is None:
                raise PersonNotFoundError(str(terms.sponsor_person_id))
            if person.disabled:
                raise DirectoryRecordDisabledError("Person", str(terms.sponsor_person_id))
        return vehicle

    def _company_settings(self):
        return self._settings_provider.get_company_settings()

    def _currency(self) -> str:
        settings = self._company_settings()
        if settings is not None and settings.currency:
            return validate_currency(settings.currency)
        return self._policy.default_currency

    def _vat_percentage(self):
        settings = self._company_settings()
        configured = settings.vat_percentage if settings is not None else None
        return resolve_vat_percentage(configured, self._policy.default_vat_percentage)

    def _security_deposit(self, vehicle: VehicleRecord):
        if vehicle.security_deposit is not None:
            try:
                deposit = money_from_str(vehicle.security_deposit)
            except ValueError as exc:
                raise ContractValidationError("security_deposit", str(exc)) from exc
            if deposit < 0:
                raise ContractValidationError("security_deposit", "must not be negative")
            return deposit
        return self._policy.default_security_deposit

    def _apply_terms(self, row: RentalContract, terms: ContractTerms) -> None:
        """Copy the terms onto the row and recompute the rental money."""
        charges = compute_rental_charges(
            terms.rental_type,
            terms.start_date,
            terms.end_date,
            terms.daily_rate,
            terms.weekly_rate,
            terms.monthly_rate,
            self._vat_percentage(),
        )
        for name in ContractTerms.field_names():
            setattr(row, name, getattr(terms, name))
        row.total_days = charges.total_days
        row.vat_percentage = charges.vat_percentage
        row.subtotal = charges.subtotal
        row.vat_amount = charges.vat_amount
        row.total_amount = charges.total_amount

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, contract_id: UUID) -> ContractInfo:
        """
        Raises:
            ContractNotFoundError: No contract with that id.
        """
        return contract_to_info(self._load(contract_id, for_update=False))

    # =========================================================================
    # Create and edit
    # =========================================================================

    def create(self, actor: Actor, terms: ContractTerms | Mapping[str, Any]) -> ContractInfo:
        """
        Create a draft contract with server-computed money.

        Postconditions:
            - status is draft, payment status is pending.
            - contract_number is the next value of the contract sequence.
            - One ``contract_created`` audit entry.
        """
        require(actor, Capability.CREATE, "create")
        if not isinstance(terms, ContractTerms):
            terms = ContractTerms.from_mapping(terms)
        terms.validate()
        vehicle = self._require_parties(terms)

        now = self._clock.now()
        row = RentalContract(
            status=ContractStatus.DRAFT.value,
            payment_status=PaymentStatus.PENDING.value,
            currency=self._currency(),
            security_deposit=self._security_deposit(vehicle),
            created_by_id=actor.user_id,
            created_at=now,
            updated_at=now,
            deposit_paid=False,
            final_payment_received=False,
            deposit_refunded=False,
            disabled=False,
        )
        self._apply_terms(row, terms)
        row.contract_number = self._numbers.next_contract_number()

        self.session.add(row)
        self.session.flush()

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(row.id),
                "contract_number": row.contract_number,
                "total_amount": str(row.total_amount),
                "currency": row.currency,
            },
        )
        self._record(
            actor,
            ContractCreated(
                contract_id=row.id,
                contract_number=row.contract_number,
                total_amount=row.total_amount,
                currency=row.currency,
            ),
        )
        return contract_to_info(row)

    def edit(
        self,
        actor: Actor,
        contract_id: UUID,
        changes: Mapping[str, Any],
        reason: str | None,
    ) -> ContractInfo:
        """
        Change the terms of a draft contract.

        Checks run in this order: disabled, locked (not draft), role,
        reason, field names, field values.  Money is recomputed from the
        merged terms; the security deposit is re-derived when the vehicle
        changes.

        Postconditions:
            - One ContractEdit row with full before/after snapshots.
            - One ``contract_edited`` audit entry.
        """
        row = self._load(contract_id)
        self._ensure_enabled(row, "edit")
        if _status(row) != ContractStatus.DRAFT.value:
            raise ContractLockedError(str(row.id), _status(row))
        require_edit(actor, row.created_by_id)
        reason = require_reason(row.id, reason)

        current = terms_from_contract(row)
        updated = current.with_changes(changes)
        updated.validate()
        vehicle = self._require_parties(updated)

        before = snapshot_contract(row)
        self._apply_terms(row, updated)
        if updated.vehicle_id != current.vehicle_id:
            row.security_deposit = self._security_deposit(vehicle)
        self._transition(row, "edit", actor)
        after = snapshot_contract(row)

        edit = self._edits.record_edit(
            row.id, actor.user_id, reason, before, after, ip_address=actor.ip_address
        )
        self._record(
            actor,
            ContractEdited(
                contract_id=row.id,
                contract_number=row.contract_number,
                edit_id=edit.id,
                reason=reason,
                changed_fields=edit.changes_summary,
            ),
        )
        return contract_to_info(row)

    # =========================================================================
    # Lifecycle transitions
    # =========================================================================

    def confirm(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        """draft -> confirmed.  Fails fast if the vehicle is already booked."""
        require(actor, Capability.TRANSITION, "confirm")
        row = self._load(contract_id)
        self._ensure_enabled(row, "confirm")
        self._require_transition(row, "confirm")
        self._availability.ensure_available(
            row.vehicle_id, row.start_date, row.end_date,
            exclude_contract_id=row.id, action="confirm",
        )

        self._transition(row, "confirm", actor)
        self._record(
            actor, ContractConfirmed(contract_id=row.id, contract_number=row.contract_number)
        )
        return contract_to_info(row)

    def activate(
        self,
        actor: Actor,
        contract_id: UUID,
        handover: HandoverInputs | None = None,
    ) -> ContractInfo:
        """
        confirmed -> active (vehicle handed over).

        Re-checks the directory records and availability under the vehicle
        lock, then records the optional odometer and fuel level at pickup.
        """
        require(actor, Capability.TRANSITION, "activate")
        row = self._load(contract_id)
        self._ensure_enabled(row, "activate")
        self._require_transition(row, "activate")
        handover = handover or HandoverInputs()
        handover.validate()
        self._require_parties(terms_from_contract(row))
        self._availability.ensure_available(
            row.vehicle_id, row.start_date, row.end_date,
            exclude_contract_id=row.id, action="activate",
        )

        if handover.odometer_start is not None:
            row.odometer_start = handover.odometer_start
        if handover.fuel_level_start is not None:
            row.fuel_level_start = handover.fuel_level_start
        self._transition(row, "activate", actor)
        self._record(
            actor,
            ContractActivated(
                contract_id=row.id,
                contract_number=row.contract_number,
                vehicle_id=row.vehicle_id,
                odometer_start=row.odometer_start,
                fuel_level_start=row.fuel_level_start,
            ),
        )
        return contract_to_info(row)

    def complete(
        self,
        actor: Actor,
        contract_id: UUID,
        settlement: SettlementInputs,
    ) -> ContractInfo:
        """
        active -> completed (vehicle returned), computing the settlement.

        Raises:
            ContractValidationError: Missing return data, no odometer
                reading from hand-over, or odometer_end below it.
        """
        require(actor, Capability.TRANSITION, "complete")
        row = self._load(contract_id)
        self._ensure_enabled(row, "complete")
        self._require_transition(row, "complete")
        settlement.validate()
        if row.odometer_start is None:
            raise ContractValidationError("odometer_start", "not recorded at activation")
        if settlement.odometer_end < row.odometer_start:
            raise ContractValidationError(
                "odometer_end", f"must not be below odometer_start ({row.odometer_start})"
            )

        extra = compute_extra_km(
            row.odometer_start,
            settlement.odometer_end,
            row.mileage_limit,
            row.total_days,
            row.extra_km_rate,
        )
        total_extra = compute_total_extra_charges(
            extra.extra_km_charge,
            settlement.fuel_charge,
            settlement.damage_charge,
            settlement.other_charges,
        )
        outstanding = compute_outstanding_balance(
            row.total_amount, total_extra, row.deposit_paid, row.security_deposit
        )

        row.odometer_end = settlement.odometer_end
        row.fuel_level_end = settlement.fuel_level_end
        if settlement.vehicle_condition is not None:
            row.vehicle_condition = settlement.vehicle_condition
        row.extra_km_driven = extra.extra_km_driven
        row.extra_km_charge = extra.extra_km_charge
        row.fuel_charge = settlement.fuel_charge
        row.damage_charge = settlement.damage_charge
        row.other_charges = settlement.other_charges
        row.total_extra_charges = total_extra
        row.outstanding_balance = outstanding
        self._transition(row, "complete", actor)

        if outstanding < 0:
            logger.warning(
                "settlement_credit_due",
                extra={
                    "contract_id": str(row.id),
                    "contract_number": row.contract_number,
                    "outstanding_balance": str(outstanding),
                },
            )
        self._record(
            actor,
            ContractCompleted(
                contract_id=row.id,
                contract_number=row.contract_number,
                odometer_end=row.odometer_end,
                extra_km_driven=extra.extra_km_driven,
                total_extra_charges=total_extra,
                outstanding_balance=outstanding,
            ),
        )
        return contract_to_info(row)

    def close(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        """
        completed -> closed.  Payment status is forced to paid.

        Raises:
            ClosureBlockedError: Balance outstanding and no final payment.
        """
        require(actor, Capability.TRANSITION, "close")
        row = self._load(contract_id)
        self._ensure_enabled(row, "close")
        self._require_transition(row, "close")
        outstanding = row.outstanding_balance if row.outstanding_balance is not None else ZERO
        if outstanding != 0 and not row.final_payment_received:
            raise ClosureBlockedError(str(row.id), str(round_money(outstanding)))

        row.payment_status = self._require_payment_transition(
            row, "close", "payment status cannot be settled"
        )
        self._transition(row, "close", actor)
        self._record(
            actor,
            ContractClosed(
                contract_id=row.id,
                contract_number=row.contract_number,
                outstanding_balance=outstanding,
                final_payment_received=bool(row.final_payment_received),
            ),
        )
        return contract_to_info(row)

    # =========================================================================
    # Payment ledger
    # =========================================================================

    def _load_for_payment(self, actor: Actor, contract_id: UUID, action: str) -> RentalContract:
        require(actor, Capability.RECORD_PAYMENT, action)
        row = self._load(contract_id)
        self._ensure_enabled(row, action)
        return row

    @staticmethod
    def _require_method(method: str | None) -> str:
        method = (method or "").strip()
        if method not in PAYMENT_METHODS:
            raise ContractValidationError(
                "payment_method", f"must be one of {', '.join(PAYMENT_METHODS)}"
            )
        return method

    def _require_payments_open(self, row: RentalContract, action: str) -> None:
        if _status(row) not in PAYMENT_OPEN_STATUSES:
            raise InvalidTransitionError(
                str(row.id), action, _status(row), reason="payments are closed"
            )

    def record_deposit(self, actor: Actor, contract_id: UUID, method: str) -> ContractInfo:
        """
        Record receipt of the security deposit (any status before closed).

        If the contract has already been settled, the outstanding balance
        is recomputed with the deposit credited.
        """
        row = self._load_for_payment(actor, contract_id, "record_deposit")
        self._require_payments_open(row, "record_deposit")
        if row.deposit_paid:
            raise InvalidTransitionError(
                str(row.id), "record_deposit", _status(row), reason="deposit already recorded"
            )
        method = self._require_method(method)
        new_payment_status = self._require_payment_transition(
            row, "record_deposit", "deposit cannot be recorded in this payment state"
        )

        row.deposit_paid = True
        row.deposit_paid_date = self._clock.now()
        row.deposit_paid_method = method
        row.payment_status = new_payment_status
        if row.total_extra_charges is not None and not row.final_payment_received:
            row.outstanding_balance = compute_outstanding_balance(
                row.total_amount, row.total_extra_charges, True, row.security_deposit
            )
        row.updated_by_id = actor.user_id
        self._flush(row, "record_deposit", _status(row))

        logger.info(
            "deposit_recorded",
            extra={"contract_id": str(row.id), "amount": str(row.security_deposit), "method": method},
        )
        self._record(
            actor,
            DepositRecorded(
                contract_id=row.id,
                contract_number=row.contract_number,
                amount=row.security_deposit,
                method=method,
            ),
        )
        return contract_to_info(row)

    def record_final_payment(self, actor: Actor, contract_id: UUID, method: str) -> ContractInfo:
        """Record that the remaining balance was paid; outstanding becomes zero."""
        row = self._load_for_payment(actor, contract_id, "record_final_payment")
        self._require_payments_open(row, "record_final_payment")
        if row.final_payment_received:
            raise InvalidTransitionError(
                str(row.id), "record_final_payment", _status(row),
                reason="final payment already recorded",
            )
        method = self._require_method(method)
        new_payment_status = self._require_payment_transition(
            row, "record_final_payment", "final payment cannot be recorded in this payment state"
        )

        if row.outstanding_balance is not None:
            settled = row.outstanding_balance
        else:
            settled = compute_outstanding_balance(
                row.total_amount, ZERO, row.deposit_paid, row.security_deposit
            )
        row.final_payment_received = True
        row.final_payment_date = self._clock.now()
        row.final_payment_method = method
        row.outstanding_balance = ZERO
        row.payment_status = new_payment_status
        row.updated_by_id = actor.user_id
        self._flush(row, "record_final_payment", _status(row))

        logger.info(
            "final_payment_recorded",
            extra={"contract_id": str(row.id), "balance_settled": str(settled), "method": method},
        )
        self._record(
            actor,
            FinalPaymentRecorded(
                contract_id=row.id,
                contract_number=row.contract_number,
                method=method,
                balance_settled=settled,
            ),
        )
        return contract_to_info(row)

    def record_refund(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        """Refund the security deposit of a closed contract."""
        row = self._load_for_payment(actor, contract_id, "record_refund")
        if _status(row) != ContractStatus.CLOSED.value:
            raise InvalidTransitionError(
                str(row.id), "record_refund", _status(row), reason="requires status closed"
            )
        if not row.deposit_paid:
            raise InvalidTransitionError(
                str(row.id), "record_refund", _status(row), reason="no deposit was recorded"
            )
        if row.deposit_refunded:
            raise InvalidTransitionError(
                str(row.id), "record_refund", _status(row), reason="deposit already refunded"
            )
        new_payment_status = self._require_payment_transition(
            row, "record_refund", "deposit cannot be refunded in this payment state"
        )

        row.deposit_refunded = True
        row.deposit_refunded_date = self._clock.now()
        row.payment_status = new_payment_status
        row.updated_by_id = actor.user_id
        self._flush(row, "record_refund", _status(row))

        logger.info(
            "deposit_refunded",
            extra={"contract_id": str(row.id), "amount": str(row.security_deposit)},
        )
        self._record(
            actor,
            DepositRefunded(
                contract_id=row.id,
                contract_number=row.contract_number,
                amount=row.security_deposit,
            ),
        )
        return contract_to_info(row)

    # =========================================================================
    # Soft delete and print
    # =========================================================================

    def disable(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        """Soft-delete a contract.  Status is left as it is."""
        require(actor, Capability.TOGGLE_DISABLED, "disable")
        row = self._load(contract_id)
        if row.disabled:
            raise InvalidTransitionError(
                str(row.id), "disable", _status(row), reason="contract is already disabled"
            )

        row.disabled = True
        row.disabled_by_id = actor.user_id
        row.disabled_at = self._clock.now()
        row.updated_by_id = actor.user_id
        self._flush(row, "disable", _status(row))

        logger.info("contract_disabled", extra={"contract_id": str(row.id)})
        self._record(
            actor, ContractDisabled(contract_id=row.id, contract_number=row.contract_number)
        )
        return contract_to_info(row)

    def enable(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        """
        Undo ``disable``; clears the disabled stamp pair.

        A contract that holds the vehicle again once enabled is re-checked
        for overlaps under the vehicle lock.

        Raises:
            VehicleUnavailableError: Another contract booked the vehicle
                for overlapping dates while this one was disabled.
        """
        require(actor, Capability.TOGGLE_DISABLED, "enable")
        row = self._load(contract_id)
        if not row.disabled:
            raise InvalidTransitionError(
                str(row.id), "enable", _status(row), reason="contract is not disabled"
            )

        if _status(row) in BLOCKING_STATUSES:
            self._availability.ensure_available(
                row.vehicle_id, row.start_date, row.end_date,
                exclude_contract_id=row.id, action="enable",
            )

        row.disabled = False
        row.disabled_by_id = None
        row.disabled_at = None
        row.updated_by_id = actor.user_id
        self._flush(row, "enable", _status(row))

        logger.info("contract_enabled", extra={"contract_id": str(row.id)})
        self._record(
            actor, ContractEnabled(contract_id=row.id, contract_number=row.contract_number)
        )
        return contract_to_info(row)

    def record_print(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        """Log that the contract document was printed.  No state change."""
        require(actor, Capability.PRINT, "print")
        row = self._load(contract_id, for_update=False)
        self._record(
            actor, ContractPrinted(contract_id=row.id, contract_number=row.contract_number)
        )
        return contract_to_info(row)
