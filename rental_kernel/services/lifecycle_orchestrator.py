"""
ContractLifecycleOrchestrator -- transaction boundary for contract operations.

Responsibility:
    The entry point a caller (HTTP handler, CLI, job) uses for every
    contract operation.  Each call runs as one unit of work: the
    operation is delegated to ContractService, then the session is
    committed on success or rolled back on any failure.

Architecture position:
    Kernel > Services -- outermost kernel service.  Builds ContractService
    with the injected collaborators, clock and policy.

Invariants enforced:
    - Atomicity: a failed operation leaves no partial status, money or
      payment update behind (rollback of the whole transaction).
    - Request-scoped log context: correlation_id, actor_id, contract_id
      and action are bound for the duration of the call.

Failure modes:
    - Every RentalKernelError is re-raised unchanged after rollback and
      logged once as ``contract_operation_rejected`` (WARNING).
    - Any other exception is re-raised after rollback and logged as
      ``contract_operation_failed`` (ERROR) with the traceback.
"""

import time
from typing import Any, Callable, Mapping, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.domain.collaborators import CompanySettingsProvider, Directory
from rental_kernel.domain.dtos import (
    ContractInfo,
    ContractTerms,
    HandoverInputs,
    SettlementInputs,
)
from rental_kernel.domain.identity import Actor
from rental_kernel.domain.policy import ContractPolicy
from rental_kernel.exceptions import RentalKernelError
from rental_kernel.logging_config import LogContext, get_logger
from rental_kernel.services.contract_service import ContractService

logger = get_logger("services.lifecycle_orchestrator")

T = TypeVar("T")


class ContractLifecycleOrchestrator:
    """
    Runs each contract operation in its own transaction.

    By default every operation commits on success and rolls back on
    failure.  Set ``auto_commit=False`` to leave transaction control to
    the caller (tests that inspect uncommitted state, or callers batching
    several operations).
    """

    def __init__(
        self,
        session: Session,
        directory: Directory,
        settings_provider: CompanySettingsProvider,
        policy: ContractPolicy | None = None,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._contracts = ContractService(
            session, directory, settings_provider, policy=policy, clock=self._clock
        )

    @property
    def contracts(self) -> ContractService:
        return self._contracts

    def _run(
        self,
        action: str,
        actor: Actor,
        contract_id: UUID | None,
        operation: Callable[[], T],
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor.user_id),
            contract_id=str(contract_id) if contract_id else None,
            action=action,
        ):
            t0 = time.monotonic()
            try:
                result = operation()
                if self._auto_commit:
                    self._session.commit()
            except RentalKernelError as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "contract_operation_rejected",
                    extra={
                        "error_code": exc.code,
                        "error": str(exc),
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
                raise
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "contract_operation_failed",
                    extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
                    exc_info=True,
                )
                raise

            logger.info(
                "contract_operation_completed",
                extra={"duration_ms": round((time.monotonic() - t0) * 1000, 2)},
            )
            return result

    # Create and edit

    def create_contract(
        self, actor: Actor, terms: ContractTerms | Mapping[str, Any]
    ) -> ContractInfo:
        return self._run("create", actor, None, lambda: self._contracts.create(actor, terms))

    def edit_contract(
        self,
        actor: Actor,
        contract_id: UUID,
        changes: Mapping[str, Any],
        reason: str | None,
    ) -> ContractInfo:
        return self._run(
            "edit", actor, contract_id,
            lambda: self._contracts.edit(actor, contract_id, changes, reason),
        )

    # Lifecycle

    def confirm(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        return self._run(
            "confirm", actor, contract_id, lambda: self._contracts.confirm(actor, contract_id)
        )

    def activate(
        self, actor: Actor, contract_id: UUID, handover: HandoverInputs | None = None
    ) -> ContractInfo:
        return self._run(
            "activate", actor, contract_id,
            lambda: self._contracts.activate(actor, contract_id, handover),
        )

    def complete(
        self, actor: Actor, contract_id: UUID, settlement: SettlementInputs
    ) -> ContractInfo:
        return self._run(
            "complete", actor, contract_id,
            lambda: self._contracts.complete(actor, contract_id, settlement),
        )

    def close(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        return self._run(
            "close", actor, contract_id, lambda: self._contracts.close(actor, contract_id)
        )

    # Payments

    def record_deposit(self, actor: Actor, contract_id: UUID, method: str) -> ContractInfo:
        return self._run(
            "record_deposit", actor, contract_id,
            lambda: self._contracts.record_deposit(actor, contract_id, method),
        )

    def record_final_payment(self, actor: Actor, contract_id: UUID, method: str) -> ContractInfo:
        return self._run(
            "record_final_payment", actor, contract_id,
            lambda: self._contracts.record_final_payment(actor, contract_id, method),
        )

    def record_refund(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        return self._run(
            "record_refund", actor, contract_id,
            lambda: self._contracts.record_refund(actor, contract_id),
        )

    # Soft delete and print

    def disable(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        return self._run(
            "disable", actor, contract_id, lambda: self._contracts.disable(actor, contract_id)
        )

    def enable(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        return self._run(
            "enable", actor, contract_id, lambda: self._contracts.enable(actor, contract_id)
        )

    def record_print(self, actor: Actor, contract_id: UUID) -> ContractInfo:
        return self._run(
            "print", actor, contract_id, lambda: self._contracts.record_print(actor, contract_id)
        )
