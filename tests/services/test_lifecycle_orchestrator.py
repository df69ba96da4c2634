"""
ContractLifecycleOrchestrator: one transaction and one log context per call.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from rental_kernel.domain.dtos import SettlementInputs
from rental_kernel.exceptions import (
    ClosureBlockedError,
    ContractNotFoundError,
    ForbiddenRoleError,
)
from rental_kernel.logging_config import LogContext
from rental_kernel.models.audit_log import AuditLogEntry
from rental_kernel.models.contract import RentalContract
from rental_kernel.services.audit_recorder import AuditRecorder
from rental_kernel.services.lifecycle_orchestrator import ContractLifecycleOrchestrator


def _messages(records, message):
    return [r for r in records if r["message"] == message]


class TestCommit:
    def test_success_is_visible_to_other_sessions(self, contract_in, session_factory):
        info = contract_in("confirmed")
        other = session_factory()
        try:
            row = other.get(RentalContract, info.id)
            assert row is not None
            assert row.status == "confirmed"
        finally:
            other.close()

    def test_rejection_rolls_back(self, contract_in, orchestrator, manager, session):
        info = contract_in("completed")
        with pytest.raises(ClosureBlockedError):
            orchestrator.close(manager, info.id)

        assert orchestrator.contracts.get(info.id).status == "completed"

    def test_unexpected_error_rolls_back(
        self, contract_in, orchestrator, manager, monkeypatch
    ):
        info = contract_in("draft")

        def _explode(self, *args, **kwargs):
            raise RuntimeError("audit backend down")

        monkeypatch.setattr(AuditRecorder, "record", _explode)
        with pytest.raises(RuntimeError):
            orchestrator.confirm(manager, info.id)

        monkeypatch.undo()
        assert orchestrator.contracts.get(info.id).status == "draft"

    def test_failed_operation_writes_no_audit(self, contract_in, orchestrator, staff, session):
        info = contract_in("draft")
        before = session.execute(select(func.count()).select_from(AuditLogEntry)).scalar_one()
        with pytest.raises(ForbiddenRoleError):
            orchestrator.close(staff, info.id)
        after = session.execute(select(func.count()).select_from(AuditLogEntry)).scalar_one()
        assert after == before

    def test_manual_transaction_control(
        self, session, directory, company_settings, policy, clock, make_terms, staff
    ):
        orch = ContractLifecycleOrchestrator(
            session, directory, company_settings, policy=policy, clock=clock, auto_commit=False
        )
        info = orch.create_contract(staff, make_terms())
        session.rollback()
        assert session.get(RentalContract, info.id) is None


class TestLogging:
    def test_completed_operation_logged_with_context(
        self, contract_in, orchestrator, manager, captured_logs
    ):
        info = contract_in("draft")
        orchestrator.confirm(manager, info.id)

        done = _messages(captured_logs(), "contract_operation_completed")[-1]
        assert done["action"] == "confirm"
        assert done["contract_id"] == str(info.id)
        assert done["actor_id"] == str(manager.user_id)
        assert "correlation_id" in done
        assert done["duration_ms"] >= 0

    def test_inner_logs_share_correlation_id(
        self, contract_in, orchestrator, manager, captured_logs
    ):
        info = contract_in("draft")
        orchestrator.confirm(manager, info.id)

        records = captured_logs()
        transitioned = _messages(records, "contract_transitioned")[-1]
        done = _messages(records, "contract_operation_completed")[-1]
        assert transitioned["correlation_id"] == done["correlation_id"]

    def test_create_has_no_contract_id_in_context(self, orchestrator, make_terms, staff, captured_logs):
        orchestrator.create_contract(staff, make_terms())
        done = _messages(captured_logs(), "contract_operation_completed")[-1]
        assert done["action"] == "create"
        assert "contract_id" not in done

    def test_rejection_logged_once(self, orchestrator, manager, captured_logs):
        missing = uuid4()
        with pytest.raises(ContractNotFoundError):
            orchestrator.complete(manager, missing, SettlementInputs(odometer_end=1))

        rejected = _messages(captured_logs(), "contract_operation_rejected")
        assert len(rejected) == 1
        assert rejected[0]["level"] == "WARNING"
        assert rejected[0]["error_code"] == "NOT_FOUND"
        assert rejected[0]["action"] == "complete"
        assert rejected[0]["contract_id"] == str(missing)

    def test_unexpected_error_logged_with_traceback(
        self, contract_in, orchestrator, manager, monkeypatch, captured_logs
    ):
        info = contract_in("draft")

        def _explode(self, *args, **kwargs):
            raise RuntimeError("audit backend down")

        monkeypatch.setattr(AuditRecorder, "record", _explode)
        with pytest.raises(RuntimeError):
            orchestrator.confirm(manager, info.id)

        failed = _messages(captured_logs(), "contract_operation_failed")
        assert len(failed) == 1
        assert failed[0]["level"] == "ERROR"
        assert failed[0]["exc_type"] == "RuntimeError"
        assert "traceback" in failed[0]

    def test_context_cleared_after_call(self, contract_in, orchestrator, manager):
        info = contract_in("draft")
        orchestrator.confirm(manager, info.id)
        assert LogContext.get_all() == {}
