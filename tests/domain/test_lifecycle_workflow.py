"""
Contract and payment state machines.

The tables in domain/lifecycle.py are the only source of legal status
changes; these tests pin them down edge by edge.
"""

import pytest

from rental_kernel.domain.lifecycle import (
    BLOCKING_STATUSES,
    CONTRACT_WORKFLOW,
    PAYMENT_OPEN_STATUSES,
    PAYMENT_STATE_LABELS,
    PAYMENT_WORKFLOW,
)
from rental_kernel.domain.workflow import Transition, Workflow
from rental_kernel.models.contract import ContractStatus, PaymentStatus


class TestContractWorkflow:
    @pytest.mark.parametrize(
        "state,action,target,stamp",
        [
            ("draft", "edit", "draft", None),
            ("draft", "confirm", "confirmed", "confirmed"),
            ("confirmed", "activate", "active", "activated"),
            ("active", "complete", "completed", "completed"),
            ("completed", "close", "closed", "closed"),
        ],
    )
    def test_legal_edges(self, state, action, target, stamp):
        transition = CONTRACT_WORKFLOW.transition_for(state, action)
        assert transition is not None
        assert transition.to_state == target
        assert transition.stamp == stamp

    @pytest.mark.parametrize(
        "state,action",
        [
            ("draft", "activate"),
            ("draft", "close"),
            ("confirmed", "edit"),
            ("confirmed", "confirm"),
            ("active", "close"),
            ("completed", "activate"),
            ("closed", "edit"),
            ("closed", "confirm"),
        ],
    )
    def test_illegal_edges(self, state, action):
        assert CONTRACT_WORKFLOW.transition_for(state, action) is None

    @pytest.mark.parametrize("state", ["closed", "finalized"])
    def test_terminal_states_have_no_actions(self, state):
        assert CONTRACT_WORKFLOW.actions_from(state) == ()

    def test_finalized_is_never_a_target(self):
        assert all(t.to_state != "finalized" for t in CONTRACT_WORKFLOW.transitions)

    def test_states_match_stored_statuses(self):
        assert set(CONTRACT_WORKFLOW.states) == {s.value for s in ContractStatus}

    def test_sources_for_close(self):
        assert CONTRACT_WORKFLOW.sources_for("close") == ("completed",)

    def test_blocking_statuses(self):
        assert BLOCKING_STATUSES == ("confirmed", "active", "completed")
        assert "draft" not in BLOCKING_STATUSES
        assert "closed" not in BLOCKING_STATUSES

    def test_payments_closed_after_close(self):
        assert "closed" not in PAYMENT_OPEN_STATUSES
        assert "finalized" not in PAYMENT_OPEN_STATUSES


class TestPaymentWorkflow:
    def test_states_match_stored_payment_statuses(self):
        assert set(PAYMENT_WORKFLOW.states) == {s.value for s in PaymentStatus}

    @pytest.mark.parametrize(
        "state,action,target",
        [
            ("pending", "record_deposit", "partial"),
            ("paid", "record_deposit", "paid"),
            ("pending", "record_final_payment", "paid"),
            ("partial", "record_final_payment", "paid"),
            ("partial", "close", "paid"),
            ("paid", "record_refund", "refunded"),
        ],
    )
    def test_legal_edges(self, state, action, target):
        assert PAYMENT_WORKFLOW.transition_for(state, action).to_state == target

    @pytest.mark.parametrize(
        "state,action",
        [
            ("partial", "record_deposit"),
            ("paid", "record_final_payment"),
            ("pending", "record_refund"),
            ("refunded", "record_refund"),
        ],
    )
    def test_illegal_edges(self, state, action):
        assert PAYMENT_WORKFLOW.transition_for(state, action) is None

    def test_labels(self):
        assert PAYMENT_STATE_LABELS == {
            "pending": "unpaid",
            "partial": "deposit_paid",
            "paid": "fully_paid",
            "refunded": "refunded",
        }


class TestWorkflowValidation:
    def test_unknown_initial_state(self):
        with pytest.raises(ValueError, match="initial state"):
            Workflow("w", "", "nowhere", ("a",), ())

    def test_unknown_target_state(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow("w", "", "a", ("a",), (Transition("a", "b", action="go"),))

    def test_terminal_state_with_outgoing_edge(self):
        with pytest.raises(ValueError, match="terminal"):
            Workflow(
                "w", "", "a", ("a", "b"),
                (Transition("b", "a", action="back"),),
                terminal_states=("b",),
            )

    def test_duplicate_action(self):
        with pytest.raises(ValueError, match="duplicate"):
            Workflow(
                "w", "", "a", ("a", "b"),
                (Transition("a", "b", action="go"), Transition("a", "a", action="go")),
            )
