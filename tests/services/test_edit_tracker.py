"""EditTracker: reason enforcement and whole-snapshot edit records."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from rental_kernel.exceptions import EditReasonRequiredError
from rental_kernel.models.contract_edit import ContractEdit
from rental_kernel.services.edit_tracker import EditTracker, changed_fields, require_reason


def test_changed_fields_sorted():
    before = {"b": 1, "a": 1, "c": 1}
    after = {"b": 2, "a": 2, "c": 1}
    assert changed_fields(before, after) == ("a", "b")


def test_changed_fields_counts_missing_keys():
    assert changed_fields({"a": 1}, {"a": 1, "z": None}) == ()
    assert changed_fields({"a": 1}, {"a": 1, "z": 0}) == ("z",)


def test_require_reason_strips():
    assert require_reason(uuid4(), "  typo in address \n") == "typo in address"


class TestRecordEdit:
    def test_writes_full_snapshots(self, session, clock):
        tracker = EditTracker(session, clock)
        contract_id, editor_id = uuid4(), uuid4()
        before = {"daily_rate": "100.00", "notes": None}
        after = {"daily_rate": "120.00", "notes": None}

        info = tracker.record_edit(
            contract_id, editor_id, "rate change", before, after, ip_address="192.168.1.9"
        )

        assert info.contract_id == contract_id
        assert info.edited_by_id == editor_id
        assert info.edited_at == clock.now()
        assert info.changes_summary == ("daily_rate",)
        assert info.fields_before == before
        assert info.fields_after == after
        assert info.ip_address == "192.168.1.9"

    def test_blank_reason_writes_nothing(self, session, clock):
        tracker = EditTracker(session, clock)
        with pytest.raises(EditReasonRequiredError):
            tracker.record_edit(uuid4(), uuid4(), "  ", {}, {"a": 1})
        count = session.execute(select(func.count()).select_from(ContractEdit)).scalar_one()
        assert count == 0

    def test_no_op_edit_still_recorded(self, session, clock):
        tracker = EditTracker(session, clock)
        info = tracker.record_edit(uuid4(), uuid4(), "re-saved", {"a": 1}, {"a": 1})
        assert info.changes_summary == ()

    def test_logged(self, session, clock, captured_logs):
        EditTracker(session, clock).record_edit(uuid4(), uuid4(), "why", {"a": 1}, {"a": 2})
        records = [r for r in captured_logs() if r["message"] == "contract_edit_recorded"]
        assert records[0]["changed_fields"] == ["a"]
