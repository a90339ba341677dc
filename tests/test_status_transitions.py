"""
Tests - status transition tables (pure functions, no DB).

Covers:
    - every documented individual and main edge
    - same-status moves, unknown current status (fails closed)
    - process_type dispatch and ValueError for unknown types
    - next-allowed listing and label formatting
"""

import pytest

from immigration.services.status_transitions import (
    INDIVIDUAL_PROCESS_STATUSES,
    INDIVIDUAL_STATUS_TRANSITIONS,
    MAIN_STATUS_TRANSITIONS,
    format_status,
    get_next_allowed_statuses,
    is_valid_individual_status_transition,
    is_valid_main_status_transition,
    is_valid_status_transition,
    transition_table,
)


class TestIndividualTable:
    @pytest.mark.parametrize("current,candidate", [
        ("pending_documents", "documents_submitted"),
        ("documents_submitted", "pending_documents"),
        ("documents_submitted", "documents_approved"),
        ("documents_approved", "preparing_submission"),
        ("preparing_submission", "submitted_to_government"),
        ("submitted_to_government", "under_government_review"),
        ("under_government_review", "government_approved"),
        ("under_government_review", "government_rejected"),
        ("government_approved", "completed"),
        ("government_rejected", "pending_documents"),
        ("completed", "under_government_review"),
        ("cancelled", "pending_documents"),
    ])
    def test_allowed_edges(self, current, candidate):
        assert is_valid_individual_status_transition(current, candidate)

    @pytest.mark.parametrize("current,candidate", [
        ("pending_documents", "documents_approved"),
        ("pending_documents", "completed"),
        ("documents_approved", "documents_submitted"),
        ("completed", "cancelled"),
        ("cancelled", "completed"),
        ("government_approved", "government_rejected"),
    ])
    def test_rejected_edges(self, current, candidate):
        assert not is_valid_individual_status_transition(current, candidate)

    def test_every_non_terminal_status_can_be_cancelled(self):
        for status in INDIVIDUAL_PROCESS_STATUSES:
            if status in ("completed", "cancelled"):
                continue
            assert is_valid_individual_status_transition(status, "cancelled"), status

    def test_same_status_is_allowed(self):
        for status in INDIVIDUAL_PROCESS_STATUSES:
            assert is_valid_individual_status_transition(status, status)

    def test_unknown_current_fails_closed(self):
        assert not is_valid_individual_status_transition("mystery", "pending_documents")

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            INDIVIDUAL_STATUS_TRANSITIONS["new"] = frozenset()


class TestMainTable:
    def test_edges(self):
        assert is_valid_main_status_transition("draft", "in_progress")
        assert is_valid_main_status_transition("draft", "cancelled")
        assert is_valid_main_status_transition("in_progress", "completed")
        assert is_valid_main_status_transition("completed", "in_progress")
        assert is_valid_main_status_transition("cancelled", "in_progress")
        assert not is_valid_main_status_transition("draft", "completed")
        assert not is_valid_main_status_transition("completed", "cancelled")

    def test_table_keys(self):
        assert set(MAIN_STATUS_TRANSITIONS) == {"draft", "in_progress", "completed", "cancelled"}


class TestDispatch:
    def test_process_type_dispatch(self):
        assert is_valid_status_transition("draft", "in_progress", "main")
        assert not is_valid_status_transition("draft", "in_progress", "individual")
        assert is_valid_status_transition("pending_documents", "cancelled", "individual")

    def test_unknown_process_type_raises(self):
        with pytest.raises(ValueError):
            is_valid_status_transition("draft", "in_progress", "company")

    def test_next_allowed_sorted(self):
        assert get_next_allowed_statuses("under_government_review", "individual") == [
            "cancelled", "government_approved", "government_rejected",
        ]
        assert get_next_allowed_statuses("unknown", "main") == []

    def test_transition_table_is_json_friendly(self):
        table = transition_table("main")
        assert table["draft"] == ["cancelled", "in_progress"]


def test_format_status():
    assert format_status("pending_documents") == "Pending Documents"
    assert format_status("draft") == "Draft"
    assert format_status("") == ""
