"""
Tests - typed validation (ValidationResult) for case statuses and status records.
"""

import typing
from datetime import date

import pytest

from immigration.core.exceptions import ValidationError
from immigration.schemas import ValidationResult
from immigration.schemas.case_status import validate_case_status, validate_reorder
from immigration.schemas.status_record import StatusRecordInput, validate_status_record


class TestValidationResult:
    def test_ok_and_unwrap(self):
        assert ValidationResult(value=3).unwrap() == 3
        failed = ValidationResult(errors={"name": "required"})
        assert not failed.ok
        with pytest.raises(ValidationError) as exc:
            failed.unwrap("Bad")
        assert exc.value.details == {"name": "required"}


class TestCaseStatusSchema:
    def test_valid_payload(self):
        result = validate_case_status({
            "name": "Protocolado", "code": "Submitted_1", "sort_order": 5,
            "category": "review", "color": "#abc", "fillable_fields": ["protocol_number"],
        })
        assert result.ok
        assert result.value.code == "submitted_1"
        assert result.value.color == "#ABC"
        assert result.value.fillable_fields == ["protocol_number"]

    def test_required_fields(self):
        result = validate_case_status({})
        assert set(result.errors) == {"name", "code", "sort_order"}

    @pytest.mark.parametrize("payload,field", [
        ({"code": "has space"}, "code"),
        ({"sort_order": 0}, "sort_order"),
        ({"sort_order": True}, "sort_order"),
        ({"category": "limbo"}, "category"),
        ({"color": "red"}, "color"),
        ({"order_number": 100}, "order_number"),
        ({"fillable_fields": ["notes"]}, "fillable_fields"),
        ({"description": "x" * 501}, "description"),
    ])
    def test_invalid_values(self, payload, field):
        base = {"name": "N", "code": "n", "sort_order": 1}
        base.update(payload)
        assert field in validate_case_status(base).errors

    def test_partial_only_checks_present_fields(self):
        result = validate_case_status({"color": "#112233"}, partial=True)
        assert result.ok
        assert result.value.changes() == {"color": "#112233"}

    def test_reorder(self):
        assert validate_reorder({"updates": [{"id": 1, "sort_order": 2}]}).value == [(1, 2)]
        assert not validate_reorder({"updates": []}).ok
        assert not validate_reorder({"updates": [{"id": "1", "sort_order": 2}]}).ok


class TestStatusRecordSchema:
    def test_defaults(self):
        value = validate_status_record({"case_status_id": 4}).unwrap()
        assert value.is_active is True
        assert value.date is None
        assert value.filled_fields_data == {}

    def test_date_format(self):
        assert validate_status_record({"case_status_id": 1, "date": "2025-02-30"}).errors["date"]
        assert validate_status_record({"case_status_id": 1, "date": "01/02/2025"}).errors["date"]
        ok = validate_status_record({"case_status_id": 1, "date": "2025-02-28"}).unwrap()
        assert ok.date == date(2025, 2, 28)

    def test_notes_length(self):
        result = validate_status_record({"case_status_id": 1, "notes": "x" * 1001})
        assert "notes" in result.errors

    def test_partial_rejects_status_change(self):
        result = validate_status_record({"case_status_id": 2}, partial=True)
        assert "_fields" in result.errors

    def test_expected_version_type(self):
        result = validate_status_record({"case_status_id": 1, "expected_version": "3"})
        assert "expected_version" in result.errors

    def test_date_annotation_resolves(self):
        hints = typing.get_type_hints(StatusRecordInput)
        assert hints["date"] == date | None
        assert StatusRecordInput(case_status_id=1).date is None
