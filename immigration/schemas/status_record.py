"""
Status history record validation.

Create payload:
    case_status_id      integer (required)
    date                "YYYY-MM-DD", optional (service defaults to today)
    notes               ≤ 1000 chars, optional
    is_active           bool, default True
    filled_fields_data  object, optional
    expected_version    integer, optional optimistic-lock token

Update payload (partial=True): only ``date`` and ``notes`` may change.
Moving a process to another status is always a new record.
"""

import re
from dataclasses import dataclass, field
import datetime

from immigration.schemas import ValidationResult, is_int

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
NOTES_MAX = 1000
_UPDATABLE = ("date", "notes")


@dataclass
class StatusRecordInput:
    case_status_id: int | None = None
    date: datetime.date | None = None
    notes: str | None = None
    is_active: bool = True
    filled_fields_data: dict = field(default_factory=dict)
    expected_version: int | None = None
    fields_set: frozenset = frozenset()


def _parse_date(value, errors):
    if value in (None, ""):
        return None
    if not isinstance(value, str) or not DATE_RE.match(value):
        errors["date"] = "Date must be in YYYY-MM-DD format"
        return None
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        errors["date"] = "Date is not a valid calendar date"
        return None


def _parse_notes(value, errors):
    if value is None:
        return None
    if not isinstance(value, str):
        errors["notes"] = "Notes must be a string"
        return None
    if len(value) > NOTES_MAX:
        errors["notes"] = f"Notes must be less than {NOTES_MAX} characters"
        return None
    return value.strip() or None


def validate_status_record(data: dict, partial: bool = False) -> ValidationResult:
    errors: dict[str, str] = {}
    out = StatusRecordInput()

    if partial:
        extra = sorted(k for k in data if k not in _UPDATABLE)
        if extra:
            errors["_fields"] = (
                f"Only {', '.join(_UPDATABLE)} can be updated; "
                f"add a new status record to change status (got {', '.join(extra)})"
            )
        if "date" in data:
            out.date = _parse_date(data["date"], errors)
        if "notes" in data:
            out.notes = _parse_notes(data["notes"], errors)
        out.fields_set = frozenset(k for k in _UPDATABLE if k in data)
        return ValidationResult(errors=errors) if errors else ValidationResult(value=out)

    case_status_id = data.get("case_status_id")
    if case_status_id is None:
        errors["case_status_id"] = "case_status_id is required"
    elif not is_int(case_status_id):
        errors["case_status_id"] = "case_status_id must be an integer"
    else:
        out.case_status_id = case_status_id

    out.date = _parse_date(data.get("date"), errors)
    out.notes = _parse_notes(data.get("notes"), errors)

    is_active = data.get("is_active", True)
    if not isinstance(is_active, bool):
        errors["is_active"] = "is_active must be a boolean"
    else:
        out.is_active = is_active

    filled = data.get("filled_fields_data")
    if filled is None:
        filled = {}
    if not isinstance(filled, dict):
        errors["filled_fields_data"] = "filled_fields_data must be an object"
    else:
        out.filled_fields_data = filled

    expected_version = data.get("expected_version")
    if expected_version is not None:
        if not is_int(expected_version):
            errors["expected_version"] = "expected_version must be an integer"
        else:
            out.expected_version = expected_version

    out.fields_set = frozenset(data)
    return ValidationResult(errors=errors) if errors else ValidationResult(value=out)
