"""
Case status catalog validation.

Rules:
    name            1..100 chars (required)
    name_en         1..100 chars, optional
    code            1..50 chars, ^[a-z0-9_]+$ after trim + lower-case (required)
    description     ≤ 500 chars, optional
    category        one of CASE_STATUS_CATEGORIES, optional
    color           #RGB or #RRGGBB, optional
    sort_order      integer 1..9999 (required)
    order_number    integer 1..99, optional
    fillable_fields names from FILLABLE_FIELDS only

``partial=True`` validates an update payload: every key is optional and
only the keys present are checked and reported in ``fields_set``.
"""

import re
from dataclasses import dataclass, field

from immigration.models.case_status import CASE_STATUS_CATEGORIES
from immigration.schemas import ValidationResult, is_int
from immigration.services.field_registry import invalid_field_names

CODE_RE = re.compile(r"^[a-z0-9_]+$")
COLOR_RE = re.compile(r"^#([0-9A-F]{3}|[0-9A-F]{6})$", re.IGNORECASE)

_FIELDS = (
    "name", "name_en", "code", "description", "category", "color",
    "sort_order", "order_number", "fillable_fields",
)


@dataclass
class CaseStatusInput:
    name: str | None = None
    code: str | None = None
    sort_order: int | None = None
    name_en: str | None = None
    description: str | None = None
    category: str | None = None
    color: str | None = None
    order_number: int | None = None
    fillable_fields: list[str] = field(default_factory=list)
    fields_set: frozenset = frozenset()

    def changes(self) -> dict:
        """Only the attributes supplied by the caller."""
        return {name: getattr(self, name) for name in _FIELDS if name in self.fields_set}


def _optional_text(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError
    value = value.strip()
    return value or None


def validate_case_status(data: dict, partial: bool = False) -> ValidationResult:
    errors: dict[str, str] = {}
    out = CaseStatusInput()
    present = {k for k in _FIELDS if k in data}

    def required(key):
        return not partial or key in present

    # name
    if required("name"):
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors["name"] = "Name is required"
        elif len(name.strip()) > 100:
            errors["name"] = "Name must be less than 100 characters"
        else:
            out.name = name.strip()

    # name_en
    if "name_en" in present:
        try:
            name_en = _optional_text(data["name_en"])
        except TypeError:
            errors["name_en"] = "English name must be a string"
        else:
            if name_en and len(name_en) > 100:
                errors["name_en"] = "English name must be less than 100 characters"
            else:
                out.name_en = name_en

    # code
    if required("code"):
        code = data.get("code")
        if not isinstance(code, str) or not code.strip():
            errors["code"] = "Code is required"
        else:
            code = code.strip().lower()
            if len(code) > 50:
                errors["code"] = "Code must be less than 50 characters"
            elif not CODE_RE.match(code):
                errors["code"] = "Code must be lowercase letters, numbers, and underscores only"
            else:
                out.code = code

    # description
    if "description" in present:
        try:
            description = _optional_text(data["description"])
        except TypeError:
            errors["description"] = "Description must be a string"
        else:
            if description and len(description) > 500:
                errors["description"] = "Description must be less than 500 characters"
            else:
                out.description = description

    # category
    if "category" in present:
        category = data["category"] or None
        if category is not None and category not in CASE_STATUS_CATEGORIES:
            errors["category"] = f"Category must be one of: {', '.join(CASE_STATUS_CATEGORIES)}"
        else:
            out.category = category

    # color
    if "color" in present:
        color = data["color"] or None
        if color is not None and (not isinstance(color, str) or not COLOR_RE.match(color)):
            errors["color"] = "Color must be a valid hex color (e.g., #3B82F6)"
        else:
            out.color = color.upper() if color else None

    # sort_order
    if required("sort_order"):
        sort_order = data.get("sort_order")
        if sort_order is None:
            errors["sort_order"] = "Sort order is required"
        elif not is_int(sort_order):
            errors["sort_order"] = "Sort order must be an integer"
        elif not 1 <= sort_order <= 9999:
            errors["sort_order"] = "Sort order must be between 1 and 9999"
        else:
            out.sort_order = sort_order

    # order_number
    if "order_number" in present:
        order_number = data["order_number"]
        if order_number in (None, ""):
            out.order_number = None
        elif not is_int(order_number):
            errors["order_number"] = "Order number must be an integer"
        elif not 1 <= order_number <= 99:
            errors["order_number"] = "Order number must be between 1 and 99"
        else:
            out.order_number = order_number

    # fillable_fields
    if "fillable_fields" in present:
        fields = data["fillable_fields"]
        if fields is None:
            fields = []
        if not isinstance(fields, list) or not all(isinstance(f, str) for f in fields):
            errors["fillable_fields"] = "Fillable fields must be a list of field names"
        else:
            bad = invalid_field_names(fields)
            if bad:
                errors["fillable_fields"] = f"Invalid field name in fillable_fields: {', '.join(bad)}"
            else:
                out.fillable_fields = list(dict.fromkeys(fields))

    out.fields_set = frozenset(present if partial else set(_FIELDS))
    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=out)


def validate_reorder(data: dict) -> ValidationResult:
    """``{"updates": [{"id": int, "sort_order": int}, ...]}``"""
    updates = data.get("updates")
    if not isinstance(updates, list) or not updates:
        return ValidationResult(errors={"updates": "updates must be a non-empty list"})
    parsed = []
    for i, item in enumerate(updates):
        if not isinstance(item, dict) or not is_int(item.get("id")):
            return ValidationResult(errors={f"updates[{i}].id": "id must be an integer"})
        sort_order = item.get("sort_order")
        if not is_int(sort_order) or not 1 <= sort_order <= 9999:
            return ValidationResult(
                errors={f"updates[{i}].sort_order": "Sort order must be between 1 and 9999"},
            )
        parsed.append((item["id"], sort_order))
    return ValidationResult(value=parsed)
