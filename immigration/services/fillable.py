"""Conversion of FILLABLE_FIELDS values coming from JSON payloads.

Used both when a status record carries ``filled_fields_data`` and when an
individual process is patched directly.  Conversion never mutates anything:
it returns a dict of column-ready values or raises ValidationError listing
every bad field at once.
"""

from immigration.core.exceptions import ValidationError
from immigration.models.legal import LegalFramework
from immigration.models.people import Passport, Person
from immigration.models.reference import CboCode, ProcessType
from immigration.services.field_registry import get_fillable_field
from immigration.services.helpers.scoped_queries import ensure_scoped_fk
from immigration.utils.helpers import parse_date_input, parse_datetime_input

REFERENCE_MODELS = {
    "passports": Passport,
    "people": Person,
    "process_types": ProcessType,
    "legal_frameworks": LegalFramework,
    "cbo_codes": CboCode,
}

NON_NULLABLE = {"person_id"}


def coerce_fillable_values(tenant_id, values: dict) -> dict:
    """Map field_name → raw JSON value to field_name → column value.

    Raises:
        ValidationError: unknown field names or unparseable values.
    """
    out = {}
    errors = {}
    for name, raw in values.items():
        meta = get_fillable_field(name)
        if meta is None:
            errors[name] = "Unknown fillable field"
            continue
        try:
            out[name] = _coerce(tenant_id, meta, raw)
        except ValidationError as exc:
            errors[name] = exc.details.get(name) or str(exc)
        except ValueError as exc:
            errors[name] = str(exc)
    if errors:
        raise ValidationError("Invalid fillable field values", details=errors)
    return out


def _coerce(tenant_id, meta, raw):
    if meta.field_type == "reference":
        if raw in (None, ""):
            if meta.field_name in NON_NULLABLE:
                raise ValueError(f"{meta.field_name} cannot be empty")
            return None
        obj = ensure_scoped_fk(REFERENCE_MODELS[meta.reference_table], raw, tenant_id,
                               field=meta.field_name)
        return obj.id
    if meta.field_type == "date":
        return parse_date_input(raw)
    if meta.field_type == "datetime":
        return parse_datetime_input(raw)
    if raw is None:
        return None
    return str(raw).strip() or None
