"""Reference & configuration lookups - one generic CRUD over simple tables.

Transaction policy: methods use flush(), never commit().

Each table is described by a ``ReferenceResource`` (required fields,
text / int / bool columns, tenant-scoped foreign keys, an optional unique
column, search columns and "referenced by" guards).  The blueprint
registers the same five routes for every resource in ``RESOURCES``.

    countries, states, cities, consulates, cbo-codes,
    process-types, legal-frameworks, document-types
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy import or_

from immigration.core.exceptions import ConflictError, ValidationError
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.documents import DocumentRequirement, DocumentTemplate, DocumentType
from immigration.models.geography import City, Country, State
from immigration.models.legal import LegalFramework
from immigration.models.people import Company, Person
from immigration.models.process import IndividualProcess, MainProcess
from immigration.models.reference import CboCode, Consulate, ProcessType
from immigration.services.helpers.scoped_queries import ensure_scoped_fk, get_scoped
from immigration.utils.helpers import parse_bool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceResource:
    """Declarative description of one lookup table."""

    name: str
    model: type
    entity_type: str
    required: tuple = ("name",)
    text_fields: tuple = ()
    int_fields: tuple = ()
    bool_fields: tuple = ()
    fk_fields: tuple = ()              # (field, model)
    unique_field: str | None = None
    upper_fields: tuple = ()
    search_fields: tuple = ("name",)
    filter_fields: tuple = ()
    order_by: tuple = ("name",)
    referenced_by: tuple = field(default_factory=tuple)   # (model, column, label)


RESOURCES = {
    "countries": ReferenceResource(
        name="countries", model=Country, entity_type="country",
        required=("name", "code"), text_fields=("name", "code", "iso3", "flag"),
        unique_field="code", upper_fields=("code", "iso3"),
        referenced_by=(
            (State, "country_id", "state"),
            (City, "country_id", "city"),
            (Person, "nationality_id", "person"),
        ),
    ),
    "states": ReferenceResource(
        name="states", model=State, entity_type="state",
        text_fields=("name", "code"), upper_fields=("code",),
        fk_fields=(("country_id", Country),), filter_fields=("country_id",),
        referenced_by=((City, "state_id", "city"),),
    ),
    "cities": ReferenceResource(
        name="cities", model=City, entity_type="city",
        text_fields=("name",), bool_fields=("has_federal_police",),
        fk_fields=(("state_id", State), ("country_id", Country)),
        filter_fields=("state_id", "country_id", "has_federal_police"),
        referenced_by=(
            (Consulate, "city_id", "consulate"),
            (Company, "city_id", "company"),
            (MainProcess, "workplace_city_id", "main process"),
            (Person, "current_city_id", "person"),
            (Person, "birth_city_id", "person"),
        ),
    ),
    "consulates": ReferenceResource(
        name="consulates", model=Consulate, entity_type="consulate",
        text_fields=("name", "address", "phone_number", "email", "website"),
        fk_fields=(("city_id", City),), filter_fields=("city_id",),
        referenced_by=((MainProcess, "consulate_id", "main process"),),
    ),
    "cbo-codes": ReferenceResource(
        name="cbo-codes", model=CboCode, entity_type="cbo_code",
        required=("title",), text_fields=("code", "title", "description"),
        unique_field="code", search_fields=("title", "code"), order_by=("code", "title"),
        referenced_by=((IndividualProcess, "cbo_id", "individual process"),),
    ),
    "process-types": ReferenceResource(
        name="process-types", model=ProcessType, entity_type="process_type",
        text_fields=("name", "description"), int_fields=("estimated_days", "sort_order"),
        bool_fields=("is_active",), filter_fields=("is_active",),
        order_by=("sort_order", "name"),
        referenced_by=((DocumentTemplate, "process_type_id", "document template"),),
    ),
    "legal-frameworks": ReferenceResource(
        name="legal-frameworks", model=LegalFramework, entity_type="legal_framework",
        text_fields=("name", "description"), bool_fields=("is_active",),
        fk_fields=(("process_type_id", ProcessType),),
        filter_fields=("process_type_id", "is_active"),
        referenced_by=((IndividualProcess, "legal_framework_id", "individual process"),),
    ),
    "document-types": ReferenceResource(
        name="document-types", model=DocumentType, entity_type="document_type",
        text_fields=("name", "code", "category", "description"), bool_fields=("is_active",),
        unique_field="code", search_fields=("name", "code"),
        filter_fields=("category", "is_active"),
        referenced_by=((DocumentRequirement, "document_type_id", "document requirement"),),
    ),
}


def get_resource(name) -> ReferenceResource:
    return RESOURCES[name]


# ── Queries ──────────────────────────────────────────────────────────────


def list_query(res: ReferenceResource, tenant_id, filters):
    model = res.model
    q = model.query_for_tenant(tenant_id)
    if filters.get("q"):
        term = f"%{filters['q']}%"
        q = q.filter(or_(*(getattr(model, f).ilike(term) for f in res.search_fields)))
    for key in res.filter_fields:
        raw = filters.get(key)
        if raw in (None, ""):
            continue
        if key in res.bool_fields:
            q = q.filter(getattr(model, key).is_(parse_bool(raw)))
        elif key.endswith("_id"):
            try:
                q = q.filter(getattr(model, key) == int(raw))
            except ValueError as exc:
                raise ValidationError(f"{key} must be an integer", details={key: "invalid"}) from exc
        else:
            q = q.filter(getattr(model, key) == raw)
    return q.order_by(*(getattr(model, c) for c in res.order_by), model.id)


def get_item(res: ReferenceResource, tenant_id, item_id):
    return get_scoped(res.model, item_id, tenant_id=tenant_id)


# ── Mutations ────────────────────────────────────────────────────────────


def _apply(res, tenant_id, obj, data, creating):
    errors = {}
    for f in res.required:
        if creating or f in data:
            value = data.get(f)
            if value is None or not str(value).strip():
                errors[f] = "required"
    for f in res.int_fields:
        if f in data and data[f] not in (None, ""):
            try:
                int(data[f])
            except (TypeError, ValueError):
                errors[f] = "must be an integer"
    if errors:
        raise ValidationError("Invalid " + res.entity_type.replace("_", " "), details=errors)

    for f in res.text_fields:
        if f in data:
            value = data[f]
            if isinstance(value, str):
                value = value.strip() or None
                if value and f in res.upper_fields:
                    value = value.upper()
            setattr(obj, f, value)
    for f in res.int_fields:
        if f in data:
            setattr(obj, f, int(data[f]) if data[f] not in (None, "") else None)
    for f in res.bool_fields:
        if f in data:
            setattr(obj, f, parse_bool(data[f]))
    for f, model in res.fk_fields:
        if f in data:
            ensure_scoped_fk(model, data[f], tenant_id, field=f)
            setattr(obj, f, int(data[f]) if data[f] not in (None, "") else None)


def _ensure_unique(res, tenant_id, obj):
    if not res.unique_field:
        return
    value = getattr(obj, res.unique_field)
    if value in (None, ""):
        return
    q = res.model.query_for_tenant(tenant_id).filter(getattr(res.model, res.unique_field) == value)
    if obj.id is not None:
        q = q.filter(res.model.id != obj.id)
    with db.session.no_autoflush:
        clash = q.first()
    if clash is not None:
        raise ConflictError(res.model.__name__, res.unique_field, value)


def create_item(res: ReferenceResource, tenant_id, data, actor=None):
    obj = res.model(tenant_id=tenant_id)
    _apply(res, tenant_id, obj, data, creating=True)
    _ensure_unique(res, tenant_id, obj)
    db.session.add(obj)
    db.session.flush()
    log_activity(action="created", entity_type=res.entity_type, entity_id=obj.id,
                 tenant_id=tenant_id, actor=actor)
    return obj


def update_item(res: ReferenceResource, tenant_id, item_id, data, actor=None):
    obj = get_item(res, tenant_id, item_id)
    _apply(res, tenant_id, obj, data, creating=False)
    _ensure_unique(res, tenant_id, obj)
    db.session.flush()
    log_activity(action="updated", entity_type=res.entity_type, entity_id=obj.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return obj


def delete_item(res: ReferenceResource, tenant_id, item_id, actor=None):
    """Hard delete; blocked (409) while any ``referenced_by`` row points here."""
    obj = get_item(res, tenant_id, item_id)
    for model, column, label in res.referenced_by:
        count = model.query.filter(getattr(model, column) == obj.id).count()
        if count:
            raise ConflictError(
                res.model.__name__, "id", obj.id,
                message=f"Cannot delete {res.entity_type.replace('_', ' ')}: "
                        f"referenced by {count} {label}(s)",
            )
    db.session.delete(obj)
    db.session.flush()
    log_activity(action="deleted", entity_type=res.entity_type, entity_id=item_id,
                 tenant_id=tenant_id, actor=actor)
