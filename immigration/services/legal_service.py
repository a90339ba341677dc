"""Legal framework info requirements.

An info requirement names one FIELD_REGISTRY attribute a legal framework
needs collected and who must provide it.  Label and field type default to
the registry entry.

Transaction policy: flush() only; the route handler commits.
"""
import logging

from immigration.core.exceptions import ValidationError
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.legal import (
    RESPONSIBLE_PARTIES,
    LegalFramework,
    LegalFrameworkInfoRequirement,
)
from immigration.services.field_registry import ENTITY_TYPES, get_field_entry
from immigration.services.helpers.scoped_queries import get_scoped
from immigration.utils.helpers import parse_bool, parse_int_field

logger = logging.getLogger(__name__)

_TEXT = ("label", "label_en", "field_type")


def resolve_registry_entry(entity_type, field_path):
    """Return the FIELD_REGISTRY entry or raise ValidationError."""
    if entity_type not in ENTITY_TYPES:
        raise ValidationError(
            f"Invalid entity_type. Must be one of: {list(ENTITY_TYPES)}",
            details={"entity_type": "invalid"},
        )
    entry = get_field_entry(entity_type, field_path)
    if entry is None:
        raise ValidationError(
            f"Unknown field '{field_path}' for entity type '{entity_type}'",
            details={"field_path": "not in field registry"},
        )
    return entry


def list_info_requirements(tenant_id, framework_id, include_inactive=False):
    framework = get_scoped(LegalFramework, framework_id, tenant_id=tenant_id)
    q = LegalFrameworkInfoRequirement.query_for_tenant(tenant_id).filter_by(
        legal_framework_id=framework.id,
    )
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(LegalFrameworkInfoRequirement.sort_order,
                      LegalFrameworkInfoRequirement.id).all()


def _build(tenant_id, framework, data, default_order):
    entry = resolve_registry_entry(data.get("entity_type"), data.get("field_path"))
    party = data.get("responsible_party") or "client"
    if party not in RESPONSIBLE_PARTIES:
        raise ValidationError(
            f"Invalid responsible_party. Must be one of: {list(RESPONSIBLE_PARTIES)}",
            details={"responsible_party": "invalid"},
        )
    return LegalFrameworkInfoRequirement(
        tenant_id=tenant_id,
        legal_framework_id=framework.id,
        entity_type=data["entity_type"],
        field_path=entry.field_path,
        label=data.get("label") or entry.label,
        label_en=data.get("label_en") or entry.label_en,
        field_type=data.get("field_type") or entry.field_type,
        responsible_party=party,
        is_required=parse_bool(data.get("is_required"), True),
        sort_order=parse_int_field(data.get("sort_order"), "sort_order", default_order),
        is_active=parse_bool(data.get("is_active"), True),
    )


def _next_order(framework_id):
    last = (
        LegalFrameworkInfoRequirement.query
        .filter_by(legal_framework_id=framework_id)
        .order_by(LegalFrameworkInfoRequirement.sort_order.desc())
        .first()
    )
    return (last.sort_order + 1) if last else 0


def create_info_requirement(tenant_id, framework_id, data, actor=None):
    framework = get_scoped(LegalFramework, framework_id, tenant_id=tenant_id)
    req = _build(tenant_id, framework, data, _next_order(framework.id))
    db.session.add(req)
    db.session.flush()
    log_activity(action="created", entity_type="info_requirement", entity_id=req.id,
                 details={"legal_framework_id": framework.id, "field_path": req.field_path},
                 tenant_id=tenant_id, actor=actor)
    return req


def bulk_create_info_requirements(tenant_id, framework_id, items, actor=None):
    """Create several requirements at once; any invalid item rejects the batch."""
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", details={"items": "required"})
    framework = get_scoped(LegalFramework, framework_id, tenant_id=tenant_id)
    start = _next_order(framework.id)
    created = []
    errors = {}
    for idx, item in enumerate(items):
        try:
            created.append(_build(tenant_id, framework, item, start + idx))
        except ValidationError as exc:
            errors[str(idx)] = str(exc)
    if errors:
        raise ValidationError("Invalid info requirements", details=errors)
    db.session.add_all(created)
    db.session.flush()
    log_activity(action="created", entity_type="info_requirement",
                 details={"legal_framework_id": framework.id, "count": len(created)},
                 tenant_id=tenant_id, actor=actor)
    return created


def update_info_requirement(tenant_id, requirement_id, data, actor=None):
    req = get_scoped(LegalFrameworkInfoRequirement, requirement_id, tenant_id=tenant_id)
    if "entity_type" in data or "field_path" in data:
        entry = resolve_registry_entry(data.get("entity_type", req.entity_type),
                                       data.get("field_path", req.field_path))
        req.entity_type = data.get("entity_type", req.entity_type)
        req.field_path = entry.field_path
    if "responsible_party" in data:
        if data["responsible_party"] not in RESPONSIBLE_PARTIES:
            raise ValidationError("Invalid responsible_party",
                                  details={"responsible_party": "invalid"})
        req.responsible_party = data["responsible_party"]
    for f in _TEXT:
        if f in data and data[f]:
            setattr(req, f, data[f])
    for f in ("is_required", "is_active"):
        if f in data:
            setattr(req, f, parse_bool(data[f]))
    if "sort_order" in data:
        req.sort_order = parse_int_field(data["sort_order"], "sort_order", 0)
    db.session.flush()
    log_activity(action="updated", entity_type="info_requirement", entity_id=req.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return req


def delete_info_requirement(tenant_id, requirement_id, actor=None):
    req = get_scoped(LegalFrameworkInfoRequirement, requirement_id, tenant_id=tenant_id)
    db.session.delete(req)
    db.session.flush()
    log_activity(action="deleted", entity_type="info_requirement", entity_id=requirement_id,
                 tenant_id=tenant_id, actor=actor)


def reorder_info_requirements(tenant_id, framework_id, ordered_ids, actor=None):
    """Set sort_order to the position of each id in ``ordered_ids``."""
    framework = get_scoped(LegalFramework, framework_id, tenant_id=tenant_id)
    if not isinstance(ordered_ids, list):
        raise ValidationError("ids must be a list", details={"ids": "required"})
    reqs = {r.id: r for r in framework.info_requirements}
    unknown = [i for i in ordered_ids if i not in reqs]
    if unknown:
        raise ValidationError("Unknown requirement ids for this framework",
                              details={"ids": unknown})
    for position, rid in enumerate(ordered_ids):
        reqs[rid].sort_order = position
    db.session.flush()
    log_activity(action="reordered", entity_type="info_requirement",
                 details={"legal_framework_id": framework.id, "count": len(ordered_ids)},
                 tenant_id=tenant_id, actor=actor)
    return list_info_requirements(tenant_id, framework.id, include_inactive=True)
