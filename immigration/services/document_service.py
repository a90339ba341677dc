"""Document configuration service.

Transaction policy: methods use flush(), never commit().

Operations:
- DocumentTypeFieldMapping CRUD (field_path checked against FIELD_REGISTRY)
- DocumentTemplate CRUD with nested DocumentRequirement list;
  every update increments ``version``
- Fields-with-values: resolve a document type's mapped fields against one
  individual process (person / passport / company / process) and write
  values back through the owning entity's service
"""
import logging

from immigration.core.exceptions import ValidationError
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.documents import (
    DocumentRequirement,
    DocumentTemplate,
    DocumentType,
    DocumentTypeFieldMapping,
)
from immigration.models.base import iso
from immigration.models.legal import LegalFramework
from immigration.models.process import IndividualProcess
from immigration.models.reference import ProcessType
from immigration.services import people_service, process_service
from immigration.services.helpers.scoped_queries import ensure_scoped_fk, get_scoped
from immigration.services.legal_service import resolve_registry_entry
from immigration.utils.helpers import parse_bool, parse_int_field

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  FIELD MAPPINGS
# ═══════════════════════════════════════════════════════════════════════════


def list_field_mappings(tenant_id, document_type_id, include_inactive=False):
    doc_type = get_scoped(DocumentType, document_type_id, tenant_id=tenant_id)
    q = DocumentTypeFieldMapping.query_for_tenant(tenant_id).filter_by(
        document_type_id=doc_type.id,
    )
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(DocumentTypeFieldMapping.sort_order, DocumentTypeFieldMapping.id).all()


def create_field_mapping(tenant_id, document_type_id, data, actor=None):
    doc_type = get_scoped(DocumentType, document_type_id, tenant_id=tenant_id)
    entry = resolve_registry_entry(data.get("entity_type"), data.get("field_path"))
    exists = DocumentTypeFieldMapping.query.filter_by(
        document_type_id=doc_type.id, entity_type=data["entity_type"], field_path=entry.field_path,
    ).first()
    if exists:
        raise ValidationError("Field already mapped for this document type",
                              details={"field_path": "duplicate"})
    mapping = DocumentTypeFieldMapping(
        tenant_id=tenant_id,
        document_type_id=doc_type.id,
        entity_type=data["entity_type"],
        field_path=entry.field_path,
        label=data.get("label") or entry.label,
        label_en=data.get("label_en") or entry.label_en,
        field_type=data.get("field_type") or entry.field_type,
        is_required=parse_bool(data.get("is_required")),
        sort_order=parse_int_field(data.get("sort_order"), "sort_order", 0),
        is_active=parse_bool(data.get("is_active"), True),
    )
    db.session.add(mapping)
    db.session.flush()
    log_activity(action="created", entity_type="field_mapping", entity_id=mapping.id,
                 details={"document_type_id": doc_type.id, "field_path": mapping.field_path},
                 tenant_id=tenant_id, actor=actor)
    return mapping


def update_field_mapping(tenant_id, mapping_id, data, actor=None):
    mapping = get_scoped(DocumentTypeFieldMapping, mapping_id, tenant_id=tenant_id)
    if "entity_type" in data or "field_path" in data:
        entry = resolve_registry_entry(data.get("entity_type", mapping.entity_type),
                                       data.get("field_path", mapping.field_path))
        mapping.entity_type = data.get("entity_type", mapping.entity_type)
        mapping.field_path = entry.field_path
    for f in ("label", "label_en", "field_type"):
        if f in data and data[f]:
            setattr(mapping, f, data[f])
    for f in ("is_required", "is_active"):
        if f in data:
            setattr(mapping, f, parse_bool(data[f]))
    if "sort_order" in data:
        mapping.sort_order = parse_int_field(data["sort_order"], "sort_order", 0)
    db.session.flush()
    log_activity(action="updated", entity_type="field_mapping", entity_id=mapping.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return mapping


def delete_field_mapping(tenant_id, mapping_id, actor=None):
    mapping = get_scoped(DocumentTypeFieldMapping, mapping_id, tenant_id=tenant_id)
    db.session.delete(mapping)
    db.session.flush()
    log_activity(action="deleted", entity_type="field_mapping", entity_id=mapping_id,
                 tenant_id=tenant_id, actor=actor)


# ── Fields with values ───────────────────────────────────────────────────


def _targets(process):
    """entity_type → instance holding the values for one individual process."""
    passport = process.passport
    if passport is None and process.person is not None:
        passport = next((p for p in process.person.passports if p.is_active), None)
    main = process.main_process
    return {
        "person": process.person,
        "passport": passport,
        "company": main.company if main else None,
        "individual_process": process,
    }


def _jsonable(value):
    if value is None or isinstance(value, (str, int, bool)):
        return value
    if hasattr(value, "isoformat"):
        return iso(value)
    return str(value)


def fields_with_values(tenant_id, process_id, document_type_id):
    """Each active mapping of the document type with its current value."""
    process = get_scoped(IndividualProcess, process_id, tenant_id=tenant_id)
    mappings = list_field_mappings(tenant_id, document_type_id)
    targets = _targets(process)
    out = []
    for m in mappings:
        target = targets.get(m.entity_type)
        d = m.to_dict()
        d["value"] = _jsonable(getattr(target, m.field_path, None)) if target is not None else None
        d["has_source"] = target is not None
        out.append(d)
    return out


def save_field_values(tenant_id, process_id, document_type_id, data, actor=None):
    """Write ``{"values": [{"mapping_id" | "entity_type"+"field_path", "value"}]}``.

    Only field paths mapped on the document type are accepted.  Writes are
    delegated to the owning entity's update so its validation applies.
    """
    process = get_scoped(IndividualProcess, process_id, tenant_id=tenant_id)
    values = data.get("values")
    if not isinstance(values, list):
        raise ValidationError("values must be a list", details={"values": "required"})
    mappings = list_field_mappings(tenant_id, document_type_id)
    by_id = {m.id: m for m in mappings}
    by_path = {(m.entity_type, m.field_path): m for m in mappings}

    grouped = {}
    errors = {}
    for item in values:
        mapping = by_id.get(item.get("mapping_id")) or by_path.get(
            (item.get("entity_type"), item.get("field_path")))
        if mapping is None:
            key = item.get("field_path") or str(item.get("mapping_id"))
            errors[key] = "not mapped on this document type"
            continue
        grouped.setdefault(mapping.entity_type, {})[mapping.field_path] = item.get("value")
    if errors:
        raise ValidationError("Unmapped fields", details=errors)

    targets = _targets(process)
    for entity_type, patch in grouped.items():
        target = targets.get(entity_type)
        if target is None:
            raise ValidationError(f"No {entity_type} linked to this process",
                                  details={entity_type: "missing"})
        if entity_type == "person":
            people_service.update_person(tenant_id, target.id, patch, actor=actor)
        elif entity_type == "passport":
            people_service.update_passport(tenant_id, target.id, patch, actor=actor)
        elif entity_type == "company":
            people_service.update_company(tenant_id, target.id, patch, actor=actor)
        else:
            process_service.update_individual_process(tenant_id, target.id, patch, actor=actor)
    db.session.flush()
    return fields_with_values(tenant_id, process.id, document_type_id)


# ═══════════════════════════════════════════════════════════════════════════
#  TEMPLATES
# ═══════════════════════════════════════════════════════════════════════════


def list_templates_query(tenant_id, filters):
    q = DocumentTemplate.query_for_tenant(tenant_id)
    if filters.get("process_type_id"):
        q = q.filter_by(process_type_id=parse_int_field(filters["process_type_id"], "process_type_id"))
    if filters.get("is_active") is not None:
        q = q.filter_by(is_active=parse_bool(filters["is_active"]))
    return q.order_by(DocumentTemplate.name, DocumentTemplate.id)


def _build_requirements(tenant_id, items):
    if not isinstance(items, list):
        raise ValidationError("requirements must be a list", details={"requirements": "invalid"})
    reqs = []
    for idx, item in enumerate(items):
        if not item.get("document_type_id"):
            raise ValidationError("document_type_id is required",
                                  details={f"requirements.{idx}.document_type_id": "required"})
        doc_type = ensure_scoped_fk(DocumentType, item["document_type_id"], tenant_id,
                                    field=f"requirements.{idx}.document_type_id")
        formats = item.get("allowed_formats") or ["pdf"]
        if not isinstance(formats, list):
            raise ValidationError("allowed_formats must be a list",
                                  details={f"requirements.{idx}.allowed_formats": "invalid"})
        reqs.append(DocumentRequirement(
            tenant_id=tenant_id,
            document_type_id=doc_type.id,
            is_required=parse_bool(item.get("is_required"), True),
            is_critical=parse_bool(item.get("is_critical")),
            description=item.get("description"),
            max_size_mb=parse_int_field(item.get("max_size_mb"), "max_size_mb", 10),
            allowed_formats=[str(f).lower() for f in formats],
            sort_order=parse_int_field(item.get("sort_order"), "sort_order", idx),
            validity_days=parse_int_field(item.get("validity_days"), "validity_days"),
            requires_translation=parse_bool(item.get("requires_translation")),
            requires_notarization=parse_bool(item.get("requires_notarization")),
        ))
    return reqs


def create_template(tenant_id, data, actor=None):
    if not (data.get("name") or "").strip():
        raise ValidationError("name is required", details={"name": "required"})
    if not data.get("process_type_id"):
        raise ValidationError("process_type_id is required", details={"process_type_id": "required"})
    process_type = ensure_scoped_fk(ProcessType, data["process_type_id"], tenant_id,
                                    field="process_type_id")
    framework = ensure_scoped_fk(LegalFramework, data.get("legal_framework_id"), tenant_id,
                                 field="legal_framework_id")
    template = DocumentTemplate(
        tenant_id=tenant_id,
        name=data["name"].strip(),
        description=data.get("description"),
        process_type_id=process_type.id,
        legal_framework_id=framework.id if framework else None,
        is_active=parse_bool(data.get("is_active"), True),
        version=1,
    )
    template.requirements = _build_requirements(tenant_id, data.get("requirements") or [])
    db.session.add(template)
    db.session.flush()
    log_activity(action="created", entity_type="document_template", entity_id=template.id,
                 details={"requirements": len(template.requirements)},
                 tenant_id=tenant_id, actor=actor)
    return template


def update_template(tenant_id, template_id, data, actor=None):
    """Patch attributes; a ``requirements`` list replaces the checklist."""
    template = get_scoped(DocumentTemplate, template_id, tenant_id=tenant_id)
    if "name" in data:
        if not (data["name"] or "").strip():
            raise ValidationError("name cannot be empty", details={"name": "required"})
        template.name = data["name"].strip()
    if "description" in data:
        template.description = data["description"]
    if "process_type_id" in data:
        template.process_type_id = ensure_scoped_fk(
            ProcessType, data["process_type_id"], tenant_id, field="process_type_id").id
    if "legal_framework_id" in data:
        framework = ensure_scoped_fk(LegalFramework, data["legal_framework_id"], tenant_id,
                                     field="legal_framework_id")
        template.legal_framework_id = framework.id if framework else None
    if "is_active" in data:
        template.is_active = parse_bool(data["is_active"])
    if "requirements" in data:
        template.requirements = _build_requirements(tenant_id, data["requirements"] or [])
    template.version = (template.version or 1) + 1
    db.session.flush()
    log_activity(action="updated", entity_type="document_template", entity_id=template.id,
                 details={"version": template.version, "fields": sorted(data)},
                 tenant_id=tenant_id, actor=actor)
    return template


def delete_template(tenant_id, template_id, actor=None):
    template = get_scoped(DocumentTemplate, template_id, tenant_id=tenant_id)
    db.session.delete(template)
    db.session.flush()
    log_activity(action="deleted", entity_type="document_template", entity_id=template_id,
                 tenant_id=tenant_id, actor=actor)
