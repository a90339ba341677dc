"""Case status catalog service.

Transaction policy: methods use flush(), never commit().
Caller (route handler / CLI) is responsible for db.session.commit().

Operations:
- list / list by category / get / get by code
- create (unique code per tenant)
- update (code change blocked while referenced by history records)
- remove = soft delete, blocked while referenced
- reorder, toggle_active
- seed_default_catalog (CLI)
"""
import logging

from immigration.core.exceptions import ConflictError, NotFoundError, ValidationError
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.case_status import CASE_STATUS_CATEGORIES, CaseStatus, category_color
from immigration.models.process import IndividualProcessStatus
from immigration.schemas.case_status import validate_case_status, validate_reorder
from immigration.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


# ── Queries ──────────────────────────────────────────────────────────────


def list_case_statuses(tenant_id, include_inactive=False):
    """Catalog ordered by sort_order (then name)."""
    q = CaseStatus.query_for_tenant(tenant_id)
    if not include_inactive:
        q = q.filter_by(is_active=True)
    return q.order_by(CaseStatus.sort_order, CaseStatus.name).all()


def list_by_category(tenant_id, category):
    if category not in CASE_STATUS_CATEGORIES:
        raise ValidationError(f"Unknown category: {category}", details={"category": "invalid"})
    return (
        CaseStatus.query_for_tenant(tenant_id)
        .filter_by(category=category, is_active=True)
        .order_by(CaseStatus.sort_order)
        .all()
    )


def get_case_status(tenant_id, status_id):
    return get_scoped(CaseStatus, status_id, tenant_id=tenant_id)


def get_by_code(tenant_id, code):
    status = CaseStatus.query_for_tenant(tenant_id).filter_by(code=(code or "").lower()).first()
    if status is None:
        raise NotFoundError(resource="CaseStatus", resource_id=code, tenant_id=tenant_id)
    return status


def is_in_use(status):
    """True when any history record references the status."""
    return db.session.query(
        IndividualProcessStatus.query.filter_by(case_status_id=status.id).exists()
    ).scalar()


def _ensure_code_free(tenant_id, code, exclude_id=None):
    q = CaseStatus.query_for_tenant(tenant_id).filter_by(code=code)
    if exclude_id is not None:
        q = q.filter(CaseStatus.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("CaseStatus", "code", code)


# ── Mutations ────────────────────────────────────────────────────────────


def create_case_status(tenant_id, data):
    """Validate and insert a catalog entry (always active).

    Raises:
        ValidationError: schema failure.
        ConflictError: code already used in this tenant.
    """
    status_in = validate_case_status(data).unwrap("Invalid case status")
    _ensure_code_free(tenant_id, status_in.code)

    status = CaseStatus(
        tenant_id=tenant_id,
        name=status_in.name,
        name_en=status_in.name_en,
        code=status_in.code,
        description=status_in.description,
        category=status_in.category,
        color=status_in.color or (category_color(status_in.category) if status_in.category else None),
        sort_order=status_in.sort_order,
        order_number=status_in.order_number,
        fillable_fields=status_in.fillable_fields,
        is_active=True,
    )
    db.session.add(status)
    db.session.flush()
    log_activity(action="created", entity_type="case_status", entity_id=status.id,
                 details={"code": status.code}, tenant_id=tenant_id)
    logger.info("Case status created: %s (tenant=%s)", status.code, tenant_id)
    return status


def update_case_status(tenant_id, status_id, data):
    """Partial update.

    Raises:
        ConflictError: code change while referenced, or code taken.
    """
    status = get_case_status(tenant_id, status_id)
    status_in = validate_case_status(data, partial=True).unwrap("Invalid case status")
    changes = status_in.changes()

    new_code = changes.get("code")
    if new_code and new_code != status.code:
        if is_in_use(status):
            raise ConflictError(
                "CaseStatus", "code", status.code,
                message=f"Cannot change code of case status '{status.code}': "
                        "it is referenced by status history records",
            )
        _ensure_code_free(tenant_id, new_code, exclude_id=status.id)

    for key, value in changes.items():
        if key in ("name", "code", "sort_order") and value is None:
            continue
        setattr(status, key, value)

    db.session.flush()
    log_activity(action="updated", entity_type="case_status", entity_id=status.id,
                 details={"fields": sorted(changes)}, tenant_id=tenant_id)
    return status


def remove_case_status(tenant_id, status_id):
    """Soft delete (is_active=False).  Blocked while referenced."""
    status = get_case_status(tenant_id, status_id)
    if is_in_use(status):
        raise ConflictError(
            "CaseStatus", "id", status.id,
            message=f"Cannot delete case status '{status.code}': it is in use",
        )
    status.is_active = False
    db.session.flush()
    log_activity(action="deleted", entity_type="case_status", entity_id=status.id,
                 details={"code": status.code}, tenant_id=tenant_id)
    return status


def toggle_active(tenant_id, status_id):
    """Flip is_active; deactivation blocked while referenced."""
    status = get_case_status(tenant_id, status_id)
    if status.is_active and is_in_use(status):
        raise ConflictError(
            "CaseStatus", "id", status.id,
            message=f"Cannot deactivate case status '{status.code}': it is in use",
        )
    status.is_active = not status.is_active
    db.session.flush()
    log_activity(action="toggled", entity_type="case_status", entity_id=status.id,
                 details={"is_active": status.is_active}, tenant_id=tenant_id)
    return status


def reorder_case_statuses(tenant_id, data):
    """Apply ``{"updates": [{"id", "sort_order"}]}``; all ids must belong to the tenant."""
    updates = validate_reorder(data).unwrap("Invalid reorder payload")
    statuses = [(get_case_status(tenant_id, sid), order) for sid, order in updates]
    for status, order in statuses:
        status.sort_order = order
    db.session.flush()
    log_activity(action="reordered", entity_type="case_status",
                 details={"count": len(statuses)}, tenant_id=tenant_id)
    return list_case_statuses(tenant_id, include_inactive=True)


# ═══════════════════════════════════════════════════════════════════════════
#  DEFAULT CATALOG
# ═══════════════════════════════════════════════════════════════════════════

DEFAULT_CASE_STATUSES = (
    {"code": "pending_documents", "name": "Aguardando Documentos", "name_en": "Pending Documents",
     "category": "preparation", "sort_order": 10, "order_number": 1,
     "fillable_fields": ["passport_id", "legal_framework_id", "cbo_id", "deadline_date"]},
    {"code": "documents_submitted", "name": "Documentos Enviados", "name_en": "Documents Submitted",
     "category": "preparation", "sort_order": 20, "order_number": 2, "fillable_fields": []},
    {"code": "documents_approved", "name": "Documentos Aprovados", "name_en": "Documents Approved",
     "category": "in_progress", "sort_order": 30, "order_number": 3, "fillable_fields": []},
    {"code": "preparing_submission", "name": "Em Preparação", "name_en": "Preparing Submission",
     "category": "in_progress", "sort_order": 40, "order_number": 4,
     "fillable_fields": ["mre_office_number"]},
    {"code": "submitted_to_government", "name": "Protocolado", "name_en": "Submitted to Government",
     "category": "review", "sort_order": 50, "order_number": 5,
     "fillable_fields": ["protocol_number"]},
    {"code": "under_government_review", "name": "Em Trâmite", "name_en": "Under Government Review",
     "category": "review", "sort_order": 60, "order_number": 6, "fillable_fields": []},
    {"code": "government_approved", "name": "Deferido", "name_en": "Government Approved",
     "category": "approved", "sort_order": 70, "order_number": 7,
     "fillable_fields": ["dou_number", "dou_section", "dou_page", "dou_date"]},
    {"code": "government_rejected", "name": "Indeferido", "name_en": "Government Rejected",
     "category": "cancelled", "sort_order": 80, "order_number": 8, "fillable_fields": []},
    {"code": "completed", "name": "RNM", "name_en": "Completed (RNM)",
     "category": "completed", "sort_order": 90, "order_number": 9,
     "fillable_fields": ["rnm_number", "rnm_deadline", "appointment_date_time"]},
    {"code": "cancelled", "name": "Cancelado", "name_en": "Cancelled",
     "category": "cancelled", "sort_order": 100, "order_number": 10, "fillable_fields": []},
)


def seed_default_catalog(tenant_id):
    """Insert any missing default statuses (idempotent by code).

    Returns the number of statuses created.
    """
    created = 0
    for entry in DEFAULT_CASE_STATUSES:
        exists = CaseStatus.query_for_tenant(tenant_id).filter_by(code=entry["code"]).first()
        if exists:
            continue
        db.session.add(CaseStatus(
            tenant_id=tenant_id,
            color=category_color(entry["category"]),
            is_active=True,
            **entry,
        ))
        created += 1
    db.session.flush()
    logger.info("Seeded %d default case statuses (tenant=%s)", created, tenant_id)
    return created
