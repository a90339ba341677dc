"""Process service layer - main and individual processes.

Transaction policy: methods use flush(), never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- MainProcess CRUD, status transition (MAIN_STATUS_TRANSITIONS),
  complete / cancel (optional cascade) / reopen
- Calculated main-process status: breakdown of individual case statuses
- IndividualProcess CRUD with fillable-field gating by current status
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from immigration.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransitionError,
    ValidationError,
)
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.case_status import CaseStatus
from immigration.models.geography import City
from immigration.models.people import Company, Person
from immigration.models.process import (
    MAIN_PROCESS_STATUSES,
    IndividualProcess,
    IndividualProcessStatus,
    MainProcess,
)
from immigration.models.reference import Consulate, ProcessType
from immigration.schemas import is_int
from immigration.services import status_history_service
from immigration.services.field_registry import FILLABLE_FIELD_NAMES, get_fields_metadata
from immigration.services.fillable import coerce_fillable_values
from immigration.services.helpers.scoped_queries import ensure_scoped_fk, get_scoped
from immigration.services.notification import NotificationService
from immigration.services.status_transitions import (
    is_valid_individual_status_transition,
    is_valid_main_status_transition,
)
from immigration.utils.helpers import parse_bool, parse_date_input, parse_int_field

logger = logging.getLogger(__name__)

TERMINAL_CODES = {"completed", "cancelled"}
TERMINAL_CATEGORIES = {"completed", "cancelled"}


def _parse_dates(data, fields):
    out = {}
    errors = {}
    for f in fields:
        if f in data:
            try:
                out[f] = parse_date_input(data[f])
            except ValueError as exc:
                errors[f] = str(exc)
    if errors:
        raise ValidationError("Invalid date value", details=errors)
    return out


# ═══════════════════════════════════════════════════════════════════════════
#  MAIN PROCESS
# ═══════════════════════════════════════════════════════════════════════════

_MAIN_FKS = (
    ("company_id", Company),
    ("contact_person_id", Person),
    ("process_type_id", ProcessType),
    ("workplace_city_id", City),
    ("consulate_id", Consulate),
)


def get_main_process(tenant_id, process_id):
    return get_scoped(MainProcess, process_id, tenant_id=tenant_id)


def get_by_reference(tenant_id, reference_number):
    proc = MainProcess.query_for_tenant(tenant_id).filter_by(reference_number=reference_number).first()
    if proc is None:
        raise NotFoundError(resource="MainProcess", resource_id=reference_number)
    return proc


def list_main_processes_query(tenant_id, filters):
    q = MainProcess.query_for_tenant(tenant_id)
    if filters.get("status"):
        q = q.filter_by(status=filters["status"])
    if filters.get("company_id"):
        q = q.filter_by(company_id=parse_int_field(filters["company_id"], "company_id"))
    if filters.get("is_urgent") is not None:
        q = q.filter_by(is_urgent=parse_bool(filters["is_urgent"]))
    if filters.get("q"):
        q = q.filter(MainProcess.reference_number.ilike(f"%{filters['q']}%"))
    return q.order_by(MainProcess.created_at.desc(), MainProcess.id.desc())


def _apply_main_fields(tenant_id, proc, data):
    for field, model in _MAIN_FKS:
        if field in data:
            ensure_scoped_fk(model, data[field], tenant_id, field=field)
            setattr(proc, field, data[field] or None)
    for field in ("notes",):
        if field in data:
            setattr(proc, field, data[field])
    if "is_urgent" in data:
        proc.is_urgent = parse_bool(data["is_urgent"])
    for field, value in _parse_dates(data, ("request_date",)).items():
        setattr(proc, field, value)


def create_main_process(tenant_id, data, actor=None):
    ref = (data.get("reference_number") or "").strip()
    if not ref:
        raise ValidationError("reference_number is required",
                              details={"reference_number": "required"})
    if MainProcess.query_for_tenant(tenant_id).filter_by(reference_number=ref).first():
        raise ConflictError("MainProcess", "reference_number", ref)
    status = data.get("status") or "draft"
    if status not in MAIN_PROCESS_STATUSES:
        raise ValidationError(f"Invalid status: {status}", details={"status": "invalid"})

    proc = MainProcess(tenant_id=tenant_id, reference_number=ref, status=status)
    _apply_main_fields(tenant_id, proc, data)
    db.session.add(proc)
    db.session.flush()
    log_activity(action="created", entity_type="main_process", entity_id=proc.id,
                 details={"reference_number": ref}, tenant_id=tenant_id, actor=actor)
    return proc


def update_main_process(tenant_id, process_id, data, actor=None):
    """Edit attributes.  ``status`` is not editable here; use the lifecycle actions."""
    proc = get_main_process(tenant_id, process_id)
    if "status" in data and data["status"] != proc.status:
        raise ValidationError("Use the status endpoint to change status",
                              details={"status": "read-only"})
    if "reference_number" in data:
        ref = (data["reference_number"] or "").strip()
        if not ref:
            raise ValidationError("reference_number cannot be empty",
                                  details={"reference_number": "required"})
        clash = (MainProcess.query_for_tenant(tenant_id)
                 .filter(MainProcess.reference_number == ref, MainProcess.id != proc.id).first())
        if clash:
            raise ConflictError("MainProcess", "reference_number", ref)
        proc.reference_number = ref
    _apply_main_fields(tenant_id, proc, data)
    db.session.flush()
    log_activity(action="updated", entity_type="main_process", entity_id=proc.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return proc


def delete_main_process(tenant_id, process_id, actor=None):
    proc = get_main_process(tenant_id, process_id)
    count = IndividualProcess.query.filter_by(main_process_id=proc.id).count()
    if count:
        raise ConflictError(
            "MainProcess", "id", proc.id,
            message=f"Cannot delete main process with {count} individual process(es)",
        )
    ref = proc.reference_number
    db.session.delete(proc)
    db.session.flush()
    log_activity(action="deleted", entity_type="main_process", entity_id=process_id,
                 details={"reference_number": ref}, tenant_id=tenant_id, actor=actor)


def _move_main(proc, new_status):
    if new_status not in MAIN_PROCESS_STATUSES:
        raise ValidationError(f"Invalid status: {new_status}", details={"status": "invalid"})
    if new_status == proc.status:
        raise TransitionError(f"MainProcess {proc.reference_number}", proc.status, new_status,
                              reason=f"already {new_status}")
    if not is_valid_main_status_transition(proc.status, new_status):
        logger.warning("Rejected main transition %s → %s (process=%s)",
                       proc.status, new_status, proc.id)
        raise TransitionError(f"MainProcess {proc.reference_number}", proc.status, new_status)
    previous = proc.status
    proc.status = new_status
    return previous


def _is_terminal(individual):
    status = individual.current_case_status
    if status is None:
        return False
    return status.code in TERMINAL_CODES or status.category in TERMINAL_CATEGORIES


def transition_main_process(tenant_id, process_id, new_status, actor=None):
    """Generic guarded status change.  ``completed`` goes through complete_main_process."""
    if new_status == "completed":
        return complete_main_process(tenant_id, process_id, actor=actor)
    proc = get_main_process(tenant_id, process_id)
    previous = _move_main(proc, new_status)
    if new_status == "in_progress":
        proc.completed_at = None
    db.session.flush()
    log_activity(action="status_changed", entity_type="main_process", entity_id=proc.id,
                 details={"from": previous, "to": new_status},
                 tenant_id=tenant_id, actor=actor)
    return proc


def complete_main_process(tenant_id, process_id, actor=None):
    """Complete when every individual process is completed or cancelled."""
    proc = get_main_process(tenant_id, process_id)
    individuals = IndividualProcess.query.filter_by(main_process_id=proc.id).all()
    pending = [ip.id for ip in individuals if not _is_terminal(ip)]
    if pending:
        raise TransitionError(
            f"MainProcess {proc.reference_number}", proc.status, "completed",
            reason=f"{len(pending)} individual process(es) are not yet completed or cancelled",
        )
    previous = _move_main(proc, "completed")
    proc.completed_at = datetime.now(timezone.utc)
    db.session.flush()
    NotificationService.notify_process_milestone(
        proc, "Process Completed",
        f"Main process {proc.reference_number} has been completed",
    )
    log_activity(action="completed", entity_type="main_process", entity_id=proc.id,
                 details={"previous_status": previous,
                          "individual_processes_count": len(individuals)},
                 tenant_id=tenant_id, actor=actor)
    return proc


def cancel_main_process(tenant_id, process_id, data, actor=None):
    """Cancel; with ``cancel_individuals`` append a ``cancelled`` record to each open case.

    Returns:
        (MainProcess, {"cancelled": [ids], "skipped": [{"id", "reason"}]})
    """
    proc = get_main_process(tenant_id, process_id)
    notes = (data.get("notes") or "").strip()
    if not notes:
        raise ValidationError("notes are required to cancel a process", details={"notes": "required"})
    cascade = parse_bool(data.get("cancel_individuals"))

    cancelled_status = None
    if cascade:
        cancelled_status = (CaseStatus.query_for_tenant(tenant_id)
                            .filter_by(code="cancelled", is_active=True).first())
        if cancelled_status is None:
            raise ValidationError(
                "No active case status with code 'cancelled' to cascade with",
                details={"cancel_individuals": "missing 'cancelled' case status"},
            )

    previous = _move_main(proc, "cancelled")
    proc.notes = notes

    report = {"cancelled": [], "skipped": []}
    if cascade:
        for ip in IndividualProcess.query.filter_by(main_process_id=proc.id).all():
            if _is_terminal(ip):
                continue
            current = ip.current_case_status
            if current is not None and not is_valid_individual_status_transition(current.code, "cancelled"):
                report["skipped"].append({"id": ip.id, "reason": f"cannot cancel from '{current.code}'"})
                continue
            status_history_service.add_status_record(
                tenant_id, ip.id,
                {"case_status_id": cancelled_status.id, "notes": notes},
                actor=actor, notify=False,
            )
            report["cancelled"].append(ip.id)

    db.session.flush()
    NotificationService.notify_process_milestone(
        proc, "Process Cancelled", f"Main process {proc.reference_number} has been cancelled",
    )
    log_activity(action="cancelled", entity_type="main_process", entity_id=proc.id,
                 details={"previous_status": previous, "notes": notes,
                          "cascaded": cascade, "cancelled_individuals": report["cancelled"]},
                 tenant_id=tenant_id, actor=actor)
    return proc, report


def reopen_main_process(tenant_id, process_id, actor=None):
    proc = get_main_process(tenant_id, process_id)
    if proc.status not in ("completed", "cancelled"):
        raise TransitionError(
            f"MainProcess {proc.reference_number}", proc.status, "in_progress",
            reason="only completed or cancelled processes can be reopened",
        )
    previous = _move_main(proc, "in_progress")
    proc.completed_at = None
    db.session.flush()
    log_activity(action="reopened", entity_type="main_process", entity_id=proc.id,
                 details={"previous_status": previous}, tenant_id=tenant_id, actor=actor)
    return proc


# ── Calculated status ────────────────────────────────────────────────────


def _format_breakdown(breakdown, english):
    if not breakdown:
        return "No status defined" if english else "Sem status definido"
    parts = []
    for item in breakdown:
        name = item["name_en"] if english and item["name_en"] else item["name"]
        parts.append(name if item["count"] == 1 and len(breakdown) == 1 else f"{item['count']} {name}")
    return ", ".join(parts)


def calculate_main_status(main_process):
    """Group the individual processes by current case status.

    Returns:
        {"breakdown": [...], "total_processes", "has_multiple_statuses",
         "display_text", "display_text_en"}
    """
    individuals = IndividualProcess.query.filter_by(main_process_id=main_process.id).all()
    if not individuals:
        return {
            "breakdown": [],
            "total_processes": 0,
            "has_multiple_statuses": False,
            "display_text": "Sem processos individuais",
            "display_text_en": "No individual processes",
        }
    counts = {}
    for ip in individuals:
        status = ip.current_case_status
        if status is None:
            continue
        entry = counts.setdefault(status.id, {
            "case_status_id": status.id,
            "name": status.name,
            "name_en": status.name_en,
            "count": 0,
        })
        entry["count"] += 1
    breakdown = sorted(counts.values(), key=lambda e: (-e["count"], e["name"]))
    return {
        "breakdown": breakdown,
        "total_processes": len(individuals),
        "has_multiple_statuses": len(breakdown) > 1,
        "display_text": _format_breakdown(breakdown, english=False),
        "display_text_en": _format_breakdown(breakdown, english=True),
    }


def main_process_to_dict(proc):
    d = proc.to_dict()
    d["calculated_status"] = calculate_main_status(proc)
    return d


# ═══════════════════════════════════════════════════════════════════════════
#  INDIVIDUAL PROCESS
# ═══════════════════════════════════════════════════════════════════════════

# Attributes editable regardless of the current status
_FREE_TEXT = ("funcao", "qualification", "notes")
_FREE_DATES = ("first_entry_date", "professional_experience_since", "date_process")


def get_individual_process(tenant_id, process_id):
    return get_scoped(IndividualProcess, process_id, tenant_id=tenant_id)


def list_individual_processes_query(tenant_id, filters):
    q = IndividualProcess.query_for_tenant(tenant_id)
    for key in ("main_process_id", "person_id"):
        if filters.get(key):
            q = q.filter(getattr(IndividualProcess, key) == parse_int_field(filters[key], key))
    if filters.get("is_active") is not None:
        q = q.filter_by(is_active=parse_bool(filters["is_active"]))
    if filters.get("case_status_id"):
        q = q.join(
            IndividualProcessStatus,
            (IndividualProcessStatus.individual_process_id == IndividualProcess.id)
            & (IndividualProcessStatus.is_active.is_(True)),
        ).filter(IndividualProcessStatus.case_status_id
                 == parse_int_field(filters["case_status_id"], "case_status_id"))
    return q.order_by(IndividualProcess.id)


def _apply_free_fields(ip, data):
    for field in _FREE_TEXT:
        if field in data:
            setattr(ip, field, data[field])
    if "is_active" in data:
        ip.is_active = parse_bool(data["is_active"])
    if "monthly_amount_to_receive" in data:
        raw = data["monthly_amount_to_receive"]
        if raw in (None, ""):
            ip.monthly_amount_to_receive = None
        else:
            try:
                ip.monthly_amount_to_receive = Decimal(str(raw))
            except InvalidOperation as exc:
                raise ValidationError("monthly_amount_to_receive must be a number",
                                      details={"monthly_amount_to_receive": "invalid"}) from exc
    for field, value in _parse_dates(data, _FREE_DATES).items():
        setattr(ip, field, value)


def create_individual_process(tenant_id, data, actor=None):
    """Create a case; registry fields are unrestricted until a status exists.

    Optional ``initial_case_status_id`` / ``initial_status_date`` append the
    first history record in the same unit of work.
    """
    main_id = data.get("main_process_id")
    if not main_id:
        raise ValidationError("main_process_id is required", details={"main_process_id": "required"})
    main = get_scoped(MainProcess, main_id, tenant_id=tenant_id)
    if not data.get("person_id"):
        raise ValidationError("person_id is required", details={"person_id": "required"})

    registry_values = coerce_fillable_values(
        tenant_id, {k: data[k] for k in FILLABLE_FIELD_NAMES if k in data},
    )
    ip = IndividualProcess(tenant_id=tenant_id, main_process_id=main.id, is_active=True)
    for name, value in registry_values.items():
        setattr(ip, name, value)
    _apply_free_fields(ip, data)
    db.session.add(ip)
    db.session.flush()
    log_activity(action="created", entity_type="individual_process", entity_id=ip.id,
                 details={"main_process_id": main.id, "person_id": ip.person_id},
                 tenant_id=tenant_id, actor=actor)

    if data.get("initial_case_status_id"):
        status_history_service.add_status_record(
            tenant_id, ip.id,
            {"case_status_id": data["initial_case_status_id"],
             "date": data.get("initial_status_date")},
            actor=actor,
        )
    return ip


def fillable_fields_for(ip):
    """Metadata of registry fields editable in the current status (all when no status)."""
    status = ip.current_case_status
    if status is None:
        return get_fields_metadata(sorted(FILLABLE_FIELD_NAMES))
    return get_fields_metadata(status.fillable_fields or [])


def update_individual_process(tenant_id, process_id, data, actor=None):
    """Patch a case.

    Registry (FILLABLE_FIELDS) attributes may only change when the current
    case status lists them in ``fillable_fields``.

    Raises:
        ValidationError: locked registry field, bad value.
        ConflictError: ``expected_version`` does not match.
    """
    ip = get_individual_process(tenant_id, process_id)
    expected = data.get("expected_version")
    if expected is not None and not is_int(expected):
        raise ValidationError("expected_version must be an integer",
                              details={"expected_version": "must be an integer"})
    if expected is not None and expected != ip.version:
        raise ConflictError(
            "IndividualProcess", "version", ip.id,
            message=f"IndividualProcess {ip.id} is at version {ip.version}, expected {expected}",
        )

    registry_patch = {k: data[k] for k in FILLABLE_FIELD_NAMES if k in data}
    values = coerce_fillable_values(tenant_id, registry_patch)
    status = ip.current_case_status
    if status is not None and values:
        # Resending a locked field with its current value is not an edit.
        allowed = set(status.fillable_fields or [])
        locked = sorted(k for k, v in values.items()
                        if k not in allowed and v != getattr(ip, k))
        if locked:
            raise ValidationError(
                f"Fields not editable in status '{status.code}': {', '.join(locked)}",
                details={k: "not fillable in current status" for k in locked},
            )

    if "main_process_id" in data and data["main_process_id"] != ip.main_process_id:
        ip.main_process_id = get_scoped(MainProcess, data["main_process_id"], tenant_id=tenant_id).id
    for name, value in values.items():
        setattr(ip, name, value)
    _apply_free_fields(ip, data)
    db.session.flush()
    log_activity(action="updated", entity_type="individual_process", entity_id=ip.id,
                 details={"fields": sorted(k for k in data if k != "expected_version")},
                 tenant_id=tenant_id, actor=actor)
    return ip


def delete_individual_process(tenant_id, process_id, actor=None):
    """Delete a case together with its status history."""
    ip = get_individual_process(tenant_id, process_id)
    main_id = ip.main_process_id
    db.session.delete(ip)
    db.session.flush()
    log_activity(action="deleted", entity_type="individual_process", entity_id=process_id,
                 details={"main_process_id": main_id}, tenant_id=tenant_id, actor=actor)
