"""
Individual process status history.

The current status of an individual process is its single active history
record.  Appending a new active record is one atomic unit of work:

    1. validate the payload (typed schema)
    2. check the optimistic version token, if the caller sent one
    3. check current.code → candidate.code against INDIVIDUAL_STATUS_TRANSITIONS
    4. check filled_fields_data against the candidate's fillable_fields
    5. deactivate the previous active record, insert the new one
    6. copy filled values onto the process, apply status side effects
       (active records only)
    7. bump IndividualProcess.version (UPDATE ... WHERE version = <read>)

Steps 1-4 raise before anything is written.  A concurrent writer that
commits first makes step 7 match zero rows (StaleDataError) or trips the
one-active-record unique index (IntegrityError); both surface as
ConflictError → HTTP 409 and nothing is persisted.

Transaction policy: flush() only; the route handler commits.

Usage:
    from immigration.services import status_history_service as history

    record = history.add_status_record(tenant_id, process_id, {"case_status_id": 3})
"""
import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from immigration.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransitionError,
    ValidationError,
)
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.case_status import CaseStatus
from immigration.models.process import IndividualProcess, IndividualProcessStatus
from immigration.schemas import is_int
from immigration.schemas.status_record import validate_status_record
from immigration.services.field_registry import get_fields_metadata
from immigration.services.fillable import coerce_fillable_values
from immigration.services.helpers.scoped_queries import get_scoped
from immigration.services.notification import NotificationService
from immigration.services.status_transitions import is_valid_status_transition

logger = logging.getLogger(__name__)

HISTORY_ORDERS = ("asc", "desc")


# ── Queries ──────────────────────────────────────────────────────────────


def list_status_history(tenant_id, individual_process_id, order="asc"):
    """All records of one process ordered by creation (``desc`` reverses)."""
    if order not in HISTORY_ORDERS:
        raise ValidationError("order must be 'asc' or 'desc'", details={"order": order})
    process = get_scoped(IndividualProcess, individual_process_id, tenant_id=tenant_id)
    q = IndividualProcessStatus.query.filter_by(
        tenant_id=tenant_id, individual_process_id=process.id,
    )
    if order == "desc":
        q = q.order_by(IndividualProcessStatus.created_at.desc(), IndividualProcessStatus.id.desc())
    else:
        q = q.order_by(IndividualProcessStatus.created_at, IndividualProcessStatus.id)
    return q.all()


def get_active_status(tenant_id, individual_process_id):
    """The current record, or None for a process without history."""
    process = get_scoped(IndividualProcess, individual_process_id, tenant_id=tenant_id)
    return process.active_status_record


def get_status_record(tenant_id, record_id):
    return get_scoped(IndividualProcessStatus, record_id, tenant_id=tenant_id)


# ── Append ───────────────────────────────────────────────────────────────


def _check_transition(process, current, case_status):
    if current is None:
        return
    current_code = current.case_status.code
    if not is_valid_status_transition(current_code, case_status.code, "individual"):
        logger.warning(
            "Rejected status transition %s → %s (process=%s tenant=%s)",
            current_code, case_status.code, process.id, process.tenant_id,
        )
        raise TransitionError(
            f"IndividualProcess {process.id}", current_code, case_status.code,
            reason="transition not allowed",
        )


def _check_filled_fields(tenant_id, case_status, filled):
    if not filled:
        return {}
    allowed = set(case_status.fillable_fields or [])
    illegal = sorted(k for k in filled if k not in allowed)
    if illegal:
        raise ValidationError(
            f"Fields not fillable in status '{case_status.code}': {', '.join(illegal)}",
            details={name: "not fillable in this status" for name in illegal},
        )
    return coerce_fillable_values(tenant_id, filled)


def _flush_or_conflict(process):
    try:
        db.session.flush()
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        logger.warning("Concurrent status write on process %s: %s", process.id, exc)
        raise ConflictError(
            "IndividualProcess", "version", process.id,
            message=f"IndividualProcess {process.id} was modified concurrently; reload and retry",
        ) from exc


def add_status_record(tenant_id, individual_process_id, data, actor=None, notify=True):
    """Validate the transition and append a status record atomically.

    Args:
        data: case_status_id, date, notes, is_active, filled_fields_data,
              expected_version (see schemas.status_record).

    Returns:
        The flushed IndividualProcessStatus.

    Raises:
        NotFoundError: process or case status not in tenant.
        ValidationError: payload, inactive status, or non-fillable fields.
        TransitionError: move not in the individual transition table.
        ConflictError: stale expected_version or lost write race.
    """
    process = get_scoped(IndividualProcess, individual_process_id, tenant_id=tenant_id)
    spec = validate_status_record(data).unwrap("Invalid status record")
    case_status = get_scoped(CaseStatus, spec.case_status_id, tenant_id=tenant_id)
    if not case_status.is_active:
        raise ValidationError(
            f"Case status '{case_status.code}' is inactive",
            details={"case_status_id": "inactive"},
        )

    if spec.expected_version is not None and spec.expected_version != process.version:
        raise ConflictError(
            "IndividualProcess", "version", process.id,
            message=(f"IndividualProcess {process.id} is at version {process.version}, "
                     f"expected {spec.expected_version}; reload and retry"),
        )

    current = process.active_status_record
    if spec.is_active:
        _check_transition(process, current, case_status)
    values = _check_filled_fields(tenant_id, case_status, spec.filled_fields_data)

    # ── writes start here ─────────────────────────────────────────────
    record_date = spec.date or date.today()
    if spec.is_active and current is not None:
        current.is_active = False
        db.session.flush()

    record = IndividualProcessStatus(
        tenant_id=tenant_id,
        individual_process_id=process.id,
        case_status_id=case_status.id,
        date=record_date,
        notes=spec.notes,
        is_active=spec.is_active,
        filled_fields_data=spec.filled_fields_data or {},
        changed_by=actor or "system",
        changed_at=datetime.now(timezone.utc),
    )
    db.session.add(record)

    if spec.is_active:
        # Inactive records keep their values as history only.
        for name, value in values.items():
            setattr(process, name, value)
        if case_status.category == "preparation":
            process.date_process = record_date
        elif case_status.category == "completed" and process.completed_at is None:
            process.completed_at = datetime.now(timezone.utc)
    process.touch()
    _flush_or_conflict(process)

    log_activity(
        action="status_added",
        entity_type="individual_process",
        entity_id=process.id,
        details={
            "record_id": record.id,
            "case_status": case_status.code,
            "previous_status": current.case_status.code if current else None,
            "is_active": record.is_active,
            "filled_fields": sorted(values),
        },
        tenant_id=tenant_id,
        actor=actor,
    )
    if notify and record.is_active:
        NotificationService.notify_status_change(process, record)
    logger.info("Status %s added to process %s (active=%s, version=%s)",
                case_status.code, process.id, record.is_active, process.version)
    return record


# ── Update / remove ──────────────────────────────────────────────────────


def update_status_record(tenant_id, record_id, data, actor=None):
    """Change date and/or notes of an existing record."""
    record = get_status_record(tenant_id, record_id)
    spec = validate_status_record(data, partial=True).unwrap("Invalid status record")
    if "date" in spec.fields_set:
        record.date = spec.date or record.date
        if record.is_active and record.case_status.category == "preparation":
            record.individual_process.date_process = record.date
    if "notes" in spec.fields_set:
        record.notes = spec.notes
    db.session.flush()
    log_activity(action="status_updated", entity_type="individual_process",
                 entity_id=record.individual_process_id,
                 details={"record_id": record.id, "fields": sorted(spec.fields_set)},
                 tenant_id=tenant_id, actor=actor)
    return record


def get_record_filled_fields(tenant_id, record_id):
    """Fillable fields of the record's case status with recorded and current values."""
    record = get_status_record(tenant_id, record_id)
    process = record.individual_process
    filled = record.filled_fields_data or {}
    status = record.case_status
    fields = []
    for meta in get_fields_metadata(status.fillable_fields or []):
        entry = meta.to_dict()
        entry["filled_value"] = filled.get(meta.field_name)
        current = getattr(process, meta.field_name)
        if isinstance(current, (date, datetime)):
            current = current.isoformat()
        entry["current_value"] = current
        fields.append(entry)
    return {
        "record_id": record.id,
        "individual_process_id": process.id,
        "case_status": status.code,
        "is_active": record.is_active,
        "fields": fields,
        "filled_fields_data": filled,
        "process_version": process.version,
    }


def save_record_filled_fields(tenant_id, record_id, data, actor=None):
    """Merge ``data["values"]`` into the record's filled_fields_data.

    Values go onto the process only while the record is active.

    Raises:
        ValidationError: missing values, fields not fillable in the record's status.
        ConflictError: stale expected_version or lost write race.
    """
    record = get_status_record(tenant_id, record_id)
    process = record.individual_process
    filled = data.get("values")
    if not isinstance(filled, dict) or not filled:
        raise ValidationError("values must be a non-empty object",
                              details={"values": "required"})
    expected = data.get("expected_version")
    if expected is not None:
        if not is_int(expected):
            raise ValidationError("expected_version must be an integer",
                                  details={"expected_version": "must be an integer"})
        if expected != process.version:
            raise ConflictError(
                "IndividualProcess", "version", process.id,
                message=(f"IndividualProcess {process.id} is at version {process.version}, "
                         f"expected {expected}; reload and retry"),
            )
    values = _check_filled_fields(tenant_id, record.case_status, filled)

    record.filled_fields_data = {**(record.filled_fields_data or {}), **filled}
    if record.is_active:
        for name, value in values.items():
            setattr(process, name, value)
    process.touch()
    _flush_or_conflict(process)

    log_activity(action="status_fields_filled", entity_type="individual_process",
                 entity_id=process.id,
                 details={"record_id": record.id, "filled_fields": sorted(values),
                          "applied": record.is_active},
                 tenant_id=tenant_id, actor=actor)
    return record


def remove_status_record(tenant_id, record_id, actor=None):
    """Delete a record; if it was current, the newest remaining record becomes current.

    Returns the newly active record (or None).
    """
    record = get_status_record(tenant_id, record_id)
    process = record.individual_process
    was_active = record.is_active
    code = record.case_status.code if record.case_status else None

    db.session.delete(record)
    db.session.flush()

    promoted = None
    if was_active:
        promoted = (
            IndividualProcessStatus.query
            .filter_by(individual_process_id=process.id)
            .order_by(IndividualProcessStatus.created_at.desc(), IndividualProcessStatus.id.desc())
            .first()
        )
        if promoted is not None:
            promoted.is_active = True
    process.touch()
    _flush_or_conflict(process)

    log_activity(action="status_removed", entity_type="individual_process",
                 entity_id=process.id,
                 details={"record_id": record_id, "case_status": code,
                          "promoted_record_id": promoted.id if promoted else None},
                 tenant_id=tenant_id, actor=actor)
    return promoted


# ── Bulk ─────────────────────────────────────────────────────────────────


def bulk_add_status(tenant_id, data, actor=None):
    """Append the same status to many processes with partial success.

    Payload: individual_process_ids (list[int]), case_status_id, date, notes.

    Returns:
        {"successful": [ids], "failed": [{"id", "reason"}], "total_processed": n}

    A lost write race (ConflictError) aborts the whole batch.
    """
    ids = data.get("individual_process_ids")
    if not isinstance(ids, list) or not ids:
        raise ValidationError("individual_process_ids must be a non-empty list",
                              details={"individual_process_ids": "required"})
    if not all(is_int(pid) for pid in ids):
        raise ValidationError("individual_process_ids must be a list of integers",
                              details={"individual_process_ids": "must be a list of integers"})
    payload = {k: data[k] for k in ("case_status_id", "date", "notes") if k in data}
    result = {"successful": [], "failed": [], "total_processed": 0}
    for pid in dict.fromkeys(ids):
        result["total_processed"] += 1
        try:
            add_status_record(tenant_id, pid, payload, actor=actor)
        except (NotFoundError, ValidationError, TransitionError) as exc:
            result["failed"].append({"id": pid, "reason": str(exc)})
        else:
            result["successful"].append(pid)
    logger.info("Bulk status: %d ok, %d failed (tenant=%s)",
                len(result["successful"]), len(result["failed"]), tenant_id)
    return result
