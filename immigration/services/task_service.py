"""Task service layer.

Transaction policy: methods use flush(), never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Task CRUD with filters
- complete / reassign (notifies the new assignee) / extend deadline
- overdue list, "my tasks", bulk status update
"""
import logging
from datetime import date, datetime, timezone

from immigration.core.exceptions import TransitionError, ValidationError
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.process import IndividualProcess, MainProcess
from immigration.models.task import CLOSED_TASK_STATUSES, TASK_PRIORITIES, TASK_STATUSES, Task
from immigration.services.helpers.scoped_queries import ensure_scoped_fk, get_scoped
from immigration.services.notification import NotificationService
from immigration.utils.helpers import parse_date_input, parse_int_field

logger = logging.getLogger(__name__)

_FILTERS = ("status", "priority", "assigned_to")
_FK_FILTERS = ("individual_process_id", "main_process_id")


def _validate_enums(data):
    if data.get("priority") and data["priority"] not in TASK_PRIORITIES:
        raise ValidationError(f"Invalid priority. Must be one of: {list(TASK_PRIORITIES)}",
                              details={"priority": "invalid"})
    if data.get("status") and data["status"] not in TASK_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {list(TASK_STATUSES)}",
                              details={"status": "invalid"})


def _parse_due(value):
    try:
        return parse_date_input(value)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"due_date": str(exc)}) from exc


def _close(task, actor):
    task.completed_at = datetime.now(timezone.utc)
    task.completed_by = actor or "system"


# ── Queries ──────────────────────────────────────────────────────────────


def list_tasks_query(tenant_id, filters):
    q = Task.query_for_tenant(tenant_id)
    for key in _FILTERS:
        if filters.get(key):
            q = q.filter(getattr(Task, key) == filters[key])
    for key in _FK_FILTERS:
        if filters.get(key):
            q = q.filter(getattr(Task, key) == parse_int_field(filters[key], key))
    return q.order_by(Task.due_date.is_(None), Task.due_date, Task.id)


def get_task(tenant_id, task_id):
    return get_scoped(Task, task_id, tenant_id=tenant_id)


def overdue_query(tenant_id):
    """Tasks due before today and not completed/cancelled."""
    return (
        Task.query_for_tenant(tenant_id)
        .filter(Task.due_date < date.today(), Task.status.notin_(CLOSED_TASK_STATUSES))
        .order_by(Task.due_date, Task.id)
    )


def my_tasks_query(tenant_id, actor, include_closed=False):
    q = Task.query_for_tenant(tenant_id).filter_by(assigned_to=actor)
    if not include_closed:
        q = q.filter(Task.status.notin_(CLOSED_TASK_STATUSES))
    return q.order_by(Task.due_date.is_(None), Task.due_date, Task.id)


# ── Mutations ────────────────────────────────────────────────────────────


def create_task(tenant_id, data, actor=None):
    if not (data.get("title") or "").strip():
        raise ValidationError("title is required", details={"title": "required"})
    _validate_enums(data)
    ensure_scoped_fk(IndividualProcess, data.get("individual_process_id"), tenant_id,
                     field="individual_process_id")
    ensure_scoped_fk(MainProcess, data.get("main_process_id"), tenant_id,
                     field="main_process_id")

    task = Task(
        tenant_id=tenant_id,
        title=data["title"].strip(),
        description=data.get("description"),
        individual_process_id=data.get("individual_process_id") or None,
        main_process_id=data.get("main_process_id") or None,
        due_date=_parse_due(data.get("due_date")),
        priority=data.get("priority") or "medium",
        status=data.get("status") or "todo",
        assigned_to=data.get("assigned_to") or None,
        created_by=actor or "system",
    )
    if task.status in CLOSED_TASK_STATUSES:
        _close(task, actor)
    db.session.add(task)
    db.session.flush()
    if task.assigned_to:
        NotificationService.notify_task_assigned(task)
    log_activity(action="created", entity_type="task", entity_id=task.id,
                 details={"title": task.title, "assigned_to": task.assigned_to},
                 tenant_id=tenant_id, actor=actor)
    return task


def update_task(tenant_id, task_id, data, actor=None):
    task = get_task(tenant_id, task_id)
    _validate_enums(data)
    if "title" in data:
        if not (data["title"] or "").strip():
            raise ValidationError("title cannot be empty", details={"title": "required"})
        task.title = data["title"].strip()
    for field in ("description", "priority"):
        if field in data and data[field] is not None:
            setattr(task, field, data[field])
    for field, model in (("individual_process_id", IndividualProcess),
                         ("main_process_id", MainProcess)):
        if field in data:
            ensure_scoped_fk(model, data[field], tenant_id, field=field)
            setattr(task, field, data[field] or None)
    if "due_date" in data:
        task.due_date = _parse_due(data["due_date"])

    previous_assignee = task.assigned_to
    if "assigned_to" in data:
        task.assigned_to = data["assigned_to"] or None
    if "status" in data and data["status"] and data["status"] != task.status:
        task.status = data["status"]
        if task.status in CLOSED_TASK_STATUSES:
            _close(task, actor)
        else:
            task.completed_at = None
            task.completed_by = None
    db.session.flush()
    if task.assigned_to and task.assigned_to != previous_assignee:
        NotificationService.notify_task_assigned(task)
    log_activity(action="updated", entity_type="task", entity_id=task.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return task


def delete_task(tenant_id, task_id, actor=None):
    task = get_task(tenant_id, task_id)
    title = task.title
    db.session.delete(task)
    db.session.flush()
    log_activity(action="deleted", entity_type="task", entity_id=task_id,
                 details={"title": title}, tenant_id=tenant_id, actor=actor)


def complete_task(tenant_id, task_id, actor=None):
    task = get_task(tenant_id, task_id)
    if task.status == "completed":
        raise TransitionError(f"Task {task.id}", task.status, "completed", reason="already completed")
    task.status = "completed"
    _close(task, actor)
    db.session.flush()
    log_activity(action="completed", entity_type="task", entity_id=task.id,
                 tenant_id=tenant_id, actor=actor)
    return task


def reassign_task(tenant_id, task_id, assigned_to, actor=None):
    if not assigned_to:
        raise ValidationError("assigned_to is required", details={"assigned_to": "required"})
    task = get_task(tenant_id, task_id)
    previous = task.assigned_to
    task.assigned_to = assigned_to
    db.session.flush()
    NotificationService.notify_task_assigned(task)
    log_activity(action="reassigned", entity_type="task", entity_id=task.id,
                 details={"from": previous, "to": assigned_to},
                 tenant_id=tenant_id, actor=actor)
    return task


def extend_deadline(tenant_id, task_id, new_due_date, actor=None):
    due = _parse_due(new_due_date)
    if due is None:
        raise ValidationError("due_date is required", details={"due_date": "required"})
    if due < date.today():
        raise ValidationError("New deadline cannot be in the past",
                              details={"due_date": "in the past"})
    task = get_task(tenant_id, task_id)
    previous = task.due_date
    task.due_date = due
    db.session.flush()
    log_activity(action="deadline_extended", entity_type="task", entity_id=task.id,
                 details={"from": previous.isoformat() if previous else None,
                          "to": due.isoformat()},
                 tenant_id=tenant_id, actor=actor)
    return task


def bulk_update_status(tenant_id, data, actor=None):
    """Set one status on many tasks; unknown ids are reported, not fatal."""
    ids = data.get("task_ids")
    status = data.get("status")
    if not isinstance(ids, list) or not ids:
        raise ValidationError("task_ids must be a non-empty list", details={"task_ids": "required"})
    if status not in TASK_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {list(TASK_STATUSES)}",
                              details={"status": "invalid"})
    tasks = Task.query_for_tenant(tenant_id).filter(Task.id.in_(ids)).all()
    found = {t.id for t in tasks}
    for task in tasks:
        if task.status == status:
            continue
        task.status = status
        if status in CLOSED_TASK_STATUSES:
            _close(task, actor)
        else:
            task.completed_at = None
            task.completed_by = None
    db.session.flush()
    log_activity(action="updated", entity_type="task",
                 details={"bulk_status": status, "count": len(found)},
                 tenant_id=tenant_id, actor=actor)
    return {
        "updated": sorted(found),
        "not_found": [i for i in ids if i not in found],
        "status": status,
    }
