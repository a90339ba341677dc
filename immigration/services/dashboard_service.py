"""
Dashboard metrics and RNM appointment calendar.

Aggregates per tenant:
  - individual processes by current case-status category, main processes by status
  - overdue tasks, upcoming deadlines (process deadlines + expiring passports)
  - completion rate, recent activity
  - RNM calendar: appointments inside a date window
"""

import logging
from datetime import date, datetime, time, timedelta

from flask import current_app
from sqlalchemy import func, or_

from immigration.core.exceptions import ValidationError
from immigration.models import db
from immigration.models.activity_log import ActivityLog
from immigration.models.case_status import CASE_STATUS_CATEGORIES, CaseStatus
from immigration.models.people import Passport
from immigration.models.process import (
    MAIN_PROCESS_STATUSES,
    IndividualProcess,
    IndividualProcessStatus,
    MainProcess,
)
from immigration.services import task_service
from immigration.utils.helpers import parse_date_input, parse_int_field

logger = logging.getLogger(__name__)


def _active_status_rows(tenant_id):
    """(individual_process_id, CaseStatus) for every process that has a current status."""
    return (
        db.session.query(IndividualProcessStatus.individual_process_id, CaseStatus)
        .join(CaseStatus, CaseStatus.id == IndividualProcessStatus.case_status_id)
        .filter(IndividualProcessStatus.tenant_id == tenant_id,
                IndividualProcessStatus.is_active.is_(True))
        .all()
    )


def process_stats(tenant_id):
    total_individual = IndividualProcess.query_for_tenant(tenant_id).count()
    by_category = {c: 0 for c in CASE_STATUS_CATEGORIES}
    by_status = {}
    rows = _active_status_rows(tenant_id)
    for _, status in rows:
        key = status.category or "uncategorized"
        by_category[key] = by_category.get(key, 0) + 1
        entry = by_status.setdefault(status.code, {
            "case_status_id": status.id, "code": status.code, "name": status.name,
            "color": status.color, "count": 0,
        })
        entry["count"] += 1

    main_rows = (
        db.session.query(MainProcess.status, func.count(MainProcess.id))
        .filter(MainProcess.tenant_id == tenant_id)
        .group_by(MainProcess.status)
        .all()
    )
    main_by_status = {s: 0 for s in MAIN_PROCESS_STATUSES}
    main_by_status.update({s: n for s, n in main_rows})

    return {
        "individual_processes": {
            "total": total_individual,
            "without_status": total_individual - len(rows),
            "by_category": by_category,
            "by_status": sorted(by_status.values(), key=lambda e: (-e["count"], e["name"])),
        },
        "main_processes": {
            "total": sum(main_by_status.values()),
            "by_status": main_by_status,
        },
    }


def overdue_tasks(tenant_id, limit=50):
    q = task_service.overdue_query(tenant_id)
    return {"total": q.count(), "items": [t.to_dict() for t in q.limit(limit).all()]}


def upcoming_deadlines(tenant_id, days=None):
    """Process deadlines and passport expiries between today and today + days."""
    if days is None:
        days = current_app.config.get("UPCOMING_DEADLINE_DAYS", 30)
    try:
        days = int(days)
    except (TypeError, ValueError) as exc:
        raise ValidationError("days must be an integer", details={"days": "invalid"}) from exc
    if days < 0 or days > 365:
        raise ValidationError("days must be between 0 and 365", details={"days": "out of range"})

    today = date.today()
    horizon = today + timedelta(days=days)

    processes = (
        IndividualProcess.query_for_tenant(tenant_id)
        .filter(IndividualProcess.is_active.is_(True))
        .filter(or_(
            IndividualProcess.deadline_date.between(today, horizon),
            IndividualProcess.rnm_deadline.between(today, horizon),
        ))
        .all()
    )
    items = []
    for ip in processes:
        person = ip.person.full_name if ip.person else None
        for kind in ("deadline_date", "rnm_deadline"):
            value = getattr(ip, kind)
            if value and today <= value <= horizon:
                items.append({
                    "type": kind,
                    "date": value.isoformat(),
                    "days_left": (value - today).days,
                    "individual_process_id": ip.id,
                    "person_name": person,
                })

    passports = (
        Passport.query_for_tenant(tenant_id)
        .filter(Passport.is_active.is_(True), Passport.expiry_date.between(today, horizon))
        .all()
    )
    for p in passports:
        items.append({
            "type": "passport_expiry",
            "date": p.expiry_date.isoformat(),
            "days_left": (p.expiry_date - today).days,
            "passport_id": p.id,
            "person_id": p.person_id,
            "person_name": p.person.full_name if p.person else None,
        })

    items.sort(key=lambda i: (i["date"], i["type"]))
    return {"days": days, "total": len(items), "items": items}


def completion_rate(tenant_id):
    total = IndividualProcess.query_for_tenant(tenant_id).count()
    completed = sum(
        1 for _, status in _active_status_rows(tenant_id)
        if status.category == "completed" or status.code == "completed"
    )
    rate = round(completed / total * 100, 1) if total else 0.0
    return {"total": total, "completed": completed, "completion_rate": rate}


def recent_activity(tenant_id, limit=20):
    logs = (
        ActivityLog.query.filter_by(tenant_id=tenant_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(min(max(parse_int_field(limit, "limit", 20), 1), 100))
        .all()
    )
    return [log.to_dict() for log in logs]


def rnm_calendar(tenant_id, start=None, end=None):
    """Appointments with ``appointment_date_time`` in [start, end], ascending.

    Defaults to the current calendar month.
    """
    try:
        start_d = parse_date_input(start)
        end_d = parse_date_input(end)
    except ValueError as exc:
        raise ValidationError(str(exc), details={"date": str(exc)}) from exc
    today = date.today()
    if start_d is None:
        start_d = today.replace(day=1)
    if end_d is None:
        next_month = (start_d.replace(day=28) + timedelta(days=4)).replace(day=1)
        end_d = next_month - timedelta(days=1)
    if end_d < start_d:
        raise ValidationError("end must not precede start", details={"end": "before start"})

    rows = (
        IndividualProcess.query_for_tenant(tenant_id)
        .filter(IndividualProcess.appointment_date_time >= datetime.combine(start_d, time.min))
        .filter(IndividualProcess.appointment_date_time
                < datetime.combine(end_d + timedelta(days=1), time.min))
        .order_by(IndividualProcess.appointment_date_time, IndividualProcess.id)
        .all()
    )
    events = []
    for ip in rows:
        status = ip.current_case_status
        events.append({
            "individual_process_id": ip.id,
            "appointment_date_time": ip.appointment_date_time.isoformat(),
            "person_name": ip.person.full_name if ip.person else None,
            "reference_number": ip.main_process.reference_number if ip.main_process else None,
            "rnm_number": ip.rnm_number,
            "current_status": status.summary() if status else None,
        })
    return {"start": start_d.isoformat(), "end": end_d.isoformat(), "events": events}
