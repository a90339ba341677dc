"""Activity log queries - read side of the append-only trail.

Writes go through ``immigration.models.activity_log.log_activity``.
"""
import logging
from datetime import datetime, time, timedelta, timezone

from immigration.core.exceptions import ValidationError
from immigration.models.activity_log import ActivityLog
from immigration.services.helpers.scoped_queries import get_scoped
from immigration.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

_FILTERS = ("actor", "entity_type", "action")


def build_query(tenant_id, filters: dict):
    """Filtered, newest-first query over a tenant's activity logs.

    Supported filters: actor, entity_type, entity_id, action,
    start_date / end_date (inclusive, YYYY-MM-DD).
    """
    q = ActivityLog.query.filter_by(tenant_id=tenant_id)
    for key in _FILTERS:
        if filters.get(key):
            q = q.filter(getattr(ActivityLog, key) == filters[key])
    if filters.get("entity_id") not in (None, ""):
        try:
            q = q.filter(ActivityLog.entity_id == int(filters["entity_id"]))
        except (TypeError, ValueError) as exc:
            raise ValidationError("entity_id must be an integer",
                                  details={"entity_id": "invalid"}) from exc
    try:
        start = parse_date_input(filters.get("start_date"))
        end = parse_date_input(filters.get("end_date"))
    except ValueError as exc:
        raise ValidationError(str(exc), details={"date": str(exc)}) from exc
    if start:
        q = q.filter(ActivityLog.created_at >= _day_start(start))
    if end:
        q = q.filter(ActivityLog.created_at < _day_start(end + timedelta(days=1)))
    return q.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())


def _day_start(d):
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def get_log(tenant_id, log_id):
    return get_scoped(ActivityLog, log_id, tenant_id=tenant_id)


def entity_history(tenant_id, entity_type, entity_id, limit=100):
    """All actions recorded against one entity, newest first."""
    return (
        ActivityLog.query
        .filter_by(tenant_id=tenant_id, entity_type=entity_type, entity_id=entity_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
