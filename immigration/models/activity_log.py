"""
Immigration Case Management API
Activity log - immutable, append-only trail of user actions.

Usage:
    from immigration.models.activity_log import log_activity

    log_activity(action="status_added", entity_type="individual_process",
                 entity_id=proc.id, details={"case_status": "protocolado"})
"""

import logging

from immigration.models import db
from immigration.models.base import iso, utcnow

logger = logging.getLogger(__name__)

ACTIVITY_ACTIONS = {
    "created", "updated", "deleted",
    "status_added", "status_updated", "status_removed", "status_changed",
    "completed", "cancelled", "reopened",
    "reassigned", "deadline_extended", "toggled", "reordered",
}


class ActivityLog(db.Model):
    """One row per user action.  No update or delete API is exposed."""

    __tablename__ = "activity_logs"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    actor = db.Column(db.String(150), nullable=False, default="system", index=True)
    action = db.Column(db.String(40), nullable=False, index=True)
    entity_type = db.Column(db.String(40), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=True, index=True)
    details = db.Column(db.JSON, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(300), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "actor": self.actor,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details or {},
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.entity_type}:{self.entity_id}>"


def log_activity(
    *,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    details: dict | None = None,
    tenant_id: int | None = None,
    actor: str | None = None,
) -> ActivityLog | None:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control; the row commits or rolls back with the change
    it describes.

    Returns the (flushed) ActivityLog, or None when no tenant is in scope.
    """
    ip_address = None
    user_agent = None
    from flask import g, has_request_context, request
    if has_request_context():
        if tenant_id is None:
            tenant_id = getattr(g, "tenant_id", None)
        if actor is None:
            actor = getattr(g, "actor", None)
        ip_address = request.remote_addr
        user_agent = (request.user_agent.string or "")[:300] or None

    if tenant_id is None:
        logger.warning("Activity %s on %s:%s skipped (no tenant)", action, entity_type, entity_id)
        return None

    entry = ActivityLog(
        tenant_id=tenant_id,
        actor=actor or "system",
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    db.session.flush()
    return entry
