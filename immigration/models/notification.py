"""In-app notification rows (one per recipient per event)."""

from datetime import datetime, timezone

from immigration.models import db
from immigration.models.base import TenantModel, iso

BROADCAST = "all"

NOTIFICATION_TYPES = frozenset({
    "status_change", "task_assigned", "task_due", "process_milestone", "deadline", "system",
})


class Notification(TenantModel):
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_inbox", "tenant_id", "recipient", "is_read"),
    )

    id = db.Column(db.Integer, primary_key=True)
    recipient = db.Column(db.String(150), nullable=False, default=BROADCAST,
                          comment="X-Actor value, or 'all'")
    type = db.Column(db.String(30), nullable=False, default="system")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    entity_type = db.Column(db.String(40), default="")
    entity_id = db.Column(db.Integer, nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "recipient": self.recipient,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "entity_type": self.entity_type or None,
            "entity_id": self.entity_id,
            "is_read": self.is_read,
            "read_at": iso(self.read_at),
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Notification {self.id} {self.type} -> {self.recipient}>"
