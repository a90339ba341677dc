"""
In-app notifications.

Recipients are opaque user keys (the X-Actor value) or ``"all"``; a
recipient's inbox is its own rows plus the broadcasts.  Other services call
the ``notify_*`` helpers inside their own unit of work, so a notification
commits or rolls back with the change that produced it.

Transaction policy: flush() only; the route handler commits.
"""

import logging
from datetime import datetime, timezone

from immigration.models import db
from immigration.models.notification import BROADCAST, NOTIFICATION_TYPES, Notification
from immigration.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    def create(*, tenant_id, title, message="", type="system",
               recipient=BROADCAST, entity_type="", entity_id=None):
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type {type!r}")
        notif = Notification(
            tenant_id=tenant_id, recipient=recipient or BROADCAST, type=type,
            title=title[:300], message=message or "",
            entity_type=entity_type or "", entity_id=entity_id,
        )
        db.session.add(notif)
        db.session.flush()
        logger.debug("Notification %s -> %s: %s", type, notif.recipient, title)
        return notif

    @staticmethod
    def broadcast(*, recipients=None, **fields):
        """One row per recipient, or a single ``all`` row."""
        return [NotificationService.create(recipient=r, **fields) for r in (recipients or [BROADCAST])]

    # ── Inbox ─────────────────────────────────────────────────────────────

    @staticmethod
    def _recipient_query(tenant_id, recipient):
        return Notification.query_for_tenant(tenant_id).filter(
            Notification.recipient.in_({recipient or BROADCAST, BROADCAST})
        )

    @staticmethod
    def list_for_recipient(tenant_id, recipient=BROADCAST, unread_only=False, limit=50, offset=0):
        """``(page, total)``, newest first."""
        q = NotificationService._recipient_query(tenant_id, recipient)
        if unread_only:
            q = q.filter(Notification.is_read.is_(False))
        page = (
            q.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )
        return page, q.count()

    @staticmethod
    def unread_count(tenant_id, recipient=BROADCAST):
        return (
            NotificationService._recipient_query(tenant_id, recipient)
            .filter(Notification.is_read.is_(False))
            .count()
        )

    @staticmethod
    def mark_read(tenant_id, notification_id):
        notif = get_scoped(Notification, notification_id, tenant_id=tenant_id)
        notif.mark_read()
        db.session.flush()
        return notif

    @staticmethod
    def mark_all_read(tenant_id, recipient=BROADCAST):
        """Bulk update; returns the number of rows marked."""
        marked = (
            NotificationService._recipient_query(tenant_id, recipient)
            .filter(Notification.is_read.is_(False))
            .update({"is_read": True, "read_at": datetime.now(timezone.utc)},
                    synchronize_session="fetch")
        )
        db.session.flush()
        return marked

    @staticmethod
    def delete(tenant_id, notification_id):
        db.session.delete(get_scoped(Notification, notification_id, tenant_id=tenant_id))
        db.session.flush()

    # ── Events ────────────────────────────────────────────────────────────

    @staticmethod
    def notify_status_change(process, record, recipient=BROADCAST):
        status = record.case_status
        who = process.person.full_name if process.person else f"person #{process.person_id}"
        return NotificationService.create(
            tenant_id=process.tenant_id,
            type="status_change",
            title=f"Status changed: {status.name}",
            message=f"{who} is now '{status.name}'.",
            recipient=recipient,
            entity_type="individual_process",
            entity_id=process.id,
        )

    @staticmethod
    def notify_task_assigned(task):
        if not task.assigned_to:
            return None
        return NotificationService.create(
            tenant_id=task.tenant_id,
            type="task_assigned",
            title=f"Task assigned: {task.title}",
            message=f"Due {task.due_date.isoformat()}" if task.due_date else "",
            recipient=task.assigned_to,
            entity_type="task",
            entity_id=task.id,
        )

    @staticmethod
    def notify_process_milestone(main_process, title, message=""):
        """Broadcast completed / cancelled / reopened for a main process."""
        return NotificationService.broadcast(
            tenant_id=main_process.tenant_id,
            type="process_milestone",
            title=title,
            message=message,
            entity_type="main_process",
            entity_id=main_process.id,
        )
