"""
Immigration Case Management API
Task model - follow-up work attached to processes.
"""

from datetime import date

from immigration.models import db
from immigration.models.base import TenantModel, iso

TASK_PRIORITIES = ("low", "medium", "high", "urgent")
TASK_STATUSES = ("todo", "in_progress", "completed", "cancelled")
CLOSED_TASK_STATUSES = {"completed", "cancelled"}


class Task(TenantModel):
    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    main_process_id = db.Column(
        db.Integer, db.ForeignKey("main_processes.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    due_date = db.Column(db.Date, nullable=True, index=True)
    priority = db.Column(db.String(10), default="medium", nullable=False)
    status = db.Column(db.String(20), default="todo", nullable=False, index=True)
    assigned_to = db.Column(db.String(150), nullable=True, index=True)
    created_by = db.Column(db.String(150), default="system")
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_by = db.Column(db.String(150), nullable=True)

    @property
    def is_overdue(self):
        return bool(
            self.due_date
            and self.due_date < date.today()
            and self.status not in CLOSED_TASK_STATUSES
        )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "individual_process_id": self.individual_process_id,
            "main_process_id": self.main_process_id,
            "due_date": iso(self.due_date),
            "priority": self.priority,
            "status": self.status,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "completed_at": iso(self.completed_at),
            "completed_by": self.completed_by,
            "is_overdue": self.is_overdue,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title[:40]}>"
