"""
Immigration Case Management API
Case status catalog - admin-managed stages of an individual process.

Each CaseStatus declares which individual-process attributes become
editable ("fillable") while a process sits in it.  Statuses are never
hard-deleted; removal flips is_active.
"""

from immigration.models import db
from immigration.models.base import TenantModel

# ── Constants ────────────────────────────────────────────────────────────────

CASE_STATUS_CATEGORIES = (
    "preparation",
    "in_progress",
    "review",
    "approved",
    "completed",
    "cancelled",
)

CATEGORY_COLORS = {
    "preparation": "#3B82F6",
    "in_progress": "#FBBF24",
    "review": "#F97316",
    "approved": "#10B981",
    "completed": "#059669",
    "cancelled": "#EF4444",
}

CATEGORY_LABELS = {
    "preparation": "Preparation",
    "in_progress": "In Progress",
    "review": "Under Review",
    "approved": "Approved",
    "completed": "Completed",
    "cancelled": "Cancelled",
}

DEFAULT_COLOR = "#6B7280"


def category_color(category):
    """Return the badge colour for a category, grey when unknown."""
    return CATEGORY_COLORS.get(category or "", DEFAULT_COLOR)


def category_label(category):
    return CATEGORY_LABELS.get(category or "", category or "")


class CaseStatus(TenantModel):
    """A named stage in an individual process's lifecycle."""

    __tablename__ = "case_statuses"
    __table_args__ = (TenantModel.tenant_unique("case_statuses", "code"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    name_en = db.Column(db.String(100), nullable=True)
    code = db.Column(db.String(50), nullable=False, comment="Stable snake_case key")
    description = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(20), nullable=True, index=True)
    color = db.Column(db.String(7), nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=1)
    order_number = db.Column(db.Integer, nullable=True)
    fillable_fields = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "name_en": self.name_en,
            "code": self.code,
            "description": self.description,
            "category": self.category,
            "category_label": category_label(self.category),
            "color": self.color or category_color(self.category),
            "sort_order": self.sort_order,
            "order_number": self.order_number,
            "fillable_fields": list(self.fillable_fields or []),
            "is_active": self.is_active,
            **self._timestamps(),
        }

    def summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "name_en": self.name_en,
            "code": self.code,
            "category": self.category,
            "color": self.color or category_color(self.category),
        }

    def __repr__(self):
        return f"<CaseStatus {self.code}>"
