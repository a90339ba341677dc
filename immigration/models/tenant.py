"""
Immigration Case Management API
Tenant model - row-level isolation root.

Every business table references tenants.id through TenantModel.
"""

import re

from immigration.models import db
from immigration.models.base import iso, utcnow

SLUG_RE = re.compile(r"^[a-z0-9-]+$")


class Tenant(db.Model):
    """An isolated consultancy workspace."""

    __tablename__ = "tenants"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "created_at": iso(self.created_at),
        }

    def __repr__(self):
        return f"<Tenant {self.slug}>"
