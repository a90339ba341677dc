"""
TenantModel - Abstract base class for tenant-scoped models.

All business tables inherit from TenantModel instead of db.Model directly.
This adds:
  - tenant_id FK column with index
  - created_at / updated_at timestamps
  - query_for_tenant(tenant_id) classmethod
  - Composite unique-constraint helper
"""

from datetime import date, datetime, timezone

from immigration.models import db


def utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """Serialise a date/datetime column value (None-safe)."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class TenantModel(db.Model):
    """Abstract base for tenant-scoped tables."""
    __abstract__ = True

    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @classmethod
    def query_for_tenant(cls, tenant_id):
        """Return a query filtered by tenant_id."""
        return cls.query.filter_by(tenant_id=tenant_id)

    @classmethod
    def tenant_unique(cls, tablename, *extra_cols):
        """Build a (tenant_id, ...) unique constraint for __table_args__."""
        name = f"uq_{tablename}_tenant_{'_'.join(extra_cols)}"
        return db.UniqueConstraint("tenant_id", *extra_cols, name=name)

    def _timestamps(self):
        return {
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
