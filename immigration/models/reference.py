"""
Immigration Case Management API
Lookup tables used by processes.

Models:
    - Consulate: Brazilian consular post abroad
    - CboCode: Brazilian occupation classification (CBO)
    - ProcessType: kind of immigration engagement (work visa, residence, ...)
"""

from immigration.models import db
from immigration.models.base import TenantModel


class Consulate(TenantModel):
    __tablename__ = "consulates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    city_id = db.Column(
        db.Integer, db.ForeignKey("cities.id", ondelete="RESTRICT"), nullable=True, index=True,
    )
    address = db.Column(db.String(300), nullable=True)
    phone_number = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    website = db.Column(db.String(300), nullable=True)

    city = db.relationship("City")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "city_id": self.city_id,
            "city_name": self.city.name if self.city else None,
            "address": self.address,
            "phone_number": self.phone_number,
            "email": self.email,
            "website": self.website,
            **self._timestamps(),
        }


class CboCode(TenantModel):
    __tablename__ = "cbo_codes"
    __table_args__ = (TenantModel.tenant_unique("cbo_codes", "code"),)

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), nullable=True)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "title": self.title,
            "description": self.description,
            **self._timestamps(),
        }


class ProcessType(TenantModel):
    __tablename__ = "process_types"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    estimated_days = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "estimated_days": self.estimated_days,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<ProcessType {self.name}>"
