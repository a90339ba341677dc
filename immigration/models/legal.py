"""
Immigration Case Management API
Legal framework models.

Models:
    - LegalFramework: normative basis (e.g. RN 02/2017) for a process type
    - LegalFrameworkInfoRequirement: data point a framework needs collected,
      pointing at a FIELD_REGISTRY entry and naming who must provide it
"""

from immigration.models import db
from immigration.models.base import TenantModel

RESPONSIBLE_PARTIES = ("client", "admin", "company")


class LegalFramework(TenantModel):
    __tablename__ = "legal_frameworks"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    process_type = db.relationship("ProcessType")
    info_requirements = db.relationship(
        "LegalFrameworkInfoRequirement", back_populates="legal_framework",
        cascade="all, delete-orphan",
        order_by="LegalFrameworkInfoRequirement.sort_order",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "process_type_id": self.process_type_id,
            "process_type_name": self.process_type.name if self.process_type else None,
            "is_active": self.is_active,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<LegalFramework {self.name[:40]}>"


class LegalFrameworkInfoRequirement(TenantModel):
    __tablename__ = "legal_framework_info_requirements"

    id = db.Column(db.Integer, primary_key=True)
    legal_framework_id = db.Column(
        db.Integer, db.ForeignKey("legal_frameworks.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    entity_type = db.Column(db.String(30), nullable=False, comment="FIELD_REGISTRY key")
    field_path = db.Column(db.String(100), nullable=False)
    label = db.Column(db.String(200), nullable=False)
    label_en = db.Column(db.String(200), nullable=True)
    field_type = db.Column(db.String(20), nullable=False, default="text")
    responsible_party = db.Column(db.String(20), nullable=False, default="client")
    is_required = db.Column(db.Boolean, default=True, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    legal_framework = db.relationship("LegalFramework", back_populates="info_requirements")

    def to_dict(self):
        return {
            "id": self.id,
            "legal_framework_id": self.legal_framework_id,
            "entity_type": self.entity_type,
            "field_path": self.field_path,
            "label": self.label,
            "label_en": self.label_en,
            "field_type": self.field_type,
            "responsible_party": self.responsible_party,
            "is_required": self.is_required,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            **self._timestamps(),
        }
