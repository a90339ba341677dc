"""
Immigration Case Management API
Document configuration models.

Models:
    - DocumentType: kind of document collected (passport copy, diploma, ...)
    - DocumentTypeFieldMapping: FIELD_REGISTRY entries a document type feeds
    - DocumentTemplate: versioned checklist of documents for a process type
    - DocumentRequirement: one line of a template's checklist

Chain: ProcessType → DocumentTemplate → DocumentRequirement → DocumentType
"""

from immigration.models import db
from immigration.models.base import TenantModel


class DocumentType(TenantModel):
    __tablename__ = "document_types"
    __table_args__ = (TenantModel.tenant_unique("document_types", "code"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.String(50), nullable=True)
    category = db.Column(db.String(50), nullable=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    field_mappings = db.relationship(
        "DocumentTypeFieldMapping", back_populates="document_type",
        cascade="all, delete-orphan",
        order_by="DocumentTypeFieldMapping.sort_order",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "category": self.category,
            "description": self.description,
            "is_active": self.is_active,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<DocumentType {self.name[:40]}>"


class DocumentTypeFieldMapping(TenantModel):
    __tablename__ = "document_type_field_mappings"

    id = db.Column(db.Integer, primary_key=True)
    document_type_id = db.Column(
        db.Integer, db.ForeignKey("document_types.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    entity_type = db.Column(db.String(30), nullable=False)
    field_path = db.Column(db.String(100), nullable=False)
    label = db.Column(db.String(200), nullable=False)
    label_en = db.Column(db.String(200), nullable=True)
    field_type = db.Column(db.String(20), nullable=False, default="text")
    is_required = db.Column(db.Boolean, default=False, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    document_type = db.relationship("DocumentType", back_populates="field_mappings")

    def to_dict(self):
        return {
            "id": self.id,
            "document_type_id": self.document_type_id,
            "entity_type": self.entity_type,
            "field_path": self.field_path,
            "label": self.label,
            "label_en": self.label_en,
            "field_type": self.field_type,
            "is_required": self.is_required,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            **self._timestamps(),
        }


class DocumentTemplate(TenantModel):
    __tablename__ = "document_templates"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    legal_framework_id = db.Column(
        db.Integer, db.ForeignKey("legal_frameworks.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    version = db.Column(db.Integer, default=1, nullable=False)

    process_type = db.relationship("ProcessType")
    legal_framework = db.relationship("LegalFramework")
    requirements = db.relationship(
        "DocumentRequirement", back_populates="template",
        cascade="all, delete-orphan",
        order_by="DocumentRequirement.sort_order",
    )

    def to_dict(self, include_requirements=True):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "process_type_id": self.process_type_id,
            "process_type_name": self.process_type.name if self.process_type else None,
            "legal_framework_id": self.legal_framework_id,
            "is_active": self.is_active,
            "version": self.version,
            **self._timestamps(),
        }
        if include_requirements:
            d["requirements"] = [r.to_dict() for r in self.requirements]
        return d


class DocumentRequirement(TenantModel):
    __tablename__ = "document_requirements"

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(
        db.Integer, db.ForeignKey("document_templates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    document_type_id = db.Column(
        db.Integer, db.ForeignKey("document_types.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    is_required = db.Column(db.Boolean, default=True, nullable=False)
    is_critical = db.Column(db.Boolean, default=False, nullable=False)
    description = db.Column(db.Text, nullable=True)
    max_size_mb = db.Column(db.Integer, default=10, nullable=False)
    allowed_formats = db.Column(db.JSON, default=lambda: ["pdf"])
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    validity_days = db.Column(db.Integer, nullable=True)
    requires_translation = db.Column(db.Boolean, default=False, nullable=False)
    requires_notarization = db.Column(db.Boolean, default=False, nullable=False)

    template = db.relationship("DocumentTemplate", back_populates="requirements")
    document_type = db.relationship("DocumentType")

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "document_type_id": self.document_type_id,
            "document_type_name": self.document_type.name if self.document_type else None,
            "is_required": self.is_required,
            "is_critical": self.is_critical,
            "description": self.description,
            "max_size_mb": self.max_size_mb,
            "allowed_formats": self.allowed_formats or [],
            "sort_order": self.sort_order,
            "validity_days": self.validity_days,
            "requires_translation": self.requires_translation,
            "requires_notarization": self.requires_notarization,
        }
