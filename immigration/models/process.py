"""
Immigration Case Management API
Process domain models - Sprint 3.

Models:
    - MainProcess: company-level engagement grouping individual cases
    - IndividualProcess: one person's immigration case
    - IndividualProcessStatus: append-style status history of a case

Architecture chain: Company → MainProcess → IndividualProcess → IndividualProcessStatus

The current status of an individual process is the single history record
with is_active=True.  A partial unique index enforces "at most one active
record per process" at the storage layer, and IndividualProcess.version is
an optimistic-lock counter bumped on every status append.
"""

from immigration.models import db
from immigration.models.base import TenantModel, iso, utcnow

# ── Constants ────────────────────────────────────────────────────────────────

MAIN_PROCESS_STATUSES = ("draft", "in_progress", "completed", "cancelled")


# ═══════════════════════════════════════════════════════════════════════════
#  MAIN PROCESS
# ═══════════════════════════════════════════════════════════════════════════

class MainProcess(TenantModel):
    __tablename__ = "main_processes"
    __table_args__ = (TenantModel.tenant_unique("main_processes", "reference_number"),)

    id = db.Column(db.Integer, primary_key=True)
    reference_number = db.Column(db.String(50), nullable=False)
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="RESTRICT"), nullable=True, index=True,
    )
    contact_person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True,
    )
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    workplace_city_id = db.Column(
        db.Integer, db.ForeignKey("cities.id", ondelete="RESTRICT"), nullable=True,
    )
    consulate_id = db.Column(
        db.Integer, db.ForeignKey("consulates.id", ondelete="SET NULL"), nullable=True,
    )
    is_urgent = db.Column(db.Boolean, default=False, nullable=False)
    request_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), default="draft", nullable=False, index=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    company = db.relationship("Company")
    contact_person = db.relationship("Person")
    process_type = db.relationship("ProcessType")
    workplace_city = db.relationship("City")
    consulate = db.relationship("Consulate")
    individual_processes = db.relationship(
        "IndividualProcess", back_populates="main_process",
        order_by="IndividualProcess.id",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "reference_number": self.reference_number,
            "company_id": self.company_id,
            "company_name": self.company.name if self.company else None,
            "contact_person_id": self.contact_person_id,
            "process_type_id": self.process_type_id,
            "process_type_name": self.process_type.name if self.process_type else None,
            "workplace_city_id": self.workplace_city_id,
            "consulate_id": self.consulate_id,
            "is_urgent": self.is_urgent,
            "request_date": iso(self.request_date),
            "notes": self.notes,
            "status": self.status,
            "completed_at": iso(self.completed_at),
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<MainProcess {self.reference_number}>"


# ═══════════════════════════════════════════════════════════════════════════
#  INDIVIDUAL PROCESS
# ═══════════════════════════════════════════════════════════════════════════

class IndividualProcess(TenantModel):
    __tablename__ = "individual_processes"

    id = db.Column(db.Integer, primary_key=True)
    main_process_id = db.Column(
        db.Integer, db.ForeignKey("main_processes.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    passport_id = db.Column(
        db.Integer, db.ForeignKey("passports.id", ondelete="SET NULL"), nullable=True,
    )
    process_type_id = db.Column(
        db.Integer, db.ForeignKey("process_types.id", ondelete="SET NULL"), nullable=True,
    )
    legal_framework_id = db.Column(
        db.Integer, db.ForeignKey("legal_frameworks.id", ondelete="SET NULL"), nullable=True,
    )
    cbo_id = db.Column(
        db.Integer, db.ForeignKey("cbo_codes.id", ondelete="SET NULL"), nullable=True,
    )

    # Government tracking (status-fillable)
    mre_office_number = db.Column(db.String(50), nullable=True)
    dou_number = db.Column(db.String(50), nullable=True, comment="Diário Oficial da União")
    dou_section = db.Column(db.String(20), nullable=True)
    dou_page = db.Column(db.String(20), nullable=True)
    dou_date = db.Column(db.Date, nullable=True)
    protocol_number = db.Column(db.String(100), nullable=True)
    rnm_number = db.Column(db.String(50), nullable=True, comment="Registro Nacional Migratório")
    rnm_deadline = db.Column(db.Date, nullable=True, index=True)
    appointment_date_time = db.Column(db.DateTime, nullable=True, index=True)
    deadline_date = db.Column(db.Date, nullable=True, index=True)

    # Case data
    date_process = db.Column(db.Date, nullable=True)
    funcao = db.Column(db.String(200), nullable=True, comment="Job title in Brazil")
    monthly_amount_to_receive = db.Column(db.Numeric(12, 2), nullable=True)
    first_entry_date = db.Column(db.Date, nullable=True)
    qualification = db.Column(db.String(100), nullable=True)
    professional_experience_since = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    main_process = db.relationship("MainProcess", back_populates="individual_processes")
    person = db.relationship("Person")
    passport = db.relationship("Passport")
    process_type = db.relationship("ProcessType")
    legal_framework = db.relationship("LegalFramework")
    cbo = db.relationship("CboCode")
    status_records = db.relationship(
        "IndividualProcessStatus", back_populates="individual_process",
        cascade="all, delete-orphan", passive_deletes=True,
        order_by="IndividualProcessStatus.id",
    )

    @property
    def active_status_record(self):
        return (
            IndividualProcessStatus.query
            .filter_by(individual_process_id=self.id, is_active=True)
            .first()
        )

    @property
    def current_case_status(self):
        rec = self.active_status_record
        return rec.case_status if rec else None

    def touch(self):
        """Force an UPDATE so the version counter advances."""
        self.updated_at = utcnow()

    def to_dict(self):
        rec = self.active_status_record
        amount = self.monthly_amount_to_receive
        return {
            "id": self.id,
            "main_process_id": self.main_process_id,
            "reference_number": self.main_process.reference_number if self.main_process else None,
            "person_id": self.person_id,
            "person_name": self.person.full_name if self.person else None,
            "passport_id": self.passport_id,
            "process_type_id": self.process_type_id,
            "legal_framework_id": self.legal_framework_id,
            "cbo_id": self.cbo_id,
            "mre_office_number": self.mre_office_number,
            "dou_number": self.dou_number,
            "dou_section": self.dou_section,
            "dou_page": self.dou_page,
            "dou_date": iso(self.dou_date),
            "protocol_number": self.protocol_number,
            "rnm_number": self.rnm_number,
            "rnm_deadline": iso(self.rnm_deadline),
            "appointment_date_time": iso(self.appointment_date_time),
            "deadline_date": iso(self.deadline_date),
            "date_process": iso(self.date_process),
            "funcao": self.funcao,
            "monthly_amount_to_receive": float(amount) if amount is not None else None,
            "first_entry_date": iso(self.first_entry_date),
            "qualification": self.qualification,
            "professional_experience_since": iso(self.professional_experience_since),
            "notes": self.notes,
            "is_active": self.is_active,
            "completed_at": iso(self.completed_at),
            "version": self.version,
            "current_status": rec.to_dict() if rec else None,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<IndividualProcess {self.id} main={self.main_process_id}>"


# ═══════════════════════════════════════════════════════════════════════════
#  STATUS HISTORY
# ═══════════════════════════════════════════════════════════════════════════

class IndividualProcessStatus(TenantModel):
    """One entry in an individual process's status history."""

    __tablename__ = "individual_process_statuses"
    __table_args__ = (
        db.Index(
            "uq_individual_process_statuses_one_active",
            "individual_process_id",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active"),
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    individual_process_id = db.Column(
        db.Integer, db.ForeignKey("individual_processes.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    case_status_id = db.Column(
        db.Integer, db.ForeignKey("case_statuses.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.String(1000), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    filled_fields_data = db.Column(db.JSON, nullable=True)
    changed_by = db.Column(db.String(150), default="system")
    changed_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    individual_process = db.relationship("IndividualProcess", back_populates="status_records")
    case_status = db.relationship("CaseStatus")

    def to_dict(self):
        return {
            "id": self.id,
            "individual_process_id": self.individual_process_id,
            "case_status_id": self.case_status_id,
            "case_status": self.case_status.summary() if self.case_status else None,
            "date": iso(self.date),
            "notes": self.notes,
            "is_active": self.is_active,
            "filled_fields_data": self.filled_fields_data or {},
            "changed_by": self.changed_by,
            "changed_at": iso(self.changed_at),
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<IndividualProcessStatus {self.id} proc={self.individual_process_id} active={self.is_active}>"
