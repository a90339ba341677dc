"""
Immigration Case Management API
Client models - Sprint 2.

Models:
    - Company: corporate client (CNPJ holder) sponsoring immigration processes
    - Person: foreign national (applicant) or company contact
    - PersonCompany: employment / representation link between the two
    - Passport: travel document; at most one active per person

Chain: Company ←→ PersonCompany ←→ Person → Passport
"""

from datetime import date

from immigration.models import db
from immigration.models.base import TenantModel, iso
from immigration.utils.tax_ids import format_cnpj

MARITAL_STATUSES = {"single", "married", "divorced", "widowed", "stable_union"}


class Company(TenantModel):
    __tablename__ = "companies"
    __table_args__ = (TenantModel.tenant_unique("companies", "tax_id"),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(300), nullable=False)
    tax_id = db.Column(db.String(14), nullable=True, comment="CNPJ, digits only")
    website = db.Column(db.String(300), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    city_id = db.Column(
        db.Integer, db.ForeignKey("cities.id", ondelete="RESTRICT"), nullable=True, index=True,
    )
    phone_number = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    contact_person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="SET NULL"), nullable=True,
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    city = db.relationship("City")
    contact_person = db.relationship("Person", foreign_keys=[contact_person_id])

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "tax_id": self.tax_id,
            "tax_id_formatted": format_cnpj(self.tax_id) if self.tax_id else None,
            "website": self.website,
            "address": self.address,
            "city_id": self.city_id,
            "city_name": self.city.name if self.city else None,
            "phone_number": self.phone_number,
            "email": self.email,
            "contact_person_id": self.contact_person_id,
            "contact_person_name": self.contact_person.full_name if self.contact_person else None,
            "is_active": self.is_active,
            "notes": self.notes,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Company {self.name[:40]}>"


class Person(TenantModel):
    __tablename__ = "people"
    __table_args__ = (TenantModel.tenant_unique("people", "cpf"),)

    id = db.Column(db.Integer, primary_key=True)
    given_names = db.Column(db.String(200), nullable=False)
    middle_name = db.Column(db.String(200), nullable=True)
    surname = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    cpf = db.Column(db.String(11), nullable=True, comment="Brazilian taxpayer id, digits only")
    birth_date = db.Column(db.Date, nullable=True)
    birth_city_id = db.Column(
        db.Integer, db.ForeignKey("cities.id", ondelete="RESTRICT"), nullable=True,
    )
    nationality_id = db.Column(
        db.Integer, db.ForeignKey("countries.id", ondelete="RESTRICT"), nullable=True, index=True,
    )
    marital_status = db.Column(db.String(20), nullable=True)
    profession = db.Column(db.String(200), nullable=True)
    cargo = db.Column(db.String(200), nullable=True)
    mother_name = db.Column(db.String(300), nullable=True)
    father_name = db.Column(db.String(300), nullable=True)
    phone_number = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    current_city_id = db.Column(
        db.Integer, db.ForeignKey("cities.id", ondelete="RESTRICT"), nullable=True,
    )
    residence_since = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    nationality = db.relationship("Country")
    birth_city = db.relationship("City", foreign_keys=[birth_city_id])
    current_city = db.relationship("City", foreign_keys=[current_city_id])
    passports = db.relationship(
        "Passport", back_populates="person", cascade="all, delete-orphan",
        order_by="Passport.id",
    )

    @property
    def full_name(self):
        parts = [self.given_names, self.middle_name, self.surname]
        return " ".join(p for p in parts if p)

    def to_dict(self):
        return {
            "id": self.id,
            "given_names": self.given_names,
            "middle_name": self.middle_name,
            "surname": self.surname,
            "full_name": self.full_name,
            "email": self.email,
            "cpf": self.cpf,
            "birth_date": iso(self.birth_date),
            "birth_city_id": self.birth_city_id,
            "nationality_id": self.nationality_id,
            "nationality_name": self.nationality.name if self.nationality else None,
            "marital_status": self.marital_status,
            "profession": self.profession,
            "cargo": self.cargo,
            "mother_name": self.mother_name,
            "father_name": self.father_name,
            "phone_number": self.phone_number,
            "address": self.address,
            "current_city_id": self.current_city_id,
            "residence_since": iso(self.residence_since),
            "notes": self.notes,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Person {self.id}: {self.full_name[:40]}>"


class PersonCompany(TenantModel):
    __tablename__ = "people_companies"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    company_id = db.Column(
        db.Integer, db.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    role = db.Column(db.String(200), nullable=False)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    is_current = db.Column(db.Boolean, default=True, nullable=False)

    person = db.relationship("Person")
    company = db.relationship("Company")

    def to_dict(self):
        return {
            "id": self.id,
            "person_id": self.person_id,
            "person_name": self.person.full_name if self.person else None,
            "company_id": self.company_id,
            "company_name": self.company.name if self.company else None,
            "role": self.role,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "is_current": self.is_current,
            **self._timestamps(),
        }


class Passport(TenantModel):
    __tablename__ = "passports"

    id = db.Column(db.Integer, primary_key=True)
    person_id = db.Column(
        db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    passport_number = db.Column(db.String(50), nullable=False)
    issuing_country_id = db.Column(
        db.Integer, db.ForeignKey("countries.id", ondelete="RESTRICT"), nullable=True,
    )
    issue_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True, index=True)
    file_url = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    person = db.relationship("Person", back_populates="passports")
    issuing_country = db.relationship("Country")

    @property
    def is_expired(self):
        return bool(self.expiry_date and self.expiry_date < date.today())

    def to_dict(self):
        return {
            "id": self.id,
            "person_id": self.person_id,
            "person_name": self.person.full_name if self.person else None,
            "passport_number": self.passport_number,
            "issuing_country_id": self.issuing_country_id,
            "issuing_country_name": self.issuing_country.name if self.issuing_country else None,
            "issue_date": iso(self.issue_date),
            "expiry_date": iso(self.expiry_date),
            "file_url": self.file_url,
            "is_active": self.is_active,
            "is_expired": self.is_expired,
            **self._timestamps(),
        }

    def __repr__(self):
        return f"<Passport {self.passport_number}>"
