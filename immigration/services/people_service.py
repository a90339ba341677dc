"""Client service layer - companies, people, passports, person↔company links.

Transaction policy: methods use flush(), never commit().
Caller (route handler) is responsible for db.session.commit().

Rules:
- CPF / CNPJ must pass check-digit validation and are unique per tenant
- one active passport per person (activating one deactivates the others)
- a company referenced by a main process, or a person referenced by an
  individual process, cannot be deleted
"""
import logging

from sqlalchemy import or_

from immigration.core.exceptions import ConflictError, ValidationError
from immigration.models import db
from immigration.models.activity_log import log_activity
from immigration.models.geography import City, Country
from immigration.models.people import (
    MARITAL_STATUSES,
    Company,
    Passport,
    Person,
    PersonCompany,
)
from immigration.models.process import IndividualProcess, MainProcess
from immigration.services.helpers.scoped_queries import ensure_scoped_fk, get_scoped
from immigration.utils.helpers import parse_bool, parse_date_input, parse_int_field
from immigration.utils.tax_ids import digits_only, is_valid_cnpj, is_valid_cpf

logger = logging.getLogger(__name__)


def _set_text(obj, data, fields):
    for f in fields:
        if f in data:
            value = data[f]
            setattr(obj, f, value.strip() if isinstance(value, str) else value)


def _set_dates(obj, data, fields):
    errors = {}
    for f in fields:
        if f in data:
            try:
                setattr(obj, f, parse_date_input(data[f]))
            except ValueError as exc:
                errors[f] = str(exc)
    if errors:
        raise ValidationError("Invalid date value", details=errors)


def _set_fks(tenant_id, obj, data, fks):
    for field, model in fks:
        if field in data:
            ensure_scoped_fk(model, data[field], tenant_id, field=field)
            setattr(obj, field, data[field] or None)


def _require(data, field):
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required", details={field: "required"})


# ═══════════════════════════════════════════════════════════════════════════
#  COMPANY
# ═══════════════════════════════════════════════════════════════════════════

_COMPANY_TEXT = ("name", "website", "address", "phone_number", "email", "notes")
_COMPANY_FKS = (("city_id", City), ("contact_person_id", Person))


def _clean_cnpj(tenant_id, raw, exclude_id=None):
    cnpj = digits_only(raw)
    if cnpj is None:
        return None
    if not is_valid_cnpj(cnpj):
        raise ValidationError("Invalid CNPJ", details={"tax_id": "invalid check digits"})
    q = Company.query_for_tenant(tenant_id).filter_by(tax_id=cnpj)
    if exclude_id is not None:
        q = q.filter(Company.id != exclude_id)
    if q.first():
        raise ConflictError("Company", "tax_id", cnpj)
    return cnpj


def list_companies_query(tenant_id, filters):
    q = Company.query_for_tenant(tenant_id)
    if filters.get("q"):
        term = f"%{filters['q']}%"
        q = q.filter(or_(Company.name.ilike(term), Company.tax_id.ilike(term)))
    if filters.get("is_active") is not None:
        q = q.filter_by(is_active=parse_bool(filters["is_active"]))
    if filters.get("city_id"):
        q = q.filter_by(city_id=parse_int_field(filters["city_id"], "city_id"))
    return q.order_by(Company.name)


def create_company(tenant_id, data, actor=None):
    _require(data, "name")
    company = Company(tenant_id=tenant_id, is_active=parse_bool(data.get("is_active"), True))
    company.tax_id = _clean_cnpj(tenant_id, data.get("tax_id"))
    _set_text(company, data, _COMPANY_TEXT)
    _set_fks(tenant_id, company, data, _COMPANY_FKS)
    db.session.add(company)
    db.session.flush()
    log_activity(action="created", entity_type="company", entity_id=company.id,
                 details={"name": company.name}, tenant_id=tenant_id, actor=actor)
    return company


def update_company(tenant_id, company_id, data, actor=None):
    company = get_scoped(Company, company_id, tenant_id=tenant_id)
    if "name" in data:
        _require(data, "name")
    if "tax_id" in data:
        company.tax_id = _clean_cnpj(tenant_id, data["tax_id"], exclude_id=company.id)
    _set_text(company, data, _COMPANY_TEXT)
    _set_fks(tenant_id, company, data, _COMPANY_FKS)
    if "is_active" in data:
        company.is_active = parse_bool(data["is_active"])
    db.session.flush()
    log_activity(action="updated", entity_type="company", entity_id=company.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return company


def delete_company(tenant_id, company_id, actor=None):
    company = get_scoped(Company, company_id, tenant_id=tenant_id)
    in_use = MainProcess.query.filter_by(company_id=company.id).count()
    if in_use:
        raise ConflictError(
            "Company", "id", company.id,
            message=f"Cannot delete company: referenced by {in_use} main process(es)",
        )
    name = company.name
    db.session.delete(company)
    db.session.flush()
    log_activity(action="deleted", entity_type="company", entity_id=company_id,
                 details={"name": name}, tenant_id=tenant_id, actor=actor)


def company_people(tenant_id, company_id):
    """Current person↔company links of a company."""
    company = get_scoped(Company, company_id, tenant_id=tenant_id)
    return (
        PersonCompany.query_for_tenant(tenant_id)
        .filter_by(company_id=company.id, is_current=True)
        .order_by(PersonCompany.id)
        .all()
    )


# ═══════════════════════════════════════════════════════════════════════════
#  PERSON
# ═══════════════════════════════════════════════════════════════════════════

_PERSON_TEXT = (
    "given_names", "middle_name", "surname", "email", "profession", "cargo",
    "mother_name", "father_name", "phone_number", "address", "notes",
)
_PERSON_DATES = ("birth_date", "residence_since")
_PERSON_FKS = (
    ("birth_city_id", City),
    ("current_city_id", City),
    ("nationality_id", Country),
)


def _clean_cpf(tenant_id, raw, exclude_id=None):
    cpf = digits_only(raw)
    if cpf is None:
        return None
    if not is_valid_cpf(cpf):
        raise ValidationError("Invalid CPF", details={"cpf": "invalid check digits"})
    q = Person.query_for_tenant(tenant_id).filter_by(cpf=cpf)
    if exclude_id is not None:
        q = q.filter(Person.id != exclude_id)
    if q.first():
        raise ConflictError("Person", "cpf", cpf)
    return cpf


def _check_marital(data):
    status = data.get("marital_status")
    if status and status not in MARITAL_STATUSES:
        raise ValidationError(
            f"Invalid marital_status. Must be one of: {sorted(MARITAL_STATUSES)}",
            details={"marital_status": "invalid"},
        )


def list_people_query(tenant_id, filters):
    q = Person.query_for_tenant(tenant_id)
    if filters.get("q"):
        term = f"%{filters['q']}%"
        digits = digits_only(filters["q"])
        conds = [
            Person.given_names.ilike(term),
            Person.middle_name.ilike(term),
            Person.surname.ilike(term),
            Person.email.ilike(term),
        ]
        if digits:
            conds.append(Person.cpf.like(f"%{digits}%"))
        q = q.filter(or_(*conds))
    if filters.get("nationality_id"):
        q = q.filter_by(nationality_id=parse_int_field(filters["nationality_id"], "nationality_id"))
    return q.order_by(Person.given_names, Person.surname, Person.id)


def check_cpf(tenant_id, raw, exclude_id=None):
    """Report whether a CPF is valid and already registered in the tenant."""
    cpf = digits_only(raw)
    result = {"cpf": cpf, "valid": is_valid_cpf(cpf), "exists": False, "person_id": None}
    if cpf:
        q = Person.query_for_tenant(tenant_id).filter_by(cpf=cpf)
        if exclude_id is not None:
            q = q.filter(Person.id != exclude_id)
        match = q.first()
        if match:
            result.update(exists=True, person_id=match.id)
    return result


def create_person(tenant_id, data, actor=None):
    _require(data, "given_names")
    _check_marital(data)
    person = Person(tenant_id=tenant_id)
    person.cpf = _clean_cpf(tenant_id, data.get("cpf"))
    _set_text(person, data, _PERSON_TEXT)
    _set_dates(person, data, _PERSON_DATES)
    _set_fks(tenant_id, person, data, _PERSON_FKS)
    if "marital_status" in data:
        person.marital_status = data["marital_status"] or None
    db.session.add(person)
    db.session.flush()
    log_activity(action="created", entity_type="person", entity_id=person.id,
                 details={"name": person.full_name}, tenant_id=tenant_id, actor=actor)
    return person


def update_person(tenant_id, person_id, data, actor=None):
    person = get_scoped(Person, person_id, tenant_id=tenant_id)
    if "given_names" in data:
        _require(data, "given_names")
    _check_marital(data)
    if "cpf" in data:
        person.cpf = _clean_cpf(tenant_id, data["cpf"], exclude_id=person.id)
    _set_text(person, data, _PERSON_TEXT)
    _set_dates(person, data, _PERSON_DATES)
    _set_fks(tenant_id, person, data, _PERSON_FKS)
    if "marital_status" in data:
        person.marital_status = data["marital_status"] or None
    db.session.flush()
    log_activity(action="updated", entity_type="person", entity_id=person.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return person


def delete_person(tenant_id, person_id, actor=None):
    person = get_scoped(Person, person_id, tenant_id=tenant_id)
    in_use = IndividualProcess.query.filter_by(person_id=person.id).count()
    if in_use:
        raise ConflictError(
            "Person", "id", person.id,
            message=f"Cannot delete person: referenced by {in_use} individual process(es)",
        )
    name = person.full_name
    PersonCompany.query.filter_by(person_id=person.id).delete(synchronize_session="fetch")
    db.session.delete(person)
    db.session.flush()
    log_activity(action="deleted", entity_type="person", entity_id=person_id,
                 details={"name": name}, tenant_id=tenant_id, actor=actor)


# ═══════════════════════════════════════════════════════════════════════════
#  PASSPORT
# ═══════════════════════════════════════════════════════════════════════════


def _deactivate_other_passports(passport):
    (
        Passport.query
        .filter(Passport.person_id == passport.person_id, Passport.id != passport.id,
                Passport.is_active.is_(True))
        .update({"is_active": False}, synchronize_session="fetch")
    )


def _check_passport_dates(passport):
    if passport.issue_date and passport.expiry_date and passport.expiry_date < passport.issue_date:
        raise ValidationError("expiry_date cannot precede issue_date",
                              details={"expiry_date": "before issue_date"})


def person_passports(tenant_id, person_id):
    person = get_scoped(Person, person_id, tenant_id=tenant_id)
    return Passport.query_for_tenant(tenant_id).filter_by(person_id=person.id).order_by(
        Passport.is_active.desc(), Passport.expiry_date.desc(), Passport.id.desc(),
    ).all()


def active_passport(tenant_id, person_id):
    person = get_scoped(Person, person_id, tenant_id=tenant_id)
    return Passport.query_for_tenant(tenant_id).filter_by(
        person_id=person.id, is_active=True,
    ).first()


def list_passports_query(tenant_id, filters):
    q = Passport.query_for_tenant(tenant_id)
    if filters.get("person_id"):
        q = q.filter_by(person_id=parse_int_field(filters["person_id"], "person_id"))
    if filters.get("is_active") is not None:
        q = q.filter_by(is_active=parse_bool(filters["is_active"]))
    if filters.get("q"):
        q = q.filter(Passport.passport_number.ilike(f"%{filters['q']}%"))
    return q.order_by(Passport.id)


def create_passport(tenant_id, data, actor=None):
    _require(data, "person_id")
    _require(data, "passport_number")
    person = ensure_scoped_fk(Person, data["person_id"], tenant_id, field="person_id")
    passport = Passport(
        tenant_id=tenant_id,
        person_id=person.id,
        passport_number=str(data["passport_number"]).strip().upper(),
        file_url=data.get("file_url"),
        is_active=parse_bool(data.get("is_active"), True),
    )
    _set_dates(passport, data, ("issue_date", "expiry_date"))
    _set_fks(tenant_id, passport, data, (("issuing_country_id", Country),))
    _check_passport_dates(passport)
    db.session.add(passport)
    db.session.flush()
    if passport.is_active:
        _deactivate_other_passports(passport)
    log_activity(action="created", entity_type="passport", entity_id=passport.id,
                 details={"person_id": person.id, "is_active": passport.is_active},
                 tenant_id=tenant_id, actor=actor)
    return passport


def update_passport(tenant_id, passport_id, data, actor=None):
    passport = get_scoped(Passport, passport_id, tenant_id=tenant_id)
    if "person_id" in data and data["person_id"] != passport.person_id:
        passport.person_id = ensure_scoped_fk(Person, data["person_id"], tenant_id,
                                              field="person_id").id
    if "passport_number" in data:
        _require(data, "passport_number")
        passport.passport_number = str(data["passport_number"]).strip().upper()
    if "file_url" in data:
        passport.file_url = data["file_url"]
    if "is_active" in data:
        passport.is_active = parse_bool(data["is_active"])
    _set_dates(passport, data, ("issue_date", "expiry_date"))
    _set_fks(tenant_id, passport, data, (("issuing_country_id", Country),))
    _check_passport_dates(passport)
    db.session.flush()
    if passport.is_active:
        _deactivate_other_passports(passport)
    log_activity(action="updated", entity_type="passport", entity_id=passport.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return passport


def delete_passport(tenant_id, passport_id, actor=None):
    passport = get_scoped(Passport, passport_id, tenant_id=tenant_id)
    person_id = passport.person_id
    db.session.delete(passport)
    db.session.flush()
    log_activity(action="deleted", entity_type="passport", entity_id=passport_id,
                 details={"person_id": person_id}, tenant_id=tenant_id, actor=actor)


# ═══════════════════════════════════════════════════════════════════════════
#  PERSON ↔ COMPANY
# ═══════════════════════════════════════════════════════════════════════════


def list_person_companies_query(tenant_id, filters):
    q = PersonCompany.query_for_tenant(tenant_id)
    for key in ("person_id", "company_id"):
        if filters.get(key):
            q = q.filter(getattr(PersonCompany, key) == parse_int_field(filters[key], key))
    if filters.get("is_current") is not None:
        q = q.filter_by(is_current=parse_bool(filters["is_current"]))
    return q.order_by(PersonCompany.id)


def create_person_company(tenant_id, data, actor=None):
    for field in ("person_id", "company_id", "role"):
        _require(data, field)
    person = ensure_scoped_fk(Person, data["person_id"], tenant_id, field="person_id")
    company = ensure_scoped_fk(Company, data["company_id"], tenant_id, field="company_id")
    link = PersonCompany(
        tenant_id=tenant_id,
        person_id=person.id,
        company_id=company.id,
        role=data["role"].strip(),
        is_current=parse_bool(data.get("is_current"), True),
    )
    _set_dates(link, data, ("start_date", "end_date"))
    if link.start_date and link.end_date and link.end_date < link.start_date:
        raise ValidationError("end_date cannot precede start_date",
                              details={"end_date": "before start_date"})
    db.session.add(link)
    db.session.flush()
    log_activity(action="created", entity_type="person_company", entity_id=link.id,
                 details={"person_id": person.id, "company_id": company.id},
                 tenant_id=tenant_id, actor=actor)
    return link


def update_person_company(tenant_id, link_id, data, actor=None):
    link = get_scoped(PersonCompany, link_id, tenant_id=tenant_id)
    if "role" in data:
        _require(data, "role")
        link.role = data["role"].strip()
    if "is_current" in data:
        link.is_current = parse_bool(data["is_current"])
    _set_dates(link, data, ("start_date", "end_date"))
    db.session.flush()
    log_activity(action="updated", entity_type="person_company", entity_id=link.id,
                 details={"fields": sorted(data)}, tenant_id=tenant_id, actor=actor)
    return link


def delete_person_company(tenant_id, link_id, actor=None):
    link = get_scoped(PersonCompany, link_id, tenant_id=tenant_id)
    db.session.delete(link)
    db.session.flush()
    log_activity(action="deleted", entity_type="person_company", entity_id=link_id,
                 tenant_id=tenant_id, actor=actor)
