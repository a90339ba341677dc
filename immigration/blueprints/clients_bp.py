"""
Clients blueprint - companies, people, passports, person↔company links.

Endpoints:
    COMPANY   /api/v1/companies                          GET, POST
              /api/v1/companies/<id>                     GET, PUT, DELETE
              /api/v1/companies/<id>/people              GET   (current links)

    PERSON    /api/v1/people                             GET (?q=), POST
              /api/v1/people/check-cpf?cpf=              GET
              /api/v1/people/<id>                        GET, PUT, DELETE
              /api/v1/people/<id>/passports              GET
              /api/v1/people/<id>/passports/active       GET

    PASSPORT  /api/v1/passports                          GET, POST
              /api/v1/passports/<id>                     GET, PUT, DELETE

    LINK      /api/v1/people-companies                   GET, POST
              /api/v1/people-companies/<id>              PUT, DELETE
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, json_body, page_response, tenant_id
from immigration.core.exceptions import NotFoundError
from immigration.models.people import Company, Passport, Person
from immigration.services import people_service
from immigration.services.helpers.scoped_queries import get_scoped

clients_bp = Blueprint("clients", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  COMPANY
# ═══════════════════════════════════════════════════════════════════════════

@clients_bp.route("/companies", methods=["GET"])
def list_companies():
    return page_response(people_service.list_companies_query(tenant_id(), request.args))


@clients_bp.route("/companies", methods=["POST"])
def create_company():
    company = people_service.create_company(tenant_id(), json_body(), actor=actor())
    return commit_response(company.to_dict(), 201)


@clients_bp.route("/companies/<int:company_id>", methods=["GET"])
def get_company(company_id):
    return jsonify(get_scoped(Company, company_id, tenant_id=tenant_id()).to_dict())


@clients_bp.route("/companies/<int:company_id>", methods=["PUT", "PATCH"])
def update_company(company_id):
    company = people_service.update_company(tenant_id(), company_id, json_body(), actor=actor())
    return commit_response(company.to_dict())


@clients_bp.route("/companies/<int:company_id>", methods=["DELETE"])
def delete_company(company_id):
    people_service.delete_company(tenant_id(), company_id, actor=actor())
    return commit_response(None, 204)


@clients_bp.route("/companies/<int:company_id>/people", methods=["GET"])
def company_people(company_id):
    links = people_service.company_people(tenant_id(), company_id)
    return jsonify({"items": [link.to_dict() for link in links], "total": len(links)})


# ═══════════════════════════════════════════════════════════════════════════
#  PERSON
# ═══════════════════════════════════════════════════════════════════════════

@clients_bp.route("/people", methods=["GET"])
def list_people():
    return page_response(people_service.list_people_query(tenant_id(), request.args))


@clients_bp.route("/people/check-cpf", methods=["GET"])
def check_cpf():
    cpf = request.args.get("cpf", "")
    exclude = request.args.get("exclude_id", type=int)
    return jsonify(people_service.check_cpf(tenant_id(), cpf, exclude_id=exclude))


@clients_bp.route("/people", methods=["POST"])
def create_person():
    person = people_service.create_person(tenant_id(), json_body(), actor=actor())
    return commit_response(person.to_dict(), 201)


@clients_bp.route("/people/<int:person_id>", methods=["GET"])
def get_person(person_id):
    return jsonify(get_scoped(Person, person_id, tenant_id=tenant_id()).to_dict())


@clients_bp.route("/people/<int:person_id>", methods=["PUT", "PATCH"])
def update_person(person_id):
    person = people_service.update_person(tenant_id(), person_id, json_body(), actor=actor())
    return commit_response(person.to_dict())


@clients_bp.route("/people/<int:person_id>", methods=["DELETE"])
def delete_person(person_id):
    people_service.delete_person(tenant_id(), person_id, actor=actor())
    return commit_response(None, 204)


@clients_bp.route("/people/<int:person_id>/passports", methods=["GET"])
def person_passports(person_id):
    passports = people_service.person_passports(tenant_id(), person_id)
    return jsonify({"items": [p.to_dict() for p in passports], "total": len(passports)})


@clients_bp.route("/people/<int:person_id>/passports/active", methods=["GET"])
def person_active_passport(person_id):
    passport = people_service.active_passport(tenant_id(), person_id)
    if passport is None:
        raise NotFoundError(resource="Passport", resource_id=f"active for person {person_id}")
    return jsonify(passport.to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  PASSPORT
# ═══════════════════════════════════════════════════════════════════════════

@clients_bp.route("/passports", methods=["GET"])
def list_passports():
    return page_response(people_service.list_passports_query(tenant_id(), request.args))


@clients_bp.route("/passports", methods=["POST"])
def create_passport():
    passport = people_service.create_passport(tenant_id(), json_body(), actor=actor())
    return commit_response(passport.to_dict(), 201)


@clients_bp.route("/passports/<int:passport_id>", methods=["GET"])
def get_passport(passport_id):
    return jsonify(get_scoped(Passport, passport_id, tenant_id=tenant_id()).to_dict())


@clients_bp.route("/passports/<int:passport_id>", methods=["PUT", "PATCH"])
def update_passport(passport_id):
    passport = people_service.update_passport(tenant_id(), passport_id, json_body(), actor=actor())
    return commit_response(passport.to_dict())


@clients_bp.route("/passports/<int:passport_id>", methods=["DELETE"])
def delete_passport(passport_id):
    people_service.delete_passport(tenant_id(), passport_id, actor=actor())
    return commit_response(None, 204)


# ═══════════════════════════════════════════════════════════════════════════
#  PERSON ↔ COMPANY
# ═══════════════════════════════════════════════════════════════════════════

@clients_bp.route("/people-companies", methods=["GET"])
def list_person_companies():
    return page_response(people_service.list_person_companies_query(tenant_id(), request.args))


@clients_bp.route("/people-companies", methods=["POST"])
def create_person_company():
    link = people_service.create_person_company(tenant_id(), json_body(), actor=actor())
    return commit_response(link.to_dict(), 201)


@clients_bp.route("/people-companies/<int:link_id>", methods=["PUT", "PATCH"])
def update_person_company(link_id):
    link = people_service.update_person_company(tenant_id(), link_id, json_body(), actor=actor())
    return commit_response(link.to_dict())


@clients_bp.route("/people-companies/<int:link_id>", methods=["DELETE"])
def delete_person_company(link_id):
    people_service.delete_person_company(tenant_id(), link_id, actor=actor())
    return commit_response(None, 204)
