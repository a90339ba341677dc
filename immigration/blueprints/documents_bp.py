"""
Documents blueprint - legal-framework info requirements, document-type
field mappings, document templates and per-process field values.

Endpoints:
    INFO REQS  /api/v1/legal-frameworks/<id>/info-requirements          GET (?include_inactive), POST
               /api/v1/legal-frameworks/<id>/info-requirements/bulk     POST  {items: [...]}
               /api/v1/legal-frameworks/<id>/info-requirements/reorder  PUT   {ids: [...]}
               /api/v1/info-requirements/<id>                           PUT, DELETE

    MAPPINGS   /api/v1/document-types/<id>/field-mappings               GET, POST
               /api/v1/field-mappings/<id>                              PUT, DELETE

    TEMPLATES  /api/v1/document-templates                               GET, POST
               /api/v1/document-templates/<id>                          GET, PUT, DELETE

    VALUES     /api/v1/individual-processes/<id>/document-types/<dt_id>/fields   GET, PUT
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, json_body, page_response, tenant_id
from immigration.models.documents import DocumentTemplate
from immigration.services import document_service, legal_service
from immigration.services.helpers.scoped_queries import get_scoped
from immigration.utils.helpers import parse_bool

documents_bp = Blueprint("documents", __name__, url_prefix="/api/v1")


def _items(objs):
    return {"items": [o.to_dict() for o in objs], "total": len(objs)}


# ═══════════════════════════════════════════════════════════════════════════
#  LEGAL FRAMEWORK INFO REQUIREMENTS
# ═══════════════════════════════════════════════════════════════════════════

@documents_bp.route("/legal-frameworks/<int:fw_id>/info-requirements", methods=["GET"])
def list_info_requirements(fw_id):
    include_inactive = parse_bool(request.args.get("include_inactive"))
    reqs = legal_service.list_info_requirements(tenant_id(), fw_id, include_inactive=include_inactive)
    return jsonify(_items(reqs))


@documents_bp.route("/legal-frameworks/<int:fw_id>/info-requirements", methods=["POST"])
def create_info_requirement(fw_id):
    req = legal_service.create_info_requirement(tenant_id(), fw_id, json_body(), actor=actor())
    return commit_response(req.to_dict(), 201)


@documents_bp.route("/legal-frameworks/<int:fw_id>/info-requirements/bulk", methods=["POST"])
def bulk_create_info_requirements(fw_id):
    created = legal_service.bulk_create_info_requirements(
        tenant_id(), fw_id, json_body().get("items"), actor=actor(),
    )
    return commit_response(_items(created), 201)


@documents_bp.route("/legal-frameworks/<int:fw_id>/info-requirements/reorder", methods=["PUT"])
def reorder_info_requirements(fw_id):
    reqs = legal_service.reorder_info_requirements(
        tenant_id(), fw_id, json_body().get("ids"), actor=actor(),
    )
    return commit_response(_items(reqs))


@documents_bp.route("/info-requirements/<int:req_id>", methods=["PUT", "PATCH"])
def update_info_requirement(req_id):
    req = legal_service.update_info_requirement(tenant_id(), req_id, json_body(), actor=actor())
    return commit_response(req.to_dict())


@documents_bp.route("/info-requirements/<int:req_id>", methods=["DELETE"])
def delete_info_requirement(req_id):
    legal_service.delete_info_requirement(tenant_id(), req_id, actor=actor())
    return commit_response(None, 204)


# ═══════════════════════════════════════════════════════════════════════════
#  DOCUMENT-TYPE FIELD MAPPINGS
# ═══════════════════════════════════════════════════════════════════════════

@documents_bp.route("/document-types/<int:dt_id>/field-mappings", methods=["GET"])
def list_field_mappings(dt_id):
    include_inactive = parse_bool(request.args.get("include_inactive"))
    mappings = document_service.list_field_mappings(tenant_id(), dt_id, include_inactive=include_inactive)
    return jsonify(_items(mappings))


@documents_bp.route("/document-types/<int:dt_id>/field-mappings", methods=["POST"])
def create_field_mapping(dt_id):
    mapping = document_service.create_field_mapping(tenant_id(), dt_id, json_body(), actor=actor())
    return commit_response(mapping.to_dict(), 201)


@documents_bp.route("/field-mappings/<int:mapping_id>", methods=["PUT", "PATCH"])
def update_field_mapping(mapping_id):
    mapping = document_service.update_field_mapping(tenant_id(), mapping_id, json_body(), actor=actor())
    return commit_response(mapping.to_dict())


@documents_bp.route("/field-mappings/<int:mapping_id>", methods=["DELETE"])
def delete_field_mapping(mapping_id):
    document_service.delete_field_mapping(tenant_id(), mapping_id, actor=actor())
    return commit_response(None, 204)


# ═══════════════════════════════════════════════════════════════════════════
#  DOCUMENT TEMPLATES
# ═══════════════════════════════════════════════════════════════════════════

@documents_bp.route("/document-templates", methods=["GET"])
def list_templates():
    query = document_service.list_templates_query(tenant_id(), request.args)
    return page_response(query, lambda t: t.to_dict(include_requirements=False))


@documents_bp.route("/document-templates", methods=["POST"])
def create_template():
    template = document_service.create_template(tenant_id(), json_body(), actor=actor())
    return commit_response(template.to_dict(), 201)


@documents_bp.route("/document-templates/<int:template_id>", methods=["GET"])
def get_template(template_id):
    return jsonify(get_scoped(DocumentTemplate, template_id, tenant_id=tenant_id()).to_dict())


@documents_bp.route("/document-templates/<int:template_id>", methods=["PUT", "PATCH"])
def update_template(template_id):
    template = document_service.update_template(tenant_id(), template_id, json_body(), actor=actor())
    return commit_response(template.to_dict())


@documents_bp.route("/document-templates/<int:template_id>", methods=["DELETE"])
def delete_template(template_id):
    document_service.delete_template(tenant_id(), template_id, actor=actor())
    return commit_response(None, 204)


# ═══════════════════════════════════════════════════════════════════════════
#  FIELD VALUES
# ═══════════════════════════════════════════════════════════════════════════

@documents_bp.route(
    "/individual-processes/<int:process_id>/document-types/<int:dt_id>/fields", methods=["GET"],
)
def get_field_values(process_id, dt_id):
    fields = document_service.fields_with_values(tenant_id(), process_id, dt_id)
    return jsonify({"items": fields, "total": len(fields)})


@documents_bp.route(
    "/individual-processes/<int:process_id>/document-types/<int:dt_id>/fields", methods=["PUT"],
)
def save_field_values(process_id, dt_id):
    fields = document_service.save_field_values(tenant_id(), process_id, dt_id, json_body(), actor=actor())
    return commit_response({"items": fields, "total": len(fields)})
