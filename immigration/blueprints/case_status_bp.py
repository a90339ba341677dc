"""
Case status blueprint - the per-tenant catalog of individual-process statuses.

Endpoints:
    GET    /api/v1/case-statuses                        - list (?include_inactive=true)
    POST   /api/v1/case-statuses                        - create
    GET    /api/v1/case-statuses/<id>                   - detail
    PUT    /api/v1/case-statuses/<id>                   - partial update
    DELETE /api/v1/case-statuses/<id>                   - soft delete (409 while in use)
    POST   /api/v1/case-statuses/<id>/toggle            - flip is_active
    PUT    /api/v1/case-statuses/reorder                - {updates: [{id, sort_order}]}
    GET    /api/v1/case-statuses/by-code/<code>
    GET    /api/v1/case-statuses/by-category/<category>
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import commit_response, json_body, tenant_id
from immigration.services import case_status_service
from immigration.utils.helpers import parse_bool

case_status_bp = Blueprint("case_statuses", __name__, url_prefix="/api/v1")


def _items(statuses):
    return {"items": [s.to_dict() for s in statuses], "total": len(statuses)}


@case_status_bp.route("/case-statuses", methods=["GET"])
def list_case_statuses():
    include_inactive = parse_bool(request.args.get("include_inactive"))
    return jsonify(_items(case_status_service.list_case_statuses(tenant_id(), include_inactive)))


@case_status_bp.route("/case-statuses", methods=["POST"])
def create_case_status():
    status = case_status_service.create_case_status(tenant_id(), json_body())
    return commit_response(status.to_dict(), 201)


@case_status_bp.route("/case-statuses/reorder", methods=["PUT"])
def reorder_case_statuses():
    statuses = case_status_service.reorder_case_statuses(tenant_id(), json_body())
    return commit_response(_items(statuses))


@case_status_bp.route("/case-statuses/by-code/<code>", methods=["GET"])
def get_by_code(code):
    return jsonify(case_status_service.get_by_code(tenant_id(), code).to_dict())


@case_status_bp.route("/case-statuses/by-category/<category>", methods=["GET"])
def list_by_category(category):
    return jsonify(_items(case_status_service.list_by_category(tenant_id(), category)))


@case_status_bp.route("/case-statuses/<int:status_id>", methods=["GET"])
def get_case_status(status_id):
    return jsonify(case_status_service.get_case_status(tenant_id(), status_id).to_dict())


@case_status_bp.route("/case-statuses/<int:status_id>", methods=["PUT", "PATCH"])
def update_case_status(status_id):
    status = case_status_service.update_case_status(tenant_id(), status_id, json_body())
    return commit_response(status.to_dict())


@case_status_bp.route("/case-statuses/<int:status_id>", methods=["DELETE"])
def delete_case_status(status_id):
    case_status_service.remove_case_status(tenant_id(), status_id)
    return commit_response(None, 204)


@case_status_bp.route("/case-statuses/<int:status_id>/toggle", methods=["POST"])
def toggle_case_status(status_id):
    status = case_status_service.toggle_active(tenant_id(), status_id)
    return commit_response(status.to_dict())
