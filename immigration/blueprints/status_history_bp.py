"""
Status history blueprint.

Endpoints:
    GET    /api/v1/individual-processes/<id>/status-history          - ?order=asc|desc
    POST   /api/v1/individual-processes/<id>/status-history          - append (validated transition)
    GET    /api/v1/individual-processes/<id>/status-history/active   - current record (null if none)
    PUT    /api/v1/status-records/<id>                               - date / notes
    DELETE /api/v1/status-records/<id>                               - remove (promotes newest remaining)
    GET    /api/v1/status-records/<id>/filled-fields                 - fillable fields of the record's status
    PUT    /api/v1/status-records/<id>/filled-fields                 - merge values (applied when active)
    POST   /api/v1/individual-processes/bulk-status                  - partial-success bulk append
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, json_body, tenant_id
from immigration.services import status_history_service

status_history_bp = Blueprint("status_history", __name__, url_prefix="/api/v1")


@status_history_bp.route("/individual-processes/<int:process_id>/status-history", methods=["GET"])
def list_history(process_id):
    order = request.args.get("order", "asc")
    records = status_history_service.list_status_history(tenant_id(), process_id, order=order)
    return jsonify({"items": [r.to_dict() for r in records], "total": len(records)})


@status_history_bp.route("/individual-processes/<int:process_id>/status-history", methods=["POST"])
def add_status(process_id):
    record = status_history_service.add_status_record(tenant_id(), process_id, json_body(), actor=actor())
    payload = record.to_dict()
    payload["process_version"] = record.individual_process.version
    return commit_response(payload, 201)


@status_history_bp.route("/individual-processes/<int:process_id>/status-history/active", methods=["GET"])
def active_status(process_id):
    record = status_history_service.get_active_status(tenant_id(), process_id)
    return jsonify(record.to_dict() if record else None)


@status_history_bp.route("/status-records/<int:record_id>", methods=["PUT", "PATCH"])
def update_status(record_id):
    record = status_history_service.update_status_record(tenant_id(), record_id, json_body(), actor=actor())
    return commit_response(record.to_dict())


@status_history_bp.route("/status-records/<int:record_id>", methods=["DELETE"])
def remove_status(record_id):
    promoted = status_history_service.remove_status_record(tenant_id(), record_id, actor=actor())
    return commit_response({"promoted": promoted.to_dict() if promoted else None})


@status_history_bp.route("/status-records/<int:record_id>/filled-fields", methods=["GET"])
def record_filled_fields(record_id):
    return jsonify(status_history_service.get_record_filled_fields(tenant_id(), record_id))


@status_history_bp.route("/status-records/<int:record_id>/filled-fields", methods=["PUT", "PATCH"])
def save_filled_fields(record_id):
    record = status_history_service.save_record_filled_fields(
        tenant_id(), record_id, json_body(), actor=actor())
    payload = record.to_dict()
    payload["process_version"] = record.individual_process.version
    return commit_response(payload)


@status_history_bp.route("/individual-processes/bulk-status", methods=["POST"])
def bulk_status():
    result = status_history_service.bulk_add_status(tenant_id(), json_body(), actor=actor())
    return commit_response(result)
