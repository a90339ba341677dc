"""
Activity log blueprint - read-only audit trail.

Endpoints:
    GET /api/v1/activity-logs                          - ?actor, entity_type, entity_id, action,
                                                         start_date, end_date, limit, offset
    GET /api/v1/activity-logs/<id>
    GET /api/v1/activity-logs/entity/<type>/<id>       - history of one entity
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import page_response, tenant_id
from immigration.services import activity_log_service

activity_log_bp = Blueprint("activity_logs", __name__, url_prefix="/api/v1")


@activity_log_bp.route("/activity-logs", methods=["GET"])
def list_logs():
    return page_response(activity_log_service.build_query(tenant_id(), request.args))


@activity_log_bp.route("/activity-logs/<int:log_id>", methods=["GET"])
def get_log(log_id):
    return jsonify(activity_log_service.get_log(tenant_id(), log_id).to_dict())


@activity_log_bp.route("/activity-logs/entity/<entity_type>/<int:entity_id>", methods=["GET"])
def entity_history(entity_type, entity_id):
    limit = min(request.args.get("limit", 100, type=int), 500)
    logs = activity_log_service.entity_history(tenant_id(), entity_type, entity_id, limit=limit)
    return jsonify({"items": [log.to_dict() for log in logs], "total": len(logs)})
