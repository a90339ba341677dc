"""
Dashboard blueprint - aggregate views per tenant.

Endpoints:
    GET /api/v1/dashboard/process-stats
    GET /api/v1/dashboard/overdue-tasks
    GET /api/v1/dashboard/upcoming-deadlines?days=30
    GET /api/v1/dashboard/completion-rate
    GET /api/v1/dashboard/recent-activity?limit=20
    GET /api/v1/rnm-calendar?start=YYYY-MM-DD&end=YYYY-MM-DD
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import tenant_id
from immigration.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1")


@dashboard_bp.route("/dashboard/process-stats", methods=["GET"])
def process_stats():
    return jsonify(dashboard_service.process_stats(tenant_id()))


@dashboard_bp.route("/dashboard/overdue-tasks", methods=["GET"])
def overdue_tasks():
    return jsonify(dashboard_service.overdue_tasks(tenant_id()))


@dashboard_bp.route("/dashboard/upcoming-deadlines", methods=["GET"])
def upcoming_deadlines():
    return jsonify(dashboard_service.upcoming_deadlines(tenant_id(), request.args.get("days")))


@dashboard_bp.route("/dashboard/completion-rate", methods=["GET"])
def completion_rate():
    return jsonify(dashboard_service.completion_rate(tenant_id()))


@dashboard_bp.route("/dashboard/recent-activity", methods=["GET"])
def recent_activity():
    items = dashboard_service.recent_activity(tenant_id(), request.args.get("limit", 20))
    return jsonify({"items": items, "total": len(items)})


@dashboard_bp.route("/rnm-calendar", methods=["GET"])
def rnm_calendar():
    return jsonify(dashboard_service.rnm_calendar(
        tenant_id(), request.args.get("start"), request.args.get("end"),
    ))
