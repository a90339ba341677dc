"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        - app name + status (no tenant needed)
    GET /api/v1/health/ready  - database round-trip for load balancers
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from immigration.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1")


@health_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok", "app": current_app.config.get("APP_NAME", "Immigration Case Manager")})


@health_bp.route("/health/ready", methods=["GET"])
def ready():
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
    except Exception as exc:
        logger.error("Health check - database failed: %s", exc)
        return jsonify({"status": "error", "database": {"status": "error"}}), 503
    return jsonify({"status": "ok", "database": {"status": "ok", "latency_ms": round(db_ms, 1)}})
