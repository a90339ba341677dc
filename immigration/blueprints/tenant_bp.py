"""
Tenant registry blueprint.

Endpoints:
    GET  /api/v1/tenants   - all tenants
    POST /api/v1/tenants   - create {name, slug}
"""

from flask import Blueprint, jsonify

from immigration.blueprints import commit_response, json_body
from immigration.services import tenant_service

tenant_bp = Blueprint("tenants", __name__, url_prefix="/api/v1")


@tenant_bp.route("/tenants", methods=["GET"])
def list_tenants():
    tenants = tenant_service.list_tenants()
    return jsonify({"items": [t.to_dict() for t in tenants], "total": len(tenants)})


@tenant_bp.route("/tenants", methods=["POST"])
def create_tenant():
    tenant = tenant_service.create_tenant(json_body())
    return commit_response(tenant.to_dict(), 201)
