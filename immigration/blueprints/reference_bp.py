"""
Reference & configuration lookup blueprint.

The same five routes are registered for every resource in
reference_service.RESOURCES:

    countries  states  cities  consulates  cbo-codes
    process-types  legal-frameworks  document-types

Endpoints (per resource):
    GET    /api/v1/<resource>          list (?q=, FK / flag filters, limit, offset)
    POST   /api/v1/<resource>          create
    GET    /api/v1/<resource>/<id>     detail
    PUT    /api/v1/<resource>/<id>     update (PATCH accepted)
    DELETE /api/v1/<resource>/<id>     delete (409 while referenced)
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, json_body, page_response, tenant_id
from immigration.services import reference_service
from immigration.services.reference_service import RESOURCES

reference_bp = Blueprint("reference", __name__, url_prefix="/api/v1")


def _list(resource):
    res = RESOURCES[resource]
    return page_response(reference_service.list_query(res, tenant_id(), request.args))


def _create(resource):
    res = RESOURCES[resource]
    obj = reference_service.create_item(res, tenant_id(), json_body(), actor=actor())
    return commit_response(obj.to_dict(), 201)


def _get(resource, item_id):
    obj = reference_service.get_item(RESOURCES[resource], tenant_id(), item_id)
    return jsonify(obj.to_dict())


def _update(resource, item_id):
    res = RESOURCES[resource]
    obj = reference_service.update_item(res, tenant_id(), item_id, json_body(), actor=actor())
    return commit_response(obj.to_dict())


def _delete(resource, item_id):
    reference_service.delete_item(RESOURCES[resource], tenant_id(), item_id, actor=actor())
    return commit_response(None, 204)


def _register(resource):
    endpoint = resource.replace("-", "_")
    reference_bp.add_url_rule(f"/{resource}", f"list_{endpoint}", _list,
                              methods=["GET"], defaults={"resource": resource})
    reference_bp.add_url_rule(f"/{resource}", f"create_{endpoint}", _create,
                              methods=["POST"], defaults={"resource": resource})
    reference_bp.add_url_rule(f"/{resource}/<int:item_id>", f"get_{endpoint}", _get,
                              methods=["GET"], defaults={"resource": resource})
    reference_bp.add_url_rule(f"/{resource}/<int:item_id>", f"update_{endpoint}", _update,
                              methods=["PUT", "PATCH"], defaults={"resource": resource})
    reference_bp.add_url_rule(f"/{resource}/<int:item_id>", f"delete_{endpoint}", _delete,
                              methods=["DELETE"], defaults={"resource": resource})


for _resource in RESOURCES:
    _register(_resource)
