"""
Field registry blueprint - read-only catalog of mappable and fillable fields.

Endpoints:
    GET /api/v1/field-registry                  - all entity types with their fields
    GET /api/v1/field-registry/<entity_type>    - fields of one entity type
    GET /api/v1/fillable-fields                 - status-gated process attributes
"""

from flask import Blueprint, jsonify

from immigration.core.exceptions import NotFoundError
from immigration.services.field_registry import (
    ENTITY_TYPES,
    FIELD_REGISTRY,
    FILLABLE_FIELDS,
    RESPONSIBLE_PARTY_OPTIONS,
    entity_type_options,
)

field_registry_bp = Blueprint("field_registry", __name__, url_prefix="/api/v1")


@field_registry_bp.route("/field-registry", methods=["GET"])
def registry():
    return jsonify({
        "entity_types": entity_type_options(),
        "responsible_parties": list(RESPONSIBLE_PARTY_OPTIONS),
        "fields": {et: [e.to_dict() for e in FIELD_REGISTRY[et]] for et in ENTITY_TYPES},
    })


@field_registry_bp.route("/field-registry/<entity_type>", methods=["GET"])
def registry_for_entity(entity_type):
    if entity_type not in FIELD_REGISTRY:
        raise NotFoundError(resource="Entity type", resource_id=entity_type)
    entries = [e.to_dict() for e in FIELD_REGISTRY[entity_type]]
    return jsonify({"entity_type": entity_type, "items": entries, "total": len(entries)})


@field_registry_bp.route("/fillable-fields", methods=["GET"])
def fillable_fields():
    items = [f.to_dict() for f in FILLABLE_FIELDS]
    return jsonify({"items": items, "total": len(items)})
