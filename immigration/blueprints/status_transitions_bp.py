"""
Status transitions blueprint - read-only workflow tables.

Endpoints:
    GET /api/v1/status-transitions/<process_type>                 - {status: [next, ...]}
    GET /api/v1/status-transitions/<process_type>/check?from=&to= - {"valid": bool}

process_type is "main" or "individual".
"""

from flask import Blueprint, jsonify, request

from immigration.core.exceptions import NotFoundError, ValidationError
from immigration.services.status_transitions import (
    PROCESS_TYPES,
    format_status,
    get_next_allowed_statuses,
    is_valid_status_transition,
    transition_table,
)

status_transitions_bp = Blueprint("status_transitions", __name__, url_prefix="/api/v1")


def _check_type(process_type):
    if process_type not in PROCESS_TYPES:
        raise NotFoundError(resource="Process type", resource_id=process_type)


@status_transitions_bp.route("/status-transitions/<process_type>", methods=["GET"])
def get_table(process_type):
    _check_type(process_type)
    table = transition_table(process_type)
    return jsonify({
        "process_type": process_type,
        "transitions": table,
        "labels": {status: format_status(status) for status in table},
    })


@status_transitions_bp.route("/status-transitions/<process_type>/check", methods=["GET"])
def check(process_type):
    _check_type(process_type)
    current = request.args.get("from", "")
    candidate = request.args.get("to", "")
    if not current or not candidate:
        raise ValidationError("'from' and 'to' are required",
                              details={"from": current or "required", "to": candidate or "required"})
    return jsonify({
        "from": current,
        "to": candidate,
        "valid": is_valid_status_transition(current, candidate, process_type),
        "allowed": get_next_allowed_statuses(current, process_type),
    })
