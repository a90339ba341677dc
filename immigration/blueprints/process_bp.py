"""
Process blueprint - main processes (one per company request) and the
individual processes (one per person) grouped under them.

Endpoints:
    MAIN        /api/v1/main-processes                               GET, POST
                /api/v1/main-processes/<id>                          GET, PUT, DELETE
                /api/v1/main-processes/by-reference/<ref>            GET
                /api/v1/main-processes/<id>/status                   PATCH {status}
                /api/v1/main-processes/<id>/complete                 POST
                /api/v1/main-processes/<id>/cancel                   POST  {notes, cancel_individuals}
                /api/v1/main-processes/<id>/reopen                   POST
                /api/v1/main-processes/<id>/individual-processes     GET

    INDIVIDUAL  /api/v1/individual-processes                         GET, POST
                /api/v1/individual-processes/<id>                    GET, PUT, DELETE
                /api/v1/individual-processes/<id>/fillable-fields    GET

Main-process responses carry ``calculated_status`` (breakdown of the
individual processes' current statuses).
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, json_body, page_response, tenant_id
from immigration.services import process_service
from immigration.services.process_service import main_process_to_dict

process_bp = Blueprint("processes", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  MAIN PROCESS
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/main-processes", methods=["GET"])
def list_main_processes():
    query = process_service.list_main_processes_query(tenant_id(), request.args)
    return page_response(query, main_process_to_dict)


@process_bp.route("/main-processes", methods=["POST"])
def create_main_process():
    proc = process_service.create_main_process(tenant_id(), json_body(), actor=actor())
    return commit_response(main_process_to_dict(proc), 201)


@process_bp.route("/main-processes/by-reference/<path:reference>", methods=["GET"])
def get_by_reference(reference):
    return jsonify(main_process_to_dict(process_service.get_by_reference(tenant_id(), reference)))


@process_bp.route("/main-processes/<int:process_id>", methods=["GET"])
def get_main_process(process_id):
    return jsonify(main_process_to_dict(process_service.get_main_process(tenant_id(), process_id)))


@process_bp.route("/main-processes/<int:process_id>", methods=["PUT", "PATCH"])
def update_main_process(process_id):
    proc = process_service.update_main_process(tenant_id(), process_id, json_body(), actor=actor())
    return commit_response(main_process_to_dict(proc))


@process_bp.route("/main-processes/<int:process_id>", methods=["DELETE"])
def delete_main_process(process_id):
    process_service.delete_main_process(tenant_id(), process_id, actor=actor())
    return commit_response(None, 204)


@process_bp.route("/main-processes/<int:process_id>/status", methods=["PATCH"])
def transition_main_process(process_id):
    proc = process_service.transition_main_process(
        tenant_id(), process_id, json_body().get("status"), actor=actor(),
    )
    return commit_response(main_process_to_dict(proc))


@process_bp.route("/main-processes/<int:process_id>/complete", methods=["POST"])
def complete_main_process(process_id):
    proc = process_service.complete_main_process(tenant_id(), process_id, actor=actor())
    return commit_response(main_process_to_dict(proc))


@process_bp.route("/main-processes/<int:process_id>/cancel", methods=["POST"])
def cancel_main_process(process_id):
    proc, report = process_service.cancel_main_process(tenant_id(), process_id, json_body(), actor=actor())
    payload = main_process_to_dict(proc)
    payload["cascade"] = report
    return commit_response(payload)


@process_bp.route("/main-processes/<int:process_id>/reopen", methods=["POST"])
def reopen_main_process(process_id):
    proc = process_service.reopen_main_process(tenant_id(), process_id, actor=actor())
    return commit_response(main_process_to_dict(proc))


@process_bp.route("/main-processes/<int:process_id>/individual-processes", methods=["GET"])
def main_process_individuals(process_id):
    proc = process_service.get_main_process(tenant_id(), process_id)
    query = process_service.list_individual_processes_query(tenant_id(), {"main_process_id": proc.id})
    return page_response(query)


# ═══════════════════════════════════════════════════════════════════════════
#  INDIVIDUAL PROCESS
# ═══════════════════════════════════════════════════════════════════════════

@process_bp.route("/individual-processes", methods=["GET"])
def list_individual_processes():
    return page_response(process_service.list_individual_processes_query(tenant_id(), request.args))


@process_bp.route("/individual-processes", methods=["POST"])
def create_individual_process():
    ip = process_service.create_individual_process(tenant_id(), json_body(), actor=actor())
    return commit_response(ip.to_dict(), 201)


@process_bp.route("/individual-processes/<int:process_id>", methods=["GET"])
def get_individual_process(process_id):
    return jsonify(process_service.get_individual_process(tenant_id(), process_id).to_dict())


@process_bp.route("/individual-processes/<int:process_id>", methods=["PUT", "PATCH"])
def update_individual_process(process_id):
    ip = process_service.update_individual_process(tenant_id(), process_id, json_body(), actor=actor())
    return commit_response(ip.to_dict())


@process_bp.route("/individual-processes/<int:process_id>", methods=["DELETE"])
def delete_individual_process(process_id):
    process_service.delete_individual_process(tenant_id(), process_id, actor=actor())
    return commit_response(None, 204)


@process_bp.route("/individual-processes/<int:process_id>/fillable-fields", methods=["GET"])
def individual_fillable_fields(process_id):
    ip = process_service.get_individual_process(tenant_id(), process_id)
    status = ip.current_case_status
    fields = [f.to_dict() for f in process_service.fillable_fields_for(ip)]
    return jsonify({
        "individual_process_id": ip.id,
        "case_status": status.summary() if status else None,
        "items": fields,
        "total": len(fields),
    })
