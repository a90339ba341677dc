"""
Task blueprint.

Endpoints:
    GET    /api/v1/tasks                          - list (?status, priority, assigned_to,
                                                    individual_process_id, main_process_id)
    POST   /api/v1/tasks                          - create (notifies the assignee)
    GET    /api/v1/tasks/<id>
    PUT    /api/v1/tasks/<id>
    DELETE /api/v1/tasks/<id>
    GET    /api/v1/tasks/overdue                  - due before today, still open
    GET    /api/v1/tasks/mine                     - assigned to X-Actor (?include_closed)
    POST   /api/v1/tasks/<id>/complete
    POST   /api/v1/tasks/<id>/reassign            - {assigned_to}
    POST   /api/v1/tasks/<id>/extend-deadline     - {due_date}
    POST   /api/v1/tasks/bulk-status              - {task_ids, status}
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, json_body, page_response, tenant_id
from immigration.services import task_service
from immigration.utils.helpers import parse_bool

task_bp = Blueprint("tasks", __name__, url_prefix="/api/v1")


@task_bp.route("/tasks", methods=["GET"])
def list_tasks():
    return page_response(task_service.list_tasks_query(tenant_id(), request.args))


@task_bp.route("/tasks", methods=["POST"])
def create_task():
    task = task_service.create_task(tenant_id(), json_body(), actor=actor())
    return commit_response(task.to_dict(), 201)


@task_bp.route("/tasks/overdue", methods=["GET"])
def overdue_tasks():
    return page_response(task_service.overdue_query(tenant_id()))


@task_bp.route("/tasks/mine", methods=["GET"])
def my_tasks():
    include_closed = parse_bool(request.args.get("include_closed"))
    return page_response(task_service.my_tasks_query(tenant_id(), actor(), include_closed))


@task_bp.route("/tasks/bulk-status", methods=["POST"])
def bulk_status():
    return commit_response(task_service.bulk_update_status(tenant_id(), json_body(), actor=actor()))


@task_bp.route("/tasks/<int:task_id>", methods=["GET"])
def get_task(task_id):
    return jsonify(task_service.get_task(tenant_id(), task_id).to_dict())


@task_bp.route("/tasks/<int:task_id>", methods=["PUT", "PATCH"])
def update_task(task_id):
    task = task_service.update_task(tenant_id(), task_id, json_body(), actor=actor())
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
def delete_task(task_id):
    task_service.delete_task(tenant_id(), task_id, actor=actor())
    return commit_response(None, 204)


@task_bp.route("/tasks/<int:task_id>/complete", methods=["POST"])
def complete_task(task_id):
    task = task_service.complete_task(tenant_id(), task_id, actor=actor())
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<int:task_id>/reassign", methods=["POST"])
def reassign_task(task_id):
    task = task_service.reassign_task(tenant_id(), task_id, json_body().get("assigned_to"), actor=actor())
    return commit_response(task.to_dict())


@task_bp.route("/tasks/<int:task_id>/extend-deadline", methods=["POST"])
def extend_deadline(task_id):
    task = task_service.extend_deadline(tenant_id(), task_id, json_body().get("due_date"), actor=actor())
    return commit_response(task.to_dict())
