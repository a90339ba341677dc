"""
Notification blueprint.

The recipient is the request actor (X-Actor); broadcast notifications
(recipient "all") are included in every listing.

Endpoints:
    GET    /api/v1/notifications                  - ?unread_only=true&limit=50&offset=0
    GET    /api/v1/notifications/unread-count
    PATCH  /api/v1/notifications/<id>/read
    POST   /api/v1/notifications/mark-all-read
    DELETE /api/v1/notifications/<id>
"""

from flask import Blueprint, jsonify, request

from immigration.blueprints import actor, commit_response, tenant_id
from immigration.services.notification import NotificationService
from immigration.utils.helpers import parse_bool

notification_bp = Blueprint("notifications", __name__, url_prefix="/api/v1")


@notification_bp.route("/notifications", methods=["GET"])
def list_notifications():
    unread_only = parse_bool(request.args.get("unread_only"))
    limit = min(request.args.get("limit", 50, type=int), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = NotificationService.list_for_recipient(
        tenant_id(), actor(), unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({
        "items": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(tenant_id(), actor()),
    })


@notification_bp.route("/notifications/unread-count", methods=["GET"])
def unread_count():
    return jsonify({"unread_count": NotificationService.unread_count(tenant_id(), actor())})


@notification_bp.route("/notifications/<int:notif_id>/read", methods=["PATCH", "POST"])
def mark_read(notif_id):
    notif = NotificationService.mark_read(tenant_id(), notif_id)
    return commit_response(notif.to_dict())


@notification_bp.route("/notifications/mark-all-read", methods=["POST"])
def mark_all_read():
    count = NotificationService.mark_all_read(tenant_id(), actor())
    return commit_response({"marked_read": count})


@notification_bp.route("/notifications/<int:notif_id>", methods=["DELETE"])
def delete_notification(notif_id):
    NotificationService.delete(tenant_id(), notif_id)
    return commit_response(None, 204)
