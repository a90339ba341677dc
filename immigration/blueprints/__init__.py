"""
Immigration Case Management API
Blueprint registry and shared request helpers.
"""

from flask import jsonify, request

from immigration.utils.helpers import current_actor, current_tenant_id, db_commit_or_error


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  - max items (default 200, capped at max_limit)
        offset - starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def json_body():
    """Request JSON as a dict ({} when absent or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def page_response(query, serialize=None):
    """``{"items": [...], "total": n}`` for a paginated query."""
    items, total = paginate_query(query)
    serialize = serialize or (lambda obj: obj.to_dict())
    return jsonify({"items": [serialize(i) for i in items], "total": total})


def commit_response(payload, status=200):
    """Commit the unit of work, then return ``payload`` (or the commit error)."""
    err = db_commit_or_error()
    if err:
        return err
    if payload is None:
        return "", status
    return jsonify(payload), status


def tenant_id():
    return current_tenant_id()


def actor():
    return current_actor()
