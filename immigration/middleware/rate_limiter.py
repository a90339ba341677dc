"""
Per-blueprint request limits (Flask-Limiter), counted per tenant.

The Limiter in ``immigration/__init__.py`` carries no default limit; each
blueprint below gets one shared limit string.  Health is exempt and nothing
is limited under TESTING.
"""

import logging

from flask import g

from immigration.tenant import resolve_tenant_slug

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"
EXPORT_LIMIT = "10/minute"

BLUEPRINT_LIMITS = {
    "exports": EXPORT_LIMIT,
    **{name: WRITE_LIMIT for name in (
        "reference", "clients", "documents", "case_statuses", "processes",
        "status_history", "tasks", "notifications", "tenants",
    )},
    **{name: READ_LIMIT for name in (
        "dashboard", "activity_logs", "field_registry", "status_transitions",
    )},
}


def tenant_rate_limit_key():
    """Bucket by tenant.

    Limits are evaluated before the tenant middleware has set ``g.tenant_id``,
    so the requested slug is the usual key.
    """
    if g.get("tenant_id"):
        return f"tenant:{g.tenant_id}"
    return f"tenant-slug:{resolve_tenant_slug()}"


def init_rate_limits(app, limiter):
    if app.config.get("TESTING"):
        app.logger.info("Rate limits off under TESTING")
        return

    for name, limit in BLUEPRINT_LIMITS.items():
        blueprint = app.blueprints.get(name)
        if blueprint is not None:
            limiter.limit(limit, key_func=tenant_rate_limit_key)(blueprint)

    if "health" in app.blueprints:
        limiter.exempt(app.blueprints["health"])

    logger.info("Rate limits applied to %d blueprints", len(BLUEPRINT_LIMITS))
