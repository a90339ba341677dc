"""
Tenant Context Middleware - resolves the tenant of every API request.

  1. resolve_tenant_slug() picks the slug (X-Tenant-ID → TENANT_ID → default)
  2. the slug must name an active Tenant row, else 400
  3. g.tenant / g.tenant_id are set for services and log_activity
  4. g.actor is taken from X-Actor (default "system")

Health and tenant-registry endpoints skip resolution.
"""

import logging

from flask import g, jsonify, request

from immigration.services import tenant_service
from immigration.tenant import resolve_tenant_slug

logger = logging.getLogger(__name__)

# Paths that skip tenant context
TENANT_SKIP_PREFIXES = (
    "/api/v1/health",
    "/api/v1/tenants",
)


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.tenant = None
        g.tenant_id = None
        g.actor = (request.headers.get("X-Actor") or "").strip()[:150] or "system"

        # Only process API requests
        if not request.path.startswith("/api/v1/"):
            return None

        for prefix in TENANT_SKIP_PREFIXES:
            if request.path.startswith(prefix):
                return None

        slug = resolve_tenant_slug()
        tenant = tenant_service.get_by_slug(slug)
        if tenant is None or not tenant.is_active:
            logger.warning("Rejected request for unknown tenant %r: %s %s",
                           slug, request.method, request.path)
            return jsonify({"error": f"Unknown tenant: {slug}"}), 400

        g.tenant = tenant
        g.tenant_id = tenant.id
        return None

    logger.info("Tenant context middleware installed")
