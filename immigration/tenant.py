"""
Immigration Case Management API - tenant resolution (row-level isolation).

All tenants share one database; every business row carries tenant_id.
The tenant of a request is selected by slug:
    1. X-Tenant-ID HTTP header (API calls)
    2. TENANT_ID environment variable (CLI / single-tenant deployments)
    3. DEFAULT_TENANT_SLUG config value ("default")

Usage:
    from immigration.tenant import resolve_tenant_slug

    slug = resolve_tenant_slug()          # inside or outside a request
"""

import os

from flask import current_app, has_app_context, has_request_context, request

DEFAULT_TENANT_SLUG = "default"


def default_slug() -> str:
    if has_app_context():
        return current_app.config.get("DEFAULT_TENANT_SLUG", DEFAULT_TENANT_SLUG)
    return DEFAULT_TENANT_SLUG


def resolve_tenant_slug() -> str:
    """
    Resolve the current tenant slug from (in priority order):
        1. Flask request header X-Tenant-ID
        2. Environment variable TENANT_ID
        3. DEFAULT_TENANT_SLUG
    """
    if has_request_context():
        header = request.headers.get("X-Tenant-ID", "").strip().lower()
        if header:
            return header

    env_tenant = os.getenv("TENANT_ID", "").strip().lower()
    if env_tenant:
        return env_tenant

    return default_slug()
