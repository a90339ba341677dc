"""Tenant registry - create / list / look up by slug.

Transaction policy: flush() only; the caller commits.
"""
import logging

from immigration.core.exceptions import ConflictError, ValidationError
from immigration.models import db
from immigration.models.tenant import SLUG_RE, Tenant

logger = logging.getLogger(__name__)


def list_tenants():
    return Tenant.query.order_by(Tenant.slug).all()


def get_by_slug(slug):
    return Tenant.query.filter_by(slug=(slug or "").strip().lower()).first()


def create_tenant(data):
    """Validate and insert a tenant.

    Raises:
        ValidationError: missing name / malformed slug.
        ConflictError: slug already registered.
    """
    name = (data.get("name") or "").strip()
    slug = (data.get("slug") or "").strip().lower()
    errors = {}
    if not name:
        errors["name"] = "required"
    if not slug:
        errors["slug"] = "required"
    elif not SLUG_RE.match(slug) or len(slug) > 100:
        errors["slug"] = "must match [a-z0-9-]+"
    if errors:
        raise ValidationError("Invalid tenant", details=errors)
    if get_by_slug(slug):
        raise ConflictError("Tenant", "slug", slug)

    tenant = Tenant(name=name, slug=slug, is_active=True)
    db.session.add(tenant)
    db.session.flush()
    logger.info("Tenant created: %s (id=%s)", slug, tenant.id)
    return tenant


def ensure_tenant(slug, name=None):
    """Return the tenant with ``slug``, creating it when missing."""
    tenant = get_by_slug(slug)
    if tenant is None:
        tenant = create_tenant({"slug": slug, "name": name or slug.replace("-", " ").title()})
    return tenant
