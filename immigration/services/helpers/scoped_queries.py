"""
Tenant-scoped query helpers.

Every get-by-id MUST go through these helpers instead of
db.session.get(Model, pk).  A bare .get() ignores tenant_id and would let
one consultancy read another's records.

Usage:
    person = get_scoped(Person, person_id, tenant_id=tenant_id)

    # Optional FK lookups
    passport = get_scoped_or_none(Passport, passport_id, tenant_id=tenant_id)

    # Validate a foreign key supplied in a request body
    ensure_scoped_fk(City, data.get("city_id"), tenant_id, field="city_id")
"""

import logging

from sqlalchemy import select

from immigration.core.exceptions import NotFoundError, ValidationError
from immigration.models import db

logger = logging.getLogger(__name__)


def get_scoped(model, pk, *, tenant_id: int):
    """Fetch a single entity by PK inside a tenant.

    Cross-tenant access is indistinguishable from a missing record: both
    raise NotFoundError → HTTP 404.

    Raises:
        ValueError: If tenant_id is None (an unscoped lookup).
        NotFoundError: If the entity does not exist OR belongs to another tenant.
    """
    if tenant_id is None:
        raise ValueError(
            f"{model.__name__} id={pk} requires a tenant_id. "
            "Unscoped lookups are forbidden."
        )

    stmt = select(model).where(model.id == pk, model.tenant_id == tenant_id)
    result = db.session.execute(stmt).scalar_one_or_none()

    if result is None:
        logger.debug("get_scoped: %s id=%s not found in tenant %s",
                      model.__name__, pk, tenant_id)
        raise NotFoundError(resource=model.__name__, resource_id=pk, tenant_id=tenant_id)

    return result


def get_scoped_or_none(model, pk, *, tenant_id: int):
    """Same as get_scoped but returns None instead of raising NotFoundError."""
    if pk is None:
        return None
    try:
        return get_scoped(model, pk, tenant_id=tenant_id)
    except NotFoundError:
        return None


def ensure_scoped_fk(model, pk, tenant_id: int, *, field: str):
    """Check that an optional foreign key in a payload points inside the tenant.

    Returns the referenced instance (or None when pk is empty).

    Raises:
        ValidationError: If pk is set but unknown in this tenant.
    """
    if pk in (None, ""):
        return None
    try:
        pk = int(pk)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"}) from exc
    obj = get_scoped_or_none(model, pk, tenant_id=tenant_id)
    if obj is None:
        raise ValidationError(
            f"{field} references an unknown {model.__name__}",
            details={field: f"{model.__name__} id={pk} not found"},
        )
    return obj
