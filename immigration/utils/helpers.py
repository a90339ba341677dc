"""Small parsing and request helpers shared by services and blueprints."""
import logging
from datetime import date, datetime

from flask import g, has_request_context, jsonify
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from immigration.core.exceptions import ValidationError
from immigration.models import db

logger = logging.getLogger(__name__)

_BR_DATE = "%d/%m/%Y"
_TRUTHY = frozenset({"1", "true", "yes", "on", "sim"})


# ── Payload parsing ──────────────────────────────────────────────────────────

def parse_date_input(value):
    """``YYYY-MM-DD`` or ``DD/MM/YYYY`` to a date; empty → None.

    Raises:
        ValueError: anything else, so the caller can name the field.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    for parse in (date.fromisoformat, lambda s: datetime.strptime(s, _BR_DATE).date()):
        try:
            return parse(text)
        except ValueError:
            continue
    raise ValueError(f"Invalid date {text!r}. Use YYYY-MM-DD or DD/MM/YYYY.")


def parse_datetime_input(value):
    """ISO 8601 datetime; empty → None; ValueError otherwise."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid datetime {value!r}. Use ISO 8601.") from exc


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def parse_int_field(value, field, default=None):
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"}) from exc


# ── Request context ──────────────────────────────────────────────────────────

def current_tenant_id():
    return g.get("tenant_id") if has_request_context() else None


def current_actor():
    """X-Actor of the request; ``"system"`` for CLI and background use."""
    if has_request_context():
        return g.get("actor") or "system"
    return "system"


# ── Commit ───────────────────────────────────────────────────────────────────

def _commit_failure(message, status):
    return jsonify({"error": message, "details": {}}), status


def db_commit_or_error():
    """Commit the unit of work.

    Returns None on success, or a ready ``(response, status)`` after rolling
    back: 409 for constraint violations and lost version races, 500 for
    anything else.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Commit rejected by constraint: %s", exc.orig)
        return _commit_failure("Duplicate or constraint violation", 409)
    except StaleDataError:
        db.session.rollback()
        logger.warning("Commit lost a concurrent update race")
        return _commit_failure("Record was modified concurrently; reload and retry", 409)
    except OperationalError:
        db.session.rollback()
        logger.exception("Database unavailable during commit")
        return _commit_failure("Database error", 500)
    except Exception:
        db.session.rollback()
        logger.exception("Unexpected error during commit")
        return _commit_failure("Database error", 500)
    return None
