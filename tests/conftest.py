"""
Shared pytest fixtures for the immigration case-management test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - default_tenant / other_tenant: Tenant rows
    - catalog: default case-status catalog, keyed by code
    - person / main_process / individual_process: API-created fixtures

Requests go to the "default" tenant unless an X-Tenant-ID header is sent.
"""

import pytest

from immigration import create_app
from immigration.models import db as _db
from immigration.models.tenant import Tenant
from immigration.services import tenant_service
from immigration.services.case_status_service import seed_default_catalog


def _ensure_default_tenant():
    tenant = tenant_service.ensure_tenant("default", "Default")
    _db.session.commit()
    return tenant.id


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        _ensure_default_tenant()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def default_tenant():
    return Tenant.query.filter_by(slug="default").first()


@pytest.fixture()
def other_tenant():
    tenant = tenant_service.ensure_tenant("other", "Other Consultancy")
    _db.session.commit()
    return tenant


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def catalog(default_tenant):
    """Seed the default case-status catalog; returns {code: id}."""
    from immigration.models.case_status import CaseStatus

    seed_default_catalog(default_tenant.id)
    _db.session.commit()
    return {
        s.code: s.id
        for s in CaseStatus.query_for_tenant(default_tenant.id).all()
    }


def create_person(client, **kw):
    payload = {"given_names": "Maria", "surname": "Silva"}
    payload.update(kw)
    res = client.post("/api/v1/people", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def create_main_process(client, reference="MP-001", **kw):
    payload = {"reference_number": reference}
    payload.update(kw)
    res = client.post("/api/v1/main-processes", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def create_individual_process(client, main_process_id, person_id, **kw):
    payload = {"main_process_id": main_process_id, "person_id": person_id}
    payload.update(kw)
    res = client.post("/api/v1/individual-processes", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def add_status(client, process_id, case_status_id, **kw):
    payload = {"case_status_id": case_status_id}
    payload.update(kw)
    return client.post(f"/api/v1/individual-processes/{process_id}/status-history", json=payload)


@pytest.fixture()
def person(client):
    return create_person(client)


@pytest.fixture()
def main_process(client):
    return create_main_process(client)


@pytest.fixture()
def individual_process(client, main_process, person):
    return create_individual_process(client, main_process["id"], person["id"])
