"""
Tests - health, tenant registry, tenant isolation, request guards,
field-registry and status-transition catalog endpoints.
"""

import pytest

from conftest import create_person
from immigration.models import db


OTHER = {"X-Tenant-ID": "other"}


# ═════════════════════════════════════════════════════════════════════════════
# Health
# ═════════════════════════════════════════════════════════════════════════════


class TestHealth:
    def test_health(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok", "app": "Immigration Case Manager"}

    def test_ready(self, client):
        data = client.get("/api/v1/health/ready").get_json()
        assert data["status"] == "ok"
        assert data["database"]["status"] == "ok"
        assert data["database"]["latency_ms"] >= 0

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/people", headers={"X-Request-ID": "req-42"})
        assert res.headers["X-Request-ID"] == "req-42"
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0
        assert client.get("/api/v1/people").headers["X-Request-ID"]

    def test_health_ignores_unknown_tenant(self, client):
        res = client.get("/api/v1/health", headers={"X-Tenant-ID": "ghost"})
        assert res.status_code == 200


# ═════════════════════════════════════════════════════════════════════════════
# Tenants
# ═════════════════════════════════════════════════════════════════════════════


class TestTenants:
    def test_list_contains_default(self, client):
        slugs = [t["slug"] for t in client.get("/api/v1/tenants").get_json()["items"]]
        assert "default" in slugs

    def test_create(self, client):
        res = client.post("/api/v1/tenants", json={"name": "Acme Vistos", "slug": "Acme-Vistos"})
        assert res.status_code == 201
        assert res.get_json()["slug"] == "acme-vistos"
        assert res.get_json()["is_active"] is True

        dup = client.post("/api/v1/tenants", json={"name": "Again", "slug": "acme-vistos"})
        assert dup.status_code == 409

    @pytest.mark.parametrize("payload, field", [
        ({"slug": "ok"}, "name"),
        ({"name": "X"}, "slug"),
        ({"name": "X", "slug": "with space"}, "slug"),
        ({"name": "X", "slug": "under_score"}, "slug"),
    ])
    def test_create_invalid(self, client, payload, field):
        res = client.post("/api/v1/tenants", json=payload)
        assert res.status_code == 422
        assert field in res.get_json()["details"]


# ═════════════════════════════════════════════════════════════════════════════
# Isolation
# ═════════════════════════════════════════════════════════════════════════════


class TestTenantIsolation:
    def test_unknown_tenant_rejected(self, client):
        res = client.get("/api/v1/people", headers={"X-Tenant-ID": "ghost"})
        assert res.status_code == 400
        assert "ghost" in res.get_json()["error"]

    def test_inactive_tenant_rejected(self, client, other_tenant):
        other_tenant.is_active = False
        db.session.commit()
        assert client.get("/api/v1/people", headers=OTHER).status_code == 400

    def test_records_invisible_across_tenants(self, client, other_tenant):
        person = create_person(client)
        assert client.get(f"/api/v1/people/{person['id']}", headers=OTHER).status_code == 404
        assert client.put(f"/api/v1/people/{person['id']}", json={"surname": "X"},
                          headers=OTHER).status_code == 404
        assert client.delete(f"/api/v1/people/{person['id']}", headers=OTHER).status_code == 404
        assert client.get("/api/v1/people", headers=OTHER).get_json()["total"] == 0
        assert client.get(f"/api/v1/people/{person['id']}").status_code == 200

    def test_header_is_case_insensitive(self, client, other_tenant):
        res = client.post("/api/v1/people", json={"given_names": "Ana", "surname": "Lima"},
                          headers={"X-Tenant-ID": "OTHER"})
        assert res.status_code == 201
        assert client.get("/api/v1/people", headers=OTHER).get_json()["total"] == 1
        assert client.get("/api/v1/people").get_json()["total"] == 0

    def test_foreign_key_from_other_tenant_rejected(self, client, other_tenant):
        person = create_person(client)
        client.post("/api/v1/main-processes", json={"reference_number": "MP-9"}, headers=OTHER)
        main_id = client.get("/api/v1/main-processes", headers=OTHER).get_json()["items"][0]["id"]
        res = client.post("/api/v1/individual-processes", headers=OTHER,
                          json={"main_process_id": main_id, "person_id": person["id"]})
        assert res.status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Request guards & generic errors
# ═════════════════════════════════════════════════════════════════════════════


class TestRequestGuards:
    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/people", data="given_names=Ana", content_type="text/plain")
        assert res.status_code == 415

    def test_unknown_route_is_json_404(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/v1/nothing-here"

    def test_wrong_method_is_json_405(self, client):
        res = client.delete("/api/v1/people")
        assert res.status_code == 405
        assert res.get_json()["error"] == "Method not allowed"


# ═════════════════════════════════════════════════════════════════════════════
# Catalog endpoints
# ═════════════════════════════════════════════════════════════════════════════


class TestFieldRegistryEndpoints:
    def test_full_registry(self, client):
        data = client.get("/api/v1/field-registry").get_json()
        assert {e["value"] for e in data["entity_types"]} == set(data["fields"])
        assert [p["value"] for p in data["responsible_parties"]] == ["client", "admin", "company"]
        assert any(f["field_path"] == "cpf" for f in data["fields"]["person"])

    def test_single_entity_type(self, client):
        data = client.get("/api/v1/field-registry/passport").get_json()
        assert data["entity_type"] == "passport"
        assert data["total"] == len(data["items"])
        assert client.get("/api/v1/field-registry/spaceship").status_code == 404

    def test_fillable_fields(self, client):
        data = client.get("/api/v1/fillable-fields").get_json()
        assert data["total"] == len(data["items"]) > 0


class TestStatusTransitionEndpoints:
    def test_table(self, client):
        data = client.get("/api/v1/status-transitions/main").get_json()
        assert data["transitions"]["draft"] == ["cancelled", "in_progress"]
        assert data["labels"]["in_progress"] == "In Progress"

    def test_check(self, client):
        res = client.get("/api/v1/status-transitions/individual/check"
                         "?from=pending_documents&to=documents_submitted")
        data = res.get_json()
        assert data["valid"] is True
        assert data["allowed"] == ["cancelled", "documents_submitted"]

        res = client.get("/api/v1/status-transitions/individual/check?from=completed&to=pending_documents")
        assert res.get_json()["valid"] is False

    def test_check_errors(self, client):
        assert client.get("/api/v1/status-transitions/individual/check?from=completed").status_code == 422
        assert client.get("/api/v1/status-transitions/spaceship").status_code == 404
