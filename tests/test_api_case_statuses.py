"""
Tests - Case status catalog API.

Covers:
    - CRUD, code normalisation, per-tenant code uniqueness
    - validation → 422 with field details
    - by-code / by-category lookups, include_inactive listing
    - reorder, toggle, in-use protection (delete / deactivate / code change)
"""

from conftest import add_status

BASE = "/api/v1/case-statuses"


def _create(client, **kw):
    payload = {"name": "Aguardando", "code": "waiting", "sort_order": 5}
    payload.update(kw)
    return client.post(BASE, json=payload)


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════


class TestCaseStatusCrud:
    def test_create_and_get(self, client):
        res = _create(client, code="  Waiting_Docs ", category="preparation",
                      fillable_fields=["deadline_date"])
        assert res.status_code == 201
        data = res.get_json()
        assert data["code"] == "waiting_docs"
        assert data["is_active"] is True
        assert data["fillable_fields"] == ["deadline_date"]
        assert data["color"]  # category default colour

        got = client.get(f"{BASE}/{data['id']}")
        assert got.status_code == 200
        assert got.get_json()["name"] == "Aguardando"

    def test_create_validation_error(self, client):
        res = client.post(BASE, json={"code": "bad code!", "sort_order": 0})
        assert res.status_code == 422
        details = res.get_json()["details"]
        assert {"name", "code", "sort_order"} <= set(details)

    def test_unknown_fillable_field(self, client):
        res = _create(client, fillable_fields=["favourite_colour"])
        assert res.status_code == 422
        assert "fillable_fields" in res.get_json()["details"]

    def test_duplicate_code_conflict(self, client):
        assert _create(client).status_code == 201
        assert _create(client, name="Other").status_code == 409

    def test_same_code_in_other_tenant(self, client, other_tenant):
        assert _create(client).status_code == 201
        res = client.post(BASE, json={"name": "W", "code": "waiting", "sort_order": 1},
                          headers={"X-Tenant-ID": "other"})
        assert res.status_code == 201

    def test_partial_update(self, client):
        sid = _create(client).get_json()["id"]
        res = client.patch(f"{BASE}/{sid}", json={"color": "#00ff00", "name_en": "Waiting"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["color"] == "#00FF00"
        assert data["name_en"] == "Waiting"
        assert data["code"] == "waiting"

    def test_get_missing(self, client):
        assert client.get(f"{BASE}/9999").status_code == 404

    def test_soft_delete_hides_from_default_list(self, client):
        sid = _create(client).get_json()["id"]
        assert client.delete(f"{BASE}/{sid}").status_code == 204
        assert client.get(BASE).get_json()["total"] == 0
        listed = client.get(f"{BASE}?include_inactive=true").get_json()
        assert listed["total"] == 1
        assert listed["items"][0]["is_active"] is False


# ═════════════════════════════════════════════════════════════════════════════
# Lookups & ordering
# ═════════════════════════════════════════════════════════════════════════════


class TestCaseStatusLookups:
    def test_list_ordered_by_sort_order(self, client, catalog):
        items = client.get(BASE).get_json()["items"]
        orders = [s["sort_order"] for s in items]
        assert orders == sorted(orders)
        assert items[0]["code"] == "pending_documents"

    def test_by_code_is_case_insensitive(self, client, catalog):
        res = client.get(f"{BASE}/by-code/COMPLETED")
        assert res.status_code == 200
        assert res.get_json()["id"] == catalog["completed"]
        assert client.get(f"{BASE}/by-code/nope").status_code == 404

    def test_by_category(self, client, catalog):
        res = client.get(f"{BASE}/by-category/review")
        codes = {s["code"] for s in res.get_json()["items"]}
        assert codes == {"submitted_to_government", "under_government_review"}
        assert client.get(f"{BASE}/by-category/limbo").status_code == 422

    def test_reorder(self, client, catalog):
        res = client.put(f"{BASE}/reorder", json={"updates": [
            {"id": catalog["cancelled"], "sort_order": 1},
        ]})
        assert res.status_code == 200
        assert res.get_json()["items"][0]["code"] == "cancelled"

    def test_reorder_unknown_id(self, client, catalog):
        res = client.put(f"{BASE}/reorder", json={"updates": [{"id": 9999, "sort_order": 1}]})
        assert res.status_code == 404

    def test_seed_is_idempotent(self, client, catalog, default_tenant):
        from immigration.services.case_status_service import seed_default_catalog

        assert seed_default_catalog(default_tenant.id) == 0


# ═════════════════════════════════════════════════════════════════════════════
# In-use protection
# ═════════════════════════════════════════════════════════════════════════════


class TestCaseStatusInUse:
    def test_unused_status_can_be_toggled(self, client):
        sid = _create(client).get_json()["id"]
        assert client.post(f"{BASE}/{sid}/toggle").get_json()["is_active"] is False
        assert client.post(f"{BASE}/{sid}/toggle").get_json()["is_active"] is True

    def test_in_use_status_is_protected(self, client, catalog, individual_process):
        sid = catalog["pending_documents"]
        assert add_status(client, individual_process["id"], sid).status_code == 201

        assert client.delete(f"{BASE}/{sid}").status_code == 409
        assert client.post(f"{BASE}/{sid}/toggle").status_code == 409
        assert client.patch(f"{BASE}/{sid}", json={"code": "renamed"}).status_code == 409
        # other attributes stay editable
        assert client.patch(f"{BASE}/{sid}", json={"name": "Docs"}).status_code == 200
