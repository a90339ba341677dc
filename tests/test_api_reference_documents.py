"""
Tests - Reference lookups, legal-framework info requirements,
document-type field mappings, document templates and per-process field values.
"""

from conftest import create_individual_process, create_main_process, create_person


def _post(client, url, payload):
    res = client.post(url, json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _framework(client):
    ptype = _post(client, "/api/v1/process-types", {"name": "Work visa", "estimated_days": 90})
    return _post(client, "/api/v1/legal-frameworks",
                 {"name": "RN 02/2017", "process_type_id": ptype["id"]})


# ═════════════════════════════════════════════════════════════════════════════
# Reference lookups
# ═════════════════════════════════════════════════════════════════════════════


class TestReference:
    def test_country_code_upper_and_unique(self, client):
        country = _post(client, "/api/v1/countries", {"name": "Brasil", "code": "br"})
        assert country["code"] == "BR"
        dup = client.post("/api/v1/countries", json={"name": "Brazil", "code": "BR"})
        assert dup.status_code == 409
        assert client.post("/api/v1/countries", json={"name": "X"}).status_code == 422

    def test_update_to_taken_code_conflicts(self, client):
        _post(client, "/api/v1/countries", {"name": "Brasil", "code": "BR"})
        pt = _post(client, "/api/v1/countries", {"name": "Portugal", "code": "PT"})
        res = client.put(f"/api/v1/countries/{pt['id']}", json={"code": "br"})
        assert res.status_code == 409

    def test_fk_and_delete_guard(self, client):
        country = _post(client, "/api/v1/countries", {"name": "Brasil", "code": "BR"})
        city = _post(client, "/api/v1/cities", {"name": "São Paulo", "country_id": country["id"],
                                                "has_federal_police": True})
        assert client.post("/api/v1/cities", json={"name": "X", "country_id": 9999}).status_code == 422

        listed = client.get(f"/api/v1/cities?country_id={country['id']}&has_federal_police=true")
        assert [c["id"] for c in listed.get_json()["items"]] == [city["id"]]

        assert client.delete(f"/api/v1/countries/{country['id']}").status_code == 409
        assert client.delete(f"/api/v1/cities/{city['id']}").status_code == 204
        assert client.delete(f"/api/v1/countries/{country['id']}").status_code == 204

    def test_search(self, client):
        _post(client, "/api/v1/cbo-codes", {"code": "2124-05", "title": "Analista de sistemas"})
        _post(client, "/api/v1/cbo-codes", {"code": "2521-05", "title": "Administrador"})
        res = client.get("/api/v1/cbo-codes?q=2124")
        assert res.get_json()["total"] == 1
        assert client.post("/api/v1/cbo-codes", json={"code": "1"}).status_code == 422

    def test_int_field_validation(self, client):
        res = client.post("/api/v1/process-types", json={"name": "Study", "estimated_days": "many"})
        assert res.status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Info requirements
# ═════════════════════════════════════════════════════════════════════════════


class TestInfoRequirements:
    def test_create_defaults_from_registry(self, client):
        fw = _framework(client)
        url = f"/api/v1/legal-frameworks/{fw['id']}/info-requirements"
        req = _post(client, url, {"entity_type": "person", "field_path": "birth_date"})
        assert req["label_en"] == "Date of birth"
        assert req["field_type"] == "date"
        assert req["responsible_party"] == "client"
        assert req["sort_order"] == 0

        assert client.post(url, json={"entity_type": "person", "field_path": "shoe_size"}).status_code == 422
        assert client.post(url, json={"entity_type": "pet", "field_path": "name"}).status_code == 422
        res = client.post(url, json={"entity_type": "person", "field_path": "cpf",
                                     "responsible_party": "nobody"})
        assert res.status_code == 422

    def test_bulk_reorder_and_inactive(self, client):
        fw = _framework(client)
        base = f"/api/v1/legal-frameworks/{fw['id']}/info-requirements"
        created = client.post(f"{base}/bulk", json={"items": [
            {"entity_type": "person", "field_path": "cpf"},
            {"entity_type": "passport", "field_path": "passport_number"},
            {"entity_type": "company", "field_path": "tax_id", "responsible_party": "company"},
        ]})
        assert created.status_code == 201
        ids = [r["id"] for r in created.get_json()["items"]]
        assert [r["sort_order"] for r in created.get_json()["items"]] == [0, 1, 2]

        res = client.put(f"{base}/reorder", json={"ids": list(reversed(ids))})
        assert [r["id"] for r in res.get_json()["items"]] == list(reversed(ids))
        assert client.put(f"{base}/reorder", json={"ids": [9999]}).status_code == 422

        client.patch(f"/api/v1/info-requirements/{ids[0]}", json={"is_active": False})
        assert client.get(base).get_json()["total"] == 2
        assert client.get(f"{base}?include_inactive=true").get_json()["total"] == 3

    def test_bulk_rejects_whole_batch(self, client):
        fw = _framework(client)
        base = f"/api/v1/legal-frameworks/{fw['id']}/info-requirements"
        res = client.post(f"{base}/bulk", json={"items": [
            {"entity_type": "person", "field_path": "cpf"},
            {"entity_type": "person", "field_path": "nope"},
        ]})
        assert res.status_code == 422
        assert list(res.get_json()["details"]) == ["1"]
        assert client.get(base).get_json()["total"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# Field mappings & values
# ═════════════════════════════════════════════════════════════════════════════


class TestDocumentFields:
    def _setup(self, client):
        doc_type = _post(client, "/api/v1/document-types", {"name": "Formulário RN", "code": "FORM-RN"})
        url = f"/api/v1/document-types/{doc_type['id']}/field-mappings"
        _post(client, url, {"entity_type": "person", "field_path": "surname", "sort_order": 1})
        _post(client, url, {"entity_type": "passport", "field_path": "passport_number", "sort_order": 2})
        _post(client, url, {"entity_type": "individual_process", "field_path": "funcao", "sort_order": 3})
        return doc_type

    def test_duplicate_mapping_rejected(self, client):
        doc_type = self._setup(client)
        res = client.post(f"/api/v1/document-types/{doc_type['id']}/field-mappings",
                          json={"entity_type": "person", "field_path": "surname"})
        assert res.status_code == 422

    def test_read_and_write_values(self, client):
        doc_type = self._setup(client)
        person = create_person(client, surname="Silva")
        _post(client, "/api/v1/passports", {"person_id": person["id"], "passport_number": "AA111"})
        main = create_main_process(client)
        proc = create_individual_process(client, main["id"], person["id"], funcao="Engineer")

        url = f"/api/v1/individual-processes/{proc['id']}/document-types/{doc_type['id']}/fields"
        items = client.get(url).get_json()["items"]
        assert [(i["field_path"], i["value"]) for i in items] == [
            ("surname", "Silva"), ("passport_number", "AA111"), ("funcao", "Engineer"),
        ]

        res = client.put(url, json={"values": [
            {"entity_type": "person", "field_path": "surname", "value": "Costa"},
            {"mapping_id": items[1]["id"], "value": "bb222"},
        ]})
        assert res.status_code == 200
        values = {i["field_path"]: i["value"] for i in res.get_json()["items"]}
        assert values == {"surname": "Costa", "passport_number": "BB222", "funcao": "Engineer"}

    def test_unmapped_value_rejected(self, client, individual_process):
        doc_type = self._setup(client)
        url = f"/api/v1/individual-processes/{individual_process['id']}/document-types/{doc_type['id']}/fields"
        res = client.put(url, json={"values": [{"entity_type": "person", "field_path": "cpf", "value": "1"}]})
        assert res.status_code == 422
        assert client.put(url, json={}).status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Templates
# ═════════════════════════════════════════════════════════════════════════════


class TestTemplates:
    def test_template_lifecycle(self, client):
        ptype = _post(client, "/api/v1/process-types", {"name": "Work visa"})
        doc_type = _post(client, "/api/v1/document-types", {"name": "Passport copy"})
        tpl = _post(client, "/api/v1/document-templates", {
            "name": "Work visa checklist", "process_type_id": ptype["id"],
            "requirements": [{"document_type_id": doc_type["id"], "allowed_formats": ["PDF", "JPG"]}],
        })
        assert tpl["version"] == 1
        assert tpl["requirements"][0]["allowed_formats"] == ["pdf", "jpg"]

        listed = client.get("/api/v1/document-templates").get_json()
        assert "requirements" not in listed["items"][0]

        res = client.put(f"/api/v1/document-templates/{tpl['id']}", json={"requirements": []})
        assert res.get_json()["version"] == 2
        assert res.get_json()["requirements"] == []

        assert client.delete(f"/api/v1/process-types/{ptype['id']}").status_code == 409
        assert client.delete(f"/api/v1/document-templates/{tpl['id']}").status_code == 204

    def test_template_validation(self, client):
        assert client.post("/api/v1/document-templates", json={"name": "x"}).status_code == 422
        ptype = _post(client, "/api/v1/process-types", {"name": "Work visa"})
        res = client.post("/api/v1/document-templates", json={
            "name": "x", "process_type_id": ptype["id"], "requirements": [{"document_type_id": 9999}],
        })
        assert res.status_code == 422
