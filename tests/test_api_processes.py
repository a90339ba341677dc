"""
Tests - Main and individual process API.

Covers:
    - main process CRUD, reference uniqueness, by-reference lookup
    - guarded status changes, complete / cancel (cascade) / reopen
    - calculated status breakdown and display text
    - individual process CRUD, fillable-field gating on update, expected_version
"""

from conftest import add_status, create_individual_process, create_main_process, create_person

MAIN = "/api/v1/main-processes"
IND = "/api/v1/individual-processes"


# ═════════════════════════════════════════════════════════════════════════════
# Main process CRUD
# ═════════════════════════════════════════════════════════════════════════════


class TestMainProcessCrud:
    def test_create_defaults(self, client):
        data = create_main_process(client, reference="MP-2025-01", is_urgent=True)
        assert data["status"] == "draft"
        assert data["is_urgent"] is True
        assert data["calculated_status"]["total_processes"] == 0
        assert data["calculated_status"]["display_text_en"] == "No individual processes"

    def test_reference_required_and_unique(self, client):
        assert client.post(MAIN, json={}).status_code == 422
        create_main_process(client, reference="MP-X")
        assert client.post(MAIN, json={"reference_number": "MP-X"}).status_code == 409

    def test_by_reference(self, client, main_process):
        res = client.get(f"{MAIN}/by-reference/MP-001")
        assert res.status_code == 200
        assert res.get_json()["id"] == main_process["id"]
        assert client.get(f"{MAIN}/by-reference/none").status_code == 404

    def test_update_rejects_status(self, client, main_process):
        res = client.patch(f"{MAIN}/{main_process['id']}", json={"status": "completed"})
        assert res.status_code == 422
        res = client.patch(f"{MAIN}/{main_process['id']}", json={"notes": "VIP client"})
        assert res.status_code == 200
        assert res.get_json()["notes"] == "VIP client"

    def test_list_filters(self, client):
        create_main_process(client, reference="A-1")
        create_main_process(client, reference="B-1", is_urgent=True)
        assert client.get(f"{MAIN}?is_urgent=true").get_json()["total"] == 1
        assert client.get(f"{MAIN}?q=A-").get_json()["items"][0]["reference_number"] == "A-1"
        assert client.get(f"{MAIN}?company_id=abc").status_code == 422

    def test_delete_blocked_by_individuals(self, client, main_process, individual_process):
        assert client.delete(f"{MAIN}/{main_process['id']}").status_code == 409
        assert client.delete(f"{IND}/{individual_process['id']}").status_code == 204
        assert client.delete(f"{MAIN}/{main_process['id']}").status_code == 204


# ═════════════════════════════════════════════════════════════════════════════
# Main process lifecycle
# ═════════════════════════════════════════════════════════════════════════════


class TestMainProcessLifecycle:
    def _start(self, client, pid):
        res = client.patch(f"{MAIN}/{pid}/status", json={"status": "in_progress"})
        assert res.status_code == 200
        return res.get_json()

    def test_guarded_status_change(self, client, main_process):
        pid = main_process["id"]
        assert self._start(client, pid)["status"] == "in_progress"
        res = client.patch(f"{MAIN}/{pid}/status", json={"status": "draft"})
        assert res.status_code == 409
        assert res.get_json()["details"] == {"current": "in_progress", "candidate": "draft"}
        assert client.patch(f"{MAIN}/{pid}/status", json={"status": "bogus"}).status_code == 422

    def test_complete_requires_terminal_individuals(self, client, catalog, main_process,
                                                    individual_process):
        pid = main_process["id"]
        self._start(client, pid)
        add_status(client, individual_process["id"], catalog["pending_documents"])
        assert client.post(f"{MAIN}/{pid}/complete").status_code == 409

        add_status(client, individual_process["id"], catalog["cancelled"])
        res = client.post(f"{MAIN}/{pid}/complete")
        assert res.status_code == 200
        assert res.get_json()["status"] == "completed"
        assert res.get_json()["completed_at"] is not None

    def test_complete_from_draft_rejected(self, client, main_process):
        assert client.post(f"{MAIN}/{main_process['id']}/complete").status_code == 409

    def test_cancel_requires_notes(self, client, main_process):
        res = client.post(f"{MAIN}/{main_process['id']}/cancel", json={})
        assert res.status_code == 422
        assert "notes" in res.get_json()["details"]

    def test_cancel_cascades_to_open_individuals(self, client, catalog, main_process,
                                                 individual_process):
        other = create_person(client, given_names="Ana")
        done = create_individual_process(client, main_process["id"], other["id"])
        add_status(client, done["id"], catalog["completed"])
        add_status(client, individual_process["id"], catalog["pending_documents"])

        res = client.post(f"{MAIN}/{main_process['id']}/cancel",
                          json={"notes": "Client withdrew", "cancel_individuals": True})
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "cancelled"
        assert data["cascade"]["cancelled"] == [individual_process["id"]]

        active = client.get(f"{IND}/{individual_process['id']}/status-history/active").get_json()
        assert active["case_status"]["code"] == "cancelled"
        active = client.get(f"{IND}/{done['id']}/status-history/active").get_json()
        assert active["case_status"]["code"] == "completed"

    def test_reopen(self, client, main_process):
        pid = main_process["id"]
        assert client.post(f"{MAIN}/{pid}/reopen").status_code == 409
        client.post(f"{MAIN}/{pid}/cancel", json={"notes": "on hold"})
        res = client.post(f"{MAIN}/{pid}/reopen")
        assert res.status_code == 200
        assert res.get_json()["status"] == "in_progress"


# ═════════════════════════════════════════════════════════════════════════════
# Calculated status
# ═════════════════════════════════════════════════════════════════════════════


class TestCalculatedStatus:
    def test_single_status(self, client, catalog, main_process, individual_process):
        add_status(client, individual_process["id"], catalog["pending_documents"])
        calc = client.get(f"{MAIN}/{main_process['id']}").get_json()["calculated_status"]
        assert calc["total_processes"] == 1
        assert calc["has_multiple_statuses"] is False
        assert calc["display_text"] == "Aguardando Documentos"
        assert calc["display_text_en"] == "Pending Documents"

    def test_mixed_statuses(self, client, catalog, main_process, individual_process):
        p2 = create_individual_process(client, main_process["id"],
                                       create_person(client, given_names="B")["id"])
        p3 = create_individual_process(client, main_process["id"],
                                       create_person(client, given_names="C")["id"])
        add_status(client, individual_process["id"], catalog["pending_documents"])
        add_status(client, p2["id"], catalog["pending_documents"])
        add_status(client, p3["id"], catalog["completed"])

        calc = client.get(f"{MAIN}/{main_process['id']}").get_json()["calculated_status"]
        assert calc["has_multiple_statuses"] is True
        assert calc["breakdown"][0]["count"] == 2
        assert calc["display_text_en"] == "2 Pending Documents, 1 Completed (RNM)"

    def test_no_status_yet(self, client, main_process, individual_process):
        calc = client.get(f"{MAIN}/{main_process['id']}").get_json()["calculated_status"]
        assert calc["total_processes"] == 1
        assert calc["breakdown"] == []
        assert calc["display_text_en"] == "No status defined"


# ═════════════════════════════════════════════════════════════════════════════
# Individual process
# ═════════════════════════════════════════════════════════════════════════════


class TestIndividualProcess:
    def test_create_requires_main_and_person(self, client, main_process, person):
        assert client.post(IND, json={"person_id": person["id"]}).status_code == 422
        res = client.post(IND, json={"main_process_id": main_process["id"]})
        assert res.status_code == 422
        res = client.post(IND, json={"main_process_id": main_process["id"], "person_id": 9999})
        assert res.status_code == 422

    def test_create_with_initial_status(self, client, catalog, main_process, person):
        data = create_individual_process(client, main_process["id"], person["id"],
                                         initial_case_status_id=catalog["pending_documents"],
                                         initial_status_date="2025-01-10",
                                         funcao="Engineer")
        assert data["funcao"] == "Engineer"
        assert data["current_status"]["case_status"]["code"] == "pending_documents"
        assert data["date_process"] == "2025-01-10"

    def test_registry_fields_free_without_status(self, client, individual_process):
        res = client.patch(f"{IND}/{individual_process['id']}", json={"protocol_number": "P-1"})
        assert res.status_code == 200
        assert res.get_json()["protocol_number"] == "P-1"

    def test_registry_fields_gated_by_status(self, client, catalog, individual_process):
        pid = individual_process["id"]
        add_status(client, pid, catalog["pending_documents"])

        res = client.patch(f"{IND}/{pid}", json={"protocol_number": "P-1"})
        assert res.status_code == 422
        assert "protocol_number" in res.get_json()["details"]

        res = client.patch(f"{IND}/{pid}", json={"deadline_date": "2025-12-31", "notes": "free text"})
        assert res.status_code == 200
        assert res.get_json()["deadline_date"] == "2025-12-31"
        assert res.get_json()["notes"] == "free text"

    def test_fillable_fields_endpoint(self, client, catalog, individual_process):
        pid = individual_process["id"]
        everything = client.get(f"{IND}/{pid}/fillable-fields").get_json()
        assert everything["case_status"] is None
        assert everything["total"] == 15

        add_status(client, pid, catalog["submitted_to_government"])
        data = client.get(f"{IND}/{pid}/fillable-fields").get_json()
        assert data["case_status"]["code"] == "submitted_to_government"
        assert [f["field_name"] for f in data["items"]] == ["protocol_number"]

    def test_expected_version_mismatch(self, client, individual_process):
        pid = individual_process["id"]
        res = client.patch(f"{IND}/{pid}", json={"notes": "a", "expected_version": 99})
        assert res.status_code == 409

    def test_expected_version_must_be_integer(self, client, individual_process):
        pid = individual_process["id"]
        res = client.patch(f"{IND}/{pid}", json={"notes": "a",
                                                 "expected_version": str(individual_process["version"])})
        assert res.status_code == 422
        assert res.get_json()["details"] == {"expected_version": "must be an integer"}

    def test_unchanged_locked_field_is_accepted(self, client, catalog, individual_process):
        pid = individual_process["id"]
        add_status(client, pid, catalog["submitted_to_government"])

        res = client.put(f"{IND}/{pid}", json={"person_id": individual_process["person_id"],
                                               "notes": "full form resubmitted"})
        assert res.status_code == 200
        assert res.get_json()["notes"] == "full form resubmitted"

        other = create_person(client, given_names="Other")
        res = client.put(f"{IND}/{pid}", json={"person_id": other["id"]})
        assert res.status_code == 422
        assert "person_id" in res.get_json()["details"]

    def test_list_by_case_status(self, client, catalog, main_process, individual_process):
        other = create_individual_process(client, main_process["id"],
                                          create_person(client, given_names="Z")["id"])
        add_status(client, other["id"], catalog["pending_documents"])
        res = client.get(f"{IND}?case_status_id={catalog['pending_documents']}")
        assert [p["id"] for p in res.get_json()["items"]] == [other["id"]]
        listed = client.get(f"{MAIN}/{main_process['id']}/individual-processes").get_json()
        assert listed["total"] == 2

    def test_delete_removes_history(self, client, catalog, individual_process):
        pid = individual_process["id"]
        add_status(client, pid, catalog["pending_documents"])
        assert client.delete(f"{IND}/{pid}").status_code == 204
        assert client.get(f"{IND}/{pid}").status_code == 404
