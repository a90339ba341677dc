"""
Tests - Activity log, dashboard metrics and RNM calendar.
"""

from datetime import date, timedelta

from conftest import add_status, create_individual_process, create_person

LOGS = "/api/v1/activity-logs"
DASH = "/api/v1/dashboard"


# ═════════════════════════════════════════════════════════════════════════════
# Activity log
# ═════════════════════════════════════════════════════════════════════════════


class TestActivityLog:
    def test_mutations_are_logged_with_actor(self, client):
        res = client.post("/api/v1/people", json={"given_names": "Lia"}, headers={"X-Actor": "ana"})
        person_id = res.get_json()["id"]

        data = client.get(f"{LOGS}?entity_type=person").get_json()
        assert data["total"] == 1
        entry = data["items"][0]
        assert entry["action"] == "created"
        assert entry["actor"] == "ana"
        assert entry["entity_id"] == person_id

        assert client.get(f"{LOGS}/{entry['id']}").get_json()["id"] == entry["id"]

    def test_failed_request_leaves_no_log(self, client):
        client.post("/api/v1/people", json={"given_names": "Lia", "cpf": "123"})
        assert client.get(f"{LOGS}?entity_type=person").get_json()["total"] == 0

    def test_entity_history(self, client, catalog, individual_process):
        pid = individual_process["id"]
        add_status(client, pid, catalog["pending_documents"])
        items = client.get(f"{LOGS}/entity/individual_process/{pid}").get_json()["items"]
        assert [i["action"] for i in items] == ["status_added", "created"]
        assert items[0]["details"]["case_status"] == "pending_documents"

    def test_filters(self, client, person):
        start = (date.today() - timedelta(days=1)).isoformat()
        end = (date.today() + timedelta(days=1)).isoformat()
        assert client.get(f"{LOGS}?actor=system&start_date={start}&end_date={end}").get_json()["total"] >= 1
        assert client.get(f"{LOGS}?actor=nobody").get_json()["total"] == 0
        assert client.get(f"{LOGS}?entity_id=abc").status_code == 422
        assert client.get(f"{LOGS}?start_date=yesterday").status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Dashboard
# ═════════════════════════════════════════════════════════════════════════════


class TestDashboard:
    def test_process_stats_and_completion_rate(self, client, catalog, main_process, individual_process):
        other = create_individual_process(client, main_process["id"],
                                          create_person(client, given_names="B")["id"])
        third = create_individual_process(client, main_process["id"],
                                          create_person(client, given_names="C")["id"])
        add_status(client, individual_process["id"], catalog["pending_documents"])
        add_status(client, other["id"], catalog["completed"])

        stats = client.get(f"{DASH}/process-stats").get_json()
        ind = stats["individual_processes"]
        assert ind["total"] == 3
        assert ind["without_status"] == 1
        assert ind["by_category"]["preparation"] == 1
        assert ind["by_category"]["completed"] == 1
        assert stats["main_processes"]["by_status"]["draft"] == 1
        assert third["id"]

        rate = client.get(f"{DASH}/completion-rate").get_json()
        assert rate == {"total": 3, "completed": 1, "completion_rate": 33.3}

    def test_completion_rate_empty(self, client):
        assert client.get(f"{DASH}/completion-rate").get_json()["completion_rate"] == 0.0

    def test_upcoming_deadlines(self, client, individual_process):
        soon = (date.today() + timedelta(days=5)).isoformat()
        far = (date.today() + timedelta(days=90)).isoformat()
        client.patch(f"/api/v1/individual-processes/{individual_process['id']}",
                     json={"deadline_date": soon, "rnm_deadline": far})

        data = client.get(f"{DASH}/upcoming-deadlines?days=30").get_json()
        assert data["total"] == 1
        assert data["items"][0]["type"] == "deadline_date"
        assert data["items"][0]["days_left"] == 5
        assert client.get(f"{DASH}/upcoming-deadlines?days=120").get_json()["total"] == 2
        assert client.get(f"{DASH}/upcoming-deadlines?days=abc").status_code == 422
        assert client.get(f"{DASH}/upcoming-deadlines?days=400").status_code == 422

    def test_overdue_tasks(self, client):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        client.post("/api/v1/tasks", json={"title": "Late", "due_date": yesterday})
        assert client.get(f"{DASH}/overdue-tasks").get_json()["total"] == 1

    def test_recent_activity_limit(self, client):
        for name in ("A", "B", "C"):
            create_person(client, given_names=name)
        data = client.get(f"{DASH}/recent-activity?limit=2").get_json()
        assert data["total"] == 2
        assert client.get(f"{DASH}/recent-activity?limit=x").status_code == 422


class TestRnmCalendar:
    def test_window(self, client, catalog, individual_process):
        add_status(client, individual_process["id"], catalog["completed"], filled_fields_data={
            "rnm_number": "V1", "appointment_date_time": "2025-06-10T09:00:00",
        })
        res = client.get("/api/v1/rnm-calendar?start=2025-06-01&end=2025-06-30")
        data = res.get_json()
        assert [e["individual_process_id"] for e in data["events"]] == [individual_process["id"]]
        assert data["events"][0]["current_status"]["code"] == "completed"

        empty = client.get("/api/v1/rnm-calendar?start=2025-07-01&end=2025-07-31").get_json()
        assert empty["events"] == []

    def test_bad_window(self, client):
        assert client.get("/api/v1/rnm-calendar?start=2025-06-30&end=2025-06-01").status_code == 422
        assert client.get("/api/v1/rnm-calendar?start=junk").status_code == 422
