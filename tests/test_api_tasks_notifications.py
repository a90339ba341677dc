"""
Tests - Tasks and notifications.

Covers:
    - task CRUD with enum validation, overdue and "mine" views
    - complete / reassign / extend-deadline, bulk status
    - assignment notifications, status-change broadcasts
    - notification read state per recipient (X-Actor)
"""

from datetime import date, timedelta

from conftest import add_status

TASKS = "/api/v1/tasks"
NOTIFS = "/api/v1/notifications"


def _task(client, **kw):
    payload = {"title": "Collect birth certificate"}
    payload.update(kw)
    res = client.post(TASKS, json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# Tasks
# ═════════════════════════════════════════════════════════════════════════════


class TestTasks:
    def test_create_defaults(self, client, individual_process):
        task = _task(client, individual_process_id=individual_process["id"])
        assert task["status"] == "todo"
        assert task["priority"] == "medium"
        assert task["created_by"] == "system"
        assert task["individual_process_id"] == individual_process["id"]

    def test_create_validation(self, client):
        assert client.post(TASKS, json={"title": "  "}).status_code == 422
        assert client.post(TASKS, json={"title": "x", "priority": "asap"}).status_code == 422
        assert client.post(TASKS, json={"title": "x", "due_date": "soon"}).status_code == 422
        assert client.post(TASKS, json={"title": "x", "main_process_id": 9999}).status_code == 422

    def test_list_filters(self, client):
        _task(client, priority="urgent")
        _task(client, title="Other")
        res = client.get(f"{TASKS}?priority=urgent")
        assert res.get_json()["total"] == 1
        assert client.get(f"{TASKS}?main_process_id=x").status_code == 422

    def test_overdue(self, client):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        late = _task(client, due_date=yesterday)
        _task(client, title="Done", due_date=yesterday, status="completed")
        _task(client, title="Later", due_date=(date.today() + timedelta(days=3)).isoformat())

        items = client.get(f"{TASKS}/overdue").get_json()["items"]
        assert [t["id"] for t in items] == [late["id"]]
        assert items[0]["is_overdue"] is True

    def test_complete(self, client):
        task = _task(client)
        res = client.post(f"{TASKS}/{task['id']}/complete", headers={"X-Actor": "ana"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "completed"
        assert data["completed_by"] == "ana"
        assert data["completed_at"] is not None
        assert client.post(f"{TASKS}/{task['id']}/complete").status_code == 409

    def test_reopen_by_update_clears_completion(self, client):
        task = _task(client, status="completed")
        res = client.put(f"{TASKS}/{task['id']}", json={"status": "in_progress"})
        assert res.get_json()["completed_at"] is None

    def test_extend_deadline(self, client):
        task = _task(client)
        past = (date.today() - timedelta(days=2)).isoformat()
        assert client.post(f"{TASKS}/{task['id']}/extend-deadline", json={"due_date": past}).status_code == 422
        assert client.post(f"{TASKS}/{task['id']}/extend-deadline", json={}).status_code == 422
        future = (date.today() + timedelta(days=10)).isoformat()
        res = client.post(f"{TASKS}/{task['id']}/extend-deadline", json={"due_date": future})
        assert res.get_json()["due_date"] == future

    def test_mine(self, client):
        _task(client, assigned_to="ana")
        _task(client, title="Closed", assigned_to="ana", status="cancelled")
        _task(client, title="Bob's", assigned_to="bob")
        mine = client.get(f"{TASKS}/mine", headers={"X-Actor": "ana"}).get_json()
        assert mine["total"] == 1
        everything = client.get(f"{TASKS}/mine?include_closed=true", headers={"X-Actor": "ana"}).get_json()
        assert everything["total"] == 2

    def test_bulk_status(self, client):
        a = _task(client)
        b = _task(client, title="B")
        res = client.post(f"{TASKS}/bulk-status",
                          json={"task_ids": [a["id"], b["id"], 9999], "status": "completed"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["updated"] == sorted([a["id"], b["id"]])
        assert data["not_found"] == [9999]
        assert client.get(f"{TASKS}/{a['id']}").get_json()["status"] == "completed"
        assert client.post(f"{TASKS}/bulk-status", json={"task_ids": [a["id"]], "status": "x"}).status_code == 422

    def test_delete(self, client):
        task = _task(client)
        assert client.delete(f"{TASKS}/{task['id']}").status_code == 204
        assert client.get(f"{TASKS}/{task['id']}").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# Notifications
# ═════════════════════════════════════════════════════════════════════════════


class TestNotifications:
    def test_assignment_notifies_assignee(self, client):
        task = _task(client, assigned_to="ana")
        res = client.get(NOTIFS, headers={"X-Actor": "ana"})
        data = res.get_json()
        assert data["total"] == 1
        assert data["unread_count"] == 1
        assert data["items"][0]["entity_id"] == task["id"]
        assert client.get(NOTIFS, headers={"X-Actor": "bob"}).get_json()["total"] == 0

    def test_reassign_notifies_new_assignee(self, client):
        task = _task(client, assigned_to="ana")
        assert client.post(f"{TASKS}/{task['id']}/reassign", json={}).status_code == 422
        client.post(f"{TASKS}/{task['id']}/reassign", json={"assigned_to": "bob"})
        assert client.get(f"{NOTIFS}/unread-count", headers={"X-Actor": "bob"}).get_json() == {"unread_count": 1}

    def test_status_change_is_broadcast(self, client, catalog, individual_process):
        add_status(client, individual_process["id"], catalog["pending_documents"])
        data = client.get(NOTIFS, headers={"X-Actor": "anyone"}).get_json()
        assert data["total"] == 1
        assert data["items"][0]["type"] == "status_change"

    def test_mark_read_and_delete(self, client):
        _task(client, assigned_to="ana")
        _task(client, title="Second", assigned_to="ana")
        items = client.get(NOTIFS, headers={"X-Actor": "ana"}).get_json()["items"]

        res = client.patch(f"{NOTIFS}/{items[0]['id']}/read")
        assert res.status_code == 200
        assert res.get_json()["is_read"] is True
        unread = client.get(f"{NOTIFS}?unread_only=true", headers={"X-Actor": "ana"}).get_json()
        assert unread["total"] == 1

        res = client.post(f"{NOTIFS}/mark-all-read", headers={"X-Actor": "ana"})
        assert res.get_json() == {"marked_read": 1}

        assert client.delete(f"{NOTIFS}/{items[1]['id']}").status_code == 204
        assert client.delete(f"{NOTIFS}/{items[1]['id']}").status_code == 404
