# File: tests/test_tasks_api.py

import json

import pytest
from fastapi.testclient import TestClient

from apied_piper.core.config import Settings
from apied_piper.main import create_application
from apied_piper.models.base import new_object_id
from apied_piper.services.reconciler import AssignmentReconciler

from conftest import future_deadline


def pending_of(client, user_id):
    return client.get(f"/api/users/{user_id}").json()["data"]["pendingTasks"]


def put_task(client, task, **changes):
    body = {
        "name": task["name"],
        "description": task["description"],
        "deadline": task["deadline"],
        "completed": task["completed"],
        "assignedUser": task["assignedUser"],
    }
    body.update(changes)
    resp = client.put(f"/api/tasks/{task['_id']}", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


def test_create_unassigned_task(client):
    resp = client.post(
        "/api/tasks",
        json={"name": "Write report", "deadline": future_deadline(), "assignedUser": "unassigned"},
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Task created"
    assert body["data"]["assignedUser"] == ""
    assert body["data"]["assignedUserName"] == "unassigned"
    assert body["data"]["completed"] is False
    assert body["data"]["description"] == ""


@pytest.mark.parametrize(
    "body",
    [
        {"name": "no deadline"},
        {"deadline": "2030-01-01T00:00:00Z"},
        {"name": "bad deadline", "deadline": "someday"},
        {"name": "   ", "deadline": "2030-01-01T00:00:00Z"},
    ],
)
def test_create_task_requires_name_and_deadline(client, body):
    resp = client.post("/api/tasks", json=body)

    assert resp.status_code == 400
    assert resp.json()["message"] == "Both name and deadline are required to create a task"


def test_create_task_with_bad_assignee(client):
    resp = client.post(
        "/api/tasks",
        json={"name": "x", "deadline": future_deadline(), "assignedUser": "bogus"},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid assignedUser id"

    resp = client.post(
        "/api/tasks",
        json={"name": "x", "deadline": future_deadline(), "assignedUser": new_object_id()},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Assigned user not found"


def test_create_assigned_task_joins_pending_list(client, create_user):
    user = create_user("Alice")

    resp = client.post(
        "/api/tasks",
        json={
            "name": "x",
            "deadline": future_deadline(),
            "assignedUser": user["_id"],
            "assignedUserName": "Somebody Else",
        },
    )

    task = resp.json()["data"]
    assert task["assignedUserName"] == "Alice"
    assert pending_of(client, user["_id"]) == [task["_id"]]


def test_create_completed_task_is_not_pending(client, create_user, create_task):
    user = create_user("Alice")

    create_task(assigned_user=user["_id"], completed=True)

    assert pending_of(client, user["_id"]) == []


def test_reassigning_task_moves_it_between_users(client, create_user, create_task):
    alice = create_user("Alice")
    bob = create_user("Bob")
    task = create_task(assigned_user=alice["_id"])

    updated = put_task(client, task, assignedUser=bob["_id"])

    assert updated["assignedUserName"] == "Bob"
    assert pending_of(client, alice["_id"]) == []
    assert pending_of(client, bob["_id"]) == [task["_id"]]


def test_completing_and_reopening_task(client, create_user, create_task):
    user = create_user("Alice")
    task = create_task(assigned_user=user["_id"])

    task = put_task(client, task, completed=True)
    assert pending_of(client, user["_id"]) == []

    put_task(client, task, completed=False)
    assert pending_of(client, user["_id"]) == [task["_id"]]


def test_unassigning_task_clears_pending_list(client, create_user, create_task):
    user = create_user("Alice")
    task = create_task(assigned_user=user["_id"])

    updated = put_task(client, task, assignedUser="")

    assert updated["assignedUserName"] == "unassigned"
    assert pending_of(client, user["_id"]) == []


def test_update_task_errors(client, create_task):
    resp = client.put("/api/tasks/xyz", json={"name": "x", "deadline": future_deadline()})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid task id"

    resp = client.put(f"/api/tasks/{new_object_id()}", json={"name": "x", "deadline": future_deadline()})
    assert resp.status_code == 404
    assert resp.json()["message"] == "Task not found"

    task = create_task()
    resp = client.put(f"/api/tasks/{task['_id']}", json={"name": "x"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Both name and deadline are required to update a task"


def test_delete_task_leaves_pending_list(client, create_user, create_task):
    user = create_user("Alice")
    task = create_task(assigned_user=user["_id"])
    other = create_task("other", assigned_user=user["_id"])

    resp = client.delete(f"/api/tasks/{task['_id']}")

    assert resp.status_code == 200
    assert resp.json() == {"message": "Task deleted", "data": None}
    assert pending_of(client, user["_id"]) == [other["_id"]]
    assert client.get(f"/api/tasks/{task['_id']}").status_code == 404
    assert client.delete(f"/api/tasks/{task['_id']}").status_code == 404


def test_list_tasks_filters_and_counts(client, create_user, create_task):
    user = create_user("Alice")
    t1 = create_task("one", assigned_user=user["_id"])
    t2 = create_task("two", completed=True)
    create_task("three")

    resp = client.get("/api/tasks", params={"where": json.dumps({"completed": True})})
    assert [t["_id"] for t in resp.json()["data"]] == [t2["_id"]]

    resp = client.get("/api/tasks", params={"where": json.dumps({"completed": "true"})})
    assert [t["_id"] for t in resp.json()["data"]] == [t2["_id"]]

    resp = client.get("/api/tasks", params={"where": json.dumps({"completed": 5})})
    assert resp.status_code == 400
    assert resp.json()["message"] == 'Expected a boolean for "completed" in "where"'

    resp = client.get(
        "/api/tasks",
        params={"where": json.dumps({"_id": {"$in": [t1["_id"], t2["_id"]]}})},
    )
    assert {t["_id"] for t in resp.json()["data"]} == {t1["_id"], t2["_id"]}

    resp = client.get(
        "/api/tasks",
        params={"where": json.dumps({"completed": False}), "count": "true"},
    )
    assert resp.json()["data"] == 2

    resp = client.get(f"/api/tasks/{t1['_id']}", params={"filter": json.dumps({"description": 0})})
    assert "description" not in resp.json()["data"]


def test_task_listing_default_limit(database):
    app = create_application(
        Settings(database_url="sqlite://", log_level="WARNING", default_task_limit=3),
        database=database,
    )
    with TestClient(app) as client:
        for i in range(4):
            resp = client.post("/api/tasks", json={"name": f"t{i}", "deadline": future_deadline()})
            assert resp.status_code == 201

        assert len(client.get("/api/tasks").json()["data"]) == 3
        assert len(client.get("/api/tasks", params={"limit": 10}).json()["data"]) == 4
        assert len(client.get("/api/tasks", params={"limit": 0}).json()["data"]) == 4
        assert client.get("/api/tasks", params={"count": "true"}).json()["data"] == 4


def test_failed_reconciliation_rolls_back_the_request(settings, database, monkeypatch):
    app = create_application(settings, database=database)
    with TestClient(app, raise_server_exceptions=False) as client:
        task = client.post(
            "/api/tasks", json={"name": "t", "deadline": future_deadline()}
        ).json()["data"]

        def boom(self, user):
            raise RuntimeError("store went away")

        monkeypatch.setattr(AssignmentReconciler, "propagate_user_name", boom)

        resp = client.post(
            "/api/users",
            json={"name": "Alice", "email": "a@x.com", "pendingTasks": [task["_id"]]},
        )

        assert resp.status_code == 500
        assert resp.json() == {"message": "Server error", "data": None}
        assert client.get("/api/users", params={"count": "true"}).json()["data"] == 0
        stored = client.get(f"/api/tasks/{task['_id']}").json()["data"]
        assert stored["assignedUser"] == ""
        assert stored["assignedUserName"] == "unassigned"


def test_end_to_end_assignment_flow(client):
    resp = client.post("/api/users", json={"name": "Alice", "email": "a@x.com", "pendingTasks": []})
    assert resp.status_code == 201
    alice = resp.json()["data"]
    assert alice["pendingTasks"] == []

    resp = client.post(
        "/api/tasks",
        json={"name": "Write report", "deadline": future_deadline(), "assignedUser": ""},
    )
    task = resp.json()["data"]
    assert task["assignedUserName"] == "unassigned"

    task = put_task(client, task, assignedUser=alice["_id"])
    assert task["assignedUserName"] == "Alice"
    assert task["_id"] in pending_of(client, alice["_id"])

    put_task(client, task, completed=True)
    assert task["_id"] not in pending_of(client, alice["_id"])
