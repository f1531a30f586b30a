# File: tests/conftest.py

"""
Shared fixtures.

Every test gets its own in-memory SQLite database. API tests go through
``client``; store and reconciler tests work on ``uow`` directly.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from apied_piper.core.config import Settings
from apied_piper.db.init_db import init_db
from apied_piper.db.session import Database
from apied_piper.main import create_application
from apied_piper.models.task import UNASSIGNED_NAME, Task
from apied_piper.models.user import User
from apied_piper.services.unit_of_work import UnitOfWork


def future_deadline(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


@pytest.fixture
def database():
    db = Database("sqlite://")
    init_db(db)
    yield db
    db.close()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", log_level="WARNING")


@pytest.fixture
def client(settings, database):
    app = create_application(settings, database=database)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def uow(database):
    with database.session_scope() as session:
        yield UnitOfWork(session)


@pytest.fixture
def add_user(uow):
    """Insert a user as-is, without reconciliation."""

    def _add(name="Alice", email=None, pending_tasks=()):
        user = User(
            name=name,
            email=email or f"{name.lower()}@example.com",
            pending_tasks=list(pending_tasks),
        )
        return uow.users.save(user)

    return _add


@pytest.fixture
def add_task(uow):
    """Insert a task as-is, without reconciliation."""

    def _add(name="Task", assigned_user=None, completed=False):
        task = Task(
            name=name,
            description="",
            deadline=datetime.now(timezone.utc) + timedelta(days=3),
            completed=completed,
            assigned_user=assigned_user.id if assigned_user else "",
            assigned_user_name=assigned_user.name if assigned_user else UNASSIGNED_NAME,
        )
        return uow.tasks.save(task)

    return _add


@pytest.fixture
def create_user(client):
    def _create(name="Alice", email=None, pending_tasks=None):
        body = {"name": name, "email": email or f"{name.lower()}@example.com"}
        if pending_tasks is not None:
            body["pendingTasks"] = pending_tasks
        resp = client.post("/api/users", json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create


@pytest.fixture
def create_task(client):
    def _create(name="Write report", assigned_user="", completed=False, deadline=None):
        resp = client.post(
            "/api/tasks",
            json={
                "name": name,
                "description": "",
                "deadline": deadline or future_deadline(),
                "completed": completed,
                "assignedUser": assigned_user,
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create
