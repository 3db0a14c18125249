from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from apps.helpdesk.core.errors import NotFoundError, ValidationError
from apps.helpdesk.dependencies import services as service_deps
from apps.helpdesk.dependencies.auth import get_current_actor
from apps.helpdesk.identity.models import Actor, Department, Role
from apps.helpdesk.main import create_app
from apps.helpdesk.users.models import User

ADMIN = Actor(id=1, role="admin")
MANAGER = Actor(id=2, role="manager", department_id=3)
WORKER = Actor(id=4, role="worker", department_id=3)


def _make_user(*, user_id: int = 4, is_active: bool = True) -> User:
    now = datetime.now(timezone.utc)
    return User(
        id=user_id,
        email="worker@example.com",
        first_name="Wendy",
        last_name="Worker",
        role_id=3,
        role="worker",
        department_id=3,
        department="Facilities",
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def user_client():
    app = create_app()
    service = AsyncMock()
    state = {"actor": ADMIN}

    async def override_service():
        return service

    app.dependency_overrides[service_deps.get_user_service] = override_service
    app.dependency_overrides[get_current_actor] = lambda: state["actor"]

    client = TestClient(app)
    try:
        yield client, service, state
    finally:
        app.dependency_overrides.clear()


def test_create_user_returns_created_without_password(user_client):
    client, service, _ = user_client
    service.create = AsyncMock(return_value=_make_user())

    response = client.post(
        "/users",
        json={
            "email": "worker@example.com",
            "password": "Secur3Pass",
            "first_name": "Wendy",
            "last_name": "Worker",
            "role_id": 3,
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "worker"
    assert "password" not in body and "password_hash" not in body
    assert service.create.await_args.args[0]["department_id"] is None


def test_duplicate_email_maps_to_bad_request(user_client):
    client, service, _ = user_client
    service.create = AsyncMock(side_effect=ValidationError("A user with this email already exists"))

    response = client.post("/users", json={"email": "worker@example.com"})

    assert response.status_code == 400
    assert response.json() == {"detail": "A user with this email already exists"}


def test_update_forwards_only_supplied_fields(user_client):
    client, service, _ = user_client
    service.update = AsyncMock(return_value=_make_user())

    response = client.put("/users/4", json={"first_name": "Wendy"})

    assert response.status_code == 200
    service.update.assert_awaited_with(4, {"first_name": "Wendy"})


def test_delete_toggles_with_acting_admin(user_client):
    client, service, _ = user_client
    service.toggle_active = AsyncMock(return_value=_make_user(is_active=False))

    response = client.delete("/users/4")

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    service.toggle_active.assert_awaited_with(4, ADMIN.id)


def test_last_admin_guard_surfaces_as_bad_request(user_client):
    client, service, _ = user_client
    service.toggle_active = AsyncMock(side_effect=ValidationError("Cannot deactivate the last active admin account"))

    response = client.delete("/users/9")

    assert response.status_code == 400


def test_unknown_user_is_not_found(user_client):
    client, service, _ = user_client
    service.get_by_id = AsyncMock(side_effect=NotFoundError("User not found"))

    response = client.get("/users/99")

    assert response.status_code == 404


@pytest.mark.parametrize(
    ("actor", "path", "expected"),
    [
        (MANAGER, "/users", 200),
        (WORKER, "/users", 403),
        (MANAGER, "/users/roles", 403),
        (ADMIN, "/users/roles", 200),
        (ADMIN, "/users/departments", 200),
    ],
)
def test_role_gates_on_user_endpoints(user_client, actor, path, expected):
    client, service, state = user_client
    state["actor"] = actor
    service.get_all = AsyncMock(return_value=[_make_user()])
    service.get_roles = AsyncMock(return_value=[Role(id=1, name="admin")])
    service.get_departments = AsyncMock(return_value=[Department(id=3, name="Facilities")])

    response = client.get(path)

    assert response.status_code == expected


def test_workers_cannot_create_users(user_client):
    client, service, state = user_client
    state["actor"] = WORKER
    service.create = AsyncMock()

    response = client.post("/users", json={})

    assert response.status_code == 403
    service.create.assert_not_awaited()
