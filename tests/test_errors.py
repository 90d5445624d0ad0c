from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

import routers.auth
from database import operations
from main import app
from services import users as user_service


async def _available(email, exclude_user_id=None):
    return None


def test_store_failure_becomes_generic_500(client, make_user, monkeypatch):
    _, headers = make_user()

    async def failing_get_requests(**kwargs):
        raise PyMongoError("connection reset by mongod at 10.0.0.7")

    monkeypatch.setattr(operations, "get_requests", failing_get_requests)

    response = client.get("/requests", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to fetch requests"}
    assert "10.0.0.7" not in response.text


def test_guard_failure_is_caught_by_global_handler(client, make_user, monkeypatch):
    _, headers = make_user()

    async def failing_get_user_by_id(user_id, include_password=False):
        raise RuntimeError("users collection unavailable")

    monkeypatch.setattr(routers.auth, "get_user_by_id", failing_get_user_by_id)

    with TestClient(app, raise_server_exceptions=False) as raw_client:
        response = raw_client.get("/auth/me", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "An unexpected error occurred"}
    assert "unavailable" not in response.text


def test_register_race_on_unique_index_is_a_conflict(client, make_user, monkeypatch):
    make_user(email="taken@x.com")
    # Let the pre-check pass so the insert hits the unique email index
    monkeypatch.setattr(user_service, "_ensure_email_available", _available)

    response = client.post(
        "/auth/register",
        json={"name": "Second", "email": "Taken@X.com", "password": "secret1"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Email already in use"}


def test_update_race_on_unique_index_is_a_conflict(client, make_user, make_admin, monkeypatch):
    make_user(email="taken@x.com")
    other, _ = make_user(name="Bola", email="bola@x.com")
    _, admin = make_admin()
    monkeypatch.setattr(user_service, "_ensure_email_available", _available)

    response = client.put(f"/users/{other['id']}", headers=admin, json={"email": "taken@x.com"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Email already in use"}
    unchanged = client.get(f"/users/{other['id']}", headers=admin).json()["user"]
    assert unchanged["email"] == "bola@x.com"
