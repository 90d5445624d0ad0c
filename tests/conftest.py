import asyncio
import os

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("JWT_SECRET_KEY", "tests-secret-key")

import database.db as db
from main import app


def run(coro):
    """Run a mock-database coroutine from synchronous test code."""
    return asyncio.run(coro)


@pytest.fixture
def mongo(monkeypatch):
    database = AsyncMongoMockClient()["waste_management_tests"]
    monkeypatch.setattr(db, "async_db", database)
    return database


@pytest.fixture
def client(mongo):
    # Entering the client runs the startup hook, which creates the indexes
    with TestClient(app) as test_client:
        yield test_client


def register(client, name, email, password="secret1"):
    response = client.post("/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()["user"]


def login(client, email, password="secret1"):
    response = client.post("/auth/login", data={"username": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def make_user(client):
    """Register a user and return (user, auth headers)."""
    def _make_user(name="Amaka", email="a@x.com", password="secret1"):
        user = register(client, name, email, password)
        return user, login(client, email, password)
    return _make_user


@pytest.fixture
def make_admin(client, mongo):
    def _make_admin(name="Facilities Desk", email="admin@x.com", password="secret1"):
        user = register(client, name, email, password)
        run(mongo.users.update_one({"email": email}, {"$set": {"role": "admin"}}))
        user["role"] = "admin"
        return user, login(client, email, password)
    return _make_admin


@pytest.fixture
def submit_request(client):
    def _submit_request(headers, service_type="General Waste Collection", location="Library", description="bin full"):
        response = client.post("/requests", headers=headers, json={
            "serviceType": service_type,
            "location": location,
            "description": description,
        })
        assert response.status_code == 201, response.text
        return response.json()["request"]
    return _submit_request
