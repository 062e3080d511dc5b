"""Test configuration and fixtures."""
from datetime import timedelta

import mongomock
import pytest

from domora import create_app
from domora.config import TestingConfig
from domora.extensions import db as _db
from domora.utils.dates import utcnow


@pytest.fixture
def app():
    """Create application for testing, backed by an in-memory Mongo."""
    app = create_app(TestingConfig, {"MONGO_CLIENT": mongomock.MongoClient()})
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Test client for making requests."""
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def register(client):
    """Register a user and return ``(user_id, auth_headers)``."""
    def _register(name, email=None, password="correct-horse"):
        res = client.post("/api/v1/auth/register", json={
            "name": name,
            "email": email or f"{name.lower()}@example.com",
            "password": password,
        })
        assert res.status_code == 201, res.get_json()
        body = res.get_json()
        return body["user"]["_id"], {"Authorization": f"Bearer {body['access_token']}"}
    return _register


@pytest.fixture
def household(client, register):
    """A household owned by Alice with Bob as a second member."""
    alice_id, alice = register("Alice")
    bob_id, bob = register("Bob")

    res = client.post("/api/v1/households", json={"name": "Flat 3B"}, headers=alice)
    assert res.status_code == 201
    created = res.get_json()

    res = client.post("/api/v1/households/join", json={"invite_code": created["invite_code"]}, headers=bob)
    assert res.status_code == 200

    return {
        "id": created["id"],
        "invite_code": created["invite_code"],
        "alice_id": alice_id,
        "alice": alice,
        "bob_id": bob_id,
        "bob": bob,
    }


@pytest.fixture
def yesterday():
    return (utcnow().date() - timedelta(days=1)).isoformat()
