"""Fixtures running the real application against a SQLite file database."""

import pytest
from fastapi.testclient import TestClient

from src.notesync.main import create_app


@pytest.fixture
def client(test_settings):
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user; returns (token, user) from the API."""

    def _register(name: str, password: str = "secret123"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": f"{name.lower()}@example.com", "password": password},
        )
        assert response.status_code == 201, response.text
        body = response.json()
        return body["token"], body["user"]

    return _register


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth():
    return bearer
