"""Shared fixtures: an isolated app per test plus signed-up students."""

from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from campus_market_api.app.core.config import settings
from campus_market_api.app.main import create_app


API = "/api/v1"


# ============================================================================
# Application
# ============================================================================

@pytest.fixture
def app(tmp_path, monkeypatch):
    """Build an app whose database and media directory live in ``tmp_path``."""
    monkeypatch.setattr(settings, "database_url", str(tmp_path / "market.db"))
    monkeypatch.setattr(settings, "media_dir", str(tmp_path / "media"))
    monkeypatch.setattr(settings, "public_base_url", "")
    monkeypatch.setattr(settings, "request_sweep_minutes", 0)
    return create_app()


@pytest.fixture
def client(app):
    """Test client; entering the context runs startup, which applies migrations."""
    with TestClient(app) as test_client:
        yield test_client


# ============================================================================
# Users
# ============================================================================

def register(client: TestClient, email: str, name: str, password: str = "campus123") -> Dict[str, Any]:
    response = client.post(
        f"{API}/auth/register",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return {
        "id": body["profile"]["id"],
        "name": name,
        "email": email,
        "token": body["access_token"],
        "headers": {"Authorization": f"Bearer {body['access_token']}"},
    }


@pytest.fixture
def alice(client) -> Dict[str, Any]:
    return register(client, "alice@iitb.ac.in", "Alice Rao")


@pytest.fixture
def bob(client) -> Dict[str, Any]:
    return register(client, "bob@stanford.edu", "Bob Singh")


@pytest.fixture
def carol(client) -> Dict[str, Any]:
    return register(client, "carol@nitt.nit.ac.in", "Carol Das")


# ============================================================================
# Marketplace data
# ============================================================================

@pytest.fixture
def listing_payload() -> Dict[str, Any]:
    return {
        "title": "Engineering Physics Textbook",
        "description": "HC Verma vol 1, a few pencil marks",
        "price": 350,
        "category": "books",
        "location": "library",
        "images": ["/media/listings/x/1.jpg"],
    }


@pytest.fixture
def request_payload() -> Dict[str, Any]:
    return {
        "title": "Used cycle",
        "description": "Any working cycle for the campus commute",
        "max_budget": 2500,
        "category": "cycles",
        "preferred_location": "main-gate",
    }


@pytest.fixture
def listing(client, alice, listing_payload) -> Dict[str, Any]:
    """A listing sold by Alice."""
    response = client.post(f"{API}/listings/", json=listing_payload, headers=alice["headers"])
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def match(client, bob, listing) -> Dict[str, Any]:
    """Bob is interested in Alice's listing."""
    response = client.post(f"{API}/listings/{listing['id']}/interest", headers=bob["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def notifications_for(client: TestClient, user: Dict[str, Any]) -> Dict[str, Any]:
    response = client.get(f"{API}/notifications/", headers=user["headers"])
    assert response.status_code == 200, response.text
    return response.json()
