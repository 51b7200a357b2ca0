"""Registration, login and profile endpoints."""

import pytest

from campus_market_api.app.services.profile_service import (
    compute_badge,
    extract_college_name,
    is_college_email,
)
from tests.conftest import API, register


# ============================================================================
# College email rules
# ============================================================================

class TestCollegeEmail:
    """Tests for the email domain check used at sign-up."""

    @pytest.mark.parametrize(
        "email",
        ["asha@iitb.ac.in", "bob@stanford.edu", "x@cs.mit.edu", "y@nitt.nit.ac.in", "Z@IITB.AC.IN"],
    )
    def test_accepts_college_domains(self, email):
        assert is_college_email(email)

    @pytest.mark.parametrize("email", ["asha@gmail.com", "bob@notedu", "no-at-sign.edu", "x@fakeac.in"])
    def test_rejects_other_domains(self, email):
        assert not is_college_email(email)

    def test_custom_domain_list(self):
        assert is_college_email("a@uni.example", ["uni.example"])
        assert not is_college_email("a@stanford.edu", ["uni.example"])

    def test_college_name_from_domain(self):
        assert extract_college_name("asha@iitb.ac.in") == "IITB"
        assert extract_college_name("broken") == "University"


class TestBadge:
    def test_thresholds(self):
        assert compute_badge(4.6, 30) == "top-seller"
        assert compute_badge(4.4, 30) == "trusted"
        assert compute_badge(4.0, 10) == "trusted"
        assert compute_badge(5.0, 9) == "new"
        assert compute_badge(3.9, 50) == "new"


# ============================================================================
# Registration
# ============================================================================

class TestRegister:
    def test_register_returns_token_and_profile(self, client):
        response = client.post(
            f"{API}/auth/register",
            json={"email": "  Asha@IITB.ac.in ", "password": "campus123", "name": " Asha Verma "},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        profile = body["profile"]
        assert profile["email"] == "asha@iitb.ac.in"
        assert profile["name"] == "Asha Verma"
        assert profile["college"] == "IITB"
        assert profile["college_domain"] == "iitb.ac.in"
        assert profile["trust_score"] == 0
        assert profile["total_ratings"] == 0
        assert profile["total_exchanges"] == 0
        assert profile["badge"] == "new"

    def test_non_college_email_rejected(self, client):
        response = client.post(
            f"{API}/auth/register",
            json={"email": "asha@gmail.com", "password": "campus123", "name": "Asha"},
        )
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Please use your college email address")

    def test_invalid_email_rejected(self, client):
        response = client.post(
            f"{API}/auth/register",
            json={"email": "asha", "password": "campus123", "name": "Asha"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Please enter a valid email address"

    def test_short_password_rejected(self, client):
        response = client.post(
            f"{API}/auth/register",
            json={"email": "asha@iitb.ac.in", "password": "12345", "name": "Asha"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Password must be at least 6 characters"

    def test_short_name_rejected(self, client):
        response = client.post(
            f"{API}/auth/register",
            json={"email": "asha@iitb.ac.in", "password": "campus123", "name": " A "},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Please enter your full name"

    def test_duplicate_email_case_insensitive(self, client, alice):
        response = client.post(
            f"{API}/auth/register",
            json={"email": "ALICE@iitb.ac.in", "password": "campus123", "name": "Alice Again"},
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "An account with this email already exists"


# ============================================================================
# Login
# ============================================================================

class TestLogin:
    def test_login_success(self, client, alice):
        response = client.post(
            f"{API}/auth/login", json={"email": "alice@iitb.ac.in", "password": "campus123"}
        )
        assert response.status_code == 200
        assert response.json()["profile"]["id"] == alice["id"]

    def test_unknown_email(self, client):
        response = client.post(
            f"{API}/auth/login", json={"email": "nobody@iitb.ac.in", "password": "campus123"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "No account found with this email"

    def test_wrong_password(self, client, alice):
        response = client.post(
            f"{API}/auth/login", json={"email": "alice@iitb.ac.in", "password": "wrong-pass"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect password"


# ============================================================================
# Profiles
# ============================================================================

class TestProfiles:
    def test_me_requires_token(self, client):
        assert client.get(f"{API}/profiles/me").status_code == 401

    def test_invalid_token(self, client):
        response = client.get(f"{API}/profiles/me", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401

    def test_read_and_update_me(self, client, alice):
        response = client.get(f"{API}/profiles/me", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["name"] == "Alice Rao"

        response = client.put(
            f"{API}/profiles/me",
            json={"name": "Alice R. Rao", "avatar_url": "/media/avatars/a.png"},
            headers=alice["headers"],
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Alice R. Rao"
        assert response.json()["avatar_url"] == "/media/avatars/a.png"

    def test_get_unknown_profile(self, client, alice):
        response = client.get(f"{API}/profiles/does-not-exist", headers=alice["headers"])
        assert response.status_code == 404

    def test_profiles_by_ids(self, client, alice, bob):
        response = client.get(
            f"{API}/profiles/by-ids",
            params={"ids": [alice["id"], bob["id"], "missing"]},
            headers=alice["headers"],
        )
        assert response.status_code == 200
        body = response.json()
        assert set(body) == {alice["id"], bob["id"]}
        assert body[bob["id"]]["college"] == "STANFORD"

    def test_list_profiles(self, client, alice, bob):
        response = client.get(f"{API}/profiles/", headers=alice["headers"])
        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [alice["id"], bob["id"]]

    def test_second_registration_gets_own_token(self, client, alice):
        other = register(client, "dev@iitd.ac.in", "Dev Kumar")
        me = client.get(f"{API}/profiles/me", headers=other["headers"]).json()
        assert me["id"] == other["id"] != alice["id"]
