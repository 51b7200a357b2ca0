"""Need requests: CRUD, offers against them and the expiry sweep."""

import asyncio
from datetime import datetime, timedelta

from campus_market_api.app.core.db import get_connection, utc_now
from campus_market_api.app.services.need_request_service import NeedRequestService, is_expiring_soon
from tests.conftest import API, notifications_for


def _set_expiry(request_id, delta):
    conn = get_connection()
    try:
        conn.execute(
            "UPDATE need_requests SET expires_at = ? WHERE id = ?",
            ((utc_now() + delta).isoformat(), request_id),
        )
        conn.commit()
    finally:
        conn.close()


class TestNeedRequests:
    def test_create_sets_open_status_and_ttl(self, client, alice, request_payload):
        response = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"])
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "open"
        assert body["requester_id"] == alice["id"]
        assert body["expires_soon"] is False
        ttl = datetime.fromisoformat(body["expires_at"]) - datetime.fromisoformat(body["created_at"])
        assert ttl == timedelta(days=7)

    def test_list_filters(self, client, alice, bob, request_payload):
        cycle = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        book = client.post(
            f"{API}/requests/",
            json=dict(
                request_payload,
                title="Calculus book",
                description="Thomas calculus, any edition",
                category="books",
                preferred_location="library",
            ),
            headers=bob["headers"],
        ).json()
        assert [r["id"] for r in client.get(f"{API}/requests/").json()] == [book["id"], cycle["id"]]
        assert [r["id"] for r in client.get(f"{API}/requests/", params={"location": "library"}).json()] == [book["id"]]
        assert [r["id"] for r in client.get(f"{API}/requests/", params={"q": "CYCLE"}).json()] == [cycle["id"]]
        assert [r["id"] for r in client.get(f"{API}/requests/mine", headers=bob["headers"]).json()] == [book["id"]]

    def test_only_owner_edits(self, client, alice, bob, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        url = f"{API}/requests/{created['id']}"
        assert client.patch(url, json={"max_budget": 10}, headers=bob["headers"]).status_code == 403
        response = client.patch(url, json={"max_budget": 3000, "status": "closed"}, headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["max_budget"] == 3000
        assert response.json()["status"] == "closed"
        assert client.get(f"{API}/requests/").json() == []
        assert client.delete(url, headers=bob["headers"]).status_code == 403
        assert client.delete(url, headers=alice["headers"]).status_code == 204
        assert client.get(url).status_code == 404

    def test_status_all_lists_every_request(self, client, alice, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        client.patch(f"{API}/requests/{created['id']}", json={"status": "closed"}, headers=alice["headers"])
        assert client.get(f"{API}/requests/").json() == []
        listed = client.get(f"{API}/requests/", params={"status": "all"}).json()
        assert [r["id"] for r in listed] == [created["id"]]

    def test_delete_refused_while_offer_in_progress(self, client, alice, bob, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        match = client.post(f"{API}/requests/{created['id']}/offer", headers=bob["headers"]).json()
        url = f"{API}/requests/{created['id']}"

        response = client.delete(url, headers=alice["headers"])
        assert response.status_code == 409
        assert client.get(f"{API}/matches/{match['id']}", headers=bob["headers"]).json()["request_id"] == created["id"]

        client.post(f"{API}/matches/{match['id']}/cancel", headers=bob["headers"])
        assert client.delete(url, headers=alice["headers"]).status_code == 204


class TestOffers:
    def test_offer_creates_match_and_notifies(self, client, alice, bob, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        response = client.post(f"{API}/requests/{created['id']}/offer", headers=bob["headers"])
        assert response.status_code == 201
        match = response.json()
        assert match["request_id"] == created["id"]
        assert match["listing_id"] is None
        assert match["seller_id"] == bob["id"]
        assert match["buyer_id"] == alice["id"]
        assert match["status"] == "pending"
        assert match["match_score"] == 100
        assert match["meeting_location"] == "main-gate"

        latest = notifications_for(client, alice)["items"][0]
        assert latest["type"] == "match"
        assert latest["title"] == "Someone has what you need!"
        assert latest["message"] == 'Bob Singh might have "Used cycle"'

    def test_duplicate_offer_rejected(self, client, alice, bob, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        client.post(f"{API}/requests/{created['id']}/offer", headers=bob["headers"])
        response = client.post(f"{API}/requests/{created['id']}/offer", headers=bob["headers"])
        assert response.status_code == 409
        assert response.json()["detail"] == "You have already offered to help with this request."

    def test_cannot_offer_on_own_or_closed_request(self, client, alice, bob, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        assert client.post(f"{API}/requests/{created['id']}/offer", headers=alice["headers"]).status_code == 400
        client.patch(f"{API}/requests/{created['id']}", json={"status": "closed"}, headers=alice["headers"])
        assert client.post(f"{API}/requests/{created['id']}/offer", headers=bob["headers"]).status_code == 409


class TestExpiry:
    def test_expiring_soon_flag(self):
        now = utc_now()
        soon = (now + timedelta(hours=3)).isoformat()
        assert is_expiring_soon(soon, "open", now)
        assert not is_expiring_soon(soon, "matched", now)
        assert not is_expiring_soon((now + timedelta(days=2)).isoformat(), "open", now)
        assert not is_expiring_soon((now - timedelta(hours=1)).isoformat(), "open", now)

    def test_close_expired(self, client, alice, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        _set_expiry(created["id"], timedelta(minutes=-5))
        assert asyncio.run(NeedRequestService.close_expired()) == 1
        assert client.get(f"{API}/requests/{created['id']}").json()["status"] == "closed"
        assert asyncio.run(NeedRequestService.close_expired()) == 0

    def test_notify_expiring_once(self, client, alice, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        _set_expiry(created["id"], timedelta(hours=2))
        assert client.get(f"{API}/requests/{created['id']}").json()["expires_soon"] is True

        assert asyncio.run(NeedRequestService.notify_expiring()) == 1
        assert asyncio.run(NeedRequestService.notify_expiring()) == 0
        items = notifications_for(client, alice)["items"]
        assert [n["type"] for n in items] == ["request-expiring"]
        assert items[0]["link"] == f"/requests/{created['id']}"

    def test_fulfilled_requests_are_not_swept(self, client, alice, bob, request_payload):
        created = client.post(f"{API}/requests/", json=request_payload, headers=alice["headers"]).json()
        match = client.post(f"{API}/requests/{created['id']}/offer", headers=bob["headers"]).json()
        client.post(f"{API}/matches/{match['id']}/complete", headers=alice["headers"])
        _set_expiry(created["id"], timedelta(hours=2))
        assert asyncio.run(NeedRequestService.notify_expiring()) == 0
        _set_expiry(created["id"], timedelta(minutes=-5))
        assert asyncio.run(NeedRequestService.close_expired()) == 0
        assert client.get(f"{API}/requests/{created['id']}").json()["status"] == "matched"
