"""Ratings and the trust score they drive."""

from tests.conftest import API, register


def completed_match(client, seller, buyer, payload):
    listing = client.post(f"{API}/listings/", json=payload, headers=seller["headers"]).json()
    match = client.post(f"{API}/listings/{listing['id']}/interest", headers=buyer["headers"]).json()
    response = client.post(f"{API}/matches/{match['id']}/complete", headers=seller["headers"])
    assert response.status_code == 200
    return match


def rate(client, user, match_id, overall, **details):
    return client.post(
        f"{API}/ratings/",
        json={"match_id": match_id, "overall_rating": overall, **details},
        headers=user["headers"],
    )


class TestCreateRating:
    def test_rating_the_other_party(self, client, alice, bob, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        response = rate(client, bob, match["id"], 5, review="  Smooth exchange  ")
        assert response.status_code == 201
        rating = response.json()
        assert rating["rater_id"] == bob["id"]
        assert rating["rated_user_id"] == alice["id"]
        assert rating["communication_rating"] == 5
        assert rating["accuracy_rating"] == 5
        assert rating["punctuality_rating"] == 5
        assert rating["review"] == "Smooth exchange"
        assert rating["is_flagged"] is False

        profile = client.get(f"{API}/profiles/{alice['id']}", headers=bob["headers"]).json()
        assert profile["trust_score"] == 5.0
        assert profile["total_ratings"] == 1

    def test_explicit_sub_ratings_kept(self, client, alice, bob, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        rating = rate(client, alice, match["id"], 4, communication_rating=3, punctuality_rating=5).json()
        assert rating["rated_user_id"] == bob["id"]
        assert rating["communication_rating"] == 3
        assert rating["accuracy_rating"] == 4
        assert rating["punctuality_rating"] == 5

    def test_rated_user_is_notified(self, client, alice, bob, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        rate(client, bob, match["id"], 4)
        latest = client.get(f"{API}/notifications/", headers=alice["headers"]).json()["items"][0]
        assert latest["title"] == "You received a rating!"
        assert latest["message"] == "Bob Singh rated your exchange"
        assert latest["link"] == "/profile"

    def test_only_once_per_rater(self, client, alice, bob, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        rate(client, bob, match["id"], 5)
        response = rate(client, bob, match["id"], 1)
        assert response.status_code == 409
        assert response.json()["detail"] == "You have already rated this exchange."
        assert rate(client, alice, match["id"], 5).status_code == 201

    def test_requires_completed_match(self, client, bob, match):
        assert rate(client, bob, match["id"], 5).status_code == 400

    def test_outsider_cannot_rate(self, client, alice, bob, carol, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        assert rate(client, carol, match["id"], 1).status_code == 403

    def test_score_bounds(self, client, alice, bob, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        assert rate(client, bob, match["id"], 6).status_code == 422
        assert rate(client, bob, match["id"], 5, accuracy_rating=0).status_code == 422
        assert rate(client, bob, match["id"], 5, review="x" * 501).status_code == 422


class TestTrustScore:
    def test_mean_rounded_half_up(self, client, alice, bob, carol, listing_payload):
        dave = register(client, "dave@iitm.ac.in", "Dave Paul")
        erin = register(client, "erin@bits.edu.in", "Erin Shah")
        for buyer, score in ((bob, 4), (carol, 4), (dave, 5), (erin, 4)):
            match = completed_match(client, alice, buyer, listing_payload)
            assert rate(client, buyer, match["id"], score).status_code == 201

        profile = client.get(f"{API}/profiles/me", headers=alice["headers"]).json()
        assert profile["trust_score"] == 4.3
        assert profile["total_ratings"] == 4
        assert profile["total_exchanges"] == 4
        assert profile["badge"] == "new"


class TestListRatings:
    def test_by_user_newest_first_and_by_match(self, client, alice, bob, carol, listing_payload):
        first = completed_match(client, alice, bob, listing_payload)
        second = completed_match(client, alice, carol, listing_payload)
        rate(client, bob, first["id"], 3)
        rate(client, carol, second["id"], 5)

        received = client.get(f"{API}/ratings/user/{alice['id']}").json()
        assert [r["overall_rating"] for r in received] == [5, 3]

        by_match = client.get(f"{API}/ratings/match/{first['id']}", headers=alice["headers"]).json()
        assert [r["rater_id"] for r in by_match] == [bob["id"]]
        assert client.get(f"{API}/ratings/match/{first['id']}", headers=carol["headers"]).status_code == 403

    def test_flag_by_rated_user_only(self, client, alice, bob, listing_payload):
        match = completed_match(client, alice, bob, listing_payload)
        rating = rate(client, bob, match["id"], 1, review="rude").json()
        assert client.post(f"{API}/ratings/{rating['id']}/flag", headers=bob["headers"]).status_code == 403
        response = client.post(f"{API}/ratings/{rating['id']}/flag", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["is_flagged"] is True
