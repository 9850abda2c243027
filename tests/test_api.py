"""
End-to-end checks of the HTTP surface through FastAPI's TestClient.
"""

from uuid import uuid4
from fastapi.testclient import TestClient

from config.database import create_db_and_tables
from main import app
from tests.factories import new_user_id

client = TestClient(app)


def setup_module():
    create_db_and_tables()


def headers_for(user_id: str, name: str = "Tester") -> dict:
    return {"X-User-Id": user_id, "X-User-Name": name}


def log_manual(user_id: str, title: str, **extra) -> dict:
    body = {
        "item": {"title": title, "category": "place"},
        "state": "completed",
        "visibility": "friends",
        **extra,
    }
    response = client.post("/api/v1/interactions", json=body, headers=headers_for(user_id))
    assert response.status_code == 200, response.text
    return response.json()


def test_health():
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert {provider["name"] for provider in body["providers"]} == {"google_places", "google_books", "tmdb"}
    assert "X-Correlation-ID" in response.headers


def test_identity_header_required():
    response = client.get("/api/v1/interactions/mine")
    assert response.status_code == 401


def test_log_interaction_twice_keeps_one_row():
    user_id = new_user_id()
    title = f"Noodle bar {uuid4()}"

    first = log_manual(user_id, title, rating=4)
    second = log_manual(user_id, title, rating=5)

    assert first["thing_id"] == second["thing_id"]
    assert first["interaction_id"] == second["interaction_id"]

    mine = client.get("/api/v1/interactions/mine", headers=headers_for(user_id)).json()
    assert len(mine) == 1
    assert mine[0]["rating"] == 5


def test_log_interaction_requires_thing_or_item():
    response = client.post(
        "/api/v1/interactions",
        json={"state": "completed"},
        headers=headers_for(new_user_id()),
    )
    assert response.status_code == 400


def test_unknown_thing_is_404():
    response = client.post(
        "/api/v1/interactions",
        json={"thing_id": str(uuid4()), "state": "completed"},
        headers=headers_for(new_user_id()),
    )
    assert response.status_code == 404


def test_follow_then_feed_shows_friend_activity():
    viewer, friend = new_user_id(), new_user_id()
    logged = log_manual(friend, f"Ramen shop {uuid4()}", rating=5)

    assert client.get("/api/v1/feed", headers=headers_for(viewer)).json()["count"] == 0

    response = client.post(f"/api/v1/users/{friend}/follow", headers=headers_for(viewer, "Viewer"))
    assert response.json() == {"following": True, "changed": True}

    feed = client.get("/api/v1/feed", headers=headers_for(viewer)).json()
    assert feed["count"] == 1
    assert feed["items"][0]["thing"]["id"] == logged["thing_id"]
    assert feed["items"][0]["average_rating"] == 5

    notifications = client.get("/api/v1/notifications", headers=headers_for(friend)).json()
    assert [item["type"] for item in notifications] == ["followed"]


def test_invitation_flow():
    inviter, invitee = new_user_id(), new_user_id()
    logged = log_manual(inviter, f"Bookshop {uuid4()}")

    created = client.post(
        "/api/v1/invitations",
        json={"thing_id": logged["thing_id"], "interaction_id": logged["interaction_id"]},
        headers=headers_for(inviter, "Ana"),
    ).json()
    assert created["url"].endswith(f"?i={created['code']}")

    preview = client.get(f"/api/v1/invitations/{created['code'].lower()}")
    assert preview.status_code == 200
    assert preview.json()["inviter_name"] == "Ana"

    for _ in range(2):
        redeemed = client.post(
            f"/api/v1/invitations/{created['code']}/redeem",
            json={"is_new_account": True},
            headers=headers_for(invitee, "Ben"),
        )
        assert redeemed.json() == {"success": True}

    joined = [
        item for item in client.get("/api/v1/notifications", headers=headers_for(inviter)).json()
        if item["type"] == "invite_joined"
    ]
    assert len(joined) == 1

    missing = client.post(
        "/api/v1/invitations/NOSUCHCODE/redeem",
        json={"is_new_account": False},
        headers=headers_for(invitee),
    )
    assert missing.json() == {"success": False}


def test_tagging_a_friend_while_logging():
    tagger, friend = new_user_id(), new_user_id()

    logged = log_manual(
        tagger,
        f"Jazz club {uuid4()}",
        rating=5,
        experienced_with=[{"user_id": friend, "name": "Friend"}, {"name": "Cousin Sam"}],
    )
    assert len(logged["tag_ids"]) == 2

    pending = client.get("/api/v1/tags/pending", headers=headers_for(friend)).json()
    assert [tag["id"] for tag in pending] == [logged["tag_ids"][0]]

    accepted = client.post(f"/api/v1/tags/{pending[0]['id']}/accept", headers=headers_for(friend, "Friend"))
    assert accepted.json() == {"success": True}

    mine = client.get("/api/v1/interactions/mine", headers=headers_for(friend)).json()
    assert [row["thing_id"] for row in mine] == [logged["thing_id"]]
    assert mine[0]["rating"] == 5


def test_username_conflict_is_409():
    first, second = new_user_id(), new_user_id()
    username = f"taken_{uuid4().hex[:8]}"

    assert client.post("/api/v1/users/me/username", json={"username": username}, headers=headers_for(first)).status_code == 200
    assert client.post("/api/v1/users/me/username", json={"username": username}, headers=headers_for(second)).status_code == 409

    available = client.get("/api/v1/users/username-available", params={"username": username}).json()
    assert available == {"available": False}


def test_self_recommendation_is_400():
    user_id = new_user_id()
    logged = log_manual(user_id, f"Cafe {uuid4()}")

    response = client.post(
        "/api/v1/recommendations",
        json={"to_user_id": user_id, "thing_id": logged["thing_id"]},
        headers=headers_for(user_id),
    )
    assert response.status_code == 400


def test_recommendation_notice_names_the_recipient():
    recommender, recipient = new_user_id(), new_user_id()
    logged = log_manual(recommender, f"Ramen stand {uuid4()}")
    assert client.put("/api/v1/users/me", headers=headers_for(recipient, "Ben")).status_code == 200

    response = client.post(
        "/api/v1/recommendations",
        json={"to_user_id": recipient, "thing_id": logged["thing_id"]},
        headers=headers_for(recommender, "Ana"),
    )
    assert response.json()["created"] is True

    notices = [
        item for item in client.get("/api/v1/notifications", headers=headers_for(recommender)).json()
        if item["type"] == "recommendation"
    ]
    assert len(notices) == 1
    assert notices[0]["message"].startswith("Ben saved")


def test_tag_rating_out_of_range_is_422():
    tagger = new_user_id()
    logged = log_manual(tagger, f"Gallery {uuid4()}")

    response = client.post(
        "/api/v1/tags",
        json={
            "source_interaction_id": logged["interaction_id"],
            "thing_id": logged["thing_id"],
            "tagged_name": "Cousin Sam",
            "state": "completed",
            "rating": 9,
        },
        headers=headers_for(tagger),
    )
    assert response.status_code == 422


def test_tagging_from_someone_elses_interaction_is_403():
    owner, stranger, friend = new_user_id(), new_user_id(), new_user_id()
    logged = log_manual(owner, f"Rooftop bar {uuid4()}")

    response = client.post(
        "/api/v1/tags",
        json={
            "source_interaction_id": logged["interaction_id"],
            "thing_id": logged["thing_id"],
            "tagged_user_id": friend,
            "tagged_name": "Friend",
            "state": "completed",
        },
        headers=headers_for(stranger),
    )
    assert response.status_code == 403
    assert client.get("/api/v1/tags/pending", headers=headers_for(friend)).json() == []
