import asyncio
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from loccal.auth.verify import auth_dependency
from loccal.main import app
from loccal.routes.dependencies import get_social_store
from loccal.services.social.social_store import SocialStoreError

ME = "user-123"


def as_user(user_id: str, name: str) -> None:
    claims = {"sub": user_id, "email": f"{name.lower()}@example.com", "name": name}
    app.dependency_overrides[auth_dependency] = lambda: claims


@pytest.fixture
def client(apply_auth_override, social_store):
    apply_auth_override(app)
    app.dependency_overrides[get_social_store] = lambda: social_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def riley(client, auth_override):
    # first request upserts the session user
    as_user("riley", "Riley")
    client.get("/social/preferences")
    app.dependency_overrides[auth_dependency] = auth_override
    client.get("/social/preferences")
    return "riley"


def befriend(client, auth_override, other_id, other_name):
    as_user(other_id, other_name)
    client.post("/friends/request", json={"targetId": ME})
    app.dependency_overrides[auth_dependency] = auth_override
    return client.post("/friends/request", json={"targetId": other_id})


class TestFriendRequests:
    def test_request_approve_flow(self, client, auth_override, riley):
        sent = client.post("/friends/request", json={"targetId": riley})
        assert sent.status_code == 200
        assert sent.json() == {"status": "pending"}

        as_user("riley", "Riley")
        incoming = client.get("/friends/requests").json()
        assert len(incoming) == 1
        assert incoming[0]["requesterId"] == ME
        assert incoming[0]["name"] == "Owner"
        assert incoming[0]["avatarUrl"] == "https://example.com/owner.png"

        approved = client.post("/friends/approve", json={"requestId": incoming[0]["id"]})
        assert approved.json() == {"ok": True, "mutual": True}
        assert client.get("/friends/requests").json() == []

        app.dependency_overrides[auth_dependency] = auth_override
        friends = client.get("/friends").json()
        assert [friend["id"] for friend in friends] == ["riley"]
        assert friends[0]["email"] == "riley@example.com"

    def test_reciprocal_request(self, client, auth_override, riley):
        response = befriend(client, auth_override, "riley", "Riley")

        assert response.json() == {"status": "friends", "mutual": True}

    def test_validation_errors(self, client, riley):
        missing = client.post("/friends/request", json={})
        myself = client.post("/friends/request", json={"targetId": ME})
        unknown = client.post("/friends/request", json={"targetId": "ghost"})

        assert missing.status_code == 400
        assert missing.json() == {"error": "targetId is required"}
        assert myself.json() == {"error": "You cannot send a request to yourself"}
        assert unknown.status_code == 404
        assert unknown.json() == {"error": "Target user not found"}

    def test_deny_then_approve_conflicts(self, client, auth_override, riley):
        client.post("/friends/request", json={"targetId": riley})
        as_user("riley", "Riley")
        request_id = client.get("/friends/requests").json()[0]["id"]

        denied = client.post("/friends/deny", json={"requestId": request_id})
        approve = client.post("/friends/approve", json={"requestId": request_id})

        assert denied.json() == {"ok": True}
        assert approve.status_code == 409
        assert approve.json() == {"error": "This request was already denied"}

    def test_acting_on_someone_elses_request(self, client, riley):
        client.post("/friends/request", json={"targetId": riley})
        as_user("riley", "Riley")
        request_id = client.get("/friends/requests").json()[0]["id"]
        as_user("sam", "Sam")

        response = client.post("/friends/approve", json={"requestId": request_id})

        assert response.status_code == 404
        assert response.json() == {"error": "Request not found"}

    def test_missing_request_id(self, client):
        response = client.post("/friends/deny", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "requestId is required"}

    def test_store_failure_is_500(self, client, riley, social_store, monkeypatch):
        async def refuse(*args, **kwargs):
            raise SocialStoreError("Failed to write follow_request record")

        monkeypatch.setattr(social_store, "create_or_reset_request", refuse)

        response = client.post("/friends/request", json={"targetId": riley})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to send request: Failed to write follow_request record"}


class TestFriendMonth:
    def test_overlap_with_friend(self, client, auth_override, riley, social_store, make_day_entry):
        befriend(client, auth_override, "riley", "Riley")
        generated_at = datetime.now(UTC)
        asyncio.run(
            social_store.save_monthly_snapshot(
                ME, "2024-06", "UTC", generated_at, {"2024-06-10": [make_day_entry("Austin, TX, USA")]}
            )
        )
        asyncio.run(
            social_store.save_monthly_snapshot(
                "riley", "2024-06", "UTC", generated_at, {"2024-06-10": [make_day_entry("austin, tx, usa")]}
            )
        )

        response = client.get("/friends/month", params={"month": "2024-06"})

        assert response.status_code == 200
        body = response.json()
        assert body["ownSnapshotAvailable"] is True
        assert body["overlaps"] == {
            "2024-06-10": {"friendIds": ["riley"], "friendNames": ["Riley"], "cities": ["Austin, TX, USA"]}
        }
        friend = body["friends"][0]
        assert friend["availability"] == "available"
        assert friend["isStale"] is False
        assert friend["sharingEnabled"] is True
        assert friend["days"]["2024-06-10"][0]["events"][0]["title"] == "Trip"

    def test_invalid_month(self, client):
        response = client.get("/friends/month", params={"month": "June"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid month. Use YYYY-MM."}


class TestSocial:
    def test_preferences_round_trip(self, client):
        assert client.get("/social/preferences").json() == {"shareMode": "friends", "lastSharedAt": None}

        updated = client.patch("/social/preferences", json={"shareMode": "private"})

        assert updated.status_code == 200
        assert updated.json()["shareMode"] == "private"
        assert client.get("/social/preferences").json()["shareMode"] == "private"

    @pytest.mark.parametrize("body", [{}, {"shareMode": "public"}])
    def test_preferences_validation(self, client, body):
        response = client.patch("/social/preferences", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "shareMode is required and must be one of: friends, private"}

    def test_user_search(self, client, auth_override, riley):
        client.post("/friends/request", json={"targetId": riley})

        results = client.get("/users/search", params={"q": "rile"}).json()

        assert [result["id"] for result in results] == ["riley"]
        assert results[0]["relationshipStatus"] == "pendingOutgoing"
        assert results[0]["incomingRequestId"] is None

    def test_user_search_short_query(self, client):
        response = client.get("/users/search", params={"q": "r"})

        assert response.status_code == 400
        assert response.json() == {"error": "Query must be at least 2 characters"}
