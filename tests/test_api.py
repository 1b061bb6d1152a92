"""HTTP-level tests against the in-memory store."""
import uuid

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app


@pytest.fixture
def client():
    settings = Settings(_env_file=None, STORE_BACKEND="memory", SEED_DEMO_DATA=False)
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def _register(client, name):
    response = client.post(
        "/api/v1/users/",
        json={
            "username": name,
            "email": f"{name}@example.com",
            "password": "password",
            "full_name": name.title(),
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def _post_form(client, owner_id, **overrides):
    payload = {
        "title": "Health & Wellness Assessment",
        "description": "Help us understand your wellness needs.",
        "url": "https://forms.example.com/wellness",
        "tags": ["Health & Wellness", "Lifestyle"],
        "estimated_time": 10,
        "created_by": owner_id,
    }
    payload.update(overrides)
    response = client.post("/api/v1/forms/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
    deep = client.get("/health/deep").json()
    assert deep["status"] == "healthy"
    assert deep["store"] == "memory"


class TestUsersApi:

    def test_register_hides_password(self, client):
        user = _register(client, "alice")
        assert user["username"] == "alice"
        assert "password" not in user

    def test_duplicate_register(self, client):
        _register(client, "alice")
        response = client.post(
            "/api/v1/users/",
            json={"username": "alice", "email": "a2@example.com", "password": "password", "full_name": "A"},
        )
        assert response.status_code == 409

    def test_login(self, client):
        user = _register(client, "alice")
        ok = client.post("/api/v1/users/login", json={"username": "alice", "password": "password"})
        assert ok.status_code == 200
        assert ok.json()["id"] == user["id"]
        bad = client.post("/api/v1/users/login", json={"username": "alice", "password": "nope"})
        assert bad.status_code == 401

    def test_unknown_user(self, client):
        assert client.get(f"/api/v1/users/{uuid.uuid4()}").status_code == 404
        assert client.get(f"/api/v1/users/{uuid.uuid4()}/stats").status_code == 404


class TestFormsApi:

    def test_create_list_and_filter(self, client):
        owner = _register(client, "owner")
        health = _post_form(client, owner["id"])
        academic = _post_form(
            client,
            owner["id"],
            title="Course Survey",
            description="Rate this semester's lectures.",
            tags=["Academic"],
        )

        everything = client.get("/api/v1/forms/").json()
        assert {f["id"] for f in everything} == {health["id"], academic["id"]}
        assert all(f["rating"] == 0.0 and f["review_count"] == 0 for f in everything)
        assert all(f["status"] == "new" for f in everything)

        by_tag = client.get("/api/v1/forms/", params={"tags": "Academic,Other"}).json()
        assert [f["id"] for f in by_tag] == [academic["id"]]

        by_search = client.get("/api/v1/forms/", params={"search": "WELLNESS"}).json()
        assert [f["id"] for f in by_search] == [health["id"]]

        by_owner = client.get("/api/v1/forms/", params={"user_id": str(uuid.uuid4())}).json()
        assert by_owner == []

    def test_invalid_form_rejected(self, client):
        owner = _register(client, "owner")
        response = client.post(
            "/api/v1/forms/",
            json={
                "title": "Bad",
                "description": "x",
                "url": "ftp://nope",
                "tags": [],
                "estimated_time": 0,
                "created_by": owner["id"],
            },
        )
        assert response.status_code == 422

    def test_complete_twice_upserts(self, client):
        owner = _register(client, "owner")
        filler = _register(client, "filler")
        form = _post_form(client, owner["id"])
        url = f"/api/v1/forms/{form['id']}/complete"

        first = client.post(url, json={"user_id": filler["id"], "rating": 2})
        second = client.post(url, json={"user_id": filler["id"], "rating": 4, "feedback": "better"})
        assert first.status_code == second.status_code == 201
        assert first.json()["id"] == second.json()["id"]

        detail = client.get(f"/api/v1/forms/{form['id']}", params={"viewer_id": filler["id"]}).json()
        assert detail["rating"] == 4.0
        assert detail["review_count"] == 1
        assert detail["is_completed"] is True
        assert detail["status"] == "completed"

    def test_rating_out_of_range(self, client):
        owner = _register(client, "owner")
        form = _post_form(client, owner["id"])
        response = client.post(
            f"/api/v1/forms/{form['id']}/complete",
            json={"user_id": owner["id"], "rating": 6},
        )
        assert response.status_code == 422

    def test_complete_missing_form(self, client):
        filler = _register(client, "filler")
        response = client.post(
            f"/api/v1/forms/{uuid.uuid4()}/complete", json={"user_id": filler["id"]}
        )
        assert response.status_code == 404

    def test_owner_only_update_and_delete(self, client):
        owner = _register(client, "owner")
        intruder = _register(client, "intruder")
        form = _post_form(client, owner["id"])
        path = f"/api/v1/forms/{form['id']}"

        forbidden = client.put(path, params={"user_id": intruder["id"]}, json={"title": "Mine now"})
        assert forbidden.status_code == 403

        updated = client.put(path, params={"user_id": owner["id"]}, json={"title": "Renamed"})
        assert updated.status_code == 200
        assert updated.json()["title"] == "Renamed"
        assert updated.json()["tags"] == form["tags"]

        assert client.delete(path, params={"user_id": intruder["id"]}).status_code == 403
        assert client.delete(path, params={"user_id": owner["id"]}).status_code == 204
        assert client.get(path).status_code == 404


class TestStatsApi:

    def test_stats_activity_and_feed(self, client):
        owner = _register(client, "owner")
        filler = _register(client, "filler")
        form = _post_form(client, owner["id"])
        client.post(f"/api/v1/forms/{form['id']}/complete", json={"user_id": filler["id"], "rating": 5})

        owner_stats = client.get(f"/api/v1/users/{owner['id']}/stats").json()
        assert owner_stats["forms_posted"] == 1
        assert owner_stats["avg_rating"] == 5.0
        assert owner_stats["total_filled"] == 0

        filler_stats = client.get(f"/api/v1/users/{filler['id']}/stats").json()
        assert filler_stats["total_filled"] == filler_stats["last_7_days"] == filler_stats["last_30_days"] == 1

        default_series = client.get(f"/api/v1/users/{filler['id']}/activity").json()
        assert len(default_series) == 91
        series = client.get(f"/api/v1/users/{filler['id']}/activity", params={"days": 7}).json()
        assert len(series) == 8
        assert series[-1]["count"] == 1

        feed = client.get(f"/api/v1/users/{filler['id']}/activities").json()
        assert len(feed) == 1
        assert feed[0]["activity_type"] == "completed"
        assert feed[0]["form_title"] == form["title"]

        profile = client.get(f"/api/v1/users/{owner['id']}").json()
        assert profile["stats"] == owner_stats

    def test_negative_window_rejected_at_boundary(self, client):
        user = _register(client, "owner")
        assert client.get(f"/api/v1/users/{user['id']}/activity", params={"days": -1}).status_code == 422
        assert client.get(f"/api/v1/users/{user['id']}/activities", params={"limit": -1}).status_code == 422


def test_window_defaults_come_from_app_settings():
    settings = Settings(
        _env_file=None,
        STORE_BACKEND="memory",
        DEFAULT_ACTIVITY_DAYS=7,
        DEFAULT_RECENT_LIMIT=1,
    )
    with TestClient(create_app(settings)) as client:
        owner = _register(client, "owner")
        _post_form(client, owner["id"], title="First")
        _post_form(client, owner["id"], title="Second")

        assert len(client.get(f"/api/v1/users/{owner['id']}/activity").json()) == 8
        assert len(client.get(f"/api/v1/users/{owner['id']}/activities").json()) == 1
        assert len(client.get(f"/api/v1/users/{owner['id']}/activities", params={"limit": 5}).json()) == 2
