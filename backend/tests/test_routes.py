"""
HTTP-level tests: auth, the response envelope and status mapping, with the
database and handler collaborators overridden.
"""
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.api.deps import get_brief_handlers, get_profile_sync_handler
from app.core.db import get_db
from app.main import app
from app.services.errors import UpstreamError
from app.services.handlers import BriefRequestHandlers, ProfileSyncHandler

from tests.fixtures.profile_fixtures import GENERATION_PAYLOAD

ALICE = {"X-User-Id": "idp|alice", "X-User-Email": "alice@example.com"}
BOB = {"X-User-Id": "idp|bob"}


@pytest.fixture
def client(db, settings, fake_fetcher, make_orchestrator):
    orchestrator, _, _ = make_orchestrator()

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_brief_handlers] = lambda: BriefRequestHandlers(
        db, fetcher=fake_fetcher, orchestrator=orchestrator, settings=settings
    )
    app.dependency_overrides[get_profile_sync_handler] = lambda: ProfileSyncHandler(
        db, fetcher=fake_fetcher, settings=settings
    )
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def generate(client, headers=ALICE, **body):
    payload = {"linkedin_url": "https://www.linkedin.com/in/jane-doe", "meeting_goal": "networking", **body}
    return client.post("/api/briefs/generate", json=payload, headers=headers)


class TestAuth:
    def test_missing_identity_is_unauthorized(self, client):
        resp = client.get("/api/briefs")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "UNAUTHORIZED", "message": "Authentication required"}

    def test_first_request_creates_free_user(self, client):
        resp = client.get("/api/usage", headers=ALICE)
        assert resp.status_code == 200
        assert resp.json()["data"]["plan"] == "free"
        assert resp.json()["data"]["limit"] == 5


class TestGenerateRoute:
    def test_created_envelope(self, client):
        resp = generate(client)

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        brief = body["data"]["brief"]
        assert brief["summary"] == GENERATION_PAYLOAD["summary"]
        assert brief["linkedin_url"] == "https://www.linkedin.com/in/jane-doe"
        assert brief["is_saved"] is False

    def test_invalid_linkedin_url(self, client):
        resp = generate(client, linkedin_url="https://example.com/in/jane")
        assert resp.status_code == 400
        assert resp.json()["error"] == "INVALID_LINKEDIN_URL"

    def test_missing_field_is_bad_request(self, client):
        resp = client.post("/api/briefs/generate", json={"meeting_goal": "sales"}, headers=ALICE)
        assert resp.status_code == 400
        assert resp.json()["error"] == "BAD_REQUEST"
        assert "linkedin_url" in resp.json()["message"]

    def test_custom_goal_without_text(self, client):
        resp = generate(client, meeting_goal="custom")
        assert resp.status_code == 400
        assert resp.json()["error"] == "BAD_REQUEST"

    def test_quota_exceeded_carries_details(self, client):
        for _ in range(5):
            assert generate(client).status_code == 201

        resp = generate(client)

        assert resp.status_code == 403
        body = resp.json()
        assert body["error"] == "USAGE_LIMIT_EXCEEDED"
        assert body["details"] == {"used": 5, "limit": 5, "plan": "free"}

    def test_upstream_rate_limit(self, client, fake_fetcher):
        fake_fetcher.fetch.side_effect = UpstreamError("Rate limited", kind="rate_limited", upstream_status=429)
        resp = generate(client)
        assert resp.status_code == 429
        assert resp.json()["error"] == "RATE_LIMIT_EXCEEDED"


class TestBriefRoutes:
    def test_get_foreign_brief_is_not_found(self, client):
        brief_id = generate(client).json()["data"]["brief"]["id"]

        foreign = client.get(f"/api/briefs/{brief_id}", headers=BOB)
        missing = client.get(f"/api/briefs/{uuid4()}", headers=BOB)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.json() == missing.json()
        assert client.get(f"/api/briefs/{brief_id}", headers=ALICE).status_code == 200

    def test_list_envelope(self, client):
        generate(client)
        generate(client, meeting_goal="sales")

        resp = client.get("/api/briefs", params={"limit": 1, "goal": "sales"}, headers=ALICE)

        data = resp.json()["data"]
        assert resp.status_code == 200
        assert data["total"] == 1
        assert data["page"] == 1
        assert data["limit"] == 1
        assert data["has_more"] is False
        assert data["briefs"][0]["meeting_goal"] == "sales"

    def test_list_rejects_unknown_sort(self, client):
        resp = client.get("/api/briefs", params={"sort": "summary"}, headers=ALICE)
        assert resp.status_code == 400

    def test_patch_saves(self, client):
        brief_id = generate(client).json()["data"]["brief"]["id"]

        resp = client.patch(f"/api/briefs/{brief_id}", json={"is_saved": True}, headers=ALICE)

        assert resp.status_code == 200
        assert resp.json()["data"]["brief"]["is_saved"] is True
        assert client.get("/api/briefs", params={"saved": "true"}, headers=ALICE).json()["data"]["total"] == 1

    def test_refresh_without_body(self, client):
        brief_id = generate(client, meeting_goal="hiring").json()["data"]["brief"]["id"]

        resp = client.post(f"/api/briefs/{brief_id}/refresh", headers=ALICE)

        assert resp.status_code == 200
        assert resp.json()["data"]["brief"]["id"] == brief_id
        assert resp.json()["data"]["brief"]["meeting_goal"] == "hiring"

    def test_delete(self, client):
        brief_id = generate(client).json()["data"]["brief"]["id"]

        resp = client.delete(f"/api/briefs/{brief_id}", headers=ALICE)

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": {"message": "Brief deleted successfully"}}
        assert client.delete(f"/api/briefs/{brief_id}", headers=ALICE).status_code == 404

    def test_malformed_id(self, client):
        assert client.get("/api/briefs/not-a-uuid", headers=ALICE).status_code == 400


class TestAccountRoutes:
    def test_usage_counts_generations(self, client):
        generate(client)

        data = client.get("/api/usage", headers=ALICE).json()["data"]

        assert data["used"] == 1
        assert data["remaining"] == 4
        assert data["total_briefs"] == 1

    def test_connect_sync_disconnect(self, client):
        resp = client.post(
            "/api/user/linkedin", json={"linkedin_url": "linkedin.com/in/alice"}, headers=ALICE
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["message"] == "LinkedIn profile connected successfully"
        assert resp.json()["data"]["user"]["linkedin_url"] == "https://www.linkedin.com/in/alice"

        resp = client.post("/api/user/linkedin/sync", headers=ALICE)
        assert resp.status_code == 200

        resp = client.delete("/api/user/linkedin", headers=ALICE)
        assert resp.json()["data"] == {"message": "LinkedIn profile disconnected"}

    def test_sync_without_connected_profile(self, client):
        resp = client.post("/api/user/linkedin/sync", headers=BOB)
        assert resp.status_code == 400

    def test_database_error_gets_envelope(self, client):
        failing = MagicMock()
        failing.usage_stats.side_effect = OperationalError("SELECT count(*)", {}, Exception("database is down"))
        app.dependency_overrides[get_brief_handlers] = lambda: failing

        resp = client.get("/api/usage", headers=ALICE)

        assert resp.status_code == 500
        assert resp.json() == {
            "success": False,
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
        }

    def test_refresh_rejects_oversized_custom_goal(self, client):
        brief_id = generate(client).json()["data"]["brief"]["id"]

        resp = client.post(
            f"/api/briefs/{brief_id}/refresh",
            json={"meeting_goal": "custom", "custom_goal": "x" * 5000},
            headers=ALICE,
        )

        assert resp.status_code == 400
        assert resp.json()["error"] == "BAD_REQUEST"
        assert client.get(f"/api/briefs/{brief_id}", headers=ALICE).json()["data"]["brief"]["meeting_goal"] == "networking"
