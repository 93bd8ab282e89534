"""HTTP-level tests through FastAPI's TestClient with in-memory repositories."""

import logging

import pytest
from fastapi.testclient import TestClient

import main
from service_events import EventService
from service_moderation import ModerationService
from service_requests import OrganizerRequestService

ADMIN = {"X-User-Id": "1", "X-User-Role": "admin"}
REP = {"X-User-Id": "20", "X-User-Role": "representative"}
USER = {"X-User-Id": "10", "X-User-Role": "user"}

SUBMISSION = {
    "name": "Town Hall",
    "description": "Quarterly town hall",
    "start_date": "2025-01-15",
    "start_time": "22:00",
    "timezone_offset_minutes": 300,
    "location": "Community Center",
    "organizer_name": "Jane Smith",
    "organizer_email": "jane@example.com",
}


@pytest.fixture
def client(repo, request_repo):
    main.app.dependency_overrides[main.get_event_service] = lambda: EventService(repo, 0)
    main.app.dependency_overrides[main.get_moderation_service] = lambda: ModerationService(repo)
    main.app.dependency_overrides[main.get_request_service] = lambda: OrganizerRequestService(request_repo)
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


class TestSubmitAndPublish:
    def test_user_submission_pending_until_approved(self, client):
        res = client.post("/events", json=SUBMISSION, headers=USER)
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "pending"

        assert client.get(f"/events/{body['id']}").status_code == 404

        assert client.post(f"/admin/events/{body['id']}/approve", headers=ADMIN).status_code == 200
        event = client.get(f"/events/{body['id']}").json()
        assert event["start_utc"] == "2025-01-16T03:00:00Z"
        assert event["end_utc"] == "2025-01-16T04:00:00Z"
        assert event["status"] == "approved"
        assert event["approved_by"] == 1

    def test_representative_auto_approved(self, client):
        body = client.post("/events", json=SUBMISSION, headers=REP).json()
        assert body["status"] == "approved"
        assert "automatically approved" in body["message"]

        listing = client.get("/events").json()
        assert listing["total"] == 1
        assert listing["events"][0]["id"] == body["id"]

    def test_anonymous_can_submit(self, client):
        assert client.post("/events", json=SUBMISSION).json()["status"] == "pending"

    def test_domain_validation_is_400(self, client):
        res = client.post("/events", json={**SUBMISSION, "start_time": "24:30"}, headers=USER)
        assert res.status_code == 400
        assert "Hour out of range" in res.json()["detail"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"start_date": "9999-12-31", "start_time": "23:00"},
            {"duration_value": 10**9, "duration_unit": "days"},
        ],
    )
    def test_out_of_range_time_is_400(self, client, repo, overrides):
        res = client.post("/events", json={**SUBMISSION, **overrides}, headers=USER)
        assert res.status_code == 400
        assert "out of range" in res.json()["detail"]
        assert repo.inserts == 0

    def test_schema_validation_is_422(self, client):
        res = client.post("/events", json={**SUBMISSION, "duration_unit": "weeks"}, headers=USER)
        assert res.status_code == 422

    def test_unknown_role_header(self, client):
        res = client.post("/events", json=SUBMISSION, headers={"X-User-Id": "3", "X-User-Role": "root"})
        assert res.status_code == 400

    def test_my_events(self, client):
        client.post("/events", json=SUBMISSION, headers=USER)
        client.post("/events", json=SUBMISSION, headers=REP)

        assert len(client.get("/events/mine", headers=USER).json()) == 1
        assert client.get("/events/mine").status_code == 403


def _refuse(*args, **kwargs):
    raise RuntimeError("connection refused")


class TestPersistenceFailures:
    def test_submit_failure_is_logged_500(self, client, repo, monkeypatch, caplog):
        monkeypatch.setattr(repo, "insert", _refuse)

        with caplog.at_level(logging.ERROR, logger="main"):
            res = client.post("/events", json=SUBMISSION, headers=USER)

        assert res.status_code == 500
        assert "connection refused" in res.json()["detail"]
        assert "Event submission failed" in caplog.text

    def test_approve_failure_is_logged_500(self, client, repo, monkeypatch, caplog):
        event_id = client.post("/events", json=SUBMISSION, headers=USER).json()["id"]
        monkeypatch.setattr(repo, "update", _refuse)

        with caplog.at_level(logging.ERROR, logger="main"):
            res = client.post(f"/admin/events/{event_id}/approve", headers=ADMIN)

        assert res.status_code == 500
        assert "connection refused" in res.json()["detail"]
        assert "Approve failed" in caplog.text


class TestModerationRoutes:
    def test_non_admin_forbidden(self, client):
        event_id = client.post("/events", json=SUBMISSION, headers=USER).json()["id"]
        assert client.post(f"/admin/events/{event_id}/approve", headers=REP).status_code == 403
        assert client.get("/admin/events", headers=USER).status_code == 403

    def test_reject_flow(self, client):
        event_id = client.post("/events", json=SUBMISSION, headers=USER).json()["id"]

        assert client.post(
            f"/admin/events/{event_id}/reject", json={"reason": " "}, headers=ADMIN
        ).status_code == 400
        assert client.post(
            f"/admin/events/{event_id}/reject", json={"reason": "Spam"}, headers=ADMIN
        ).status_code == 200

        queue = client.get("/admin/events", params={"status": "rejected"}, headers=ADMIN).json()
        assert queue["total"] == 1
        assert queue["events"][0]["rejection_reason"] == "Spam"

    def test_not_found(self, client):
        assert client.post("/admin/events/999/approve", headers=ADMIN).status_code == 404

    def test_update_and_delete(self, client):
        event_id = client.post("/events", json=SUBMISSION, headers=USER).json()["id"]

        res = client.patch(f"/events/{event_id}", json={"name": "Renamed"}, headers=USER)
        assert res.status_code == 200
        assert res.json()["name"] == "Renamed"
        assert client.patch(f"/events/{event_id}", json={"name": "x"}, headers=REP).status_code == 403

        assert client.delete(f"/events/{event_id}", headers=USER).status_code == 403
        assert client.delete(f"/events/{event_id}", headers=ADMIN).status_code == 200
        assert client.delete(f"/events/{event_id}", headers=ADMIN).status_code == 404


class TestOrganizerRequestRoutes:
    def test_request_lifecycle(self, client):
        res = client.post(
            "/organizer-requests",
            json={"email": "chair@example.org", "name": "Pat", "organization_name": "Club"},
        )
        request_id = res.json()["id"]

        pending = client.get("/admin/organizer-requests", headers=ADMIN).json()
        assert pending["total"] == 1

        approved = client.post(f"/admin/organizer-requests/{request_id}/approve", headers=ADMIN)
        assert approved.json()["status"] == "approved"
        assert client.get("/admin/organizer-requests", headers=ADMIN).json()["total"] == 0


class TestFeedRoutes:
    def test_rss(self, client):
        client.post("/events", json=SUBMISSION, headers=REP)
        client.post("/events", json={**SUBMISSION, "name": "Hidden"}, headers=USER)

        res = client.get("/rss")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("application/rss+xml")
        assert "max-age=" in res.headers["cache-control"]
        assert "<title>Town Hall</title>" in res.text
        assert "Hidden" not in res.text

    def test_ical(self, client):
        client.post("/events", json=SUBMISSION, headers=REP)

        res = client.get("/calendar.ics")
        assert res.status_code == 200
        assert res.headers["content-type"].startswith("text/calendar")
        assert "attachment" in res.headers["content-disposition"]
        assert "DTSTART:20250116T030000Z" in res.text

    def test_health(self, client):
        assert client.get("/health").json() == {"ok": True}
