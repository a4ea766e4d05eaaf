from __future__ import annotations

import json
import time
from typing import Any, Dict

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from portal.services.review import UNAVAILABLE_MESSAGE, ReviewRequest
from portal.web import create_app


REVIEW_RESPONSE = json.dumps(
    {"summary": "Looks complete.", "suggestions": ["Add unit outcomes."], "corrections": []}
)


class StaticProvider:
    async def review(self, request: ReviewRequest) -> str:
        return REVIEW_RESPONSE


def _login(client: TestClient, name: str = "Admin", password: str = "admin") -> Dict[str, Any]:
    response = client.post("/api/session/login", json={"name": name, "password": password})
    assert response.status_code == 200
    return response.json()


def _course_file(client: TestClient, course_file_id: str) -> Dict[str, Any]:
    files = client.get("/api/state/course_files").json()["course_files"]
    return next(item for item in files if item["id"] == course_file_id)


def _wait_for_review(client: TestClient, course_file_id: str, timeout: float = 2.0) -> Dict[str, Any]:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        review = _course_file(client, course_file_id)["ai_review"]
        if review and review["status"] != "pending":
            return review
        time.sleep(0.01)
    pytest.fail(f"Review for {course_file_id} did not finish")


def test_login_flow_updates_session_and_audit(context) -> None:
    with TestClient(create_app(context)) as client:
        assert client.get("/api/session").json() == {"user": None, "view": "auth"}

        payload = _login(client)
        assert payload["success"] is True
        assert payload["user"]["id"] == "admin"
        assert "password" not in payload["user"]

        session = client.get("/api/session").json()
        assert session["view"] == "dashboard"

        audit = client.get("/api/state/audit_log").json()["audit_log"]
        assert audit[0]["action"] == "User Login"
        assert audit[0]["status"] == "success"

        notifications = client.get("/api/notifications").json()["notifications"]
        assert notifications[-1]["message"] == "Welcome back, Admin!"

        assert client.post("/api/session/logout").json() == {"view": "auth"}


def test_failed_login_reports_false(context) -> None:
    with TestClient(create_app(context)) as client:
        payload = _login(client, password="nope")

    assert payload == {"success": False, "user": None}


def test_signup_conflict_returns_409(context) -> None:
    with TestClient(create_app(context)) as client:
        response = client.post(
            "/api/session/signup",
            json={"name": "ALICE", "password": "pw", "role": "student", "dept": "CSE"},
        )
        created = client.post(
            "/api/session/signup",
            json={"name": "Frank", "password": "pw", "role": "faculty", "dept": "IT"},
        )

    assert response.status_code == 409
    assert created.status_code == 200
    assert created.json()["user"]["id"] == "faculty-frank"


def test_state_hides_session_and_passwords(context) -> None:
    with TestClient(create_app(context)) as client:
        state = client.get("/api/state").json()
        missing = client.get("/api/state/session")

    assert "session" not in state and "view" not in state
    assert all("password" not in user for user in state["users"])
    assert state["settings"]["accent_color"] == "#4f46e5"
    assert missing.status_code == 404


def test_reaction_requires_session(context) -> None:
    with TestClient(create_app(context)) as client:
        anonymous = client.post("/api/announcements/ann-1/reactions", json={"emoji": "👍"})
        _login(client, "Alice", "password")
        removed = client.post("/api/announcements/ann-1/reactions", json={"emoji": "👍"})
        unknown = client.post("/api/announcements/ann-9/reactions", json={"emoji": "👍"})

    assert anonymous.status_code == 401
    assert removed.json()["announcement"]["reactions"]["👍"] == []
    assert unknown.status_code == 404


def test_resolve_alert_endpoint(context) -> None:
    with TestClient(create_app(context)) as client:
        _login(client)
        resolved = client.post("/api/alerts/alert-1/resolve")
        missing = client.post("/api/alerts/alert-404/resolve")
        audit = client.get("/api/state/audit_log").json()["audit_log"]

    assert resolved.json()["alert"]["is_resolved"] is True
    assert missing.status_code == 404
    assert [entry["status"] for entry in audit[:2]] == ["failure", "success"]


def test_resolve_alert_requires_admin(context) -> None:
    with TestClient(create_app(context)) as client:
        anonymous = client.post("/api/alerts/alert-1/resolve")
        _login(client, "Alice", "password")
        student = client.post("/api/alerts/alert-1/resolve")
        alerts = client.get("/api/state/security_alerts").json()["security_alerts"]

    assert anonymous.status_code == 401
    assert student.status_code == 403
    assert alerts[0]["is_resolved"] is False


def test_cloud_import_endpoint(context) -> None:
    with TestClient(create_app(context)) as client:
        _login(client, "Mr. SOUNDHUR", "password")
        response = client.post(
            "/api/resources/import", json={"name": "Slides.pptx", "source": "onedrive"}
        )
        resources = client.get("/api/state/resources").json()["resources"]

    assert response.status_code == 201
    assert response.json()["resource"]["type"] == "presentation"
    assert resources[0]["name"] == "Slides.pptx"


def test_review_without_provider_returns_503_and_warns(context) -> None:
    with TestClient(create_app(context)) as client:
        response = client.post("/api/course-files/cf-1/review")
        notifications = client.get("/api/notifications").json()["notifications"]
        course_file = _course_file(client, "cf-1")

    assert response.status_code == 503
    assert [item["message"] for item in notifications] == [UNAVAILABLE_MESSAGE]
    assert course_file["ai_review"] is None


def test_review_runs_in_background(context_factory) -> None:
    context = context_factory(StaticProvider())

    with TestClient(create_app(context)) as client:
        response = client.post("/api/course-files/cf-1/review")
        assert response.status_code == 202
        assert response.json()["generation"] == 1
        assert response.json()["course_file"]["ai_review"]["status"] == "pending"

        review = _wait_for_review(client, "cf-1")
        missing = client.post("/api/course-files/cf-404/review")

    assert review["status"] == "complete"
    assert review["summary"] == "Looks complete."
    assert missing.status_code == 404


def test_administration_requires_admin_role(context) -> None:
    with TestClient(create_app(context)) as client:
        _login(client, "Bob", "password")
        forbidden = client.post("/api/users/student-alice/lock", json={"locked": True})
        client.post("/api/session/logout")

        _login(client)
        locked = client.post("/api/users/student-bob/lock", json={"locked": True})
        approved = client.post("/api/users/pending-user/registration", json={"status": "active"})
        unknown = client.post("/api/users/ghost/lock", json={"locked": True})

    assert forbidden.status_code == 403
    assert locked.json()["user"]["is_locked"] is True
    assert approved.json()["user"]["status"] == "active"
    assert unknown.status_code == 404


def test_settings_endpoints(context) -> None:
    with TestClient(create_app(context)) as client:
        _login(client)
        added = client.post("/api/settings/time-slots", json={"label": "4:30 - 5:15"})
        duplicate = client.post("/api/settings/time-slots", json={"label": "4:30 - 5:15"})
        colored = client.put("/api/settings/accent-color", json={"accent_color": "#16a34a"})

    assert added.json()["settings"]["time_slots"][-1] == "4:30 - 5:15"
    assert duplicate.status_code == 400
    assert colored.json()["settings"]["accent_color"] == "#16a34a"


def test_notifications_can_be_dismissed(context) -> None:
    with TestClient(create_app(context)) as client:
        _login(client)
        notification_id = client.get("/api/notifications").json()["notifications"][0]["id"]

        response = client.delete(f"/api/notifications/{notification_id}")
        again = client.delete(f"/api/notifications/{notification_id}")
        remaining = client.get("/api/notifications").json()["notifications"]

    assert response.status_code == 204
    assert again.status_code == 204
    assert remaining == []


def test_timetable_endpoints(context) -> None:
    entry = {
        "department": "CSE",
        "year": "III",
        "day": "Friday",
        "time_index": 2,
        "subject": "Compiler Design",
        "faculty": "Mr. SOUNDHUR",
    }
    with TestClient(create_app(context)) as client:
        _login(client, "Bob", "password")
        forbidden = client.post("/api/timetable", json=entry)
        client.post("/api/session/logout")

        _login(client)
        created = client.post("/api/timetable", json=entry)
        entry_id = created.json()["entry"]["id"]
        invalid = client.post("/api/timetable", json={**entry, "subject": "  "})
        updated = client.put(f"/api/timetable/{entry_id}", json={**entry, "room": "LH-3"})
        unknown = client.put("/api/timetable/tt-404", json=entry)
        deleted = client.delete(f"/api/timetable/{entry_id}")
        deleted_again = client.delete(f"/api/timetable/{entry_id}")
        cleared = client.delete("/api/timetable", params={"department": "CSE", "year": "II"})
        timetable = client.get("/api/state/timetable").json()["timetable"]

    assert forbidden.status_code == 403
    assert created.status_code == 201
    assert created.json()["entry"]["type"] == "class"
    assert invalid.status_code == 400
    assert updated.json()["entry"]["room"] == "LH-3"
    assert unknown.status_code == 404
    assert deleted.status_code == 204
    assert deleted_again.status_code == 404
    assert cleared.json()["removed"] > 0
    assert all(
        not (item["department"] == "CSE" and item["year"] == "II") for item in timetable
    )


def test_leave_request_endpoints(context) -> None:
    with TestClient(create_app(context)) as client:
        anonymous = client.post(
            "/api/leave-requests", json={"timetable_entry_id": "cse-ii-mon-4"}
        )
        _login(client, "Mr. SOUNDHUR", "password")
        filed = client.post(
            "/api/leave-requests",
            json={"timetable_entry_id": "cse-ii-mon-4", "reason": "Conference"},
        )
        missing_entry = client.post("/api/leave-requests", json={"timetable_entry_id": "nope"})
        client.post("/api/session/logout")

        _login(client, "Ms. YUVASRI", "password")
        not_hers = client.post("/api/leave-requests", json={"timetable_entry_id": "cse-ii-mon-4"})
        client.post("/api/session/logout")

        _login(client, "Jane Smith", "password")
        leave_id = filed.json()["leave_request"]["id"]
        approved = client.post(
            f"/api/leave-requests/{leave_id}/decision", json={"status": "approved"}
        )
        again = client.post(f"/api/leave-requests/{leave_id}/decision", json={"status": "rejected"})
        unknown = client.post("/api/leave-requests/leave-404/decision", json={"status": "approved"})
        client.post("/api/session/logout")

        _login(client, "Alice", "password")
        student = client.post("/api/leave-requests/leave-1/decision", json={"status": "rejected"})

    assert anonymous.status_code == 401
    assert filed.status_code == 201
    assert filed.json()["leave_request"]["status"] == "pending"
    assert missing_entry.status_code == 404
    assert not_hers.status_code == 403
    assert approved.json()["leave_request"]["status"] == "approved"
    assert again.status_code == 409
    assert unknown.status_code == 404
    assert student.status_code == 403
