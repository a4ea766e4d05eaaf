from __future__ import annotations

import dataclasses

import pytest

from portal.context import PortalContext
from portal.services.auth import login, logout, signup
from portal.services.models import SignupCandidate


def _messages(context: PortalContext):
    return [(item.type, item.message) for item in context.notifications.items()]


def _lock(context: PortalContext, user_id: str) -> None:
    context.store.replace(
        "users",
        lambda users: [
            dataclasses.replace(user, is_locked=True) if user.id == user_id else user
            for user in users
        ],
    )


def test_seeded_admin_can_log_in(context: PortalContext) -> None:
    assert login(context, "Admin", "admin") is True

    assert context.store.session_user_id == "admin"
    assert context.store.view == "dashboard"
    latest = context.audit.entries[0]
    assert latest.action == "User Login"
    assert latest.status == "success"
    assert latest.user_id == "admin"
    assert ("success", "Welcome back, Admin!") in _messages(context)


def test_login_name_comparison_ignores_case(context: PortalContext) -> None:
    assert login(context, "  aLiCe ", "password") is True
    assert context.store.current_user.id == "student-alice"


def test_wrong_password_is_audited_as_failure(context: PortalContext) -> None:
    before = len(context.audit)

    assert login(context, "Admin", "wrong") is False

    assert context.store.session_user_id is None
    assert context.store.view == "auth"
    assert len(context.audit) == before + 1
    latest = context.audit.entries[0]
    assert latest.action == "Failed Login"
    assert latest.status == "failure"
    assert latest.user_id == "admin"
    assert ("error", "Invalid username or password.") in _messages(context)


def test_unknown_user_is_audited_with_attempted_name(context: PortalContext) -> None:
    assert login(context, "Mallory", "secret") is False

    latest = context.audit.entries[0]
    assert latest.user_id == "unknown"
    assert latest.user_name == "Mallory"


def test_locked_account_is_refused(context: PortalContext) -> None:
    _lock(context, "student-bob")

    assert login(context, "Bob", "password") is False

    assert context.store.session_user_id is None
    latest = context.audit.entries[0]
    assert latest.action == "Locked Account Login Attempt"
    assert latest.status == "failure"
    assert [kind for kind, _ in _messages(context)] == ["error"]


def test_pending_account_is_refused(context: PortalContext) -> None:
    assert login(context, "Pending User", "password") is False

    assert context.store.session_user_id is None
    assert context.audit.entries[0].action == "Inactive Account Login Attempt"
    assert _messages(context) == [("warning", "Your account is pending administrator approval.")]


def test_inactive_status_is_reported_before_lock(context: PortalContext) -> None:
    _lock(context, "pending-user")

    assert login(context, "Pending User", "password") is False

    assert context.audit.entries[0].action == "Inactive Account Login Attempt"
    assert _messages(context) == [("warning", "Your account is pending administrator approval.")]


def test_duplicate_signup_is_rejected_without_audit(context: PortalContext) -> None:
    users_before = list(context.store.users)
    audit_before = len(context.audit)

    result = signup(context, SignupCandidate(name="admin", password="x", role="faculty", dept="CSE"))

    assert result.success is False
    assert result.user is None
    assert context.store.users == users_before
    assert len(context.audit) == audit_before
    assert _messages(context) == [("error", 'A user named "admin" already exists.')]


def test_signup_creates_active_user_and_records_audit(context: PortalContext) -> None:
    result = signup(
        context,
        SignupCandidate(name=" Carol ", password="pw", role="student", dept="CSE", year="I"),
    )

    assert result.success is True
    assert result.message == "Registration successful! You can now log in."
    user = context.store.find_user_by_name("carol")
    assert user == result.user
    assert user.id == "student-carol"
    assert user.name == "Carol"
    assert user.status == "active"
    assert user.year == "I"
    assert context.audit.entries[0].action == "User Signup"
    assert context.store.session_user_id is None
    assert login(context, "Carol", "pw") is True


def test_signup_ignores_year_for_faculty_and_dept_for_admin(context: PortalContext) -> None:
    faculty = signup(
        context,
        SignupCandidate(name="Dana", password="pw", role="faculty", dept="ECE", year="III"),
    ).user
    admin = signup(context, SignupCandidate(name="Eve", password="pw", role="admin", dept="ECE")).user

    assert faculty.year is None
    assert admin.dept == "all"


def test_signup_rejects_unknown_role(context: PortalContext) -> None:
    with pytest.raises(ValueError):
        signup(context, SignupCandidate(name="Zed", password="pw", role="janitor", dept="CSE"))  # type: ignore[arg-type]


def test_logout_clears_session_and_audits(context: PortalContext) -> None:
    login(context, "Admin", "admin")

    logout(context)

    assert context.store.session_user_id is None
    assert context.store.view == "auth"
    assert context.audit.entries[0].action == "User Logout"


def test_logout_without_session_is_quiet(context: PortalContext) -> None:
    before = len(context.audit)

    logout(context)

    assert len(context.audit) == before
    assert context.store.view == "auth"
