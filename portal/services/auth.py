"""Session actions: login, signup and logout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .models import USER_ROLES, SignupCandidate, User
from .naming import build_user_id, names_match

if TYPE_CHECKING:
    from ..context import PortalContext


LOGGER = logging.getLogger(__name__)

UNKNOWN_ACTOR = "unknown"

LOGIN_ACTION = "User Login"
FAILED_LOGIN_ACTION = "Failed Login"
LOCKED_LOGIN_ACTION = "Locked Account Login Attempt"
INACTIVE_LOGIN_ACTION = "Inactive Account Login Attempt"
SIGNUP_ACTION = "User Signup"
LOGOUT_ACTION = "User Logout"


@dataclass(frozen=True)
class SignupResult:
    success: bool
    message: str
    user: Optional[User] = None


def login(ctx: "PortalContext", name: str, secret: str) -> bool:
    """Start a session for *name* when the secret matches and the account is usable."""

    store = ctx.store
    user = store.find_user_by_name(name)

    if user is None or user.password != secret:
        ctx.audit.record(
            user.id if user else UNKNOWN_ACTOR,
            user.name if user else name,
            FAILED_LOGIN_ACTION,
            "failure",
            "Invalid credentials",
        )
        ctx.notifications.push("Invalid username or password.", "error")
        return False

    if user.status != "active":
        ctx.audit.record(
            user.id, user.name, INACTIVE_LOGIN_ACTION, "failure", f"Account status: {user.status}"
        )
        if user.status == "pending_approval":
            message = "Your account is pending administrator approval."
        else:
            message = "Your account registration was rejected."
        ctx.notifications.push(message, "warning")
        return False

    if user.is_locked:
        ctx.audit.record(user.id, user.name, LOCKED_LOGIN_ACTION, "failure", "Account is locked")
        ctx.notifications.push(
            "Your account has been locked due to suspicious activity. "
            "Please contact an administrator.",
            "error",
        )
        return False

    store.replace("session", user.id)
    store.replace("view", "dashboard")
    ctx.audit.record(user.id, user.name, LOGIN_ACTION, "success")
    ctx.notifications.push(f"Welcome back, {user.name}!", "success")
    LOGGER.info("User %s logged in", user.id)
    return True


def signup(ctx: "PortalContext", candidate: SignupCandidate) -> SignupResult:
    """Register *candidate* unless the display name is already taken."""

    name = candidate.name.strip()
    if candidate.role not in USER_ROLES:
        raise ValueError(f"Unknown role: {candidate.role!r}")

    store = ctx.store
    if any(names_match(existing.name, name) for existing in store.users):
        message = f'A user named "{name}" already exists.'
        ctx.notifications.push(message, "error")
        return SignupResult(success=False, message=message)

    user = User(
        id=build_user_id(candidate.role, name, taken={existing.id for existing in store.users}),
        name=name,
        password=candidate.password,
        role=candidate.role,
        dept="all" if candidate.role == "admin" else candidate.dept,
        year=candidate.year if candidate.role in ("student", "class advisor") else None,
        status="active",
    )
    store.replace("users", lambda users: [*users, user])
    ctx.audit.record(user.id, user.name, SIGNUP_ACTION, "success", f"Role: {user.role}")
    message = "Registration successful! You can now log in."
    ctx.notifications.push(message, "success")
    return SignupResult(success=True, message=message, user=user)


def logout(ctx: "PortalContext") -> None:
    """End the active session, if any, and return to the sign-in view."""

    store = ctx.store
    user = store.current_user
    if user is not None:
        ctx.audit.record(user.id, user.name, LOGOUT_ACTION, "info")
    elif store.session_user_id is not None:
        ctx.audit.record(store.session_user_id, store.session_user_id, LOGOUT_ACTION, "info")
    store.replace("session", None)
    store.replace("view", "auth")


__all__ = ["SignupResult", "login", "logout", "signup"]
