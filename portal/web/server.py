"""FastAPI application exposing the portal actions as a JSON API.

Every handler is ``async def`` so that all store mutations run on the
server's event loop thread.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..context import PortalContext
from ..services import auth, mutations
from ..services.models import (
    CloudFileDescriptor,
    PeriodType,
    SignupCandidate,
    TimetableDraft,
    User,
    UserRole,
)
from ..services.store import COLLECTIONS


LOGGER = logging.getLogger("campus_portal.web")

PUBLIC_COLLECTIONS = tuple(name for name in COLLECTIONS if name not in ("session", "view"))


def _log_event(message: str, **fields: Any) -> None:
    details = " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)
    if details:
        LOGGER.info("[API] %s (%s)", message, details)
    else:
        LOGGER.info("[API] %s", message)


def _serialize_user(user: User) -> Dict[str, Any]:
    payload = asdict(user)
    payload.pop("password", None)
    return payload


def _serialize_collection(context: PortalContext, name: str) -> Any:
    value = context.store.get(name)
    if name == "users":
        return [_serialize_user(user) for user in value]
    if isinstance(value, list):
        return [asdict(item) for item in value]
    return asdict(value)


class LoginPayload(BaseModel):
    name: str
    password: str


class SignupPayload(BaseModel):
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: UserRole
    dept: str
    year: Optional[str] = None


class ReactionPayload(BaseModel):
    emoji: str = Field(min_length=1)


class CloudImportPayload(BaseModel):
    name: str = Field(min_length=1)
    source: Literal["google_drive", "onedrive"] = "google_drive"


class LockPayload(BaseModel):
    locked: bool


class RegistrationPayload(BaseModel):
    status: Literal["active", "rejected"]


class TimeSlotPayload(BaseModel):
    label: str


class AccentColorPayload(BaseModel):
    accent_color: str = Field(min_length=1)


class TimetablePayload(BaseModel):
    department: str = Field(min_length=1)
    year: str = Field(min_length=1)
    day: str = Field(min_length=1)
    time_index: int = Field(ge=0)
    subject: str = ""
    type: PeriodType = "class"
    faculty: Optional[str] = None
    room: Optional[str] = None

    def to_draft(self) -> TimetableDraft:
        return TimetableDraft(**self.model_dump())


class LeaveRequestPayload(BaseModel):
    timetable_entry_id: str = Field(min_length=1)
    reason: Optional[str] = None


class LeaveDecisionPayload(BaseModel):
    status: Literal["approved", "rejected"]


def create_app(context: PortalContext, *, root_path: str | None = None) -> FastAPI:
    """Return a configured FastAPI application bound to *context*."""

    @contextlib.asynccontextmanager
    async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await context.reviews.wait_idle()
        context.close()

    app = FastAPI(
        title="Campus Portal",
        description="State core of the institutional portal",
        root_path=root_path or "",
        lifespan=_lifespan,
    )
    app.state.context = context
    app.state.server = None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _require_session() -> User:
        user = context.store.current_user
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
        return user

    def _require_admin() -> User:
        user = _require_session()
        if user.role not in ("admin", "principal"):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator only")
        return user

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    @app.get("/api/session")
    async def get_session() -> Dict[str, Any]:
        user = context.store.current_user
        return {
            "user": _serialize_user(user) if user else None,
            "view": context.store.view,
        }

    @app.post("/api/session/login")
    async def login(payload: LoginPayload) -> Dict[str, Any]:
        _log_event("Login attempt", name=payload.name)
        success = auth.login(context, payload.name, payload.password)
        user = context.store.current_user if success else None
        return {"success": success, "user": _serialize_user(user) if user else None}

    @app.post("/api/session/signup")
    async def signup(payload: SignupPayload) -> Dict[str, Any]:
        _log_event("Signup attempt", name=payload.name, role=payload.role)
        result = auth.signup(
            context,
            SignupCandidate(
                name=payload.name,
                password=payload.password,
                role=payload.role,
                dept=payload.dept,
                year=payload.year,
            ),
        )
        if not result.success:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
        assert result.user is not None
        return {"message": result.message, "user": _serialize_user(result.user)}

    @app.post("/api/session/logout")
    async def logout() -> Dict[str, Any]:
        auth.logout(context)
        return {"view": context.store.view}

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @app.get("/api/state")
    async def get_state() -> Dict[str, Any]:
        return {name: _serialize_collection(context, name) for name in PUBLIC_COLLECTIONS}

    @app.get("/api/state/{collection}")
    async def get_collection(collection: str) -> Dict[str, Any]:
        if collection not in PUBLIC_COLLECTIONS:
            raise HTTPException(status_code=404, detail="Collection not found")
        return {collection: _serialize_collection(context, collection)}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    @app.post("/api/announcements/{announcement_id}/reactions")
    async def toggle_reaction(announcement_id: str, payload: ReactionPayload) -> Dict[str, Any]:
        _require_session()
        announcement = next(
            (item for item in context.store.announcements if item.id == announcement_id), None
        )
        if announcement is None:
            raise HTTPException(status_code=404, detail="Announcement not found")
        mutations.toggle_reaction(context, announcement_id, payload.emoji)
        updated = next(item for item in context.store.announcements if item.id == announcement_id)
        return {"announcement": asdict(updated)}

    @app.post("/api/alerts/{alert_id}/resolve")
    async def resolve_alert(alert_id: str) -> Dict[str, Any]:
        _require_admin()
        mutations.resolve_alert(context, alert_id)
        alert = next((item for item in context.store.security_alerts if item.id == alert_id), None)
        if alert is None:
            raise HTTPException(status_code=404, detail="Alert not found")
        return {"alert": asdict(alert)}

    @app.post("/api/resources/import", status_code=status.HTTP_201_CREATED)
    async def import_resource(payload: CloudImportPayload) -> Dict[str, Any]:
        _require_session()
        resource = mutations.import_cloud_resource(
            context, CloudFileDescriptor(name=payload.name, source=payload.source)
        )
        assert resource is not None
        return {"resource": asdict(resource)}

    @app.post("/api/course-files/{course_file_id}/review", status_code=status.HTTP_202_ACCEPTED)
    async def request_review(course_file_id: str) -> Dict[str, Any]:
        if not context.reviews.available:
            context.reviews.start(course_file_id)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="AI review is not configured",
            )
        if context.store.find_course_file(course_file_id) is None:
            raise HTTPException(status_code=404, detail="Course file not found")
        context.reviews.start(course_file_id)
        course_file = context.store.find_course_file(course_file_id)
        assert course_file is not None
        _log_event("Review started", course_file=course_file_id)
        return {
            "course_file": asdict(course_file),
            "generation": context.reviews.generation(course_file_id),
        }

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    @app.post("/api/users/{user_id}/lock")
    async def set_user_lock(user_id: str, payload: LockPayload) -> Dict[str, Any]:
        _require_admin()
        updated = mutations.set_user_lock(context, user_id, payload.locked)
        if updated is None:
            raise HTTPException(status_code=404, detail="User not found")
        return {"user": _serialize_user(updated)}

    @app.post("/api/users/{user_id}/registration")
    async def set_registration(user_id: str, payload: RegistrationPayload) -> Dict[str, Any]:
        _require_admin()
        updated = mutations.set_registration_status(context, user_id, payload.status)
        if updated is None:
            raise HTTPException(status_code=404, detail="User not found")
        return {"user": _serialize_user(updated)}

    @app.post("/api/settings/time-slots")
    async def add_time_slot(payload: TimeSlotPayload) -> Dict[str, Any]:
        _require_admin()
        if not mutations.add_time_slot(context, payload.label):
            raise HTTPException(status_code=400, detail="Invalid or duplicate time slot")
        return {"settings": asdict(context.store.settings)}

    @app.put("/api/settings/accent-color")
    async def set_accent_color(payload: AccentColorPayload) -> Dict[str, Any]:
        _require_session()
        mutations.set_accent_color(context, payload.accent_color)
        return {"settings": asdict(context.store.settings)}

    # ------------------------------------------------------------------
    # Timetable and leave
    # ------------------------------------------------------------------
    @app.post("/api/timetable", status_code=status.HTTP_201_CREATED)
    async def add_timetable_entry(payload: TimetablePayload) -> Dict[str, Any]:
        _require_admin()
        entry = mutations.add_timetable_entry(context, payload.to_draft())
        if entry is None:
            raise HTTPException(status_code=400, detail="Invalid timetable entry")
        return {"entry": asdict(entry)}

    @app.put("/api/timetable/{entry_id}")
    async def update_timetable_entry(entry_id: str, payload: TimetablePayload) -> Dict[str, Any]:
        _require_admin()
        if context.store.find_timetable_entry(entry_id) is None:
            raise HTTPException(status_code=404, detail="Timetable entry not found")
        entry = mutations.update_timetable_entry(context, entry_id, payload.to_draft())
        if entry is None:
            raise HTTPException(status_code=400, detail="Invalid timetable entry")
        return {"entry": asdict(entry)}

    @app.delete("/api/timetable/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_timetable_entry(entry_id: str) -> None:
        _require_admin()
        if not mutations.delete_timetable_entry(context, entry_id):
            raise HTTPException(status_code=404, detail="Timetable entry not found")

    @app.delete("/api/timetable")
    async def clear_timetable(
        department: Optional[str] = None, year: Optional[str] = None
    ) -> Dict[str, Any]:
        _require_admin()
        removed = mutations.clear_timetable(context, department=department, year=year)
        _log_event("Timetable cleared", department=department, year=year, removed=removed)
        return {"removed": removed}

    @app.post("/api/leave-requests", status_code=status.HTTP_201_CREATED)
    async def request_leave(payload: LeaveRequestPayload) -> Dict[str, Any]:
        _require_session()
        if context.store.find_timetable_entry(payload.timetable_entry_id) is None:
            raise HTTPException(status_code=404, detail="Timetable entry not found")
        leave = mutations.request_leave(context, payload.timetable_entry_id, payload.reason)
        if leave is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Leave can only be requested for your own classes",
            )
        return {"leave_request": asdict(leave)}

    @app.post("/api/leave-requests/{request_id}/decision")
    async def decide_leave(request_id: str, payload: LeaveDecisionPayload) -> Dict[str, Any]:
        _require_session()
        existing = context.store.find_leave_request(request_id)
        if existing is None:
            raise HTTPException(status_code=404, detail="Leave request not found")
        decided = mutations.respond_to_leave(context, request_id, payload.status)
        if decided is None:
            if existing.status != "pending":
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Leave request already {existing.status}",
                )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to decide this request"
            )
        return {"leave_request": asdict(decided)}

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    @app.get("/api/notifications")
    async def list_notifications() -> Dict[str, List[Dict[str, Any]]]:
        return {"notifications": [asdict(item) for item in context.notifications.items()]}

    @app.delete("/api/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def dismiss_notification(notification_id: str) -> None:
        context.notifications.dismiss(notification_id)

    return app


__all__ = ["create_app"]
