"""Actions that mutate announcements, alerts, resources, users and settings."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import PurePath
from typing import TYPE_CHECKING, Dict, List, Optional

from .models import (
    CLOUD_SOURCES,
    LEAVE_DECISIONS,
    PERIOD_TYPES,
    CloudFileDescriptor,
    LeaveRequest,
    LeaveStatus,
    Resource,
    TimetableDraft,
    TimetableEntry,
    User,
    UserStatus,
)
from .naming import new_id

if TYPE_CHECKING:
    from ..context import PortalContext


LOGGER = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

SOURCE_LABELS: Dict[str, str] = {
    "local": "this device",
    "google_drive": "Google Drive",
    "onedrive": "OneDrive",
}

_RESOURCE_TYPES: Dict[str, str] = {
    ".pdf": "document",
    ".doc": "document",
    ".docx": "document",
    ".ppt": "presentation",
    ".pptx": "presentation",
    ".xls": "spreadsheet",
    ".xlsx": "spreadsheet",
    ".png": "image",
    ".jpg": "image",
    ".jpeg": "image",
    ".mp4": "video",
}


def _actor(ctx: "PortalContext") -> tuple[str, str]:
    user = ctx.store.current_user
    if user is None:
        return SYSTEM_ACTOR, "System"
    return user.id, user.name


def toggle_reaction(ctx: "PortalContext", announcement_id: str, emoji: str) -> None:
    """Add or remove the session user's *emoji* reaction on an announcement."""

    user = ctx.store.current_user
    if user is None:
        return
    if not any(item.id == announcement_id for item in ctx.store.announcements):
        LOGGER.debug("Reaction on unknown announcement %s ignored", announcement_id)
        return

    def _toggle(announcements):
        updated = []
        for announcement in announcements:
            if announcement.id != announcement_id:
                updated.append(announcement)
                continue
            reactions: Dict[str, List[str]] = {
                symbol: list(reactors) for symbol, reactors in announcement.reactions.items()
            }
            reactors = reactions.setdefault(emoji, [])
            if user.id in reactors:
                reactors.remove(user.id)
            else:
                reactors.append(user.id)
            updated.append(dataclasses.replace(announcement, reactions=reactions))
        return updated

    ctx.store.replace("announcements", _toggle)


def resolve_alert(ctx: "PortalContext", alert_id: str) -> None:
    """Mark a security alert resolved; the attempt is always audited."""

    store = ctx.store
    found = any(alert.id == alert_id for alert in store.security_alerts)
    if found:
        store.replace(
            "security_alerts",
            lambda alerts: [
                dataclasses.replace(alert, is_resolved=True) if alert.id == alert_id else alert
                for alert in alerts
            ],
        )
    actor_id, actor_name = _actor(ctx)
    ctx.audit.record(
        actor_id,
        actor_name,
        "Alert Resolved",
        "success" if found else "failure",
        f"Alert {alert_id}" if found else f"Alert {alert_id} not found",
    )
    ctx.notifications.push("Alert has been marked as resolved.", "info")


def _resource_type(name: str) -> str:
    return _RESOURCE_TYPES.get(PurePath(name).suffix.lower(), "document")


def import_cloud_resource(
    ctx: "PortalContext", descriptor: CloudFileDescriptor
) -> Optional[Resource]:
    """Register a file picked from a cloud drive as a new resource."""

    user = ctx.store.current_user
    if user is None:
        return None
    if descriptor.source not in CLOUD_SOURCES:
        raise ValueError(f"Unsupported cloud source: {descriptor.source!r}")

    resource = Resource(
        id=new_id("res"),
        name=descriptor.name,
        type=_resource_type(descriptor.name),
        department=user.dept,
        subject="General",
        uploader_id=user.id,
        uploader_name=user.name,
        timestamp=ctx.store.clock(),
        source=descriptor.source,
    )
    ctx.store.replace("resources", lambda resources: [resource, *resources])
    ctx.notifications.push(
        f'"{descriptor.name}" imported from {SOURCE_LABELS[descriptor.source]}.', "success"
    )
    return resource


def _update_user(ctx: "PortalContext", user_id: str, **changes) -> Optional[User]:
    target = ctx.store.find_user(user_id)
    if target is None:
        return None
    updated = dataclasses.replace(target, **changes)
    ctx.store.replace(
        "users", lambda users: [updated if user.id == user_id else user for user in users]
    )
    return updated


def set_user_lock(ctx: "PortalContext", user_id: str, locked: bool) -> Optional[User]:
    """Lock or unlock an account."""

    updated = _update_user(ctx, user_id, is_locked=locked)
    if updated is None:
        ctx.notifications.push("User not found.", "error")
        return None

    actor_id, actor_name = _actor(ctx)
    verb = "Locked" if locked else "Unlocked"
    ctx.audit.record(
        actor_id,
        actor_name,
        f"Account {verb}",
        "success",
        f"{verb} user: {updated.name}",
    )
    ctx.notifications.push(
        f'User account for "{updated.name}" has been {verb.lower()}.',
        "warning" if locked else "success",
    )
    return updated


def set_registration_status(
    ctx: "PortalContext", user_id: str, status: UserStatus
) -> Optional[User]:
    """Approve (``active``) or reject a registration."""

    if status not in ("active", "rejected"):
        raise ValueError(f"Registrations can only be approved or rejected, not {status!r}")

    updated = _update_user(ctx, user_id, status=status)
    if updated is None:
        ctx.notifications.push("User not found.", "error")
        return None

    approved = status == "active"
    actor_id, actor_name = _actor(ctx)
    ctx.audit.record(
        actor_id,
        actor_name,
        "Registration Approved" if approved else "Registration Rejected",
        "success",
        f"User: {updated.name}",
    )
    ctx.notifications.push(
        f'User "{updated.name}" has been {"approved" if approved else "rejected"}.',
        "success" if approved else "warning",
    )
    return updated


def add_time_slot(ctx: "PortalContext", label: str) -> bool:
    cleaned = label.strip()
    settings = ctx.store.settings
    if not cleaned:
        ctx.notifications.push("Time slot cannot be empty.", "error")
        return False
    if cleaned in settings.time_slots:
        ctx.notifications.push("Time slot already exists.", "error")
        return False
    ctx.store.replace(
        "settings",
        lambda current: dataclasses.replace(current, time_slots=[*current.time_slots, cleaned]),
    )
    ctx.notifications.push("Time slot added.", "success")
    return True


def set_accent_color(ctx: "PortalContext", color: str) -> None:
    ctx.store.replace(
        "settings", lambda current: dataclasses.replace(current, accent_color=color.strip())
    )


def _validate_draft(ctx: "PortalContext", draft: TimetableDraft) -> bool:
    if draft.type not in PERIOD_TYPES:
        raise ValueError(f"Unknown period type: {draft.type!r}")
    if draft.type in ("class", "common") and not draft.subject.strip():
        ctx.notifications.push("Subject cannot be empty for classes.", "error")
        return False
    if not 0 <= draft.time_index < len(ctx.store.settings.time_slots):
        ctx.notifications.push("Unknown time slot.", "error")
        return False
    return True


def _entry_from_draft(entry_id: str, draft: TimetableDraft) -> TimetableEntry:
    return TimetableEntry(
        id=entry_id,
        department=draft.department,
        year=draft.year,
        day=draft.day,
        time_index=draft.time_index,
        subject=draft.subject.strip(),
        type=draft.type,
        faculty=draft.faculty,
        room=draft.room,
    )


def add_timetable_entry(ctx: "PortalContext", draft: TimetableDraft) -> Optional[TimetableEntry]:
    if not _validate_draft(ctx, draft):
        return None
    entry = _entry_from_draft(new_id("tt"), draft)
    ctx.store.replace("timetable", lambda entries: [*entries, entry])
    ctx.notifications.push("Entry added successfully.", "success")
    return entry


def update_timetable_entry(
    ctx: "PortalContext", entry_id: str, draft: TimetableDraft
) -> Optional[TimetableEntry]:
    """Overwrite every editable field of an existing entry."""

    if ctx.store.find_timetable_entry(entry_id) is None:
        ctx.notifications.push("Timetable entry not found.", "error")
        return None
    if not _validate_draft(ctx, draft):
        return None
    updated = _entry_from_draft(entry_id, draft)
    ctx.store.replace(
        "timetable",
        lambda entries: [updated if entry.id == entry_id else entry for entry in entries],
    )
    ctx.notifications.push("Entry updated successfully.", "success")
    return updated


def delete_timetable_entry(ctx: "PortalContext", entry_id: str) -> bool:
    if ctx.store.find_timetable_entry(entry_id) is None:
        ctx.notifications.push("Timetable entry not found.", "error")
        return False
    ctx.store.replace(
        "timetable", lambda entries: [entry for entry in entries if entry.id != entry_id]
    )
    ctx.notifications.push("Entry deleted successfully.", "success")
    return True


def clear_timetable(
    ctx: "PortalContext",
    *,
    department: Optional[str] = None,
    year: Optional[str] = None,
) -> int:
    """Remove every entry matching *department* and *year*; ``None`` matches all.

    Returns the number of removed entries.
    """

    def _matches(entry: TimetableEntry) -> bool:
        return (department is None or entry.department == department) and (
            year is None or entry.year == year
        )

    removed = sum(1 for entry in ctx.store.timetable if _matches(entry))
    if removed == 0:
        ctx.notifications.push("No timetable entries matched.", "info")
        return 0

    ctx.store.replace(
        "timetable", lambda entries: [entry for entry in entries if not _matches(entry)]
    )
    actor_id, actor_name = _actor(ctx)
    scope = f"{department or 'all departments'}, year {year or 'all'}"
    ctx.audit.record(
        actor_id, actor_name, "Timetable Cleared", "success", f"{removed} entries ({scope})"
    )
    ctx.notifications.push(f"Removed {removed} timetable entries.", "warning")
    return removed


def request_leave(
    ctx: "PortalContext", timetable_entry_id: str, reason: Optional[str] = None
) -> Optional[LeaveRequest]:
    """File a leave request for one of the session faculty member's classes."""

    user = ctx.store.current_user
    if user is None:
        return None
    entry = ctx.store.find_timetable_entry(timetable_entry_id)
    if entry is None:
        ctx.notifications.push("Timetable entry not found.", "error")
        return None
    if user.role != "faculty" or entry.type != "class" or entry.faculty != user.name:
        ctx.notifications.push("You can only request leave for your own classes.", "error")
        return None

    leave = LeaveRequest(
        id=new_id("leave"),
        faculty_id=user.id,
        faculty_name=user.name,
        timetable_entry_id=entry.id,
        day=entry.day,
        time_index=entry.time_index,
        status="pending",
        timestamp=ctx.store.clock(),
        reason=(reason or "").strip() or None,
    )
    ctx.store.replace("leave_requests", lambda requests: [*requests, leave])
    ctx.notifications.push("Leave request submitted successfully.", "success")
    return leave


def can_respond_to_leave(ctx: "PortalContext", user: User, leave: LeaveRequest) -> bool:
    """Admins decide any request; a head of department decides their own faculty's."""

    if user.role == "admin":
        return True
    if user.role == "hod":
        faculty = ctx.store.find_user(leave.faculty_id)
        return faculty is not None and faculty.dept == user.dept
    return False


def respond_to_leave(
    ctx: "PortalContext", request_id: str, decision: LeaveStatus
) -> Optional[LeaveRequest]:
    """Approve or reject a pending leave request."""

    if decision not in LEAVE_DECISIONS:
        raise ValueError(f"Leave requests can only be approved or rejected, not {decision!r}")

    user = ctx.store.current_user
    if user is None:
        return None
    leave = ctx.store.find_leave_request(request_id)
    if leave is None:
        ctx.notifications.push("Leave request not found.", "error")
        return None
    if leave.status != "pending":
        ctx.notifications.push(f"Leave request has already been {leave.status}.", "warning")
        return None
    if not can_respond_to_leave(ctx, user, leave):
        ctx.audit.record(
            user.id, user.name, "Leave Decision Denied", "failure", f"Request {request_id}"
        )
        ctx.notifications.push("You are not allowed to decide this leave request.", "error")
        return None

    decided = dataclasses.replace(leave, status=decision)
    ctx.store.replace(
        "leave_requests",
        lambda requests: [decided if item.id == request_id else item for item in requests],
    )
    ctx.audit.record(
        user.id,
        user.name,
        "Leave Approved" if decision == "approved" else "Leave Rejected",
        "success",
        f"{leave.faculty_name}: {leave.day}, period {leave.time_index + 1}",
    )
    ctx.notifications.push(
        f"Leave request {decision}.", "success" if decision == "approved" else "warning"
    )
    return decided


__all__ = [
    "add_time_slot",
    "add_timetable_entry",
    "can_respond_to_leave",
    "clear_timetable",
    "delete_timetable_entry",
    "import_cloud_resource",
    "request_leave",
    "resolve_alert",
    "respond_to_leave",
    "set_accent_color",
    "set_registration_status",
    "set_user_lock",
    "toggle_reaction",
    "update_timetable_entry",
]
