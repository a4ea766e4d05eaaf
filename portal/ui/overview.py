"""Shared helpers for building overview snapshots of the portal store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..services.models import AuditLogEntry, CourseFile, SecurityAlert
from ..services.store import DomainStore


COLLECTION_LABELS: Dict[str, str] = {
    "users": "👥 Users",
    "timetable": "🗓️ Timetable entries",
    "announcements": "📣 Announcements",
    "resources": "📚 Resources",
    "course_files": "🗂️ Course files",
    "security_alerts": "🛡️ Security alerts",
    "leave_requests": "📨 Leave requests",
    "audit_log": "📝 Audit entries",
}


@dataclass
class ReviewOverview:
    course_file: CourseFile
    review_status: str


@dataclass
class OverviewSnapshot:
    counts: Dict[str, int]
    session_user: Optional[str]
    open_alerts: List[SecurityAlert]
    reviews: List[ReviewOverview]
    recent_audit: List[AuditLogEntry]
    pending_registrations: int
    time_slot_count: int


def collect_overview(store: DomainStore, *, audit_limit: int = 5) -> OverviewSnapshot:
    """Aggregate store data into a convenient snapshot for UIs."""

    counts = {name: len(store.get(name)) for name in COLLECTION_LABELS}
    current = store.current_user
    reviews = [
        ReviewOverview(
            course_file=item,
            review_status=item.ai_review.status if item.ai_review else "not requested",
        )
        for item in store.course_files
    ]
    return OverviewSnapshot(
        counts=counts,
        session_user=current.name if current else None,
        open_alerts=[alert for alert in store.security_alerts if not alert.is_resolved],
        reviews=reviews,
        recent_audit=list(store.get("audit_log"))[:audit_limit],
        pending_registrations=sum(1 for user in store.users if user.status == "pending_approval"),
        time_slot_count=len(store.settings.time_slots),
    )


__all__ = ["COLLECTION_LABELS", "OverviewSnapshot", "ReviewOverview", "collect_overview"]
