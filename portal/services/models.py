"""Entities held by the portal domain store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional


UserRole = Literal["student", "faculty", "hod", "admin", "class advisor", "principal"]
UserStatus = Literal["active", "pending_approval", "rejected"]
AuditOutcome = Literal["success", "failure", "info"]
AlertType = Literal["Anomaly", "DrillResult", "Threat"]
AlertSeverity = Literal["low", "medium", "high", "critical"]
RecommendedAction = Literal["LOCK_USER", "MONITOR", "NONE"]
ResourceSource = Literal["local", "google_drive", "onedrive"]
CourseFileStatus = Literal["pending_review", "approved", "needs_revision"]
ReviewStatus = Literal["pending", "complete", "failed"]
NotificationType = Literal["info", "success", "warning", "error"]
PeriodType = Literal["break", "class", "common"]
LeaveStatus = Literal["pending", "approved", "rejected"]

USER_ROLES = ("student", "faculty", "hod", "admin", "class advisor", "principal")
USER_STATUSES = ("active", "pending_approval", "rejected")
NOTIFICATION_TYPES = ("info", "success", "warning", "error")
CLOUD_SOURCES = ("google_drive", "onedrive")
PERIOD_TYPES = ("break", "class", "common")
LEAVE_DECISIONS = ("approved", "rejected")


@dataclass
class Attendance:
    present: int
    total: int


@dataclass
class Grade:
    subject: str
    score: int


@dataclass
class User:
    id: str
    name: str
    password: str
    role: UserRole
    dept: str
    status: UserStatus = "active"
    year: Optional[str] = None
    is_locked: bool = False
    attendance: Optional[Attendance] = None
    grades: List[Grade] = field(default_factory=list)
    specialization: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class AuditLogEntry:
    id: str
    timestamp: int
    user_id: str
    user_name: str
    action: str
    ip: str
    status: AuditOutcome
    details: Optional[str] = None


@dataclass
class ResponsePlan:
    containment: str
    investigation: str
    recovery: str
    recommended_action: RecommendedAction = "NONE"


@dataclass
class SecurityAlert:
    id: str
    type: AlertType
    title: str
    description: str
    timestamp: int
    severity: AlertSeverity
    related_user_id: Optional[str] = None
    is_resolved: bool = False
    response_plan: Optional[ResponsePlan] = None


@dataclass
class Announcement:
    id: str
    title: str
    content: str
    author: str
    timestamp: int
    target_role: str = "all"
    target_dept: str = "all"
    reactions: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class Resource:
    id: str
    name: str
    type: str
    department: str
    subject: str
    uploader_id: str
    uploader_name: str
    timestamp: int
    source: ResourceSource = "local"


@dataclass
class CourseFileAttachment:
    name: str
    type: str


@dataclass
class Correction:
    original: str
    corrected: str


@dataclass
class AiReview:
    summary: str
    suggestions: List[str]
    status: ReviewStatus
    corrections: List[Correction] = field(default_factory=list)


@dataclass
class CourseFile:
    id: str
    faculty_id: str
    faculty_name: str
    department: str
    subject: str
    semester: str
    files: List[CourseFileAttachment]
    status: CourseFileStatus
    submitted_at: int
    ai_review: Optional[AiReview] = None


@dataclass
class TimetableEntry:
    id: str
    department: str
    year: str
    day: str
    time_index: int
    subject: str
    type: PeriodType
    faculty: Optional[str] = None
    room: Optional[str] = None


@dataclass
class TimetableDraft:
    """Editable fields of a timetable entry; the id is assigned by the store."""

    department: str
    year: str
    day: str
    time_index: int
    subject: str
    type: PeriodType = "class"
    faculty: Optional[str] = None
    room: Optional[str] = None


@dataclass
class LeaveRequest:
    id: str
    faculty_id: str
    faculty_name: str
    timetable_entry_id: str
    day: str
    time_index: int
    status: LeaveStatus
    timestamp: int
    reason: Optional[str] = None


@dataclass
class AppSettings:
    time_slots: List[str]
    accent_color: str = "#4f46e5"


@dataclass(frozen=True)
class AppNotification:
    id: str
    message: str
    type: NotificationType


@dataclass
class SignupCandidate:
    """Fields collected by the registration form."""

    name: str
    password: str
    role: UserRole
    dept: str
    year: Optional[str] = None


@dataclass
class CloudFileDescriptor:
    """A file picked from a cloud drive."""

    name: str
    source: ResourceSource = "google_drive"


__all__ = [
    "AiReview",
    "Announcement",
    "AppNotification",
    "AppSettings",
    "Attendance",
    "AuditLogEntry",
    "CLOUD_SOURCES",
    "CloudFileDescriptor",
    "Correction",
    "CourseFile",
    "CourseFileAttachment",
    "Grade",
    "LEAVE_DECISIONS",
    "LeaveRequest",
    "NOTIFICATION_TYPES",
    "PERIOD_TYPES",
    "Resource",
    "ResponsePlan",
    "SecurityAlert",
    "SignupCandidate",
    "TimetableDraft",
    "TimetableEntry",
    "USER_ROLES",
    "USER_STATUSES",
    "User",
]
