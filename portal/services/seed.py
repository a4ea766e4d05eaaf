"""Demo content written to a fresh durable store on first run."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from .models import (
    Announcement,
    AppSettings,
    Attendance,
    AuditLogEntry,
    CourseFile,
    CourseFileAttachment,
    Grade,
    LeaveRequest,
    Resource,
    SecurityAlert,
    TimetableEntry,
    User,
)
from .naming import new_id


HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

TIME_SLOTS_DEFAULT: Tuple[str, ...] = (
    "9:00 - 9:50",
    "9:50 - 10:35",
    "10:35 - 10:50",
    "10:50 - 11:35",
    "11:35 - 12:20",
    "12:20 - 1:05",
    "1:05 - 2:00",
    "2:00 - 2:50",
    "2:50 - 3:40",
    "3:40 - 4:30",
)

BREAK_SLOT = 2
LUNCH_SLOT = 6

# (day, slot, subject, faculty, room) for the CSE II year timetable.
_CSE_II_PERIODS: Tuple[Tuple[str, int, str, str, str], ...] = (
    ("Monday", 1, "OOPS", "Ms. MYSHREE B", "A212"),
    ("Monday", 3, "FDS", "Mrs. ANITHA M", "A212"),
    ("Monday", 4, "DST", "Mr. SOUNDHUR", "A212"),
    ("Monday", 5, "NET", "Mrs. ANITHA M", "CSL-2"),
    ("Monday", 7, "OOPS LAB", "Ms. MYSHREE B", "CSL-1"),
    ("Tuesday", 0, "DPCO", "Ms. RANJANI J", "A212"),
    ("Tuesday", 1, "DST", "Mr. SOUNDHUR", "A212"),
    ("Tuesday", 3, "FDS LAB", "Mrs. ANITHA M", "CSL-2"),
    ("Tuesday", 7, "OOPS", "Ms. MYSHREE B", "A212"),
    ("Wednesday", 1, "DST", "Mr. SOUNDHUR", "A212"),
    ("Wednesday", 3, "FDS", "Mrs. ANITHA M", "A212"),
    ("Wednesday", 7, "DS LAB", "Mr. SOUNDHUR", "CSL-1"),
    ("Thursday", 0, "DST", "Mr. SOUNDHUR", "A212"),
    ("Thursday", 3, "OOPS", "Ms. MYSHREE B", "A212"),
    ("Thursday", 5, "DPCO", "Ms. RANJANI J", "A212"),
    ("Friday", 0, "DPCO", "Ms. RANJANI J", "A212"),
    ("Friday", 4, "OOPS", "Ms. MYSHREE B", "A212"),
    ("Friday", 7, "FDS", "Mrs. ANITHA M", "A212"),
)


@dataclass
class SeedData:
    users: List[User]
    timetable: List[TimetableEntry]
    announcements: List[Announcement]
    resources: List[Resource]
    security_alerts: List[SecurityAlert]
    course_files: List[CourseFile]
    leave_requests: List[LeaveRequest]
    audit_log: List[AuditLogEntry]
    settings: AppSettings


def build_users() -> List[User]:
    return [
        User(id="admin", name="Admin", password="admin", role="admin", dept="all"),
        User(id="principal", name="Principal", password="password", role="principal", dept="all"),
        User(
            id="hod-jane-smith",
            name="Jane Smith",
            password="password",
            role="hod",
            dept="CSE",
            specialization=["AI/ML", "Data Structures"],
        ),
        User(
            id="advisor-anitha-m",
            name="Mrs. ANITHA M",
            password="password",
            role="class advisor",
            dept="CSE",
            year="II",
            specialization=["Data Science", "Web Technologies"],
        ),
        User(
            id="faculty-yuvasri",
            name="Ms. YUVASRI",
            password="password",
            role="faculty",
            dept="MATHS",
            specialization=["Discrete Mathematics"],
        ),
        User(
            id="faculty-soundhur",
            name="Mr. SOUNDHUR",
            password="password",
            role="faculty",
            dept="CSE",
            specialization=["Data Structures"],
        ),
        User(
            id="student-alice",
            name="Alice",
            password="password",
            role="student",
            dept="CSE",
            year="II",
            attendance=Attendance(present=70, total=75),
            grades=[Grade(subject="Data Structures", score=85), Grade(subject="AI/ML", score=91)],
        ),
        User(
            id="student-bob",
            name="Bob",
            password="password",
            role="student",
            dept="ECE",
            year="II",
            attendance=Attendance(present=68, total=75),
            grades=[Grade(subject="Digital Circuits", score=92)],
        ),
        User(
            id="pending-user",
            name="Pending User",
            password="password",
            role="faculty",
            dept="EEE",
            status="pending_approval",
        ),
    ]


def build_timetable() -> List[TimetableEntry]:
    entries: List[TimetableEntry] = []
    for day in DAYS:
        for slot, subject in ((BREAK_SLOT, "Break"), (LUNCH_SLOT, "Lunch")):
            entries.append(
                TimetableEntry(
                    id=f"all-{day[:3].lower()}-{slot}",
                    department="all",
                    year="all",
                    day=day,
                    time_index=slot,
                    subject=subject,
                    type="break",
                )
            )
    for day, slot, subject, faculty, room in _CSE_II_PERIODS:
        entries.append(
            TimetableEntry(
                id=f"cse-ii-{day[:3].lower()}-{slot}",
                department="CSE",
                year="II",
                day=day,
                time_index=slot,
                subject=subject,
                type="class",
                faculty=faculty,
                room=room,
            )
        )
    return entries


def build_seed_data(now: int) -> SeedData:
    """Return the full first-run dataset, timestamped relative to *now* (ms)."""

    announcements = [
        Announcement(
            id="ann-1",
            title="Mid-term Examinations Schedule",
            content=(
                "The mid-term examinations for all departments will commence from the "
                "15th of next month. Detailed schedule will be shared shortly."
            ),
            author="Admin",
            timestamp=now - 10 * DAY_MS,
            reactions={"👍": ["student-alice"]},
        ),
        Announcement(
            id="ann-2",
            title="Project Submission Deadline (CSE)",
            content="Final year CSE students are reminded that the project submission deadline is this Friday.",
            author="HOD (CSE)",
            timestamp=now - 2 * DAY_MS,
            target_role="student",
            target_dept="CSE",
        ),
    ]

    resources = [
        Resource(
            id="res-1",
            name="Data Structures Lecture Notes.pdf",
            type="notes",
            department="CSE",
            subject="DST",
            uploader_id="faculty-soundhur",
            uploader_name="Mr. SOUNDHUR",
            timestamp=now - 3 * DAY_MS,
        ),
        Resource(
            id="res-2",
            name="Discrete Mathematics Question Bank.docx",
            type="question_bank",
            department="MATHS",
            subject="Discrete Mathematics",
            uploader_id="faculty-yuvasri",
            uploader_name="Ms. YUVASRI",
            timestamp=now - 5 * DAY_MS,
        ),
    ]

    security_alerts = [
        SecurityAlert(
            id="alert-1",
            type="Anomaly",
            title="Unusual Login Pattern Detected",
            description=(
                'User "Ms. YUVASRI" (faculty, MATHS) had 3 failed login attempts from IP '
                "203.0.113.15 followed by a successful login from IP 198.51.100.22 within 5 minutes."
            ),
            timestamp=now - HOUR_MS,
            severity="high",
            related_user_id="faculty-yuvasri",
        ),
    ]

    course_files = [
        CourseFile(
            id="cf-1",
            faculty_id="faculty-soundhur",
            faculty_name="Mr. SOUNDHUR",
            department="CSE",
            subject="Data Structures",
            semester="III",
            files=[
                CourseFileAttachment(name="Lesson Plan.pdf", type="lesson_plan"),
                CourseFileAttachment(name="Unit 1 Notes.pdf", type="notes"),
            ],
            status="pending_review",
            submitted_at=now - DAY_MS,
        ),
        CourseFile(
            id="cf-2",
            faculty_id="advisor-anitha-m",
            faculty_name="Mrs. ANITHA M",
            department="CSE",
            subject="Foundations of Data Science",
            semester="III",
            files=[CourseFileAttachment(name="Syllabus.pdf", type="syllabus")],
            status="approved",
            submitted_at=now - 4 * DAY_MS,
        ),
    ]

    audit_log = [
        AuditLogEntry(
            id=new_id("log"),
            timestamp=now - 10_000,
            user_id="admin",
            user_name="Admin",
            action="User Login",
            ip="192.168.1.1",
            status="success",
        ),
        AuditLogEntry(
            id=new_id("log"),
            timestamp=now - 3_661_000,
            user_id="faculty-yuvasri",
            user_name="Ms. YUVASRI",
            action="Failed Login",
            ip="203.0.113.15",
            status="failure",
            details="Invalid credentials",
        ),
    ]

    timetable = build_timetable()
    leave_requests = [
        LeaveRequest(
            id="leave-1",
            faculty_id="faculty-soundhur",
            faculty_name="Mr. SOUNDHUR",
            timetable_entry_id="cse-ii-mon-4",
            day="Monday",
            time_index=4,
            status="pending",
            timestamp=now - HOUR_MS,
            reason="Personal emergency",
        )
    ]

    return SeedData(
        users=build_users(),
        timetable=timetable,
        announcements=announcements,
        resources=resources,
        security_alerts=security_alerts,
        course_files=course_files,
        leave_requests=leave_requests,
        audit_log=audit_log,
        settings=AppSettings(time_slots=list(TIME_SLOTS_DEFAULT)),
    )


__all__ = ["DAYS", "SeedData", "TIME_SLOTS_DEFAULT", "build_seed_data", "build_timetable", "build_users"]
