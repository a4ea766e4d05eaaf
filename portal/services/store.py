"""The observable, durable domain store behind every portal action."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from .audit import now_ms
from .events import emit_state_event
from .kvstore import KeyValueStore
from .models import (
    Announcement,
    AppSettings,
    AuditLogEntry,
    CourseFile,
    LeaveRequest,
    Resource,
    SecurityAlert,
    TimetableEntry,
    User,
)
from .naming import names_match
from .seed import TIME_SLOTS_DEFAULT, build_seed_data
from .slots import DurableSlot


LOGGER = logging.getLogger(__name__)

KEY_PREFIX = "portal"
SEEDED_MARKER_KEY = f"{KEY_PREFIX}-seeded"

ALL_COLLECTIONS = "*"

Listener = Callable[[str, Any], None]

_COLLECTION_TYPES: Dict[str, Any] = {
    "users": List[User],
    "timetable": List[TimetableEntry],
    "announcements": List[Announcement],
    "resources": List[Resource],
    "security_alerts": List[SecurityAlert],
    "course_files": List[CourseFile],
    "leave_requests": List[LeaveRequest],
    "audit_log": List[AuditLogEntry],
    "settings": AppSettings,
    "session": Optional[str],
    "view": str,
}

COLLECTIONS: Tuple[str, ...] = tuple(_COLLECTION_TYPES)

# Collections written by `initialize_if_empty`; session and view are never seeded.
SEEDED_COLLECTIONS: Tuple[str, ...] = tuple(
    name for name in COLLECTIONS if name not in ("session", "view")
)


def _empty_defaults() -> Dict[str, Any]:
    defaults: Dict[str, Any] = {name: [] for name in SEEDED_COLLECTIONS}
    defaults["settings"] = AppSettings(time_slots=list(TIME_SLOTS_DEFAULT))
    defaults["session"] = None
    defaults["view"] = "auth"
    return defaults


def storage_key(collection: str) -> str:
    return f"{KEY_PREFIX}-{collection.replace('_', '-')}"


class DomainStore:
    """Own every durable collection and publish a change event per collection.

    Each collection lives in its own :class:`DurableSlot`. Updates always swap
    the whole snapshot; entities refer to each other by identifier only.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._seeded: DurableSlot[bool] = DurableSlot(backend, SEEDED_MARKER_KEY, False, bool)
        defaults = self._defaults()
        self._slots: Dict[str, DurableSlot[Any]] = {
            name: DurableSlot(
                backend,
                storage_key(name),
                defaults[name],
                value_type,
                on_change=self._make_publisher(name),
            )
            for name, value_type in _COLLECTION_TYPES.items()
        }

    def _defaults(self) -> Dict[str, Any]:
        """Return the fallback snapshot for every collection.

        Once the store has been seeded, a collection that is missing or cannot
        be decoded falls back to its demo snapshot rather than to an empty value.
        """

        defaults = _empty_defaults()
        if self._seeded.value:
            data = build_seed_data(self._clock())
            for name in SEEDED_COLLECTIONS:
                defaults[name] = getattr(data, name)
        return defaults

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    def _make_publisher(self, name: str) -> Callable[[str, Any], None]:
        def _publish(_key: str, value: Any) -> None:
            emit_state_event(
                name,
                "Collection replaced",
                size=len(value) if isinstance(value, list) else None,
            )
            for listener in list(self._listeners[name]) + list(self._listeners[ALL_COLLECTIONS]):
                listener(name, value)

        return _publish

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        """Call *listener* whenever *collection* changes (``"*"`` for all)."""

        if collection != ALL_COLLECTIONS and collection not in self._slots:
            raise KeyError(f"Unknown collection: {collection}")
        self._listeners[collection].append(listener)

        def _unsubscribe() -> None:
            listeners = self._listeners[collection]
            if listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------
    @property
    def clock(self) -> Callable[[], int]:
        return self._clock

    def slot(self, collection: str) -> DurableSlot[Any]:
        return self._slots[collection]

    def get(self, collection: str) -> Any:
        return self._slots[collection].value

    def replace(self, collection: str, value: Any) -> Any:
        return self._slots[collection].replace(value)

    def reload(self) -> None:
        """Re-read every collection from the backend."""

        for slot in self._slots.values():
            slot.reload()
        self._seeded.reload()

    # ------------------------------------------------------------------
    # Typed views
    # ------------------------------------------------------------------
    @property
    def users(self) -> List[User]:
        return self.get("users")

    @property
    def timetable(self) -> List[TimetableEntry]:
        return self.get("timetable")

    @property
    def announcements(self) -> List[Announcement]:
        return self.get("announcements")

    @property
    def resources(self) -> List[Resource]:
        return self.get("resources")

    @property
    def security_alerts(self) -> List[SecurityAlert]:
        return self.get("security_alerts")

    @property
    def course_files(self) -> List[CourseFile]:
        return self.get("course_files")

    @property
    def leave_requests(self) -> List[LeaveRequest]:
        return self.get("leave_requests")

    @property
    def settings(self) -> AppSettings:
        return self.get("settings")

    @property
    def view(self) -> str:
        return self.get("view")

    @property
    def session_user_id(self) -> Optional[str]:
        return self.get("session")

    @property
    def current_user(self) -> Optional[User]:
        user_id = self.session_user_id
        if user_id is None:
            return None
        return self.find_user(user_id)

    def find_user(self, user_id: str) -> Optional[User]:
        return next((user for user in self.users if user.id == user_id), None)

    def find_user_by_name(self, name: str) -> Optional[User]:
        return next((user for user in self.users if names_match(user.name, name)), None)

    def find_course_file(self, course_file_id: str) -> Optional[CourseFile]:
        return next((item for item in self.course_files if item.id == course_file_id), None)

    def find_timetable_entry(self, entry_id: str) -> Optional[TimetableEntry]:
        return next((entry for entry in self.timetable if entry.id == entry_id), None)

    def find_leave_request(self, request_id: str) -> Optional[LeaveRequest]:
        return next((item for item in self.leave_requests if item.id == request_id), None)

    # ------------------------------------------------------------------
    # First run
    # ------------------------------------------------------------------
    @property
    def is_seeded(self) -> bool:
        return bool(self._seeded.value)

    def initialize_if_empty(self) -> bool:
        """Write the demo dataset once; return ``True`` when seeding happened."""

        if self.is_seeded:
            LOGGER.debug("Store already seeded; skipping demo content")
            return False

        data = build_seed_data(self._clock())
        for name in SEEDED_COLLECTIONS:
            self.replace(name, getattr(data, name))
        self._seeded.replace(True)
        LOGGER.info(
            "Seeded demo content (%s users, %s timetable entries)",
            len(data.users),
            len(data.timetable),
        )
        return True


__all__ = [
    "ALL_COLLECTIONS",
    "COLLECTIONS",
    "DomainStore",
    "SEEDED_COLLECTIONS",
    "SEEDED_MARKER_KEY",
    "storage_key",
]
