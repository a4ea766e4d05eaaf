from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from portal.services.kvstore import MemoryKeyValueStore, SQLiteKeyValueStore, StorageError
from portal.services.models import Announcement, AppSettings
from portal.services.slots import DurableSlot, bind


class FailingWrites(MemoryKeyValueStore):
    def set(self, key: str, value: str) -> None:
        raise StorageError("disk full")


class FailingReads(MemoryKeyValueStore):
    def get(self, key: str) -> Optional[str]:
        raise StorageError("database is locked")


@pytest.mark.parametrize(
    "value_type, value",
    [
        (List[str], ["9:00 - 9:50", "9:50 - 10:35"]),
        (Dict[str, List[str]], {"👍": ["student-alice"], "🎉": []}),
        (Optional[str], None),
        (AppSettings, AppSettings(time_slots=["8:00"], accent_color="#000000")),
    ],
)
def test_replaced_value_survives_restart(value_type, value) -> None:
    backend = MemoryKeyValueStore()
    slot = DurableSlot(backend, "portal-test", value_type=value_type, initial=None)

    slot.replace(value)
    restarted = DurableSlot(backend, "portal-test", value_type=value_type, initial=None)

    assert restarted.value == value
    assert slot.reload() == value


def test_sqlite_backend_round_trip(tmp_path: Path) -> None:
    backend = SQLiteKeyValueStore(tmp_path / "kv.db")
    backend.ensure_schema()
    announcement = Announcement(
        id="ann-9",
        title="Library hours",
        content="Open until 8pm during exams.",
        author="Admin",
        timestamp=1_700_000_000_000,
        reactions={"👍": ["faculty-soundhur"]},
    )

    DurableSlot(backend, "portal-announcements", [], List[Announcement]).replace([announcement])

    reopened = SQLiteKeyValueStore(tmp_path / "kv.db")
    assert DurableSlot(reopened, "portal-announcements", [], List[Announcement]).value == [
        announcement
    ]


def test_missing_key_uses_copy_of_initial() -> None:
    initial = ["a"]
    slot = DurableSlot(MemoryKeyValueStore(), "portal-missing", initial, List[str])

    slot.value.append("b")

    assert initial == ["a"]


def test_corrupt_value_falls_back_to_initial(caplog) -> None:
    backend = MemoryKeyValueStore({"portal-users": "{not json"})

    slot = DurableSlot(backend, "portal-users", ["fallback"], List[str])

    assert slot.value == ["fallback"]
    assert "portal-users" in caplog.text


def test_wrongly_shaped_value_falls_back_to_initial() -> None:
    backend = MemoryKeyValueStore({"portal-settings": '{"accent_color": 5}'})

    slot = DurableSlot(backend, "portal-settings", AppSettings(time_slots=[]), AppSettings)

    assert slot.value == AppSettings(time_slots=[])


def test_read_failure_falls_back_to_initial() -> None:
    slot = DurableSlot(FailingReads(), "portal-view", "auth", str)

    assert slot.value == "auth"


def test_write_failure_keeps_in_memory_value() -> None:
    backend = FailingWrites()
    slot = DurableSlot(backend, "portal-view", "auth", str)

    assert slot.replace("dashboard") == "dashboard"
    assert slot.value == "dashboard"
    assert backend.get("portal-view") is None


def test_replace_accepts_updater_and_notifies() -> None:
    changes = []
    slot = DurableSlot(
        MemoryKeyValueStore(),
        "portal-numbers",
        [1],
        List[int],
        on_change=lambda key, value: changes.append((key, value)),
    )

    slot.replace(lambda previous: [*previous, 2])

    assert slot.value == [1, 2]
    assert changes == [("portal-numbers", [1, 2])]


def test_bind_returns_value_and_replace() -> None:
    backend = MemoryKeyValueStore()
    value, replace = bind(backend, "portal-view", "auth", str)

    assert value == "auth"
    replace("dashboard")
    assert bind(backend, "portal-view", "auth", str)[0] == "dashboard"
