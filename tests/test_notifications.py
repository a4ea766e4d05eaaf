from __future__ import annotations

import asyncio

import pytest

from portal.services.notifications import NotificationQueue


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_push_keeps_insertion_order_without_deduplication() -> None:
    queue = NotificationQueue()

    first = queue.push("Saved", "success")
    second = queue.push("Saved", "success")
    third = queue.push("Careful", "warning")

    assert [item.id for item in queue.items()] == [first, second, third]
    assert [item.message for item in queue.items()] == ["Saved", "Saved", "Careful"]


def test_dismiss_is_idempotent() -> None:
    queue = NotificationQueue()
    kept = queue.push("kept", "info")
    dropped = queue.push("dropped", "error")

    queue.dismiss(dropped)
    queue.dismiss(dropped)
    queue.dismiss("never-existed")

    assert [item.id for item in queue.items()] == [kept]


def test_unknown_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        NotificationQueue().push("hello", "fatal")  # type: ignore[arg-type]


def test_entries_expire_lazily_without_event_loop() -> None:
    clock = FakeClock()
    queue = NotificationQueue(ttl=5.0, clock=clock)
    early = queue.push("early", "info")
    clock.now = 3.0
    late = queue.push("late", "info")

    clock.now = 5.0
    assert [item.id for item in queue.items()] == [late]

    clock.now = 8.0
    assert queue.items() == []
    assert early != late


def test_timer_removes_entry_on_running_loop() -> None:
    snapshots = []

    async def scenario():
        # A frozen clock means only the scheduled timer can remove the entry.
        queue = NotificationQueue(ttl=0.01, clock=lambda: 0.0)
        queue.subscribe(lambda items: snapshots.append([item.message for item in items]))
        queue.push("short lived", "info")
        assert len(queue) == 1
        await asyncio.sleep(0.05)
        return queue.items()

    assert asyncio.run(scenario()) == []
    assert snapshots == [["short lived"], []]


def test_dismiss_cancels_pending_timer() -> None:
    async def scenario():
        queue = NotificationQueue(ttl=0.01, clock=lambda: 0.0)
        notification_id = queue.push("gone", "info")
        entry = queue._entries[notification_id]
        queue.dismiss(notification_id)
        return entry.handle

    handle = asyncio.run(scenario())
    assert handle is not None and handle.cancelled()


def test_unsubscribe_stops_updates() -> None:
    queue = NotificationQueue()
    seen = []
    unsubscribe = queue.subscribe(seen.append)

    queue.push("one", "info")
    unsubscribe()
    queue.push("two", "info")

    assert len(seen) == 1
