"""Transient, self-expiring user notifications."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .models import NOTIFICATION_TYPES, AppNotification, NotificationType


LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5.0

Listener = Callable[[List[AppNotification]], None]


@dataclass
class _QueuedNotification:
    notification: AppNotification
    expires_at: float
    handle: Optional[asyncio.TimerHandle] = None


class NotificationQueue:
    """Ordered in-memory list of notifications, each removed after ``ttl`` seconds.

    When an asyncio loop is running the removal is scheduled with
    ``loop.call_later``. Without a loop the entry keeps its deadline and is
    pruned the next time the queue is read.
    """

    def __init__(
        self,
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, _QueuedNotification] = {}
        self._listeners: List[Listener] = []

    @property
    def ttl(self) -> float:
        return self._ttl

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; the returned callable removes it again."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _publish(self) -> None:
        snapshot = [entry.notification for entry in self._entries.values()]
        for listener in list(self._listeners):
            listener(snapshot)

    def push(self, message: str, type: NotificationType = "info") -> str:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type!r}")

        notification_id = str(uuid.uuid4())
        entry = _QueuedNotification(
            notification=AppNotification(id=notification_id, message=message, type=type),
            expires_at=self._clock() + self._ttl,
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running loop; notification %s expires lazily", notification_id)
        else:
            entry.handle = loop.call_later(self._ttl, self._expire, notification_id)

        self._entries[notification_id] = entry
        LOGGER.debug("Queued %s notification %s: %s", type, notification_id, message)
        self._publish()
        return notification_id

    def _expire(self, notification_id: str) -> None:
        entry = self._entries.pop(notification_id, None)
        if entry is None:
            return
        LOGGER.debug("Notification %s expired", notification_id)
        self._publish()

    def dismiss(self, notification_id: str) -> None:
        entry = self._entries.pop(notification_id, None)
        if entry is None:
            return
        if entry.handle is not None:
            entry.handle.cancel()
        self._publish()

    def _prune(self) -> None:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        if not expired:
            return
        for key in expired:
            entry = self._entries.pop(key)
            if entry.handle is not None:
                entry.handle.cancel()
        self._publish()

    def items(self) -> List[AppNotification]:
        """Return live notifications, oldest first."""

        self._prune()
        return [entry.notification for entry in self._entries.values()]

    def __len__(self) -> int:
        return len(self.items())

    def close(self) -> None:
        """Cancel pending timers and drop every notification."""

        for entry in self._entries.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._entries.clear()
        self._listeners.clear()


__all__ = ["DEFAULT_TTL_SECONDS", "NotificationQueue"]
