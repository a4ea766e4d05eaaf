"""Append-only, newest-first record of significant portal actions."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, List, Optional

from .models import AuditLogEntry, AuditOutcome
from .slots import DurableSlot


LOGGER = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class AuditLog:
    """Prepend entries to a durable list; durability is best effort."""

    def __init__(
        self,
        slot: DurableSlot[List[AuditLogEntry]],
        *,
        client_address: str,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._slot = slot
        self._client_address = client_address
        self._clock = clock

    @property
    def entries(self) -> List[AuditLogEntry]:
        return list(self._slot.value)

    def record(
        self,
        actor_id: str,
        actor_name: str,
        action: str,
        outcome: AuditOutcome,
        details: Optional[str] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=str(uuid.uuid4()),
            timestamp=self._clock(),
            user_id=actor_id,
            user_name=actor_name,
            action=action,
            ip=self._client_address,
            status=outcome,
            details=details,
        )
        self._slot.replace(lambda previous: [entry, *previous])
        LOGGER.info("Audit: %s by %s (%s)", action, actor_name, outcome)
        return entry

    def __len__(self) -> int:
        return len(self._slot.value)


__all__ = ["AuditLog", "now_ms"]
