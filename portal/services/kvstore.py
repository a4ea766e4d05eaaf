"""Durable string key-value backends used by the portal state slots."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Protocol, Sequence, Tuple

from .events import emit_db_event


LOGGER = logging.getLogger(__name__)

KV_TABLE = "kv_store"


class StorageError(RuntimeError):
    """Raised when the durable backend cannot complete a read or write."""


class KeyValueStore(Protocol):
    """Minimal contract for string-keyed persistence."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryKeyValueStore:
    """Process-local backend; values survive as long as the instance does."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values


class SQLiteKeyValueStore:
    """Key-value backend stored in a single SQLite table."""

    def __init__(
        self,
        database_file: Path,
        *,
        event_emitter: Optional[Callable[..., None]] = emit_db_event,
    ) -> None:
        self._db_path = database_file
        self._event_emitter = event_emitter

    @property
    def path(self) -> Path:
        return self._db_path

    def configure_event_emitter(self, emitter: Optional[Callable[..., None]]) -> None:
        """Register the callable responsible for emitting query events."""

        self._event_emitter = emitter

    @contextlib.contextmanager
    def _track_db_event(self, action: str, **payload: Any) -> Iterator[Dict[str, Any]]:
        """Emit a structured event capturing execution time for a DB action."""

        if self._event_emitter is None:
            yield payload
            return

        start = time.perf_counter()
        event_payload: Dict[str, Any] = dict(payload)
        error: BaseException | None = None
        try:
            yield event_payload
        except Exception as exc:
            error = exc
            event_payload.setdefault("status", "error")
            event_payload.setdefault("error", f"{exc.__class__.__name__}: {exc}")
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            if error is None:
                event_payload.setdefault("status", "ok")
            filtered = {key: value for key, value in event_payload.items() if value is not None}
            self._event_emitter(action, payload=filtered, duration_ms=duration_ms)

    def _connect(self) -> sqlite3.Connection:
        LOGGER.debug("Opening SQLite connection to %s", self._db_path)
        try:
            connection = sqlite3.connect(self._db_path)
        except sqlite3.Error as error:
            raise StorageError(f"Cannot open {self._db_path}: {error}") from error
        return connection

    def _execute(
        self,
        statement: str,
        parameters: Sequence[Any] = (),
        *,
        action: str,
        key: str,
    ) -> Optional[Tuple[Any, ...]]:
        with self._track_db_event(action, table=KV_TABLE, key=key) as event:
            connection = self._connect()
            try:
                with connection:
                    cursor = connection.execute(statement, tuple(parameters))
                    row = cursor.fetchone()
                    if cursor.rowcount >= 0:
                        event.setdefault("rowcount", int(cursor.rowcount))
                    return row
            except sqlite3.Error as error:
                raise StorageError(f"{action} failed for key '{key}': {error}") from error
            finally:
                connection.close()

    def ensure_schema(self) -> None:
        """Create the backing table when it does not exist yet."""

        self._execute(
            f"CREATE TABLE IF NOT EXISTS {KV_TABLE} ("
            "key TEXT PRIMARY KEY, value TEXT NOT NULL, updated_at REAL NOT NULL)",
            action="kv.ensure_schema",
            key="*",
        )

    def get(self, key: str) -> Optional[str]:
        row = self._execute(
            f"SELECT value FROM {KV_TABLE} WHERE key = ?",
            (key,),
            action="kv.get",
            key=key,
        )
        if row is None:
            LOGGER.debug("No stored value for key '%s'", key)
            return None
        return str(row[0])

    def set(self, key: str, value: str) -> None:
        self._execute(
            f"INSERT INTO {KV_TABLE}(key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, value, time.time()),
            action="kv.set",
            key=key,
        )
        LOGGER.debug("Stored %s characters under key '%s'", len(value), key)


__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "StorageError",
]
