"""Structured log events for the key-value backend, the store and review tasks.

Each event is one log line of the form ``[KIND] message (field=value ...)``.
The same fields travel on the record as ``portal_event_type`` and
``portal_fields`` so handlers can pick them up without parsing the text.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional


EVENT_LOGGER = logging.getLogger("campus_portal.events")

_MAX_FIELD_LENGTH = 200


def _field_text(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    text = str(value).strip()
    if len(text) > _MAX_FIELD_LENGTH:
        return text[:_MAX_FIELD_LENGTH] + "…"
    return text


def _emit(
    kind: str,
    message: str,
    fields: Dict[str, Any],
    *,
    duration_ms: Optional[float],
    level: int,
) -> None:
    present = {key: value for key, value in fields.items() if value is not None and value != ""}
    if duration_ms is not None:
        present["duration_ms"] = round(float(duration_ms), 2)
    details = " ".join(f"{key}={_field_text(value)}" for key, value in present.items())
    text = f"[{kind}] {message}"
    if details:
        text = f"{text} ({details})"
    EVENT_LOGGER.log(level, text, extra={"portal_event_type": kind, "portal_fields": present})


def emit_db_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.DEBUG,
) -> None:
    """Record one backend call; *payload* carries table, key and status."""

    _emit("DB_QUERY", action, dict(payload or {}), duration_ms=duration_ms, level=level)


def emit_state_event(
    collection: str,
    message: str,
    *,
    size: Optional[int] = None,
    level: int = logging.DEBUG,
) -> None:
    _emit(
        "STATE_CHANGE",
        message,
        {"collection": collection, "size": size},
        duration_ms=None,
        level=level,
    )


def emit_task_event(
    phase: str,
    message: str,
    *,
    course_file: str,
    generation: int,
    error: Optional[str] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
) -> None:
    """Record a review lifecycle step (``pending``, ``complete``, ``failed``, ``stale``)."""

    _emit(
        "TASK_STATE",
        message,
        {"phase": phase, "course_file": course_file, "generation": generation, "error": error},
        duration_ms=duration_ms,
        level=level,
    )


__all__ = ["EVENT_LOGGER", "emit_db_event", "emit_state_event", "emit_task_event"]
