"""Utility helpers for consistent identifiers and name comparisons."""

from __future__ import annotations

import re
import uuid
from typing import Container

__all__ = [
    "build_user_id",
    "names_match",
    "new_id",
    "slugify",
]


def slugify(value: str) -> str:
    """Return an identifier-friendly representation of *value*."""

    value = value.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value).strip("-")
    return value or "item"


def names_match(left: str, right: str) -> bool:
    """Compare display names the way the directory does: case-insensitively."""

    return left.strip().casefold() == right.strip().casefold()


def new_id(prefix: str = "") -> str:
    token = uuid.uuid4().hex[:12]
    return f"{prefix}-{token}" if prefix else token


def build_user_id(role: str, name: str, *, taken: Container[str] = ()) -> str:
    """Return ``<role>-<name>`` slug, suffixed with a short token when taken."""

    stem = f"{slugify(role)}-{slugify(name)}"
    candidate = stem
    while candidate in taken:
        candidate = f"{stem}-{uuid.uuid4().hex[:6]}"
    return candidate
