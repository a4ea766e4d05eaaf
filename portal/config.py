"""Configuration loading utilities for the Campus Portal application."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


LOGGER = logging.getLogger(__name__)


_PERMISSION_SENTINEL = ".campus_portal_write_check"

API_KEY_ENV = "PORTAL_AI_API_KEY"
MODEL_ENV = "PORTAL_AI_MODEL"

DEFAULT_REVIEW_MODEL = "gpt-4o-mini"
DEFAULT_REVIEW_TIMEOUT = 60.0
DEFAULT_NOTIFICATION_TTL = 5.0
DEFAULT_CLIENT_ADDRESS = "192.168.1.1"


def _ensure_writable_directory(path: Path) -> bool:
    """Return ``True`` if *path* can be created and written to."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False

    test_file = path / _PERMISSION_SENTINEL
    try:
        with test_file.open("w", encoding="utf-8") as handle:
            handle.write("ok")
    except OSError:
        return False
    finally:
        with contextlib.suppress(OSError):
            test_file.unlink()

    return True


def _select_writable_directory(
    preferred: Path,
    *,
    label: str,
    fallbacks: Iterable[Path] = (),
) -> Tuple[Path, bool]:
    """Return a usable directory based on ``preferred`` and ``fallbacks``.

    The first writable candidate wins. When nothing can be prepared the
    original ``preferred`` path is returned and the bootstrapper reports the
    problem later on.
    """

    preferred = preferred.resolve()
    if _ensure_writable_directory(preferred):
        return preferred, False

    for fallback in fallbacks:
        candidate = fallback.resolve()
        if candidate == preferred:
            continue
        if _ensure_writable_directory(candidate):
            LOGGER.warning(
                "Preferred %s directory '%s' is not writable; using fallback '%s'.",
                label,
                preferred,
                candidate,
            )
            return candidate, True

    LOGGER.warning(
        "%s directory '%s' is not writable and no fallback is available.",
        label.capitalize(),
        preferred,
    )
    return preferred, False


def _normalize_api_key(value: Any) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


@dataclass(frozen=True)
class ReviewConfig:
    """Settings for the external AI review provider."""

    api_key: Optional[str] = None
    model: str = DEFAULT_REVIEW_MODEL
    timeout_seconds: float = DEFAULT_REVIEW_TIMEOUT

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    @classmethod
    def from_mapping(
        cls,
        mapping: Optional[Mapping[str, Any]],
        *,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ReviewConfig":
        mapping = mapping or {}
        environ = os.environ if environ is None else environ

        api_key = _normalize_api_key(environ.get(API_KEY_ENV)) or _normalize_api_key(
            mapping.get("api_key")
        )
        model = str(environ.get(MODEL_ENV) or mapping.get("model") or DEFAULT_REVIEW_MODEL).strip()

        raw_timeout = mapping.get("timeout_seconds", DEFAULT_REVIEW_TIMEOUT)
        try:
            timeout = float(raw_timeout)
        except (TypeError, ValueError):
            LOGGER.warning("Invalid review timeout %r; using %s seconds.", raw_timeout, DEFAULT_REVIEW_TIMEOUT)
            timeout = DEFAULT_REVIEW_TIMEOUT
        if timeout <= 0:
            timeout = DEFAULT_REVIEW_TIMEOUT

        return cls(api_key=api_key, model=model or DEFAULT_REVIEW_MODEL, timeout_seconds=timeout)


@dataclass(frozen=True)
class AppConfig:
    """Simple container describing runtime paths and tunables for the portal."""

    storage_root: Path
    database_file: Path
    review: ReviewConfig = ReviewConfig()
    notification_ttl: float = DEFAULT_NOTIFICATION_TTL
    client_address: str = DEFAULT_CLIENT_ADDRESS

    @property
    def log_root(self) -> Path:
        """Directory receiving the application log file."""

        return (self.storage_root / "_logs").resolve()

    @classmethod
    def from_mapping(
        cls,
        mapping: Dict[str, Any],
        *,
        base_path: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "AppConfig":
        preferred_storage = (base_path / mapping["storage_root"]).resolve()
        storage_fallback = Path.home() / ".campus_portal" / "storage"
        storage_root, storage_fallback_used = _select_writable_directory(
            preferred_storage,
            label="storage",
            fallbacks=(storage_fallback,),
        )

        database_file = (base_path / mapping["database_file"]).resolve()

        if storage_fallback_used:
            try:
                relative_database = database_file.relative_to(preferred_storage)
            except ValueError:
                relative_database = None
            if relative_database is not None:
                fallback_database = (storage_root / relative_database).resolve()
                if _ensure_writable_directory(fallback_database.parent):
                    LOGGER.warning(
                        "Preferred database location '%s' is not writable; using fallback '%s'.",
                        database_file,
                        fallback_database,
                    )
                    database_file = fallback_database

        if not _ensure_writable_directory(database_file.parent):
            fallback_database = (storage_root / database_file.name).resolve()
            if fallback_database != database_file and _ensure_writable_directory(
                fallback_database.parent
            ):
                LOGGER.warning(
                    "Preferred database location '%s' is not writable; using fallback '%s'.",
                    database_file,
                    fallback_database,
                )
                database_file = fallback_database
            else:
                LOGGER.warning(
                    "Database location '%s' is not writable and no fallback is available.",
                    database_file,
                )

        review = ReviewConfig.from_mapping(mapping.get("review"), environ=environ)

        try:
            notification_ttl = float(mapping.get("notification_ttl", DEFAULT_NOTIFICATION_TTL))
        except (TypeError, ValueError):
            notification_ttl = DEFAULT_NOTIFICATION_TTL

        client_address = str(mapping.get("client_address") or DEFAULT_CLIENT_ADDRESS)

        return cls(
            storage_root=storage_root,
            database_file=database_file,
            review=review,
            notification_ttl=notification_ttl,
            client_address=client_address,
        )


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the application configuration from ``config/default.json`` by default."""

    base_path = Path(__file__).resolve().parent.parent
    if config_path is None:
        config_path = base_path / "config" / "default.json"

    with config_path.open("r", encoding="utf-8") as config_file:
        raw_config = json.load(config_file)

    return AppConfig.from_mapping(raw_config, base_path=base_path)


__all__ = ["API_KEY_ENV", "AppConfig", "ReviewConfig", "load_config"]
