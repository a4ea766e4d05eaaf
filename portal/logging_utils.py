"""Root logger setup for the portal CLI and server.

Handlers installed here are tagged so that a second call (for example ``init``
followed by ``serve`` in one process) replaces them instead of stacking
duplicates. Handlers added by the host, such as pytest's capture handler, are
left alone.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional


LOG_FILE_NAME = "campus_portal.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Chatty client libraries used by the review provider.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")

_HANDLER_MARKER = "_campus_portal_handler"


def get_log_file_path(log_root: Path) -> Path:
    return Path(log_root) / LOG_FILE_NAME


def _tag(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARKER, True)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def configure_logging(
    log_root: Optional[Path] = None,
    *,
    level: int = logging.INFO,
    console: bool = True,
) -> Optional[Path]:
    """Route portal logs to the console and to ``<log_root>/campus_portal.log``.

    Returns the log file path, or ``None`` when no *log_root* was given.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root.removeHandler(handler)
            handler.close()

    log_file: Optional[Path] = None
    if log_root is not None:
        log_file = get_log_file_path(log_root)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        root.addHandler(_tag(logging.FileHandler(log_file, encoding="utf-8")))
    if console:
        root.addHandler(_tag(logging.StreamHandler()))

    root.setLevel(level)
    for name in QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        quiet.setLevel(max(quiet.getEffectiveLevel(), logging.WARNING))
    return log_file


__all__ = ["LOG_FILE_NAME", "LOG_FORMAT", "configure_logging", "get_log_file_path"]
