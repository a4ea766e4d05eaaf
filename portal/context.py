"""Application context shared by every portal action."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import AppConfig
from .services.audit import AuditLog
from .services.kvstore import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from .services.notifications import NotificationQueue
from .services.review import ReviewCoordinator, ReviewProvider, build_review_provider
from .services.store import DomainStore


LOGGER = logging.getLogger(__name__)


@dataclass
class PortalContext:
    """Everything an action needs, created once per process and closed on exit."""

    config: AppConfig
    store: DomainStore
    audit: AuditLog
    notifications: NotificationQueue
    review_provider: Optional[ReviewProvider] = None
    reviews: ReviewCoordinator = field(init=False)
    closed: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.reviews = ReviewCoordinator(
            self.store,
            self.notifications,
            provider=self.review_provider,
            timeout=self.config.review.timeout_seconds,
        )

    def close(self) -> None:
        """Cancel timers; in-flight reviews are left to finish on their own."""

        if self.closed:
            return
        self.notifications.close()
        self.closed = True
        LOGGER.debug("Portal context closed")


def create_context(
    config: AppConfig,
    *,
    backend: Optional[KeyValueStore] = None,
    review_provider: Optional[ReviewProvider] = None,
    configure_provider: bool = True,
    seed: bool = True,
) -> PortalContext:
    """Build a :class:`PortalContext` for *config*.

    ``backend`` defaults to the SQLite database named in the configuration.
    When ``review_provider`` is omitted and ``configure_provider`` is true the
    provider is built from the configured credential, if any.
    """

    if backend is None:
        sqlite_backend = SQLiteKeyValueStore(config.database_file)
        sqlite_backend.ensure_schema()
        backend = sqlite_backend

    store = DomainStore(backend)
    if seed:
        store.initialize_if_empty()

    audit = AuditLog(store.slot("audit_log"), client_address=config.client_address)
    notifications = NotificationQueue(ttl=config.notification_ttl)

    if review_provider is None and configure_provider:
        review_provider = build_review_provider(config.review)

    return PortalContext(
        config=config,
        store=store,
        audit=audit,
        notifications=notifications,
        review_provider=review_provider,
    )


def create_memory_context(config: AppConfig, **kwargs: Any) -> PortalContext:
    """Convenience for ephemeral runs backed by :class:`MemoryKeyValueStore`."""

    return create_context(config, backend=MemoryKeyValueStore(), **kwargs)


__all__ = ["PortalContext", "create_context", "create_memory_context"]
