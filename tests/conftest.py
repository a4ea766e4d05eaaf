from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.bootstrap import Bootstrapper
from portal.config import AppConfig
from portal.context import PortalContext, create_context
from portal.services.kvstore import MemoryKeyValueStore
from portal.services.review import ReviewProvider


@pytest.fixture()
def temp_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    monkeypatch.chdir(tmp_path)

    config = AppConfig.from_mapping(
        {
            "storage_root": "storage",
            "database_file": "storage/portal.db",
        },
        base_path=tmp_path,
        environ={},
    )

    Bootstrapper(config).initialize()
    return config


@pytest.fixture()
def backend() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def context_factory(
    temp_config: AppConfig, backend: MemoryKeyValueStore
) -> Callable[..., PortalContext]:
    created = []

    def _factory(provider: Optional[ReviewProvider] = None) -> PortalContext:
        context = create_context(
            temp_config,
            backend=backend,
            review_provider=provider,
            configure_provider=False,
        )
        created.append(context)
        return context

    yield _factory

    for context in created:
        context.close()


@pytest.fixture()
def context(context_factory: Callable[..., PortalContext]) -> PortalContext:
    return context_factory()


@pytest.fixture()
def admin_context(context: PortalContext) -> PortalContext:
    context.store.replace("session", "admin")
    return context
