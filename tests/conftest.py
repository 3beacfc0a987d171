"""Shared pytest fixtures for engine tests."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from rbac_engine import AuthorizationEngine, InMemoryRelationStore, RelationStore
from rbac_engine.db import SqlRelationStore, build_engine
from rbac_engine.settings import Settings, reload_settings
from tests.utils import OWNER


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ambient ``RBAC_*`` variables from leaking into tests."""

    for name in (
        "RBAC_OWNER",
        "RBAC_CALLER",
        "RBAC_STORE_BACKEND",
        "RBAC_DATABASE_URL",
        "RBAC_DATABASE_ECHO",
        "RBAC_RESOLUTION_CACHE_ENABLED",
        "RBAC_RESOLUTION_CACHE_SIZE",
        "RBAC_LOG_LEVEL",
        "RBAC_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """Undo handler changes made by ``setup_logging`` during a test."""

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def _sql_store(url: str) -> SqlRelationStore:
    settings = Settings(_env_file=None, database_url=url)
    return SqlRelationStore(build_engine(settings))


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest) -> Iterator[RelationStore]:
    """Yield an empty relation store for each backend."""

    if request.param == "memory":
        backend: RelationStore = InMemoryRelationStore()
    else:
        backend = _sql_store("sqlite:///:memory:")
    try:
        yield backend
    finally:
        backend.close()


@pytest.fixture()
def engine(store: RelationStore) -> AuthorizationEngine:
    return AuthorizationEngine(owner=OWNER, store=store)


@pytest.fixture()
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'rbac.sqlite'}"


@pytest.fixture()
def sqlite_store(sqlite_url: str) -> Iterator[SqlRelationStore]:
    backend = _sql_store(sqlite_url)
    try:
        yield backend
    finally:
        backend.close()
