from __future__ import annotations

import pytest
from pydantic import ValidationError

from rbac_engine import AuthorizationEngine, InMemoryRelationStore
from rbac_engine.settings import DEFAULT_DATABASE_URL, Settings, get_settings, reload_settings
from tests.utils import OWNER


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.owner is None
    assert settings.caller is None
    assert settings.store_backend == "memory"
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.resolution_cache_enabled is True
    assert settings.resolution_cache_size == 4096
    assert settings.log_level == "INFO"
    assert settings.log_format == "console"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RBAC_OWNER", OWNER.hex().upper())
    monkeypatch.setenv("RBAC_STORE_BACKEND", " SQL ")
    monkeypatch.setenv("RBAC_LOG_LEVEL", "debug")
    monkeypatch.setenv("RBAC_LOG_FORMAT", "JSON")
    monkeypatch.setenv("RBAC_RESOLUTION_CACHE_ENABLED", "false")
    monkeypatch.setenv("RBAC_RESOLUTION_CACHE_SIZE", "16")

    settings = Settings(_env_file=None)

    assert settings.owner == OWNER.to_hex()
    assert settings.owner_id == OWNER
    assert settings.store_backend == "sql"
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "json"
    assert settings.resolution_cache_enabled is False
    assert settings.resolution_cache_size == 16


def test_empty_caller_is_ignored(monkeypatch):
    monkeypatch.setenv("RBAC_CALLER", "")

    assert Settings(_env_file=None).caller_id is None


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("owner", "0x1234"),
        ("caller", "not-hex"),
        ("store_backend", "redis"),
        ("log_level", "chatty"),
        ("log_format", "xml"),
        ("resolution_cache_size", 0),
    ],
)
def test_invalid_values_raise_validation_error(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_settings_accessors_cache_until_reload(monkeypatch):
    first = get_settings()
    assert get_settings() is first

    monkeypatch.setenv("RBAC_LOG_LEVEL", "ERROR")
    reloaded = reload_settings()

    assert reloaded is not first
    assert reloaded.log_level == "ERROR"


def test_engine_from_settings_uses_memory_backend_and_owner():
    settings = Settings(_env_file=None, owner=OWNER.to_hex(), resolution_cache_enabled=False)

    engine = AuthorizationEngine.from_settings(settings)

    assert engine.owner == OWNER
    assert isinstance(engine.store, InMemoryRelationStore)
