"""Engine settings (conventional Pydantic v2 settings)."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from typing import Literal, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidIdentifier
from .identifiers import Identifier

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})

# ---- Defaults ---------------------------------------------------------------

DEFAULT_DATABASE_URL = "sqlite:///./data/rbac.sqlite"

T = TypeVar("T")


def rbac_settings_config() -> SettingsConfigDict:
    """Return the standard ``BaseSettings`` config dict for ``RBAC_*`` variables."""

    return SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RBAC_",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        str_strip_whitespace=True,
    )


def create_settings_accessors(
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Create ``get_settings`` and ``reload_settings`` helpers for a settings class."""

    @lru_cache(maxsize=1)
    def _build() -> T:
        return settings_type()

    def get_settings() -> T:
        return _build()

    def reload_settings() -> T:
        _build.cache_clear()
        return _build()

    return get_settings, reload_settings


def normalize_log_format(value: str, *, env_var: str = "RBAC_LOG_FORMAT") -> str:
    normalized = value.strip().lower()
    if normalized not in ALLOWED_LOG_FORMATS:
        allowed = ", ".join(sorted(ALLOWED_LOG_FORMATS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


def normalize_log_level(value: str, *, env_var: str = "RBAC_LOG_LEVEL") -> str:
    normalized = value.strip().upper()
    if normalized not in ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
        raise ValueError(f"{env_var} must be one of: {allowed}.")
    return normalized


# ---- Settings ---------------------------------------------------------------


class Settings(BaseSettings):
    """Engine settings loaded from RBAC_* environment variables."""

    model_config = rbac_settings_config()

    # Identities
    owner: str | None = None
    caller: str | None = None

    # Storage
    store_backend: Literal["memory", "sql"] = "memory"
    database_url: str = DEFAULT_DATABASE_URL
    database_echo: bool = False

    # Resolution
    resolution_cache_enabled: bool = True
    resolution_cache_size: int = Field(default=4096, ge=1)

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    # ---- Validators ----

    @field_validator("owner", "caller", mode="before")
    @classmethod
    def _canonical_identifier(cls, value: object) -> object:
        if value is None or value == "":
            return None
        try:
            return Identifier.coerce(value).to_hex()
        except InvalidIdentifier as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("store_backend", mode="before")
    @classmethod
    def _normalize_store_backend(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: object) -> object:
        return normalize_log_level(str(value))

    @field_validator("log_format", mode="before")
    @classmethod
    def _validate_log_format(cls, value: object) -> object:
        return normalize_log_format(str(value))

    # ---- Convenience ----

    @property
    def owner_id(self) -> Identifier | None:
        return Identifier.from_hex(self.owner) if self.owner else None

    @property
    def caller_id(self) -> Identifier | None:
        return Identifier.from_hex(self.caller) if self.caller else None


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = [
    "ALLOWED_LOG_FORMATS",
    "ALLOWED_LOG_LEVELS",
    "DEFAULT_DATABASE_URL",
    "Settings",
    "create_settings_accessors",
    "get_settings",
    "normalize_log_format",
    "normalize_log_level",
    "rbac_settings_config",
    "reload_settings",
]
