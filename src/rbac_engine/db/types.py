"""SQLAlchemy custom column types.

- IdentifierType: 32-byte identifiers stored as fixed-width binary.
- UTCDateTime: timezone-aware datetimes normalized to UTC.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.types import DateTime, LargeBinary, TypeDecorator

from rbac_engine.identifiers import IDENTIFIER_WIDTH, Identifier

__all__ = ["IdentifierType", "UTCDateTime"]


class IdentifierType(TypeDecorator):
    """Identifier storage as raw bytes."""

    impl = LargeBinary(IDENTIFIER_WIDTH)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):
        if value is None:
            return None
        return bytes(Identifier.coerce(value))

    def process_result_value(self, value: Any, dialect):
        if value is None:
            return None
        return Identifier(value)

    @property
    def python_type(self) -> type[Identifier]:
        return Identifier


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime normalized to UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=UTC)
            return value.astimezone(UTC)
        return value

    def process_result_value(self, value: Any, dialect):
        if value is None:
            return None
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=UTC)
            return value.astimezone(UTC)
        return value
