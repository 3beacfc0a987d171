"""Fixed-width opaque identifiers.

Users, groups, roles, and permissions all share the same identifier space: a
32-byte token with byte-exact equality and no internal structure. Which kind
of thing an identifier names is decided only by the relation it appears in.

Accepted inputs:

* 32 raw bytes (``bytes``, ``bytearray``, ``memoryview``), or
* 64 hex characters, optionally prefixed with ``0x`` (case-insensitive).

The canonical text form is lowercase ``0x``-prefixed hex.
"""

from __future__ import annotations

from typing import Any

from pydantic_core import core_schema

from .errors import InvalidIdentifier

IDENTIFIER_WIDTH = 32
_HEX_WIDTH = IDENTIFIER_WIDTH * 2


class Identifier(bytes):
    """32-byte opaque token used for every node in the authorization graph."""

    __slots__ = ()

    def __new__(cls, value: bytes | bytearray | memoryview) -> Identifier:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise InvalidIdentifier(
                f"Identifier must be built from bytes, not {type(value).__name__}"
            )
        raw = bytes(value)
        if len(raw) != IDENTIFIER_WIDTH:
            raise InvalidIdentifier(
                f"Identifier must be {IDENTIFIER_WIDTH} bytes, got {len(raw)}"
            )
        return super().__new__(cls, raw)

    @classmethod
    def from_hex(cls, text: str) -> Identifier:
        candidate = text.strip()
        if candidate[:2].lower() == "0x":
            candidate = candidate[2:]
        if len(candidate) != _HEX_WIDTH:
            raise InvalidIdentifier(
                f"Identifier hex must be {_HEX_WIDTH} characters, got {len(candidate)}"
            )
        try:
            return cls(bytes.fromhex(candidate))
        except ValueError as exc:
            raise InvalidIdentifier(f"Identifier is not valid hex: {text!r}") from exc

    @classmethod
    def coerce(cls, value: Any) -> Identifier:
        """Return ``value`` as an :class:`Identifier`, accepting bytes or hex text."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_hex(value)
        return cls(value)

    def to_hex(self) -> str:
        return f"0x{self.hex()}"

    def __str__(self) -> str:
        return self.to_hex()

    def __repr__(self) -> str:
        return f"Identifier('{self.to_hex()}')"

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: Any,
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                cls.to_hex,
                when_used="always",
            ),
        )


IdentifierLike = Identifier | bytes | bytearray | memoryview | str


__all__ = ["IDENTIFIER_WIDTH", "Identifier", "IdentifierLike"]
