"""Error taxonomy for the authorization engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .identifiers import Identifier


class RbacError(Exception):
    """Base class for authorization engine errors."""


class Unauthorized(RbacError):
    """Raised when a mutation is attempted by anyone other than the owner."""

    def __init__(
        self,
        message: str = "Caller is not the engine owner",
        *,
        caller: Identifier | None = None,
    ) -> None:
        super().__init__(message)
        self.caller = caller


class InvariantViolation(RbacError):
    """Raised when relation state would become inconsistent."""


class InvalidIdentifier(RbacError, ValueError):
    """Raised when an identifier input is not a 32-byte token."""


class EngineNotInitialized(RbacError):
    """Raised when a store has no recorded owner and none was supplied."""


__all__ = [
    "EngineNotInitialized",
    "InvalidIdentifier",
    "InvariantViolation",
    "RbacError",
    "Unauthorized",
]
