"""Role-based access control engine."""

from .errors import (
    EngineNotInitialized,
    InvalidIdentifier,
    InvariantViolation,
    RbacError,
    Unauthorized,
)
from .identifiers import Identifier
from .relations import InMemoryRelationStore, Relation, RelationStore
from .resolution import AccessDecision
from .schemas import EngineSnapshot
from .engine import AuthorizationEngine

__all__ = [
    "AccessDecision",
    "AuthorizationEngine",
    "EngineNotInitialized",
    "EngineSnapshot",
    "Identifier",
    "InMemoryRelationStore",
    "InvalidIdentifier",
    "InvariantViolation",
    "RbacError",
    "Relation",
    "RelationStore",
    "Unauthorized",
]
