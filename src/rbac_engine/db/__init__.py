"""SQL persistence for the relation store."""

from .base import NAMING_CONVENTION, Base, metadata
from .engine import build_engine, create_schema, session_scope
from .models import EngineOwner, RelationEdge
from .store import SqlRelationStore

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "EngineOwner",
    "RelationEdge",
    "SqlRelationStore",
    "build_engine",
    "create_schema",
    "metadata",
    "session_scope",
]
