"""Tables backing the SQL relation store."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Index, Integer, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from rbac_engine.identifiers import Identifier
from rbac_engine.relations import Relation

from .base import Base, CreatedAtMixin
from .types import IdentifierType


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


relation_enum = SAEnum(
    Relation,
    name="relation",
    native_enum=False,
    length=20,
    values_callable=_enum_values,
)


class RelationEdge(CreatedAtMixin, Base):
    """One edge of the membership, assignment, or grant relation.

    ``seq`` is monotonically increasing and defines enumeration order.
    """

    __tablename__ = "relation_edges"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    relation: Mapped[Relation] = mapped_column(relation_enum, nullable=False)
    left_id: Mapped[Identifier] = mapped_column(IdentifierType(), nullable=False)
    right_id: Mapped[Identifier] = mapped_column(IdentifierType(), nullable=False)

    __table_args__ = (
        UniqueConstraint("relation", "left_id", "right_id", name="uq_relation_edges_edge"),
        Index("ix_relation_edges_left", "relation", "left_id"),
        Index("ix_relation_edges_right", "relation", "right_id"),
        {"sqlite_autoincrement": True},
    )


class EngineOwner(CreatedAtMixin, Base):
    """Single-row table recording the owner bound at deployment."""

    __tablename__ = "engine_owner"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[Identifier] = mapped_column(IdentifierType(), nullable=False)


OWNER_ROW_ID = 1

STORE_TABLES = ("relation_edges", "engine_owner")

__all__ = ["EngineOwner", "OWNER_ROW_ID", "RelationEdge", "STORE_TABLES", "relation_enum"]
