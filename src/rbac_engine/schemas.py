"""Pydantic schemas for snapshots and serialized decisions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .identifiers import Identifier
from .relations import Edge, Relation

SNAPSHOT_VERSION = 1


class BaseSchema(BaseModel):
    """Base class for engine schemas."""

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        extra="forbid",
        frozen=True,
    )

    def model_dump_json(self, *args: Any, **kwargs: Any) -> str:  # type: ignore[override]
        """JSON serialization excluding ``None`` by default."""

        kwargs.setdefault("exclude_none", True)
        return super().model_dump_json(*args, **kwargs)


class MembershipEdge(BaseSchema):
    user: Identifier
    group: Identifier

    def pair(self) -> Edge:
        return (self.user, self.group)


class AssignmentEdge(BaseSchema):
    subject: Identifier
    role: Identifier

    def pair(self) -> Edge:
        return (self.subject, self.role)


class GrantEdge(BaseSchema):
    role: Identifier
    permission: Identifier

    def pair(self) -> Edge:
        return (self.role, self.permission)


class EngineSnapshot(BaseSchema):
    """Complete engine state: the owner plus every edge in insertion order."""

    version: Literal[1] = SNAPSHOT_VERSION
    owner: Identifier
    memberships: list[MembershipEdge] = Field(default_factory=list)
    assignments: list[AssignmentEdge] = Field(default_factory=list)
    grants: list[GrantEdge] = Field(default_factory=list)

    @classmethod
    def from_edges(
        cls,
        *,
        owner: Identifier,
        edges: Mapping[Relation, Sequence[Edge]],
    ) -> EngineSnapshot:
        return cls(
            owner=owner,
            memberships=[
                MembershipEdge(user=left, group=right)
                for left, right in edges.get(Relation.MEMBERSHIP, ())
            ],
            assignments=[
                AssignmentEdge(subject=left, role=right)
                for left, right in edges.get(Relation.ASSIGNMENT, ())
            ],
            grants=[
                GrantEdge(role=left, permission=right)
                for left, right in edges.get(Relation.GRANT, ())
            ],
        )

    def edge_map(self) -> dict[Relation, tuple[Edge, ...]]:
        return {
            Relation.MEMBERSHIP: tuple(edge.pair() for edge in self.memberships),
            Relation.ASSIGNMENT: tuple(edge.pair() for edge in self.assignments),
            Relation.GRANT: tuple(edge.pair() for edge in self.grants),
        }


class AccessDecisionOut(BaseSchema):
    """Serialized form of :class:`rbac_engine.resolution.AccessDecision`."""

    user: Identifier
    permission: Identifier
    allowed: bool
    direct_roles: list[Identifier]
    groups: list[Identifier]
    group_roles: list[Identifier]
    granting_roles: list[Identifier]


__all__ = [
    "AccessDecisionOut",
    "AssignmentEdge",
    "BaseSchema",
    "EngineSnapshot",
    "GrantEdge",
    "MembershipEdge",
    "SNAPSHOT_VERSION",
]
