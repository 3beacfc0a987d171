"""Relation store contract and the in-memory backend.

The engine keeps three independent many-to-many relations:

* ``MEMBERSHIP``: user -> group
* ``ASSIGNMENT``: subject (user or group) -> role
* ``GRANT``: role -> permission

Each relation is a deduplicated, insertion-ordered adjacency keyed by the
left-hand identifier. Enumeration order is always the order in which edges
were added, never a hash order.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence
from enum import Enum

from .errors import InvariantViolation
from .identifiers import Identifier

Edge = tuple[Identifier, Identifier]


class Relation(str, Enum):
    """The three edge kinds stored by the engine."""

    MEMBERSHIP = "membership"
    ASSIGNMENT = "assignment"
    GRANT = "grant"


class RelationStore:
    """Interface describing relation storage.

    Implementations are not required to be thread-safe; the engine serializes
    every call behind its own lock.
    """

    def add(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        """Insert an edge; return ``False`` when it already existed."""
        raise NotImplementedError  # pragma: no cover - interface only

    def remove(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        """Delete an edge; return ``False`` when it was absent."""
        raise NotImplementedError  # pragma: no cover - interface only

    def contains(  # pragma: no cover - interface only
        self,
        relation: Relation,
        left: Identifier,
        right: Identifier,
    ) -> bool:
        raise NotImplementedError

    def list_right(  # pragma: no cover - interface only
        self,
        relation: Relation,
        left: Identifier,
    ) -> tuple[Identifier, ...]:
        raise NotImplementedError

    def list_left(  # pragma: no cover - interface only
        self,
        relation: Relation,
        right: Identifier,
    ) -> tuple[Identifier, ...]:
        raise NotImplementedError

    def edges(self, relation: Relation) -> tuple[Edge, ...]:  # pragma: no cover - interface only
        raise NotImplementedError

    def load(self, edges: Mapping[Relation, Sequence[Edge]]) -> None:
        """Insert many edges as one unit of work."""
        raise NotImplementedError  # pragma: no cover - interface only

    def is_empty(self) -> bool:  # pragma: no cover - interface only
        raise NotImplementedError

    def revision(self) -> Hashable:  # pragma: no cover - interface only
        """Return a token that changes whenever the stored edges change."""
        raise NotImplementedError

    def load_owner(self) -> Identifier | None:  # pragma: no cover - interface only
        raise NotImplementedError

    def save_owner(self, owner: Identifier) -> None:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:
        return None


class OrderedAdjacency:
    """Insertion-ordered many-to-many adjacency with a mirrored inverse index."""

    def __init__(self, relation: Relation) -> None:
        self.relation = relation
        self._forward: dict[Identifier, dict[Identifier, None]] = {}
        self._inverse: dict[Identifier, dict[Identifier, None]] = {}
        self._order: dict[Edge, None] = {}

    def _present(self, left: Identifier, right: Identifier) -> bool:
        forward = right in self._forward.get(left, {})
        inverse = left in self._inverse.get(right, {})
        ordered = (left, right) in self._order
        if not forward == inverse == ordered:
            raise InvariantViolation(
                f"{self.relation.value} indexes disagree for edge {left} -> {right}"
            )
        return forward

    def add(self, left: Identifier, right: Identifier) -> bool:
        if self._present(left, right):
            return False
        self._forward.setdefault(left, {})[right] = None
        self._inverse.setdefault(right, {})[left] = None
        self._order[(left, right)] = None
        return True

    def remove(self, left: Identifier, right: Identifier) -> bool:
        if not self._present(left, right):
            return False
        _discard(self._forward, left, right)
        _discard(self._inverse, right, left)
        del self._order[(left, right)]
        return True

    def contains(self, left: Identifier, right: Identifier) -> bool:
        return self._present(left, right)

    def right_of(self, left: Identifier) -> tuple[Identifier, ...]:
        return tuple(self._forward.get(left, ()))

    def left_of(self, right: Identifier) -> tuple[Identifier, ...]:
        return tuple(self._inverse.get(right, ()))

    def edges(self) -> tuple[Edge, ...]:
        return tuple(self._order)

    def __len__(self) -> int:
        return len(self._order)


def _discard(
    index: dict[Identifier, dict[Identifier, None]],
    key: Identifier,
    value: Identifier,
) -> None:
    bucket = index[key]
    del bucket[value]
    # Drop empty buckets so add-then-remove leaves no trace.
    if not bucket:
        del index[key]


class InMemoryRelationStore(RelationStore):
    """Relation store held entirely in process memory."""

    def __init__(self) -> None:
        self._relations = {relation: OrderedAdjacency(relation) for relation in Relation}
        self._owner: Identifier | None = None
        self._revision = 0

    def add(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        changed = self._relations[relation].add(left, right)
        if changed:
            self._revision += 1
        return changed

    def remove(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        changed = self._relations[relation].remove(left, right)
        if changed:
            self._revision += 1
        return changed

    def contains(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        return self._relations[relation].contains(left, right)

    def list_right(self, relation: Relation, left: Identifier) -> tuple[Identifier, ...]:
        return self._relations[relation].right_of(left)

    def list_left(self, relation: Relation, right: Identifier) -> tuple[Identifier, ...]:
        return self._relations[relation].left_of(right)

    def edges(self, relation: Relation) -> tuple[Edge, ...]:
        return self._relations[relation].edges()

    def load(self, edges: Mapping[Relation, Sequence[Edge]]) -> None:
        for relation, pairs in edges.items():
            adjacency = self._relations[relation]
            for left, right in pairs:
                adjacency.add(left, right)
        self._revision += 1

    def is_empty(self) -> bool:
        return not any(len(adjacency) for adjacency in self._relations.values())

    def revision(self) -> int:
        return self._revision

    def load_owner(self) -> Identifier | None:
        return self._owner

    def save_owner(self, owner: Identifier) -> None:
        if self._owner is not None and self._owner != owner:
            raise InvariantViolation("Store already records a different owner")
        self._owner = owner


def ordered_union(*groups: Iterable[Identifier]) -> tuple[Identifier, ...]:
    """Concatenate identifier sequences, keeping the first occurrence of each."""

    merged: dict[Identifier, None] = {}
    for group in groups:
        for identifier in group:
            merged.setdefault(identifier, None)
    return tuple(merged)


__all__ = [
    "Edge",
    "InMemoryRelationStore",
    "OrderedAdjacency",
    "Relation",
    "RelationStore",
    "ordered_union",
]
