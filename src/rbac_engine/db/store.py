"""Relation store persisted through SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from sqlalchemy import delete, exists, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from rbac_engine.common.logging import log_context
from rbac_engine.errors import EngineNotInitialized, InvariantViolation
from rbac_engine.identifiers import Identifier
from rbac_engine.relations import Edge, Relation, RelationStore

from .engine import (
    DatabaseSettings,
    build_engine,
    create_schema,
    database_exists,
    session_scope,
)
from .models import OWNER_ROW_ID, STORE_TABLES, EngineOwner, RelationEdge

logger = logging.getLogger(__name__)


def _edge_filter(relation: Relation, left: Identifier, right: Identifier):
    return (
        RelationEdge.relation == relation,
        RelationEdge.left_id == left,
        RelationEdge.right_id == right,
    )


class SqlRelationStore(RelationStore):
    """Relation store backed by the ``relation_edges`` and ``engine_owner`` tables.

    Every call runs in its own session scope, so each mutation commits on
    return. Enumeration follows the ``seq`` column, which preserves insertion
    order across process restarts.
    """

    def __init__(self, engine: Engine, *, create: bool = True) -> None:
        self._engine = engine
        if create:
            create_schema(engine)
        else:
            inspector = inspect(engine)
            missing = [name for name in STORE_TABLES if not inspector.has_table(name)]
            if missing:
                engine.dispose()
                raise EngineNotInitialized(
                    f"Store tables are missing: {', '.join(missing)}. Run `rbac init` first."
                )
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(
        cls,
        settings: DatabaseSettings,
        *,
        create: bool = True,
    ) -> SqlRelationStore:
        """Open the store at ``settings.database_url``.

        With ``create=False`` a missing SQLite file or missing tables raise
        :class:`EngineNotInitialized` instead of being created.
        """

        if not create and not database_exists(settings.database_url):
            raise EngineNotInitialized(
                f"No store found at {settings.database_url}. Run `rbac init` first."
            )
        return cls(build_engine(settings), create=create)

    @property
    def engine(self) -> Engine:
        return self._engine

    # ------------- edges ---------------------------

    def _contains(
        self,
        session: Session,
        relation: Relation,
        left: Identifier,
        right: Identifier,
    ) -> bool:
        stmt = select(exists().where(*_edge_filter(relation, left, right)))
        return bool(session.execute(stmt).scalar())

    def add(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        try:
            with session_scope(self._session_factory) as session:
                if self._contains(session, relation, left, right):
                    return False
                session.add(RelationEdge(relation=relation, left_id=left, right_id=right))
                session.flush()
        except IntegrityError as exc:
            logger.warning(
                "rbac.store.integrity_conflict",
                extra=log_context(relation=relation.value, left=left, right=right),
            )
            raise InvariantViolation(
                f"Conflicting write for {relation.value} edge {left} -> {right}"
            ) from exc
        return True

    def remove(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(RelationEdge).where(*_edge_filter(relation, left, right))
            )
            deleted = result.rowcount or 0
        if deleted > 1:
            raise InvariantViolation(
                f"{relation.value} edge {left} -> {right} was stored {deleted} times"
            )
        return deleted == 1

    def contains(self, relation: Relation, left: Identifier, right: Identifier) -> bool:
        with session_scope(self._session_factory) as session:
            return self._contains(session, relation, left, right)

    def list_right(self, relation: Relation, left: Identifier) -> tuple[Identifier, ...]:
        stmt = (
            select(RelationEdge.right_id)
            .where(RelationEdge.relation == relation, RelationEdge.left_id == left)
            .order_by(RelationEdge.seq)
        )
        with session_scope(self._session_factory) as session:
            return tuple(session.execute(stmt).scalars().all())

    def list_left(self, relation: Relation, right: Identifier) -> tuple[Identifier, ...]:
        stmt = (
            select(RelationEdge.left_id)
            .where(RelationEdge.relation == relation, RelationEdge.right_id == right)
            .order_by(RelationEdge.seq)
        )
        with session_scope(self._session_factory) as session:
            return tuple(session.execute(stmt).scalars().all())

    def edges(self, relation: Relation) -> tuple[Edge, ...]:
        stmt = (
            select(RelationEdge.left_id, RelationEdge.right_id)
            .where(RelationEdge.relation == relation)
            .order_by(RelationEdge.seq)
        )
        with session_scope(self._session_factory) as session:
            return tuple((left, right) for left, right in session.execute(stmt).all())

    def load(self, edges: Mapping[Relation, Sequence[Edge]]) -> None:
        with session_scope(self._session_factory) as session:
            for relation, pairs in edges.items():
                seen: set[Edge] = set()
                for left, right in pairs:
                    if (left, right) in seen or self._contains(session, relation, left, right):
                        continue
                    seen.add((left, right))
                    session.add(RelationEdge(relation=relation, left_id=left, right_id=right))
                # Flush per relation so seq follows the snapshot order.
                session.flush()

    def is_empty(self) -> bool:
        with session_scope(self._session_factory) as session:
            count = session.execute(select(func.count()).select_from(RelationEdge)).scalar_one()
        return count == 0

    def revision(self) -> tuple[int, int]:
        """Return ``(max seq, edge count)``.

        ``seq`` is never reused, so any committed add raises the first value
        or any committed remove lowers the second; a matching pair means the
        same set of rows.
        """

        stmt = select(func.coalesce(func.max(RelationEdge.seq), 0), func.count(RelationEdge.seq))
        with session_scope(self._session_factory) as session:
            max_seq, count = session.execute(stmt).one()
        return int(max_seq), int(count)

    # ------------- owner ---------------------------

    def load_owner(self) -> Identifier | None:
        with session_scope(self._session_factory) as session:
            row = session.get(EngineOwner, OWNER_ROW_ID)
            return row.owner_id if row is not None else None

    def save_owner(self, owner: Identifier) -> None:
        with session_scope(self._session_factory) as session:
            row = session.get(EngineOwner, OWNER_ROW_ID)
            if row is None:
                session.add(EngineOwner(id=OWNER_ROW_ID, owner_id=owner))
                return
            if row.owner_id != owner:
                raise InvariantViolation("Store already records a different owner")

    def close(self) -> None:
        self._engine.dispose()


__all__ = ["SqlRelationStore"]
