"""Authorization engine facade.

``AuthorizationEngine`` owns the relation store, the owner gate, and the
resolver. Every public operation runs under a single re-entrant lock, so a
mutation is authorized, applied, and made visible as one step and no query
ever observes a half-applied change.
"""

from __future__ import annotations

import logging
import threading
from typing import Literal

from .common.logging import caller_context, log_context
from .errors import EngineNotInitialized, InvariantViolation, RbacError, Unauthorized
from .gate import GateState, OwnerGate
from .identifiers import Identifier, IdentifierLike
from .relations import InMemoryRelationStore, Relation, RelationStore
from .resolution import DEFAULT_CACHE_SIZE, AccessDecision, Resolver
from .schemas import EngineSnapshot
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    """Role-based access control over users, groups, roles, and permissions."""

    def __init__(
        self,
        *,
        owner: IdentifierLike | None = None,
        store: RelationStore | None = None,
        cache_enabled: bool = True,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        self._lock = threading.RLock()
        self._store = store if store is not None else InMemoryRelationStore()
        self._gate = OwnerGate()
        self._resolver = Resolver(
            self._store,
            cache_enabled=cache_enabled,
            cache_size=cache_size,
        )
        self._bind_owner(Identifier.coerce(owner) if owner is not None else None)

    def _bind_owner(self, deployer: Identifier | None) -> None:
        recorded = self._store.load_owner()
        if recorded is None:
            if deployer is None:
                raise EngineNotInitialized(
                    "Store has no recorded owner; supply one to initialize it"
                )
            self._store.save_owner(deployer)
            recorded = deployer
        elif deployer is not None and deployer != recorded:
            logger.warning(
                "rbac.unauthorized",
                extra=log_context(rejected=deployer, reason="owner_mismatch"),
            )
            raise Unauthorized("Store is owned by a different identity", caller=deployer)
        self._gate.activate(recorded)

    # ------------- construction helpers ------------

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        owner: IdentifierLike | None = None,
        backend: Literal["memory", "sql"] | None = None,
        create: bool = True,
    ) -> AuthorizationEngine:
        """Build an engine from ``RBAC_*`` settings.

        ``owner`` falls back to ``settings.owner``; a persistent store that
        already records an owner can be opened without one. With
        ``create=False`` a SQL store that does not exist yet raises
        :class:`EngineNotInitialized` instead of being created.
        """

        settings = settings or get_settings()
        selected = backend or settings.store_backend
        store: RelationStore
        if selected == "sql":
            from .db.store import SqlRelationStore

            store = SqlRelationStore.from_settings(settings, create=create)
        else:
            store = InMemoryRelationStore()

        try:
            return cls(
                owner=owner if owner is not None else settings.owner_id,
                store=store,
                cache_enabled=settings.resolution_cache_enabled,
                cache_size=settings.resolution_cache_size,
            )
        except RbacError:
            store.close()
            raise

    @classmethod
    def from_snapshot(
        cls,
        snapshot: EngineSnapshot,
        *,
        store: RelationStore | None = None,
        cache_enabled: bool = True,
    ) -> AuthorizationEngine:
        engine = cls(owner=snapshot.owner, store=store, cache_enabled=cache_enabled)
        engine.restore(snapshot, caller=snapshot.owner)
        return engine

    # ------------- state ---------------------------

    @property
    def owner(self) -> Identifier:
        owner = self._gate.owner
        assert owner is not None
        return owner

    @property
    def state(self) -> GateState:
        return self._gate.state

    @property
    def store(self) -> RelationStore:
        return self._store

    def close(self) -> None:
        with self._lock:
            self._store.close()

    # ------------- mutations -----------------------

    def _mutate(
        self,
        relation: Relation,
        *,
        add: bool,
        left: Identifier,
        right: Identifier,
        caller: IdentifierLike,
        fields: dict[str, Identifier],
    ) -> bool:
        caller_id = Identifier.coerce(caller)
        with self._lock, caller_context(caller_id):
            self._gate.authorize(caller_id)
            apply = self._store.add if add else self._store.remove
            try:
                changed = apply(relation, left, right)
            except InvariantViolation:
                logger.error(
                    "rbac.invariant_violation",
                    extra=log_context(relation=relation.value, **fields),
                )
                raise
            if changed:
                self._resolver.invalidate()
            action = "added" if add else "removed"
            logger.info(
                f"rbac.{relation.value}.{action}",
                extra=log_context(changed=changed, **fields),
            )
            return changed

    def add_user_to_group(
        self,
        user: IdentifierLike,
        group: IdentifierLike,
        *,
        caller: IdentifierLike,
    ) -> bool:
        """Add ``user`` to ``group``; return ``False`` if already a member."""

        user_id, group_id = Identifier.coerce(user), Identifier.coerce(group)
        return self._mutate(
            Relation.MEMBERSHIP,
            add=True,
            left=user_id,
            right=group_id,
            caller=caller,
            fields={"user": user_id, "group": group_id},
        )

    def remove_user_from_group(
        self,
        user: IdentifierLike,
        group: IdentifierLike,
        *,
        caller: IdentifierLike,
    ) -> bool:
        user_id, group_id = Identifier.coerce(user), Identifier.coerce(group)
        return self._mutate(
            Relation.MEMBERSHIP,
            add=False,
            left=user_id,
            right=group_id,
            caller=caller,
            fields={"user": user_id, "group": group_id},
        )

    def add_user_or_group_to_role(
        self,
        subject: IdentifierLike,
        role: IdentifierLike,
        *,
        caller: IdentifierLike,
    ) -> bool:
        """Assign ``role`` to a user or group identifier."""

        subject_id, role_id = Identifier.coerce(subject), Identifier.coerce(role)
        return self._mutate(
            Relation.ASSIGNMENT,
            add=True,
            left=subject_id,
            right=role_id,
            caller=caller,
            fields={"subject": subject_id, "role": role_id},
        )

    def remove_user_or_group_from_role(
        self,
        subject: IdentifierLike,
        role: IdentifierLike,
        *,
        caller: IdentifierLike,
    ) -> bool:
        subject_id, role_id = Identifier.coerce(subject), Identifier.coerce(role)
        return self._mutate(
            Relation.ASSIGNMENT,
            add=False,
            left=subject_id,
            right=role_id,
            caller=caller,
            fields={"subject": subject_id, "role": role_id},
        )

    def add_role_to_permission(
        self,
        role: IdentifierLike,
        permission: IdentifierLike,
        *,
        caller: IdentifierLike,
    ) -> bool:
        role_id, permission_id = Identifier.coerce(role), Identifier.coerce(permission)
        return self._mutate(
            Relation.GRANT,
            add=True,
            left=role_id,
            right=permission_id,
            caller=caller,
            fields={"role": role_id, "permission": permission_id},
        )

    def remove_role_from_permission(
        self,
        role: IdentifierLike,
        permission: IdentifierLike,
        *,
        caller: IdentifierLike,
    ) -> bool:
        role_id, permission_id = Identifier.coerce(role), Identifier.coerce(permission)
        return self._mutate(
            Relation.GRANT,
            add=False,
            left=role_id,
            right=permission_id,
            caller=caller,
            fields={"role": role_id, "permission": permission_id},
        )

    # ------------- queries -------------------------

    def read_user_group(self, group: IdentifierLike) -> tuple[Identifier, ...]:
        """Return the members of ``group`` in insertion order."""

        group_id = Identifier.coerce(group)
        with self._lock:
            return self._resolver.members_of(group_id)

    def read_user_groups(self, user: IdentifierLike) -> tuple[Identifier, ...]:
        user_id = Identifier.coerce(user)
        with self._lock:
            return self._resolver.groups_of(user_id)

    def read_user_or_group_roles(self, subject: IdentifierLike) -> tuple[Identifier, ...]:
        """Return the effective roles of ``subject``.

        Direct assignments come first, followed by roles inherited through each
        group the subject belongs to. A group identifier has no memberships,
        so for a group this is its direct role list.
        """

        subject_id = Identifier.coerce(subject)
        with self._lock:
            return self._resolver.effective_roles(subject_id)

    read_effective_roles = read_user_or_group_roles

    def read_direct_roles(self, subject: IdentifierLike) -> tuple[Identifier, ...]:
        subject_id = Identifier.coerce(subject)
        with self._lock:
            return self._resolver.direct_roles(subject_id)

    def read_permissions(self, role: IdentifierLike) -> tuple[Identifier, ...]:
        role_id = Identifier.coerce(role)
        with self._lock:
            return self._resolver.permissions_of(role_id)

    def read_effective_permissions(self, user: IdentifierLike) -> tuple[Identifier, ...]:
        user_id = Identifier.coerce(user)
        with self._lock:
            return self._resolver.effective_permissions(user_id)

    def check_access(self, user: IdentifierLike, permission: IdentifierLike) -> bool:
        user_id, permission_id = Identifier.coerce(user), Identifier.coerce(permission)
        with self._lock:
            return self._resolver.check_access(user_id, permission_id)

    def explain_access(
        self,
        user: IdentifierLike,
        permission: IdentifierLike,
    ) -> AccessDecision:
        user_id, permission_id = Identifier.coerce(user), Identifier.coerce(permission)
        with self._lock:
            return self._resolver.explain(user_id, permission_id)

    # ------------- snapshots -----------------------

    def export_snapshot(self) -> EngineSnapshot:
        with self._lock:
            return EngineSnapshot.from_edges(
                owner=self.owner,
                edges={relation: self._store.edges(relation) for relation in Relation},
            )

    def restore(self, snapshot: EngineSnapshot, *, caller: IdentifierLike) -> None:
        """Load every edge of ``snapshot`` into this engine's empty store."""

        caller_id = Identifier.coerce(caller)
        with self._lock, caller_context(caller_id):
            self._gate.authorize(caller_id)
            if snapshot.owner != self.owner:
                logger.warning(
                    "rbac.unauthorized",
                    extra=log_context(rejected=snapshot.owner, reason="snapshot_owner"),
                )
                raise Unauthorized("Snapshot belongs to a different owner", caller=caller_id)
            if not self._store.is_empty():
                logger.error(
                    "rbac.invariant_violation",
                    extra=log_context(reason="restore_into_non_empty_store"),
                )
                raise InvariantViolation("Snapshots can only be restored into an empty store")

            self._store.load(snapshot.edge_map())
            self._resolver.invalidate()
            logger.info(
                "rbac.snapshot.restored",
                extra=log_context(
                    memberships=len(snapshot.memberships),
                    assignments=len(snapshot.assignments),
                    grants=len(snapshot.grants),
                ),
            )


__all__ = ["AuthorizationEngine"]
