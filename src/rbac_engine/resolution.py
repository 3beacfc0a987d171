"""Access resolution over the relation store.

A user's effective roles are the roles assigned directly to the user followed
by the roles assigned to each group the user belongs to (membership order).
Effective permissions are the grants of those roles, in role order. Duplicates
keep their first position, so results are deterministic for a given history
of mutations.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Any

from .identifiers import Identifier
from .relations import Relation, RelationStore, ordered_union

DEFAULT_CACHE_SIZE = 4096


@dataclass(frozen=True, slots=True)
class AccessDecision:
    """Result of an access evaluation, with the path that produced it."""

    user: Identifier
    permission: Identifier
    allowed: bool
    direct_roles: tuple[Identifier, ...]
    groups: tuple[Identifier, ...]
    group_roles: tuple[Identifier, ...]
    granting_roles: tuple[Identifier, ...]

    @property
    def effective_roles(self) -> tuple[Identifier, ...]:
        return ordered_union(self.direct_roles, self.group_roles)


class Resolver:
    """Read-side queries: direct lookups, effective roles, and access checks.

    Cached resolutions are tagged with the store revision they were computed
    from. A lookup first compares that tag with ``store.revision()``, so
    changes committed through another engine sharing the same store are never
    served stale. The cache holds at most ``cache_size`` entries and evicts
    the least recently used one.
    """

    def __init__(
        self,
        store: RelationStore,
        *,
        cache_enabled: bool = True,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ) -> None:
        if cache_size < 1:
            raise ValueError("cache_size must be at least 1")
        self._store = store
        self._cache_enabled = cache_enabled
        self._cache_size = cache_size
        self._cache: OrderedDict[tuple[str, Identifier], Any] = OrderedDict()
        self._revision: Hashable | None = None

    # ------------- cache helpers -----------------

    def _sync_revision(self) -> None:
        current = self._store.revision()
        if current != self._revision:
            self._cache.clear()
            self._revision = current

    def _get_cached(self, key: tuple[str, Identifier]) -> Any | None:
        if not self._cache_enabled:
            return None
        self._sync_revision()
        value = self._cache.get(key)
        if value is not None:
            self._cache.move_to_end(key)
        return value

    def _set_cached(self, key: tuple[str, Identifier], value: Any) -> None:
        if not self._cache_enabled:
            return
        self._cache[key] = value
        self._cache.move_to_end(key)
        while len(self._cache) > self._cache_size:
            self._cache.popitem(last=False)

    def invalidate(self) -> None:
        """Drop every cached resolution; called after each state change."""
        self._cache.clear()
        self._revision = None

    @property
    def cached_entries(self) -> int:
        return len(self._cache)

    # ------------- direct lookups ----------------

    def members_of(self, group: Identifier) -> tuple[Identifier, ...]:
        return self._store.list_left(Relation.MEMBERSHIP, group)

    def groups_of(self, user: Identifier) -> tuple[Identifier, ...]:
        return self._store.list_right(Relation.MEMBERSHIP, user)

    def direct_roles(self, subject: Identifier) -> tuple[Identifier, ...]:
        return self._store.list_right(Relation.ASSIGNMENT, subject)

    def permissions_of(self, role: Identifier) -> tuple[Identifier, ...]:
        return self._store.list_right(Relation.GRANT, role)

    # ------------- transitive resolution ---------

    def _group_roles(self, groups: tuple[Identifier, ...]) -> tuple[Identifier, ...]:
        return ordered_union(*(self.direct_roles(group) for group in groups))

    def effective_roles(self, subject: Identifier) -> tuple[Identifier, ...]:
        cache_key = ("effective_roles", subject)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        roles = ordered_union(
            self.direct_roles(subject),
            self._group_roles(self.groups_of(subject)),
        )
        self._set_cached(cache_key, roles)
        return roles

    def effective_permissions(self, user: Identifier) -> tuple[Identifier, ...]:
        cache_key = ("effective_permissions", user)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        permissions = ordered_union(
            *(self.permissions_of(role) for role in self.effective_roles(user))
        )
        self._set_cached(cache_key, permissions)
        return permissions

    def _permission_set(self, user: Identifier) -> frozenset[Identifier]:
        cache_key = ("permission_set", user)
        cached = self._get_cached(cache_key)
        if cached is not None:
            return cached

        granted = frozenset(self.effective_permissions(user))
        self._set_cached(cache_key, granted)
        return granted

    def check_access(self, user: Identifier, permission: Identifier) -> bool:
        return permission in self._permission_set(user)

    def explain(self, user: Identifier, permission: Identifier) -> AccessDecision:
        direct = self.direct_roles(user)
        groups = self.groups_of(user)
        group_roles = self._group_roles(groups)
        granting = tuple(
            role
            for role in ordered_union(direct, group_roles)
            if permission in self.permissions_of(role)
        )
        return AccessDecision(
            user=user,
            permission=permission,
            allowed=bool(granting),
            direct_roles=direct,
            groups=groups,
            group_roles=group_roles,
            granting_roles=granting,
        )


__all__ = ["AccessDecision", "DEFAULT_CACHE_SIZE", "Resolver"]
