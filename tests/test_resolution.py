from __future__ import annotations

import pytest

from rbac_engine import InMemoryRelationStore, Relation
from rbac_engine.resolution import Resolver
from tests.utils import GROUPS, PERMISSIONS, ROLES, USERS, ident


def _store() -> InMemoryRelationStore:
    store = InMemoryRelationStore()
    store.add(Relation.MEMBERSHIP, USERS[0], GROUPS[0])
    store.add(Relation.ASSIGNMENT, GROUPS[0], ROLES[0])
    store.add(Relation.GRANT, ROLES[0], PERMISSIONS[0])
    return store


def test_cache_follows_writes_that_bypass_the_resolver():
    store = _store()
    resolver = Resolver(store)
    assert resolver.effective_permissions(USERS[0]) == (PERMISSIONS[0],)
    assert resolver.cached_entries > 0

    store.add(Relation.GRANT, ROLES[0], PERMISSIONS[1])
    assert resolver.effective_permissions(USERS[0]) == (PERMISSIONS[0], PERMISSIONS[1])
    assert resolver.check_access(USERS[0], PERMISSIONS[1]) is True

    store.remove(Relation.MEMBERSHIP, USERS[0], GROUPS[0])
    assert resolver.check_access(USERS[0], PERMISSIONS[0]) is False
    assert resolver.effective_roles(USERS[0]) == ()


def test_cache_holds_at_most_cache_size_entries():
    store = _store()
    members = [ident(f"4{index}") for index in range(4)]
    for user in members:
        store.add(Relation.MEMBERSHIP, user, GROUPS[0])
    resolver = Resolver(store, cache_size=2)

    for user in members:
        assert resolver.check_access(user, PERMISSIONS[0]) is True
        assert resolver.cached_entries <= 2


def test_cache_size_must_be_positive():
    with pytest.raises(ValueError):
        Resolver(InMemoryRelationStore(), cache_size=0)


def test_uncached_resolver_reads_through():
    store = _store()
    resolver = Resolver(store, cache_enabled=False)
    assert resolver.check_access(USERS[0], PERMISSIONS[1]) is False

    store.add(Relation.GRANT, ROLES[0], PERMISSIONS[1])

    assert resolver.check_access(USERS[0], PERMISSIONS[1]) is True


def test_group_identifier_resolves_to_direct_roles():
    resolver = Resolver(_store())

    assert resolver.effective_roles(GROUPS[0]) == (ROLES[0],)
    assert resolver.members_of(GROUPS[0]) == (USERS[0],)
    assert resolver.groups_of(GROUPS[0]) == ()
