"""Behavioural tests for the authorization engine over both store backends."""

from __future__ import annotations

import pytest

from rbac_engine import (
    AuthorizationEngine,
    EngineNotInitialized,
    InMemoryRelationStore,
    InvalidIdentifier,
    Relation,
    Unauthorized,
)
from rbac_engine.gate import GateState
from tests.utils import GROUPS, INTRUDER, OWNER, PERMISSIONS, ROLES, USERS, seed_fixture


def _state(engine: AuthorizationEngine) -> dict[Relation, tuple]:
    return {relation: engine.store.edges(relation) for relation in Relation}


def test_construction_binds_owner(engine):
    assert engine.owner == OWNER
    assert engine.state is GateState.ACTIVE
    assert engine.store.load_owner() == OWNER


def test_construction_without_owner_requires_recorded_owner():
    with pytest.raises(EngineNotInitialized):
        AuthorizationEngine(store=InMemoryRelationStore())


def test_recorded_owner_wins_over_different_deployer():
    store = InMemoryRelationStore()
    AuthorizationEngine(owner=OWNER, store=store)

    assert AuthorizationEngine(store=store).owner == OWNER
    with pytest.raises(Unauthorized):
        AuthorizationEngine(owner=INTRUDER, store=store)


def test_reference_fixture_resolution(engine):
    seed_fixture(engine)

    assert engine.read_user_group(GROUPS[0]) == (USERS[0],)
    assert engine.read_user_group(GROUPS[1]) == (USERS[0],)
    assert engine.read_user_group(GROUPS[2]) == ()

    assert engine.read_user_or_group_roles(USERS[0]) == (ROLES[2], ROLES[0], ROLES[1])
    assert engine.read_user_or_group_roles(GROUPS[0]) == (ROLES[0],)
    assert engine.read_user_or_group_roles(GROUPS[1]) == (ROLES[1],)
    assert engine.read_direct_roles(USERS[0]) == (ROLES[2],)
    assert engine.read_effective_roles(USERS[0]) == engine.read_user_or_group_roles(USERS[0])

    assert engine.read_permissions(ROLES[0]) == (PERMISSIONS[0], PERMISSIONS[1])
    assert engine.read_permissions(ROLES[1]) == (PERMISSIONS[2],)
    assert engine.read_permissions(ROLES[2]) == (PERMISSIONS[3],)
    assert engine.read_permissions(ROLES[3]) == ()

    for permission in PERMISSIONS[:4]:
        assert engine.check_access(USERS[0], permission) is True
    assert engine.check_access(USERS[0], PERMISSIONS[4]) is False
    assert engine.check_access(USERS[1], PERMISSIONS[0]) is False


def test_effective_permissions_follow_role_then_grant_order(engine):
    seed_fixture(engine)

    assert engine.read_user_groups(USERS[0]) == (GROUPS[0], GROUPS[1])
    assert engine.read_effective_permissions(USERS[0]) == (
        PERMISSIONS[3],
        PERMISSIONS[0],
        PERMISSIONS[1],
        PERMISSIONS[2],
    )
    assert engine.read_effective_permissions(USERS[1]) == ()


def test_duplicate_role_through_direct_and_group_is_listed_once(engine):
    engine.add_user_to_group(USERS[0], GROUPS[0], caller=OWNER)
    engine.add_user_or_group_to_role(USERS[0], ROLES[0], caller=OWNER)
    engine.add_user_or_group_to_role(GROUPS[0], ROLES[0], caller=OWNER)

    assert engine.read_user_or_group_roles(USERS[0]) == (ROLES[0],)


def test_empty_engine_queries_return_nothing(engine):
    assert engine.read_user_group(GROUPS[0]) == ()
    assert engine.read_user_or_group_roles(USERS[0]) == ()
    assert engine.read_direct_roles(USERS[0]) == ()
    assert engine.read_permissions(ROLES[0]) == ()
    assert engine.read_effective_permissions(USERS[0]) == ()
    assert engine.check_access(USERS[0], PERMISSIONS[0]) is False


def test_mutations_are_idempotent(engine):
    assert engine.add_user_to_group(USERS[0], GROUPS[0], caller=OWNER) is True
    snapshot = _state(engine)

    assert engine.add_user_to_group(USERS[0], GROUPS[0], caller=OWNER) is False
    assert _state(engine) == snapshot
    assert engine.read_user_group(GROUPS[0]) == (USERS[0],)


@pytest.mark.parametrize(
    ("add", "remove", "left", "right"),
    [
        ("add_user_to_group", "remove_user_from_group", USERS[0], GROUPS[0]),
        ("add_user_or_group_to_role", "remove_user_or_group_from_role", GROUPS[0], ROLES[0]),
        ("add_role_to_permission", "remove_role_from_permission", ROLES[0], PERMISSIONS[0]),
    ],
)
def test_add_then_remove_is_inverse(engine, add, remove, left, right):
    seed_fixture(engine)
    getattr(engine, remove)(left, right, caller=OWNER)
    before = _state(engine)

    assert getattr(engine, add)(left, right, caller=OWNER) is True
    assert getattr(engine, remove)(left, right, caller=OWNER) is True
    assert getattr(engine, remove)(left, right, caller=OWNER) is False

    assert _state(engine) == before


@pytest.mark.parametrize(
    ("method", "left", "right"),
    [
        ("add_user_to_group", USERS[1], GROUPS[2]),
        ("remove_user_from_group", USERS[0], GROUPS[0]),
        ("add_user_or_group_to_role", USERS[1], ROLES[3]),
        ("remove_user_or_group_from_role", GROUPS[0], ROLES[0]),
        ("add_role_to_permission", ROLES[3], PERMISSIONS[4]),
        ("remove_role_from_permission", ROLES[0], PERMISSIONS[0]),
    ],
)
def test_non_owner_mutations_fail_without_side_effects(engine, method, left, right):
    seed_fixture(engine)
    before = _state(engine)
    access_before = engine.read_effective_permissions(USERS[0])

    with pytest.raises(Unauthorized) as excinfo:
        getattr(engine, method)(left, right, caller=INTRUDER)

    assert excinfo.value.caller == INTRUDER
    assert _state(engine) == before
    assert engine.read_effective_permissions(USERS[0]) == access_before


def test_removals_are_visible_to_later_checks(engine):
    seed_fixture(engine)
    assert engine.check_access(USERS[0], PERMISSIONS[2]) is True

    engine.remove_user_from_group(USERS[0], GROUPS[1], caller=OWNER)
    assert engine.check_access(USERS[0], PERMISSIONS[2]) is False

    engine.add_user_or_group_to_role(USERS[0], ROLES[1], caller=OWNER)
    assert engine.check_access(USERS[0], PERMISSIONS[2]) is True

    engine.remove_role_from_permission(ROLES[1], PERMISSIONS[2], caller=OWNER)
    assert engine.check_access(USERS[0], PERMISSIONS[2]) is False


def test_no_cascade_when_removing_membership(engine):
    seed_fixture(engine)
    engine.remove_user_from_group(USERS[0], GROUPS[0], caller=OWNER)

    assert engine.read_user_or_group_roles(GROUPS[0]) == (ROLES[0],)
    assert engine.read_permissions(ROLES[0]) == (PERMISSIONS[0], PERMISSIONS[1])


def test_results_match_with_cache_disabled(store):
    cached = AuthorizationEngine(owner=OWNER)
    uncached = AuthorizationEngine(owner=OWNER, store=store, cache_enabled=False)
    for engine in (cached, uncached):
        seed_fixture(engine)
        engine.remove_user_or_group_from_role(GROUPS[0], ROLES[0], caller=OWNER)

    assert cached.read_effective_permissions(USERS[0]) == uncached.read_effective_permissions(
        USERS[0]
    )
    assert cached.check_access(USERS[0], PERMISSIONS[0]) is False
    assert uncached.check_access(USERS[0], PERMISSIONS[0]) is False


def test_explain_access_reports_path(engine):
    seed_fixture(engine)

    decision = engine.explain_access(USERS[0], PERMISSIONS[1])

    assert decision.allowed is True
    assert decision.direct_roles == (ROLES[2],)
    assert decision.groups == (GROUPS[0], GROUPS[1])
    assert decision.group_roles == (ROLES[0], ROLES[1])
    assert decision.granting_roles == (ROLES[0],)
    assert decision.effective_roles == (ROLES[2], ROLES[0], ROLES[1])

    denied = engine.explain_access(USERS[1], PERMISSIONS[1])
    assert denied.allowed is False
    assert denied.granting_roles == ()


def test_string_identifiers_are_accepted(engine):
    assert engine.add_user_to_group(USERS[0].to_hex(), GROUPS[0].to_hex(), caller=OWNER.to_hex())
    assert engine.read_user_group(str(GROUPS[0])) == (USERS[0],)


def test_malformed_identifier_is_rejected_before_any_change(engine):
    with pytest.raises(InvalidIdentifier):
        engine.add_user_to_group("0x1234", GROUPS[0], caller=OWNER)

    assert engine.store.is_empty()
