"""Identifiers and helpers shared across tests."""

from __future__ import annotations

from rbac_engine import AuthorizationEngine, Identifier

_PREFIX = "0x11223344556677889900112233445566778899001122334455667788990000"


def ident(suffix: str) -> Identifier:
    """Return the fixture identifier ending in the two hex digits ``suffix``."""

    return Identifier.from_hex(_PREFIX + suffix)


OWNER = Identifier(b"\xaa" * 32)
INTRUDER = Identifier(b"\xbb" * 32)

USERS = [ident("00"), ident("01")]
GROUPS = [ident("10"), ident("11"), ident("12")]
ROLES = [ident("20"), ident("21"), ident("22"), ident("23")]
PERMISSIONS = [ident("30"), ident("31"), ident("32"), ident("33"), ident("34")]


def seed_fixture(engine: AuthorizationEngine) -> None:
    """Load the reference graph.

    User0 is in Group0 and Group1; User1 is in no group. Group0 holds Role0,
    Group1 holds Role1, and User0 holds Role2 directly. Role0 grants Perm0 and
    Perm1, Role1 grants Perm2, Role2 grants Perm3, and Role3 grants nothing.
    """

    engine.add_user_to_group(USERS[0], GROUPS[0], caller=OWNER)
    engine.add_user_to_group(USERS[0], GROUPS[1], caller=OWNER)

    engine.add_user_or_group_to_role(GROUPS[0], ROLES[0], caller=OWNER)
    engine.add_user_or_group_to_role(GROUPS[1], ROLES[1], caller=OWNER)
    engine.add_user_or_group_to_role(USERS[0], ROLES[2], caller=OWNER)

    engine.add_role_to_permission(ROLES[0], PERMISSIONS[0], caller=OWNER)
    engine.add_role_to_permission(ROLES[0], PERMISSIONS[1], caller=OWNER)
    engine.add_role_to_permission(ROLES[1], PERMISSIONS[2], caller=OWNER)
    engine.add_role_to_permission(ROLES[2], PERMISSIONS[3], caller=OWNER)


__all__ = [
    "GROUPS",
    "INTRUDER",
    "OWNER",
    "PERMISSIONS",
    "ROLES",
    "USERS",
    "ident",
    "seed_fixture",
]
