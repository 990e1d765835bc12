"""Closed set of user roles and the access level each one grants."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ORG_ADMIN = "ORG_ADMIN"
    L2_ADMIN = "L2_ADMIN"
    L1_ADMIN = "L1_ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class AccessLevel(str, Enum):
    LEARNER = "learner"
    ADMIN = "admin"


# Every Role must appear here; tests assert the table is exhaustive.
ROLE_ACCESS: dict[Role, AccessLevel] = {
    Role.USER: AccessLevel.LEARNER,
    Role.ORG_ADMIN: AccessLevel.LEARNER,
    Role.L2_ADMIN: AccessLevel.ADMIN,
    Role.L1_ADMIN: AccessLevel.ADMIN,
    Role.SUPER_ADMIN: AccessLevel.ADMIN,
}


def parse_role(value: str) -> Role:
    """Parse a stored role string. Raises ValueError for unknown roles."""
    return Role(value)


def access_level(role: Role) -> AccessLevel:
    """Access level for a role. Raises KeyError if the table is incomplete."""
    return ROLE_ACCESS[role]


def is_admin(role: Role) -> bool:
    return access_level(role) is AccessLevel.ADMIN
