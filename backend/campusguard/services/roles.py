"""
CampusGuard — Role Hierarchy
==============================

What:  Role and status vocabulary plus the role-satisfaction rules used by
       the auth guard and the privilege workflow.

Rules:
    - A required role set is satisfied when the principal holds any of
      the required roles.
    - super_admin satisfies a requirement for admin. This is the only
      implied role; admin does not imply teacher, teacher does not imply
      parent.
    - admin_readonly may read admin resources but has no write access.
"""

from enum import Enum
from typing import Iterable, List, Optional


class Role(str, Enum):
    PARENT = "parent"
    TEACHER = "teacher"
    ADMIN = "admin"
    ADMIN_READONLY = "admin_readonly"
    SUPER_ADMIN = "super_admin"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    PENDING = "pending"


ALL_ROLES = frozenset(role.value for role in Role)

# Roles that count as the admin tier for the write-access gate
ADMIN_TIER = frozenset({Role.ADMIN.value, Role.ADMIN_READONLY.value, Role.SUPER_ADMIN.value})
WRITE_CAPABLE_ADMIN_ROLES = frozenset({Role.ADMIN.value, Role.SUPER_ADMIN.value})

# Roles an invite may grant
INVITABLE_ROLES = frozenset({Role.TEACHER.value})

# Role assigned when a demotion would leave the set empty
FALLBACK_ROLE = Role.PARENT.value


def _values(roles: Iterable) -> List[str]:
    return [role.value if isinstance(role, Role) else str(role) for role in roles]


def role_satisfies(held: Iterable, required: Optional[Iterable]) -> bool:
    """
    True if the held roles satisfy at least one required role.

    An empty or absent requirement is always satisfied.

    >>> role_satisfies(["super_admin"], ["admin"])
    True
    >>> role_satisfies(["admin"], ["teacher"])
    False
    """
    if not required:
        return True
    required_set = set(_values(required))
    if not required_set:
        return True
    held_set = set(_values(held))
    if held_set & required_set:
        return True
    return Role.ADMIN.value in required_set and Role.SUPER_ADMIN.value in held_set


def has_write_access(held: Iterable) -> bool:
    """
    False only for principals whose admin-tier roles are all read-only.

    Principals outside the admin tier are unaffected; their access is
    decided by the role requirement alone.
    """
    held_set = set(_values(held))
    if not held_set & ADMIN_TIER:
        return True
    return bool(held_set & WRITE_CAPABLE_ADMIN_ROLES)


def is_admin(held: Iterable) -> bool:
    """True if the principal holds admin or super_admin."""
    return bool(set(_values(held)) & WRITE_CAPABLE_ADMIN_ROLES)


def is_super_admin(held: Iterable) -> bool:
    return Role.SUPER_ADMIN.value in set(_values(held))
