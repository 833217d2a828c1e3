"""Closed role set and the membership predicate behind every role gate."""

from collections.abc import Collection
from enum import Enum


class Role(str, Enum):
    """Marketplace roles. Administrative roles are not modeled."""

    FREELANCER = "FREELANCER"
    CLIENT = "CLIENT"


def parse_role(value: str | None) -> Role | None:
    """Return the Role for a raw claim value, or None if it isn't one."""
    if value is None:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def is_role_allowed(role: Role | None, allowed: Role | Collection[Role]) -> bool:
    """True when ``role`` is a member of ``allowed`` (a single role or a collection)."""
    if role is None:
        return False
    if isinstance(allowed, Role):
        return role is allowed
    return role in set(allowed)
