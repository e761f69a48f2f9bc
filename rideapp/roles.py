"""Account roles and their ordering.

USER < ADMIN < SUPERADMIN. Kept free of any storage or HTTP imports so the
ordering can be checked anywhere.
"""

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {Role.USER: 0, Role.ADMIN: 1, Role.SUPERADMIN: 2}


def at_least(role: Role, threshold: Role) -> bool:
    """True when `role` ranks at or above `threshold`."""
    return Role(role).rank >= Role(threshold).rank


def is_admin(role: Role) -> bool:
    return at_least(role, Role.ADMIN)
