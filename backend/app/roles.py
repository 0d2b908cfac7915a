"""
Caisse Backend — Roles and Agency Lists
=========================================

What:  The role vocabulary and the role groups each gate accepts.
Who:   Used by auth dependencies, the user service and the sale service.
"""

from enum import Enum
from typing import FrozenSet, List, Optional


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    CASHIER = "cashier"
    CAISSIER = "caissier"  # historical spelling of cashier, still issued by old tills
    CLIENT = "client"
    USER = "user"


# Roles allowed through the admin gate
ADMIN_ROLES: FrozenSet[str] = frozenset({Role.SUPER_ADMIN.value, Role.ADMIN.value})

# Roles allowed to record sales
SALE_WRITER_ROLES: FrozenSet[str] = frozenset(
    {
        Role.SUPER_ADMIN.value,
        Role.ADMIN.value,
        Role.CASHIER.value,
        Role.CAISSIER.value,
    }
)

DEFAULT_ROLE = Role.USER.value
SIGNUP_ROLE = Role.CLIENT.value


def is_super_admin(role: Optional[str]) -> bool:
    return role == Role.SUPER_ADMIN.value


def parse_agencies(value: Optional[str]) -> List[str]:
    """
    Split a comma-separated agency list.

    Names are stripped, empty entries dropped and duplicates removed while
    keeping first-seen order. `None` and "" both give an empty list.
    """
    seen: List[str] = []
    for part in (value or "").split(","):
        name = part.strip()
        if name and name not in seen:
            seen.append(name)
    return seen
