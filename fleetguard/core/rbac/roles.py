"""Role kinds and default role definitions for FleetGuard.

Users carry a legacy free-text ``role`` string. Internal logic works on
``RoleKind``; the string itself is preserved untouched so that role-name
matching during self-heal behaves exactly as before.

Default roles and their permission patterns:
1. Admin / Super Admin - everything (and bypass permission checks)
2. Company - read access to the company's fleet data
3. Subsidiary - day-to-day fleet operations for a subsidiary
4. Manager - full fleet record management
5. Officer - data entry on fleet records
"""

from enum import Enum
from typing import Dict, List, Optional

from .permissions import expand_patterns


class RoleKind(str, Enum):
    """Well-known role variants; anything else is CUSTOM."""

    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    COMPANY = "company"
    SUBSIDIARY = "subsidiary"
    CUSTOM = "custom"


# Lowercased role strings that grant the admin bypass
ADMIN_ROLE_NAMES = frozenset([
    "admin",
    "super admin",
    "superadmin",
    "super_user",
    "superuser",
])

_ROLE_KIND_BY_NAME = {
    "admin": RoleKind.ADMIN,
    "super admin": RoleKind.SUPER_ADMIN,
    "superadmin": RoleKind.SUPER_ADMIN,
    "super_user": RoleKind.SUPER_ADMIN,
    "superuser": RoleKind.SUPER_ADMIN,
    "company": RoleKind.COMPANY,
    "subsidiary": RoleKind.SUBSIDIARY,
}


def classify_role(role: Optional[str]) -> RoleKind:
    """Map a legacy role string to its ``RoleKind``."""
    if not role:
        return RoleKind.CUSTOM
    return _ROLE_KIND_BY_NAME.get(role.lower(), RoleKind.CUSTOM)


def is_admin_role(role: Optional[str]) -> bool:
    return classify_role(role) in (RoleKind.ADMIN, RoleKind.SUPER_ADMIN)


ADMIN_PATTERNS = ["*"]

COMPANY_PATTERNS = [
    "view *",
    "view * *",
    "view * * *",
]

SUBSIDIARY_PATTERNS = COMPANY_PATTERNS + [
    "add driver",
    "edit driver",
    "add vehicles",
    "edit vehicles",
    "add fuel log",
    "add fuel request",
    "add repair request",
    "add spare parts request",
    "add vehicle reservation",
]

OFFICER_PATTERNS = [
    "view driver",
    "add driver",
    "edit driver",
    "view vehicles",
    "add vehicles",
    "edit vehicles",
    "view fuel",
    "view fuel log",
    "add fuel log",
    "view insurance",
    "add insurance",
    "view maintenance",
    "add maintenance",
    "view repair",
    "add repair",
    "view roadworthy",
    "add roadworthy",
]

MANAGER_PATTERNS = [
    "* driver",
    "* vehicles",
    "view fuel",
    "* fuel log",
    "* insurance",
    "* maintenance",
    "* repair",
    "* roadworthy",
]


DEFAULT_ROLES: Dict[str, dict] = {
    "admin": {
        "name": "Admin",
        "kind": RoleKind.ADMIN,
        "patterns": ADMIN_PATTERNS,
    },
    "super_admin": {
        "name": "Super Admin",
        "kind": RoleKind.SUPER_ADMIN,
        "patterns": ADMIN_PATTERNS,
    },
    "company": {
        "name": "Company",
        "kind": RoleKind.COMPANY,
        "patterns": COMPANY_PATTERNS,
    },
    "subsidiary": {
        "name": "Subsidiary",
        "kind": RoleKind.SUBSIDIARY,
        "patterns": SUBSIDIARY_PATTERNS,
    },
    "manager": {
        "name": "Manager",
        "kind": RoleKind.CUSTOM,
        "patterns": MANAGER_PATTERNS,
    },
    "officer": {
        "name": "Officer",
        "kind": RoleKind.CUSTOM,
        "patterns": OFFICER_PATTERNS,
    },
}


def get_default_role_permissions(role_key: str) -> List[str]:
    """Get the concrete catalogue permissions for a default role."""
    role = DEFAULT_ROLES.get(role_key)
    if not role:
        raise ValueError(f"Unknown default role: {role_key}")
    return expand_patterns(role["patterns"])


def get_all_default_roles() -> Dict[str, dict]:
    """Get all default role definitions."""
    return DEFAULT_ROLES.copy()
