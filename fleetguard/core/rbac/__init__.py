"""RBAC (Role-Based Access Control) module for FleetGuard.

This module defines the permission model, role kinds, permission
resolution and access control utilities.
"""

from .permissions import (
    Permission,
    Module,
    Action,
    PERMISSION_DEFINITIONS,
    matches_pattern,
    normalize_permission,
    permission_name,
)
from .roles import RoleKind, classify_role, is_admin_role
from .resolver import PermissionResolver
from .checker import AccessChecker, PermissionChecker

__all__ = [
    "Permission",
    "Module",
    "Action",
    "PERMISSION_DEFINITIONS",
    "matches_pattern",
    "normalize_permission",
    "permission_name",
    "RoleKind",
    "classify_role",
    "is_admin_role",
    "PermissionResolver",
    "AccessChecker",
    "PermissionChecker",
]
