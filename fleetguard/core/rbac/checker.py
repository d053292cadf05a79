"""Permission checking utilities for FleetGuard.

``PermissionChecker`` answers membership questions over a permission set
already in hand. ``AccessChecker`` does the same for a user id, resolving
the set through ``PermissionResolver`` on every call.
"""

from typing import Iterable, List, Union

from .permissions import Permission, matches_pattern, normalize_permission
from .resolver import PermissionResolver

PermissionLike = Union[str, Permission]


def _name(permission: PermissionLike) -> str:
    return normalize_permission(str(permission))


def _names(permissions: Union[PermissionLike, Iterable[PermissionLike]]) -> List[str]:
    """A bare name or Permission counts as a one-item list, never as characters."""
    if isinstance(permissions, (str, Permission)):
        return [_name(permissions)]
    return [_name(p) for p in permissions]


class PermissionChecker:
    """Checks a fixed set of granted permission names.

    Membership is exact on normalized names; wildcard patterns are only
    evaluated through ``has_matching``.
    """

    def __init__(self, user_permissions: Iterable[str]):
        self.permissions = frozenset(normalize_permission(p) for p in user_permissions)

    def has_permission(self, permission: PermissionLike) -> bool:
        return _name(permission) in self.permissions

    def has_any_permission(self, permissions: Iterable[PermissionLike]) -> bool:
        """True if at least one of the given permissions is granted."""
        return any(p in self.permissions for p in _names(permissions))

    def has_all_permissions(self, permissions: Iterable[PermissionLike]) -> bool:
        """True only if every given permission is granted."""
        return all(p in self.permissions for p in _names(permissions))

    def has_matching(self, pattern: str) -> bool:
        """True if any granted permission matches the wildcard pattern."""
        return any(matches_pattern(p, pattern) for p in self.permissions)


class AccessChecker:
    """Per-user permission checks backed by the store."""

    def __init__(self, resolver: PermissionResolver):
        self.resolver = resolver

    def checker_for(self, user_id) -> PermissionChecker:
        return PermissionChecker(self.resolver.resolve(user_id))

    def has(self, user_id, name: PermissionLike) -> bool:
        return self.checker_for(user_id).has_permission(name)

    def has_any(self, user_id, names: Iterable[PermissionLike]) -> bool:
        return self.checker_for(user_id).has_any_permission(names)

    def has_all(self, user_id, names: Iterable[PermissionLike]) -> bool:
        return self.checker_for(user_id).has_all_permissions(names)

    def has_matching(self, user_id, pattern: str) -> bool:
        return self.checker_for(user_id).has_matching(pattern)

    @staticmethod
    def matches_pattern(permission: str, pattern: str) -> bool:
        return matches_pattern(permission, pattern)
