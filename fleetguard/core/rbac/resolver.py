"""Effective permission resolution for FleetGuard.

A user's permissions come from the role referenced by ``users.role_id``.
Older accounts may only carry the free-text ``role`` column; the first
resolution for such a user links it to the role of the same name
(case-insensitive) and writes the link back so later calls skip the
lookup entirely.
"""

from typing import FrozenSet, Union

from fleetguard.common.logger import get_logger
from fleetguard.db.repository import Store

from .permissions import normalize_permission

logger = get_logger("rbac")

EMPTY: FrozenSet[str] = frozenset()


class PermissionResolver:
    """Resolves a user's normalized permission names from the store.

    Nothing is cached: every call re-reads the user and the role's
    permission rows.
    """

    def __init__(self, store: Store):
        self.store = store

    def resolve(self, user_id: Union[int, str]) -> FrozenSet[str]:
        """Return the user's effective permission set; empty on any gap.

        Store failures propagate as ``StoreError``.
        """
        try:
            uid = int(user_id)
        except (TypeError, ValueError):
            logger.warning("Cannot resolve permissions for malformed user id %r", user_id)
            return EMPTY

        user = self.store.find_user_by_id(uid)
        if user is None:
            logger.error("User not found: %s", uid)
            return EMPTY

        role_id = user.role_id

        if role_id is None and user.role:
            logger.warning(
                "User %s has no role_id set. Attempting to match role string %r.",
                uid, user.role,
            )
            matched = self.store.find_role_by_name_ci(user.role)
            if matched is None:
                logger.error(
                    "Unresolvable role: %r for user %s does not match any stored role",
                    user.role, uid,
                )
                return EMPTY

            role_id = matched.id
            if self.store.update_user_role_id(uid, matched.id):
                logger.info("Synced user %s role_id to %s (%s)", uid, matched.id, matched.name)
            else:
                # Another writer linked the user first; the stored link wins
                current = self.store.find_user_by_id(uid)
                if current is not None and current.role_id is not None:
                    role_id = current.role_id
                if role_id != matched.id:
                    logger.warning(
                        "User %s was linked to role_id %s concurrently; using it instead of %s",
                        uid, role_id, matched.id,
                    )

        if role_id is None:
            logger.warning("User %s has no role_id and no role string", uid)
            return EMPTY

        permissions = self.role_permissions(role_id)
        logger.debug("User %s has %d permissions via role_id %s", uid, len(permissions), role_id)
        return permissions

    def role_permissions(self, role_id: int) -> FrozenSet[str]:
        """Normalized, de-duplicated permission names granted to a role."""
        rows = self.store.find_permissions_for_role(role_id)

        if not rows:
            role = self.store.find_role_by_id(role_id)
            if role is not None:
                logger.warning(
                    "Role %r (ID: %s, guard: %s) has no permissions assigned",
                    role.name, role_id, role.guard_name,
                )
            else:
                logger.error("Role with ID %s not found", role_id)
            return EMPTY

        return frozenset(normalize_permission(row.name) for row in rows)
