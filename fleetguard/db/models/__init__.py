"""Database models for FleetGuard."""

from fleetguard.db.models.company import Company
from fleetguard.db.models.user import User
from fleetguard.db.models.role import Role, RoleHasPermission
from fleetguard.db.models.permission import Permission
from fleetguard.db.models.password_reset_token import PasswordResetToken

__all__ = [
    "Company",
    "User",
    "Role",
    "RoleHasPermission",
    "Permission",
    "PasswordResetToken",
]
