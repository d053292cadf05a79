"""Permission model for FleetGuard RBAC.

Defines all modules, actions, and permission combinations.
Uses a matrix approach: permissions = actions x modules.

Permission string format: "action module" (lowercase, single spaces)
Examples:
  - view driver
  - add fuel log
  - edit vehicle dispatch
  - delete spare parts receipt
"""

from enum import Enum
from typing import NamedTuple, Iterable


class Action(str, Enum):
    """Actions that can be performed on a module."""

    VIEW = "view"
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    ACTIVATE = "activate"
    SUSPEND = "suspend"


class Module(str, Enum):
    """Dashboard modules that can be protected by permissions."""

    # Drivers and vehicles
    DRIVER = "driver"
    DRIVER_ROLES = "driver roles"
    VEHICLES = "vehicles"
    VEHICLE_PROFILE = "vehicle profile"
    VEHICLE_DISPATCH = "vehicle dispatch"
    VEHICLE_RESERVATION = "vehicle reservation"
    VEHICLE_TYPES = "vehicle types"
    VEHICLE_MAKES = "vehicle makes"
    VEHICLE_MODELS = "vehicle models"

    # Fuel
    FUEL = "fuel"
    FUEL_LOG = "fuel log"
    FUEL_REQUEST = "fuel request"
    FUEL_EXPENSE = "fuel expense"

    # Compliance and upkeep
    INSURANCE = "insurance"
    MAINTENANCE = "maintenance"
    MAINTENANCE_SCHEDULE = "maintenance schedule"
    REPAIR = "repair"
    REPAIR_REQUEST = "repair request"
    ROADWORTHY = "roadworthy"
    WORKSHOPS = "workshops"
    MECHANICS = "mechanics"
    SUPERVISORS = "supervisors"

    # Spare parts
    SPARE_PARTS = "spare parts"
    SPARE_PARTS_REQUEST = "spare parts request"
    SPARE_PARTS_DISPATCH = "spare parts dispatch"
    SPARE_PARTS_INVENTORY = "spare parts inventory"
    SPARE_PARTS_RECEIPT = "spare parts receipt"

    # Organisation
    COMPANIES = "companies"
    SUBSIDIARY = "subsidiary"
    CATEGORIES = "categories"
    CLUSTERS = "clusters"
    GROUPS = "groups"
    TAGS = "tags"
    REPORTS = "reports"

    # Administration
    USER = "user"
    ROLES = "roles"
    PERMISSIONS = "permissions"
    SETTINGS = "settings"
    GENERAL_SETTINGS = "general settings"
    SECURITY_SETTINGS = "security settings"
    NOTIFICATION_SETTINGS = "notification settings"
    APPEARANCE_SETTINGS = "appearance settings"
    SYSTEM_SETTINGS = "system settings"


def normalize_permission(name: str) -> str:
    """Canonical form used for storage and every comparison."""
    return name.strip().lower()


def normalize_permissions(names: Iterable[str]) -> list[str]:
    return [normalize_permission(n) for n in names]


class Permission(NamedTuple):
    """A permission is an action applied to a module (or any free-form resource)."""
    action: str
    resource: str

    def __str__(self) -> str:
        return normalize_permission(f"{self.action} {self.resource}")

    @classmethod
    def of(cls, action: Action, module: Module) -> "Permission":
        return cls(action.value, module.value)

    @classmethod
    def from_string(cls, perm_str: str) -> "Permission":
        """Parse a permission string like 'view fuel log'.

        The first segment is the action, the remainder the resource.
        """
        parts = normalize_permission(perm_str).split(" ", 1)
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"Invalid permission format: {perm_str}")
        return cls(parts[0], parts[1])


def permission_name(module: str, action: str) -> str:
    """Build a permission name: permission_name('driver', 'view') -> 'view driver'."""
    return f"{action} {module}".lower()


def matches_pattern(permission: str, pattern: str) -> bool:
    """Check a permission against a space-segmented wildcard pattern.

    ``"*"`` alone matches any permission. Otherwise both strings are split
    on single spaces and must have the same number of segments; each
    pattern segment is either ``*`` or equal (case-insensitive) to the
    permission segment at the same position.
    """
    if pattern == "*":
        return True

    perm_parts = permission.lower().split(" ")
    pattern_parts = pattern.lower().split(" ")

    if len(perm_parts) != len(pattern_parts):
        return False

    return all(
        part == "*" or part == perm_parts[index]
        for index, part in enumerate(pattern_parts)
    )


def _generate_permission_definitions() -> dict[str, Permission]:
    """Generate all catalogue permissions from the action x module matrix."""
    permissions = {}
    for module in Module:
        for action in Action:
            perm = Permission.of(action, module)
            permissions[str(perm)] = perm
    return permissions


# All catalogue permissions: "action module" -> Permission
PERMISSION_DEFINITIONS = _generate_permission_definitions()


def is_valid_permission(perm_str: str) -> bool:
    """Check if a permission string is part of the catalogue."""
    return normalize_permission(perm_str) in PERMISSION_DEFINITIONS


def get_permissions_for_module(module: Module) -> list[str]:
    """Get all catalogue permission strings for a module."""
    return [str(Permission.of(action, module)) for action in Action]


def get_all_permissions() -> list[str]:
    """Get all catalogue permission strings."""
    return list(PERMISSION_DEFINITIONS.keys())


def expand_patterns(patterns: Iterable[str], catalogue: Iterable[str] = None) -> list[str]:
    """Expand wildcard patterns into the concrete catalogue permissions they match.

    Result keeps catalogue order and contains no duplicates.
    """
    pattern_list = list(patterns)
    names = get_all_permissions() if catalogue is None else normalize_permissions(catalogue)
    return [
        name for name in dict.fromkeys(names)
        if any(matches_pattern(name, pattern) for pattern in pattern_list)
    ]
