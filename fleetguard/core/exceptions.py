"""Error taxonomy for FleetGuard.

Expected authorization outcomes (missing token, bad token, insufficient
permissions, unresolvable role) are plain return values. Only store
failures travel as exceptions.
"""

from enum import Enum
from typing import Any, Optional


class AuthOutcome(str, Enum):
    """Terminal states of a guarded operation."""

    ALLOWED = "allowed"
    AUTHENTICATION_REQUIRED = "authentication_required"
    INVALID_TOKEN = "invalid_token"
    PERMISSION_DENIED = "permission_denied"


OUTCOME_STATUS = {
    AuthOutcome.ALLOWED: 200,
    AuthOutcome.AUTHENTICATION_REQUIRED: 401,
    AuthOutcome.INVALID_TOKEN: 401,
    AuthOutcome.PERMISSION_DENIED: 403,
}

OUTCOME_MESSAGE = {
    AuthOutcome.ALLOWED: None,
    AuthOutcome.AUTHENTICATION_REQUIRED: "Authentication required",
    AuthOutcome.INVALID_TOKEN: "Invalid token",
    AuthOutcome.PERMISSION_DENIED: "Insufficient permissions",
}


class StoreErrorCategory(str, Enum):
    """Coarse classification of persistent-store failures."""

    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    PERMISSION = "permission"
    UNKNOWN = "unknown"


STORE_ERROR_MESSAGES = {
    StoreErrorCategory.AUTHENTICATION: (
        "Database authentication failed. Please contact your administrator "
        "to verify database credentials."
    ),
    StoreErrorCategory.CONNECTION: (
        "Unable to connect to database server. Please check your network "
        "connection and database server status."
    ),
    StoreErrorCategory.PERMISSION: (
        "Insufficient database permissions. Please contact your administrator."
    ),
    StoreErrorCategory.UNKNOWN: (
        "An unexpected database error occurred. Please try again later."
    ),
}


class FleetGuardError(Exception):
    """Base exception for FleetGuard."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class StoreError(FleetGuardError):
    """Raised when the persistent store fails.

    ``message`` is always the generic, user-safe text for the category;
    the driver error is kept in ``details`` for non-production responses.
    """

    def __init__(self, category: StoreErrorCategory, details: Optional[Any] = None):
        self.category = category
        self.details = details
        super().__init__(STORE_ERROR_MESSAGES[category])


def classify_store_error(error: BaseException) -> StoreErrorCategory:
    """Map a driver/ORM exception to a store error category by its message."""
    text = str(error)
    lowered = text.lower()

    if "authentication failed" in lowered:
        return StoreErrorCategory.AUTHENTICATION

    if "connection" in lowered or "econnrefused" in lowered or "timeout" in lowered:
        return StoreErrorCategory.CONNECTION

    if "permission" in lowered or "access denied" in lowered:
        return StoreErrorCategory.PERMISSION

    return StoreErrorCategory.UNKNOWN


def store_error_from(error: BaseException) -> StoreError:
    """Wrap a driver/ORM exception into a categorized ``StoreError``."""
    return StoreError(classify_store_error(error), details=str(error))
