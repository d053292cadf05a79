"""API routers for FleetGuard."""

from . import auth
from . import companies
from . import permissions

__all__ = [
    "auth",
    "companies",
    "permissions",
]
