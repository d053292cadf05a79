"""Accessors for the services built by ``create_app``.

Everything is constructed once at startup and kept on ``app.state``; route
handlers reach it through the request instead of module globals.
"""

from fastapi import Request

from fleetguard.core.config import Settings
from fleetguard.core.rbac.resolver import PermissionResolver
from fleetguard.core.security import TokenService
from fleetguard.core.tenancy import TenantScopeResolver
from fleetguard.db.repository import SqlAlchemyStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SqlAlchemyStore:
    return request.app.state.store


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_resolver(request: Request) -> PermissionResolver:
    return request.app.state.resolver


def get_tenancy(request: Request) -> TenantScopeResolver:
    return request.app.state.tenancy
