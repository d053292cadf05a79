"""Route guard: bearer token -> admin bypass -> permission check -> handler.

Each guarded request ends in exactly one terminal state:

* 401 ``Authentication required`` when no bearer token is sent
* 401 ``Invalid token`` when the token does not verify
* 403 ``Insufficient permissions`` when the resolved permissions fall short
* otherwise the wrapped handler runs and its response is returned unchanged

Outcomes are values, not exceptions, so a handler never runs partially.
Store failures raised while resolving permissions propagate to the
application's ``StoreError`` handler.
"""

import inspect
from typing import Awaitable, Callable, List, NamedTuple, Optional, Sequence, Tuple, Union

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from fleetguard.common.logger import get_logger
from fleetguard.core.exceptions import AuthOutcome, OUTCOME_MESSAGE, OUTCOME_STATUS
from fleetguard.core.rbac.checker import AccessChecker
from fleetguard.core.rbac.permissions import normalize_permission
from fleetguard.core.security import SessionClaims, TokenService
from fleetguard.core.tenancy import is_admin

logger = get_logger("api.guard")

RequiredPermissions = Union[str, Sequence[str]]
Handler = Callable[[Request, SessionClaims], Union[Response, Awaitable[Response]]]


class AuthorizationDecision(NamedTuple):
    outcome: AuthOutcome
    user: Optional[SessionClaims] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is AuthOutcome.ALLOWED

    @property
    def message(self) -> Optional[str]:
        return OUTCOME_MESSAGE[self.outcome]

    def to_response(self) -> JSONResponse:
        """Error response for a rejected decision."""
        headers = None
        if OUTCOME_STATUS[self.outcome] == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            {"error": self.message},
            status_code=OUTCOME_STATUS[self.outcome],
            headers=headers,
        )


def extract_bearer_token(request: Request) -> Optional[str]:
    """Token from the Authorization header, or None when absent/blank."""
    header = request.headers.get("authorization")
    if not header:
        return None
    token = header.replace("Bearer ", "", 1).strip()
    return token or None


def _required_list(required: RequiredPermissions) -> List[str]:
    if isinstance(required, str):
        return [normalize_permission(required)]
    return [normalize_permission(p) for p in required]


class AuthorizationGuard:
    """Composes token verification, admin bypass and permission checks."""

    def __init__(self, tokens: TokenService, access: AccessChecker):
        self.tokens = tokens
        self.access = access

    def get_auth_user(self, request: Request) -> Optional[SessionClaims]:
        token = extract_bearer_token(request)
        if token is None:
            return None
        return self.tokens.verify(token)

    def authenticate(self, request: Request) -> AuthorizationDecision:
        """Token checks only, no permission evaluation."""
        token = extract_bearer_token(request)
        if token is None:
            return AuthorizationDecision(AuthOutcome.AUTHENTICATION_REQUIRED)

        user = self.tokens.verify(token)
        if user is None:
            return AuthorizationDecision(AuthOutcome.INVALID_TOKEN)

        return AuthorizationDecision(AuthOutcome.ALLOWED, user)

    def authorize(
        self,
        request: Request,
        required: RequiredPermissions,
        require_all: bool = False,
        allow_super_admin: bool = True,
    ) -> AuthorizationDecision:
        decision = self.authenticate(request)
        if not decision.allowed:
            logger.info("Rejected %s %s: %s", request.method, request.url.path, decision.message)
            return decision

        user = decision.user
        if allow_super_admin and is_admin(user):
            return decision

        perms = _required_list(required)
        if require_all:
            has_access = self.access.has_all(user.id, perms)
        else:
            has_access = self.access.has_any(user.id, perms)

        if not has_access:
            logger.info(
                "Permission denied for user %s on %s %s. Required (%s): %s",
                user.id, request.method, request.url.path,
                "all" if require_all else "any", ", ".join(perms),
            )
            return AuthorizationDecision(AuthOutcome.PERMISSION_DENIED, user)

        return decision

    def check_permission(
        self,
        request: Request,
        required: RequiredPermissions,
        require_all: bool = False,
        allow_super_admin: bool = True,
    ) -> Tuple[bool, Optional[SessionClaims]]:
        """Non-wrapping variant: ``(has_access, user)``; user is None on token failure."""
        decision = self.authorize(request, required, require_all, allow_super_admin)
        return decision.allowed, decision.user


def get_guard(request: Request) -> AuthorizationGuard:
    return request.app.state.guard


async def _call_handler(handler: Handler, request: Request, user: SessionClaims) -> Response:
    if inspect.iscoroutinefunction(handler):
        return await handler(request, user)
    return await run_in_threadpool(handler, request, user)


def require_permission(
    required: RequiredPermissions,
    require_all: bool = False,
    allow_super_admin: bool = True,
):
    """
    Decorator factory guarding a ``(request, user) -> response`` handler.

    Args:
        required: One permission name or a list of names
        require_all: If True, user must have ALL permissions. Default: any one.
        allow_super_admin: Let admin roles through without resolving permissions.

    Usage:
        @router.get("/drivers")
        @require_permission(["view driver", "edit driver"])
        async def list_drivers(request: Request, user: SessionClaims):
            ...
    """
    def decorator(handler: Handler):
        async def guarded(request: Request) -> Response:
            guard = get_guard(request)
            decision = await run_in_threadpool(
                guard.authorize, request, required, require_all, allow_super_admin
            )
            if not decision.allowed:
                return decision.to_response()
            return await _call_handler(handler, request, decision.user)

        # No functools.wraps: FastAPI must see the (request) signature, not the handler's.
        guarded.__name__ = handler.__name__
        guarded.__qualname__ = handler.__qualname__
        guarded.__doc__ = handler.__doc__
        guarded.__module__ = handler.__module__
        return guarded

    return decorator


def require_authentication(handler: Handler):
    """Guard a handler on a valid token alone."""
    async def guarded(request: Request) -> Response:
        decision = get_guard(request).authenticate(request)
        if not decision.allowed:
            return decision.to_response()
        return await _call_handler(handler, request, decision.user)

    guarded.__name__ = handler.__name__
    guarded.__qualname__ = handler.__qualname__
    guarded.__doc__ = handler.__doc__
    guarded.__module__ = handler.__module__
    return guarded
