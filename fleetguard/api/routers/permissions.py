"""Permission catalogue and self-inspection endpoints."""

from typing import List

from fastapi import APIRouter, Request

from fleetguard.api.deps import get_resolver, get_store
from fleetguard.api.guard import require_authentication, require_permission
from fleetguard.api.schemas.common import GUARDED_RESPONSES, PermissionResponse
from fleetguard.core.rbac.permissions import Permission
from fleetguard.core.security import SessionClaims
from fleetguard.core.tenancy import is_admin

router = APIRouter(prefix="/permissions", tags=["permissions"])


def _describe(record) -> PermissionResponse:
    try:
        parsed = Permission.from_string(record.name)
    except ValueError:
        return PermissionResponse(id=record.id, name=record.name)
    return PermissionResponse(
        id=record.id, name=record.name, action=parsed.action, resource=parsed.resource
    )


@router.get("", responses=GUARDED_RESPONSES)
@require_permission("view permissions")
def list_permissions(request: Request, user: SessionClaims) -> List[PermissionResponse]:
    """List every stored permission."""
    return [_describe(p) for p in get_store(request).list_permissions()]


@router.get("/me", responses=GUARDED_RESPONSES)
@require_authentication
def my_permissions(request: Request, user: SessionClaims):
    """The caller's resolved permission names."""
    permissions = get_resolver(request).resolve(user.id)
    return {
        "user_id": user.id,
        "is_admin": is_admin(user),
        "permissions": sorted(permissions),
    }
