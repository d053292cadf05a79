"""Tenant-scoped company listing."""

from fastapi import APIRouter, Request

from fleetguard.api.deps import get_store, get_tenancy
from fleetguard.api.guard import require_authentication, require_permission
from fleetguard.api.schemas.common import GUARDED_RESPONSES, CompanyListResponse, CompanyResponse
from fleetguard.core.security import SessionClaims
from fleetguard.core.tenancy import should_return_empty

router = APIRouter(prefix="/companies", tags=["companies"])


@router.get("", responses=GUARDED_RESPONSES)
@require_permission("view companies")
def list_companies(request: Request, user: SessionClaims) -> CompanyListResponse:
    """List the companies visible to the caller."""
    tenancy = get_tenancy(request)

    if should_return_empty(user):
        return CompanyListResponse(items=[], total=0, scope="empty")

    company_ids = tenancy.expand_hierarchical(user)
    companies = get_store(request).list_companies(company_ids)
    return CompanyListResponse(
        items=[
            CompanyResponse(id=c.id, name=c.name, parent_company_id=c.parent_company_id)
            for c in companies
        ],
        total=len(companies),
        scope="unrestricted" if company_ids is None else "company",
    )


@router.get("/scope", responses=GUARDED_RESPONSES)
@require_authentication
def my_scope(request: Request, user: SessionClaims):
    """Describe the caller's tenant scope."""
    scope = get_tenancy(request).get_scope(user)
    return {
        "kind": scope.kind.value,
        "company_id": scope.company_id,
        "company_name": scope.company_name,
    }
