"""Common schemas for the FleetGuard API."""

from typing import Optional, Any, List
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str


class StoreErrorResponse(ErrorResponse):
    """Response body for persistent-store failures."""
    type: str
    timestamp: str
    details: Optional[Any] = None


class CompanyResponse(BaseModel):
    id: int
    name: str
    parent_company_id: Optional[int] = None


class CompanyListResponse(BaseModel):
    items: List[CompanyResponse]
    total: int
    scope: str


class PermissionResponse(BaseModel):
    id: int
    name: str
    action: Optional[str] = None
    resource: Optional[str] = None


# OpenAPI documentation for routes behind the authorization guard
GUARDED_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Missing or invalid token"},
    403: {"model": ErrorResponse, "description": "Insufficient permissions"},
    500: {"model": StoreErrorResponse, "description": "Database failure"},
}
