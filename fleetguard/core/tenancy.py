"""Tenant scoping: which companies' data a user may see.

Admins see everything. Everyone else is confined to the company in their
``company_id`` (wire name ``spcode``); a user without one sees nothing.
Users whose role string is exactly ``subsidiary`` additionally see the
direct children of their company. The hierarchy is exactly one level deep.
"""

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from fleetguard.common.logger import get_logger
from fleetguard.core.exceptions import StoreError
from fleetguard.core.rbac.roles import is_admin_role
from fleetguard.db.repository import Store, apply_company_filter  # noqa: F401

logger = get_logger("tenancy")

SUBSIDIARY_ROLE = "subsidiary"


class ScopeKind(str, Enum):
    UNRESTRICTED = "unrestricted"
    EMPTY = "empty"
    COMPANY = "company"


@dataclass(frozen=True)
class TenantScope:
    """Result of a scoping decision."""
    kind: ScopeKind
    company_id: Optional[int] = None
    company_name: Optional[str] = None

    @classmethod
    def unrestricted(cls) -> "TenantScope":
        return cls(ScopeKind.UNRESTRICTED)

    @classmethod
    def empty(cls) -> "TenantScope":
        return cls(ScopeKind.EMPTY)

    @classmethod
    def company(cls, company_id: int, company_name: Optional[str] = None) -> "TenantScope":
        return cls(ScopeKind.COMPANY, company_id, company_name)

    @property
    def company_ids(self) -> Optional[FrozenSet[int]]:
        """Filter ids for this scope; None means do not filter."""
        if self.kind is ScopeKind.UNRESTRICTED:
            return None
        if self.kind is ScopeKind.EMPTY:
            return frozenset()
        return frozenset([self.company_id])


def _company_id(user) -> Optional[int]:
    """The user's company id as an int, or None when absent or malformed."""
    raw = getattr(user, "company_id", None)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring malformed company id %r for user %s", raw, getattr(user, "id", None))
        return None


def is_admin(user) -> bool:
    """True when the user's role string is one of the admin names."""
    if user is None:
        return False
    return is_admin_role(getattr(user, "role", None))


def should_return_empty(user) -> bool:
    """Cheap pre-check: a non-admin without a company sees no rows."""
    if user is None:
        return False
    if is_admin(user):
        return False
    return not getattr(user, "company_id", None)


class TenantScopeResolver:
    """Scoping decisions that may need company lookups."""

    def __init__(self, store: Store):
        self.store = store

    is_admin = staticmethod(is_admin)
    should_return_empty = staticmethod(should_return_empty)

    def get_scope(self, user) -> TenantScope:
        if is_admin(user):
            return TenantScope.unrestricted()

        company_id = _company_id(user)
        if company_id is None:
            return TenantScope.empty()

        try:
            company = self.store.find_company_by_id(company_id)
        except StoreError as exc:
            logger.warning("Company name lookup failed for %s: %s", company_id, exc.category.value)
            company = None

        return TenantScope.company(company_id, company.name if company else None)

    def expand_hierarchical(self, user) -> Optional[FrozenSet[int]]:
        """Company ids visible to fleet and telemetry queries.

        Returns None for admins (skip filtering), an empty set for users
        without a company, the own company plus its direct children for
        role ``subsidiary`` (case-sensitive), and the own company otherwise.
        """
        if is_admin(user):
            return None

        company_id = _company_id(user)
        if company_id is None:
            return frozenset()

        # Exact match: "Subsidiary" or "SUBSIDIARY" tokens stay on their own company
        if getattr(user, "role", None) == SUBSIDIARY_ROLE:
            children = self.store.find_companies_by_parent(company_id)
            return frozenset([company_id] + [c.id for c in children])

        return frozenset([company_id])
