"""Persistent store used by the authorization core.

``SqlAlchemyStore`` is built once at process start from a session factory
and injected into the permission and tenant-scope resolvers. Every method
runs in its own short session and returns plain records, so callers never
hold ORM state across calls. Driver failures surface as ``StoreError``.
"""

import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Protocol, Iterable

from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fleetguard.core.exceptions import store_error_from
from fleetguard.db.models import Company, Permission, Role, RoleHasPermission, User

PHONE_PATTERN = re.compile(r"^[+]?\d[\d\s-]{3,}$")


@dataclass(frozen=True)
class UserRecord:
    id: int
    email: Optional[str]
    phone: Optional[str]
    name: str
    role: Optional[str]
    role_id: Optional[int]
    company_id: Optional[int]
    password_hash: str
    is_active: bool

    @classmethod
    def from_model(cls, user: User) -> "UserRecord":
        return cls(
            id=user.id,
            email=user.email,
            phone=user.phone,
            name=user.name,
            role=user.role,
            role_id=user.role_id,
            company_id=user.spcode,
            password_hash=user.password_hash,
            is_active=bool(user.is_active),
        )


@dataclass(frozen=True)
class RoleRecord:
    id: int
    name: str
    guard_name: str


@dataclass(frozen=True)
class PermissionRecord:
    id: int
    name: str


@dataclass(frozen=True)
class CompanyRecord:
    id: int
    name: str
    parent_company_id: Optional[int]


def _role(role: Role) -> RoleRecord:
    return RoleRecord(id=role.id, name=role.name, guard_name=role.guard_name)


def _company(company: Company) -> CompanyRecord:
    return CompanyRecord(
        id=company.id, name=company.name, parent_company_id=company.parent_company_id
    )


def apply_company_filter(query, column, company_ids: Optional[Iterable[int]]):
    """Restrict a SQLAlchemy query to ``company_ids``.

    ``None`` leaves the query unfiltered; an empty collection matches no rows.
    """
    if company_ids is None:
        return query
    return query.filter(column.in_(list(company_ids)))


class Store(Protocol):
    """Repository contract consumed by the authorization core."""

    def find_user_by_id(self, user_id: int) -> Optional[UserRecord]: ...

    def find_role_by_name_ci(self, name: str) -> Optional[RoleRecord]: ...

    def find_role_by_id(self, role_id: int) -> Optional[RoleRecord]: ...

    def update_user_role_id(self, user_id: int, role_id: int) -> bool: ...

    def find_permissions_for_role(self, role_id: int) -> List[PermissionRecord]: ...

    def find_company_by_id(self, company_id: int) -> Optional[CompanyRecord]: ...

    def find_companies_by_parent(self, parent_id: int) -> List[CompanyRecord]: ...


class SqlAlchemyStore:
    """SQLAlchemy implementation of ``Store``."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session, committing on success and mapping driver errors."""
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise store_error_from(exc) from exc
        finally:
            db.close()

    def close(self) -> None:
        """Release pooled connections."""
        bind = self._session_factory.kw.get("bind")
        if bind is not None:
            bind.dispose()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def find_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self.session() as db:
            user = db.get(User, user_id)
            return UserRecord.from_model(user) if user else None

    def find_active_user_by_identifier(self, identifier: str) -> Optional[UserRecord]:
        """Look up an active user by email, phone, or display name."""
        if "@" in identifier:
            condition = User.email == identifier
        elif PHONE_PATTERN.match(identifier):
            condition = User.phone == identifier
        else:
            condition = or_(
                User.full_name == identifier,
                User.name == identifier,
                User.email == identifier,
                User.phone == identifier,
            )

        with self.session() as db:
            user = (
                db.query(User)
                .filter(condition, User.is_active.is_(True))
                .order_by(User.id)
                .first()
            )
            return UserRecord.from_model(user) if user else None

    def find_active_user_by_contact(self, contact: str) -> Optional[UserRecord]:
        """Active user by email (when ``contact`` contains @) or phone."""
        column = User.email if "@" in contact else User.phone
        with self.session() as db:
            user = (
                db.query(User)
                .filter(column == contact, User.is_active.is_(True))
                .order_by(User.id)
                .first()
            )
            return UserRecord.from_model(user) if user else None

    def update_user_role_id(self, user_id: int, role_id: int) -> bool:
        """Link a user to a role if not linked yet.

        Single-row conditional update: concurrent callers converge and a
        link written by anyone else is never overwritten. Returns whether
        this call changed the row.
        """
        with self.session() as db:
            result = db.execute(
                update(User)
                .where(User.id == user_id, User.role_id.is_(None))
                .values(role_id=role_id)
            )
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Roles and permissions
    # ------------------------------------------------------------------

    def find_role_by_name_ci(self, name: str) -> Optional[RoleRecord]:
        with self.session() as db:
            role = (
                db.query(Role)
                .filter(func.lower(Role.name) == name.strip().lower())
                .order_by(Role.id)
                .first()
            )
            return _role(role) if role else None

    def find_role_by_id(self, role_id: int) -> Optional[RoleRecord]:
        with self.session() as db:
            role = db.get(Role, role_id)
            return _role(role) if role else None

    def find_permissions_for_role(self, role_id: int) -> List[PermissionRecord]:
        with self.session() as db:
            rows = (
                db.query(Permission.id, Permission.name)
                .join(RoleHasPermission, RoleHasPermission.permission_id == Permission.id)
                .filter(RoleHasPermission.role_id == role_id)
                .order_by(Permission.id)
                .all()
            )
            return [PermissionRecord(id=row.id, name=row.name) for row in rows]

    def list_permissions(self) -> List[PermissionRecord]:
        with self.session() as db:
            rows = db.query(Permission.id, Permission.name).order_by(Permission.name).all()
            return [PermissionRecord(id=row.id, name=row.name) for row in rows]

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def find_company_by_id(self, company_id: int) -> Optional[CompanyRecord]:
        with self.session() as db:
            company = db.get(Company, company_id)
            return _company(company) if company else None

    def find_companies_by_parent(self, parent_id: int) -> List[CompanyRecord]:
        with self.session() as db:
            companies = (
                db.query(Company)
                .filter(Company.parent_company_id == parent_id)
                .order_by(Company.id)
                .all()
            )
            return [_company(c) for c in companies]

    def list_companies(self, company_ids: Optional[Iterable[int]] = None) -> List[CompanyRecord]:
        """List companies, restricted to ``company_ids`` unless it is None."""
        with self.session() as db:
            query = apply_company_filter(db.query(Company), Company.id, company_ids)
            return [_company(c) for c in query.order_by(Company.id).all()]
