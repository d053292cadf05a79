"""Database seeding for FleetGuard.

Creates the permission catalogue and the default roles with their
permission assignments. Every function is idempotent.
"""

import argparse
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from fleetguard.common.logger import configure_logging, get_logger
from fleetguard.core.rbac.permissions import expand_patterns, get_all_permissions
from fleetguard.core.rbac.roles import DEFAULT_ROLES
from fleetguard.db.models import Permission, Role, RoleHasPermission

logger = get_logger("seed")

GUARD_NAME = "web"


def seed_permissions(db: Session, names: Optional[Iterable[str]] = None) -> dict[str, Permission]:
    """
    Create catalogue permissions that do not exist yet.

    Args:
        db: Database session
        names: Permission names to ensure; defaults to the full catalogue

    Returns:
        Dict mapping permission name to Permission object
    """
    wanted = list(names) if names is not None else get_all_permissions()
    existing = {
        p.name: p
        for p in db.query(Permission).filter(Permission.guard_name == GUARD_NAME).all()
    }

    created = 0
    for name in wanted:
        if name in existing:
            continue
        permission = Permission(name=name, guard_name=GUARD_NAME)
        db.add(permission)
        existing[name] = permission
        created += 1

    db.flush()
    logger.info("Upserted %d permissions (%d new)", len(wanted), created)
    return existing


def assign_permissions(db: Session, role: Role, names: Iterable[str]) -> int:
    """Grant ``names`` to ``role``, skipping grants it already has. Returns new grants."""
    permissions = {
        p.name: p
        for p in db.query(Permission).filter(Permission.name.in_(list(names))).all()
    }
    granted = {
        row.permission_id
        for row in db.query(RoleHasPermission).filter(RoleHasPermission.role_id == role.id).all()
    }

    count = 0
    for permission in permissions.values():
        if permission.id in granted:
            continue
        db.add(RoleHasPermission(role_id=role.id, permission_id=permission.id))
        count += 1

    db.flush()
    return count


def seed_default_roles(db: Session) -> dict[str, Role]:
    """
    Create the default roles and grant their catalogue permissions.

    Roles are matched by name; existing roles keep their grants and only
    receive the missing ones.

    Returns:
        Dict mapping role key to Role object
    """
    catalogue = list(seed_permissions(db).keys())
    roles = {}

    for role_key, role_config in DEFAULT_ROLES.items():
        role = db.query(Role).filter(Role.name == role_config["name"]).first()
        if role is None:
            role = Role(name=role_config["name"], guard_name=GUARD_NAME)
            db.add(role)
            db.flush()

        granted = assign_permissions(db, role, expand_patterns(role_config["patterns"], catalogue))
        logger.info("Role %r: %d new permission grants", role.name, granted)
        roles[role_key] = role

    return roles


def main(argv=None) -> int:
    from fleetguard.core.config import get_settings
    from fleetguard.db.base import Base
    from fleetguard.db.session import create_db_engine, create_session_factory

    parser = argparse.ArgumentParser(description="Seed FleetGuard roles and permissions")
    parser.add_argument("--database-url", help="Override DATABASE_URL")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create missing tables before seeding"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)

    engine = create_db_engine(args.database_url or settings.database_url)
    if args.create_tables:
        Base.metadata.create_all(engine)

    session_factory = create_session_factory(engine)
    with session_factory() as db:
        seed_default_roles(db)
        db.commit()

    engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
