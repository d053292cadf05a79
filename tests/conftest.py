"""Pytest configuration and shared fixtures.

Each test gets its own SQLite database file, so the repository can open
independent sessions (and threads) against committed data.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fleetguard.core.config import Settings
from fleetguard.core.rbac.checker import AccessChecker
from fleetguard.core.rbac.resolver import PermissionResolver
from fleetguard.core.security import SessionClaims, TokenService
from fleetguard.core.tenancy import TenantScopeResolver
from fleetguard.db.base import Base
from fleetguard.db.repository import SqlAlchemyStore
from fleetguard.db.session import create_db_engine, create_session_factory

TEST_SECRET = "test-secret-key"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'fleetguard-test.db'}",
        jwt_secret=TEST_SECRET,
        environment="development",
        log_level="DEBUG",
        _env_file=None,
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(session_factory):
    return SqlAlchemyStore(session_factory)


@pytest.fixture
def resolver(store):
    return PermissionResolver(store)


@pytest.fixture
def access(resolver):
    return AccessChecker(resolver)


@pytest.fixture
def tenancy(store):
    return TenantScopeResolver(store)


@pytest.fixture
def tokens():
    return TokenService(secret=TEST_SECRET)


@pytest.fixture
def fixed_now():
    return datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock_at():
    """Build a TokenService clock pinned to the given instant."""
    def _clock_at(instant: datetime):
        return lambda: instant
    return _clock_at


@pytest.fixture
def claims_for():
    """Build SessionClaims for a stored user (or ad-hoc values)."""
    def _claims_for(user=None, **overrides) -> SessionClaims:
        values = {
            "id": "1",
            "email": "someone@example.com",
            "name": "Someone",
            "role": None,
            "spcode": None,
        }
        if user is not None:
            values.update(
                id=str(user.id),
                email=user.email or "",
                name=user.name,
                role=user.role,
                spcode=str(user.spcode) if user.spcode is not None else None,
            )
        values.update(overrides)
        return SessionClaims(**values)
    return _claims_for


@pytest.fixture
def seven_days():
    return timedelta(days=7)
