"""Credential hashing and stateless session tokens.

Tokens are HS256 JWTs carrying the caller's identity claims. They are not
tracked server-side and cannot be refreshed. ``iat`` and ``exp`` are whole
seconds (JWT NumericDate): the issuance instant is truncated to the second
and the token is valid until exactly ``token_expire_days`` after that ``iat``.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from fleetguard.common.logger import get_logger
from fleetguard.core.config import Settings

logger = get_logger("security")

BCRYPT_ROUNDS = 12

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

IDENTITY_FIELDS = {"id", "email", "name", "role", "spcode"}


def get_password_hash(password: str) -> str:
    """Generate a salted bcrypt hash."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash; malformed hashes never match."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


class SessionClaims(BaseModel):
    """Identity embedded in a session token.

    ``spcode`` is the wire name of the user's company id. The role string
    is trusted as issued and is not re-checked against the roles table.
    """

    id: str
    email: str = ""
    name: str = ""
    role: Optional[str] = None
    spcode: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def company_id(self) -> Optional[str]:
        return self.spcode

    def identity(self) -> dict:
        """The wire payload, without issuance metadata."""
        return self.model_dump(include=IDENTITY_FIELDS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue and verify signed session tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "TokenService":
        if settings.uses_insecure_secret and settings.is_production:
            logger.warning("JWT_SECRET is not set; using the insecure development default")
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(days=settings.token_expire_days),
            **kwargs,
        )

    def issue(self, claims: SessionClaims) -> str:
        """Sign ``claims`` with an expiry of ``iat`` + lifetime."""
        issued_at = int(self.clock().timestamp())
        to_encode = claims.identity()
        to_encode.update({
            "iat": issued_at,
            "exp": issued_at + int(self.lifetime.total_seconds()),
        })
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[SessionClaims]:
        """Return the claims of a valid token.

        Malformed, wrongly signed, incomplete and expired tokens all yield
        ``None``; callers cannot tell them apart.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError:
            return None

        exp = payload.get("exp")
        iat = payload.get("iat")
        if not isinstance(exp, (int, float)) or not isinstance(iat, (int, float)):
            return None
        if self.clock().timestamp() >= exp:
            return None

        try:
            return SessionClaims(
                **{k: v for k, v in payload.items() if k in IDENTITY_FIELDS},
                issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
                expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
            )
        except ValidationError:
            return None


def claims_for_user(user) -> SessionClaims:
    """Build identity claims from a stored user record."""
    return SessionClaims(
        id=str(user.id),
        email=user.email or "",
        name=user.name,
        role=user.role,
        spcode=str(user.company_id) if user.company_id is not None else None,
    )


def authenticate_user(store, identifier: str, password: str) -> Optional[SessionClaims]:
    """Check credentials for an email, phone, or name identifier.

    Returns the claims to issue, or None for an unknown/inactive user or a
    wrong password.
    """
    user = store.find_active_user_by_identifier(identifier)
    if user is None:
        logger.info("Login failed: no active user for identifier")
        return None

    if not verify_password(password, user.password_hash):
        logger.info("Login failed: wrong password for user %s", user.id)
        return None

    return claims_for_user(user)
