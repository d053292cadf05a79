"""Password reset tokens.

A reset token is a random URL-safe string handed to the user out of band.
Only its SHA-256 hash is stored, together with a one-hour expiry. Issuing a
new token retires the user's outstanding ones, and a token stops working
once it has been used.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from fleetguard.common.logger import get_logger
from fleetguard.db.models import PasswordResetToken, User

logger = get_logger("password_reset")

RESET_TOKEN_LIFETIME = timedelta(hours=1)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_reset_token() -> Tuple[str, str]:
    """Generate a password reset token.

    Returns:
        (token, token_hash) tuple
        - token: The value handed to the user
        - token_hash: The value stored in the database
    """
    token = secrets.token_urlsafe(32)
    return token, hash_reset_token(token)


def _active_token_query(db: Session, token: str):
    return db.query(PasswordResetToken).filter(
        PasswordResetToken.token_hash == hash_reset_token(token),
        PasswordResetToken.is_used.is_(False),
        PasswordResetToken.expires_at > datetime.utcnow(),
    )


def create_reset_token(
    user_id: int,
    db: Session,
    lifetime: timedelta = RESET_TOKEN_LIFETIME,
) -> Tuple[PasswordResetToken, str]:
    """Create a reset token for a user, retiring any outstanding ones.

    Returns:
        (token_model, plain_token) tuple
    """
    now = datetime.utcnow()
    outstanding = db.query(PasswordResetToken).filter(
        PasswordResetToken.user_id == user_id,
        PasswordResetToken.is_used.is_(False),
        PasswordResetToken.expires_at > now,
    ).all()
    for previous in outstanding:
        previous.is_used = True

    plain_token, token_hash = generate_reset_token()
    reset_token = PasswordResetToken(
        user_id=user_id,
        token_hash=token_hash,
        expires_at=now + lifetime,
    )

    db.add(reset_token)
    db.commit()
    db.refresh(reset_token)

    logger.info(
        "Issued password reset token for user %s (%d previous retired)", user_id, len(outstanding)
    )
    return reset_token, plain_token


def verify_reset_token(token: str, db: Session) -> Optional[int]:
    """Return the user id for an unused, unexpired token, else None."""
    if not token:
        return None
    reset_token = _active_token_query(db, token).first()
    return reset_token.user_id if reset_token else None


def use_reset_token(token: str, new_password_hash: str, db: Session) -> bool:
    """Set a new password hash through a reset token.

    Returns:
        True if the password was changed; False for an unknown, used or
        expired token.
    """
    if not token:
        return False
    reset_token = _active_token_query(db, token).first()
    if not reset_token:
        return False

    user = db.get(User, reset_token.user_id)
    if not user:
        return False

    user.password_hash = new_password_hash
    reset_token.is_used = True
    reset_token.used_at = datetime.utcnow()

    db.commit()
    logger.info("Password reset for user %s", user.id)
    return True


def cleanup_expired_tokens(db: Session) -> int:
    """Delete expired reset tokens; returns how many were removed."""
    count = db.query(PasswordResetToken).filter(
        PasswordResetToken.expires_at < datetime.utcnow()
    ).delete()

    db.commit()
    return count
