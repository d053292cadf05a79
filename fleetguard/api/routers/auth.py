from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from fleetguard.api.deps import get_settings, get_store, get_tokens
from fleetguard.api.guard import require_authentication
from fleetguard.api.schemas.auth import (
    ForgotPasswordRequest,
    LoginResponse,
    LoginUser,
    MessageResponse,
    ResetPasswordRequest,
    ResetTokenStatus,
    UserLogin,
)
from fleetguard.api.schemas.common import GUARDED_RESPONSES, ErrorResponse
from fleetguard.common.logger import get_logger
from fleetguard.core.config import Settings
from fleetguard.core.password_reset import create_reset_token, use_reset_token, verify_reset_token
from fleetguard.core.security import SessionClaims, TokenService, authenticate_user, get_password_hash
from fleetguard.db.repository import SqlAlchemyStore

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger("api.auth")

RESET_REQUESTED_MESSAGE = (
    "If an account with that email/phone exists, we have sent a password reset link."
)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def login(
    credentials: UserLogin,
    store: SqlAlchemyStore = Depends(get_store),
    tokens: TokenService = Depends(get_tokens),
):
    """Login with email or phone and get a 7-day session token."""
    identifier = credentials.email or credentials.phone
    if not identifier or not credentials.password:
        return JSONResponse(
            {"error": "Email/Phone and password are required"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    claims = authenticate_user(store, identifier, credentials.password)
    if claims is None:
        return JSONResponse(
            {"error": "Invalid email/phone or password"},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    logger.info("User %s logged in", claims.id)
    return LoginResponse(
        token=tokens.issue(claims),
        user=LoginUser(id=claims.id, email=claims.email, name=claims.name, role=claims.role),
    )


@router.get("/me", responses=GUARDED_RESPONSES)
@require_authentication
def get_me(request: Request, user: SessionClaims):
    """Get the claims of the presented token."""
    return {"user": user.model_dump(mode="json")}


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
)
def forgot_password(
    body: ForgotPasswordRequest,
    store: SqlAlchemyStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Start a password reset.

    The response is identical whether or not an account matches, so the
    endpoint cannot be used to discover accounts.
    """
    contact = body.email or body.phone
    if not contact:
        return JSONResponse(
            {"error": "Email or phone is required"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    user = store.find_active_user_by_contact(contact)
    if user is None:
        return MessageResponse(message=RESET_REQUESTED_MESSAGE)

    with store.session() as db:
        _, plain_token = create_reset_token(user.id, db)

    # Delivery is external; outside production the link is logged instead
    if not settings.is_production:
        logger.info("Password reset link for user %s: /reset-password?token=%s", user.id, plain_token)

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.get("/verify-reset-token", response_model=ResetTokenStatus)
def verify_reset(token: Optional[str] = None, store: SqlAlchemyStore = Depends(get_store)):
    """Report whether a reset token is still usable."""
    if not token:
        return ResetTokenStatus(valid=False)
    with store.session() as db:
        return ResetTokenStatus(valid=verify_reset_token(token, db) is not None)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
)
def reset_password(body: ResetPasswordRequest, store: SqlAlchemyStore = Depends(get_store)):
    """Set a new password with a reset token; the token is then spent."""
    if not body.token or not body.password:
        return JSONResponse(
            {"error": "Token and password are required"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    with store.session() as db:
        changed = use_reset_token(body.token, get_password_hash(body.password), db)

    if not changed:
        return JSONResponse(
            {"error": "Invalid or expired reset token"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    return MessageResponse(message="Password has been reset")
