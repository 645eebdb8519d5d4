"""
Auth endpoints — login, logout, current session.

Login is the only path that touches the credential store and the password
hasher together:

1. missing username / password        → 400, no database round trip
2. unknown username                   → 401 generic invalid credentials
3. known but deactivated account      → 403 account disabled
4. wrong password                     → 401, same response as (2)
5. success                            → signed session token + public profile
"""

import logging

from fastapi import APIRouter, Depends, Request

from app.api.v1.deps import get_credential_store, get_current_user, get_token_service
from app.core.config import settings
from app.core.exceptions import AccountDisabledError, AuthenticationError, ValidationError
from app.core.rate_limit import limiter
from app.core.security import burn_verification_async, verify_password_async
from app.core.tokens import TokenService
from app.schemas.token import (
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    SessionClaims,
    SessionIdentity,
)
from app.schemas.user import UserRead
from app.services.credential_store import CredentialStore

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
) -> LoginResponse:
    """Authenticate with username/password and return a bearer token."""
    if not body.username or not body.password:
        raise ValidationError("Username and password are required")

    user = await store.find_by_username(body.username)
    if user is None:
        # keep the response time of unknown usernames in line with real ones
        await burn_verification_async(body.password)
        logger.info("Failed login: unknown username")
        raise AuthenticationError()

    if not user.is_active:
        logger.info("Rejected login for disabled account %s", user.username)
        raise AccountDisabledError()

    if not await verify_password_async(body.password, user.password_hash):
        logger.info("Failed login for %s: bad password", user.username)
        raise AuthenticationError()

    token, claims = tokens.issue_with_claims(
        SessionIdentity(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            role=user.role,
        )
    )
    logger.info("User %s logged in", user.username)
    return LoginResponse(
        token=token,
        expires_at=claims.expires_at,
        user=UserRead.model_validate(user),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout() -> LogoutResponse:
    """Sessions are stateless; the client ends one by discarding its token."""
    return LogoutResponse(message="Logged out")


@router.get("/me", response_model=SessionClaims)
async def read_current_session(
    current_user: SessionClaims = Depends(get_current_user),
) -> SessionClaims:
    """Return the claims of the presented token."""
    return current_user
