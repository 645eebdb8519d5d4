"""
FastAPI dependencies — the per-request authorization gate.

``get_current_user`` is stateless: it trusts a token whose signature and
expiry check out.  ``get_current_active_user`` additionally re-reads the
identity from the credential store so deactivation, deletion and role
changes take effect before the token expires; it guards administrative
operations.  Role checks always run after the token has been accepted.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError,
    NotAuthenticatedError,
    TokenInvalidError,
)
from app.core.tokens import TokenService
from app.db.session import get_db
from app.models.user import ROLE_ADMIN
from app.schemas.token import SessionClaims
from app.services.credential_store import CredentialStore

# auto_error=False so a missing header is reported with our own 401 body
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_credential_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> SessionClaims:
    """Validate the bearer token and attach its claims to the request."""
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError()
    claims = tokens.validate(credentials.credentials)
    request.state.user = claims
    return claims


async def get_current_active_user(
    claims: SessionClaims = Depends(get_current_user),
    store: CredentialStore = Depends(get_credential_store),
) -> SessionClaims:
    """Re-check the token's identity against the store."""
    user = await store.get(claims.id)
    if user is None or not user.is_active:
        raise TokenInvalidError("Session is no longer valid")
    # the stored role wins over the one frozen into the token
    return claims.model_copy(update={"role": user.role, "username": user.username})


def require_role(*roles: str) -> Callable:
    """Build a dependency that admits only the given roles."""

    async def _guard(
        current_user: SessionClaims = Depends(get_current_active_user),
    ) -> SessionClaims:
        if current_user.role not in roles:
            raise AuthorizationError()
        return current_user

    return _guard


require_admin = require_role(ROLE_ADMIN)
