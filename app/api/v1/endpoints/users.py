"""
User management endpoints — admin only.

Every route goes through ``require_admin``, which re-reads the caller from
the credential store, so a demoted or disabled admin loses access at once.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.api.v1.deps import get_credential_store, require_admin
from app.core.exceptions import NotFoundError
from app.schemas.token import SessionClaims
from app.schemas.user import (
    ChangeResponse,
    UserCreate,
    UserRead,
    UserStatusUpdate,
    UserUpdate,
)
from app.services.credential_store import CredentialStore

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


def _user_not_found(user_id: str) -> NotFoundError:
    return NotFoundError(f"User {user_id} not found")


@router.get("", response_model=list[UserRead])
async def list_users(
    store: CredentialStore = Depends(get_credential_store),
    _admin: SessionClaims = Depends(require_admin),
) -> list[UserRead]:
    """List all accounts, newest first."""
    return await store.list_all()


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    store: CredentialStore = Depends(get_credential_store),
    admin: SessionClaims = Depends(require_admin),
) -> UserRead:
    """Create a new account.  409 if the username is taken."""
    user = await store.create(body.full_name, body.username, body.password, body.role)
    logger.info("Admin %s created user %s", admin.username, user.username)
    return user


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    store: CredentialStore = Depends(get_credential_store),
    _admin: SessionClaims = Depends(require_admin),
) -> UserRead:
    user = await store.get(user_id)
    if user is None:
        raise _user_not_found(user_id)
    return UserRead.model_validate(user)


@router.put("/{user_id}", response_model=ChangeResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    store: CredentialStore = Depends(get_credential_store),
    _admin: SessionClaims = Depends(require_admin),
) -> ChangeResponse:
    """Update profile fields; a non-empty ``password`` is re-hashed."""
    changed = await store.update_profile(user_id, **body.model_dump(exclude_unset=True))
    if not changed:
        raise _user_not_found(user_id)
    return ChangeResponse(message="User updated", changes=1)


@router.patch("/{user_id}/status", response_model=ChangeResponse)
async def update_user_status(
    user_id: str,
    body: UserStatusUpdate,
    store: CredentialStore = Depends(get_credential_store),
    _admin: SessionClaims = Depends(require_admin),
) -> ChangeResponse:
    """Activate or deactivate an account."""
    if not await store.set_active(user_id, body.is_active):
        raise _user_not_found(user_id)
    return ChangeResponse(message="Status updated", changes=1)


@router.delete("/{user_id}", response_model=ChangeResponse)
async def delete_user(
    user_id: str,
    store: CredentialStore = Depends(get_credential_store),
    _admin: SessionClaims = Depends(require_admin),
) -> ChangeResponse:
    if not await store.delete(user_id):
        raise _user_not_found(user_id)
    return ChangeResponse(message="User deleted", changes=1)
