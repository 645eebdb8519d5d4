"""
Credential store — the only owner of identity records.

Passwords are hashed before they reach the session and the digest never
leaves this module through a public read: ``list_all`` and ``create`` return
``UserRead`` views.  ``find_by_username`` / ``get`` return the ORM row and are
meant for the login path and the auth gate only.

Username uniqueness is enforced by the database's unique index; a violation
rolls the transaction back and surfaces as ``ConflictError``.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ValidationError
from app.core.security import MAX_PASSWORD_BYTES, hash_password_async, password_too_long
from app.models.user import ROLE_ADMIN, ROLE_USER, VALID_ROLES, User
from app.schemas.user import UserRead

logger = logging.getLogger(__name__)


def _clean_username(username: str) -> str:
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username must not be empty")
    return username


def _check_password(raw_password: str) -> str:
    if password_too_long(raw_password):
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return raw_password


def _check_role(role: str) -> str:
    if role not in VALID_ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(sorted(VALID_ROLES))}")
    return role


class CredentialStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Reads ───────────────────────────────────────────────────────
    async def get(self, user_id: str) -> User | None:
        return await self.db.get(User, user_id)

    async def find_by_username(self, username: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.username == username.strip())
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[UserRead]:
        """All identities, newest first, without password digests."""
        result = await self.db.execute(
            select(User).order_by(User.created_at.desc(), User.id)
        )
        return [UserRead.model_validate(u) for u in result.scalars().all()]

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(User))
        return result.scalar_one()

    # ── Writes ──────────────────────────────────────────────────────
    async def create(
        self,
        full_name: str,
        username: str,
        raw_password: str,
        role: str = ROLE_USER,
    ) -> UserRead:
        if not raw_password:
            raise ValidationError("Password must not be empty")
        if not (full_name or "").strip():
            raise ValidationError("Full name must not be empty")
        user = User(
            full_name=full_name.strip(),
            username=_clean_username(username),
            password_hash=await hash_password_async(_check_password(raw_password)),
            role=_check_role(role),
            is_active=True,
        )
        self.db.add(user)
        await self._commit_unique(user.username)
        await self.db.refresh(user)
        logger.info("Created user %s (role=%s)", user.username, user.role)
        return UserRead.model_validate(user)

    async def update_profile(
        self,
        user_id: str,
        *,
        full_name: str | None = None,
        username: str | None = None,
        role: str | None = None,
        password: str | None = None,
    ) -> bool:
        """Apply a partial update; an empty password leaves the digest alone."""
        user = await self.get(user_id)
        if user is None:
            return False

        if full_name is not None:
            if not full_name.strip():
                raise ValidationError("Full name must not be empty")
            user.full_name = full_name.strip()
        if username is not None:
            user.username = _clean_username(username)
        if role is not None:
            user.role = _check_role(role)
        if password:
            user.password_hash = await hash_password_async(_check_password(password))

        await self._commit_unique(user.username)
        logger.info("Updated user %s", user_id)
        return True

    async def set_active(self, user_id: str, is_active: bool) -> bool:
        user = await self.get(user_id)
        if user is None:
            return False
        user.is_active = is_active
        await self.db.commit()
        logger.info("User %s %s", user_id, "activated" if is_active else "deactivated")
        return True

    async def delete(self, user_id: str) -> bool:
        user = await self.get(user_id)
        if user is None:
            return False
        await self.db.delete(user)
        await self.db.commit()
        logger.info("Deleted user %s", user_id)
        return True

    async def ensure_admin(self, username: str, password: str, full_name: str) -> bool:
        """Create the bootstrap admin unless a record with *username* exists."""
        if await self.find_by_username(username) is not None:
            return False
        try:
            await self.create(full_name, username, password, role=ROLE_ADMIN)
        except ConflictError:
            # another worker seeded it first
            return False
        return True

    async def _commit_unique(self, username: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info("Rejected duplicate username %s", username)
            raise ConflictError(f"Username '{username}' is already taken") from None
