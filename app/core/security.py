"""
Password hashing (bcrypt via passlib).

The only persisted form of a password is the digest produced here.  bcrypt
embeds a random salt and the cost factor in every digest, so two hashes of
the same password differ but both verify.  passlib compares the recomputed
digest in constant time.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi.concurrency import run_in_threadpool
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
    bcrypt__truncate_error=True,
)

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


# ── Passwords ───────────────────────────────────────────────────────
def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def get_password_hash(plain: str) -> str:
    """Hash *plain*; raises ``ValueError`` past ``MAX_PASSWORD_BYTES``."""
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Return True iff *plain* produced *hashed*.  Malformed digests never match."""
    # passlib only enforces truncate_error on hash(), not verify()
    if password_too_long(plain):
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return pwd_context.hash("dummy-password-for-timing")


def burn_verification(plain: str) -> None:
    """Spend one verification's worth of CPU for a username that does not exist."""
    verify_password(plain, _dummy_hash())


# bcrypt is CPU-bound: keep it off the event loop so one slow hash does not
# stall unrelated requests.
async def hash_password_async(plain: str) -> str:
    return await run_in_threadpool(get_password_hash, plain)


async def verify_password_async(plain: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, plain, hashed)


async def burn_verification_async(plain: str) -> None:
    await run_in_threadpool(burn_verification, plain)
