"""
Session tokens — signed, self-contained JWTs (python-jose, HS256).

A token carries the identity claims plus issued-at / expiry.  Validation is
a pure computation: signature first, then expiry.  Nothing is looked up in
the credential store here, so a token issued before an account was disabled
stays valid until it expires; callers that need fresher truth re-check the
store themselves.
"""

from __future__ import annotations

import base64
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.exceptions import TokenExpiredError, TokenInvalidError
from app.schemas.token import SessionClaims, SessionIdentity

Clock = Callable[[], datetime]

DEFAULT_TTL = timedelta(hours=8)
_TOKEN_TYPE = "access"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_canonical_b64(segment: str) -> bool:
    """Reject signature segments whose unused trailing bits were tampered with."""
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
    except (ValueError, TypeError):
        return False
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") == segment


def claims_from_payload(payload: dict[str, Any]) -> SessionClaims:
    """Turn a decoded JWT payload back into ``SessionClaims``."""
    if payload.get("type") != _TOKEN_TYPE:
        raise TokenInvalidError()
    try:
        return SessionClaims(
            id=payload["sub"],
            username=payload["username"],
            full_name=payload["name"],
            role=payload["role"],
            issued_at=datetime.fromtimestamp(payload["iat"], timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], timezone.utc),
        )
    except (KeyError, TypeError, ValueError, OverflowError, OSError):
        raise TokenInvalidError() from None


class TokenService:
    """Issues and validates session tokens with an explicitly supplied secret."""

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock | None = None,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret = secret_key
        self._algorithm = algorithm
        self.ttl = ttl
        self._clock = clock or _utcnow

    def issue_with_claims(
        self, identity: SessionIdentity, ttl: timedelta | None = None
    ) -> tuple[str, SessionClaims]:
        # JWT timestamps have second resolution
        now = self._clock().replace(microsecond=0)
        claims = SessionClaims(
            **identity.model_dump(),
            issued_at=now,
            expires_at=now + (ttl if ttl is not None else self.ttl),
        )
        payload: dict[str, Any] = {
            "sub": claims.id,
            "username": claims.username,
            "name": claims.full_name,
            "role": claims.role,
            "iat": claims.issued_at,
            "exp": claims.expires_at,
            "type": _TOKEN_TYPE,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return token, claims

    def issue(self, identity: SessionIdentity, ttl: timedelta | None = None) -> str:
        return self.issue_with_claims(identity, ttl)[0]

    def validate(self, token: str) -> SessionClaims:
        """Return the embedded claims.

        Raises ``TokenInvalidError`` on any signature or shape problem and
        ``TokenExpiredError`` when the signature holds but the expiry passed.
        """
        if not token or token.count(".") != 2:
            raise TokenInvalidError()
        if not _is_canonical_b64(token.rsplit(".", 1)[1]):
            raise TokenInvalidError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            raise TokenInvalidError() from None

        claims = claims_from_payload(payload)
        if self._clock() >= claims.expires_at:
            raise TokenExpiredError()
        return claims
