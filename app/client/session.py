"""
HR Portal API client with a local session state machine.

    UNKNOWN ──resolve()──▶ RESOLVING ──▶ AUTHENTICATED | ANONYMOUS
    ANONYMOUS / UNKNOWN ──login() ok──▶ AUTHENTICATED
    any ──logout() / 401 from the server──▶ ANONYMOUS

The client never re-verifies signatures; it only checks the expiry of the
stored token and otherwise trusts it until the server answers 401.  Only one
of resolve / login / logout may be in flight at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import httpx
from jose import JWTError, jwt

from app.client.routes import RouteDecision, decide_route
from app.client.state import SessionBusyError, SessionState
from app.client.storage import MemoryTokenStorage, TokenStorage
from app.core.exceptions import AppError, TokenInvalidError, error_for_code
from app.core.tokens import claims_from_payload
from app.schemas.token import SessionClaims

logger = logging.getLogger(__name__)


def error_from_response(response: httpx.Response) -> AppError:
    """Rebuild the server's domain error from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    detail = body.get("detail")
    exc_class = error_for_code(body.get("code"), response.status_code)
    return exc_class(detail if isinstance(detail, str) else None)


class SessionClient:
    def __init__(
        self,
        base_url: str,
        storage: TokenStorage | None = None,
        *,
        api_prefix: str = "/api",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.storage = storage if storage is not None else MemoryTokenStorage()
        self.api_prefix = api_prefix.rstrip("/")
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()
        self._state = SessionState.UNKNOWN
        self._token: str | None = None
        self._claims: SessionClaims | None = None

    # ── State ───────────────────────────────────────────────────────
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def claims(self) -> SessionClaims | None:
        return self._claims

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def decide(self, route: str, **kwargs: Any) -> RouteDecision:
        return decide_route(self._state, route, **kwargs)

    def _decode(self, token: str) -> SessionClaims | None:
        """Cheap local check: well-formed claims with an expiry still ahead."""
        try:
            claims = claims_from_payload(jwt.get_unverified_claims(token))
        except (JWTError, TokenInvalidError):
            return None
        if self._clock() >= claims.expires_at:
            return None
        return claims

    def _authenticate(self, token: str, claims: SessionClaims) -> None:
        self._token = token
        self._claims = claims
        self._state = SessionState.AUTHENTICATED

    def _discard(self) -> None:
        self.storage.clear()
        self._token = None
        self._claims = None
        self._state = SessionState.ANONYMOUS

    @asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        if self._lock.locked():
            raise SessionBusyError("Another session operation is already in progress")
        async with self._lock:
            yield

    # ── Transitions ─────────────────────────────────────────────────
    async def resolve(self) -> SessionState:
        """Decide the initial state from the stored token."""
        async with self._exclusive():
            self._state = SessionState.RESOLVING
            token = self.storage.load()
            claims = self._decode(token) if token else None
            if token and claims is not None:
                self._authenticate(token, claims)
            else:
                self._discard()
            logger.debug("Session resolved: %s", self._state.value)
            return self._state

    async def login(self, username: str, password: str) -> dict[str, Any]:
        """Log in and persist the token; returns the public user profile."""
        async with self._exclusive():
            response = await self._http.post(
                f"{self.api_prefix}/auth/login",
                json={"username": username, "password": password},
            )
            if response.status_code != 200:
                if response.status_code in (401, 403):
                    self._discard()
                raise error_from_response(response)

            data = response.json()
            token = data["token"]
            claims = self._decode(token)
            if claims is None:
                self._discard()
                raise TokenInvalidError("Server returned an unusable token")
            self.storage.save(token)
            self._authenticate(token, claims)
            logger.info("Logged in as %s", claims.username)
            return data["user"]

    async def logout(self) -> None:
        """Tell the server (best effort) and drop the token regardless."""
        async with self._exclusive():
            try:
                if self._token:
                    await self._http.post(
                        f"{self.api_prefix}/auth/logout",
                        headers={"Authorization": f"Bearer {self._token}"},
                    )
            except httpx.HTTPError as exc:
                logger.warning("Logout request failed, discarding token anyway: %s", exc)
            finally:
                self._discard()

    # ── Protected calls ─────────────────────────────────────────────
    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Call the API with the bearer token; errors raise ``AppError`` subclasses.

        A 401 drops the session immediately.
        """
        headers = dict(kwargs.pop("headers", None) or {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        url = path if path.startswith(self.api_prefix) else f"{self.api_prefix}{path}"
        response = await self._http.request(method, url, headers=headers, **kwargs)
        if response.status_code == 401:
            logger.info("Server rejected the session token, logging out locally")
            self._discard()
        if response.status_code >= 400:
            raise error_from_response(response)
        return response

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> SessionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
