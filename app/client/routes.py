"""
Route access policy, derived only from the session state.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from app.client.state import SessionState

DEFAULT_PUBLIC_ROUTES = frozenset({"/"})


class RouteDecision(str, Enum):
    LOADING = "loading"
    ALLOW = "allow"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    REDIRECT_TO_HOME = "redirect_to_home"


def decide_route(
    state: SessionState,
    route: str,
    *,
    login_route: str = "/login",
    public_routes: Iterable[str] = DEFAULT_PUBLIC_ROUTES,
) -> RouteDecision:
    """Decide what to render for *route*.

    Nothing is decided until the session has resolved, so the wrong screen
    never flashes.  Every route that is neither the login route nor public
    is protected.
    """
    if state in (SessionState.UNKNOWN, SessionState.RESOLVING):
        return RouteDecision.LOADING
    authenticated = state is SessionState.AUTHENTICATED
    if route == login_route:
        return RouteDecision.REDIRECT_TO_HOME if authenticated else RouteDecision.ALLOW
    if route in set(public_routes) or authenticated:
        return RouteDecision.ALLOW
    return RouteDecision.REDIRECT_TO_LOGIN
