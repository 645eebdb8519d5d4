"""Client-side session states."""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    UNKNOWN = "unknown"
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionBusyError(RuntimeError):
    """A resolve/login/logout was started while another one is in flight."""
