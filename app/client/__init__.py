"""Python client for the HR Portal API with a local session state machine."""

from app.client.routes import RouteDecision, decide_route
from app.client.session import SessionClient
from app.client.state import SessionBusyError, SessionState
from app.client.storage import FileTokenStorage, MemoryTokenStorage, TokenStorage

__all__ = [
    "FileTokenStorage",
    "MemoryTokenStorage",
    "RouteDecision",
    "SessionBusyError",
    "SessionClient",
    "SessionState",
    "TokenStorage",
    "decide_route",
]
