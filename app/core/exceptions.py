"""
Domain errors and global exception handlers.

Every error leaves the API as ``{"detail": ..., "code": ..., "success": false}``
so clients can branch on ``code`` without parsing prose.  Handlers prevent
stack-trace leakage; only internal failures are logged with tracebacks.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


# ── Domain errors ───────────────────────────────────────────────────
class AppError(Exception):
    """Base class for errors that map onto a client-safe HTTP response."""

    status_code: int = 500
    code: str = "internal_error"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_detail = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    code = "invalid_credentials"
    default_detail = "Invalid username or password"


class NotAuthenticatedError(AuthenticationError):
    code = "not_authenticated"
    default_detail = "Not authenticated"


class TokenInvalidError(AuthenticationError):
    code = "token_invalid"
    default_detail = "Invalid session token"


class TokenExpiredError(AuthenticationError):
    code = "token_expired"
    default_detail = "Session expired, please log in again"


class AccountDisabledError(AuthenticationError):
    status_code = 403
    code = "account_disabled"
    default_detail = "User account is disabled"


class AuthorizationError(AppError):
    status_code = 403
    code = "forbidden"
    default_detail = "Insufficient privileges"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_detail = "Username already exists"


class RateLimitedError(AppError):
    status_code = 429
    code = "rate_limited"
    default_detail = "Too many requests"


class InternalError(AppError):
    pass


def _all_subclasses(cls: type[AppError]) -> list[type[AppError]]:
    found = []
    for sub in cls.__subclasses__():
        found.append(sub)
        found.extend(_all_subclasses(sub))
    return found


def error_for_code(code: str | None, status_code: int) -> type[AppError]:
    """Map a response ``code`` (or bare status) back onto its error class."""
    for cls in [*_all_subclasses(AppError), AppError]:
        if cls.code == code and cls.status_code == status_code:
            return cls
    for cls in _all_subclasses(AppError):
        if cls.status_code == status_code and cls.__base__ is AppError:
            return cls
    return AppError


# ── Handlers ────────────────────────────────────────────────────────
def _error_response(status_code: int, code: str, detail: object) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "code": code, "success": False},
        headers=headers,
    )


async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Internal error: %s", exc.detail, exc_info=exc)
        return _error_response(exc.status_code, exc.code, InternalError.default_detail)
    return _error_response(exc.status_code, exc.code, exc.detail)


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    cls = error_for_code(None, exc.status_code)
    code = cls.code if cls is not AppError else "http_error"
    return _error_response(exc.status_code, code, exc.detail)


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    fields = [".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()]
    detail = "Invalid request"
    if fields and any(fields):
        detail = f"Invalid or missing field(s): {', '.join(f for f in fields if f)}"
    return _error_response(400, ValidationError.code, detail)


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return _error_response(409, ConflictError.code, "Database constraint violation")


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return _error_response(500, InternalError.code, "Internal database error")


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return _error_response(500, InternalError.code, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
