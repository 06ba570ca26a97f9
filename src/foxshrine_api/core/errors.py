"""API error taxonomy and the JSON error envelope.

Services and dependencies raise these; ``register_exception_handlers``
renders them as ``{"success": false, "error": ..., "code": ...}``.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

NO_TOKEN = "NO_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
INVALID_TOKEN = "INVALID_TOKEN"
USER_NOT_FOUND = "USER_NOT_FOUND"
AUTH_ERROR = "AUTH_ERROR"
INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"


class APIError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code
        self.extra = extra or {}
        super().__init__(self.message)

    def to_content(self) -> dict[str, Any]:
        content: dict[str, Any] = {"success": False, "error": self.message}
        if self.code is not None:
            content["code"] = self.code
        content.update(self.extra)
        return content


class ValidationError(APIError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(APIError):
    """Token or credential problem; ``code`` says which."""

    status_code = 401
    default_message = "Authentication required"


class PermissionDeniedError(APIError):
    """Authenticated, but lacking a capability."""

    status_code = 403
    default_message = "Permission denied"

    def __init__(self, required: str, user_permissions: list[str]) -> None:
        super().__init__(
            f"Permission '{required}' required",
            code=INSUFFICIENT_PERMISSIONS,
            extra={"required": required, "userPermissions": list(user_permissions)},
        )


class NotFoundError(APIError):
    status_code = 404
    default_message = "Not found"


class ConflictError(APIError):
    status_code = 409
    default_message = "Conflict"


class LockedError(APIError):
    """Account temporarily locked after repeated failed logins."""

    status_code = 423
    default_message = "Account is temporarily locked due to multiple failed login attempts"


class InternalError(APIError):
    """Unexpected store or runtime failure.

    ``detail`` carries the underlying error text, returned as ``message``.
    """

    status_code = 500

    def __init__(self, message: str | None = None, *, detail: str | None = None, code: str | None = None) -> None:
        extra: dict[str, Any] = {"timestamp": utc_timestamp()}
        if detail is not None:
            extra["message"] = detail
        super().__init__(message, code=code, extra=extra)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers rendering the error envelope."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_content(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        return JSONResponse(status_code=400, content={"success": False, "error": message})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            content = {
                "success": False,
                "error": "Endpoint not found",
                "path": request.url.path,
                "timestamp": utc_timestamp(),
            }
        else:
            content = {"success": False, "error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
                "message": "Something went wrong",
                "timestamp": utc_timestamp(),
            },
        )
