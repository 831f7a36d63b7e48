"""API error types and their JSON envelope."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError(Exception):
    """Error surfaced to callers as ``{error, message, details?}``."""

    status_code: int = 500
    error: str = "internal_error"
    message: str = "Unexpected server error."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error: Optional[str] = None,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        if message is not None:
            self.message = message
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class StoreNotConfiguredError(ApiError):
    status_code = 500
    error = "db_not_bound"
    message = "Missing stats database binding: STATS_DATABASE_URL"


class StoreNotInitializedError(ApiError):
    status_code = 503
    error = "db_not_initialized"
    message = (
        "Stats DB tables not found. Initialize or upgrade the stats database "
        "before serving statistics."
    )


class QueryFailedError(ApiError):
    status_code = 500
    error = "db_query_failed"
    message = "Failed to query the stats database."


class BadRequestError(ApiError):
    status_code = 400
    error = "bad_request"
    message = "Invalid request."


class AuthenticationError(ApiError):
    status_code = 401
    error = "missing_authorization"
    message = "A Twitch access token is required."


class ForbiddenError(ApiError):
    status_code = 403
    error = "forbidden"
    message = "Access denied."


class UpstreamError(ApiError):
    status_code = 502
    error = "twitch_validate_failed"
    message = "Twitch token validation failed."


class ConfigurationError(ApiError):
    status_code = 500
    error = "not_configured"
    message = "Server is missing required configuration."


def is_no_such_table_error(exc: BaseException) -> bool:
    return "no such table" in str(exc).lower()


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        exc.to_dict(),
        status_code=exc.status_code,
        headers={"Cache-Control": "no-store"},
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render body decoding failures in the same envelope as ``ApiError``."""

    if any(err.get("type") == "json_invalid" for err in exc.errors()):
        error = BadRequestError("Request body must be JSON.", error="invalid_json")
    else:
        error = BadRequestError(details=str(exc.errors()))
    return await api_error_handler(request, error)


__all__ = [
    "ApiError",
    "AuthenticationError",
    "BadRequestError",
    "ConfigurationError",
    "ForbiddenError",
    "QueryFailedError",
    "StoreNotConfiguredError",
    "StoreNotInitializedError",
    "UpstreamError",
    "api_error_handler",
    "is_no_such_table_error",
    "validation_error_handler",
]
