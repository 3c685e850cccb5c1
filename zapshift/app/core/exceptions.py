"""
Application errors and the handlers that render them.

Every error response has the same body:

    {"error_code": "ERR_...", "message": "...", "details": {...}}
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, Optional

logger = logging.getLogger("zapshift.errors")


class AppException(Exception):
    """Base class for errors that map to a fixed code and HTTP status."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(AppException):
    """Missing, malformed, expired or forged bearer token."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, "ERR_AUTH_001", status.HTTP_401_UNAUTHORIZED)


class TokenRevokedError(AppException):
    """Bearer token was revoked by sign-out."""

    def __init__(self):
        super().__init__("Token has been revoked", "ERR_AUTH_002", status.HTTP_401_UNAUTHORIZED)


class InsufficientPermissionsError(AppException):
    """Caller is authenticated but the access policy denies the action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_PERM_001", status.HTTP_403_FORBIDDEN, details)


class ResourceNotFoundError(AppException):

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message,
            "ERR_NOT_FOUND_001",
            status.HTTP_404_NOT_FOUND,
            {"resource": resource, "id": resource_id},
        )


class ConflictError(AppException):
    """Request collides with the current state of a record."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "ERR_CONFLICT_001", status.HTTP_409_CONFLICT, details)


class InvalidStateTransitionError(AppException):
    """Parcel cannot move from its current lifecycle state to the requested one."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Parcel cannot move from {current} to {target}",
            "ERR_STATE_001",
            status.HTTP_409_CONFLICT,
            {"current_state": current, "target_state": target},
        )


class UpstreamServiceError(AppException):
    """The payment gateway failed or answered unexpectedly."""

    def __init__(self, message: str = "Upstream service failure", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_UPSTREAM_001", status.HTTP_502_BAD_GATEWAY, details)


class UpstreamUnavailableError(AppException):
    """The circuit guarding an upstream service is open."""

    def __init__(self, service: str):
        super().__init__(
            f"{service} is temporarily unavailable",
            "ERR_UPSTREAM_002",
            status.HTTP_503_SERVICE_UNAVAILABLE,
            {"service": service},
        )


HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    405: "ERR_METHOD_NOT_ALLOWED",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def error_response(
    status_code: int,
    error_code: str,
    message: Any,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": details or {}},
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed upstream: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Routing errors and explicit HTTPExceptions, in the shared body format."""
    return error_response(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"),
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold the raw exception raised by a validator
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ERR_VALIDATION",
        "Validation error",
        {"errors": jsonable_errors(exc)},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log with traceback, answer 500 without internals."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method, request.url.path, type(exc).__name__,
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "ERR_INTERNAL_SERVER",
        "An internal server error occurred",
    )
