"""
Standardized error response utilities for the CulturePoints API.

Provides consistent error response format across all endpoints:
{
    "success": false,
    "error": "User-facing error message",
    "code": "ERROR_CODE"
}

The check-in client shows `error` verbatim, so messages must read well to an
end user (the daily-limit message in particular).

Usage:
    from culturepoints.utils.errors import error_response, ErrorCode

    return error_response("Player not found", ErrorCode.NOT_FOUND, 404)
"""
import logging
from enum import Enum
from typing import Optional

from flask import jsonify

from .exceptions import (
    RewardsError,
    FormatError,
    ValidationError,
    NotFoundError,
    ConflictError,
    DailyLimitExceededError,
    InvariantViolationError,
)

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication & Authorization (401, 403)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Validation Errors (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_FORMAT = "INVALID_FORMAT"
    MISSING_FIELD = "MISSING_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"

    # Conflict (409)
    ALREADY_BOUND = "ALREADY_BOUND"

    # Business Logic Errors
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    INVALID_STATUS = "INVALID_STATUS"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"


STATUS_BY_CODE = {
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.INVALID_FORMAT: 400,
    ErrorCode.MISSING_FIELD: 400,
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ALREADY_BOUND: 409,
    ErrorCode.LIMIT_EXCEEDED: 429,
    ErrorCode.INVALID_STATUS: 422,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 500,
    ErrorCode.INVARIANT_VIOLATION: 500,
}


def error_code_for(exc: Exception) -> ErrorCode:
    """Map an exception from utils/exceptions.py to an API error code."""
    if isinstance(exc, FormatError):
        return ErrorCode.INVALID_FORMAT
    if isinstance(exc, ValidationError):
        return ErrorCode.VALIDATION_ERROR
    if isinstance(exc, NotFoundError):
        return ErrorCode.NOT_FOUND
    if isinstance(exc, ConflictError):
        return ErrorCode.ALREADY_BOUND
    if isinstance(exc, DailyLimitExceededError):
        return ErrorCode.LIMIT_EXCEEDED
    if isinstance(exc, InvariantViolationError):
        return ErrorCode.INVARIANT_VIOLATION
    return ErrorCode.INTERNAL_ERROR


def status_for(code) -> int:
    """HTTP status for an ErrorCode (or its string value)."""
    try:
        return STATUS_BY_CODE[ErrorCode(code)]
    except ValueError:
        return 500


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-facing error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code
        log_error: Whether to log the error
        details: Optional additional details (only logged, not returned to user)

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    response = {
        "success": False,
        "error": message,
        "code": code.value if isinstance(code, ErrorCode) else code
    }

    return jsonify(response), status_code


def result_error_response(result: dict) -> tuple:
    """Turn a failed service result dict into an error response."""
    code = result.get('code', ErrorCode.INTERNAL_ERROR)
    return error_response(result.get('error', 'Unknown error'), code, status_for(code))


def exception_response(exc: RewardsError) -> tuple:
    """Error response for a RewardsError that escaped a view."""
    code = error_code_for(exc)
    return error_response(exc.message, code, status_for(code))


# Convenience functions for common error types
def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST) -> tuple:
    """400 Bad Request error."""
    return error_response(message, code, 400, log_error=False)


def unauthorized(message: str = "Authentication required", code: ErrorCode = ErrorCode.AUTH_REQUIRED) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False)


def forbidden(message: str = "Unauthorized - Admin access required", code: ErrorCode = ErrorCode.PERMISSION_DENIED) -> tuple:
    """403 Forbidden error."""
    return error_response(message, code, 403, log_error=False)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND) -> tuple:
    """404 Not Found error."""
    return error_response(message, code, 404, log_error=False)


def internal_error(message: str = "An unexpected error occurred", details: Optional[dict] = None) -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True, details=details)
