"""Custom exceptions for Mathemelody.

One hierarchy serves both the Composition API and the Playback Engine. API
errors carry the HTTP status they map to; expression errors are expected and
frequent since equations are user-authored text.
"""

import traceback
from typing import Any, Dict, Optional


class MathemelodyError(Exception):
    """Base exception for all Mathemelody errors."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__


class ValidationError(MathemelodyError):
    """Errors related to input validation."""

    http_status = 400


class GridSizeError(ValidationError):
    """Grid size outside the supported range."""

    def __init__(self, size: Any, min_size: int = 1, max_size: int = 32):
        super().__init__(
            f"Please enter a number between {min_size} and {max_size}",
            details={"size": size, "min_size": min_size, "max_size": max_size},
        )


class AuthenticationError(MathemelodyError):
    """Missing or wrong credentials."""

    http_status = 401


class AuthorizationError(MathemelodyError):
    """Authenticated, but not allowed to do this."""

    http_status = 403


class InvalidTokenError(AuthorizationError):
    """Bearer token could not be verified."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Invalid or expired token",
            details={"reason": reason} if reason else None,
        )


class NotFoundError(MathemelodyError):
    """Requested resource does not exist or is not visible to the caller."""

    http_status = 404


class ConflictError(MathemelodyError):
    """Uniqueness constraint violated."""

    http_status = 409


class DatabaseError(MathemelodyError):
    """Raised when database operations fail."""


class ConfigurationError(MathemelodyError):
    """Configuration-related errors."""


class PlaybackError(MathemelodyError):
    """Errors in the playback engine outside of expression evaluation."""


class ExpressionError(MathemelodyError):
    """An equation could not be evaluated to a playable number."""

    http_status = 400

    def __init__(self, message: str, expression: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if expression is not None:
            details.setdefault("expression", expression)
        super().__init__(message, details=details, **kwargs)
        self.expression = expression


class ExpressionSyntaxError(ExpressionError):
    """The expression text does not parse."""


class UnknownSymbolError(ExpressionError):
    """The expression names a variable or function outside the scope."""

    def __init__(self, symbol: str, expression: Optional[str] = None):
        super().__init__(f"Undefined symbol {symbol}", expression=expression)
        self.symbol = symbol


class InvalidValueError(ExpressionError):
    """Evaluation produced an infinite or undefined value."""


class UnsupportedResultTypeError(ExpressionError):
    """Evaluation produced something other than a real or complex number."""

    def __init__(self, expression: Optional[str] = None, result_type: Optional[str] = None):
        super().__init__(
            "Equation must result in a number or complex number",
            expression=expression,
            details={"result_type": result_type} if result_type else None,
        )


def format_error_for_user(error: Exception, include_details: bool = False) -> str:
    """Format an error for user-friendly display.

    Args:
        error: The exception to format
        include_details: Whether to include detailed information
    """
    if isinstance(error, MathemelodyError):
        message = str(error)
        if include_details and error.details:
            details_str = ", ".join(f"{k}: {v}" for k, v in error.details.items())
            message += f" (Details: {details_str})"
        return message
    return f"An unexpected error occurred: {error}"


def get_error_summary(error: Exception) -> Dict[str, Any]:
    """Get a comprehensive summary of an error, for server-side logs only."""
    summary = {
        "error_type": type(error).__name__,
        "message": str(error),
        "traceback": "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        ),
    }

    if isinstance(error, MathemelodyError):
        summary["details"] = error.details
        summary["error_code"] = error.error_code
        summary["http_status"] = error.http_status
    else:
        summary["details"] = {}

    return summary
