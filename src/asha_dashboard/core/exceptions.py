"""ASHA Dashboard Exception Hierarchy.

Provides structured error handling with context preservation
and proper HTTP status code mapping.
"""

from __future__ import annotations

from typing import Any


class DashboardError(Exception):
    """Base exception for all ASHA Dashboard errors.

    All custom exceptions should inherit from this class.
    Provides:
    - Structured error context
    - HTTP status code mapping
    - Logging-friendly representation
    """

    status_code: int = 500
    error_code: str = "DASHBOARD_ERROR"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Additional context for debugging
            cause: Original exception if wrapping
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        """String representation for logging."""
        parts = [f"{self.error_code}: {self.message}"]
        if self.details:
            parts.append(f"details={self.details}")
        if self.cause:
            parts.append(f"cause={self.cause}")
        return " | ".join(parts)


# =============================================================================
# Patient Record Store Errors
# =============================================================================


class StoreError(DashboardError):
    """Base class for backend store errors."""

    status_code = 502
    error_code = "STORE_ERROR"


class NotFoundError(StoreError):
    """Store lookup miss (unknown patient id)."""

    status_code = 404
    error_code = "NOT_FOUND"


class UpdateFailure(StoreError):
    """Store rejected a partial update."""

    error_code = "UPDATE_FAILURE"


class BackendError(StoreError):
    """Backend read failed (transport error or unexpected response)."""

    status_code = 503
    error_code = "BACKEND_ERROR"


# =============================================================================
# IVR Errors
# =============================================================================


class CallError(DashboardError):
    """Base class for per-call IVR failures."""

    status_code = 502
    error_code = "CALL_ERROR"


class DispatchFailure(CallError):
    """IVR call could not be initiated."""

    error_code = "DISPATCH_FAILURE"


class UnknownOutcome(CallError):
    """IVR returned a value outside the closed outcome set."""

    error_code = "UNKNOWN_OUTCOME"


class CallTimedOut(CallError):
    """No outcome arrived within the configured call timeout."""

    status_code = 504
    error_code = "CALL_TIMED_OUT"


# =============================================================================
# Request Errors
# =============================================================================


class ValidationError(DashboardError):
    """Input validation failed."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthError(DashboardError):
    """Base class for authentication errors."""

    status_code = 401
    error_code = "AUTH_ERROR"


class InvalidCredentials(AuthError):
    """ASHA ID / password rejected by the backend."""

    error_code = "INVALID_CREDENTIALS"


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    exc: Exception,
    wrapper_class: type[DashboardError] = DashboardError,
    message: str | None = None,
    **details: Any,
) -> DashboardError:
    """Wrap a generic exception in a DashboardError.

    Args:
        exc: Original exception to wrap
        wrapper_class: DashboardError subclass to use
        message: Override message (defaults to str(exc))
        **details: Additional context details

    Returns:
        Wrapped DashboardError instance
    """
    return wrapper_class(
        message=message or str(exc),
        details=details or None,
        cause=exc,
    )
