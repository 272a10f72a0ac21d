"""Core infrastructure: errors, logging, retry."""

from asha_dashboard.core.exceptions import (
    DashboardError,
    StoreError,
    NotFoundError,
    UpdateFailure,
    BackendError,
    CallError,
    DispatchFailure,
    UnknownOutcome,
    CallTimedOut,
    ValidationError,
    AuthError,
    InvalidCredentials,
    wrap_exception,
)
from asha_dashboard.core.log import get_logger, mask_phone, setup_logging

__all__ = [
    # Exceptions
    "DashboardError",
    "StoreError",
    "NotFoundError",
    "UpdateFailure",
    "BackendError",
    "CallError",
    "DispatchFailure",
    "UnknownOutcome",
    "CallTimedOut",
    "ValidationError",
    "AuthError",
    "InvalidCredentials",
    "wrap_exception",
    # Logging
    "get_logger",
    "mask_phone",
    "setup_logging",
]
