"""Error hierarchy and handling helpers."""

from .handling import categorize_error, handle_api_error, log_error, retry_on_os_error
from .internal import (
    ApiError,
    AuthError,
    CredentialMissingError,
    ExemptEndpointAuthError,
    InternalError,
    NetworkError,
    ParsingError,
    RefreshRejectedError,
    RetryExhaustedError,
    SessionTerminatedError,
)

__all__ = [
    "ApiError",
    "AuthError",
    "CredentialMissingError",
    "ExemptEndpointAuthError",
    "InternalError",
    "NetworkError",
    "ParsingError",
    "RefreshRejectedError",
    "RetryExhaustedError",
    "SessionTerminatedError",
    "categorize_error",
    "handle_api_error",
    "log_error",
    "retry_on_os_error",
]
