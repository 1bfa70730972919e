"""Centralized internal error hierarchy.

These exceptions give the request pipeline semantic categories. Raw aiohttp /
JSON errors never escape the transport boundary; they are wrapped into one of
these first.

Classes:
  InternalError            – Base for all internal errors.
  NetworkError             – Transport / timeout failure unrelated to auth.
  ParsingError             – Response body could not be parsed or validated.
  ApiError                 – Server answered with an HTTP error status.
  AuthError                – Base for authentication related failures.
  CredentialMissingError   – No refresh credential available when needed.
  RefreshRejectedError     – Refresh endpoint refused the refresh credential.
  ExemptEndpointAuthError  – 401 from login / refresh / signup.
  RetryExhaustedError      – A request already replayed once got 401 again.
  SessionTerminatedError   – The session was torn down; the call will not
                             complete.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class InternalError(Exception):
    """Base class for all internal application errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class NetworkError(InternalError):
    """Exception raised for network or transport layer errors.

    Connection resets, DNS failures and timeouts land here. They are
    propagated to the caller unchanged and never trigger a refresh.
    """


class ParsingError(InternalError):
    """Exception raised for response parsing or schema validation errors."""


class ApiError(InternalError):
    """Exception raised when the API answers with an HTTP error status.

    Args:
        message: Descriptive error message.
        status: HTTP status code of the response.
        method: HTTP method of the failed request.
        url: Absolute URL of the failed request.
        payload: Parsed response body (JSON or text), if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int,
        method: str = "",
        url: str = "",
        payload: Any = None,
    ) -> None:
        super().__init__(
            message,
            data={"status": status, "method": method, "url": url, "payload": payload},
        )
        self.status = status
        self.method = method
        self.url = url
        self.payload = payload

    @classmethod
    def wrap(cls, message: str, error: ApiError) -> ApiError:
        """Re-raise ``error`` as ``cls`` keeping status, request and body."""
        return cls(
            message,
            status=error.status,
            method=error.method,
            url=error.url,
            payload=error.payload,
        )

    @property
    def server_message(self) -> str | None:
        """Human readable message from the standard error envelope, if any."""
        if not isinstance(self.payload, Mapping):
            return None
        err = self.payload.get("error")
        if isinstance(err, Mapping) and isinstance(err.get("message"), str):
            return err["message"]
        msg = self.payload.get("message")
        return msg if isinstance(msg, str) else None


class AuthError(InternalError):
    """Exception raised for authentication or authorization failures."""


class CredentialMissingError(AuthError):
    """No refresh credential is stored, so there is nothing to refresh with."""


class RefreshRejectedError(AuthError):
    """The refresh endpoint rejected the refresh credential.

    Args:
        message: Descriptive error message.
        status: HTTP status returned by the refresh endpoint, if any.
    """

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message, data={"status": status})
        self.status = status


class ExemptEndpointAuthError(AuthError, ApiError):
    """401 from an authentication endpoint: real rejection, not expiry."""


class RetryExhaustedError(AuthError, ApiError):
    """401 on a request that was already replayed after a refresh."""


class SessionTerminatedError(AuthError):
    """The session was terminated while this request was in flight.

    Raised to the request that triggered a failed refresh. UI callers are
    expected to swallow it silently since navigation to the login route is
    already underway.

    Args:
        message: Descriptive error message.
        reason: The refresh failure that caused termination.
    """

    def __init__(self, message: str, *, reason: BaseException | None = None) -> None:
        super().__init__(
            message, data={"reason": type(reason).__name__ if reason else None}
        )
        self.reason = reason


__all__ = [
    "InternalError",
    "NetworkError",
    "ParsingError",
    "ApiError",
    "AuthError",
    "CredentialMissingError",
    "RefreshRejectedError",
    "ExemptEndpointAuthError",
    "RetryExhaustedError",
    "SessionTerminatedError",
]
