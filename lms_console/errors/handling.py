from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import aiohttp
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..logging_config import log_structured_error
from .internal import (
    ApiError,
    AuthError,
    InternalError,
    NetworkError,
    ParsingError,
)

T = TypeVar("T")


def categorize_error(error: BaseException) -> str:
    """Map an exception to the aggregation category used in logs."""
    if isinstance(error, AuthError):
        return "auth"
    if isinstance(error, NetworkError | OSError | ConnectionError):
        return "network"
    if isinstance(error, ParsingError):
        return "parsing"
    if isinstance(error, ApiError):
        return "api"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(message: str, error: Exception, context: dict = None) -> None:
    """Logs an error message with the associated exception details.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    log_structured_error(
        error_type=categorize_error(error),
        message=f"{message}: {str(error)}",
        exception=error,
        context=context,
    )


async def handle_api_error(operation: Callable[[], Awaitable[T]], context: str) -> T:  # type: ignore[valid-type]
    """Run an I/O operation and translate raw failures into internal errors.

    Internal errors raised by the operation pass through untouched so that
    callers can rely on their exact type (a 401 ``ApiError`` must reach the
    refresh logic as-is).

    Args:
        operation: The async operation to execute.
        context: Descriptive context for the operation (e.g., "GET /api/colleges").

    Returns:
        The result of the operation if successful.

    Raises:
        NetworkError: On timeouts and aiohttp / OS level failures.
        ParsingError: On undecodable or schema-invalid bodies.
    """
    try:
        return await operation()
    except InternalError:
        raise
    except TimeoutError as e:
        logging.warning(f"⏱️ Request timeout in {context}")
        raise NetworkError(f"Request timed out in {context}") from e
    except (aiohttp.ClientError, OSError) as e:
        error_context = {"operation": context, "timestamp": time.time()}
        if hasattr(e, "status"):
            error_context["http_status"] = e.status
        if hasattr(e, "request_info"):
            error_context["url"] = str(e.request_info.real_url)
        log_error(f"Transport failure in {context}", e, context=error_context)
        raise NetworkError(
            f"Network connectivity issue in {context}. Check the API base URL and that the backend is reachable. Error: {str(e)}"
        ) from e
    except (json.JSONDecodeError, ValidationError, UnicodeDecodeError) as e:
        log_error(f"Unparseable response in {context}", e, context={"operation": context})
        raise ParsingError(f"Unexpected response shape in {context}: {str(e)}") from e


async def retry_on_os_error(  # type: ignore[valid-type]
    operation: Callable[[], Awaitable[T]],
    context: str,
    max_attempts: int = 3,
    max_backoff: float = 2,
) -> T:
    """Retry an operation on ``OSError`` with exponential backoff (Tenacity).

    Used for durable writes where a transient lock or replace failure should
    not lose a freshly issued credential pair.

    Args:
        operation: Async callable to run.
        context: Descriptive context for logging.
        max_attempts: Maximum number of attempts.
        max_backoff: Upper bound of the wait between attempts, in seconds.

    Returns:
        The result of the first successful attempt.

    Raises:
        OSError: The last failure once attempts are exhausted.
    """

    def before_sleep(retry_state):
        exception = retry_state.outcome.exception()
        logging.info(
            f"🔁 Retrying {context} (attempt {retry_state.attempt_number}/{max_attempts}) after {type(exception).__name__}"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.1, max=max_backoff),
        retry=retry_if_exception_type(OSError),
        before_sleep=before_sleep,
        reraise=True,
    )
    try:
        return await retrying(operation)
    except OSError as e:
        log_error(
            f"All write attempts exhausted for {context}",
            e,
            context={"max_attempts": max_attempts, "operation": context},
        )
        raise
