"""
Configuration constants for the LMS console API client

This module contains all configurable constants used throughout the application.
Each constant can be overridden by setting an environment variable with the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, prints a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_float(name: str, default: float) -> float:
    """Retrieve a float value from an environment variable.

    Args:
        name: The name of the environment variable to read.
        default: The default float value to return if parsing fails.

    Returns:
        The parsed float value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            print(
                f"Warning: Invalid float value for {name}='{value}', using default {default}"
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


# API endpoint constants
LMS_API_BASE_URL = _get_env_str(
    "LMS_API_BASE_URL", "http://localhost:3000"
)  # Backend root; every API path is appended to it

AUTH_LOGIN_PATH = "/api/auth/login"
AUTH_SIGNUP_PATH = "/api/auth/signup"
AUTH_REFRESH_PATH = "/api/auth/refresh"
AUTH_LOGOUT_PATH = "/api/auth/logout"
AUTH_ME_PATH = "/api/auth/me"
AUTH_CHANGE_PASSWORD_PATH = "/api/auth/change-password"
AUTH_FORGOT_PASSWORD_PATH = "/api/auth/forgot-password"
AUTH_VERIFY_RESET_TOKEN_PATH = "/api/auth/verify-reset-token"
AUTH_RESET_PASSWORD_PATH = "/api/auth/reset-password"

# 401s from these paths mean real credential rejection, never expiry
REFRESH_EXEMPT_PATHS = (
    "/auth/login",
    "/auth/refresh",
    "/auth/signup",
)

# Network/HTTP constants
REQUEST_TIMEOUT_SECONDS = _get_env_float(
    "REQUEST_TIMEOUT_SECONDS", 30.0
)  # Per-request transport timeout (replays included)
REFRESH_TIMEOUT_SECONDS = _get_env_float(
    "REFRESH_TIMEOUT_SECONDS", 30.0
)  # Timeout of the single refresh call; queued waiters block for at most this long

# Session / storage constants
CREDENTIALS_FILE = _get_env_str(
    "CREDENTIALS_FILE", os.path.join("~", ".lms-console", "credentials.json")
)
ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"
LOGIN_ROUTE = _get_env_str("LOGIN_ROUTE", "/#/login")  # Unauthenticated entry point

# Retry/backoff constants (durable store writes only)
STORE_WRITE_ATTEMPTS = _get_env_int(
    "STORE_WRITE_ATTEMPTS", 3
)  # Attempts for a credential file write before giving up
STORE_WRITE_MAX_BACKOFF_SECONDS = _get_env_int(
    "STORE_WRITE_MAX_BACKOFF_SECONDS", 2
)  # Upper bound of the exponential wait between write attempts

# Logging constants
ERROR_ALERT_THRESHOLD = _get_env_int(
    "ERROR_ALERT_THRESHOLD", 10
)  # Errors in one category before a single critical alert line
