"""Credential refresh, session termination and account operations."""

from .client import RefreshResult, TokenClient
from .coordinator import RefreshCoordinator, RefreshState
from .models import ApiEnvelope, AuthTokens, MessageResult, UserProfile, UserRole
from .service import AuthService
from .terminator import Navigator, SessionTerminator, log_navigation

__all__ = [
    "ApiEnvelope",
    "AuthService",
    "AuthTokens",
    "MessageResult",
    "Navigator",
    "RefreshCoordinator",
    "RefreshResult",
    "RefreshState",
    "SessionTerminator",
    "TokenClient",
    "UserProfile",
    "UserRole",
    "log_navigation",
]
