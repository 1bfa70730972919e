"""Authenticated HTTP pipeline."""

from .dispatcher import RequestDispatcher
from .types import ApiRequest, ApiResponse

__all__ = ["ApiRequest", "ApiResponse", "RequestDispatcher"]
