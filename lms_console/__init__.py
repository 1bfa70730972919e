"""Authenticated API client for the training-program console."""

__version__ = "1.0.0"
