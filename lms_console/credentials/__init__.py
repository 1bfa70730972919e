"""Credential pair persistence."""

from .store import CredentialStore, JsonFileCredentialStore, MemoryCredentialStore
from .types import CredentialKind, CredentialPair

__all__ = [
    "CredentialKind",
    "CredentialPair",
    "CredentialStore",
    "JsonFileCredentialStore",
    "MemoryCredentialStore",
]
