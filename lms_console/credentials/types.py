"""Shared types for the credentials package."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CredentialKind(str, Enum):
    """Which half of the credential pair to read.

    The value doubles as the storage key.

    Attributes:
        ACCESS: Short-lived bearer token attached to API calls.
        REFRESH: Longer-lived token exchanged for a new pair.
    """

    ACCESS = "accessToken"
    REFRESH = "refreshToken"


@dataclass(frozen=True)
class CredentialPair:
    """Access / refresh token pair, always written and cleared together."""

    access_token: str
    refresh_token: str

    def __repr__(self) -> str:
        return (
            f"CredentialPair(access_token='{self.access_token[:4]}…', "
            f"refresh_token='{self.refresh_token[:4]}…')"
        )
