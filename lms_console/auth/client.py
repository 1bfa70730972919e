"""Refresh endpoint client.

The refresh call deliberately bypasses the request dispatcher: it must not
carry the expired bearer token and a 401 from it must never re-enter the
refresh logic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import aiohttp
from pydantic import ValidationError

from ..constants import AUTH_REFRESH_PATH, LMS_API_BASE_URL, REFRESH_TIMEOUT_SECONDS
from ..credentials.types import CredentialPair
from ..errors.handling import handle_api_error
from ..errors.internal import ParsingError, RefreshRejectedError
from .models import ApiEnvelope, AuthPayload


@dataclass
class RefreshResult:
    """Outcome of a successful refresh call.

    Attributes:
        pair: The newly issued credential pair.
        user: Profile record returned alongside the tokens, if any.
    """

    pair: CredentialPair
    user: dict[str, Any] | None = None


class TokenClient:
    """Client for the ``/api/auth/refresh`` endpoint."""

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        base_url: str = LMS_API_BASE_URL,
        timeout: float = REFRESH_TIMEOUT_SECONDS,
    ):
        """Initialize the token client.

        Args:
            http_session: HTTP session for making requests.
            base_url: API root the refresh path is appended to.
            timeout: Total timeout of one refresh call in seconds.
        """
        self.session = http_session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def refresh_url(self) -> str:
        return f"{self.base_url}{AUTH_REFRESH_PATH}"

    async def refresh(self, refresh_token: str) -> RefreshResult:
        """Exchange a refresh credential for a new credential pair.

        Args:
            refresh_token: The stored refresh credential.

        Returns:
            RefreshResult holding the new pair (and profile when present).

        Raises:
            RefreshRejectedError: Endpoint answered with an error status.
            NetworkError: Transport failure or timeout.
            ParsingError: Success body did not carry a token pair.
        """

        async def operation() -> tuple[int, str]:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with self.session.post(
                self.refresh_url, json={"refreshToken": refresh_token}, timeout=timeout
            ) as resp:
                return resp.status, await resp.text()

        status, body = await handle_api_error(operation, f"POST {AUTH_REFRESH_PATH}")
        if status in (401, 403):
            logging.warning(f"❌ Refresh credential rejected (status={status})")
            raise RefreshRejectedError("Refresh credential rejected", status=status)
        if status >= 300:
            logging.warning(f"❌ Credential refresh failed (status={status})")
            raise RefreshRejectedError(
                f"HTTP {status} during credential refresh", status=status
            )
        try:
            envelope = ApiEnvelope.model_validate_json(body)
            payload = AuthPayload.model_validate(envelope.data)
        except ValidationError as e:
            raise ParsingError("Missing tokens in refresh response") from e
        tokens = payload.tokens
        logging.info("✅ Access credential refreshed")
        return RefreshResult(
            pair=CredentialPair(tokens.access_token, tokens.refresh_token),
            user=payload.user.to_record() if payload.user else None,
        )
