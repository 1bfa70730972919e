"""Account / session operations of the console backend."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..api.dispatcher import RequestDispatcher
from ..constants import (
    AUTH_CHANGE_PASSWORD_PATH,
    AUTH_FORGOT_PASSWORD_PATH,
    AUTH_LOGIN_PATH,
    AUTH_LOGOUT_PATH,
    AUTH_ME_PATH,
    AUTH_REFRESH_PATH,
    AUTH_RESET_PASSWORD_PATH,
    AUTH_SIGNUP_PATH,
    AUTH_VERIFY_RESET_TOKEN_PATH,
)
from ..credentials.store import CredentialStore
from ..credentials.types import CredentialKind
from ..errors.handling import log_error
from ..errors.internal import CredentialMissingError, InternalError, ParsingError
from .models import (
    ApiEnvelope,
    AuthPayload,
    MessageResult,
    SignupRequest,
    UserProfile,
    UserRole,
)


def _envelope(data: Any, context: str) -> ApiEnvelope:
    try:
        return ApiEnvelope.model_validate(data)
    except ValidationError as e:
        raise ParsingError(f"Unexpected response shape in {context}") from e


class AuthService:
    """Login, signup, logout and account maintenance over the dispatcher.

    Token-issuing calls (login, signup, explicit refresh) persist the new
    pair and the returned profile in the credential store.
    """

    def __init__(self, dispatcher: RequestDispatcher, store: CredentialStore) -> None:
        self.dispatcher = dispatcher
        self.store = store

    async def _persist_session(self, envelope: ApiEnvelope, context: str) -> None:
        if not (envelope.success and envelope.data):
            return
        try:
            payload = AuthPayload.model_validate(envelope.data)
        except ValidationError as e:
            raise ParsingError(f"Missing tokens in {context} response") from e
        await self.store.set_pair(payload.tokens.access_token, payload.tokens.refresh_token)
        if payload.user is not None:
            await self.store.set_user(payload.user.to_record())

    async def login(self, email: str, password: str) -> ApiEnvelope:
        """Log in with email and password.

        Raises:
            ExemptEndpointAuthError: Wrong credentials (never triggers a refresh).
        """
        resp = await self.dispatcher.post(
            AUTH_LOGIN_PATH, {"email": email, "password": password}
        )
        envelope = _envelope(resp.data, "login")
        await self._persist_session(envelope, "login")
        if envelope.success:
            logging.info(f"🔐 Logged in email={email}")
        return envelope

    async def signup(
        self,
        username: str,
        email: str,
        password: str,
        phone_number: str,
        role: UserRole | str | None = None,
    ) -> ApiEnvelope:
        """Register a new account and start a session for it.

        Raises:
            ValueError: Invalid request fields (e.g. an ADMIN role).
        """
        try:
            body = SignupRequest(
                username=username,
                email=email,
                password=password,
                phone_number=phone_number,
                role=role,
            ).to_body()
        except ValidationError as e:
            raise ValueError(f"Invalid signup request: {e}") from e
        resp = await self.dispatcher.post(AUTH_SIGNUP_PATH, body)
        envelope = _envelope(resp.data, "signup")
        await self._persist_session(envelope, "signup")
        return envelope

    async def refresh_token(self) -> ApiEnvelope:
        """Explicitly exchange the stored refresh credential for a new pair.

        Raises:
            CredentialMissingError: No refresh credential is stored.
        """
        refresh_token = await self.store.get(CredentialKind.REFRESH)
        if not refresh_token:
            raise CredentialMissingError("No refresh token available")
        resp = await self.dispatcher.post(AUTH_REFRESH_PATH, {"refreshToken": refresh_token})
        envelope = _envelope(resp.data, "refresh")
        await self._persist_session(envelope, "refresh")
        return envelope

    async def logout(self) -> MessageResult:
        """Invalidate the refresh credential server side and clear local state.

        Local credentials are cleared even when the server call fails.
        """
        refresh_token = await self.store.get(CredentialKind.REFRESH)
        try:
            if refresh_token:
                await self.dispatcher.post(AUTH_LOGOUT_PATH, {"refreshToken": refresh_token})
        except InternalError as e:
            log_error("Server-side logout failed", e)
            raise
        finally:
            await self.store.clear()
        logging.info("👋 Logged out")
        return MessageResult(success=True, message="Logged out successfully")

    async def me(self) -> UserProfile | None:
        """Fetch the current user and refresh the cached profile."""
        resp = await self.dispatcher.get(AUTH_ME_PATH)
        envelope = _envelope(resp.data, "me")
        if not (envelope.success and isinstance(envelope.data, dict)):
            return None
        try:
            user = UserProfile.model_validate(envelope.data.get("user"))
        except ValidationError as e:
            raise ParsingError("Missing user in me response") from e
        await self.store.set_user(user.to_record())
        return user

    async def change_password(self, old_password: str, new_password: str) -> MessageResult:
        resp = await self.dispatcher.post(
            AUTH_CHANGE_PASSWORD_PATH,
            {"oldPassword": old_password, "newPassword": new_password},
        )
        return self._message(resp.data, "change password")

    async def forgot_password(self, email: str) -> MessageResult:
        resp = await self.dispatcher.post(AUTH_FORGOT_PASSWORD_PATH, {"email": email})
        return self._message(resp.data, "forgot password")

    async def verify_reset_token(self, token: str) -> bool:
        resp = await self.dispatcher.get(f"{AUTH_VERIFY_RESET_TOKEN_PATH}/{token}")
        envelope = _envelope(resp.data, "verify reset token")
        if not isinstance(envelope.data, dict):
            return False
        return bool(envelope.success and envelope.data.get("valid"))

    async def reset_password(self, token: str, new_password: str) -> MessageResult:
        resp = await self.dispatcher.post(
            f"{AUTH_RESET_PASSWORD_PATH}/{token}", {"newPassword": new_password}
        )
        return self._message(resp.data, "reset password")

    async def is_authenticated(self) -> bool:
        return bool(await self.store.get(CredentialKind.ACCESS))

    async def get_stored_user(self) -> dict[str, Any] | None:
        return await self.store.get_user()

    @staticmethod
    def _message(data: Any, context: str) -> MessageResult:
        try:
            return MessageResult.model_validate(data)
        except ValidationError as e:
            raise ParsingError(f"Unexpected response shape in {context}") from e
