from __future__ import annotations

import pytest

from lms_console.api.dispatcher import RequestDispatcher
from lms_console.auth.models import UserRole
from lms_console.auth.service import AuthService
from lms_console.credentials.store import MemoryCredentialStore
from lms_console.credentials.types import CredentialKind, CredentialPair
from lms_console.errors.internal import (
    ApiError,
    CredentialMissingError,
    ExemptEndpointAuthError,
    ParsingError,
)
from tests.fixtures.api_responses import (
    INVALID_CREDENTIALS,
    LOGIN_SUCCESS,
    ME_SUCCESS,
    MESSAGE_SUCCESS,
    REFRESH_SUCCESS,
    STUDENT_USER,
)
from tests.fixtures.fake_http import FakeResp, FakeSession, envelope, error_envelope


class NoRefresh:
    async def handle_unauthorized(self, request, replay):
        raise AssertionError("refresh not expected")


def _service(routes: dict[tuple[str, str], FakeResp], store=None):
    def handler(method, url, call):
        path = url.removeprefix("http://lms.test")
        try:
            return routes[(method, path)]
        except KeyError:
            return FakeResp(404, error_envelope("Not found"))

    session = FakeSession(handler)
    store = store if store is not None else MemoryCredentialStore()
    dispatcher = RequestDispatcher(session, store, NoRefresh(), base_url="http://lms.test")
    return AuthService(dispatcher, store), store, session


@pytest.mark.asyncio
async def test_login_persists_tokens_and_user():
    service, store, session = _service(
        {("POST", "/api/auth/login"): FakeResp(200, LOGIN_SUCCESS)}
    )

    result = await service.login("asha@example.com", "secret")

    assert result.success is True
    assert session.calls[0]["json"] == {"email": "asha@example.com", "password": "secret"}
    assert await store.get(CredentialKind.ACCESS) == "access-1"
    assert await store.get(CredentialKind.REFRESH) == "refresh-1"
    assert (await service.get_stored_user())["displayId"] == "STU-0001"
    assert await service.is_authenticated() is True


@pytest.mark.asyncio
async def test_login_rejected_is_final_and_stores_nothing():
    service, store, _ = _service(
        {("POST", "/api/auth/login"): FakeResp(401, INVALID_CREDENTIALS)}
    )

    with pytest.raises(ExemptEndpointAuthError) as exc_info:
        await service.login("asha@example.com", "wrong")

    assert exc_info.value.server_message == "Invalid email or password"
    assert await service.is_authenticated() is False
    assert await store.get_user() is None


@pytest.mark.asyncio
async def test_login_unsuccessful_envelope_stores_nothing():
    service, store, _ = _service(
        {("POST", "/api/auth/login"): FakeResp(200, {"success": False, "message": "Account pending"})}
    )

    result = await service.login("asha@example.com", "secret")

    assert result.success is False
    assert result.message == "Account pending"
    assert await store.get(CredentialKind.ACCESS) is None


@pytest.mark.asyncio
async def test_login_success_without_tokens_is_parsing_error():
    service, _, _ = _service(
        {("POST", "/api/auth/login"): FakeResp(200, envelope({"user": STUDENT_USER}))}
    )

    with pytest.raises(ParsingError):
        await service.login("asha@example.com", "secret")


@pytest.mark.asyncio
async def test_signup_sends_camel_case_body_and_persists_session():
    service, store, session = _service(
        {("POST", "/api/auth/signup"): FakeResp(201, LOGIN_SUCCESS)}
    )

    await service.signup("asha", "asha@example.com", "pw", "+15550100", UserRole.STUDENT)

    assert session.calls[0]["json"] == {
        "username": "asha",
        "email": "asha@example.com",
        "password": "pw",
        "phoneNumber": "+15550100",
        "role": "STUDENT",
    }
    assert await store.get(CredentialKind.REFRESH) == "refresh-1"


@pytest.mark.asyncio
async def test_signup_rejects_admin_role_locally():
    service, _, session = _service({})

    with pytest.raises(ValueError, match="ADMIN"):
        await service.signup("root", "root@example.com", "pw", "+15550100", "ADMIN")

    assert session.calls == []


@pytest.mark.asyncio
async def test_refresh_token_requires_stored_refresh_token():
    service, _, session = _service({})

    with pytest.raises(CredentialMissingError):
        await service.refresh_token()

    assert session.calls == []


@pytest.mark.asyncio
async def test_refresh_token_rotates_pair():
    store = MemoryCredentialStore(CredentialPair("access-1", "refresh-1"))
    service, _, session = _service(
        {("POST", "/api/auth/refresh"): FakeResp(200, REFRESH_SUCCESS)}, store
    )

    await service.refresh_token()

    assert session.calls[0]["json"] == {"refreshToken": "refresh-1"}
    assert await store.get(CredentialKind.ACCESS) == "access-2"
    assert await store.get(CredentialKind.REFRESH) == "refresh-2"


@pytest.mark.asyncio
async def test_logout_posts_refresh_token_and_clears():
    store = MemoryCredentialStore(CredentialPair("access-1", "refresh-1"))
    service, _, session = _service(
        {("POST", "/api/auth/logout"): FakeResp(200, MESSAGE_SUCCESS)}, store
    )

    result = await service.logout()

    assert result.success is True
    assert session.calls[0]["json"] == {"refreshToken": "refresh-1"}
    assert store.clear_count == 1
    assert await service.is_authenticated() is False


@pytest.mark.asyncio
async def test_logout_without_session_skips_server_call():
    service, store, session = _service({})

    await service.logout()

    assert session.calls == []
    assert store.clear_count == 1


@pytest.mark.asyncio
async def test_logout_clears_even_when_server_fails():
    store = MemoryCredentialStore(CredentialPair("access-1", "refresh-1"))
    service, _, _ = _service(
        {("POST", "/api/auth/logout"): FakeResp(500, error_envelope("boom"))}, store
    )

    with pytest.raises(ApiError):
        await service.logout()

    assert store.clear_count == 1
    assert await store.get(CredentialKind.REFRESH) is None


@pytest.mark.asyncio
async def test_me_returns_profile_and_caches_it():
    store = MemoryCredentialStore(CredentialPair("access-1", "refresh-1"))
    service, _, session = _service({("GET", "/api/auth/me"): FakeResp(200, ME_SUCCESS)}, store)

    user = await service.me()

    assert user.user_id == "u-1"
    assert user.role is UserRole.STUDENT
    assert session.calls[0]["headers"]["Authorization"] == "Bearer access-1"
    assert (await store.get_user())["userId"] == "u-1"


@pytest.mark.asyncio
async def test_password_maintenance_calls():
    service, _, session = _service(
        {
            ("POST", "/api/auth/change-password"): FakeResp(200, MESSAGE_SUCCESS),
            ("POST", "/api/auth/forgot-password"): FakeResp(
                200, {"success": True, "message": "Reset link sent"}
            ),
            ("GET", "/api/auth/verify-reset-token/tok123"): FakeResp(
                200, envelope({"valid": True})
            ),
            ("POST", "/api/auth/reset-password/tok123"): FakeResp(
                200, {"success": True, "message": "Password reset"}
            ),
        }
    )

    assert (await service.change_password("old", "new")).success is True
    assert (await service.forgot_password("asha@example.com")).message == "Reset link sent"
    assert await service.verify_reset_token("tok123") is True
    assert (await service.reset_password("tok123", "new")).message == "Password reset"

    bodies = [c["json"] for c in session.calls]
    assert bodies == [
        {"oldPassword": "old", "newPassword": "new"},
        {"email": "asha@example.com"},
        None,
        {"newPassword": "new"},
    ]


@pytest.mark.asyncio
async def test_verify_reset_token_invalid():
    service, _, _ = _service(
        {("GET", "/api/auth/verify-reset-token/bad"): FakeResp(200, envelope({"valid": False}))}
    )

    assert await service.verify_reset_token("bad") is False
