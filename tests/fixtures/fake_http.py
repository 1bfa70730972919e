"""
Scripted stand-in for aiohttp.ClientSession used by pipeline tests
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any


class FakeResp:
    def __init__(
        self,
        status: int,
        payload: Any = None,
        *,
        gate: asyncio.Event | None = None,
        raise_exception: BaseException | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.status = status
        self._payload = payload
        self.gate = gate
        self.raise_exception = raise_exception
        self.headers = headers or {"Content-Type": "application/json"}

    async def __aenter__(self):
        if self.gate is not None:
            await self.gate.wait()
        else:
            # Simulate asynchronous boundary
            await asyncio.sleep(0)
        if self.raise_exception:
            raise self.raise_exception
        return self

    async def __aexit__(self, _exc_type, _exc, _tb):
        return False

    async def text(self):
        if self._payload is None:
            return ""
        if isinstance(self._payload, str):
            return self._payload
        return json.dumps(self._payload)


Handler = Callable[[str, str, dict[str, Any]], FakeResp]


class FakeSession:
    """Routes every call to ``handler(method, url, call)`` and records it.

    ``call`` holds ``headers`` (a snapshot), ``json`` and ``params``.
    """

    def __init__(self, handler: Handler):
        self.handler = handler
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method, url, *, params=None, json=None, headers=None, timeout=None):
        call = {
            "method": method,
            "url": url,
            "params": params,
            "json": json,
            "headers": dict(headers or {}),
            "timeout": timeout,
        }
        self.calls.append(call)
        return self.handler(method, url, call)

    def post(self, url, *, json=None, headers=None, timeout=None):
        return self.request("POST", url, json=json, headers=headers, timeout=timeout)

    async def close(self):
        self.closed = True

    def calls_to(self, fragment: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if fragment in c["url"]]


def envelope(data: Any = None, *, success: bool = True, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": success, "data": data}
    if message is not None:
        body["message"] = message
    return body


def error_envelope(message: str) -> dict[str, Any]:
    return {"success": False, "error": {"message": message}}


def token_payload(access: str, refresh: str, user: dict[str, Any] | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {"tokens": {"accessToken": access, "refreshToken": refresh}}
    if user is not None:
        data["user"] = user
    return envelope(data)


class FakeBackend:
    """Minimal console backend: bearer-checked resources plus the refresh endpoint.

    Attributes:
        valid_access: The only access token resources accept.
        refresh_gate: When set, refresh responses wait for this event.
        refresh_status: Status the refresh endpoint answers with.
        rotate_to: Pair issued by a successful refresh.
        refresh_user: User record included in the refresh payload, if any.
    """

    def __init__(self, valid_access: str = "access-2"):
        self.valid_access = valid_access
        self.refresh_gate: asyncio.Event | None = None
        self.refresh_status = 200
        self.refresh_exception: BaseException | None = None
        self.rotate_to = ("access-2", "refresh-2")
        self.refresh_user: dict[str, Any] | None = None
        self.always_unauthorized: set[str] = set()
        self.session = FakeSession(self.handle)

    def handle(self, method: str, url: str, call: dict[str, Any]) -> FakeResp:
        if url.endswith("/api/auth/refresh"):
            return self._refresh(call)
        if url.endswith("/api/auth/login"):
            return FakeResp(401, error_envelope("Invalid email or password"))
        auth = call["headers"].get("Authorization")
        path = url.split("://", 1)[-1].split("/", 1)[-1]
        if auth != f"Bearer {self.valid_access}" or f"/{path}" in self.always_unauthorized:
            return FakeResp(401, error_envelope("Token expired"))
        return FakeResp(200, envelope({"path": f"/{path}", "method": method}))

    def _refresh(self, call: dict[str, Any]) -> FakeResp:
        if self.refresh_status != 200:
            return FakeResp(
                self.refresh_status,
                error_envelope("Invalid or expired refresh token"),
                gate=self.refresh_gate,
            )
        access, refresh = self.rotate_to
        return FakeResp(
            200,
            token_payload(access, refresh, self.refresh_user),
            gate=self.refresh_gate,
            raise_exception=self.refresh_exception,
        )
