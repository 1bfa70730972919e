"""Authenticated request dispatcher.

Every call goes through two hooks:

* pre-send: attach ``Authorization: Bearer <access>`` from the credential
  store (or send unauthenticated when none is stored);
* post-receive (error path): hand qualifying 401s to the refresh coordinator
  so the call site only ever sees the replayed response or a final error.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import aiohttp

from ..constants import LMS_API_BASE_URL, REFRESH_EXEMPT_PATHS, REQUEST_TIMEOUT_SECONDS
from ..credentials.store import CredentialStore
from ..credentials.types import CredentialKind
from ..errors.handling import handle_api_error
from ..errors.internal import ApiError, ExemptEndpointAuthError, RetryExhaustedError
from .types import ApiRequest, ApiResponse

if TYPE_CHECKING:
    from ..auth.coordinator import RefreshCoordinator

APPLICATION_JSON = "application/json"


class RequestDispatcher:
    """Sends API requests with credentials attached and expiry handled.

    Attributes:
        base_url: API root every relative path is appended to.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        store: CredentialStore,
        coordinator: RefreshCoordinator,
        *,
        base_url: str = LMS_API_BASE_URL,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        exempt_paths: Sequence[str] = REFRESH_EXEMPT_PATHS,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            session: The aiohttp session used as transport.
            store: Credential store read by the pre-send hook.
            coordinator: Refresh coordinator fed by the post-receive hook.
            base_url: API root.
            timeout: Default per-request timeout in seconds.
            exempt_paths: Path fragments whose 401s are never refreshed.
        """
        if not session:
            raise ValueError("aiohttp session required")
        self._session = session
        self.store = store
        self.coordinator = coordinator
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.exempt_paths = tuple(exempt_paths)
        self.default_headers = {
            "Accept": APPLICATION_JSON,
            "Content-Type": APPLICATION_JSON,
        }

    # ---- public API ----
    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> ApiResponse:
        """Perform an API request through the authenticated pipeline.

        Args:
            method: HTTP method (e.g. 'GET', 'POST').
            path: Path relative to the base URL (e.g. '/api/colleges').
            params: Query parameters.
            json_body: JSON body.
            headers: Extra headers merged over the defaults.
            timeout: Per-request timeout override in seconds.

        Returns:
            The successful response (original or replayed after a refresh).

        Raises:
            ApiError: Non-401 HTTP error status.
            ExemptEndpointAuthError: 401 from login, refresh or signup.
            RetryExhaustedError: 401 again after one replay.
            NetworkError: Transport failure or timeout.
            SessionTerminatedError: Credential refresh failed; session was cleared.
        """
        request = ApiRequest(
            method=method.upper(),
            path=path,
            params=params,
            json_body=json_body,
            headers={**self.default_headers, **(headers or {})},
            timeout=timeout,
        )
        return await self.dispatch(request)

    async def get(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json_body: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", path, json_body=json_body, **kwargs)

    async def put(self, path: str, json_body: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("PUT", path, json_body=json_body, **kwargs)

    async def patch(self, path: str, json_body: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("PATCH", path, json_body=json_body, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)

    async def dispatch(self, request: ApiRequest) -> ApiResponse:
        """Send ``request`` and route an HTTP error through the post-receive hook.

        Also used by the coordinator to replay requests, so a replayed
        request's second 401 is classified here as well.
        """
        try:
            return await self._send(request)
        except ApiError as error:
            return await self._on_error(request, error)

    def url_for(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def is_exempt(self, path: str) -> bool:
        return any(fragment in path for fragment in self.exempt_paths)

    # ---- hooks ----
    async def _before_send(self, request: ApiRequest) -> None:
        token = await self.store.get(CredentialKind.ACCESS)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        else:
            request.headers.pop("Authorization", None)

    async def _on_error(self, request: ApiRequest, error: ApiError) -> ApiResponse:
        if error.status != 401:
            raise error
        if request.retried:
            logging.warning(
                f"❌ {request.method} {request.path} rejected again after refresh (status=401)"
            )
            raise RetryExhaustedError.wrap(
                f"Request rejected after credential refresh: {request.method} {request.path}",
                error,
            ) from error
        if self.is_exempt(request.path):
            raise ExemptEndpointAuthError.wrap(
                f"Authentication rejected by {request.path}", error
            ) from error
        return await self.coordinator.handle_unauthorized(request, self.dispatch)

    # ---- transport ----
    async def _send(self, request: ApiRequest) -> ApiResponse:
        await self._before_send(request)
        url = self.url_for(request.path)
        context = f"{request.method} {request.path}"

        async def operation() -> tuple[int, dict[str, str], str]:
            timeout = aiohttp.ClientTimeout(total=request.timeout or self.timeout)
            async with self._session.request(
                request.method,
                url,
                params=request.params,
                json=request.json_body,
                headers=request.headers,
                timeout=timeout,
            ) as resp:
                return resp.status, dict(resp.headers), await resp.text()

        status, headers, body = await handle_api_error(operation, context)
        logging.debug(f"🌐 {context} -> {status} retried={request.retried}")
        data = self._decode(body)
        if status >= 400:
            raise ApiError(
                f"API request failed: {status} {context}",
                status=status,
                method=request.method,
                url=url,
                payload=data,
            )
        return ApiResponse(status=status, headers=headers, data=data, request=request)

    @staticmethod
    def _decode(body: str) -> Any:
        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            # Some endpoints answer with plain text or HTML error pages.
            return body
