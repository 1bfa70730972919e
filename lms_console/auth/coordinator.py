"""Single-flight credential refresh.

At most one refresh call is outstanding per coordinator. Requests that hit a
401 while a refresh is running park on a waiter future and are replayed (or
failed) once that refresh concludes; the waiter list is swapped out and the
state returned to ``IDLE`` in one synchronous step, so every waiter settles
exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from ..api.types import ApiRequest, ApiResponse
from ..credentials.store import CredentialStore
from ..credentials.types import CredentialKind, CredentialPair
from ..errors.internal import (
    CredentialMissingError,
    InternalError,
    SessionTerminatedError,
)
from .client import TokenClient
from .terminator import SessionTerminator

Replay = Callable[[ApiRequest], Awaitable[ApiResponse]]


class RefreshState(Enum):
    """Refresh coordinator states.

    Attributes:
        IDLE: No refresh in flight; the next qualifying 401 starts one.
        REFRESHING: A refresh call is outstanding; 401s queue behind it.
    """

    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshCoordinator:
    """Owns the refresh state machine and its waiter queue."""

    def __init__(
        self,
        store: CredentialStore,
        token_client: TokenClient,
        terminator: SessionTerminator,
    ) -> None:
        self.store = store
        self.token_client = token_client
        self.terminator = terminator
        self.state = RefreshState.IDLE
        self.refresh_calls = 0
        self._waiters: list[asyncio.Future[str]] = []
        self._lock = asyncio.Lock()

    @property
    def pending_waiters(self) -> int:
        return len(self._waiters)

    async def handle_unauthorized(
        self, request: ApiRequest, replay: Replay
    ) -> ApiResponse:
        """Recover a request that failed with an expired access credential.

        Args:
            request: The request that received the 401; marked retried here.
            replay: Callable resubmitting the request through the dispatcher.

        Returns:
            The replayed request's response.

        Raises:
            SessionTerminatedError: This request triggered a refresh that failed.
            InternalError: Refresh failure shared with queued requests, or the
                replay's own error.
        """
        request.retried = True
        waiter: asyncio.Future[str] | None = None
        async with self._lock:
            if self.state is RefreshState.REFRESHING:
                waiter = asyncio.get_running_loop().create_future()
                self._waiters.append(waiter)
            else:
                self.state = RefreshState.REFRESHING

        if waiter is not None:
            logging.debug(
                f"⏳ Queued behind in-flight refresh {request.method} {request.path} waiters={len(self._waiters)}"
            )
            await waiter
            return await replay(request)

        logging.info(f"🔄 Access credential expired, refreshing (trigger={request.method} {request.path})")
        try:
            pair = await self._refresh_pair()
        except InternalError as e:
            try:
                await self.terminator.terminate(e)
            finally:
                settled = self._settle(error=e)
            logging.warning(
                f"💥 Credential refresh failed type={type(e).__name__} rejected_waiters={settled}"
            )
            raise SessionTerminatedError(
                "Session terminated after failed credential refresh", reason=e
            ) from e
        except BaseException:  # noqa: BLE001
            # Cancellation or an unexpected error: never strand waiters.
            self._settle()
            raise
        settled = self._settle(token=pair.access_token)
        logging.debug(f"▶️ Replaying after refresh resumed_waiters={settled}")
        return await replay(request)

    async def _refresh_pair(self) -> CredentialPair:
        refresh_token = await self.store.get(CredentialKind.REFRESH)
        if not refresh_token:
            raise CredentialMissingError("No refresh credential stored")
        self.refresh_calls += 1
        result = await self.token_client.refresh(refresh_token)
        try:
            await self.store.set_pair(result.pair.access_token, result.pair.refresh_token)
            if result.user:
                await self.store.set_user(result.user)
        except OSError as e:
            raise InternalError("Refreshed credentials could not be persisted") from e
        return result.pair

    def _settle(
        self, *, token: str | None = None, error: BaseException | None = None
    ) -> int:
        """Drain the waiter queue and return to ``IDLE``.

        With ``error`` every waiter is rejected, with ``token`` every waiter
        is resolved, with neither every waiter is cancelled.

        Returns:
            Number of waiters settled.
        """
        waiters, self._waiters = self._waiters, []
        self.state = RefreshState.IDLE
        for waiter in waiters:
            if waiter.done():
                continue
            if error is not None:
                waiter.set_exception(error)
            elif token is not None:
                waiter.set_result(token)
            else:
                waiter.cancel()
        return len(waiters)
