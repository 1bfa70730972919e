"""Central application context for shared async resources."""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType

import aiohttp

from .api.dispatcher import RequestDispatcher
from .auth.client import TokenClient
from .auth.coordinator import RefreshCoordinator
from .auth.service import AuthService
from .auth.terminator import Navigator, SessionTerminator
from .config.model import ConsoleSettings
from .credentials.store import CredentialStore, JsonFileCredentialStore


class ApplicationContext:
    """Holds the HTTP session and the authenticated pipeline built on it."""

    session: aiohttp.ClientSession | None
    store: CredentialStore | None
    terminator: SessionTerminator | None
    coordinator: RefreshCoordinator | None
    dispatcher: RequestDispatcher | None
    auth: AuthService | None
    _owns_session: bool
    _lock: asyncio.Lock

    def __init__(self, settings: ConsoleSettings | None = None) -> None:
        self.settings = settings or ConsoleSettings.from_env()
        self.session = None
        self.store = None
        self.terminator = None
        self.coordinator = None
        self.dispatcher = None
        self.auth = None
        self._owns_session = False
        self._lock = asyncio.Lock()

    # ------------------------- Construction ------------------------- #
    @classmethod
    async def create(
        cls,
        settings: ConsoleSettings | None = None,
        *,
        store: CredentialStore | None = None,
        navigator: Navigator | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> ApplicationContext:
        """Create and wire a new ApplicationContext.

        Args:
            settings: Runtime settings; environment defaults when omitted.
            store: Credential store; a JSON file store at
                ``settings.credentials_file`` when omitted.
            navigator: Called with the login route on forced logout.
            session: Existing aiohttp session to use instead of a new one.
                The caller keeps ownership and closes it.

        Returns:
            A fully wired ApplicationContext instance.
        """
        ctx = cls(settings)
        logging.debug("🧪 Creating application context")
        ctx._owns_session = session is None
        ctx.session = session or aiohttp.ClientSession()
        ctx.store = store or JsonFileCredentialStore(
            ctx.settings.credentials_file,
            write_attempts=ctx.settings.store_write_attempts,
        )
        ctx.terminator = SessionTerminator(
            ctx.store, navigator, login_route=ctx.settings.login_route
        )
        token_client = TokenClient(
            ctx.session,
            base_url=ctx.settings.base_url,
            timeout=ctx.settings.refresh_timeout,
        )
        ctx.coordinator = RefreshCoordinator(ctx.store, token_client, ctx.terminator)
        ctx.dispatcher = RequestDispatcher(
            ctx.session,
            ctx.store,
            ctx.coordinator,
            base_url=ctx.settings.base_url,
            timeout=ctx.settings.request_timeout,
        )
        ctx.auth = AuthService(ctx.dispatcher, ctx.store)
        logging.debug(f"🔗 Pipeline ready base_url={ctx.settings.base_url}")
        return ctx

    # --------------------------- Lifecycle -------------------------- #
    async def shutdown(self) -> None:
        """Close the HTTP session if this context opened it and drop pipeline references."""
        async with self._lock:
            await self._close_http_session()
            self.auth = None
            self.dispatcher = None
            self.coordinator = None
            self.terminator = None
            logging.debug("✅ Application context shutdown complete")

    async def _close_http_session(self) -> None:
        if not self.session:
            return
        if not self._owns_session:
            self.session = None
            return
        try:
            await self.session.close()
        except (aiohttp.ClientError, OSError) as e:
            logging.error(f"💥 Error closing HTTP session: {str(e)}")
        finally:
            self.session = None
            self._owns_session = False

    async def __aenter__(self) -> ApplicationContext:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()
