"""Forced logout when a session cannot be recovered."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..constants import LOGIN_ROUTE
from ..credentials.store import CredentialStore
from ..errors.handling import log_error

Navigator = Callable[[str], None]


def log_navigation(route: str) -> None:
    """Default navigator for headless use: just record the route change."""
    logging.info(f"➡️ Redirecting to {route}")


class SessionTerminator:
    """Clears credentials and sends the application to the login route."""

    def __init__(
        self,
        store: CredentialStore,
        navigator: Navigator | None = None,
        *,
        login_route: str = LOGIN_ROUTE,
    ) -> None:
        self.store = store
        self.navigator = navigator or log_navigation
        self.login_route = login_route
        self.terminations = 0

    async def terminate(self, reason: BaseException | None = None) -> None:
        """Clear stored credentials and navigate to the unauthenticated entry point.

        Never raises: a failing clear or navigator is logged so the caller can
        still settle every request that depends on this session.

        Args:
            reason: The failure that made recovery impossible, if any.
        """
        self.terminations += 1
        label = type(reason).__name__ if reason else "logout"
        logging.warning(f"🚪 Session terminated reason={label}")
        try:
            await self.store.clear()
        except OSError as e:
            log_error("Failed to clear stored credentials", e, context={"reason": label})
        try:
            self.navigator(self.login_route)
        except (ValueError, RuntimeError, TypeError) as e:
            logging.warning(f"⚠️ Navigation to {self.login_route} failed: {str(e)}")
