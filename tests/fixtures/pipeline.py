"""
Dispatcher, coordinator and terminator wired to a FakeBackend
"""

from lms_console.api.dispatcher import RequestDispatcher
from lms_console.auth.client import TokenClient
from lms_console.auth.coordinator import RefreshCoordinator
from lms_console.auth.terminator import SessionTerminator
from lms_console.credentials.store import MemoryCredentialStore
from tests.fixtures.fake_http import FakeBackend

BASE_URL = "http://lms.test"


class Pipeline:
    """Recording navigator plus the full authenticated pipeline."""

    def __init__(self, backend: FakeBackend, store: MemoryCredentialStore):
        self.backend = backend
        self.store = store
        self.routes: list[str] = []
        self.terminator = SessionTerminator(store, self.routes.append)
        self.token_client = TokenClient(backend.session, base_url=BASE_URL)
        self.coordinator = RefreshCoordinator(store, self.token_client, self.terminator)
        self.dispatcher = RequestDispatcher(
            backend.session, store, self.coordinator, base_url=BASE_URL
        )
