import pytest

from lms_console.credentials.store import MemoryCredentialStore
from lms_console.credentials.types import CredentialPair
from lms_console.logging_config import error_aggregator
from tests.fixtures.fake_http import FakeBackend
from tests.fixtures.pipeline import Pipeline


@pytest.fixture(autouse=True)
def _reset_error_aggregator():
    error_aggregator.reset()
    yield
    error_aggregator.reset()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def store():
    return MemoryCredentialStore(CredentialPair("access-1", "refresh-1"))


@pytest.fixture
def pipeline(backend, store):
    return Pipeline(backend, store)
