"""
Pytest configuration for test isolation.

Settings are read from the environment and a `.env` file in the working
directory, and get_settings() caches them. Every test runs in its own
temporary directory with the ledger variables removed, so a developer's
shell or `.env` can never point a test at a real sync server.
"""

import pytest

from budget_ledger.config import get_settings
from budget_ledger.ledger import RecordStore
from budget_ledger.services.storage import InMemoryPersistenceAdapter, LedgerMetadata
from budget_ledger.sync import SyncEngine

from tests.helpers import FakeRemote


LEDGER_ENV_VARS = (
    "SYNC_ENDPOINT",
    "SYNC_TIMEOUT_SECONDS",
    "SYNC_DEBOUNCE_SECONDS",
    "LEDGER_DATABASE_PATH",
    "AI_ENDPOINT",
    "AI_TIMEOUT_SECONDS",
    "LOG_LEVEL",
    "DEFAULT_CURRENCY",
)


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path, monkeypatch):
    for name in LEDGER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def adapter():
    return InMemoryPersistenceAdapter()


@pytest.fixture
def store(adapter):
    return RecordStore(adapter)


@pytest.fixture
def metadata(adapter):
    return LedgerMetadata(adapter)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def engine(store, remote, metadata):
    return SyncEngine(store, remote, metadata)
