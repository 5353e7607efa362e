"""Services package."""

from budget_ledger.services.remote import (
    HttpSyncClient,
    RemoteSyncInterface,
    SyncNetworkError,
)
from budget_ledger.services.storage import (
    AiUsage,
    InMemoryPersistenceAdapter,
    LedgerMetadata,
    PersistenceAdapter,
    PersistenceError,
    SqlitePersistenceAdapter,
)

__all__ = [
    # Remote sync
    "HttpSyncClient",
    "RemoteSyncInterface",
    "SyncNetworkError",
    # Storage services
    "AiUsage",
    "InMemoryPersistenceAdapter",
    "LedgerMetadata",
    "PersistenceAdapter",
    "PersistenceError",
    "SqlitePersistenceAdapter",
]
