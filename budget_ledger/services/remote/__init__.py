"""Remote sync services package."""

from budget_ledger.services.remote.client import (
    HttpSyncClient,
    RemoteSyncInterface,
    SyncNetworkError,
)

__all__ = [
    "HttpSyncClient",
    "RemoteSyncInterface",
    "SyncNetworkError",
]
