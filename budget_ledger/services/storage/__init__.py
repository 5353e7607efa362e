"""
Storage Services Package

Provides the abstract persistence interface and concrete implementations.
SQLite is the on-device backend; the in-memory one backs tests.
"""

from budget_ledger.services.storage.interface import (
    PersistenceAdapter,
    PersistenceError,
)
from budget_ledger.services.storage.memory import InMemoryPersistenceAdapter
from budget_ledger.services.storage.metadata import AiUsage, LedgerMetadata
from budget_ledger.services.storage.sqlite_store import SqlitePersistenceAdapter

__all__ = [
    # Interface
    "PersistenceAdapter",
    # Exceptions
    "PersistenceError",
    # Implementations
    "InMemoryPersistenceAdapter",
    "SqlitePersistenceAdapter",
    # Metadata
    "AiUsage",
    "LedgerMetadata",
]
