"""Sync package: reconciliation engine and its triggers."""

from budget_ledger.sync.engine import SnapshotListener, SyncEngine
from budget_ledger.sync.scheduler import SyncScheduler

__all__ = ["SnapshotListener", "SyncEngine", "SyncScheduler"]
