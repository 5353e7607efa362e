"""Ledger record store package."""

from budget_ledger.ledger.store import (
    MutationListener,
    NotFoundError,
    RecordStore,
    ValidationError,
)

__all__ = [
    "MutationListener",
    "NotFoundError",
    "RecordStore",
    "ValidationError",
]
