"""
Abstract Persistence Interface

DESIGN DECISION: The record store talks to storage only through this
interface. This allows us to:
1. Use SQLite on the device
2. Use in-memory storage for testing
3. Keep the store and sync engine decoupled from storage details

The interface is intentionally small: a records table keyed by id and a
key/value metadata area. The store keeps its own in-memory copy, so there
are no query methods here beyond reading everything back at start-up.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from budget_ledger.models.record import LedgerRecord


class PersistenceAdapter(ABC):
    """
    Durable storage for ledger records and small metadata values.

    Any storage implementation must implement these methods.
    Implementations raise PersistenceError on any read/write failure.
    """

    @abstractmethod
    async def init(self) -> None:
        """
        Prepare storage for use (open files, create tables).

        Safe to call more than once.
        """
        pass

    @abstractmethod
    async def read_all(self) -> list[LedgerRecord]:
        """
        Read every stored record, including soft-deleted ones.

        Returns:
            All records, in no particular order
        """
        pass

    @abstractmethod
    async def upsert(self, record: LedgerRecord) -> None:
        """
        Insert a record or replace the stored copy with the same id.

        Args:
            record: The full record, including dirty/deleted flags

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def upsert_many(self, records: Iterable[LedgerRecord]) -> None:
        """
        Upsert a batch of records atomically: either every record is
        written or none is.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def mark_deleted(self, record_id: str, timestamp: str) -> None:
        """
        Soft-delete a record: deleted=True, dirty=True, updatedAt=timestamp.

        Unknown ids are ignored.
        """
        pass

    @abstractmethod
    async def clear_dirty(self, record_ids: Iterable[str]) -> None:
        """
        Set dirty=False for the given ids. Unknown ids are ignored.
        """
        pass

    @abstractmethod
    async def purge_records(self) -> None:
        """
        Physically delete every record. Metadata is kept.
        """
        pass

    @abstractmethod
    async def get_meta(self, key: str) -> Optional[str]:
        """
        Read a metadata value.

        Returns:
            The stored string, or None if the key was never set
        """
        pass

    @abstractmethod
    async def set_meta(self, key: str, value: str) -> None:
        """
        Write a metadata value, replacing any previous one.
        """
        pass

    async def close(self) -> None:
        """Release any underlying resources."""
        pass


class PersistenceError(Exception):
    """Local storage read or write failed."""
    pass
