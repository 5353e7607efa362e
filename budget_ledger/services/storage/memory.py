"""
In-Memory Persistence

Non-durable implementation of the persistence interface, used by tests.
Stored records are copies, so callers can never mutate storage behind the
adapter's back.
"""

from typing import Iterable, Optional

from budget_ledger.models.record import LedgerRecord
from budget_ledger.services.storage.interface import PersistenceAdapter


class InMemoryPersistenceAdapter(PersistenceAdapter):
    """Dict-backed persistence adapter."""

    def __init__(self):
        self._records: dict[str, LedgerRecord] = {}
        self._meta: dict[str, str] = {}

    async def init(self) -> None:
        pass

    async def read_all(self) -> list[LedgerRecord]:
        return [record.model_copy(deep=True) for record in self._records.values()]

    async def upsert(self, record: LedgerRecord) -> None:
        self._records[record.id] = record.model_copy(deep=True)

    async def upsert_many(self, records: Iterable[LedgerRecord]) -> None:
        copies = [record.model_copy(deep=True) for record in records]
        self._records.update((record.id, record) for record in copies)

    async def mark_deleted(self, record_id: str, timestamp: str) -> None:
        record = self._records.get(record_id)
        if record is None:
            return
        self._records[record_id] = record.model_copy(
            update={"deleted": True, "dirty": True, "updated_at": timestamp}
        )

    async def clear_dirty(self, record_ids: Iterable[str]) -> None:
        for record_id in record_ids:
            record = self._records.get(record_id)
            if record is not None:
                self._records[record_id] = record.model_copy(update={"dirty": False})

    async def purge_records(self) -> None:
        self._records.clear()

    async def get_meta(self, key: str) -> Optional[str]:
        return self._meta.get(key)

    async def set_meta(self, key: str, value: str) -> None:
        self._meta[key] = value
