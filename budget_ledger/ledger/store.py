"""
Record Store

The single source of truth for the ledger. Every mutation goes through
here so that dirty-flagging and persistence always agree.

RULES:
1. Persist first, then change memory. If the adapter raises, the
   in-memory state is exactly what it was before the call.
2. Soft-deleted records stay in memory and storage until purge_all();
   they are invisible to list()/get() but visible to list_dirty().
3. Only user mutations notify listeners. Merging pulled records does not,
   otherwise every sync would schedule another sync.
"""

from typing import Callable, Iterable, Optional, Union
from uuid import uuid4

import structlog
from pydantic import ValidationError as PydanticValidationError

from budget_ledger.audit import AuditLogger
from budget_ledger.models.record import (
    DEFAULT_CURRENCY,
    LedgerRecord,
    RecordInput,
    RecordUpdate,
    parse_timestamp,
    utc_now_iso,
)
from budget_ledger.services.storage import PersistenceAdapter


logger = structlog.get_logger(__name__)


MutationListener = Callable[[LedgerRecord], None]


class ValidationError(Exception):
    """Invalid input to create/update (non-positive amount, blank field...)."""
    pass


class NotFoundError(Exception):
    """Operation referenced an unknown record id."""
    pass


def _describe_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "record"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


class RecordStore:
    """
    In-memory ledger backed by a persistence adapter.

    Call load() once before use. Records handed out are copies; changing
    them has no effect on the store.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self._adapter = adapter
        self._audit_logger = audit_logger
        self._default_currency = default_currency
        self._records: dict[str, LedgerRecord] = {}
        self._listeners: list[MutationListener] = []

    async def load(self) -> None:
        """(Re)read every record from storage."""
        await self._adapter.init()
        records = await self._adapter.read_all()
        self._records = {record.id: record for record in records}
        logger.debug("ledger_loaded", count=len(self._records))

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: MutationListener) -> None:
        """Call `listener(record)` after every successful user mutation."""
        self._listeners.append(listener)

    def remove_listener(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, record: LedgerRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(record.model_copy(deep=True))
            except Exception as e:
                # The mutation is already persisted; a listener can't undo it
                logger.error("ledger_listener_failed", record_id=record.id, error=str(e))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, data: Union[RecordInput, dict]) -> LedgerRecord:
        """
        Create a new dirty record.

        Raises:
            ValidationError: If amount <= 0 or a required field is blank
            PersistenceError: If the record could not be stored
        """
        if isinstance(data, RecordInput):
            data = data.model_dump()
        try:
            entry = RecordInput.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(_describe_errors(e)) from e

        now = utc_now_iso()
        record = LedgerRecord(
            id=uuid4().hex,
            type=entry.type,
            amount=entry.amount,
            currency=entry.currency or self._default_currency,
            category=entry.category,
            note=entry.note,
            date=entry.date,
            tags=entry.tags,
            created_at=now,
            updated_at=now,
            deleted=False,
            dirty=True,
        )

        await self._adapter.upsert(record)
        self._records[record.id] = record

        if self._audit_logger:
            self._audit_logger.log_record_created(
                record.id, record.type.value, record.amount, record.category
            )
        self._notify(record)
        return record.model_copy(deep=True)

    async def update(self, record_id: str, changes: Union[RecordUpdate, dict]) -> LedgerRecord:
        """
        Merge `changes` into an existing record and mark it dirty.

        Raises:
            NotFoundError: If the id is unknown or the record is deleted
            ValidationError: If the merged record is invalid
            PersistenceError: If the record could not be stored
        """
        existing = self._get_live(record_id)

        if isinstance(changes, RecordUpdate):
            # Keep "explicitly set" information from the caller's model
            fields = changes.changes()
        else:
            try:
                fields = RecordUpdate.model_validate(changes).changes()
            except PydanticValidationError as e:
                raise ValidationError(_describe_errors(e)) from e

        merged = existing.model_dump()
        merged.update(fields)
        merged["updated_at"] = self._next_timestamp(existing)
        merged["dirty"] = True
        try:
            updated = LedgerRecord.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(_describe_errors(e)) from e

        await self._adapter.upsert(updated)
        self._records[record_id] = updated

        if self._audit_logger:
            self._audit_logger.log_record_updated(record_id, sorted(fields))
        self._notify(updated)
        return updated.model_copy(deep=True)

    async def soft_delete(self, record_id: str) -> None:
        """
        Hide a record and queue its deletion for the next sync.

        Raises:
            NotFoundError: If the id is unknown or already deleted
            PersistenceError: If the deletion could not be stored
        """
        existing = self._get_live(record_id)
        timestamp = self._next_timestamp(existing)

        await self._adapter.mark_deleted(record_id, timestamp)
        deleted = existing.model_copy(
            update={"deleted": True, "dirty": True, "updated_at": timestamp}
        )
        self._records[record_id] = deleted

        if self._audit_logger:
            self._audit_logger.log_record_deleted(record_id)
        self._notify(deleted)

    async def purge_all(self) -> int:
        """
        Physically remove every record, dirty or not.

        Administrative reset only; sync never calls this.

        Returns:
            How many records were removed
        """
        await self._adapter.purge_records()
        removed = len(self._records)
        self._records.clear()

        if self._audit_logger:
            self._audit_logger.log_ledger_purged(removed)
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> LedgerRecord:
        return self._get_live(record_id).model_copy(deep=True)

    def list_dirty(self) -> list[LedgerRecord]:
        """All records awaiting push, including soft-deleted ones."""
        return [
            record.model_copy(deep=True)
            for record in self._records.values()
            if record.dirty
        ]

    def __len__(self) -> int:
        return sum(1 for record in self._records.values() if not record.deleted)

    # ------------------------------------------------------------------
    # Sync support
    # ------------------------------------------------------------------

    async def clear_dirty(self, record_ids: Iterable[str]) -> None:
        """
        Mark records as matching the remote copy.

        Unknown ids are ignored; no other field changes.
        """
        known = [record_id for record_id in dict.fromkeys(record_ids) if record_id in self._records]
        if not known:
            return

        await self._adapter.clear_dirty(known)
        for record_id in known:
            self._records[record_id] = self._records[record_id].model_copy(update={"dirty": False})

    async def confirm_pushed(self, pushed: Iterable[LedgerRecord]) -> list[str]:
        """
        Clear dirty for pushed records that have not changed since the push.

        A record edited while the push was in flight no longer matches what
        the remote received, so it stays dirty. Content is compared rather
        than updated_at, which can repeat within one millisecond.

        Returns:
            The ids whose dirty flag was cleared
        """
        unchanged = [
            record.id
            for record in pushed
            if self._records.get(record.id) == record
        ]
        await self.clear_dirty(unchanged)
        return unchanged

    async def apply_remote(
        self,
        records: Iterable[LedgerRecord],
        keep_local_edits: bool = False,
    ) -> int:
        """
        Merge pulled records: the remote copy overwrites every local field
        and the record is no longer dirty.

        The batch is persisted in one adapter call before memory changes,
        so a failed write leaves the store exactly as it was.

        Args:
            records: Records pulled from the remote
            keep_local_edits: Skip records that are still dirty locally

        Returns:
            How many records were written
        """
        merged = [
            remote.model_copy(update={"dirty": False}, deep=True)
            for remote in records
        ]
        if keep_local_edits:
            merged = [
                record for record in merged
                if not (record.id in self._records and self._records[record.id].dirty)
            ]
        if not merged:
            return 0

        await self._adapter.upsert_many(merged)
        for record in merged:
            self._records[record.id] = record
        return len(merged)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_live(self, record_id: str) -> LedgerRecord:
        record = self._records.get(record_id)
        if record is None or record.deleted:
            raise NotFoundError(f"Record not found: {record_id}")
        return record

    @staticmethod
    def _next_timestamp(previous: LedgerRecord) -> str:
        """now, but never earlier than the record's current updated_at."""
        now = utc_now_iso()
        if parse_timestamp(now) < parse_timestamp(previous.updated_at):
            return previous.updated_at
        return now

    # Defined last: inside the class body this name shadows the builtin
    def list(self) -> "list[LedgerRecord]":
        """All non-deleted records, newest first."""
        live = [record for record in self._records.values() if not record.deleted]
        live.sort(key=LedgerRecord.sort_key, reverse=True)
        return [record.model_copy(deep=True) for record in live]
