"""
SQLite Persistence Implementation

DESIGN DECISION: SQLite is the on-device store because:
1. It is durable across restarts with no server to run
2. Upserts keyed by id give us "exists exactly once" for free
3. It ships with Python

TRADEOFFS:
- Calls are synchronous; they run inline on the event loop. The ledger is
  small and single-user, so a write is well under a millisecond.
- A second process holding the file can briefly lock it, so opening the
  database is retried.

Records live in `records` (one row per id, all LedgerRecord fields plus
dirty/deleted flags); small values live in `meta` as key/value strings.
"""

import json
import sqlite3
from pathlib import Path
from typing import Iterable, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_ledger.config import get_settings
from budget_ledger.models.record import LedgerRecord
from budget_ledger.services.storage.interface import (
    PersistenceAdapter,
    PersistenceError,
)


logger = structlog.get_logger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS records (
    id TEXT PRIMARY KEY NOT NULL,
    type TEXT NOT NULL,
    amount REAL NOT NULL,
    currency TEXT NOT NULL,
    category TEXT NOT NULL,
    note TEXT,
    date TEXT NOT NULL,
    tags TEXT,
    createdAt TEXT NOT NULL,
    updatedAt TEXT NOT NULL,
    deleted INTEGER DEFAULT 0,
    dirty INTEGER DEFAULT 1
);
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY NOT NULL,
    value TEXT
);
"""

UPSERT_SQL = """
INSERT INTO records (
    id, type, amount, currency, category, note, date, tags,
    createdAt, updatedAt, deleted, dirty
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    type = excluded.type,
    amount = excluded.amount,
    currency = excluded.currency,
    category = excluded.category,
    note = excluded.note,
    date = excluded.date,
    tags = excluded.tags,
    createdAt = excluded.createdAt,
    updatedAt = excluded.updatedAt,
    deleted = excluded.deleted,
    dirty = excluded.dirty
"""

# Stay well below SQLITE_MAX_VARIABLE_NUMBER on old builds
_ID_BATCH_SIZE = 500


class SqlitePersistenceAdapter(PersistenceAdapter):
    """
    File-backed persistence for the ledger.

    One connection is opened by init() and reused for every call.
    """

    def __init__(self, database_path: Optional[str] = None):
        self._path = database_path or get_settings().storage.database_path
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def database_path(self) -> str:
        return self._path

    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    def _connect(self) -> sqlite3.Connection:
        """Open the database and make sure both tables exist."""
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            conn.executescript(SCHEMA)
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    async def init(self) -> None:
        if self._conn is not None:
            return
        try:
            if self._path != ":memory:":
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = self._connect()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Failed to open ledger database {self._path}: {e}")
        logger.debug("ledger_database_opened", path=self._path)

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError("Ledger database is not initialized; call init() first")
        return self._conn

    def _execute(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Run one statement in its own transaction and return any rows."""
        conn = self._connection()
        try:
            with conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Ledger database error: {e}")

    def _record_to_row(self, record: LedgerRecord) -> tuple:
        return (
            record.id,
            record.type.value,
            record.amount,
            record.currency,
            record.category,
            record.note,
            record.date,
            json.dumps(record.tags),
            record.created_at,
            record.updated_at,
            1 if record.deleted else 0,
            1 if record.dirty else 0,
        )

    def _row_to_record(self, row: sqlite3.Row) -> LedgerRecord:
        try:
            return LedgerRecord(
                id=row["id"],
                type=row["type"],
                amount=row["amount"],
                currency=row["currency"],
                category=row["category"],
                note=row["note"],
                date=row["date"],
                tags=json.loads(row["tags"]) if row["tags"] else [],
                created_at=row["createdAt"],
                updated_at=row["updatedAt"],
                deleted=row["deleted"] == 1,
                dirty=row["dirty"] == 1,
            )
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise PersistenceError(f"Stored record {row['id']} is corrupt: {e}")

    async def read_all(self) -> list[LedgerRecord]:
        rows = self._execute("SELECT * FROM records")
        return [self._row_to_record(row) for row in rows]

    async def upsert(self, record: LedgerRecord) -> None:
        self._execute(UPSERT_SQL, self._record_to_row(record))

    async def upsert_many(self, records: Iterable[LedgerRecord]) -> None:
        rows = [self._record_to_row(record) for record in records]
        if not rows:
            return
        conn = self._connection()
        try:
            with conn:
                conn.executemany(UPSERT_SQL, rows)
        except sqlite3.Error as e:
            raise PersistenceError(f"Ledger database error: {e}")

    async def mark_deleted(self, record_id: str, timestamp: str) -> None:
        self._execute(
            "UPDATE records SET deleted = 1, dirty = 1, updatedAt = ? WHERE id = ?",
            (timestamp, record_id),
        )

    async def clear_dirty(self, record_ids: Iterable[str]) -> None:
        ids = list(record_ids)
        for start in range(0, len(ids), _ID_BATCH_SIZE):
            batch = ids[start:start + _ID_BATCH_SIZE]
            placeholders = ",".join("?" for _ in batch)
            self._execute(
                f"UPDATE records SET dirty = 0 WHERE id IN ({placeholders})",
                tuple(batch),
            )

    async def purge_records(self) -> None:
        self._execute("DELETE FROM records")

    async def get_meta(self, key: str) -> Optional[str]:
        rows = self._execute("SELECT value FROM meta WHERE key = ?", (key,))
        if not rows:
            return None
        return rows[0]["value"]

    async def set_meta(self, key: str, value: str) -> None:
        self._execute(
            "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
            (key, value),
        )

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
