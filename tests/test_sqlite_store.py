"""
Tests for the SQLite persistence adapter.
"""

import sqlite3

import pytest

from budget_ledger.services.storage import PersistenceError, SqlitePersistenceAdapter

from tests.helpers import make_record


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "ledger.db")


async def open_adapter(path: str) -> SqlitePersistenceAdapter:
    adapter = SqlitePersistenceAdapter(path)
    await adapter.init()
    return adapter


class TestRecords:
    """Tests for record rows."""

    @pytest.mark.asyncio
    async def test_round_trip(self, db_path):
        """Test that every field survives a write and read."""
        adapter = await open_adapter(db_path)
        record = make_record(
            amount=12.5,
            note="Lunch, with friends",
            tags=["team", "lunch"],
            currency="USD",
            dirty=True,
        )

        await adapter.upsert(record)

        assert await adapter.read_all() == [record]
        await adapter.close()

    @pytest.mark.asyncio
    async def test_upsert_replaces_by_id(self, db_path):
        """Test that a record id exists exactly once."""
        adapter = await open_adapter(db_path)
        record = make_record(amount=10)
        await adapter.upsert(record)
        await adapter.upsert(record.model_copy(update={"amount": 20.0}))

        rows = await adapter.read_all()
        assert len(rows) == 1
        assert rows[0].amount == 20
        await adapter.close()

    @pytest.mark.asyncio
    async def test_upsert_many(self, db_path):
        adapter = await open_adapter(db_path)
        existing = make_record(amount=10, dirty=True)
        await adapter.upsert(existing)
        batch = [existing.model_copy(update={"amount": 30.0, "dirty": False}), make_record()]

        await adapter.upsert_many(batch)

        rows = {r.id: r for r in await adapter.read_all()}
        assert rows == {record.id: record for record in batch}
        await adapter.close()

    @pytest.mark.asyncio
    async def test_upsert_many_is_all_or_nothing(self, db_path):
        """Test that one bad row rolls back the whole batch."""
        adapter = await open_adapter(db_path)
        existing = make_record(amount=10)
        await adapter.upsert(existing)
        broken = make_record().model_copy(update={"category": None})

        with pytest.raises(PersistenceError):
            await adapter.upsert_many([
                existing.model_copy(update={"amount": 99.0}),
                make_record(),
                broken,
            ])

        assert await adapter.read_all() == [existing]
        await adapter.close()

    @pytest.mark.asyncio
    async def test_mark_deleted(self, db_path):
        """Test that mark_deleted sets the tombstone, dirty flag and timestamp."""
        adapter = await open_adapter(db_path)
        record = make_record()
        await adapter.upsert(record)

        await adapter.mark_deleted(record.id, "2024-02-01T00:00:00.000Z")

        (stored,) = await adapter.read_all()
        assert stored.deleted is True
        assert stored.dirty is True
        assert stored.updated_at == "2024-02-01T00:00:00.000Z"
        assert stored.amount == record.amount
        await adapter.close()

    @pytest.mark.asyncio
    async def test_clear_dirty(self, db_path):
        """Test that only the given ids are cleared."""
        adapter = await open_adapter(db_path)
        first = make_record(dirty=True)
        second = make_record(dirty=True)
        await adapter.upsert(first)
        await adapter.upsert(second)

        await adapter.clear_dirty([first.id])

        dirty = {r.id: r.dirty for r in await adapter.read_all()}
        assert dirty == {first.id: False, second.id: True}
        await adapter.close()

    @pytest.mark.asyncio
    async def test_clear_dirty_large_batch(self, db_path):
        """Test that more ids than one statement allows are all cleared."""
        adapter = await open_adapter(db_path)
        records = [make_record(dirty=True) for _ in range(600)]
        for record in records:
            await adapter.upsert(record)

        await adapter.clear_dirty(r.id for r in records)

        assert not any(r.dirty for r in await adapter.read_all())
        await adapter.close()

    @pytest.mark.asyncio
    async def test_purge_keeps_metadata(self, db_path):
        """Test that purging records leaves metadata alone."""
        adapter = await open_adapter(db_path)
        await adapter.upsert(make_record())
        await adapter.set_meta("plan", "pro")

        await adapter.purge_records()

        assert await adapter.read_all() == []
        assert await adapter.get_meta("plan") == "pro"
        await adapter.close()


class TestMeta:
    """Tests for the key/value table."""

    @pytest.mark.asyncio
    async def test_missing_key(self, db_path):
        adapter = await open_adapter(db_path)
        assert await adapter.get_meta("lastSyncAt") is None
        await adapter.close()

    @pytest.mark.asyncio
    async def test_set_overwrites(self, db_path):
        adapter = await open_adapter(db_path)
        await adapter.set_meta("lastSyncAt", "2024-01-01T00:00:00.000Z")
        await adapter.set_meta("lastSyncAt", "2024-01-02T00:00:00.000Z")
        assert await adapter.get_meta("lastSyncAt") == "2024-01-02T00:00:00.000Z"
        await adapter.close()


class TestDurability:
    """Tests for lifecycle and failure handling."""

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, db_path):
        """Test that records and metadata are still there after a restart."""
        adapter = await open_adapter(db_path)
        record = make_record(dirty=True, tags=["a"])
        await adapter.upsert(record)
        await adapter.set_meta("plan", "enterprise")
        await adapter.close()

        reopened = await open_adapter(db_path)
        assert await reopened.read_all() == [record]
        assert await reopened.get_meta("plan") == "enterprise"
        await reopened.close()

    @pytest.mark.asyncio
    async def test_init_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "ledger.db"
        adapter = await open_adapter(str(path))
        assert path.exists()
        await adapter.close()

    @pytest.mark.asyncio
    async def test_init_is_idempotent(self, db_path):
        adapter = await open_adapter(db_path)
        await adapter.upsert(make_record())
        await adapter.init()
        assert len(await adapter.read_all()) == 1
        await adapter.close()

    @pytest.mark.asyncio
    async def test_use_before_init(self, db_path):
        """Test that calls before init() raise PersistenceError."""
        adapter = SqlitePersistenceAdapter(db_path)
        with pytest.raises(PersistenceError, match="not initialized"):
            await adapter.read_all()

    @pytest.mark.asyncio
    async def test_corrupt_row(self, db_path):
        """Test that an unreadable row is reported, not silently dropped."""
        adapter = await open_adapter(db_path)
        await adapter.upsert(make_record(id="broken"))
        await adapter.close()

        conn = sqlite3.connect(db_path)
        with conn:
            conn.execute("UPDATE records SET tags = 'not json' WHERE id = 'broken'")
        conn.close()

        reopened = await open_adapter(db_path)
        with pytest.raises(PersistenceError, match="broken"):
            await reopened.read_all()
        await reopened.close()

    @pytest.mark.asyncio
    async def test_database_path_from_settings(self, tmp_path, monkeypatch):
        """Test that LEDGER_DATABASE_PATH is used when no path is given."""
        path = tmp_path / "from-env.db"
        monkeypatch.setenv("LEDGER_DATABASE_PATH", str(path))

        adapter = SqlitePersistenceAdapter()

        assert adapter.database_path == str(path)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
