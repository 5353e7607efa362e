"""
Tests for Budget Ledger

Test strategy:
1. Unit tests for individual components (models, settings)
2. Integration tests for flows (with fake remote and in-memory storage)
3. No real network calls in tests (fakes or httpx.MockTransport)
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from budget_ledger.config import AppSettings, SyncSettings, validate_all_settings
from budget_ledger.models.record import (
    LedgerRecord,
    LedgerType,
    RecordInput,
    RecordUpdate,
    parse_timestamp,
    utc_now_iso,
)
from budget_ledger.models.sync import SyncSnapshot, SyncStatus
from budget_ledger.models.challenge import ChallengeDefinition, ChallengeType
from budget_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

from tests.helpers import make_record


class TestLedgerRecord:
    """Tests for the stored record model."""

    def test_record_creation(self):
        """Test LedgerRecord creation with defaults."""
        record = make_record(amount=50, category="food")
        assert record.type == LedgerType.EXPENSE
        assert record.amount == 50
        assert record.tags == []
        assert record.deleted is False

    def test_record_accepts_camel_case_timestamps(self):
        """Test that wire names createdAt/updatedAt populate the fields."""
        record = LedgerRecord.model_validate({
            "id": "r1",
            "amount": 10,
            "category": "food",
            "date": "2024-01-02",
            "createdAt": "2024-01-02T10:00:00.000Z",
            "updatedAt": "2024-01-02T11:00:00.000Z",
        })
        assert record.created_at == "2024-01-02T10:00:00.000Z"
        assert record.updated_at == "2024-01-02T11:00:00.000Z"

    def test_record_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            make_record(amount=-1)

    @pytest.mark.parametrize("amount", [float("inf"), float("-inf"), float("nan")])
    def test_record_rejects_non_finite_amount(self, amount):
        """Test that amounts which cannot be sent as JSON are rejected."""
        with pytest.raises(ValueError):
            make_record(amount=amount)

    def test_record_rejects_bad_date(self):
        """Test that a non-ISO date is rejected."""
        with pytest.raises(ValueError, match="ISO-8601"):
            make_record(date="02/01/2024")

    def test_tags_are_normalized(self):
        """Test that tags are stripped, blanks dropped and duplicates collapsed."""
        record = make_record(tags=[" lunch", "lunch", "", "team "])
        assert record.tags == ["lunch", "team"]

    def test_blank_note_becomes_none(self):
        """Test that an empty note is stored as None."""
        assert make_record(note="   ").note is None

    def test_to_wire_excludes_dirty_flag(self):
        """Test that the wire payload uses camelCase and drops `dirty`."""
        payload = make_record(id="r1", dirty=True).to_wire()
        assert "dirty" not in payload
        assert payload["createdAt"] == "2024-01-02T10:00:00.000Z"
        assert payload["type"] == "expense"
        assert payload["deleted"] is False

    def test_from_wire_is_never_dirty(self):
        """Test that pulled records are clean and missing flags default."""
        payload = make_record(id="r1").to_wire()
        payload["dirty"] = True
        del payload["deleted"]
        payload["tags"] = None

        record = LedgerRecord.from_wire(payload)
        assert record.dirty is False
        assert record.deleted is False
        assert record.tags == []

    def test_sort_key_orders_by_date_then_creation(self):
        """Test newest-first ordering key."""
        older = make_record(date="2024-01-01", created_at="2024-01-05T00:00:00.000Z")
        newer = make_record(date="2024-01-02", created_at="2024-01-01T00:00:00.000Z")
        same_day_later = make_record(date="2024-01-02", created_at="2024-01-03T00:00:00.000Z")
        ordered = sorted([older, newer, same_day_later], key=LedgerRecord.sort_key, reverse=True)
        assert [r.id for r in ordered] == [same_day_later.id, newer.id, older.id]


class TestInputModels:
    """Tests for create/update input models."""

    def test_record_input_requires_positive_amount(self):
        """Test that zero is not a valid amount for new records."""
        with pytest.raises(ValueError):
            RecordInput(amount=0, category="food", date="2024-01-02")

    def test_record_input_rejects_blank_category(self):
        """Test that whitespace-only categories are rejected."""
        with pytest.raises(ValueError):
            RecordInput(amount=10, category="   ", date="2024-01-02")

    def test_record_update_reports_only_set_fields(self):
        """Test that changes() excludes fields the caller never set."""
        update = RecordUpdate(amount=20, note=None)
        assert update.changes() == {"amount": 20, "note": None}

    def test_record_update_validates_date(self):
        """Test that an invalid date is rejected in an update."""
        with pytest.raises(ValueError):
            RecordUpdate(date="not a date")


class TestTimestamps:
    """Tests for timestamp helpers."""

    def test_utc_now_iso_format(self):
        """Test that timestamps are UTC with millisecond precision."""
        value = utc_now_iso()
        assert value.endswith("Z")
        assert len(value.split(".")[1]) == 4  # "123Z"

    def test_parse_plain_date_is_midnight_utc(self):
        """Test that a plain date parses to midnight UTC."""
        assert parse_timestamp("2024-01-02") == datetime(2024, 1, 2, tzinfo=timezone.utc)

    def test_parse_offset_timestamp(self):
        """Test that offsets are honoured."""
        parsed = parse_timestamp("2024-01-02T08:00:00+08:00")
        assert parsed == datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc)


class TestSyncModels:
    """Tests for sync snapshot models."""

    def test_snapshot_defaults(self):
        """Test that a new snapshot is idle with no history."""
        snapshot = SyncSnapshot()
        assert snapshot.status == SyncStatus.IDLE
        assert snapshot.last_synced_at is None
        assert snapshot.error is None
        assert snapshot.is_syncing is False

    def test_status_values(self):
        """Test that status values match the documented set."""
        assert {s.value for s in SyncStatus} == {"idle", "syncing", "success", "error", "offline"}


class TestChallengeModels:
    """Tests for challenge definitions."""

    def test_challenge_requires_positive_target(self):
        """Test that a zero target is rejected."""
        with pytest.raises(ValueError):
            ChallengeDefinition(id="c", title="Nothing", target=0, type=ChallengeType.COUNT)

    def test_challenge_type_from_string(self):
        """Test that challenge types parse from their stored values."""
        challenge = ChallengeDefinition.model_validate(
            {"id": "c", "title": "Save", "target": 100, "type": "amount"}
        )
        assert challenge.type == ChallengeType.AMOUNT


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Record created",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to a structured log dict."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.SYNC_STARTED,
            description="Sync started",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "sync_started"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_builder_record_created(self):
        """Test AuditEventBuilder for record creation."""
        event = AuditEventBuilder.record_created("r1", "expense", 50.0, "food")
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.entity_id == "r1"
        assert event.is_user_action is True
        assert event.description == "Record created: expense 50 (food)"

    def test_audit_event_builder_sync_failed(self):
        """Test AuditEventBuilder for a failed sync cycle."""
        correlation_id = uuid4()
        event = AuditEventBuilder.sync_failed("push", "Sync push failed: 503", correlation_id)
        assert event.event_type == AuditEventType.SYNC_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "Sync push failed: 503"
        assert event.correlation_id == correlation_id


class TestSettings:
    """Tests for configuration."""

    def test_blank_endpoint_means_offline(self):
        """Test that an empty endpoint disables sync."""
        settings = SyncSettings(endpoint="   ")
        assert settings.endpoint is None
        assert settings.enabled is False

    def test_endpoint_trailing_slash_dropped(self):
        """Test endpoint normalisation."""
        settings = SyncSettings(endpoint="https://sync.example.com/")
        assert settings.endpoint == "https://sync.example.com"
        assert settings.enabled is True

    def test_endpoint_from_environment(self, monkeypatch):
        """Test that SYNC_ENDPOINT is picked up."""
        monkeypatch.setenv("SYNC_ENDPOINT", "https://env.example.com")
        assert SyncSettings().endpoint == "https://env.example.com"

    def test_invalid_log_level(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValueError, match="Unknown log level"):
            AppSettings(log_level="chatty")

    def test_currency_uppercased(self):
        """Test that the default currency is normalised to upper case."""
        assert AppSettings(default_currency="usd").default_currency == "USD"

    def test_validate_all_settings(self):
        """Test the startup check with a clean environment."""
        results = validate_all_settings()
        assert results == {"sync": True, "storage": True, "assistant": True, "app": True}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
