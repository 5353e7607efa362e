"""
Core Data Models for Budget Ledger

These models define the strict schemas for every ledger record, whether it
was typed in locally or pulled from the sync server.

DESIGN DECISION: Timestamps are kept as ISO-8601 strings, exactly as they
travel over the wire and sit in SQLite. Records therefore round-trip through
storage and the sync server without any reformatting, and parsing only
happens where ordering matters.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_CURRENCY = "TWD"

DEFAULT_CATEGORIES = [
    "food",
    "transport",
    "entertainment",
    "housing",
    "utilities",
    "shopping",
    "salary",
    "other",
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class LedgerType(str, Enum):
    """Direction of money for a record."""
    EXPENSE = "expense"
    INCOME = "income"


class PlanTier(str, Enum):
    """Subscription tier. Only affects the AI assistant quota."""
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


DAILY_AI_LIMIT: dict[PlanTier, int] = {
    PlanTier.FREE: 5,
    PlanTier.PRO: 1000,
    PlanTier.ENTERPRISE: 5000,
}


# =============================================================================
# TIMESTAMP HELPERS
# =============================================================================

def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 date or datetime string into an aware datetime.

    Plain dates ("2024-01-02") become midnight UTC so that they sort
    against full timestamps.
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _check_iso(value: str, field_name: str) -> str:
    try:
        parse_timestamp(value)
    except ValueError:
        raise ValueError(f"{field_name} must be an ISO-8601 date or timestamp, got {value!r}")
    return value


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip tags, drop blanks and collapse duplicates keeping first occurrence."""
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


# =============================================================================
# LEDGER RECORD
# =============================================================================

class LedgerRecord(BaseModel):
    """
    One financial transaction as stored locally.

    `dirty` and `deleted` are sync bookkeeping:
    - dirty: local copy has diverged from the last known remote copy
    - deleted: soft-deleted, hidden from reads but kept until synced

    Amounts are only required to be non-negative here; the stricter
    "greater than zero" rule applies to user input (see RecordInput).
    """
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier, immutable"
    )
    type: LedgerType = Field(
        default=LedgerType.EXPENSE,
        description="Expense or income"
    )
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Amount in `currency`"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=1,
        max_length=10,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    date: str = Field(
        ...,
        description="Business date of the transaction (ISO-8601)"
    )
    tags: list[str] = Field(default_factory=list)
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")
    deleted: bool = False
    dirty: bool = False

    @field_validator('date', 'created_at', 'updated_at')
    @classmethod
    def validate_iso(cls, v: str, info) -> str:
        return _check_iso(v, info.field_name)

    @field_validator('tags', mode='before')
    @classmethod
    def default_tags(cls, v: Any) -> Any:
        """The sync server may send null tags."""
        return [] if v is None else v

    @field_validator('tags')
    @classmethod
    def collapse_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)

    @field_validator('note')
    @classmethod
    def blank_note_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def sort_key(self) -> tuple[datetime, datetime]:
        """Newest-first ordering key: business date, then creation time."""
        return parse_timestamp(self.date), parse_timestamp(self.created_at)

    def to_wire(self) -> dict[str, Any]:
        """
        Serialize for the sync server.

        The dirty flag is a local concern and never leaves the device.
        """
        return self.model_dump(mode="json", by_alias=True, exclude={"dirty"})

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> "LedgerRecord":
        """
        Build a record from a sync server payload.

        Pulled records are authoritative, so they are never dirty.
        """
        data = dict(payload)
        data["deleted"] = bool(data.get("deleted"))
        data["dirty"] = False
        return cls.model_validate(data)


# =============================================================================
# INPUT MODELS
# =============================================================================

class RecordInput(BaseModel):
    """
    User input for a new record.

    id, timestamps and sync flags are assigned by the store.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: LedgerType = LedgerType.EXPENSE
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Must be strictly positive"
    )
    currency: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=10,
        description="Falls back to the configured default currency"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    date: str
    note: Optional[str] = Field(default=None, max_length=1000)
    tags: list[str] = Field(default_factory=list)

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: str) -> str:
        return _check_iso(v, "date")


class RecordUpdate(BaseModel):
    """
    Partial update for an existing record.

    Only fields explicitly set by the caller are applied.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: Optional[LedgerType] = None
    amount: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    currency: Optional[str] = Field(default=None, min_length=1, max_length=10)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date: Optional[str] = None
    note: Optional[str] = Field(default=None, max_length=1000)
    tags: Optional[list[str]] = None

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _check_iso(v, "date")

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually set."""
        return self.model_dump(exclude_unset=True)
