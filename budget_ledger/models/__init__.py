"""
Data Models Package

This package contains all Pydantic models used in Budget Ledger.
All data flowing through the system must conform to these schemas.
"""

from budget_ledger.models.record import (
    DAILY_AI_LIMIT,
    DEFAULT_CATEGORIES,
    DEFAULT_CURRENCY,
    LedgerRecord,
    LedgerType,
    PlanTier,
    RecordInput,
    RecordUpdate,
    parse_timestamp,
    utc_now_iso,
)
from budget_ledger.models.sync import (
    SyncReport,
    SyncSnapshot,
    SyncStatus,
)
from budget_ledger.models.challenge import (
    ChallengeDefinition,
    ChallengeProgress,
    ChallengeType,
)
from budget_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "DAILY_AI_LIMIT",
    "DEFAULT_CATEGORIES",
    "DEFAULT_CURRENCY",
    "LedgerRecord",
    "LedgerType",
    "PlanTier",
    "RecordInput",
    "RecordUpdate",
    "parse_timestamp",
    "utc_now_iso",
    # Sync models
    "SyncReport",
    "SyncSnapshot",
    "SyncStatus",
    # Challenge models
    "ChallengeDefinition",
    "ChallengeProgress",
    "ChallengeType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
