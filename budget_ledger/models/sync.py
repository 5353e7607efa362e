"""
Sync Status Models

The snapshot is the only sync state the rest of the application reads.
It is owned and mutated exclusively by the sync engine.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SyncStatus(str, Enum):
    """
    Reconciliation status.

    OFFLINE is terminal: it is only used when no remote endpoint is
    configured, and nothing ever transitions out of it.
    """
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"
    OFFLINE = "offline"


class SyncSnapshot(BaseModel):
    """Current reconciliation status as shown to the user."""

    status: SyncStatus = Field(
        default=SyncStatus.IDLE,
        description="Where the sync state machine currently is"
    )
    last_synced_at: Optional[str] = Field(
        default=None,
        description="ISO timestamp of the last successful cycle"
    )
    error: Optional[str] = Field(
        default=None,
        description="Message from the last failed cycle"
    )

    @property
    def is_syncing(self) -> bool:
        return self.status == SyncStatus.SYNCING


class SyncReport(BaseModel):
    """What one completed cycle did. Used for logging and the CLI."""

    pushed: int = Field(default=0, ge=0)
    pulled: int = Field(default=0, ge=0)
