"""
Challenge Models

Challenges are small goals evaluated over the ledger (keep a streak,
log N records, stay under a monthly budget). Built-in definitions live
in the evaluator; custom ones are stored in ledger metadata.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChallengeType(str, Enum):
    """Which metric a challenge is measured against."""
    STREAK = "streak"    # consecutive days with at least one record
    AMOUNT = "amount"    # monthly expense total must stay under target
    COUNT = "count"      # number of records this month


class ChallengeDefinition(BaseModel):
    """A challenge the user can work towards."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    target: float = Field(..., gt=0)
    type: ChallengeType
    threshold: Optional[float] = None


class ChallengeProgress(ChallengeDefinition):
    """A challenge definition together with its evaluated progress."""

    progress: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Fraction of the target reached (0-1)"
    )
    achieved: bool
    metric_label: str = Field(
        ...,
        description="Short human-readable description of the current metric"
    )
