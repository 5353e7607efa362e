"""
Challenge Evaluation

Pure functions over the output of RecordStore.list(). Nothing here reads
or writes storage; the caller passes in the records and custom challenges.
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from budget_ledger.models.challenge import (
    ChallengeDefinition,
    ChallengeProgress,
    ChallengeType,
)
from budget_ledger.models.record import LedgerRecord, LedgerType, parse_timestamp


# Streaks further back than this are not counted
MAX_STREAK_DAYS = 60


BUILT_IN_CHALLENGES = [
    ChallengeDefinition(
        id="streak-7",
        title="Log 7 days in a row",
        description="Keep up the habit for a full week.",
        target=7,
        type=ChallengeType.STREAK,
    ),
    ChallengeDefinition(
        id="count-20",
        title="20 records this month",
        description="Record every expense and income so nothing slips through.",
        target=20,
        type=ChallengeType.COUNT,
    ),
    ChallengeDefinition(
        id="amount-15000",
        title="Keep monthly spending under 15,000",
        description="Stay inside the budget this month.",
        target=15000,
        type=ChallengeType.AMOUNT,
    ),
]


def _record_day(record: LedgerRecord) -> date:
    return parse_timestamp(record.date).date()


def calculate_streak(records: Iterable[LedgerRecord], today: date) -> int:
    """Consecutive days, ending today, with at least one record."""
    days = {_record_day(record) for record in records}
    streak = 0
    for offset in range(MAX_STREAK_DAYS):
        if today - timedelta(days=offset) in days:
            streak += 1
        else:
            break
    return streak


def evaluate_challenges(
    records: list[LedgerRecord],
    custom_challenges: Optional[list[ChallengeDefinition]] = None,
    today: Optional[date] = None,
) -> list[ChallengeProgress]:
    """
    Evaluate built-in and custom challenges against the ledger.

    Args:
        records: Live (non-deleted) records
        custom_challenges: User-defined challenges, evaluated after built-ins
        today: Reference day, defaults to the current date

    Returns:
        One ChallengeProgress per challenge, built-ins first
    """
    today = today or date.today()
    month_start = today.replace(day=1)

    monthly = [record for record in records if month_start <= _record_day(record) <= today]
    streak = calculate_streak(records, today)
    monthly_count = len(monthly)
    monthly_spending = sum(
        record.amount for record in monthly if record.type == LedgerType.EXPENSE
    )

    results = []
    for challenge in BUILT_IN_CHALLENGES + list(custom_challenges or []):
        fields = challenge.model_dump()

        if challenge.type == ChallengeType.STREAK:
            progress = min(streak / challenge.target, 1.0)
            achieved = streak >= challenge.target
            label = f"{streak} day streak"
        elif challenge.type == ChallengeType.COUNT:
            progress = min(monthly_count / challenge.target, 1.0)
            achieved = monthly_count >= challenge.target
            label = f"{monthly_count} records this month"
        else:
            # Spending challenge: full progress while under target
            progress = min(challenge.target / max(monthly_spending, 1), 1.0)
            achieved = monthly_spending <= challenge.target
            label = f"{monthly_spending:,.0f} spent this month"

        results.append(ChallengeProgress(
            **fields,
            progress=progress,
            achieved=achieved,
            metric_label=label,
        ))

    return results
