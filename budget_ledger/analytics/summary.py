"""
Ledger Analytics

Read-only summaries over RecordStore.list() output: category totals,
monthly series, budget progress and CSV export. Spending figures count
expense records only unless a function says otherwise.
"""

import csv
import io
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from budget_ledger.models.record import LedgerRecord, LedgerType, parse_timestamp


CSV_COLUMNS = ["id", "type", "amount", "currency", "category", "note", "date", "tags"]


class MonthlyTotal(BaseModel):
    """Total for one calendar month (YYYY-MM)."""

    month: str
    value: float


class BudgetProgress(BaseModel):
    """How much of a monthly budget has been used."""

    spent: float = Field(ge=0)
    remaining: float = Field(ge=0)
    ratio: float = Field(ge=0.0, le=1.0)


class CategoryTotal(BaseModel):
    category: str
    amount: float


def _month_key(record: LedgerRecord) -> str:
    return parse_timestamp(record.date).strftime("%Y-%m")


def _filter_type(
    records: Iterable[LedgerRecord],
    record_type: Optional[LedgerType],
) -> list[LedgerRecord]:
    if record_type is None:
        return list(records)
    return [record for record in records if record.type == record_type]


def group_by_category(
    records: Iterable[LedgerRecord],
    record_type: Optional[LedgerType] = LedgerType.EXPENSE,
) -> dict[str, float]:
    """Sum amounts per category. Pass record_type=None to include everything."""
    totals: dict[str, float] = defaultdict(float)
    for record in _filter_type(records, record_type):
        totals[record.category] += record.amount
    return dict(totals)


def top_category(records: Iterable[LedgerRecord]) -> Optional[CategoryTotal]:
    """Expense category with the highest total, or None for an empty ledger."""
    totals = group_by_category(records)
    if not totals:
        return None
    category, amount = max(totals.items(), key=lambda item: item[1])
    return CategoryTotal(category=category, amount=amount)


def monthly_totals(
    records: Iterable[LedgerRecord],
    record_type: Optional[LedgerType] = LedgerType.EXPENSE,
) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for record in _filter_type(records, record_type):
        totals[_month_key(record)] += record.amount
    return dict(totals)


def monthly_series(
    records: Iterable[LedgerRecord],
    record_type: Optional[LedgerType] = LedgerType.EXPENSE,
) -> list[MonthlyTotal]:
    """Monthly totals in chronological order, for charting."""
    totals = monthly_totals(records, record_type)
    return [MonthlyTotal(month=month, value=totals[month]) for month in sorted(totals)]


def monthly_spending(records: Iterable[LedgerRecord], reference: Optional[date] = None) -> float:
    """Expense total for the calendar month containing `reference`."""
    reference = reference or date.today()
    key = reference.strftime("%Y-%m")
    return monthly_totals(records).get(key, 0.0)


def budget_progress(
    records: Iterable[LedgerRecord],
    budget: float,
    reference: Optional[date] = None,
) -> BudgetProgress:
    spent = monthly_spending(records, reference)
    remaining = max(budget - spent, 0.0)
    ratio = min(spent / budget, 1.0) if budget > 0 else 0.0
    return BudgetProgress(spent=spent, remaining=remaining, ratio=ratio)


def build_csv(records: Iterable[LedgerRecord]) -> str:
    """
    Export records as CSV with a header row.

    Tags are joined with "|". Values containing commas, quotes or newlines
    are quoted.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for record in records:
        writer.writerow([
            record.id,
            record.type.value,
            f"{record.amount:g}",
            record.currency,
            record.category,
            record.note or "",
            record.date,
            "|".join(record.tags),
        ])
    return buffer.getvalue()
