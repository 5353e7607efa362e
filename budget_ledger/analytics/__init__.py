"""Analytics package."""

from budget_ledger.analytics.summary import (
    BudgetProgress,
    CategoryTotal,
    MonthlyTotal,
    budget_progress,
    build_csv,
    group_by_category,
    monthly_series,
    monthly_spending,
    monthly_totals,
    top_category,
)

__all__ = [
    "BudgetProgress",
    "CategoryTotal",
    "MonthlyTotal",
    "budget_progress",
    "build_csv",
    "group_by_category",
    "monthly_series",
    "monthly_spending",
    "monthly_totals",
    "top_category",
]
