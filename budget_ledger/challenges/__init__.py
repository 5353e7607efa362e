"""Challenges package."""

from budget_ledger.challenges.evaluator import (
    BUILT_IN_CHALLENGES,
    calculate_streak,
    evaluate_challenges,
)

__all__ = ["BUILT_IN_CHALLENGES", "calculate_streak", "evaluate_challenges"]
