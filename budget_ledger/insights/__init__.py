"""AI insights package."""

from budget_ledger.insights.assistant import (
    AiQuotaExceededError,
    AiUsageTracker,
    AssistantReply,
    LedgerAssistant,
    fallback_insights,
)

__all__ = [
    "AiQuotaExceededError",
    "AiUsageTracker",
    "AssistantReply",
    "LedgerAssistant",
    "fallback_insights",
]
