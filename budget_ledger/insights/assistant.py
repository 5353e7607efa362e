"""
Ledger Assistant

Thin client for the AI insights backend, plus a deterministic local
summary used whenever the backend is not configured or fails.

BOUNDARIES:
- Reads records handed to it (RecordStore.list() output); never writes
- The daily quota is checked before a question is sent and counted after
- A backend failure is never shown to the user as an error; the local
  summary is returned instead and flagged with used_fallback=True
"""

import time
from datetime import date, timedelta
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from budget_ledger.analytics import top_category
from budget_ledger.config import get_settings
from budget_ledger.models.record import (
    DAILY_AI_LIMIT,
    DEFAULT_CURRENCY,
    LedgerRecord,
    LedgerType,
    PlanTier,
    parse_timestamp,
)
from budget_ledger.services.storage import AiUsage, LedgerMetadata


logger = structlog.get_logger(__name__)


class AiQuotaExceededError(Exception):
    """The plan's daily assistant limit has been reached."""
    pass


class AssistantReply(BaseModel):
    """Answer to a user question."""

    reply: str
    used_fallback: bool
    tokens: Optional[int] = Field(default=None, ge=0)
    latency_ms: Optional[float] = Field(default=None, ge=0)


class AiUsageTracker:
    """Per-day assistant usage counter stored in ledger metadata."""

    def __init__(self, metadata: LedgerMetadata):
        self._metadata = metadata

    async def usage_today(self, today: Optional[date] = None) -> int:
        today_key = (today or date.today()).isoformat()
        usage = await self._metadata.get_ai_usage()
        if usage is None or usage.date != today_key:
            return 0
        return usage.count

    async def remaining(self, plan: PlanTier, today: Optional[date] = None) -> int:
        used = await self.usage_today(today)
        return max(DAILY_AI_LIMIT[PlanTier(plan)] - used, 0)

    async def increment(self, today: Optional[date] = None) -> AiUsage:
        """Count one call; the counter restarts at 1 on a new day."""
        today_key = (today or date.today()).isoformat()
        used = await self.usage_today(today)
        usage = AiUsage(date=today_key, count=used + 1)
        await self._metadata.set_ai_usage(usage)
        return usage

    async def reset_if_needed(self, today: Optional[date] = None) -> None:
        """Zero a counter left over from a previous day."""
        today_key = (today or date.today()).isoformat()
        usage = await self._metadata.get_ai_usage()
        if usage is not None and usage.date != today_key and usage.count != 0:
            await self._metadata.set_ai_usage(AiUsage(date=today_key, count=0))


def fallback_insights(
    question: str,
    records: list[LedgerRecord],
    currency: str = DEFAULT_CURRENCY,
    today: Optional[date] = None,
) -> str:
    """Local summary: last 7 days of spending, top category and a tip."""
    if not records:
        return "There are no records yet. Add an expense or income to get started!"

    today = today or date.today()
    week_start = today - timedelta(days=7)
    weekly_total = sum(
        record.amount
        for record in records
        if record.type == LedgerType.EXPENSE
        and parse_timestamp(record.date).date() > week_start
    )
    top = top_category(records)
    category_name = top.category if top else "other"
    category_total = top.amount if top else 0.0

    if "coffee" in question.lower():
        tip = f"Try setting a daily coffee budget of 120 {currency} to keep small spending in check."
    else:
        tip = "Upgrade your plan to connect a dedicated AI model for deeper financial advice."

    return "\n".join([
        f"You spent {weekly_total:,.0f} {currency} over the last 7 days.",
        f"Your biggest category is \"{category_name}\" at {category_total:,.0f} {currency}.",
        tip,
    ])


class LedgerAssistant:
    """
    Answers questions about the ledger.

    POST {endpoint}/ai/query with {question, ledger, plan}; the backend
    replies {reply, meta: {tokens, latencyMs}}.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        usage: Optional[AiUsageTracker] = None,
        currency: str = DEFAULT_CURRENCY,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if endpoint is None or timeout_seconds is None:
            settings = get_settings().assistant
            endpoint = settings.endpoint if endpoint is None else endpoint
            timeout_seconds = timeout_seconds or settings.timeout_seconds

        self._endpoint = (endpoint or "").strip().rstrip("/")
        self._timeout = timeout_seconds
        self._usage = usage
        self._currency = currency
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def ask(
        self,
        question: str,
        records: list[LedgerRecord],
        plan: PlanTier = PlanTier.FREE,
    ) -> AssistantReply:
        """
        Answer a question about the given records.

        Raises:
            AiQuotaExceededError: If the plan's daily limit is used up
        """
        if self._usage is not None and await self._usage.remaining(plan) <= 0:
            raise AiQuotaExceededError(
                f"Daily assistant limit reached for the {PlanTier(plan).value} plan"
            )

        reply = await self._ask_remote(question, records, plan) if self._endpoint else None
        if reply is None:
            reply = AssistantReply(
                reply=fallback_insights(question, records, self._currency),
                used_fallback=True,
            )

        if self._usage is not None:
            await self._usage.increment()
        return reply

    async def _ask_remote(
        self,
        question: str,
        records: list[LedgerRecord],
        plan: PlanTier,
    ) -> Optional[AssistantReply]:
        """Call the backend; None means "use the fallback"."""
        started = time.perf_counter()
        payload = {
            "question": question,
            "ledger": [record.to_wire() for record in records],
            "plan": PlanTier(plan).value,
        }
        try:
            response = await self._get_client().post(f"{self._endpoint}/ai/query", json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("assistant_request_failed", error=str(e))
            return None

        if not isinstance(data, dict) or not data.get("reply"):
            logger.warning("assistant_reply_missing")
            return None

        meta = data.get("meta")
        if not isinstance(meta, dict):
            meta = {}
        latency = meta.get("latencyMs")
        if latency is None:
            latency = (time.perf_counter() - started) * 1000
        return AssistantReply(
            reply=data["reply"],
            used_fallback=False,
            tokens=meta.get("tokens"),
            latency_ms=latency,
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
