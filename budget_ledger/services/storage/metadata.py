"""
Ledger Metadata

Typed access to the small key/value values kept next to the records:
plan tier, last successful sync, AI usage for the day and custom
challenge definitions.

Values are stored as strings; structured ones as JSON. A value that no
longer parses is treated as absent rather than failing the caller, since
all of them have a safe default.
"""

import json
from typing import Optional

import structlog
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from budget_ledger.models.challenge import ChallengeDefinition
from budget_ledger.models.record import PlanTier
from budget_ledger.services.storage.interface import PersistenceAdapter


logger = structlog.get_logger(__name__)


PLAN_KEY = "plan"
LAST_SYNC_KEY = "lastSyncAt"
AI_USAGE_KEY = "aiUsage"
CUSTOM_CHALLENGES_KEY = "customChallenges"


class AiUsage(BaseModel):
    """Assistant calls made on a given day (YYYY-MM-DD)."""

    date: str
    count: int = Field(default=0, ge=0)


class LedgerMetadata:
    """Reads and writes metadata values through the persistence adapter."""

    def __init__(self, adapter: PersistenceAdapter):
        self._adapter = adapter

    async def get_plan(self) -> PlanTier:
        value = await self._adapter.get_meta(PLAN_KEY)
        try:
            return PlanTier(value)
        except ValueError:
            return PlanTier.FREE

    async def set_plan(self, plan: PlanTier) -> None:
        await self._adapter.set_meta(PLAN_KEY, PlanTier(plan).value)

    async def get_last_sync_at(self) -> Optional[str]:
        return await self._adapter.get_meta(LAST_SYNC_KEY)

    async def set_last_sync_at(self, timestamp: str) -> None:
        await self._adapter.set_meta(LAST_SYNC_KEY, timestamp)

    async def get_ai_usage(self) -> Optional[AiUsage]:
        raw = await self._adapter.get_meta(AI_USAGE_KEY)
        if not raw:
            return None
        try:
            return AiUsage.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("metadata_unreadable", key=AI_USAGE_KEY)
            return None

    async def set_ai_usage(self, usage: AiUsage) -> None:
        await self._adapter.set_meta(AI_USAGE_KEY, usage.model_dump_json())

    async def get_custom_challenges(self) -> list[ChallengeDefinition]:
        raw = await self._adapter.get_meta(CUSTOM_CHALLENGES_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("metadata_unreadable", key=CUSTOM_CHALLENGES_KEY)
            return []

        challenges = []
        for item in items if isinstance(items, list) else []:
            try:
                challenges.append(ChallengeDefinition.model_validate(item))
            except PydanticValidationError:
                logger.warning("custom_challenge_skipped", item=item)
        return challenges

    async def set_custom_challenges(self, challenges: list[ChallengeDefinition]) -> None:
        await self._adapter.set_meta(
            CUSTOM_CHALLENGES_KEY,
            json.dumps([c.model_dump(mode="json") for c in challenges]),
        )

    async def add_custom_challenge(self, challenge: ChallengeDefinition) -> list[ChallengeDefinition]:
        """Add or replace (by id) a custom challenge."""
        existing = await self.get_custom_challenges()
        updated = [c for c in existing if c.id != challenge.id] + [challenge]
        await self.set_custom_challenges(updated)
        return updated

    async def remove_custom_challenge(self, challenge_id: str) -> list[ChallengeDefinition]:
        existing = await self.get_custom_challenges()
        updated = [c for c in existing if c.id != challenge_id]
        await self.set_custom_challenges(updated)
        return updated
