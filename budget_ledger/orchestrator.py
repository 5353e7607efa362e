"""
Application Composition Root for Budget Ledger

This module builds and wires all the components:
    persistence adapter -> record store -> sync engine -> sync scheduler

DESIGN DECISION: There is no global store. Whoever hosts the ledger (the
CLI, a UI shell, a test) creates one LedgerApp and passes it around.
Callers only read snapshots and call the operations exposed here or on
the store; they never touch storage directly.
"""

from typing import Optional

import structlog

from budget_ledger.audit import AuditLogger
from budget_ledger.challenges import evaluate_challenges
from budget_ledger.config import Settings, get_settings
from budget_ledger.insights import AiUsageTracker, AssistantReply, LedgerAssistant
from budget_ledger.ledger import RecordStore
from budget_ledger.models.challenge import ChallengeDefinition, ChallengeProgress
from budget_ledger.models.record import PlanTier
from budget_ledger.models.sync import SyncSnapshot
from budget_ledger.services.remote import HttpSyncClient, RemoteSyncInterface
from budget_ledger.services.storage import (
    LedgerMetadata,
    PersistenceAdapter,
    SqlitePersistenceAdapter,
)
from budget_ledger.sync import SyncEngine, SyncScheduler


logger = structlog.get_logger(__name__)


class LedgerApp:
    """
    One fully wired ledger.

    Lifecycle:
        app = create_app_components()
        await app.start()
        ... use app.store / app.request_sync() ...
        await app.aclose()

    Also usable as `async with create_app_components() as app:`.
    """

    def __init__(
        self,
        adapter: PersistenceAdapter,
        store: RecordStore,
        metadata: LedgerMetadata,
        remote: RemoteSyncInterface,
        engine: SyncEngine,
        scheduler: SyncScheduler,
        assistant: LedgerAssistant,
        usage: AiUsageTracker,
        audit_logger: AuditLogger,
    ):
        self.adapter = adapter
        self.store = store
        self.metadata = metadata
        self.remote = remote
        self.engine = engine
        self.scheduler = scheduler
        self.assistant = assistant
        self.usage = usage
        self.audit_logger = audit_logger
        self._started = False

    async def start(self) -> None:
        """Load records, restore sync state and enable debounced sync."""
        if self._started:
            return
        await self.store.load()
        await self.engine.restore()
        await self.usage.reset_if_needed()
        self.store.add_listener(self.scheduler.notify_mutation)
        self._started = True
        logger.info(
            "ledger_started",
            records=len(self.store),
            sync_status=self.engine.snapshot.status.value,
        )

    @property
    def sync_snapshot(self) -> SyncSnapshot:
        return self.engine.snapshot

    async def request_sync(self) -> SyncSnapshot:
        """Manual sync trigger."""
        return await self.scheduler.request_sync()

    async def get_plan(self) -> PlanTier:
        return await self.metadata.get_plan()

    async def set_plan(self, plan: PlanTier) -> None:
        await self.metadata.set_plan(plan)

    async def ai_remaining(self) -> int:
        return await self.usage.remaining(await self.get_plan())

    async def ask(self, question: str) -> AssistantReply:
        """Ask the assistant about the current (live) ledger."""
        return await self.assistant.ask(question, self.store.list(), await self.get_plan())

    async def challenge_progress(self) -> list[ChallengeProgress]:
        custom = await self.metadata.get_custom_challenges()
        return evaluate_challenges(self.store.list(), custom)

    async def add_custom_challenge(self, challenge: ChallengeDefinition) -> list[ChallengeDefinition]:
        return await self.metadata.add_custom_challenge(challenge)

    async def remove_custom_challenge(self, challenge_id: str) -> list[ChallengeDefinition]:
        return await self.metadata.remove_custom_challenge(challenge_id)

    async def aclose(self, flush: bool = False) -> None:
        """
        Shut down.

        Args:
            flush: Run a pending debounced sync before closing
        """
        self.store.remove_listener(self.scheduler.notify_mutation)
        await self.scheduler.aclose(flush=flush)
        await self.remote.aclose()
        await self.assistant.aclose()
        await self.adapter.close()
        self._started = False

    async def __aenter__(self) -> "LedgerApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def create_app_components(
    settings: Optional[Settings] = None,
    adapter: Optional[PersistenceAdapter] = None,
    remote: Optional[RemoteSyncInterface] = None,
    assistant: Optional[LedgerAssistant] = None,
) -> LedgerApp:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        adapter: Persistence override, e.g. InMemoryPersistenceAdapter
        remote: Remote sync override, e.g. a client with a mock transport
        assistant: Assistant override

    Returns:
        A LedgerApp that still needs start()
    """
    settings = settings or get_settings()
    sync_settings = settings.sync
    app_settings = settings.app

    audit_logger = AuditLogger()
    adapter = adapter or SqlitePersistenceAdapter(settings.storage.database_path)
    metadata = LedgerMetadata(adapter)
    store = RecordStore(
        adapter,
        audit_logger=audit_logger,
        default_currency=app_settings.default_currency,
    )

    if remote is None:
        if not sync_settings.enabled:
            logger.info("sync_disabled", reason="no sync endpoint configured")
        remote = HttpSyncClient(
            endpoint=sync_settings.endpoint if sync_settings.enabled else "",
            timeout_seconds=sync_settings.timeout_seconds,
        )
    engine = SyncEngine(store, remote, metadata, audit_logger=audit_logger)
    scheduler = SyncScheduler(engine, debounce_seconds=sync_settings.debounce_seconds)

    usage = AiUsageTracker(metadata)
    if assistant is None:
        assistant_settings = settings.assistant
        assistant = LedgerAssistant(
            endpoint=assistant_settings.endpoint or "",
            timeout_seconds=assistant_settings.timeout_seconds,
            usage=usage,
            currency=app_settings.default_currency,
        )

    return LedgerApp(
        adapter=adapter,
        store=store,
        metadata=metadata,
        remote=remote,
        engine=engine,
        scheduler=scheduler,
        assistant=assistant,
        usage=usage,
        audit_logger=audit_logger,
    )
