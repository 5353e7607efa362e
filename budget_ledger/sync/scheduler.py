"""
Sync Scheduler

The one entry point for requesting a sync, whatever triggered it:

- request_sync(): explicit user/ops action, runs a cycle now
- notify_mutation(): called after each ledger edit; (re)starts a debounce
  timer so a burst of edits produces one cycle

Both go through SyncEngine.sync(), whose in-flight guard makes a request
that arrives mid-cycle a no-op. A debounce timer that expires while a
cycle is running waits one more window instead of queuing behind it.
"""

import asyncio
from typing import Optional

import structlog

from budget_ledger.models.record import LedgerRecord
from budget_ledger.models.sync import SyncSnapshot
from budget_ledger.sync.engine import SyncEngine


logger = structlog.get_logger(__name__)


class SyncScheduler:
    """Debounced and manual sync triggers for one engine."""

    def __init__(self, engine: SyncEngine, debounce_seconds: float = 2.0):
        self._engine = engine
        self._debounce_seconds = debounce_seconds
        self._timer: Optional[asyncio.Task] = None
        self._cycle: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """True while a debounce timer is armed."""
        return self._timer is not None and not self._timer.done()

    async def request_sync(self) -> SyncSnapshot:
        """Run a cycle now; any armed debounce timer is dropped."""
        self._cancel_timer()
        return await self._engine.sync()

    def notify_mutation(self, record: Optional[LedgerRecord] = None) -> None:
        """
        Restart the debounce window.

        Usable directly as a RecordStore listener. Does nothing when the
        engine is offline or no event loop is running.
        """
        if not self._engine.enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("sync_debounce_skipped", reason="no running event loop")
            return

        self._cancel_timer()
        self._timer = loop.create_task(self._debounce())

    async def _debounce(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        while self._engine.is_syncing:
            await asyncio.sleep(self._debounce_seconds)

        # Run the cycle in its own task so re-arming the timer can't cancel it
        self._timer = None
        self._cycle = asyncio.get_running_loop().create_task(self._engine.sync())
        self._cycle.add_done_callback(self._report_crash)

    @staticmethod
    def _report_crash(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("sync_cycle_task_failed", error=str(error))

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def wait_idle(self) -> None:
        """Wait for an armed timer to fire and its cycle to finish."""
        while self._timer is not None and not self._timer.done():
            await asyncio.gather(self._timer, return_exceptions=True)
        if self._cycle is not None and not self._cycle.done():
            await asyncio.gather(self._cycle, return_exceptions=True)

    async def aclose(self, flush: bool = False) -> None:
        """
        Stop scheduling.

        Args:
            flush: Run a final cycle now if a debounced one was pending
        """
        had_pending = self.pending
        self._cancel_timer()
        if self._cycle is not None and not self._cycle.done():
            await asyncio.gather(self._cycle, return_exceptions=True)
        if flush and had_pending:
            await self._engine.sync()
