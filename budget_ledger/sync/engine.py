"""
Sync Engine

Reconciles the local record store with the remote sync server.

One cycle:
1. No endpoint configured -> stay OFFLINE, do nothing
2. Another cycle in flight -> do nothing
3. SYNCING, clear the previous error
4. Push every dirty record (including soft-deleted ones) as one batch
5. Clear dirty for pushed records not edited while the push was in flight
6. Pull the remote record set
7. Merge: remote overwrites local, dirty forced to False; records edited
   during the cycle keep their local copy for the next push
8. Persist last-sync timestamp, SUCCESS

Any failure in 4-8 ends the cycle in ERROR with the message. Dirty flags
are only cleared after the remote accepted the push, so a failed push
leaves everything in place for the next cycle. A push that succeeded is
not rolled back if a later step fails; the remote must treat a re-push of
the same id as an update.

DESIGN DECISION: sync() never raises. The cycle is started by timers as
well as by users, so failures are recorded in the snapshot where the UI
can show them, rather than thrown at whoever happened to trigger it.
"""

from typing import Callable, Optional

import structlog

from budget_ledger.audit import AuditLogger, create_correlation_id
from budget_ledger.ledger import RecordStore
from budget_ledger.models.record import utc_now_iso
from budget_ledger.models.sync import SyncReport, SyncSnapshot, SyncStatus
from budget_ledger.services.remote import RemoteSyncInterface, SyncNetworkError
from budget_ledger.services.storage import LedgerMetadata


logger = structlog.get_logger(__name__)


SnapshotListener = Callable[[SyncSnapshot], None]


class SyncEngine:
    """
    Owns the sync snapshot and runs sync cycles one at a time.

    The in-flight flag is set before the first await of a cycle, so two
    calls in the same event loop can never both get past the guard.
    """

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteSyncInterface,
        metadata: LedgerMetadata,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._remote = remote
        self._metadata = metadata
        self._audit_logger = audit_logger
        self._in_flight = False
        self._listeners: list[SnapshotListener] = []
        self._last_report: Optional[SyncReport] = None
        self._snapshot = SyncSnapshot(
            status=SyncStatus.IDLE if remote.enabled else SyncStatus.OFFLINE
        )

    @property
    def enabled(self) -> bool:
        return self._remote.enabled

    @property
    def snapshot(self) -> SyncSnapshot:
        return self._snapshot.model_copy()

    @property
    def is_syncing(self) -> bool:
        return self._in_flight

    @property
    def last_report(self) -> Optional[SyncReport]:
        """What the last successful cycle pushed and pulled."""
        return self._last_report

    def add_listener(self, listener: SnapshotListener) -> None:
        """Call `listener(snapshot)` on every snapshot change."""
        self._listeners.append(listener)

    async def restore(self) -> None:
        """Seed last_synced_at from metadata (call once at start-up)."""
        last_synced_at = await self._metadata.get_last_sync_at()
        if last_synced_at:
            self._update(last_synced_at=last_synced_at)

    async def sync(self) -> SyncSnapshot:
        """
        Run one sync cycle unless offline or a cycle is already running.

        Returns:
            The snapshot after the cycle (or unchanged if skipped)
        """
        if not self._remote.enabled:
            if self._audit_logger:
                self._audit_logger.log_sync_skipped("no sync endpoint configured")
            return self.snapshot

        if self._in_flight:
            if self._audit_logger:
                self._audit_logger.log_sync_skipped("cycle already in flight")
            return self.snapshot

        self._in_flight = True
        try:
            await self._run_cycle()
        finally:
            self._in_flight = False
        return self.snapshot

    async def _run_cycle(self) -> None:
        correlation_id = create_correlation_id()
        self._update(status=SyncStatus.SYNCING, error=None)

        dirty = self._store.list_dirty()
        if self._audit_logger:
            self._audit_logger.log_sync_started(len(dirty), correlation_id)

        stage = "push"
        try:
            if dirty:
                await self._remote.push(dirty)
                pushed_ids = await self._store.confirm_pushed(dirty)
                if self._audit_logger:
                    self._audit_logger.log_sync_pushed(pushed_ids, correlation_id)

            stage = "pull"
            remote_records = await self._remote.pull()
            if self._audit_logger:
                self._audit_logger.log_sync_pulled(len(remote_records), correlation_id)

            stage = "merge"
            pulled = await self._store.apply_remote(remote_records, keep_local_edits=True)

            stage = "finalize"
            synced_at = utc_now_iso()
            await self._metadata.set_last_sync_at(synced_at)
        except Exception as e:
            message = str(e) or type(e).__name__
            if not isinstance(e, SyncNetworkError):
                logger.exception("sync_cycle_crashed", stage=stage)
                if self._audit_logger:
                    self._audit_logger.log_error(
                        type(e).__name__,
                        message,
                        details={"stage": stage},
                        correlation_id=correlation_id,
                    )
            self._update(status=SyncStatus.ERROR, error=message)
            if self._audit_logger:
                self._audit_logger.log_sync_failed(stage, message, correlation_id)
            return

        self._last_report = SyncReport(pushed=len(dirty), pulled=pulled)
        self._update(status=SyncStatus.SUCCESS, last_synced_at=synced_at)
        if self._audit_logger:
            self._audit_logger.log_sync_completed(len(dirty), pulled, synced_at, correlation_id)

    def _update(self, **changes) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)
        snapshot = self.snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error("sync_listener_failed", error=str(e))
