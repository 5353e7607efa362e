"""
Audit Logger

DESIGN DECISION: Every ledger mutation and sync cycle is logged.
This provides:
1. Traceability of local edits
2. A trail of what each sync cycle pushed, pulled, or failed on
3. Debugging capability for sync problems reported by users

The audit logger:
- Never crashes the caller if logging fails
- Keeps a short in-memory history for status displays
- Supports correlation IDs to group the events of one sync cycle
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_log_level(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and keeps the most recent ones
    in memory.
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger("budget_ledger.audit")
        self._history: deque[AuditEvent] = deque(maxlen=history_size)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event. Failures are reported, never raised."""
        self._history.append(event)
        try:
            log_dict = event.to_log_dict()
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            logging.getLogger(__name__).error(
                "audit logging failed for %s: %s", event.event_id, e
            )

    def recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._history))[:limit]

    def log_record_created(
        self,
        record_id: str,
        record_type: str,
        amount: float,
        category: str,
    ) -> None:
        self.log(AuditEventBuilder.record_created(record_id, record_type, amount, category))

    def log_record_updated(self, record_id: str, fields: list[str]) -> None:
        self.log(AuditEventBuilder.record_updated(record_id, fields))

    def log_record_deleted(self, record_id: str) -> None:
        self.log(AuditEventBuilder.record_deleted(record_id))

    def log_ledger_purged(self, count: int) -> None:
        self.log(AuditEventBuilder.ledger_purged(count))

    def log_sync_started(self, dirty_count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.sync_started(dirty_count, correlation_id))

    def log_sync_pushed(self, record_ids: list[str], correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.sync_pushed(record_ids, correlation_id))

    def log_sync_pulled(self, count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.sync_pulled(count, correlation_id))

    def log_sync_completed(
        self,
        pushed: int,
        pulled: int,
        synced_at: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.sync_completed(pushed, pulled, synced_at, correlation_id))

    def log_sync_failed(self, stage: str, error_message: str, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.sync_failed(stage, error_message, correlation_id))

    def log_sync_skipped(self, reason: str) -> None:
        self.log(AuditEventBuilder.sync_skipped(reason))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    The sync engine creates one per cycle.
    """
    return uuid4()
