"""
Remote Sync Client

Wire protocol:
    POST {endpoint}/sync   body {"records": [...]}   -> any 2xx means accepted
    GET  {endpoint}/sync                             -> {"records": [...]}

IMPORTANT BOUNDARIES:
1. This client only moves records over HTTP; it never touches the store
2. It does not retry. A failed call is reported and the next sync cycle
   is the retry
3. Every failure (unreachable, timeout, non-2xx, bad payload) is raised as
   SyncNetworkError so the engine has exactly one thing to catch
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from budget_ledger.config import get_settings
from budget_ledger.models.record import LedgerRecord


logger = structlog.get_logger(__name__)


class SyncNetworkError(Exception):
    """Push or pull against the sync server failed."""
    pass


class RemoteSyncInterface(ABC):
    """What the sync engine needs from a remote store."""

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """False when no remote endpoint is configured (offline mode)."""
        pass

    @abstractmethod
    async def push(self, records: list[LedgerRecord]) -> None:
        """
        Send a batch of records to the remote store.

        Raises:
            SyncNetworkError: If the remote did not accept the batch
        """
        pass

    @abstractmethod
    async def pull(self) -> list[LedgerRecord]:
        """
        Fetch the remote record set.

        Returns:
            Records as the remote knows them, all with dirty=False

        Raises:
            SyncNetworkError: If the fetch failed or returned garbage
        """
        pass

    async def aclose(self) -> None:
        pass


class HttpSyncClient(RemoteSyncInterface):
    """
    httpx-based client for the sync server.

    The endpoint and timeout come from SyncSettings unless given
    explicitly. An injected httpx.AsyncClient is used as-is and not closed
    by this class.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if endpoint is None or timeout_seconds is None:
            settings = get_settings().sync
            endpoint = settings.endpoint if endpoint is None else endpoint
            timeout_seconds = timeout_seconds or settings.timeout_seconds

        self._endpoint = (endpoint or "").strip().rstrip("/")
        self._timeout = timeout_seconds
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def enabled(self) -> bool:
        return bool(self._endpoint)

    @property
    def sync_url(self) -> str:
        return f"{self._endpoint}/sync"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def push(self, records: list[LedgerRecord]) -> None:
        if not self.enabled:
            logger.debug("sync_push_skipped", reason="no endpoint")
            return

        payload = {"records": [record.to_wire() for record in records]}
        try:
            response = await self._get_client().post(self.sync_url, json=payload)
        except httpx.HTTPError as e:
            raise SyncNetworkError(f"Sync push failed: {type(e).__name__}: {e}")

        if not response.is_success:
            raise SyncNetworkError(
                f"Sync push failed: {response.status_code} {response.text}".rstrip()
            )

        logger.debug("sync_push_accepted", count=len(records), status=response.status_code)

    async def pull(self) -> list[LedgerRecord]:
        if not self.enabled:
            logger.debug("sync_pull_skipped", reason="no endpoint")
            return []

        try:
            response = await self._get_client().get(self.sync_url)
        except httpx.HTTPError as e:
            raise SyncNetworkError(f"Sync pull failed: {type(e).__name__}: {e}")

        if not response.is_success:
            raise SyncNetworkError(f"Sync pull failed: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise SyncNetworkError(f"Sync pull returned invalid JSON: {e}")

        if not isinstance(payload, dict):
            raise SyncNetworkError("Sync pull returned an unexpected payload")

        items = payload.get("records") or []
        if not isinstance(items, list):
            raise SyncNetworkError("Sync pull returned a non-list 'records' field")

        try:
            return [LedgerRecord.from_wire(item) for item in items]
        except (PydanticValidationError, TypeError, ValueError) as e:
            raise SyncNetworkError(f"Sync pull returned an invalid record: {e}")

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
