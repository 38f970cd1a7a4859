"""
app/services/batch_registry.py

Keyed store for staged import batches.

A batch moves STAGED -> CONFIRMED or STAGED -> EXPIRED; both are terminal.
Expiry is detected lazily on access. Finished batches leave a tombstone for a
bounded retention so later lookups report why the id is no longer usable.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Sequence
from uuid import uuid4

from app.domain.bulk_import import BatchStatus, ImportBatch, ImportTarget, PartitionResult
from app.domain.import_errors import (
    BatchAlreadyConfirmedError,
    BatchConfirmInProgressError,
    BatchExpiredError,
    BatchNotFoundError,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BatchRegistry(ABC):
    """
    Contract shared by every batch store implementation.
    """

    def __init__(self, *, ttl_seconds: int, clock: Clock | None = None) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or utc_now

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def now(self) -> datetime:
        return self._clock()

    def create(
        self,
        *,
        target: ImportTarget,
        columns: Sequence[str],
        partition: PartitionResult,
    ) -> ImportBatch:
        """
        Build a batch with a fresh opaque id and the registry TTL, then store it.
        """

        created_at = self.now()
        batch = ImportBatch(
            batch_id=uuid4().hex,
            target=target,
            columns=tuple(columns),
            accepted=partition.accepted,
            diagnostics=partition.diagnostics,
            preview_rows=partition.preview_rows,
            summary=partition.summary,
            created_at=created_at,
            expires_at=created_at + self._ttl,
        )
        self.put(batch)
        return batch

    @abstractmethod
    def put(self, batch: ImportBatch) -> None:
        """Store a new STAGED batch."""

    @abstractmethod
    def get(self, batch_id: str) -> ImportBatch:
        """Return a live batch or raise the matching ``BatchError``."""

    @abstractmethod
    def claim(self, batch_id: str) -> ImportBatch:
        """Atomically mark a live batch as being confirmed and return it."""

    @abstractmethod
    def release(self, batch_id: str) -> None:
        """Return a claimed batch to STAGED after an aborted confirm."""

    @abstractmethod
    def complete(self, batch_id: str) -> None:
        """Mark a claimed batch CONFIRMED and drop its payload."""

    @abstractmethod
    def status(self, batch_id: str) -> BatchStatus:
        """Report the lifecycle state of a known batch id."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Evict expired batches and stale tombstones; return batches evicted."""


@dataclass
class _RegistryEntry:
    batch: ImportBatch
    claimed: bool = False


@dataclass(frozen=True)
class _Tombstone:
    status: BatchStatus
    recorded_at: datetime


class InMemoryBatchRegistry(BatchRegistry):
    """
    Process-local registry guarded by one lock.
    """

    def __init__(
        self,
        *,
        ttl_seconds: int,
        tombstone_retention_seconds: int = 3600,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(ttl_seconds=ttl_seconds, clock=clock)
        self._retention = timedelta(seconds=max(0, tombstone_retention_seconds))
        self._entries: dict[str, _RegistryEntry] = {}
        self._tombstones: dict[str, _Tombstone] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def put(self, batch: ImportBatch) -> None:
        with self._lock:
            if batch.batch_id in self._entries or batch.batch_id in self._tombstones:
                raise ValueError(f"Batch id '{batch.batch_id}' is already registered.")
            self._entries[batch.batch_id] = _RegistryEntry(batch=batch)

    def get(self, batch_id: str) -> ImportBatch:
        with self._lock:
            return self._live_entry(batch_id, now=self.now()).batch

    def claim(self, batch_id: str) -> ImportBatch:
        with self._lock:
            entry = self._live_entry(batch_id, now=self.now())
            if entry.claimed:
                raise BatchConfirmInProgressError(batch_id)
            entry.claimed = True
            return entry.batch

    def release(self, batch_id: str) -> None:
        with self._lock:
            entry = self._entries.get(batch_id)
            if entry is not None:
                entry.claimed = False

    def complete(self, batch_id: str) -> None:
        with self._lock:
            if self._entries.pop(batch_id, None) is None:
                raise BatchNotFoundError(batch_id)
            self._tombstones[batch_id] = _Tombstone(BatchStatus.CONFIRMED, self.now())

    def status(self, batch_id: str) -> BatchStatus:
        with self._lock:
            now = self.now()
            tombstone = self._tombstones.get(batch_id)
            if tombstone is not None:
                return tombstone.status
            entry = self._entries.get(batch_id)
            if entry is None:
                raise BatchNotFoundError(batch_id)
            if not entry.claimed and entry.batch.is_expired(now):
                return BatchStatus.EXPIRED
            return BatchStatus.STAGED

    def purge_expired(self) -> int:
        with self._lock:
            now = self.now()
            expired_ids = [
                batch_id
                for batch_id, entry in self._entries.items()
                if not entry.claimed and entry.batch.is_expired(now)
            ]
            for batch_id in expired_ids:
                self._expire(batch_id, now)

            stale = [
                batch_id
                for batch_id, tombstone in self._tombstones.items()
                if now - tombstone.recorded_at > self._retention
            ]
            for batch_id in stale:
                del self._tombstones[batch_id]

        if expired_ids or stale:
            logger.debug("Purged %d expired batches and %d tombstones", len(expired_ids), len(stale))
        return len(expired_ids)

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _live_entry(self, batch_id: str, *, now: datetime) -> _RegistryEntry:
        tombstone = self._tombstones.get(batch_id)
        if tombstone is not None:
            if now - tombstone.recorded_at > self._retention:
                del self._tombstones[batch_id]
                raise BatchNotFoundError(batch_id)
            if tombstone.status is BatchStatus.CONFIRMED:
                raise BatchAlreadyConfirmedError(batch_id)
            raise BatchExpiredError(batch_id)

        entry = self._entries.get(batch_id)
        if entry is None:
            raise BatchNotFoundError(batch_id)
        # A claimed batch is mid-confirm and is not expired under it.
        if not entry.claimed and entry.batch.is_expired(now):
            self._expire(batch_id, now)
            raise BatchExpiredError(batch_id)
        return entry

    def _expire(self, batch_id: str, now: datetime) -> None:
        self._entries.pop(batch_id, None)
        self._tombstones[batch_id] = _Tombstone(BatchStatus.EXPIRED, now)
