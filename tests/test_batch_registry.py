"""
tests/test_batch_registry.py

Batch lifecycle: TTL expiry, single-use claim, release after an aborted
confirm, tombstones and active purge.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from app.domain.bulk_import import BatchStatus, ImportTarget
from app.domain.import_errors import (
    BatchAlreadyConfirmedError,
    BatchConfirmInProgressError,
    BatchExpiredError,
    BatchNotFoundError,
)
from app.services.batch_registry import InMemoryBatchRegistry
from app.services.import_partitioner import partition


def _stage(registry: InMemoryBatchRegistry):
    return registry.create(
        target=ImportTarget.PROCESSES,
        columns=("codigo", "nombre", "costo"),
        partition=partition([], preview_limit=10),
    )


class TestLifecycle:
    def test_created_batch_is_retrievable(self, registry, clock) -> None:
        batch = _stage(registry)

        assert registry.get(batch.batch_id) is batch
        assert batch.created_at == clock.current
        assert batch.expires_at - batch.created_at == timedelta(seconds=60)
        assert registry.status(batch.batch_id) is BatchStatus.STAGED

    def test_batch_ids_are_unique(self, registry) -> None:
        ids = {_stage(registry).batch_id for _ in range(20)}

        assert len(ids) == 20

    def test_unknown_id_is_not_found(self, registry) -> None:
        with pytest.raises(BatchNotFoundError):
            registry.get("missing")
        with pytest.raises(BatchNotFoundError):
            registry.claim("missing")

    def test_batch_expires_at_ttl(self, registry, clock) -> None:
        batch = _stage(registry)
        clock.advance(59)
        registry.get(batch.batch_id)

        clock.advance(1)

        with pytest.raises(BatchExpiredError):
            registry.claim(batch.batch_id)
        # The tombstone keeps reporting expiry on later lookups.
        with pytest.raises(BatchExpiredError):
            registry.get(batch.batch_id)
        assert registry.status(batch.batch_id) is BatchStatus.EXPIRED
        assert len(registry) == 0

    def test_complete_is_terminal(self, registry) -> None:
        batch = _stage(registry)
        registry.claim(batch.batch_id)

        registry.complete(batch.batch_id)

        with pytest.raises(BatchAlreadyConfirmedError):
            registry.claim(batch.batch_id)
        assert registry.status(batch.batch_id) is BatchStatus.CONFIRMED

    def test_complete_unknown_batch_raises(self, registry) -> None:
        with pytest.raises(BatchNotFoundError):
            registry.complete("missing")

    def test_put_rejects_reused_id(self, registry) -> None:
        batch = _stage(registry)

        with pytest.raises(ValueError):
            registry.put(batch)

    def test_ttl_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            InMemoryBatchRegistry(ttl_seconds=0)


class TestClaim:
    def test_second_claim_is_in_progress(self, registry) -> None:
        batch = _stage(registry)
        registry.claim(batch.batch_id)

        with pytest.raises(BatchConfirmInProgressError):
            registry.claim(batch.batch_id)

    def test_release_allows_a_new_claim(self, registry) -> None:
        batch = _stage(registry)
        registry.claim(batch.batch_id)

        registry.release(batch.batch_id)

        assert registry.claim(batch.batch_id) is batch
        assert registry.status(batch.batch_id) is BatchStatus.STAGED

    def test_claimed_batch_does_not_expire_mid_confirm(self, registry, clock) -> None:
        batch = _stage(registry)
        registry.claim(batch.batch_id)
        clock.advance(3600)

        assert registry.purge_expired() == 0
        registry.complete(batch.batch_id)

        assert registry.status(batch.batch_id) is BatchStatus.CONFIRMED

    def test_concurrent_claims_have_one_winner(self, registry) -> None:
        batch = _stage(registry)
        barrier = threading.Barrier(8)

        def attempt() -> bool:
            barrier.wait()
            try:
                registry.claim(batch.batch_id)
            except BatchConfirmInProgressError:
                return False
            return True

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: attempt(), range(8)))

        assert results.count(True) == 1


class TestPurge:
    def test_purge_evicts_only_expired_batches(self, registry, clock) -> None:
        old = _stage(registry)
        clock.advance(30)
        fresh = _stage(registry)
        clock.advance(30)

        assert registry.purge_expired() == 1

        assert len(registry) == 1
        assert registry.get(fresh.batch_id) is fresh
        with pytest.raises(BatchExpiredError):
            registry.get(old.batch_id)

    def test_tombstones_are_dropped_after_retention(self, registry, clock) -> None:
        batch = _stage(registry)
        registry.claim(batch.batch_id)
        registry.complete(batch.batch_id)

        clock.advance(301)
        registry.purge_expired()

        with pytest.raises(BatchNotFoundError):
            registry.get(batch.batch_id)
