"""
tests/test_bulk_import_service.py

Stage / confirm orchestration and the committer, against in-memory stores.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.domain.bulk_import import (
    BatchStatus,
    ConflictPolicy,
    DiagnosticCode,
    ImportCandidate,
    ImportTarget,
    ProcessCandidate,
)
from app.domain.import_errors import (
    BatchAlreadyConfirmedError,
    BatchExpiredError,
    BatchNotFoundError,
    RecordPersistenceError,
    SchemaError,
    SizeLimitExceededError,
    StoreUnavailableError,
)
from app.repositories.in_memory_store import InMemoryRecordStore
from app.repositories.record_store import RecordStore, UpsertOutcome
from app.services.bulk_import_service import BulkImportService
from app.services.import_committer import ImportCommitter

PROCESS_FILE = b"codigo,nombre,costo\nA1,Widget,10.50\nB2,Gadget,3\nA1,Widget Dup,5\n"


class UnavailableStore(InMemoryRecordStore):
    """Store whose writes fail as if the database went away."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.rollbacks = 0

    def upsert(self, candidate: ImportCandidate, *, overwrite: bool) -> UpsertOutcome:
        raise StoreUnavailableError("connection refused")

    def rollback(self) -> None:
        self.rollbacks += 1
        super().rollback()


class RejectingStore(InMemoryRecordStore):
    """Store that refuses one specific key."""

    def __init__(self, bad_key: str) -> None:
        super().__init__()
        self.bad_key = bad_key

    def upsert(self, candidate: ImportCandidate, *, overwrite: bool) -> UpsertOutcome:
        if candidate.key == self.bad_key:
            raise RecordPersistenceError(f"Row {candidate.row_number} violates a constraint.")
        return super().upsert(candidate, overwrite=overwrite)


def _process(key: str, name: str = "Existing", cost: str = "1.00") -> ProcessCandidate:
    return ProcessCandidate(row_number=0, key=key, name=name, cost=Decimal(cost))


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------


class TestStage:
    def test_stage_does_not_write_to_store(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        assert store.records == {}
        assert [candidate.key for candidate in batch.accepted] == ["A1", "B2"]
        assert batch.summary.error_count == 1
        assert batch.columns == ("codigo", "nombre", "costo")
        assert service.registry.status(batch.batch_id) is BatchStatus.STAGED

    def test_stage_reports_existing_keys_as_skipped(
        self,
        service: BulkImportService,
        seeded_store: InMemoryRecordStore,
    ) -> None:
        batch = service.stage(
            b"codigo,nombre,costo\nexist,Again,1\nNEW,Fresh,2\n",
            target="processes",
            store=seeded_store,
        )

        assert [candidate.key for candidate in batch.accepted] == ["NEW"]
        assert batch.summary.skipped_count == 1
        assert batch.diagnostics_by_row()[2][0].code == DiagnosticCode.EXISTS_IN_CORPUS

    def test_structural_errors_create_no_batch(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        with pytest.raises(SchemaError):
            service.stage(b"codigo,nombre\nA1,Widget\n", target=ImportTarget.PROCESSES, store=store)

        assert len(service.registry) == 0

    def test_size_limit_creates_no_batch(self, registry, store: InMemoryRecordStore) -> None:
        small = BulkImportService(registry=registry, max_bytes=10, max_rows=100, preview_limit=5)

        with pytest.raises(SizeLimitExceededError):
            small.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        assert len(registry) == 0

    def test_preview_follows_service_limit(self, registry, store: InMemoryRecordStore) -> None:
        narrow = BulkImportService(registry=registry, max_bytes=1024, max_rows=100, preview_limit=1)

        batch = narrow.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        assert len(batch.preview_rows) == 1
        assert len(batch.accepted) == 2


# ---------------------------------------------------------------------------
# Confirm
# ---------------------------------------------------------------------------


class TestConfirm:
    def test_confirm_commits_accepted_rows_once(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        result = service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)

        assert (result.ok, result.created, result.updated, result.skipped) == (True, 2, 0, 0)
        assert set(store.records) == {"A1", "B2"}
        assert store.records["A1"].cost == Decimal("10.50")

        with pytest.raises(BatchAlreadyConfirmedError):
            service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)
        assert len(store.records) == 2

    def test_unknown_batch_leaves_store_unchanged(self, service: BulkImportService, seeded_store) -> None:
        before = seeded_store.records

        with pytest.raises(BatchNotFoundError):
            service.confirm("does-not-exist", target=ImportTarget.PROCESSES, store=seeded_store)

        assert seeded_store.records == before

    def test_expired_batch_leaves_store_unchanged(
        self,
        service: BulkImportService,
        store: InMemoryRecordStore,
        clock,
    ) -> None:
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)
        clock.advance(61)

        with pytest.raises(BatchExpiredError):
            service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)

        assert store.records == {}

    def test_batch_of_other_target_is_not_found(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        with pytest.raises(BatchNotFoundError):
            service.confirm(batch.batch_id, target=ImportTarget.PRODUCTS, store=store)

        result = service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)
        assert result.created == 2

    def test_store_unavailable_leaves_batch_staged(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)
        broken = UnavailableStore()

        with pytest.raises(StoreUnavailableError):
            service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=broken)

        assert broken.rollbacks == 1
        assert broken.records == {}
        assert service.registry.status(batch.batch_id) is BatchStatus.STAGED

        result = service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)
        assert result.created == 2

    def test_row_failure_is_counted_and_others_continue(self, service: BulkImportService) -> None:
        store = RejectingStore(bad_key="A1")
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        result = service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)

        assert (result.created, result.skipped) == (1, 1)
        assert set(store.records) == {"B2"}
        assert [item.code for item in result.diagnostics] == [DiagnosticCode.PERSISTENCE_FAILED]
        assert result.diagnostics[0].row_number == 2

    def test_key_created_after_staging_is_skipped(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        batch = service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)
        store.upsert(_process("B2"), overwrite=False)
        store.commit()

        result = service.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)

        assert (result.created, result.skipped) == (1, 1)
        assert store.records["B2"].name == "Existing"
        assert [(item.row_number, item.code) for item in result.diagnostics] == [
            (3, DiagnosticCode.EXISTS_IN_CORPUS)
        ]

    def test_update_policy_overwrites_existing_records(self, registry) -> None:
        store = InMemoryRecordStore([_process("A1")])
        updating = BulkImportService(
            registry=registry,
            max_bytes=1024,
            max_rows=100,
            preview_limit=10,
            conflict_policy=ConflictPolicy.UPDATE,
        )
        batch = updating.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)
        assert [candidate.key for candidate in batch.accepted] == ["A1", "B2"]

        result = updating.confirm(batch.batch_id, target=ImportTarget.PROCESSES, store=store)

        assert (result.created, result.updated, result.skipped) == (1, 1, 0)
        assert store.records["A1"].name == "Widget"


# ---------------------------------------------------------------------------
# Direct import and purge
# ---------------------------------------------------------------------------


class TestDirectImport:
    def test_import_direct_commits_without_registry(
        self,
        service: BulkImportService,
        store: InMemoryRecordStore,
    ) -> None:
        result = service.import_direct(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)

        assert result.partition.summary.total == 3
        assert result.commit is not None
        assert result.commit.created == 2
        assert len(service.registry) == 0
        assert set(store.records) == {"A1", "B2"}

    def test_analysis_keeps_source_rows(self, service: BulkImportService, store: InMemoryRecordStore) -> None:
        analysis = service.analyze(b"codigo;nombre;costo\n\nA1;W;-1\n", target="processes", store=store)

        assert analysis.delimiter == ";"
        assert analysis.source_row(3).fields == ("A1", "W", "-1")
        assert analysis.source_row(2) is None

    def test_purge_expired_batches(self, service: BulkImportService, store: InMemoryRecordStore, clock) -> None:
        service.stage(PROCESS_FILE, target=ImportTarget.PROCESSES, store=store)
        clock.advance(120)

        assert service.purge_expired_batches() == 1
        assert len(service.registry) == 0


class TestCommitter:
    def test_empty_batch_commits_nothing(self, store: InMemoryRecordStore) -> None:
        result = ImportCommitter().commit([], store)

        assert (result.ok, result.created, result.updated, result.skipped) == (True, 0, 0, 0)

    def test_in_memory_store_satisfies_protocol(self, store: InMemoryRecordStore) -> None:
        assert isinstance(store, RecordStore)

    def test_rollback_discards_pending_writes(self, store: InMemoryRecordStore) -> None:
        store.upsert(_process("Z9"), overwrite=False)
        assert store.exists_by_key("z9")

        store.rollback()

        assert not store.exists_by_key("Z9")
