"""
app/services/bulk_import_service.py

Service layer for the bulk catalog import workflow.

Two deployment shapes share one core (tokenize -> map -> validate ->
partition):

    stage / confirm   the analysed file is kept as a batch in the registry
                      and written only when the caller confirms it
    import_direct     the accepted rows are committed immediately

Staging never writes to the record store; it only reads the existing keys.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from app.config import get_bulk_import_settings
from app.domain.bulk_import import (
    CommitResult,
    ConflictPolicy,
    Diagnostic,
    DirectImportResult,
    ImportBatch,
    ImportTarget,
    PartitionResult,
    RawRow,
)
from app.domain.import_errors import BatchNotFoundError
from app.domain.import_schemas import get_import_schema
from app.logging_utils import log_event
from app.mappers.import_row_mapper import map_rows, resolve_columns
from app.parsers.delimited_text import ParseLimits, parse_delimited
from app.repositories.record_store import RecordStore
from app.services.batch_registry import BatchRegistry, InMemoryBatchRegistry
from app.services.import_committer import ImportCommitter
from app.services.import_partitioner import partition
from app.validators.import_validator import ImportValidator

logger = logging.getLogger(__name__)

_MAX_LOGGED_DIAGNOSTICS = 50


@dataclass(frozen=True)
class ImportAnalysis:
    """
    Result of running the shared core over one file, before any commit.
    """

    target: ImportTarget
    delimiter: str
    columns: tuple[str, ...]
    header: RawRow | None
    source_rows: tuple[RawRow, ...]
    partition: PartitionResult

    def source_row(self, row_number: int) -> RawRow | None:
        for row in self.source_rows:
            if row.row_number == row_number:
                return row
        return None


class BulkImportService:
    """
    Orchestrates analysis, staging and confirmation of catalog imports.
    """

    def __init__(
        self,
        *,
        registry: BatchRegistry,
        max_bytes: int,
        max_rows: int,
        preview_limit: int,
        conflict_policy: ConflictPolicy = ConflictPolicy.SKIP,
        log_diagnostics: bool = True,
    ) -> None:
        self._registry = registry
        self._limits = ParseLimits(max_bytes=max_bytes, max_rows=max_rows)
        self._preview_limit = max(0, preview_limit)
        self._conflict_policy = ConflictPolicy(conflict_policy)
        self._committer = ImportCommitter(conflict_policy=self._conflict_policy)
        self._log_diagnostics = log_diagnostics

    @property
    def registry(self) -> BatchRegistry:
        return self._registry

    @property
    def conflict_policy(self) -> ConflictPolicy:
        return self._conflict_policy

    def analyze(
        self,
        payload: bytes | str,
        *,
        target: ImportTarget,
        store: RecordStore,
        delimiter: str | None = None,
    ) -> ImportAnalysis:
        """
        Tokenize, map, validate and partition one file.

        Raises ``ImportStageError`` subclasses for structural problems and
        ``ValueError`` for an unusable declared delimiter.
        """

        target = ImportTarget(target)
        schema = get_import_schema(target)
        table = parse_delimited(payload, delimiter=delimiter, limits=self._limits)
        resolution = resolve_columns(table.header, schema)
        mapped = map_rows(table.rows, resolution)

        keys = [row.candidate.key for row in mapped if row.candidate.key]
        existing_keys = store.find_existing_keys(keys) if keys else set()

        validator = ImportValidator(schema)
        validated = validator.validate(
            mapped,
            existing_keys=existing_keys,
            conflict_policy=self._conflict_policy,
        )
        result = partition(validated, preview_limit=self._preview_limit)
        self._record_diagnostics(target, result.diagnostics)

        return ImportAnalysis(
            target=target,
            delimiter=table.delimiter,
            columns=schema.columns,
            header=table.header,
            source_rows=table.rows,
            partition=result,
        )

    def stage(
        self,
        payload: bytes | str,
        *,
        target: ImportTarget,
        store: RecordStore,
        delimiter: str | None = None,
    ) -> ImportBatch:
        analysis = self.analyze(payload, target=target, store=store, delimiter=delimiter)
        batch = self._registry.create(
            target=analysis.target,
            columns=analysis.columns,
            partition=analysis.partition,
        )
        log_event(
            logger,
            logging.INFO,
            "bulk_import_staged",
            batch_id=batch.batch_id,
            target=batch.target.value,
            delimiter=analysis.delimiter,
            expires_at=batch.expires_at,
            **batch.summary.to_dict(),
        )
        return batch

    def confirm(self, batch_id: str, *, target: ImportTarget, store: RecordStore) -> CommitResult:
        """
        Commit a staged batch exactly once.

        Raises ``BatchError`` subclasses without touching the store. On
        ``StoreUnavailableError`` the batch goes back to STAGED so the caller
        may retry before it expires.
        """

        target = ImportTarget(target)
        batch = self._registry.get(batch_id)
        if batch.target is not target:
            raise BatchNotFoundError(batch_id)

        batch = self._registry.claim(batch_id)
        try:
            result = self._committer.commit(batch.accepted, store)
        except Exception as exc:
            self._registry.release(batch_id)
            log_event(
                logger,
                logging.ERROR,
                "bulk_import_confirm_aborted",
                batch_id=batch_id,
                target=target.value,
                error=type(exc).__name__,
            )
            raise

        self._registry.complete(batch_id)
        log_event(
            logger,
            logging.INFO,
            "bulk_import_confirmed",
            batch_id=batch_id,
            target=target.value,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
        )
        return result

    def commit_analysis(self, analysis: ImportAnalysis, store: RecordStore) -> CommitResult:
        result = self._committer.commit(analysis.partition.accepted, store)
        log_event(
            logger,
            logging.INFO,
            "bulk_import_committed",
            target=analysis.target.value,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
        )
        return result

    def import_direct(
        self,
        payload: bytes | str,
        *,
        target: ImportTarget,
        store: RecordStore,
        delimiter: str | None = None,
    ) -> DirectImportResult:
        analysis = self.analyze(payload, target=target, store=store, delimiter=delimiter)
        return DirectImportResult(
            partition=analysis.partition,
            commit=self.commit_analysis(analysis, store),
        )

    def purge_expired_batches(self) -> int:
        purged = self._registry.purge_expired()
        if purged:
            log_event(logger, logging.INFO, "bulk_import_batches_purged", purged=purged)
        return purged

    def _record_diagnostics(self, target: ImportTarget, diagnostics: tuple[Diagnostic, ...]) -> None:
        if not self._log_diagnostics:
            return
        errors = [item for item in diagnostics if item.is_error]
        for item in errors[:_MAX_LOGGED_DIAGNOSTICS]:
            logger.warning(
                "Import row rejected target=%s row=%s code=%s field=%s: %s",
                target.value,
                item.row_number,
                item.code,
                item.field,
                item.message,
            )
        if len(errors) > _MAX_LOGGED_DIAGNOSTICS:
            logger.warning(
                "Import target=%s has %d more rejected-row diagnostics not logged",
                target.value,
                len(errors) - _MAX_LOGGED_DIAGNOSTICS,
            )


@lru_cache(maxsize=1)
def get_batch_registry() -> InMemoryBatchRegistry:
    """
    Build and cache the process-wide batch registry.
    """
    settings = get_bulk_import_settings()
    return InMemoryBatchRegistry(
        ttl_seconds=settings.batch_ttl_seconds,
        tombstone_retention_seconds=settings.tombstone_retention_seconds,
    )


@lru_cache(maxsize=1)
def get_bulk_import_service() -> BulkImportService:
    """
    Build and cache the import service with env-driven settings.
    """
    settings = get_bulk_import_settings()
    return BulkImportService(
        registry=get_batch_registry(),
        max_bytes=settings.max_bytes,
        max_rows=settings.max_rows,
        preview_limit=settings.preview_limit,
        conflict_policy=settings.conflict_policy,
        log_diagnostics=settings.log_diagnostics,
    )
