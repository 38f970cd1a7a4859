"""
app/services/import_committer.py

Writes accepted candidates into a record store.

Every key is re-checked against the live store because the corpus may have
changed since the batch was staged. A single record failure is counted as
skipped; a store-wide failure rolls back everything pending and propagates.
"""

from __future__ import annotations

import logging
from typing import Sequence

from app.domain.bulk_import import (
    CommitResult,
    ConflictPolicy,
    Diagnostic,
    DiagnosticCode,
    ImportCandidate,
    Severity,
)
from app.domain.import_errors import RecordPersistenceError, StoreUnavailableError
from app.repositories.record_store import RecordStore, UpsertOutcome

logger = logging.getLogger(__name__)


class ImportCommitter:
    def __init__(self, *, conflict_policy: ConflictPolicy = ConflictPolicy.SKIP) -> None:
        self._conflict_policy = ConflictPolicy(conflict_policy)

    @property
    def conflict_policy(self) -> ConflictPolicy:
        return self._conflict_policy

    def commit(self, candidates: Sequence[ImportCandidate], store: RecordStore) -> CommitResult:
        overwrite = self._conflict_policy is ConflictPolicy.UPDATE
        created = 0
        updated = 0
        skipped = 0
        diagnostics: list[Diagnostic] = []

        try:
            for candidate in candidates:
                if not overwrite and candidate.key and store.exists_by_key(candidate.key):
                    skipped += 1
                    diagnostics.append(_already_exists(candidate))
                    continue

                try:
                    outcome = store.upsert(candidate, overwrite=overwrite)
                except RecordPersistenceError as exc:
                    skipped += 1
                    logger.warning("Row %s could not be persisted: %s", candidate.row_number, exc.message)
                    diagnostics.append(
                        Diagnostic(
                            row_number=candidate.row_number,
                            severity=Severity.ERROR,
                            code=DiagnosticCode.PERSISTENCE_FAILED,
                            message=exc.message,
                        )
                    )
                    continue

                if outcome is UpsertOutcome.CREATED:
                    created += 1
                elif outcome is UpsertOutcome.UPDATED:
                    updated += 1
                else:
                    skipped += 1
                    diagnostics.append(_already_exists(candidate))

            store.commit()
        except StoreUnavailableError:
            store.rollback()
            raise

        return CommitResult(
            ok=True,
            created=created,
            updated=updated,
            skipped=skipped,
            diagnostics=tuple(diagnostics),
        )


def _already_exists(candidate: ImportCandidate) -> Diagnostic:
    return Diagnostic(
        row_number=candidate.row_number,
        severity=Severity.WARNING,
        code=DiagnosticCode.EXISTS_IN_CORPUS,
        message=f"'{candidate.key}' was created after validation; the row was skipped.",
    )
