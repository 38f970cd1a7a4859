"""
app/repositories/in_memory_store.py

Locally held catalog used by the direct import variant and by tests.
"""

from __future__ import annotations

import threading
from typing import Iterable

from app.domain.bulk_import import ImportCandidate
from app.domain.import_errors import RecordPersistenceError
from app.domain.import_schemas import normalize_key
from app.repositories.record_store import UpsertOutcome


class InMemoryRecordStore:
    """
    Dict-backed store keyed by normalized record key. Writes are held as
    pending until ``commit``.
    """

    def __init__(self, records: Iterable[ImportCandidate] = ()) -> None:
        self._committed: dict[str, ImportCandidate] = {}
        self._pending: dict[str, ImportCandidate] = {}
        self._lock = threading.Lock()
        for record in records:
            if not record.key:
                raise ValueError("Seed records must carry a key.")
            self._committed[normalize_key(record.key)] = record

    @property
    def records(self) -> dict[str, ImportCandidate]:
        with self._lock:
            return dict(self._committed)

    def exists_by_key(self, key: str) -> bool:
        normalized = normalize_key(key)
        with self._lock:
            return normalized in self._pending or normalized in self._committed

    def find_existing_keys(self, keys: Iterable[str]) -> set[str]:
        wanted = {normalize_key(key) for key in keys if key}
        with self._lock:
            return {key for key in wanted if key in self._pending or key in self._committed}

    def upsert(self, candidate: ImportCandidate, *, overwrite: bool) -> UpsertOutcome:
        if not candidate.key:
            raise RecordPersistenceError(f"Row {candidate.row_number} has no key.")
        key = normalize_key(candidate.key)
        with self._lock:
            exists = key in self._pending or key in self._committed
            if exists and not overwrite:
                return UpsertOutcome.UNCHANGED
            self._pending[key] = candidate
        return UpsertOutcome.UPDATED if exists else UpsertOutcome.CREATED

    def commit(self) -> None:
        with self._lock:
            self._committed.update(self._pending)
            self._pending.clear()

    def rollback(self) -> None:
        with self._lock:
            self._pending.clear()
