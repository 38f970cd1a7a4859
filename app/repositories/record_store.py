"""
app/repositories/record_store.py

Collaborator contract between the import committer and a persisted catalog.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Protocol, runtime_checkable

from app.domain.bulk_import import ImportCandidate


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    # Key already present and overwrite was not allowed.
    UNCHANGED = "unchanged"


@runtime_checkable
class RecordStore(Protocol):
    """
    Keyed catalog store. Keys are compared in their normalized (upper-case) form.

    ``upsert`` raises ``RecordPersistenceError`` for a single bad record and
    ``StoreUnavailableError`` when the store itself cannot be reached. Writes
    become visible on ``commit``; ``rollback`` discards everything pending.
    """

    def exists_by_key(self, key: str) -> bool: ...

    def find_existing_keys(self, keys: Iterable[str]) -> set[str]: ...

    def upsert(self, candidate: ImportCandidate, *, overwrite: bool) -> UpsertOutcome: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
