"""
app/domain/import_errors.py

Exception taxonomy for the bulk import pipeline.

Stage errors abort a validate call before any batch exists. Batch errors are
raised by confirm without side effects. Persistence errors are raised by record
stores; per-row failures are counted by the committer, store-wide failures
abort the confirm.
"""

from __future__ import annotations

from typing import Any, Sequence


class BulkImportError(Exception):
    """
    Base class for every bulk import failure surfaced to callers.
    """

    code = "bulk_import_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


# ---------------------------------------------------------------------------
# Stage (structural) errors
# ---------------------------------------------------------------------------


class ImportStageError(BulkImportError, ValueError):
    code = "import_stage_error"


class EncodingError(ImportStageError):
    code = "encoding_error"


class SizeLimitExceededError(ImportStageError):
    code = "size_limit_exceeded"

    def __init__(self, *, size_bytes: int, max_bytes: int) -> None:
        super().__init__(f"File is {size_bytes} bytes; the limit is {max_bytes} bytes.")
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "size_bytes": self.size_bytes, "max_bytes": self.max_bytes}


class RowCountExceededError(ImportStageError):
    code = "row_count_exceeded"

    def __init__(self, *, row_count: int, max_rows: int) -> None:
        super().__init__(f"File has {row_count} data rows; the limit is {max_rows}.")
        self.row_count = row_count
        self.max_rows = max_rows

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "row_count": self.row_count, "max_rows": self.max_rows}


class SchemaError(ImportStageError):
    """
    Raised when the header row cannot satisfy the target's fixed column set.
    """

    code = "schema_error"

    def __init__(
        self,
        message: str,
        *,
        reason: str = "missing_column",
        missing_columns: Sequence[str] = (),
        source_headers: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.missing_columns = tuple(missing_columns)
        self.source_headers = tuple(source_headers)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "reason": self.reason,
            "missing_columns": list(self.missing_columns),
            "source_headers": list(self.source_headers),
        }


# ---------------------------------------------------------------------------
# Confirm-phase batch errors
# ---------------------------------------------------------------------------


class BatchError(BulkImportError, LookupError):
    code = "batch_error"

    def __init__(self, batch_id: str, message: str) -> None:
        super().__init__(message)
        self.batch_id = batch_id

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "batch_id": self.batch_id}


class BatchNotFoundError(BatchError):
    code = "batch_not_found"

    def __init__(self, batch_id: str) -> None:
        super().__init__(batch_id, f"Import batch '{batch_id}' was not found.")


class BatchExpiredError(BatchError):
    code = "batch_expired"

    def __init__(self, batch_id: str) -> None:
        super().__init__(batch_id, f"Import batch '{batch_id}' has expired; validate the file again.")


class BatchAlreadyConfirmedError(BatchError):
    code = "batch_already_confirmed"

    def __init__(self, batch_id: str) -> None:
        super().__init__(batch_id, f"Import batch '{batch_id}' was already confirmed.")


class BatchConfirmInProgressError(BatchError):
    code = "batch_confirm_in_progress"

    def __init__(self, batch_id: str) -> None:
        super().__init__(batch_id, f"Import batch '{batch_id}' is being confirmed by another request.")


# ---------------------------------------------------------------------------
# Persistence errors
# ---------------------------------------------------------------------------


class PersistenceError(BulkImportError, RuntimeError):
    code = "persistence_error"


class RecordPersistenceError(PersistenceError):
    """
    One record could not be written; the remaining rows are still attempted.
    """

    code = "record_persistence_error"


class StoreUnavailableError(PersistenceError):
    """
    The store cannot be reached; the whole confirm is aborted.
    """

    code = "store_unavailable"
