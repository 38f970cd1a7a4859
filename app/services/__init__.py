"""
app/services package marker.
"""

from app.services.batch_registry import BatchRegistry, InMemoryBatchRegistry
from app.services.bulk_import_service import (
    BulkImportService,
    ImportAnalysis,
    get_batch_registry,
    get_bulk_import_service,
)
from app.services.import_committer import ImportCommitter

__all__ = [
    "BatchRegistry",
    "BulkImportService",
    "ImportAnalysis",
    "ImportCommitter",
    "InMemoryBatchRegistry",
    "get_batch_registry",
    "get_bulk_import_service",
]
