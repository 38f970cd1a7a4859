"""
app/repositories package marker.
"""

from app.repositories.catalog_repository import (
    CatalogRepository,
    ProcessRepository,
    ProductRepository,
    build_catalog_repository,
)
from app.repositories.in_memory_store import InMemoryRecordStore
from app.repositories.record_store import RecordStore, UpsertOutcome

__all__ = [
    "CatalogRepository",
    "InMemoryRecordStore",
    "ProcessRepository",
    "ProductRepository",
    "RecordStore",
    "UpsertOutcome",
    "build_catalog_repository",
]
