"""
app/domain package marker.
"""

from app.domain.bulk_import import (
    CommitResult,
    ConflictPolicy,
    Diagnostic,
    ImportBatch,
    ImportTarget,
    ProcessCandidate,
    ProductCandidate,
    RawRow,
    Severity,
)
from app.domain.import_schemas import PRODUCT_SCHEMA, PROCESS_SCHEMA, get_import_schema

__all__ = [
    "CommitResult",
    "ConflictPolicy",
    "Diagnostic",
    "ImportBatch",
    "ImportTarget",
    "PROCESS_SCHEMA",
    "PRODUCT_SCHEMA",
    "ProcessCandidate",
    "ProductCandidate",
    "RawRow",
    "Severity",
    "get_import_schema",
]
