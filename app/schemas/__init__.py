"""
app/schemas package marker.
"""

from app.schemas.bulk_import import (
    ConfirmRequest,
    ConfirmResponse,
    DiagnosticResponse,
    ImportSummaryResponse,
    StageResponse,
)

__all__ = [
    "ConfirmRequest",
    "ConfirmResponse",
    "DiagnosticResponse",
    "ImportSummaryResponse",
    "StageResponse",
]
