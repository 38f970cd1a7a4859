"""
app/schemas/bulk_import.py

Request and response schemas for the bulk import endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.bulk_import import CommitResult, Diagnostic, ImportBatch, group_diagnostics_by_row


class DiagnosticResponse(BaseModel):
    """
    API response model for one row-level finding.
    """

    severity: str
    code: str
    message: str
    field: str | None = None


class ImportSummaryResponse(BaseModel):
    total: int = Field(..., ge=0)
    accepted: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)
    warnings: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)


class StageResponse(BaseModel):
    """
    API response model for a validated (staged) import file.
    """

    model_config = ConfigDict(populate_by_name=True)

    batch_id: str = Field(..., alias="batchId")
    target: str
    columns: list[str]
    preview_rows: list[dict[str, Any]] = Field(default_factory=list, alias="previewRows")
    diagnostics_by_row: dict[int, list[DiagnosticResponse]] = Field(default_factory=dict, alias="diagnosticsByRow")
    errors_by_row: dict[int, list[str]] = Field(default_factory=dict, alias="errorsByRow")
    warnings_by_row: dict[int, list[str]] = Field(default_factory=dict, alias="warningsByRow")
    summary: ImportSummaryResponse
    expires_at: datetime = Field(..., alias="expiresAt")

    @classmethod
    def from_batch(cls, batch: ImportBatch) -> "StageResponse":
        grouped = batch.diagnostics_by_row()
        return cls(
            batch_id=batch.batch_id,
            target=batch.target.value,
            columns=list(batch.columns),
            preview_rows=[candidate.preview() for candidate in batch.preview_rows],
            diagnostics_by_row=_diagnostics_payload(grouped),
            errors_by_row=_messages_by_row(grouped, errors=True),
            warnings_by_row=_messages_by_row(grouped, errors=False),
            summary=ImportSummaryResponse(**batch.summary.to_dict()),
            expires_at=batch.expires_at,
        )


class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batch_id: str = Field(..., min_length=1, alias="batchId")


class ConfirmResponse(BaseModel):
    """
    API response model for a confirmed import.
    """

    model_config = ConfigDict(populate_by_name=True)

    ok: bool
    created: int = Field(..., ge=0)
    updated: int = Field(..., ge=0)
    skipped: int = Field(..., ge=0)
    diagnostics_by_row: dict[int, list[DiagnosticResponse]] = Field(default_factory=dict, alias="diagnosticsByRow")

    @classmethod
    def from_result(cls, result: CommitResult) -> "ConfirmResponse":
        return cls(
            ok=result.ok,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            diagnostics_by_row=_diagnostics_payload(group_diagnostics_by_row(result.diagnostics)),
        )


def _diagnostics_payload(grouped: dict[int, list[Diagnostic]]) -> dict[int, list[DiagnosticResponse]]:
    return {
        row_number: [DiagnosticResponse(**item.to_dict()) for item in items]
        for row_number, items in grouped.items()
    }


def _messages_by_row(grouped: dict[int, list[Diagnostic]], *, errors: bool) -> dict[int, list[str]]:
    result: dict[int, list[str]] = {}
    for row_number, items in grouped.items():
        messages = [item.message for item in items if item.is_error is errors]
        if messages:
            result[row_number] = messages
    return result
