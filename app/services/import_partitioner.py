"""
app/services/import_partitioner.py

Splits validated rows into accepted, rejected and skipped sets and computes the
summary counts over the full dataset.
"""

from __future__ import annotations

from typing import Sequence

from app.domain.bulk_import import Diagnostic, ImportCandidate, ImportSummary, PartitionResult, ValidatedRow


def partition(validated: Sequence[ValidatedRow], *, preview_limit: int) -> PartitionResult:
    """
    Partition rows in source order. The preview is capped at ``preview_limit``
    accepted rows; counts always cover every row.
    """

    accepted: list[ImportCandidate] = []
    rejected: list[ValidatedRow] = []
    skipped: list[ValidatedRow] = []
    diagnostics: list[Diagnostic] = []
    error_count = 0
    warning_count = 0

    for row in validated:
        diagnostics.extend(row.diagnostics)
        if row.has_errors:
            error_count += 1
            rejected.append(row)
        elif row.skipped:
            skipped.append(row)
        else:
            accepted.append(row.candidate)
        if row.has_warnings:
            warning_count += 1

    summary = ImportSummary(
        total=len(validated),
        accepted_count=len(accepted),
        error_count=error_count,
        warning_count=warning_count,
        skipped_count=len(skipped),
    )
    return PartitionResult(
        accepted=tuple(accepted),
        rejected=tuple(rejected),
        skipped=tuple(skipped),
        preview_rows=tuple(accepted[: max(0, preview_limit)]),
        diagnostics=tuple(diagnostics),
        summary=summary,
    )
