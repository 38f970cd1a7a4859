"""
tests/test_import_partitioner.py

Partitioning, summary counts and the full parse-to-partition pipeline.
"""

from __future__ import annotations

from decimal import Decimal

from app.domain.bulk_import import (
    ConflictPolicy,
    Diagnostic,
    DiagnosticCode,
    ProcessCandidate,
    Severity,
    ValidatedRow,
)
from app.domain.import_schemas import PROCESS_SCHEMA
from app.mappers.import_row_mapper import map_rows, resolve_columns
from app.parsers.delimited_text import parse_delimited
from app.services.import_partitioner import partition
from app.validators.import_validator import ImportValidator


def _run_pipeline(payload: bytes, *, existing_keys: set[str] | None = None, preview_limit: int = 10):
    table = parse_delimited(payload)
    mapped = map_rows(table.rows, resolve_columns(table.header, PROCESS_SCHEMA))
    validated = ImportValidator(PROCESS_SCHEMA).validate(
        mapped,
        existing_keys=existing_keys or set(),
        conflict_policy=ConflictPolicy.SKIP,
    )
    return partition(validated, preview_limit=preview_limit)


def _row(row_number: int, *diagnostics: Diagnostic, skipped: bool = False) -> ValidatedRow:
    candidate = ProcessCandidate(row_number=row_number, key=f"K{row_number}", name="n", cost=Decimal("1"))
    return ValidatedRow(candidate=candidate, diagnostics=diagnostics, skipped=skipped)


def _diag(row_number: int, severity: Severity, code: str = "x") -> Diagnostic:
    return Diagnostic(row_number=row_number, severity=severity, code=code, message=code)


class TestPartition:
    def test_rows_are_split_and_counted(self) -> None:
        rows = [
            _row(2),
            _row(3, _diag(3, Severity.ERROR), _diag(3, Severity.WARNING)),
            _row(4, _diag(4, Severity.WARNING, DiagnosticCode.EXISTS_IN_CORPUS), skipped=True),
            _row(5, _diag(5, Severity.WARNING)),
        ]

        result = partition(rows, preview_limit=10)

        assert [candidate.row_number for candidate in result.accepted] == [2, 5]
        assert [row.row_number for row in result.rejected] == [3]
        assert [row.row_number for row in result.skipped] == [4]
        assert result.summary.to_dict() == {
            "total": 4,
            "accepted": 2,
            "errors": 1,
            "warnings": 3,
            "skipped": 1,
        }
        assert [item.row_number for item in result.diagnostics] == [3, 3, 4, 5]

    def test_preview_is_capped_but_counts_are_not(self) -> None:
        rows = [_row(n) for n in range(2, 12)]

        result = partition(rows, preview_limit=3)

        assert [candidate.row_number for candidate in result.preview_rows] == [2, 3, 4]
        assert len(result.accepted) == 10
        assert result.summary.accepted_count == 10

    def test_zero_preview_limit(self) -> None:
        result = partition([_row(2)], preview_limit=0)

        assert result.preview_rows == ()
        assert len(result.accepted) == 1

    def test_empty_input(self) -> None:
        result = partition([], preview_limit=5)

        assert result.summary.total == 0
        assert result.accepted == ()


class TestPipeline:
    def test_end_to_end_duplicate_and_missing_key(self) -> None:
        payload = b"codigo,nombre,costo\nA1,Widget,10.50\nA1,Widget Dup,5\n,Missing,1\n"

        result = _run_pipeline(payload)

        assert result.accepted == (ProcessCandidate(row_number=2, key="A1", name="Widget", cost=Decimal("10.50")),)
        rejected = {row.row_number: [item.code for item in row.diagnostics] for row in result.rejected}
        assert rejected == {
            3: [DiagnosticCode.DUPLICATE_IN_FILE],
            4: [DiagnosticCode.MISSING_FIELD],
        }
        assert result.summary.total == 3
        assert result.summary.error_count == 2
        assert result.summary.accepted_count == 1

    def test_existing_key_is_excluded_from_accepted(self) -> None:
        payload = b"codigo;nombre;costo\nEXIST;Again;1\nNEW;Fresh;2\n"

        result = _run_pipeline(payload, existing_keys={"EXIST"})

        assert [candidate.key for candidate in result.accepted] == ["NEW"]
        assert [row.candidate.key for row in result.skipped] == ["EXIST"]
        assert result.summary.skipped_count == 1
        assert result.summary.error_count == 0

    def test_preview_dicts_carry_source_row_numbers(self) -> None:
        payload = b"codigo,nombre,costo\n\nA1,\"Widget, large\",1.5\n"

        result = _run_pipeline(payload)

        assert [candidate.preview() for candidate in result.preview_rows] == [
            {"__row": 3, "codigo": "A1", "nombre": "Widget, large", "costo": 1.5},
        ]
