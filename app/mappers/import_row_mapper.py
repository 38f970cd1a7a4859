"""
app/mappers/import_row_mapper.py

Header resolution and per-row coercion of parsed records into typed import
candidates.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Sequence

from app.domain.bulk_import import Diagnostic, DiagnosticCode, MappedRow, RawRow, Severity
from app.domain.import_errors import SchemaError
from app.domain.import_schemas import FieldKind, FieldSpec, ImportSchema, normalize_key

_NUMBER_PATTERN = re.compile(r"[+-]?[0-9]+(?:[.,][0-9]+)?")


def normalize_header(header: str) -> str:
    """
    Normalize a column name for flexible matching.
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class ColumnResolution:
    """
    Field name to source column index for one uploaded header row.
    """

    schema: ImportSchema
    field_to_index: dict[str, int]
    source_headers: tuple[str, ...]

    def index_of(self, field_name: str) -> int | None:
        return self.field_to_index.get(field_name)


def resolve_columns(header: RawRow | None, schema: ImportSchema) -> ColumnResolution:
    """
    Match header cells against the schema's synonym table.

    Raises ``SchemaError`` when the header is empty or a required column has no
    match. Unknown columns are ignored.
    """

    source_headers = tuple(header.fields) if header is not None else ()
    if not any(value.strip() for value in source_headers):
        raise SchemaError(
            "File is empty; a header row is required.",
            reason="missing_header",
            missing_columns=schema.required_columns,
        )

    normalized_headers = [normalize_header(value) for value in source_headers]
    used_indexes: set[int] = set()
    field_to_index: dict[str, int] = {}

    for field_spec in schema.fields:
        accepted = {normalize_header(name) for name in field_spec.accepted_headers()}
        for index, normalized in enumerate(normalized_headers):
            if index in used_indexes or not normalized:
                continue
            if normalized in accepted:
                field_to_index[field_spec.name] = index
                used_indexes.add(index)
                break

    missing = [name for name in schema.required_columns if name not in field_to_index]
    if missing:
        raise SchemaError(
            f"Missing required column(s): {', '.join(missing)}.",
            reason="missing_column",
            missing_columns=missing,
            source_headers=source_headers,
        )

    return ColumnResolution(
        schema=schema,
        field_to_index=field_to_index,
        source_headers=source_headers,
    )


def map_rows(rows: Sequence[RawRow], resolution: ColumnResolution) -> list[MappedRow]:
    return [map_row(row, resolution) for row in rows]


def map_row(row: RawRow, resolution: ColumnResolution) -> MappedRow:
    """
    Coerce one record. Coercion failures become ERROR diagnostics and leave the
    field empty; the row is never dropped here.
    """

    schema = resolution.schema
    values: dict[str, Any] = {}
    diagnostics: list[Diagnostic] = []

    for field_spec in schema.fields:
        index = resolution.index_of(field_spec.name)
        raw = row.get(index).strip() if index is not None else ""
        value, diagnostic = _coerce_field(field_spec, raw, row_number=row.row_number)
        if diagnostic is not None:
            diagnostics.append(diagnostic)
        if field_spec.name == schema.key_field and value is not None:
            value = normalize_key(value)
        values[field_spec.attribute] = value

    candidate = schema.candidate_type(row_number=row.row_number, **values)
    return MappedRow(candidate=candidate, diagnostics=tuple(diagnostics))


def parse_decimal(text: str) -> Decimal | None:
    """
    Parse a plain decimal number written with ``.`` or ``,`` as separator.

    Only ASCII digits are accepted: no thousands grouping, underscores,
    exponents or special values. Returns None for anything else.
    """

    cleaned = text.strip()
    if not _NUMBER_PATTERN.fullmatch(cleaned):
        return None
    return Decimal(cleaned.replace(",", "."))


def _coerce_field(field_spec: FieldSpec, raw: str, *, row_number: int) -> tuple[Any, Diagnostic | None]:
    if raw == "":
        if field_spec.default is not None:
            return field_spec.default, Diagnostic(
                row_number=row_number,
                severity=Severity.WARNING,
                code=DiagnosticCode.DEFAULTED,
                message=f"{field_spec.name} is empty; defaulted to '{field_spec.default}'.",
                field=field_spec.name,
            )
        return None, None

    if field_spec.kind is FieldKind.NUMBER:
        number = parse_decimal(raw)
        if number is None:
            return None, Diagnostic(
                row_number=row_number,
                severity=Severity.ERROR,
                code=DiagnosticCode.TYPE_ERROR,
                message=f"{field_spec.name} '{raw}' is not a valid number.",
                field=field_spec.name,
            )
        return number, None

    if field_spec.kind is FieldKind.CHOICE:
        choice = raw.upper()
        if choice not in field_spec.choices:
            return None, Diagnostic(
                row_number=row_number,
                severity=Severity.ERROR,
                code=DiagnosticCode.INVALID_CHOICE,
                message=f"{field_spec.name} '{raw}' must be one of: {', '.join(field_spec.choices)}.",
                field=field_spec.name,
            )
        return choice, None

    return raw, None
