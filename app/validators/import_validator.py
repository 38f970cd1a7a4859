"""
app/validators/import_validator.py

Row-level validation for mapped import candidates: required fields, ranges,
lengths, duplicates within the file and keys already present in the store.
"""

from __future__ import annotations

import dataclasses
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import AbstractSet, Any, Sequence

from app.domain.bulk_import import (
    ConflictPolicy,
    Diagnostic,
    DiagnosticCode,
    MappedRow,
    Severity,
    ValidatedRow,
)
from app.domain.import_schemas import NUMERIC_SCALE, FieldKind, FieldSpec, ImportSchema, normalize_key

# Largest value a NUMERIC(12, 2) column holds.
NUMERIC_MAX = Decimal("9999999999.99")


class ImportValidator:
    """
    Applies the schema's row rules in source order.
    """

    def __init__(self, schema: ImportSchema, *, scale: int = NUMERIC_SCALE) -> None:
        self._schema = schema
        self._quantum = Decimal(1).scaleb(-scale)
        self._scale = scale

    @property
    def schema(self) -> ImportSchema:
        return self._schema

    def validate(
        self,
        mapped_rows: Sequence[MappedRow],
        *,
        existing_keys: AbstractSet[str] = frozenset(),
        conflict_policy: ConflictPolicy = ConflictPolicy.SKIP,
    ) -> list[ValidatedRow]:
        """
        Validate every row and return them in input order.

        The first occurrence of a key is eligible; every later occurrence is a
        ``duplicate_in_file`` error regardless of its other fields. Keys found
        in ``existing_keys`` are skipped or flagged as updates depending on
        ``conflict_policy``.
        """

        normalized_existing = {normalize_key(key) for key in existing_keys}
        seen_keys: set[str] = set()
        validated: list[ValidatedRow] = []

        for mapped in mapped_rows:
            candidate = mapped.candidate
            row_number = candidate.row_number
            diagnostics: list[Diagnostic] = list(mapped.diagnostics)
            fields_with_errors = {item.field for item in diagnostics if item.is_error}
            updates: dict[str, Any] = {}

            for field_spec in self._schema.fields:
                value = getattr(candidate, field_spec.attribute)
                if value is None:
                    if field_spec.required and field_spec.name not in fields_with_errors:
                        diagnostics.append(
                            _error(row_number, DiagnosticCode.MISSING_FIELD, f"{field_spec.name} is required.", field_spec.name)
                        )
                    continue
                if field_spec.kind is FieldKind.NUMBER:
                    rounded = self._check_number(field_spec, value, row_number, diagnostics)
                    if rounded is not None:
                        updates[field_spec.attribute] = rounded
                elif field_spec.max_length is not None and len(value) > field_spec.max_length:
                    diagnostics.append(
                        _error(
                            row_number,
                            DiagnosticCode.TOO_LONG,
                            f"{field_spec.name} exceeds {field_spec.max_length} characters ({len(value)}).",
                            field_spec.name,
                        )
                    )

            skipped = False
            key = normalize_key(candidate.key) if candidate.key else ""
            if key:
                if key in seen_keys:
                    diagnostics.append(
                        _error(
                            row_number,
                            DiagnosticCode.DUPLICATE_IN_FILE,
                            f"{self._schema.key_field} '{key}' is duplicated in the file.",
                            self._schema.key_field,
                        )
                    )
                else:
                    seen_keys.add(key)
                    if key in normalized_existing:
                        diagnostics.append(self._existing_key_diagnostic(row_number, key, conflict_policy))
                        skipped = conflict_policy is ConflictPolicy.SKIP

            if updates:
                candidate = dataclasses.replace(candidate, **updates)
            row = ValidatedRow(candidate=candidate, diagnostics=tuple(diagnostics))
            if skipped and not row.has_errors:
                row = dataclasses.replace(row, skipped=True)
            validated.append(row)

        return validated

    def _check_number(
        self,
        field_spec: FieldSpec,
        value: Decimal,
        row_number: int,
        diagnostics: list[Diagnostic],
    ) -> Decimal | None:
        if value < 0:
            diagnostics.append(
                _error(row_number, DiagnosticCode.OUT_OF_RANGE, f"{field_spec.name} must be zero or greater.", field_spec.name)
            )
            return None
        try:
            rounded = value.quantize(self._quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            rounded = None
        upper = field_spec.max_value if field_spec.max_value is not None else NUMERIC_MAX
        if rounded is None or rounded > upper:
            diagnostics.append(
                _error(
                    row_number,
                    DiagnosticCode.OUT_OF_RANGE,
                    f"{field_spec.name} must not exceed {upper}.",
                    field_spec.name,
                )
            )
            return None
        if rounded != value:
            diagnostics.append(
                Diagnostic(
                    row_number=row_number,
                    severity=Severity.WARNING,
                    code=DiagnosticCode.ROUNDED,
                    message=f"{field_spec.name} {value} rounded to {rounded} ({self._scale} decimals).",
                    field=field_spec.name,
                )
            )
        return rounded

    def _existing_key_diagnostic(self, row_number: int, key: str, policy: ConflictPolicy) -> Diagnostic:
        key_field = self._schema.key_field
        if policy is ConflictPolicy.UPDATE:
            message = f"{key_field} '{key}' already exists; the record will be updated."
        else:
            message = f"{key_field} '{key}' already exists; the row will be skipped."
        return Diagnostic(
            row_number=row_number,
            severity=Severity.WARNING,
            code=DiagnosticCode.EXISTS_IN_CORPUS,
            message=message,
            field=key_field,
        )


def _error(row_number: int, code: str, message: str, field: str) -> Diagnostic:
    return Diagnostic(row_number=row_number, severity=Severity.ERROR, code=code, message=message, field=field)
