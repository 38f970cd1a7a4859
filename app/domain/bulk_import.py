"""
app/domain/bulk_import.py

Domain models used by the bulk import pipeline (parse, validate, stage, confirm).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable


class ImportTarget(str, Enum):
    PROCESSES = "processes"
    PRODUCTS = "products"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ConflictPolicy(str, Enum):
    """
    What to do with a row whose key already exists in the persisted store.
    """

    SKIP = "skip"
    UPDATE = "update"


class BatchStatus(str, Enum):
    STAGED = "staged"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"


class DiagnosticCode:
    MISSING_FIELD = "missing_field"
    TYPE_ERROR = "type_error"
    OUT_OF_RANGE = "out_of_range"
    TOO_LONG = "too_long"
    INVALID_CHOICE = "invalid_choice"
    DUPLICATE_IN_FILE = "duplicate_in_file"
    EXISTS_IN_CORPUS = "exists_in_corpus"
    ROUNDED = "rounded"
    DEFAULTED = "defaulted"
    PERSISTENCE_FAILED = "persistence_failed"


@dataclass(frozen=True)
class RawRow:
    """
    One parsed record: ordered string fields plus its 1-based record number.

    The header is record 1. Blank records are dropped by the parser but still
    consume their number.
    """

    row_number: int
    fields: tuple[str, ...]

    def get(self, index: int) -> str:
        if 0 <= index < len(self.fields):
            return self.fields[index]
        return ""

    def is_blank(self) -> bool:
        return all(value.strip() == "" for value in self.fields)


@dataclass(frozen=True)
class Diagnostic:
    """
    One finding attached to a source row.
    """

    row_number: int
    severity: Severity
    code: str
    message: str
    field: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "field": self.field,
        }


@dataclass(frozen=True)
class ImportCandidate(ABC):
    """
    Typed record built from one RawRow; ``row_number`` points back to it.
    """

    row_number: int
    key: str | None
    name: str | None

    @abstractmethod
    def preview(self) -> dict[str, Any]:
        """Display form of the candidate, keyed by column name."""


@dataclass(frozen=True)
class ProcessCandidate(ImportCandidate):
    cost: Decimal | None = None

    def preview(self) -> dict[str, Any]:
        return {
            "__row": self.row_number,
            "codigo": self.key,
            "nombre": self.name,
            "costo": _decimal_to_float(self.cost),
        }


@dataclass(frozen=True)
class ProductCandidate(ImportCandidate):
    price_net: Decimal | None = None
    replacement_cost: Decimal | None = None
    uom: str | None = None
    classification: str | None = None
    barcode: str | None = None
    group_code: str | None = None
    group_name: str | None = None
    subgroup_code: str | None = None
    subgroup_name: str | None = None
    vat_rate: Decimal | None = None

    def preview(self) -> dict[str, Any]:
        return {
            "__row": self.row_number,
            "sku": self.key,
            "name": self.name,
            "price_net": _decimal_to_float(self.price_net),
            "replacement_cost": _decimal_to_float(self.replacement_cost),
            "uom": self.uom,
            "classification": self.classification,
            "barcode": self.barcode,
            "group_code": self.group_code,
            "group_name": self.group_name,
            "subgroup_code": self.subgroup_code,
            "subgroup_name": self.subgroup_name,
            "vat_rate": _decimal_to_float(self.vat_rate),
        }


@dataclass(frozen=True)
class MappedRow:
    """
    Mapper output: a candidate plus the coercion findings for its row.
    """

    candidate: ImportCandidate
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class ValidatedRow:
    """
    Validator output. ``skipped`` marks rows excluded by the dedup-skip policy.
    """

    candidate: ImportCandidate
    diagnostics: tuple[Diagnostic, ...] = ()
    skipped: bool = False

    @property
    def row_number(self) -> int:
        return self.candidate.row_number

    @property
    def has_errors(self) -> bool:
        return any(diagnostic.is_error for diagnostic in self.diagnostics)

    @property
    def has_warnings(self) -> bool:
        return any(not diagnostic.is_error for diagnostic in self.diagnostics)

    @property
    def is_accepted(self) -> bool:
        return not self.has_errors and not self.skipped


@dataclass(frozen=True)
class ImportSummary:
    total: int
    accepted_count: int
    error_count: int
    warning_count: int
    skipped_count: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "accepted": self.accepted_count,
            "errors": self.error_count,
            "warnings": self.warning_count,
            "skipped": self.skipped_count,
        }


@dataclass(frozen=True)
class PartitionResult:
    accepted: tuple[ImportCandidate, ...]
    rejected: tuple[ValidatedRow, ...]
    skipped: tuple[ValidatedRow, ...]
    preview_rows: tuple[ImportCandidate, ...]
    diagnostics: tuple[Diagnostic, ...]
    summary: ImportSummary


@dataclass(frozen=True)
class ImportBatch:
    """
    Staged outcome of one validate call. Never mutated after creation.
    """

    batch_id: str
    target: ImportTarget
    columns: tuple[str, ...]
    accepted: tuple[ImportCandidate, ...]
    diagnostics: tuple[Diagnostic, ...]
    preview_rows: tuple[ImportCandidate, ...]
    summary: ImportSummary
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def diagnostics_by_row(self) -> dict[int, list[Diagnostic]]:
        return group_diagnostics_by_row(self.diagnostics)


@dataclass(frozen=True)
class CommitResult:
    """
    Outcome of one commit. Returned to the caller, never stored.
    """

    ok: bool
    created: int
    updated: int
    skipped: int
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DirectImportResult:
    """
    Outcome of the single-step import (parse, validate and commit at once).
    """

    partition: PartitionResult
    commit: CommitResult | None


def group_diagnostics_by_row(diagnostics: Iterable[Diagnostic]) -> dict[int, list[Diagnostic]]:
    grouped: dict[int, list[Diagnostic]] = {}
    for diagnostic in diagnostics:
        grouped.setdefault(diagnostic.row_number, []).append(diagnostic)
    return grouped


def _decimal_to_float(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)
