"""
app/domain/import_schemas.py

Fixed column sets for every import target.

Each field lists the header names it may be addressed by. Matching is
case-insensitive after trimming; the first header that matches wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from app.domain.bulk_import import ImportCandidate, ImportTarget, ProcessCandidate, ProductCandidate


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    CHOICE = "choice"


@dataclass(frozen=True)
class FieldSpec:
    """
    One canonical column of an import target.
    """

    name: str
    attribute: str
    kind: FieldKind
    required: bool
    aliases: tuple[str, ...]
    max_length: int | None = None
    choices: tuple[str, ...] = ()
    default: str | None = None
    max_value: Decimal | None = None

    def accepted_headers(self) -> tuple[str, ...]:
        return (self.name, *self.aliases)


@dataclass(frozen=True)
class ImportSchema:
    target: ImportTarget
    key_field: str
    fields: tuple[FieldSpec, ...]
    candidate_type: type[ImportCandidate]

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(field_spec.name for field_spec in self.fields)

    @property
    def required_columns(self) -> tuple[str, ...]:
        return tuple(field_spec.name for field_spec in self.fields if field_spec.required and field_spec.default is None)

    def field(self, name: str) -> FieldSpec:
        for field_spec in self.fields:
            if field_spec.name == name:
                return field_spec
        raise KeyError(name)


NUMERIC_SCALE = 2

PROCESS_SCHEMA = ImportSchema(
    target=ImportTarget.PROCESSES,
    key_field="codigo",
    candidate_type=ProcessCandidate,
    fields=(
        FieldSpec(
            name="codigo",
            attribute="key",
            kind=FieldKind.TEXT,
            required=True,
            aliases=("código", "code", "cod", "clave"),
            max_length=20,
        ),
        FieldSpec(
            name="nombre",
            attribute="name",
            kind=FieldKind.TEXT,
            required=True,
            aliases=("name", "descripcion", "descripción", "proceso"),
            max_length=120,
        ),
        FieldSpec(
            name="costo",
            attribute="cost",
            kind=FieldKind.NUMBER,
            required=True,
            aliases=("cost", "valor", "monto"),
        ),
    ),
)

PRODUCT_SCHEMA = ImportSchema(
    target=ImportTarget.PRODUCTS,
    key_field="sku",
    candidate_type=ProductCandidate,
    fields=(
        FieldSpec(
            name="sku",
            attribute="key",
            kind=FieldKind.TEXT,
            required=True,
            aliases=("codigo", "código", "code"),
            max_length=40,
        ),
        FieldSpec(
            name="name",
            attribute="name",
            kind=FieldKind.TEXT,
            required=True,
            aliases=("nombre", "descripcion", "descripción", "description"),
            max_length=200,
        ),
        FieldSpec(
            name="price_net",
            attribute="price_net",
            kind=FieldKind.NUMBER,
            required=True,
            aliases=("pricenet", "precio", "precio_neto", "pneto", "price"),
        ),
        FieldSpec(
            name="replacement_cost",
            attribute="replacement_cost",
            kind=FieldKind.NUMBER,
            required=False,
            aliases=("valor_reposicion", "valor_repo", "costo_reposicion", "costo reposición", "costo"),
        ),
        FieldSpec(
            name="uom",
            attribute="uom",
            kind=FieldKind.TEXT,
            required=True,
            aliases=("unidad_medida", "unidad", "unit"),
            max_length=10,
            default="UN",
        ),
        FieldSpec(
            name="classification",
            attribute="classification",
            kind=FieldKind.CHOICE,
            required=True,
            aliases=("clasificacion", "clasificación", "tipo"),
            choices=("MP", "PT"),
        ),
        FieldSpec(
            name="barcode",
            attribute="barcode",
            kind=FieldKind.TEXT,
            required=False,
            aliases=("codigo_barra", "codigo_barras", "c_barra", "ean"),
            max_length=64,
        ),
        FieldSpec(
            name="group_code",
            attribute="group_code",
            kind=FieldKind.TEXT,
            required=False,
            aliases=("codigo_grupo", "codigo_g"),
            max_length=20,
        ),
        FieldSpec(
            name="group_name",
            attribute="group_name",
            kind=FieldKind.TEXT,
            required=False,
            aliases=("nombre_grupo", "grupo", "familia", "dg"),
            max_length=120,
        ),
        FieldSpec(
            name="subgroup_code",
            attribute="subgroup_code",
            kind=FieldKind.TEXT,
            required=False,
            aliases=("codigo_subgrupo", "codigo_sg"),
            max_length=20,
        ),
        FieldSpec(
            name="subgroup_name",
            attribute="subgroup_name",
            kind=FieldKind.TEXT,
            required=False,
            aliases=("nombre_subgrupo", "subgrupo", "subfamilia", "dsg"),
            max_length=120,
        ),
        FieldSpec(
            name="vat_rate",
            attribute="vat_rate",
            kind=FieldKind.NUMBER,
            required=False,
            aliases=("piva", "iva", "vat"),
            max_value=Decimal("100"),
        ),
    ),
)

SCHEMAS_BY_TARGET: dict[ImportTarget, ImportSchema] = {
    ImportTarget.PROCESSES: PROCESS_SCHEMA,
    ImportTarget.PRODUCTS: PRODUCT_SCHEMA,
}


def get_import_schema(target: ImportTarget) -> ImportSchema:
    return SCHEMAS_BY_TARGET[ImportTarget(target)]


def normalize_key(value: str) -> str:
    """
    Canonical form used to compare and store record keys.
    """

    return value.strip().upper()
