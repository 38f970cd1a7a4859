"""create processes and products catalog tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "processes",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("codigo", sa.String(length=20), nullable=False),
        sa.Column("nombre", sa.String(length=120), nullable=False),
        sa.Column("costo", sa.Numeric(precision=12, scale=2), nullable=False, comment="Unit cost, two decimals"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_processes")),
        sa.UniqueConstraint("codigo", name=op.f("uq_processes_codigo")),
    )
    op.create_index("ix_processes_nombre", "processes", ["nombre"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("sku", sa.String(length=40), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price_net", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("replacement_cost", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("uom", sa.String(length=10), nullable=False, comment="Unit of measure"),
        sa.Column("classification", sa.String(length=2), nullable=False),
        sa.Column("barcode", sa.String(length=64), nullable=True),
        sa.Column("group_code", sa.String(length=20), nullable=True),
        sa.Column("group_name", sa.String(length=120), nullable=True),
        sa.Column("subgroup_code", sa.String(length=20), nullable=True),
        sa.Column("subgroup_name", sa.String(length=120), nullable=True),
        sa.Column(
            "vat_rate",
            sa.Numeric(precision=5, scale=2),
            nullable=True,
            comment="VAT percentage applied to price_net",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_products")),
        sa.UniqueConstraint("sku", name=op.f("uq_products_sku")),
        sa.CheckConstraint("classification IN ('MP', 'PT')", name=op.f("ck_products_classification")),
    )
    op.create_index("ix_products_name", "products", ["name"], unique=False)
    op.create_index("ix_products_barcode", "products", ["barcode"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_products_barcode", table_name="products")
    op.drop_index("ix_products_name", table_name="products")
    op.drop_table("products")
    op.drop_index("ix_processes_nombre", table_name="processes")
    op.drop_table("processes")
