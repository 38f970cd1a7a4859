"""
db/models/product.py

Product catalog entry keyed by SKU.
"""

import uuid
from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    """
    Sellable or raw-material item.

    classification is MP (raw material) or PT (finished product).
    """

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    sku: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        unique=True,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    price_net: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    replacement_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )

    uom: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="UN",
        comment="Unit of measure",
    )

    classification: Mapped[str] = mapped_column(
        String(2),
        nullable=False,
    )

    barcode: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    group_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    group_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    subgroup_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    subgroup_name: Mapped[str | None] = mapped_column(String(120), nullable=True)

    vat_rate: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
        comment="VAT percentage applied to price_net",
    )

    __table_args__ = (
        CheckConstraint("classification IN ('MP', 'PT')", name="classification"),
        Index("ix_products_name", "name"),
        Index("ix_products_barcode", "barcode"),
    )

    def __repr__(self) -> str:
        return f"<Product sku={self.sku!r} name={self.name!r}>"
