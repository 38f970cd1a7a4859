"""
db/models/process.py

Process catalog entry: a unique code, a display name and a unit cost.
"""

import uuid
from decimal import Decimal

from sqlalchemy import Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Process(Base, TimestampMixin):
    """
    One production process. ``codigo`` is stored upper-cased and is unique.
    """

    __tablename__ = "processes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    codigo: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
    )

    nombre: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )

    costo: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Unit cost, two decimals",
    )

    __table_args__ = (Index("ix_processes_nombre", "nombre"),)

    def __repr__(self) -> str:
        return f"<Process codigo={self.codigo!r} nombre={self.nombre!r}>"
