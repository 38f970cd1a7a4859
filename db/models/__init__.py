"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.process import Process
from db.models.product import Product

__all__ = [
    "Process",
    "Product",
]
