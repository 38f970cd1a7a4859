"""
app/mappers package marker.
"""

from app.mappers.import_row_mapper import ColumnResolution, map_rows, resolve_columns

__all__ = [
    "ColumnResolution",
    "map_rows",
    "resolve_columns",
]
