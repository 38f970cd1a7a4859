"""
app/validators package marker.
"""

from app.validators.import_validator import ImportValidator

__all__ = [
    "ImportValidator",
]
