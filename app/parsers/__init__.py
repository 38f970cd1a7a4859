"""
app/parsers package marker.
"""

from app.parsers.delimited_text import (
    CANDIDATE_DELIMITERS,
    ParsedTable,
    ParseLimits,
    detect_delimiter,
    parse_delimited,
    serialize_rows,
    tokenize,
)

__all__ = [
    "CANDIDATE_DELIMITERS",
    "ParsedTable",
    "ParseLimits",
    "detect_delimiter",
    "parse_delimited",
    "serialize_rows",
    "tokenize",
]
