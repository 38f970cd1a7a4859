"""
app/parsers/delimited_text.py

Delimiter-detecting, quote-aware tokenizer for uploaded tabular text files.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from app.domain.bulk_import import RawRow
from app.domain.import_errors import EncodingError, RowCountExceededError, SizeLimitExceededError

logger = logging.getLogger(__name__)

# Priority order breaks ties between equal counts.
CANDIDATE_DELIMITERS: tuple[str, ...] = (",", ";", "\t")
QUOTE = '"'
DEFAULT_ENCODING = "utf-8-sig"


@dataclass(frozen=True)
class ParseLimits:
    """
    Guards checked before any row is tokenized.
    """

    max_bytes: int
    max_rows: int


@dataclass(frozen=True)
class ParsedTable:
    """
    Tokenizer output: the header record and the non-blank data records.
    """

    delimiter: str
    header: RawRow | None
    rows: tuple[RawRow, ...]


def parse_delimited(
    payload: bytes | str,
    *,
    delimiter: str | None = None,
    limits: ParseLimits | None = None,
    encoding: str = DEFAULT_ENCODING,
) -> ParsedTable:
    """
    Decode, guard and tokenize one uploaded file.

    Raises ``SizeLimitExceededError``, ``EncodingError`` or
    ``RowCountExceededError`` before producing any rows.
    """

    if delimiter is not None:
        validate_delimiter(delimiter)

    if limits is not None:
        size_bytes = len(payload) if isinstance(payload, bytes) else len(payload.encode("utf-8"))
        if size_bytes > limits.max_bytes:
            raise SizeLimitExceededError(size_bytes=size_bytes, max_bytes=limits.max_bytes)

    text = decode_payload(payload, encoding=encoding)

    if limits is not None:
        data_lines = count_data_lines(text)
        if data_lines > limits.max_rows:
            raise RowCountExceededError(row_count=data_lines, max_rows=limits.max_rows)

    resolved_delimiter = delimiter or detect_delimiter(first_line(text))
    records = tokenize(text, resolved_delimiter)
    logger.debug(
        "Tokenized delimited file delimiter=%r records=%d",
        resolved_delimiter,
        len(records),
    )

    if not records:
        return ParsedTable(delimiter=resolved_delimiter, header=None, rows=())
    return ParsedTable(delimiter=resolved_delimiter, header=records[0], rows=tuple(records[1:]))


def decode_payload(payload: bytes | str, *, encoding: str = DEFAULT_ENCODING) -> str:
    if isinstance(payload, str):
        return payload[1:] if payload.startswith("\ufeff") else payload
    try:
        return payload.decode(encoding)
    except UnicodeDecodeError as exc:
        raise EncodingError(
            f"File is not valid {encoding.replace('-sig', '').upper()} text "
            f"(undecodable byte at position {exc.start})."
        ) from exc


def validate_delimiter(delimiter: str) -> None:
    if len(delimiter) != 1 or delimiter in {QUOTE, "\n", "\r"}:
        raise ValueError(f"Unsupported delimiter {delimiter!r}; use a single character such as ',' ';' or a tab.")


def first_line(text: str) -> str:
    for line in text.split("\n"):
        if line.strip():
            return line.rstrip("\r")
    return ""


def detect_delimiter(header_line: str) -> str:
    """
    Pick the candidate delimiter that occurs most often in the header line.
    """

    best = CANDIDATE_DELIMITERS[0]
    best_count = -1
    for candidate in CANDIDATE_DELIMITERS:
        count = header_line.count(candidate)
        if count > best_count:
            best, best_count = candidate, count
    return best


def count_data_lines(text: str) -> int:
    """
    Physical non-blank lines minus the header. Quoted line breaks count too,
    so this is an upper bound on the number of records.
    """

    lines = sum(1 for line in text.split("\n") if line.strip())
    return max(0, lines - 1)


def tokenize(text: str, delimiter: str) -> list[RawRow]:
    """
    Split text into records with a two-state (unquoted/quoted) scanner.

    Blank records are dropped but keep consuming record numbers.
    """

    records: list[RawRow] = []
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    record_number = 0
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        if char == "\r":
            pass
        elif char == QUOTE:
            if in_quotes and index + 1 < length and text[index + 1] == QUOTE:
                current.append(QUOTE)
                index += 1
            else:
                in_quotes = not in_quotes
        elif in_quotes:
            current.append(char)
        elif char == delimiter:
            fields.append("".join(current))
            current = []
        elif char == "\n":
            fields.append("".join(current))
            current = []
            record_number += 1
            _append_record(records, record_number, fields)
            fields = []
        else:
            current.append(char)
        index += 1

    # An unterminated quote at end of input closes implicitly.
    if current or fields or in_quotes:
        fields.append("".join(current))
        record_number += 1
        _append_record(records, record_number, fields)

    return records


def serialize_rows(rows: Iterable[RawRow], delimiter: str) -> str:
    """
    Write rows back as delimited text. Fields are emitted verbatim, so only
    data without delimiters, quotes or line breaks survives a round trip.
    """

    return "".join(delimiter.join(row.fields) + "\n" for row in rows)


def _append_record(records: list[RawRow], record_number: int, fields: list[str]) -> None:
    row = RawRow(row_number=record_number, fields=tuple(fields))
    if row.is_blank():
        return
    records.append(row)
