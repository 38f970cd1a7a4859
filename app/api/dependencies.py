"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.domain.bulk_import import ImportTarget
from app.repositories.catalog_repository import build_catalog_repository
from app.repositories.record_store import RecordStore
from db.session import get_db

IMPORT_FILE_EXTENSIONS = (".csv", ".tsv", ".txt")

IMPORT_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
    "text/tab-separated-values",
}

_DELIMITER_ALIASES = {
    "tab": "\t",
    "\\t": "\t",
}


def get_import_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is delimited text by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_text_filename = filename.endswith(IMPORT_FILE_EXTENSIONS)
    is_text_content_type = content_type in IMPORT_CONTENT_TYPES

    if not is_text_filename and not is_text_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only delimited text files (.csv, .tsv, .txt) are allowed.",
        )

    return file


def get_declared_delimiter(delimiter: str | None = Form(default=None)) -> str | None:
    """
    Optional caller-declared delimiter; empty means auto-detect.
    """

    if delimiter is None or delimiter == "":
        return None
    return _DELIMITER_ALIASES.get(delimiter.strip().lower(), delimiter)


def get_record_store(target: ImportTarget, db: Session = Depends(get_db)) -> RecordStore:
    """
    Persisted catalog for the import target in the request path.
    """

    return build_catalog_repository(target, db)
