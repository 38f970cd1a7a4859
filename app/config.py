"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.domain.bulk_import import ConflictPolicy
from db.config import load_env_files

_ALLOWED_APP_MODES = {"cloud", "local"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _require_app_mode() -> str:
    """
    Read and validate APP_MODE from the environment.

    APP_MODE must be explicitly set. Any value outside the allowed set, or the
    absence of the variable, raises RuntimeError.
    """

    _load_env_once()
    raw = os.getenv("APP_MODE")
    if raw is None:
        raise RuntimeError(f"APP_MODE must be explicitly set to one of {sorted(_ALLOWED_APP_MODES)}.")
    mode = raw.strip().lower()
    if mode not in _ALLOWED_APP_MODES:
        raise RuntimeError(
            f"APP_MODE '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_APP_MODES)}."
        )
    return mode


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level application mode settings.
    """

    mode: str


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.

    Raises RuntimeError if APP_MODE is missing or invalid.
    """

    return AppSettings(mode=_require_app_mode())


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_conflict_policy_env(name: str, default: ConflictPolicy) -> ConflictPolicy:
    raw_value = _get_str_env(name, default.value).lower()
    try:
        return ConflictPolicy(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class BulkImportSettings:
    """
    Runtime settings for the stage/confirm import pipeline.
    """

    max_bytes: int = 5 * 1024 * 1024
    max_rows: int = 10_000
    preview_limit: int = 200
    batch_ttl_seconds: int = 900
    tombstone_retention_seconds: int = 3600
    purge_interval_seconds: int = 60
    conflict_policy: ConflictPolicy = ConflictPolicy.SKIP
    log_diagnostics: bool = True


@lru_cache(maxsize=1)
def get_bulk_import_settings() -> BulkImportSettings:
    """
    Return cached bulk import settings from environment variables.
    """

    return BulkImportSettings(
        max_bytes=max(1, _get_int_env("BULK_IMPORT_MAX_BYTES", 5 * 1024 * 1024)),
        max_rows=max(1, _get_int_env("BULK_IMPORT_MAX_ROWS", 10_000)),
        preview_limit=max(0, _get_int_env("BULK_IMPORT_PREVIEW_LIMIT", 200)),
        batch_ttl_seconds=max(1, _get_int_env("BULK_IMPORT_BATCH_TTL_SECONDS", 900)),
        tombstone_retention_seconds=max(0, _get_int_env("BULK_IMPORT_TOMBSTONE_RETENTION_SECONDS", 3600)),
        purge_interval_seconds=max(1, _get_int_env("BULK_IMPORT_PURGE_INTERVAL_SECONDS", 60)),
        conflict_policy=_get_conflict_policy_env("BULK_IMPORT_CONFLICT_POLICY", ConflictPolicy.SKIP),
        log_diagnostics=_get_bool_env("BULK_IMPORT_LOG_DIAGNOSTICS", True),
    )
