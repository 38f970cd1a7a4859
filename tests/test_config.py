from __future__ import annotations

import os
import unittest
from unittest import mock

from app.config import BulkImportSettings, get_app_settings, get_bulk_import_settings
from app.domain.bulk_import import ConflictPolicy

_BULK_IMPORT_VARS = (
    "BULK_IMPORT_MAX_BYTES",
    "BULK_IMPORT_MAX_ROWS",
    "BULK_IMPORT_PREVIEW_LIMIT",
    "BULK_IMPORT_BATCH_TTL_SECONDS",
    "BULK_IMPORT_TOMBSTONE_RETENTION_SECONDS",
    "BULK_IMPORT_PURGE_INTERVAL_SECONDS",
    "BULK_IMPORT_CONFLICT_POLICY",
    "BULK_IMPORT_LOG_DIAGNOSTICS",
)


class TestBulkImportSettings(unittest.TestCase):
    def setUp(self) -> None:
        get_bulk_import_settings.cache_clear()
        self.addCleanup(get_bulk_import_settings.cache_clear)

    def _settings(self, **env: str) -> BulkImportSettings:
        environ = {key: value for key, value in os.environ.items() if key not in _BULK_IMPORT_VARS}
        environ.update(env)
        with mock.patch.dict(os.environ, environ, clear=True):
            return get_bulk_import_settings()

    def test_defaults(self) -> None:
        self.assertEqual(self._settings(), BulkImportSettings())

    def test_values_are_read_from_environment(self) -> None:
        settings = self._settings(
            BULK_IMPORT_MAX_BYTES="2048",
            BULK_IMPORT_MAX_ROWS="10",
            BULK_IMPORT_BATCH_TTL_SECONDS="30",
            BULK_IMPORT_CONFLICT_POLICY=" Update ",
            BULK_IMPORT_LOG_DIAGNOSTICS="no",
        )

        self.assertEqual(settings.max_bytes, 2048)
        self.assertEqual(settings.max_rows, 10)
        self.assertEqual(settings.batch_ttl_seconds, 30)
        self.assertIs(settings.conflict_policy, ConflictPolicy.UPDATE)
        self.assertFalse(settings.log_diagnostics)

    def test_invalid_values_fall_back_or_clamp(self) -> None:
        settings = self._settings(
            BULK_IMPORT_MAX_ROWS="many",
            BULK_IMPORT_PREVIEW_LIMIT="-5",
            BULK_IMPORT_CONFLICT_POLICY="merge",
        )

        self.assertEqual(settings.max_rows, 10_000)
        self.assertEqual(settings.preview_limit, 0)
        self.assertIs(settings.conflict_policy, ConflictPolicy.SKIP)


class TestAppSettings(unittest.TestCase):
    def setUp(self) -> None:
        get_app_settings.cache_clear()
        self.addCleanup(get_app_settings.cache_clear)

    def test_mode_is_normalised(self) -> None:
        with mock.patch.dict(os.environ, {"APP_MODE": " Local "}):
            self.assertEqual(get_app_settings().mode, "local")

    def test_unknown_mode_is_rejected(self) -> None:
        with mock.patch.dict(os.environ, {"APP_MODE": "staging"}):
            with self.assertRaises(RuntimeError):
                get_app_settings()


if __name__ == "__main__":
    unittest.main()
