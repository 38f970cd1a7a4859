"""
app/scheduler/jobs.py

APScheduler-based housekeeping for staged import batches.

Batch expiry is detected lazily on access, so this job only bounds memory:
it evicts batches nobody confirmed before their TTL and drops tombstones
older than the configured retention.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_bulk_import_settings
from app.services.bulk_import_service import BulkImportService, get_bulk_import_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: expired batch purge
# ---------------------------------------------------------------------------


def run_purge_expired_batches(service: BulkImportService | None = None) -> int:
    """
    Evict expired batches from the registry. Never raises into the scheduler.
    """
    import_service = service or get_bulk_import_service()
    try:
        return import_service.purge_expired_batches()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: purge_expired_batches failed: %s", exc)
        return 0


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler(
    *,
    service: BulkImportService | None = None,
    interval_seconds: int | None = None,
) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    interval = interval_seconds or get_bulk_import_settings().purge_interval_seconds
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_purge_expired_batches,
        trigger="interval",
        seconds=interval,
        kwargs={"service": service},
        id="purge_expired_batches",
        name="Expired import batch purge",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )

    return scheduler
