"""
app/scheduler/jobs.py

APScheduler-based scheduler for periodic warehouse data-quality scoring.

Schedule (UTC)
--------------
  daily_data_quality: DATA_QUALITY_SCHEDULE_HOUR:DATA_QUALITY_SCHEDULE_MINUTE
                      every day (01:00 by default)

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_data_quality_settings
from app.services.pipeline_service import run_data_quality_checks

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Daily data-quality scoring
# ---------------------------------------------------------------------------


def run_daily_data_quality() -> None:
    """
    Score the trailing window of fact rows and persist one metric per check.
    Failures are logged and never propagate into the scheduler thread.
    """
    logger.info("Scheduler: daily_data_quality starting")
    try:
        report = run_data_quality_checks()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: daily_data_quality failed: %s", exc)
        return

    logger.info(
        "Scheduler: daily_data_quality complete date=%s overall=%s",
        report.check_date.isoformat(),
        report.overall_status,
    )


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points. No job is registered when
    ``DATA_QUALITY_SCHEDULE_ENABLED`` is false.
    """
    settings = get_data_quality_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if settings.schedule_enabled:
        scheduler.add_job(
            run_daily_data_quality,
            trigger="cron",
            hour=settings.schedule_hour,
            minute=settings.schedule_minute,
            id="daily_data_quality",
            name="Daily data-quality checks",
            replace_existing=True,
            misfire_grace_time=3600,
        )

    return scheduler
