"""Celery tasks for alert checking."""

import asyncio
import logging
import time

from deepterm.core.config import settings
from deepterm.core.database import AsyncSessionLocal, engine
from deepterm.core.logging import setup_logging
from deepterm.core.redis_client import run_lock
from deepterm.schemas.alert_check import AlertCheckResults
from deepterm.services.alert_service import ALERT_CHECK_LOCK, alert_service
from deepterm.tasks.celery_app import celery_app

setup_logging()
logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async code in sync context."""
    try:
        loop = asyncio.get_event_loop()
        if loop.is_running():
            # Create new loop if current is running
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            try:
                return loop.run_until_complete(coro)
            finally:
                loop.close()
        return loop.run_until_complete(coro)
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(coro)
        finally:
            loop.close()


async def _check_alerts() -> dict:
    start = time.perf_counter()
    results = AlertCheckResults()

    async with run_lock(ALERT_CHECK_LOCK, settings.ALERT_RUN_LOCK_TTL) as acquired:
        if not acquired:
            logger.info("Alert check skipped: another run holds the lock")
            return {"success": True, "skipped": True, "results": results.to_dict()}

        try:
            async with AsyncSessionLocal() as db:
                try:
                    await alert_service.check_all_alerts(db, results)
                except Exception:
                    await db.rollback()
                    raise
        finally:
            # Pooled connections are bound to this task's event loop
            await alert_service.close()
            await engine.dispose()

    return {
        "success": True,
        "results": results.to_dict(),
        "duration": int((time.perf_counter() - start) * 1000),
    }


@celery_app.task(name="deepterm.tasks.alerts.check_all_alerts")
def check_all_alerts():
    """Check all active stock and portfolio alerts and send notifications."""
    logger.info("Starting alert check for all users...")

    result = run_async(_check_alerts())

    summary = result["results"]
    logger.info(
        f"Alert check completed: "
        f"{summary['stockAlerts']['checked']} stock alerts checked "
        f"({summary['stockAlerts']['triggered']} triggered), "
        f"{summary['portfolioAlerts']['checked']} portfolio alerts checked "
        f"({summary['portfolioAlerts']['triggered']} triggered), "
        f"{len(summary['errors'])} errors"
    )
    return result
