"""
Background tasks for the daily expiration check.

These can be triggered via:
  1. Celery beat (NOTIFY_CRON in NOTIFY_TIMEZONE, 09:00 daily by default)
  2. The manual trigger endpoint (POST /api/v1/notifications/trigger)
  3. ``run_expiration_check()`` from a shell or the ``expiration_check.manual`` task

Overlapping runs are safe: the notification log only ever accepts one row per
(item, threshold kind).
"""

import asyncio
import logging

from celery import Celery
from celery.schedules import crontab

from foodtracker.config import get_settings
from foodtracker.database import SessionLocal
from foodtracker.services.expiration_notifier import ExpirationNotifier
from foodtracker.services.item_store import ItemStore
from foodtracker.services.notification_log import NotificationLog
from foodtracker.services.push import PushDispatcher

logger = logging.getLogger(__name__)

settings = get_settings()


def parse_cron(expr: str) -> crontab:
    """Parse a 5-field cron expression (minute hour day month day-of-week)."""
    parts = expr.split()
    if len(parts) != 5:
        raise ValueError(f"Invalid cron expression: {expr!r}")
    minute, hour, day_of_month, month_of_year, day_of_week = parts
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


async def _run_expiration_check(session_factory=SessionLocal, dispatcher: PushDispatcher | None = None) -> dict:
    db = session_factory()
    try:
        async with (dispatcher or PushDispatcher()) as push:
            notifier = ExpirationNotifier(
                items=ItemStore(db),
                log=NotificationLog(db),
                dispatcher=push,
                concurrency=settings.NOTIFY_CONCURRENCY,
            )
            summary = await notifier.run()
        return summary.as_dict()
    finally:
        db.close()


def run_expiration_check(session_factory=SessionLocal, dispatcher: PushDispatcher | None = None) -> dict:
    """Synchronous entry point shared by the Celery tasks."""
    return asyncio.run(_run_expiration_check(session_factory, dispatcher))


celery_app = Celery(
    "foodtracker_tasks",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)
celery_app.conf.timezone = settings.NOTIFY_TIMEZONE
celery_app.conf.enable_utc = False


@celery_app.task(name="expiration_check.daily")
def celery_daily_expiration_check():
    """Celery task: the scheduled daily run."""
    logger.info("Running daily expiration notification check")
    try:
        result = run_expiration_check()
    except Exception:
        logger.exception("Daily expiration notification check failed")
        raise
    logger.info(f"Daily expiration notification check done: {result['sent']} sent, {result['failed']} failed")
    return result


@celery_app.task(name="expiration_check.manual")
def celery_manual_expiration_check():
    """Celery task: an operator-requested run."""
    logger.info("Manually triggered expiration notification check")
    return run_expiration_check()


celery_app.conf.beat_schedule = {
    "daily-expiration-check": {
        "task": "expiration_check.daily",
        "schedule": parse_cron(settings.NOTIFY_CRON),
    },
}
