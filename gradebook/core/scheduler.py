"""APScheduler configuration for recurring tasks."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from gradebook.core.config import settings
from gradebook.core.database import SessionLocal
from gradebook.services.summary import SummaryService

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


def get_db_session() -> Session:
    """Get a database session for scheduler jobs."""
    return SessionLocal()


def reconcile_summaries_job():
    """
    Job to recompute every exam summary from current marks.
    Repairs summaries left stale by a failed recomputation.
    """
    logger.info("Starting summary reconciliation job")

    db = get_db_session()
    try:
        result = SummaryService(db).reconcile()
        db.commit()
        logger.info(
            f"Reconciled {result.summaries_recomputed} summaries, "
            f"re-ranked {result.cohorts_ranked} cohorts"
        )
    except Exception as e:
        logger.exception(f"Error reconciling summaries: {e}")
        db.rollback()
    finally:
        db.close()


def init_scheduler() -> AsyncIOScheduler:
    """Initialize and configure the scheduler."""
    global scheduler

    scheduler = AsyncIOScheduler(
        timezone=settings.SCHEDULER_TIMEZONE,
        job_defaults={
            "coalesce": True,  # Combine missed runs
            "max_instances": 1,
            "misfire_grace_time": 3600,
        }
    )

    scheduler.add_job(
        reconcile_summaries_job,
        trigger=CronTrigger(hour=settings.RECONCILE_HOUR, minute=settings.RECONCILE_MINUTE),
        id="reconcile_summaries",
        name="Reconcile exam summaries",
        replace_existing=True,
    )

    logger.info(
        f"Scheduler initialized with summary reconciliation at "
        f"{settings.RECONCILE_HOUR:02d}:{settings.RECONCILE_MINUTE:02d} ({settings.SCHEDULER_TIMEZONE})"
    )
    return scheduler


def start_scheduler():
    """Start the scheduler."""
    global scheduler
    if scheduler is None:
        scheduler = init_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")


def stop_scheduler():
    """Stop the scheduler gracefully."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped")
