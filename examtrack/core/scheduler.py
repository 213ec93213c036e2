"""APScheduler configuration for periodic jobs."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from examtrack.core.config import settings
from examtrack.core.database import SessionLocal
from examtrack.services.notification import NotificationService

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


def get_db_session() -> Session:
    """Get a database session for scheduler jobs."""
    return SessionLocal()


def send_exam_reminders_job():
    """
    Job to remind students of exams starting soon.
    Runs every hour; each exam is reminded once.
    """
    logger.info("Starting exam reminder job")

    db = get_db_session()
    try:
        service = NotificationService(db)
        count = service.send_due_reminders(settings.EXAM_REMINDER_HOURS)
        db.commit()
        logger.info(f"Sent reminders for {count} exams")
    except Exception as e:
        logger.exception(f"Error sending exam reminders: {e}")
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
            "max_instances": 1,  # Only one instance of each job at a time
            "misfire_grace_time": 900,
        }
    )

    scheduler.add_job(
        send_exam_reminders_job,
        trigger=IntervalTrigger(hours=1),
        id="send_exam_reminders",
        name="Send exam reminders",
        replace_existing=True,
    )

    logger.info("Scheduler initialized with exam reminder job (%s)", settings.SCHEDULER_TIMEZONE)
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
