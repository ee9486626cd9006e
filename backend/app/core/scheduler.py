"""
Background scheduler for periodic tasks.

This module manages background jobs that run on a schedule:
- Purge expired sessions: every SESSION_CLEANUP_INTERVAL_HOURS (6 by default)
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from app.core.config import settings
from app.core.database import SessionLocal
from app.storage.session_store import session_store
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def purge_expired_sessions_job():
    """
    Background job that deletes session rows past either expiry bound.

    Expired rows are already rejected on refresh; this only keeps the table
    from growing with sessions nobody will come back for.
    """
    db = SessionLocal()
    try:
        deleted = session_store.purge_expired(db)
        if deleted > 0:
            logger.info(f"Session cleanup completed: Deleted {deleted} expired session(s)")
        else:
            logger.info("Session cleanup completed: No expired sessions found")
    except SQLAlchemyError:
        logger.exception("Error in purge_expired_sessions_job")
        db.rollback()
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    This should be called when the FastAPI app starts.
    """
    if not settings.SESSION_CLEANUP_ENABLED:
        logger.info("Session cleanup disabled; background scheduler not started.")
        return

    if not scheduler.running:
        scheduler.add_job(
            purge_expired_sessions_job,
            trigger=IntervalTrigger(hours=settings.SESSION_CLEANUP_INTERVAL_HOURS),
            id="purge_expired_sessions",
            name="Purge expired sessions",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            "Background scheduler started. Session cleanup scheduled every %d hours.",
            settings.SESSION_CLEANUP_INTERVAL_HOURS,
        )


def stop_scheduler():
    """
    Stop the background scheduler.

    This should be called when the FastAPI app shuts down.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
