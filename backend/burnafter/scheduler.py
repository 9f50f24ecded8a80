"""Background scheduler for periodic expired-secret cleanup."""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from burnafter.config import settings
from burnafter.database import SessionLocal
from burnafter.logging_config import get_logger
from burnafter.services.secret_service import run_cleanup
from burnafter.services.secret_store import SqlSecretStore

logger = get_logger(__name__)

scheduler = BackgroundScheduler()


def cleanup_job() -> int:
    """Delete expired secrets. Failures are logged; the next run retries."""
    db = SessionLocal()
    try:
        return run_cleanup(SqlSecretStore(db))
    except Exception as e:
        logger.error("cleanup_failed", error=str(e), exc_info=True)
        return 0
    finally:
        db.close()


def start_scheduler() -> None:
    """Start the background scheduler."""
    scheduler.add_job(
        cleanup_job,
        trigger=IntervalTrigger(minutes=settings.cleanup_interval_minutes),
        id="cleanup_expired_secrets",
        replace_existing=True,
        # Overlapping runs are harmless but pointless
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("scheduler_started", interval_minutes=settings.cleanup_interval_minutes)


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("scheduler_stopped")
