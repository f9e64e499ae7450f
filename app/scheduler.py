from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from app.services.job_service import job_service
from app.config import config
import logging

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

async def sweep_expired_jobs(service=None):
    service = service or job_service
    try:
        removed = service.tracker.sweep()
        if removed:
            logger.info(f"Job sweep removed {removed} expired jobs.")
    except Exception as e:
        logger.error(f"Error during job sweep: {str(e)}")

def start_scheduler():
    """
    Starts the hourly sweep of expired jobs.
    """
    if not scheduler.running:
        scheduler.add_job(
            sweep_expired_jobs,
            CronTrigger.from_crontab(config.JOB_SWEEP_SCHEDULE),
            id="job_sweep",
            replace_existing=True,
            misfire_grace_time=3600,
            coalesce=True
        )
        scheduler.start()
        logger.info(f"APScheduler started: job sweep scheduled with: {config.JOB_SWEEP_SCHEDULE}")

def stop_scheduler():
    """
    Shuts down the scheduler.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped.")
