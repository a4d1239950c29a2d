"""APScheduler integration for FastAPI.

Runs the DCA sweep as a single interval job.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hyperdca.config import settings

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

DCA_JOB_ID = "dca_sweep"


async def run_dca_sweep() -> list[dict]:
    """One sweep over due plans with components built from settings."""
    from hyperdca.engine.dca_job import run_due_plans
    from hyperdca.services.components import build_executor, build_store

    store = build_store()
    return await run_due_plans(store, build_executor(store))


def add_dca_job(interval_minutes: int):
    """Add or replace the DCA sweep job."""
    if scheduler.get_job(DCA_JOB_ID):
        scheduler.remove_job(DCA_JOB_ID)

    scheduler.add_job(
        run_dca_sweep,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id=DCA_JOB_ID,
        name="DCA sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )
    logger.info(f"Scheduled DCA sweep every {interval_minutes}m")


def start_scheduler():
    """Start the scheduler with the DCA sweep job."""
    if not settings.dca_scheduler_enabled:
        logger.info("DCA scheduler disabled")
        return

    add_dca_job(settings.dca_sweep_interval_minutes)
    scheduler.start()
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")


def stop_scheduler():
    """Shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    """Return current scheduler state for the API."""
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "job_count": len(jobs),
        "jobs": [
            {
                "id": j.id,
                "name": j.name,
                "next_run": str(j.next_run_time) if j.next_run_time else None,
                "trigger": str(j.trigger),
            }
            for j in jobs
        ],
    }
