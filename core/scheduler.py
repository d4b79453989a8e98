"""
MEALY Daily Reset Scheduler

APScheduler setup for the midnight meal reset. Registered once at startup,
runs for the lifetime of the process.
"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from meal_service.models import MealStateEngine, get_meal_engine

logger = logging.getLogger(__name__)

DAILY_RESET_JOB_ID = "daily_meal_reset"


class SchedulerManager:
    """
    Manages APScheduler lifecycle and the daily reset job.
    """

    def __init__(self, engine_factory: Callable[[], MealStateEngine] = get_meal_engine) -> None:
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._engine_factory = engine_factory

    def initialize(self, timezone: str = "UTC") -> None:
        """
        Create the scheduler and register the reset job at 00:00 local time.

        Args:
            timezone: IANA zone the midnight boundary is computed in
        """
        if self.scheduler is not None:
            logger.warning("Scheduler already initialized")
            return

        self.scheduler = AsyncIOScheduler(
            timezone=timezone,
            job_defaults={
                "coalesce": True,  # Combine missed runs
                "max_instances": 1,
                "misfire_grace_time": 3600,
            },
        )

        self.scheduler.add_job(
            self.run_daily_reset,
            trigger=CronTrigger(hour=0, minute=0, timezone=timezone),
            id=DAILY_RESET_JOB_ID,
            name="Daily Meal Reset",
            replace_existing=True,
        )
        logger.info(f"🌙 Daily reset job registered for 00:00 ({timezone})")

    async def run_daily_reset(self) -> None:
        """Job entry point. Failures are logged, the schedule keeps running."""
        logger.info("Starting daily meal reset")
        try:
            summary = self._engine_factory().close_previous_day()
            logger.info(f"Daily meal reset finished: {summary.to_dict()}")
        except Exception as e:
            logger.error(f"Daily meal reset failed: {e}", exc_info=True)

    def start(self) -> None:
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized")

        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.start()
        logger.info("Scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler is None or not self.scheduler.running:
            return

        self.scheduler.shutdown(wait=wait)
        logger.info(f"Scheduler shutdown (wait={wait})")

    def get_jobs(self) -> list[dict[str, str]]:
        if self.scheduler is None:
            return []

        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(getattr(job, "next_run_time", None)),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]


# Global scheduler instance
scheduler_manager = SchedulerManager()
