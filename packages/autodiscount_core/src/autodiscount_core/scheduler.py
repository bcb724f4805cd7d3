"""
Sweep Scheduler

Owns the recurring timer that triggers price oscillation sweeps.
The timer is an explicit component: nothing is registered at import time,
the owner calls start() and stop(). Manual runs go through run_now(), which
uses the same engine and therefore the same per-shop locks.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from autodiscount_core.contracts.results import SweepResult
from autodiscount_core.engines.oscillation import PriceOscillationEngine

logger = logging.getLogger(__name__)

DEFAULT_CRON = "0 0 * * *"  # every day at midnight
JOB_ID = "autodiscount-sweep"


class SweepScheduler:
    """
    Daily sweep timer.

    Holds a single APScheduler job. Missed runs are coalesced into one and
    a run never overlaps the previous one from the same timer.
    """

    def __init__(
        self,
        engine: PriceOscillationEngine,
        cron: str = DEFAULT_CRON,
        timezone: str = "UTC",
        misfire_grace_time: int = 3600,
    ):
        self.engine = engine
        self.cron = cron
        self.timezone = timezone
        self.trigger = CronTrigger.from_crontab(cron, timezone=timezone)
        self._scheduler = BackgroundScheduler(
            timezone=timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": misfire_grace_time,
            },
        )
        self.last_result: SweepResult | None = None

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Register the sweep job and start the timer thread."""
        if self.running:
            logger.debug("Sweep scheduler already running")
            return

        self._scheduler.add_job(
            self._run_job,
            trigger=self.trigger,
            id=JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            f"Sweep scheduler started (cron='{self.cron}', timezone={self.timezone})",
            extra={"next_run": str(self.next_run_time())},
        )

    def stop(self, wait: bool = True) -> None:
        """Stop the timer; with wait=True an in-flight sweep finishes first."""
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("Sweep scheduler stopped")

    def next_run_time(self):
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def run_now(self) -> SweepResult:
        """Run a sweep immediately on the calling thread."""
        logger.info("Manual sweep requested")
        return self._run_job()

    def _run_job(self) -> SweepResult:
        result = self.engine.run_scheduler_sync()
        self.last_result = result
        return result
