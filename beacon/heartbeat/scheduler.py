"""
Sweep Scheduler

APScheduler-based timer that runs the sweep driver on a fixed interval.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from beacon.heartbeat.sweep import SweepDriver, SweepReport

logger = structlog.get_logger(__name__)

SWEEP_JOB_ID = "sweep"


class SweepScheduler:
    """
    Runs SweepDriver.run_once() every `interval_seconds`.

    Missed runs are coalesced and only one pass runs at a time, so a slow
    pass delays the next one instead of overlapping it.
    """

    def __init__(self, driver: SweepDriver, interval_seconds: int = 60) -> None:
        """
        Initialize the scheduler.

        Args:
            driver: Sweep driver to run
            interval_seconds: Seconds between sweep passes
        """
        if interval_seconds < 1:
            raise ValueError("interval_seconds must be at least 1")
        self._driver = driver
        self._interval = interval_seconds
        self._scheduler: AsyncIOScheduler | None = None
        self._running = False
        self._current: asyncio.Task | None = None  # Scheduled pass in progress
        self.last_report: SweepReport | None = None

    def _create_scheduler(self) -> AsyncIOScheduler:
        """Create and configure the APScheduler instance."""
        jobstores = {
            "default": MemoryJobStore(),
        }
        executors = {
            "default": AsyncIOExecutor(),
        }
        job_defaults = {
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,  # Only one pass at a time
            "misfire_grace_time": self._interval,
        }

        return AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone="UTC",
        )

    async def start(self) -> None:
        """Start the scheduler; the first pass runs immediately."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting sweep scheduler", interval_seconds=self._interval)
        self._scheduler = self._create_scheduler()
        self._scheduler.add_job(
            self._run_sweep,
            trigger=IntervalTrigger(seconds=self._interval),
            id=SWEEP_JOB_ID,
            name="sweep",
            next_run_time=datetime.now(timezone.utc),
            replace_existing=True,
        )
        self._scheduler.start()
        self._running = True

    async def stop(self, timeout: float | None = None) -> None:
        """
        Stop the scheduler after the pass in progress, if any, has finished.

        Shutting down the executor cancels a running job, so the job is
        paused and its pass awaited first.

        Args:
            timeout: Maximum seconds to wait for the running pass
        """
        if not self._running or self._scheduler is None:
            return

        logger.info("Stopping sweep scheduler")
        self._scheduler.pause()
        if self._current is not None:
            logger.info("Waiting for sweep pass in progress")
            _, still_running = await asyncio.wait({self._current}, timeout=timeout)
            if still_running:
                logger.warning("Sweep pass still running, cancelling it", timeout=timeout)
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._running = False
        logger.info("Sweep scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    @property
    def interval_seconds(self) -> int:
        return self._interval

    def next_run_time(self) -> datetime | None:
        """When the next sweep pass is due."""
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None

    async def _run_sweep(self) -> None:
        """Called by APScheduler on every tick."""
        self._current = asyncio.current_task()
        try:
            self.last_report = await self._driver.run_once()
        except Exception as e:
            # run_once isolates entity failures; this catches anything else
            logger.error("Sweep pass failed", error=str(e))
        finally:
            self._current = None

    async def run_now(self) -> SweepReport:
        """Run a sweep pass immediately, outside the schedule."""
        logger.info("Manually triggering sweep")
        self.last_report = await self._driver.run_once()
        return self.last_report
