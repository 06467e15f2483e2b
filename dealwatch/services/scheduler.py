# dealwatch/services/scheduler.py

"""APScheduler driver for the background jobs."""

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from dealwatch.config.settings import Settings
from dealwatch.models.sync_status import SyncStatus
from dealwatch.services.deadline import Deadline
from dealwatch.services.job_runner import Job, JobRunner

logger = logging.getLogger("dealwatch.scheduler")


class Scheduler:
    """One interval job per name; each run executes in a worker thread.

    :meth:`stop` shuts the scheduler down and cancels the deadlines of runs
    already in flight, so they abort at their next storage call.
    """

    def __init__(
        self,
        runner: JobRunner,
        jobs: Mapping[str, Job],
        intervals: Mapping[str, float] | None = None,
    ) -> None:
        self.runner = runner
        self.jobs = dict(jobs)
        self.intervals = dict(intervals or Settings.JOB_INTERVALS)
        self._scheduler: AsyncIOScheduler | None = None
        self._active: set[Deadline] = set()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def run_once(self, name: str) -> SyncStatus:
        """Execute one job off the event loop."""
        deadline = Deadline(self.runner.timeout)
        self._active.add(deadline)
        try:
            return await asyncio.to_thread(
                self.runner.run, name, self.jobs[name], deadline
            )
        finally:
            self._active.discard(deadline)

    def _build(self) -> AsyncIOScheduler:
        scheduler = AsyncIOScheduler(
            event_loop=asyncio.get_running_loop(), timezone=timezone.utc,
        )
        now = datetime.now(timezone.utc)
        for name in self.jobs:
            interval = self.intervals.get(name)
            if interval is None or interval <= 0:
                logger.warning("Job %s has no interval, not scheduled", name)
                continue
            scheduler.add_job(
                self.run_once,
                IntervalTrigger(seconds=interval, timezone=timezone.utc),
                args=[name],
                id=name,
                name=f"Run {name}",
                max_instances=1,  # Prevent overlapping runs
                coalesce=True,
                next_run_time=now,
                replace_existing=True,
            )
            logger.info("Scheduling %s every %.0fs", name, interval)
        return scheduler

    def start(self) -> None:
        """Start the scheduler on the running loop; jobs fire immediately."""
        self._scheduler = self._build()
        self._scheduler.start()

    async def stop(self) -> None:
        """Shut the scheduler down and abort runs in flight."""
        for deadline in list(self._active):
            deadline.cancel()
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        # Let cancelled runs unwind before the loop closes
        await asyncio.sleep(0)
        self._scheduler = None
        logger.info("Scheduler stopped")

    async def serve(self, duration: float | None = None) -> None:
        """Run until cancelled, or for *duration* seconds."""
        self.start()
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            await self.stop()
