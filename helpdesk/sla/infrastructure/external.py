"""
SLA Background Scheduling
==========================

APScheduler wrapper that drives the periodic dashboard work:
- refresh: recompute the cached view's time-dependent fields (no I/O)
- reload: fetch a fresh ticket batch from the store (optional, own cadence)
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

JobFunc = Callable[[], Awaitable[Any]]


class SLARefreshScheduler:
    """
    Wrapper for APScheduler for background SLA work.

    Every job runs with ``max_instances=1``: a tick that fires while the
    previous run is still in flight is skipped by APScheduler, so two
    refreshes never run against the same cached view.
    """

    REFRESH_JOB_ID = "sla_dashboard_refresh"
    RELOAD_JOB_ID = "sla_ticket_reload"

    def __init__(self, interval_seconds: int = 60):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: Dict[str, Dict[str, Any]] = {}
        self._running = False

    def add_job(
        self,
        job_func: JobFunc,
        job_id: str,
        name: str,
        interval_seconds: Optional[int] = None
    ) -> None:
        """Register an interval job; takes effect on the next start()."""
        seconds = interval_seconds if interval_seconds is not None else self.interval_seconds
        if seconds <= 0:
            logger.info("Job disabled by zero interval", extra={"job_id": job_id})
            return
        self._jobs[job_id] = {"func": job_func, "name": name, "seconds": seconds}

    async def start(self, job_func: Optional[JobFunc] = None) -> None:
        """
        Start the scheduler.

        Args:
            job_func: shorthand for registering the refresh job at the
                default interval
        """
        if self._running:
            logger.warning("SLA scheduler already running")
            return

        if job_func is not None:
            self.add_job(job_func, self.REFRESH_JOB_ID, "SLA Dashboard Refresh")

        if not self._jobs:
            logger.info("SLA scheduler has no jobs, not starting")
            return

        self._scheduler = AsyncIOScheduler()

        for job_id, job in self._jobs.items():
            self._scheduler.add_job(
                job["func"],
                "interval",
                seconds=job["seconds"],
                id=job_id,
                name=job["name"],
                misfire_grace_time=job["seconds"],
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )

        self._scheduler.start()
        self._running = True

        logger.info(
            "SLA scheduler started",
            extra={"jobs": {job_id: job["seconds"] for job_id, job in self._jobs.items()}}
        )

    async def stop(self) -> None:
        """
        Stop the scheduler.

        A run already in progress is allowed to finish; whatever it last
        published stays in place.
        """
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self._running = False
        logger.info("SLA scheduler stopped")

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running

    @property
    def job_ids(self) -> list:
        return list(self._jobs)
