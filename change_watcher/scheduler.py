"""Drive a :class:`~change_watcher.watcher.ChangeWatcher` from APScheduler."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .watcher import ChangeWatcher


logger = logging.getLogger(__name__)

# 20 polls per second, the cadence the default reload threshold assumes.
DEFAULT_POLL_INTERVAL = 0.05


class PollScheduler:
    """Call :meth:`ChangeWatcher.process_events` on a fixed interval.

    A scheduler passed in by the caller is left running on :meth:`stop`; one
    created here is shut down with the job.
    """

    job_id = "change_watcher.poll"

    def __init__(
        self,
        watcher: ChangeWatcher,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        scheduler: Optional[BackgroundScheduler] = None,
    ) -> None:
        self.watcher = watcher
        self.interval = interval
        self._owns_scheduler = scheduler is None
        self.scheduler = scheduler or BackgroundScheduler()

    def start(self) -> None:
        self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.interval),
            id=self.job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info("Polling %s every %ss", self.watcher.root, self.interval)

    def tick(self) -> None:
        self.watcher.process_events()

    def stop(self) -> None:
        if self.scheduler.get_job(self.job_id) is not None:
            self.scheduler.remove_job(self.job_id)
        if self._owns_scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=True)

    @property
    def running(self) -> bool:
        return self.scheduler.running and self.scheduler.get_job(self.job_id) is not None


__all__ = ["DEFAULT_POLL_INTERVAL", "PollScheduler"]
