"""
APScheduler-backed task scheduler.

Periodic jobs use coalesce=True and max_instances=1, so a slow engine cycle
is never run concurrently with itself and missed ticks collapse into one.
"""

import uuid
from datetime import timedelta, timezone
from typing import Callable

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED, JobEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..utils.time import utc_now
from .base import BaseTaskScheduler

logger = structlog.get_logger(__name__)


class BackgroundTaskScheduler(BaseTaskScheduler):
    """Runs jobs on APScheduler's BackgroundScheduler thread pool."""

    def __init__(self, max_workers: int = 4, misfire_grace_seconds: int = 30):
        self._scheduler = BackgroundScheduler(
            timezone=timezone.utc,
            executors={"default": {"type": "threadpool", "max_workers": max_workers}},
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": misfire_grace_seconds,
            },
        )
        self._scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
        self.logger = logger

    def _on_job_error(self, event: JobEvent) -> None:
        self.logger.error("Scheduled job raised", token=event.job_id, error=str(event.exception))

    def _on_job_missed(self, event: JobEvent) -> None:
        self.logger.warning("Scheduled job missed", token=event.job_id)

    def every(self, interval_seconds: float, fn: Callable[[], None], name: str = "") -> str:
        token = uuid.uuid4().hex
        self._scheduler.add_job(
            fn,
            trigger=IntervalTrigger(seconds=interval_seconds, timezone=timezone.utc),
            id=token,
            name=name or token,
        )
        self.logger.debug("Periodic job scheduled", token=token, name=name, interval_seconds=interval_seconds)
        return token

    def after(self, delay_seconds: float, fn: Callable[[], None], name: str = "") -> str:
        token = uuid.uuid4().hex
        run_at = utc_now() + timedelta(seconds=max(delay_seconds, 0.0))
        self._scheduler.add_job(
            fn,
            trigger=DateTrigger(run_date=run_at, timezone=timezone.utc),
            id=token,
            name=name or token,
        )
        self.logger.debug("One-shot job scheduled", token=token, name=name, run_at=run_at.isoformat())
        return token

    def cancel(self, token: str) -> bool:
        try:
            self._scheduler.remove_job(token)
        except JobLookupError:
            return False
        self.logger.debug("Job cancelled", token=token)
        return True

    def is_scheduled(self, token: str) -> bool:
        return self._scheduler.get_job(token) is not None

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            self.logger.info("Task scheduler started")

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            self.logger.info("Task scheduler stopped")
