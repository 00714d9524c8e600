"""
Recurring job triggers.

The scheduler only needs register/deregister; the concrete primitive
(APScheduler cron job here) stays swappable, and tests plug in a fake.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from core.config import settings
import logging

logger = logging.getLogger(__name__)


class JobTrigger(ABC):
    """Registers a coroutine callback against a schedule expression"""

    @abstractmethod
    def register(self, callback: Callable[[], Awaitable[Any]], schedule: str) -> str:
        """
        Arm the callback.

        Returns:
            Handle to pass to deregister()
        """
        pass

    @abstractmethod
    def deregister(self, handle: str) -> None:
        """Disarm a previously registered callback; unknown handles are ignored"""
        pass

    def shutdown(self) -> None:
        """Release any underlying resources"""
        pass


class CronJobTrigger(JobTrigger):
    """
    Cron trigger backed by APScheduler's AsyncIOScheduler.

    The APScheduler instance is started lazily on first registration, so it
    binds to the running event loop (FastAPI lifespan or asyncio.run).
    """

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        timezone: Optional[str] = None
    ):
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.timezone)

    def register(self, callback: Callable[[], Awaitable[Any]], schedule: str) -> str:
        trigger = CronTrigger.from_crontab(schedule, timezone=self.timezone)
        job = self.scheduler.add_job(
            callback,
            trigger=trigger,
            id=f"etl_job_{uuid.uuid4().hex[:12]}",
            name="University ETL",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        if not self.scheduler.running:
            self.scheduler.start()

        logger.info(
            f"Registered cron job {job.id} ({schedule} {self.timezone}), "
            f"next run at {getattr(job, 'next_run_time', None)}"
        )
        return job.id

    def deregister(self, handle: str) -> None:
        try:
            self.scheduler.remove_job(handle)
            logger.info(f"Removed cron job {handle}")
        except JobLookupError:
            logger.debug(f"Cron job {handle} was not registered")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)


def next_fire_time(
    cron_expression: str,
    timezone: str,
    now: Optional[datetime] = None
) -> Optional[datetime]:
    """Next occurrence of a crontab expression after `now`"""
    trigger = CronTrigger.from_crontab(cron_expression, timezone=timezone)
    if now is None:
        now = datetime.now(trigger.timezone)
    return trigger.get_next_fire_time(None, now)
