import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from core.config import settings
from core.exceptions import ConcurrencyError, error_message
from ingestion.runner import ETLRunner
from ingestion.triggers import CronJobTrigger, JobTrigger, next_fire_time
from schemas.etl import RunOutcome, SchedulerStatus, TriggerType
from schemas.normalized import utc_now

logger = logging.getLogger(__name__)


class SchedulerState:
    """
    Process-wide scheduler state.

    `executing` is the only gate for pipeline runs; it is only ever flipped
    through execution(), which releases it on every exit path.
    """

    def __init__(self, history_limit: int = 10):
        self.enabled = False
        self.executing = False
        self.history: List[RunOutcome] = []
        self.history_limit = history_limit

    @contextmanager
    def execution(self) -> Iterator["SchedulerState"]:
        # Check-and-set has no await in between, so it is atomic on the loop
        if self.executing:
            raise ConcurrencyError("ETL already running")
        self.executing = True
        try:
            yield self
        finally:
            self.executing = False

    def record(self, outcome: RunOutcome) -> None:
        """Prepend an outcome, keeping most-recent-first order and the cap"""
        self.history.insert(0, outcome)
        del self.history[self.history_limit:]

    def recent(self, limit: int) -> List[RunOutcome]:
        return list(self.history[:limit])


class ETLScheduler:
    def __init__(
        self,
        runner: Optional[ETLRunner] = None,
        trigger: Optional[JobTrigger] = None,
        cron_expression: Optional[str] = None,
        timezone: Optional[str] = None,
        history_limit: Optional[int] = None,
        status_history_limit: Optional[int] = None
    ):
        self.runner = runner or ETLRunner()
        self.cron_expression = cron_expression or settings.SCHEDULER_CRON
        self.timezone = timezone or settings.SCHEDULER_TIMEZONE
        self.trigger = trigger or CronJobTrigger(timezone=self.timezone)
        self.state = SchedulerState(
            history_limit=history_limit if history_limit is not None else settings.HISTORY_LIMIT
        )
        self.status_history_limit = (
            status_history_limit if status_history_limit is not None
            else settings.STATUS_HISTORY_LIMIT
        )
        self._job_id: Optional[str] = None

    def start(self):
        """Arm the timed trigger"""
        if self._job_id is not None:
            logger.warning("Scheduler already running")
            return

        self._job_id = self.trigger.register(self._run_scheduled, self.cron_expression)
        self.state.enabled = True
        logger.info("ETL Scheduler started")

    def stop(self):
        """Disarm the timed trigger; a run already in flight keeps going"""
        if self._job_id is None:
            return

        self.trigger.deregister(self._job_id)
        self._job_id = None
        self.state.enabled = False
        logger.info("ETL Scheduler stopped")

    def shutdown(self):
        self.stop()
        self.trigger.shutdown()

    async def _run_scheduled(self) -> Optional[RunOutcome]:
        """Job fired by the timed trigger"""
        if self.state.executing:
            logger.warning("ETL already running, skipping scheduled run")
            return None

        with self.state.execution():
            return await self._execute(TriggerType.SCHEDULED)

    async def run_manual(self) -> RunOutcome:
        """
        Run the pipeline now.

        Returns:
            The recorded outcome, successful or not

        Raises:
            ConcurrencyError: If a run is already in flight
        """
        if self.state.executing:
            logger.warning("Manual ETL rejected: a run is already in flight")

        with self.state.execution():
            return await self._execute(TriggerType.MANUAL)

    async def _execute(self, trigger_type: TriggerType) -> RunOutcome:
        start = time.perf_counter()

        try:
            result = await self.runner.run_once()
        except Exception as e:
            outcome = RunOutcome(
                timestamp=utc_now(),
                success=False,
                duration_ms=int((time.perf_counter() - start) * 1000),
                error_message=error_message(e),
                trigger_type=trigger_type
            )
            logger.error(f"{trigger_type.value.capitalize()} ETL failed: {outcome.error_message}")
        else:
            outcome = RunOutcome(
                timestamp=utc_now(),
                success=True,
                duration_ms=int((time.perf_counter() - start) * 1000),
                records_loaded=result["records_loaded"],
                trigger_type=trigger_type
            )
            logger.info(
                f"{trigger_type.value.capitalize()} ETL completed: {outcome.records_loaded} records"
            )

        self.state.record(outcome)
        return outcome

    @property
    def history(self) -> List[RunOutcome]:
        return list(self.state.history)

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            is_running=self.state.enabled,
            is_executing=self.state.executing,
            history=self.state.recent(self.status_history_limit),
            next_execution=self.next_execution()
        )

    def next_execution(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Next time the configured cron fires (informational)"""
        return next_fire_time(self.cron_expression, self.timezone, now)
