"""Fixed-delay scheduler driving the polling cycles."""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from .processor import CycleProcessor
from .utils.status import CycleResult


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchedulerLoop:
    """
    Run one cycle at startup, then one cycle per interval until told to stop.

    Each cycle schedules the next one ``interval`` after it has finished,
    so cycles never overlap and a slow cycle only delays the following one.
    Scheduled cycles run on a single worker thread; the calling thread
    waits in start() until a cycle asks to stop or stop() is called.
    """

    def __init__(
        self,
        processor: CycleProcessor,
        interval: timedelta,
        logger: logging.Logger,
        scheduler: Optional[BaseScheduler] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Initialize scheduler loop.

        Args:
            processor: Cycle processor invoked on every tick
            interval: Delay between the end of one cycle and the start of the next
            logger: Logger instance
            scheduler: Optional APScheduler instance (default: background, one worker)
            clock: Source of the current time, used to compute the next run
        """
        self.processor = processor
        self.interval = interval
        self.logger = logger
        self.clock = clock
        self.scheduler = scheduler or BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            timezone=timezone.utc
        )
        self.exit_code: Optional[int] = None
        self.cycles = 0
        self._stopped = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def start(self) -> int:
        """
        Run the initial cycle, then block until a cycle or stop() ends the loop.

        Returns:
            int: Process exit code decided by the last cycle (0 when stopped externally)
        """
        self.logger.debug("running initial metrics cycle", extra={"event": "initial"})
        self.run_cycle()

        if not self.stopped:
            self.scheduler.start()
            try:
                self._stopped.wait()
            finally:
                self.shutdown()

        return self.exit_code if self.exit_code is not None else 0

    def run_cycle(self) -> CycleResult:
        """Run one cycle and either schedule the next or stop."""
        self.cycles += 1

        try:
            result = self.processor.process()
        except Exception as e:
            self.logger.error(
                "metrics cycle crashed",
                exc_info=True,
                extra={"event": "crashed", "error": str(e)}
            )
            result = CycleResult.proceed()

        if result.should_stop:
            self.exit_code = result.exit_code
            self.stop()
        elif not self.stopped:
            self.schedule_next()

        return result

    def schedule_next(self) -> datetime:
        """Add a one-shot job ``interval`` from now."""
        run_date = self.clock() + self.interval
        self.scheduler.add_job(
            self.run_cycle,
            trigger=DateTrigger(run_date=run_date, timezone=timezone.utc),
            name='Metrics Cycle',
            misfire_grace_time=None  # A late cycle still runs
        )
        self.logger.debug(
            "next metrics cycle scheduled",
            extra={"event": "scheduled", "run_date": run_date.isoformat()}
        )
        return run_date

    def stop(self) -> None:
        """Ask start() to return; no further cycles are scheduled."""
        self._stopped.set()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
