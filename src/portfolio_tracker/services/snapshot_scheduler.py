"""Background scheduler that takes the daily snapshots."""

import logging
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from portfolio_tracker.core.timezone import EASTERN_TZ, now_eastern, to_eastern
from portfolio_tracker.domain.models import PortfolioSnapshot
from portfolio_tracker.services.valuation_service import ValuationService

logger = logging.getLogger(__name__)

JOB_ID = "daily_snapshots"


class SnapshotScheduler:
    """
    Runs ``snapshot_all_portfolios`` once per US/Eastern day at a fixed time.

    Snapshot creation is idempotent, so a restart after the daily run has
    already happened only re-reads the stored snapshots.
    """

    def __init__(
        self,
        valuation_service: ValuationService,
        hour: int = 16,
        minute: int = 30,
        clock: Callable[[], datetime] = now_eastern,
    ):
        self._valuation = valuation_service
        self._hour = hour
        self._minute = minute
        self._clock = clock
        self._lock = Lock()
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_run_time(self) -> Optional[datetime]:
        """When the started scheduler fires next, or None when stopped."""
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    def trigger(self) -> CronTrigger:
        return CronTrigger(hour=self._hour, minute=self._minute, timezone=EASTERN_TZ.zone)

    def next_run_after(self, moment: datetime) -> datetime:
        """First scheduled run strictly after ``moment``."""
        after = to_eastern(moment) + timedelta(microseconds=1)
        return self.trigger().get_next_fire_time(None, after)

    def run_once(self) -> list[PortfolioSnapshot]:
        """Snapshot all portfolios for the current US/Eastern date."""
        today = to_eastern(self._clock()).date()
        logger.info("Running daily snapshots for %s", today.isoformat())
        snapshots = self._valuation.snapshot_all_portfolios(today)
        logger.info("Daily snapshots done: %d stored", len(snapshots))
        return snapshots

    def start(self) -> None:
        with self._lock:
            if self.running:
                logger.warning("Snapshot scheduler already running")
                return
            scheduler = BackgroundScheduler(timezone=EASTERN_TZ.zone)
            # One run per day even if several fire times were missed
            scheduler.add_job(
                func=self.run_once,
                trigger=self.trigger(),
                id=JOB_ID,
                name="Daily portfolio snapshots",
                replace_existing=True,
                coalesce=True,
                max_instances=1,
            )
            scheduler.start()
            self._scheduler = scheduler
        logger.info("Snapshot scheduler started (daily at %02d:%02d ET)", self._hour, self._minute)

    def stop(self, wait: bool = True) -> None:
        with self._lock:
            scheduler = self._scheduler
            self._scheduler = None
        if scheduler is not None:
            scheduler.shutdown(wait=wait)
            logger.info("Snapshot scheduler stopped")
