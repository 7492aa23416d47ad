"""
Beneficiary Status Reconciliation

Flips every beneficiary not yet ``completed`` (active or inactive) to
``completed`` once its progress says the program is done. The same
routine backs two triggers:

- the inline check run before every beneficiary request (see api.deps)
- StatusReconciliationScheduler, a daily cron-driven sweep

Each flip is a conditional UPDATE that re-checks the counters at write
time, so overlapping sweeps, or a sweep racing a distribution, converge on
the same result and repeating a sweep changes nothing.
"""

import asyncio
from typing import Callable, List, Optional
from datetime import datetime
from zoneinfo import ZoneInfo
import logging

from croniter import croniter
from sqlalchemy.orm import Session

from shisha.core.config import settings
from shisha.models.beneficiary import Beneficiary
from shisha.services.progress import is_complete

logger = logging.getLogger(__name__)


def reconcile_statuses(db: Session) -> List[int]:
    """
    Mark every beneficiary whose program is complete as completed

    Active and inactive beneficiaries are both candidates; completed rows
    are skipped.

    A failure on one beneficiary is logged and skipped; the rest of the
    sweep still runs and is committed.

    Returns:
        IDs of the beneficiaries flipped by this call
    """
    candidates = (
        db.query(Beneficiary)
        .filter(Beneficiary.status != "completed")
        .order_by(Beneficiary.id)
        .all()
    )
    completed_ids: List[int] = []

    for beneficiary in candidates:
        beneficiary_id = beneficiary.id
        try:
            if not is_complete(beneficiary):
                continue
            with db.begin_nested():
                flipped = (
                    db.query(Beneficiary)
                    .filter(
                        Beneficiary.id == beneficiary_id,
                        Beneficiary.status != "completed",
                        Beneficiary.total_program_days > 0,
                        Beneficiary.completed_days >= Beneficiary.total_program_days,
                    )
                    .update({Beneficiary.status: "completed"}, synchronize_session=False)
                )
            if flipped:
                completed_ids.append(beneficiary_id)
        except Exception as e:
            logger.error(f"Status reconciliation failed for beneficiary {beneficiary_id}: {e}", exc_info=True)

    db.commit()
    if completed_ids:
        # Rows loaded above still hold the pre-sweep status
        db.expire_all()
        logger.info(f"Marked {len(completed_ids)} beneficiaries as completed: {completed_ids}")
    return completed_ids


class StatusReconciliationScheduler:
    """
    Runs the reconciliation sweep on a cron schedule in a fixed time zone

    The clock and session factory are injectable so tests can drive
    run_pending() directly instead of waiting for midnight.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        cron_expression: Optional[str] = None,
        timezone: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        poll_seconds: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.cron_expression = cron_expression or settings.STATUS_SWEEP_CRON
        self.timezone = ZoneInfo(timezone or settings.STATUS_SWEEP_TIMEZONE)
        self.clock = clock or (lambda: datetime.now(self.timezone))
        self.poll_seconds = poll_seconds if poll_seconds is not None else settings.SCHEDULER_POLL_SECONDS

        self.next_run: Optional[datetime] = None
        self.last_run: Optional[datetime] = None
        self.last_result: Optional[List[int]] = None
        self.running = False
        self.scheduler_task = None

    def now(self) -> datetime:
        current = self.clock()
        if current.tzinfo is None:
            return current.replace(tzinfo=self.timezone)
        return current.astimezone(self.timezone)

    def compute_next_run(self, after: datetime) -> datetime:
        return croniter(self.cron_expression, after).get_next(datetime)

    def run_sweep(self) -> Optional[List[int]]:
        """
        Run one sweep in its own session

        Never raises: a failed sweep is logged and the schedule carries on.
        """
        logger.info("Running scheduled beneficiary status update")
        db = self.session_factory()
        try:
            completed_ids = reconcile_statuses(db)
            logger.info(f"Scheduled status update marked {len(completed_ids)} beneficiaries completed")
            return completed_ids
        except Exception as e:
            logger.error(f"Error in scheduled status update: {e}", exc_info=True)
            db.rollback()
            return None
        finally:
            db.close()

    def run_pending(self) -> bool:
        """
        Run the sweep if its scheduled time has passed

        The first call only computes the next run time.

        Returns:
            True if a sweep was attempted on this call
        """
        current_time = self.now()
        if self.next_run is None:
            self.next_run = self.compute_next_run(current_time)
            logger.info(f"Status sweep scheduled, next run: {self.next_run}")
            return False

        if current_time < self.next_run:
            return False

        self.last_result = self.run_sweep()
        self.last_run = current_time
        self.next_run = self.compute_next_run(current_time)
        logger.info(f"Next status sweep: {self.next_run}")
        return True

    async def start(self):
        """Start the scheduler loop on the running event loop"""
        if self.running:
            logger.warning("Status scheduler is already running")
            return

        self.running = True
        self.run_pending()
        self.scheduler_task = asyncio.create_task(self._scheduler_loop())
        logger.info(f"Status scheduler started ({self.cron_expression}, {self.timezone.key})")

    async def stop(self):
        """Stop the scheduler loop"""
        self.running = False

        if self.scheduler_task:
            self.scheduler_task.cancel()
            try:
                await self.scheduler_task
            except asyncio.CancelledError:
                pass
            self.scheduler_task = None

        logger.info("Status scheduler stopped")

    async def _scheduler_loop(self):
        while self.running:
            try:
                await asyncio.sleep(self.poll_seconds)
                # Database work stays off the event loop
                await asyncio.to_thread(self.run_pending)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in status scheduler loop: {e}", exc_info=True)
