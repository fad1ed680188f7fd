"""
Expiration Sweeper.

Background task that declines booking requests nobody answered within the
pending timeout and, when enabled, closes seated bookings whose service
window is over. It runs on a fixed interval for as long as the application
is up.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from tablebook.errors import InvalidTransition, NotFound
from tablebook.lifecycle import BookingLifecycle
from tablebook.schemas import BookingRecord, BookingStatus

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired: List[BookingRecord] = field(default_factory=list)
    completed: List[BookingRecord] = field(default_factory=list)
    skipped: int = 0


class ExpirationSweeper:
    """
    Periodically expires stale PENDING bookings.

    Args:
        lifecycle: Lifecycle controller used for every status change
        interval: Seconds between sweeps
        auto_complete: Also complete CONFIRMED/OCCUPIED bookings past their window
    """

    def __init__(
        self,
        lifecycle: BookingLifecycle,
        interval: float = 10.0,
        auto_complete: bool = False,
    ):
        self.lifecycle = lifecycle
        self.interval = interval
        self.auto_complete = auto_complete
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one sweep over all restaurants.

        Each booking is handled on its own: one that staff resolved in the
        meantime is counted as skipped and the sweep carries on.

        Args:
            now: Reference instant, defaults to the lifecycle clock

        Returns:
            SweepResult with the bookings that changed
        """
        now = self.lifecycle.current_time(now)
        result = SweepResult()

        for booking in self.lifecycle.store.all_pending():
            if not self.lifecycle.is_expired(booking, now):
                continue
            try:
                result.expired.append(self.lifecycle.expire(booking.id, now))
            except (InvalidTransition, NotFound) as e:
                result.skipped += 1
                logger.info(f"Skipped expiring booking {booking.id}: {e}")

        if self.auto_complete:
            seated = self.lifecycle.store.list_by_status(
                BookingStatus.CONFIRMED, BookingStatus.OCCUPIED
            )
            for booking in seated:
                if not self.lifecycle.is_finished(booking, now):
                    continue
                try:
                    result.completed.append(self.lifecycle.complete(booking.id, now=now))
                except (InvalidTransition, NotFound) as e:
                    result.skipped += 1
                    logger.info(f"Skipped completing booking {booking.id}: {e}")

        if result.expired or result.completed:
            logger.info(
                f"Sweep declined {len(result.expired)} expired and completed "
                f"{len(result.completed)} finished bookings"
            )
        return result

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self.sweep_once)
            except asyncio.CancelledError:
                raise
            except Exception:
                # retried on the next tick
                logger.exception("Expiration sweep failed")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"Expiration sweeper started, interval {self.interval}s")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Expiration sweeper stopped")
