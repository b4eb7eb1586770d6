"""Out-of-band cancellation of generation jobs that stopped making progress."""
import asyncio
import logging
from datetime import timedelta
from typing import List, Optional

from examgen.db.base import JobRepository

logger = logging.getLogger(__name__)


class StuckJobReaper:
    """
    Fails PENDING/PROCESSING jobs whose ``updated_at`` is older than a threshold.

    Only job rows are touched; a pipeline still running such a job notices on its
    next guarded write and stops. An in-flight model call is not interrupted.
    """

    def __init__(self, jobs: JobRepository, stale_minutes: float = 5.0):
        self.jobs = jobs
        self.stale_minutes = stale_minutes

    @staticmethod
    def _message(threshold: timedelta) -> str:
        minutes = threshold.total_seconds() / 60
        return f"Job stalled for more than {minutes:g} minutes - auto-cancelled"

    async def reap(self, stale_threshold: Optional[timedelta] = None) -> List[str]:
        """
        Fail every active job not updated within the threshold.

        Returns:
            IDs of the jobs that were cancelled by this call
        """
        threshold = stale_threshold or timedelta(minutes=self.stale_minutes)
        reaped = await self.jobs.reap_stale(threshold, self._message(threshold))

        if reaped:
            logger.warning(f"Reaped {len(reaped)} stale jobs: {', '.join(reaped)}")
        else:
            logger.debug("No stale jobs found")
        return reaped

    async def run_periodically(self, interval_seconds: float):
        """Sweep forever; errors are logged and the loop continues."""
        logger.info(
            f"Stale job reaper started (every {interval_seconds:g}s, threshold {self.stale_minutes:g} min)"
        )
        while True:
            try:
                await self.reap()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Stale job sweep failed: {e}")
            await asyncio.sleep(interval_seconds)
