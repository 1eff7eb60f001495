import asyncio
import logging
from datetime import datetime, timedelta, timezone

from ..config import JOB_MAX_AGE_SEC, RETENTION_DELAY_SEC, SWEEP_INTERVAL_SEC
from .models import JobStatus
from .registry import JobRegistry
from .storage import ArtifactStore

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """Deletes a job's artifacts and record once they are no longer needed.

    Two triggers: a fixed delay after a download finished streaming
    (`schedule`), and a periodic sweep of jobs older than `max_age_sec`
    that were never downloaded. Deletion is best-effort.
    """

    def __init__(
        self,
        registry: JobRegistry,
        artifacts: ArtifactStore,
        *,
        delay_sec: float = RETENTION_DELAY_SEC,
        max_age_sec: float = JOB_MAX_AGE_SEC,
        interval_sec: float = SWEEP_INTERVAL_SEC,
    ) -> None:
        self._registry = registry
        self._artifacts = artifacts
        self._delay = delay_sec
        self._max_age = max_age_sec
        self._interval = interval_sec
        self._pending: dict[str, asyncio.Task] = {}
        self._sweep_task: asyncio.Task | None = None

    def schedule(self, job_id: str) -> None:
        """Arm delayed cleanup for a job; re-arming an armed job is a no-op."""
        if job_id in self._pending:
            return
        task = asyncio.get_running_loop().create_task(self._purge_later(job_id))
        self._pending[job_id] = task
        task.add_done_callback(lambda _t: self._pending.pop(job_id, None))

    async def _purge_later(self, job_id: str) -> None:
        await asyncio.sleep(self._delay)
        await asyncio.to_thread(self.purge, job_id)

    def purge(self, job_id: str) -> bool:
        job = self._registry.get(job_id)
        if job is None:
            return False
        self._artifacts.remove(job.input_path)
        self._artifacts.remove(job.output_path)
        self._artifacts.remove_job_outputs(job_id)
        self._registry.delete(job_id)
        logger.info("purged job %s (%s)", job_id, job.original_filename)
        return True

    def sweep_expired(self, now: datetime | None = None) -> list[str]:
        """Purge every job older than max age.

        A job still `converting` gets twice that before it is treated as
        abandoned and purged as well.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self._max_age)
        stuck_cutoff = now - timedelta(seconds=2 * self._max_age)
        expired = [
            job.id
            for job in self._registry.all_jobs()
            if job.created_at <= (stuck_cutoff if job.status == JobStatus.CONVERTING else cutoff)
        ]
        for job_id in expired:
            self.purge(job_id)
        return expired

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            expired = await asyncio.to_thread(self.sweep_expired)
            if expired:
                logger.info("max-age sweep purged %d job(s)", len(expired))

    async def start(self) -> None:
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        tasks = list(self._pending.values())
        if self._sweep_task is not None:
            tasks.append(self._sweep_task)
            self._sweep_task = None
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
