import asyncio
import logging
import time
import uuid
from typing import Optional
from app.config import config
from app.jobs.job_store import InMemoryJobStore, JobState, JobStore

logger = logging.getLogger(__name__)


class JobTracker:
    """
    Progress, results and lifetime of asynchronous batch runs.
    Every read-modify-write of a job happens under one lock, so concurrent
    record completions never lose an increment.
    Cancelled or expired jobs stay gone: late updates for them are dropped.
    """

    def __init__(self, store: JobStore = None, max_age_seconds: int = None, clock=time.time):
        self.store = store or InMemoryJobStore()
        self.max_age_seconds = config.JOB_MAX_AGE_SECONDS if max_age_seconds is None else max_age_seconds
        self._clock = clock
        self._lock = asyncio.Lock()

    def _new_job_id(self) -> str:
        return f"job_{int(self._clock() * 1000)}_{uuid.uuid4().hex[:9]}"

    def create_job(self, total_records: int) -> str:
        job_id = self._new_job_id()
        self.store.create(JobState(job_id=job_id, total_records=total_records, start_time=self._clock()))
        logger.info(f"Created job {job_id} for {total_records} records")
        return job_id

    def get_status(self, job_id: str) -> Optional[tuple[JobState, Optional[dict]]]:
        job = self.store.get(job_id)
        if job is None:
            return None
        return job, self.store.get_result(job_id)

    def cancel(self, job_id: str) -> bool:
        # In-flight work keeps running; its result is simply discarded.
        cancelled = self.store.delete(job_id)
        if cancelled:
            logger.info(f"Job {job_id} cancelled")
        return cancelled

    async def record_progress(self, job_id: str):
        async with self._lock:
            job = self.store.get(job_id)
            if job is None or job.completed or job.processed_count >= job.total_records:
                return

            job.processed_count += 1
            # 100 is reserved for completion
            job.progress = min(round(job.processed_count / job.total_records * 100), 99)
            elapsed = self._clock() - job.start_time
            remaining = job.total_records - job.processed_count
            job.estimated_time_remaining = max(round(remaining / job.processed_count * elapsed), 0)
            self.store.update(job)

    async def complete(self, job_id: str, result: dict) -> bool:
        async with self._lock:
            job = self.store.get(job_id)
            if job is None:
                logger.info(f"Dropping result of unknown job {job_id} (cancelled or expired)")
                return False
            if job.completed:
                return False

            job.completed = True
            job.progress = 100
            job.status = "Completed successfully!"
            job.estimated_time_remaining = 0
            self.store.update(job)
            self.store.save_result(job_id, result)
            return True

    async def fail(self, job_id: str, error: str) -> bool:
        async with self._lock:
            job = self.store.get(job_id)
            if job is None or job.completed:
                return False

            job.completed = True
            job.progress = 100
            job.status = "Failed"
            job.estimated_time_remaining = 0
            self.store.update(job)
            self.store.save_result(job_id, {"success": False, "error": error})
            return True

    def sweep(self) -> int:
        """Removes jobs older than the max age, finished or not."""
        cutoff = self._clock() - self.max_age_seconds
        removed = 0
        for job in self.store.list_jobs():
            if job.start_time < cutoff:
                self.store.delete(job.job_id)
                removed += 1
                logger.info(f"Cleaned up old job: {job.job_id}")
        return removed

    def active_jobs(self) -> int:
        return sum(1 for job in self.store.list_jobs() if not job.completed)
