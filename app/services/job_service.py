import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional
from app.config import config
from app.database import SessionLocal
from app.jobs.batch_scheduler import BatchScheduler
from app.jobs.job_store import DatabaseJobStore, InMemoryJobStore
from app.jobs.rate_limiter import RateLimiter
from app.jobs.record_processor import RecordProcessor
from app.jobs.tracker import JobTracker
from app.models.records import RecordResult, RecordStatus, RowRecord
from app.services.slack_service import SlackService, slack_service
from app.services.spaces_client import SpacesClient

logger = logging.getLogger(__name__)


def build_statistics(results: list[RecordResult]) -> dict:
    return {
        "total": len(results),
        "successful": sum(1 for r in results if r.status == RecordStatus.SUCCESS),
        "partial": sum(1 for r in results if r.status == RecordStatus.PARTIAL),
        "failed": sum(1 for r in results if r.status == RecordStatus.FAILED),
    }


@dataclass
class Submission:
    run_async: bool
    total_records: int
    job_id: Optional[str] = None
    estimated_time: Optional[int] = None
    results: list[RecordResult] = field(default_factory=list)
    total_time: Optional[int] = None


class JobService:
    """
    Entry point for record submissions. Small or synchronous submissions run inline;
    large asynchronous ones become tracked jobs running as supervised background tasks.
    """

    def __init__(
        self,
        tracker: JobTracker = None,
        rate_limiter: RateLimiter = None,
        notifier: SlackService = None,
        client_factory=None,
        async_threshold: int = None,
        batch_size: int = None,
        inter_batch_delay: float = None,
        sleep=asyncio.sleep,
    ):
        self.tracker = tracker or JobTracker(build_job_store())
        self.rate_limiter = rate_limiter or RateLimiter(config.RATE_LIMIT_PER_SECOND)
        self.notifier = notifier
        self.client_factory = client_factory or self._default_client
        self.async_threshold = config.ASYNC_THRESHOLD if async_threshold is None else async_threshold
        self.batch_size = config.BATCH_SIZE if batch_size is None else batch_size
        self.inter_batch_delay = config.BATCH_DELAY_SECONDS if inter_batch_delay is None else inter_batch_delay
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task] = {}

    def _default_client(self, base_url: str, cookie: str) -> SpacesClient:
        return SpacesClient(base_url, cookie, self.rate_limiter)

    async def submit(self, records: list[RowRecord], base_url: str, cookie: str, run_async: bool = False) -> Submission:
        if run_async and len(records) > self.async_threshold:
            job_id = self.start_job(records, base_url, cookie)
            return Submission(
                run_async=True,
                total_records=len(records),
                job_id=job_id,
                estimated_time=len(records) * config.SECONDS_PER_RECORD_ESTIMATE,
            )

        logger.info(f"Starting synchronous batch processing for {len(records)} records")
        results, total_time = await self.process_records(records, base_url, cookie)
        return Submission(run_async=False, total_records=len(records), results=results, total_time=total_time)

    async def process_records(self, records: list[RowRecord], base_url: str, cookie: str, job_id: str = None):
        started = time.monotonic()
        async with self.client_factory(base_url, cookie) as client:
            scheduler = BatchScheduler(
                RecordProcessor(client),
                tracker=self.tracker,
                batch_size=self.batch_size,
                inter_batch_delay=self.inter_batch_delay,
                sleep=self._sleep,
            )
            results = await scheduler.run(records, job_id=job_id)

        total_time = round(time.monotonic() - started)
        stats = build_statistics(results)
        logger.info(
            f"Batch processing completed in {total_time}s: {stats['successful']} successful, "
            f"{stats['partial']} partial, {stats['failed']} failed"
        )
        return results, total_time

    def start_job(self, records: list[RowRecord], base_url: str, cookie: str) -> str:
        job_id = self.tracker.create_job(len(records))
        logger.info(f"Starting async batch processing for {len(records)} records with job ID: {job_id}")
        self._notify("🔄 Spaces Job Started", "Running", f"Job ID: {job_id}\nRecords: {len(records)}")

        task = asyncio.create_task(self._run_job(job_id, records, base_url, cookie))
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_task_done(job_id, t))
        return job_id

    def _on_task_done(self, job_id: str, task: asyncio.Task):
        self._tasks.pop(job_id, None)
        if task.cancelled():
            logger.warning(f"Background task for job {job_id} was cancelled")
        elif task.exception() is not None:
            logger.error(f"Background task for job {job_id} crashed: {task.exception()}")

    async def _run_job(self, job_id: str, records: list[RowRecord], base_url: str, cookie: str):
        try:
            results, total_time = await self.process_records(records, base_url, cookie, job_id=job_id)
        except Exception as e:
            logger.exception(f"Async job {job_id} failed")
            if await self.tracker.fail(job_id, str(e)):
                self._notify("❌ Spaces Job Failed", "Failed", f"Job ID: {job_id}\nError: {e}")
            return

        statistics = build_statistics(results)
        stored = await self.tracker.complete(job_id, {
            "success": True,
            "processedData": [r.to_wire() for r in results],
            "totalTime": total_time,
            "statistics": statistics,
        })
        if stored:
            self._notify("✅ Spaces Job Completed", "Completed", f"Job ID: {job_id}\nFinished in {total_time}s", statistics)

    def _notify(self, title: str, status: str, message: str, statistics: dict = None):
        if self.notifier:
            self.notifier.send_job_status(title, status, message, statistics)

    def get_job_status(self, job_id: str):
        return self.tracker.get_status(job_id)

    def cancel_job(self, job_id: str) -> bool:
        return self.tracker.cancel(job_id)

    def running_jobs(self) -> list[str]:
        return list(self._tasks)

    async def wait_for(self, job_id: str):
        task = self._tasks.get(job_id)
        if task:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self):
        for task in list(self._tasks.values()):
            task.cancel()
        await asyncio.gather(*self._tasks.values(), return_exceptions=True)


def build_job_store():
    if SessionLocal is not None:
        return DatabaseJobStore(SessionLocal)
    return InMemoryJobStore()


job_service = JobService(notifier=slack_service)
