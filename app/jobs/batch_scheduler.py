import asyncio
import logging
from app.config import config
from app.models.records import RecordProcessingError, RecordResult, RecordStatus, RowRecord

logger = logging.getLogger(__name__)


def failed_result(row: RowRecord, record_index: int, error: str, message: str) -> RecordResult:
    result = RecordResult(
        company_id=row.text("Company_GSID"),
        record_index=record_index,
        video_url=row.url("Video_URL"),
        invite_email=row.text("Invite_Email"),
    )
    result.fail(error, message)
    return result


class BatchScheduler:
    """
    Runs records in fixed-size batches: batches one after another,
    records inside a batch concurrently. Output order matches input order.
    """

    def __init__(self, processor, tracker=None, batch_size: int = None, inter_batch_delay: float = None, sleep=asyncio.sleep):
        if batch_size is not None and batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.processor = processor
        self.tracker = tracker
        self.batch_size = config.BATCH_SIZE if batch_size is None else batch_size
        self.inter_batch_delay = config.BATCH_DELAY_SECONDS if inter_batch_delay is None else inter_batch_delay
        self._sleep = sleep

    async def run(self, records: list[RowRecord], job_id: str = None) -> list[RecordResult]:
        total_batches = (len(records) + self.batch_size - 1) // self.batch_size
        logger.info(
            f"Starting batch processing for {len(records)} records: "
            f"{self.batch_size} records per batch, {self.inter_batch_delay}s between batches"
        )

        all_results: list[RecordResult] = []
        for batch_index in range(total_batches):
            start = batch_index * self.batch_size
            batch = records[start:start + self.batch_size]

            try:
                batch_results = await self._run_batch(batch, start, batch_index, total_batches, job_id)
            except Exception as e:
                logger.error(f"Batch {batch_index + 1} failed: {e}")
                batch_results = [
                    failed_result(row, start + offset, str(e), f"Batch processing failed: {e}")
                    for offset, row in enumerate(batch)
                ]
            all_results.extend(batch_results)

            if batch_index < total_batches - 1:
                await self._sleep(self.inter_batch_delay)

        return all_results

    async def _run_batch(self, batch, start: int, batch_index: int, total_batches: int, job_id: str = None):
        logger.info(f"Processing batch {batch_index + 1}/{total_batches} with {len(batch)} records")

        outcomes = await asyncio.gather(
            *(self._process_one(row, start + offset, job_id) for offset, row in enumerate(batch)),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        successful = sum(1 for r in outcomes if r.status == RecordStatus.SUCCESS)
        failed = sum(1 for r in outcomes if r.status == RecordStatus.FAILED)
        logger.info(f"Batch {batch_index + 1} completed: {successful} successful, {failed} failed")
        return list(outcomes)

    async def _process_one(self, row: RowRecord, record_index: int, job_id: str = None) -> RecordResult:
        try:
            result = await self.processor.process(row, record_index)
        except RecordProcessingError as e:
            result = e.result
        except Exception as e:
            logger.error(f"Error processing record {record_index}: {e}")
            result = failed_result(row, record_index, str(e), f"Error: {e}")

        if job_id and self.tracker:
            try:
                await self.tracker.record_progress(job_id)
            except Exception as e:
                logger.error(f"Could not record progress of record {record_index} for job {job_id}: {e}")
        return result
