import json
from dataclasses import dataclass, replace
from typing import Optional, Protocol
from sqlalchemy.orm import Session, sessionmaker
from app.models.jobs import Job


@dataclass
class JobState:
    job_id: str
    total_records: int
    start_time: float
    processed_count: int = 0
    progress: int = 0
    status: str = "Processing..."
    estimated_time_remaining: Optional[int] = None
    completed: bool = False

    def to_wire(self) -> dict:
        return {
            "jobId": self.job_id,
            "totalRecords": self.total_records,
            "processedCount": self.processed_count,
            "progress": self.progress,
            "status": self.status,
            "startTime": int(self.start_time * 1000),
            "estimatedTimeRemaining": self.estimated_time_remaining,
            "completed": self.completed,
        }


class JobStore(Protocol):
    def create(self, job: JobState) -> None: ...
    def get(self, job_id: str) -> Optional[JobState]: ...
    def update(self, job: JobState) -> None: ...
    def delete(self, job_id: str) -> bool: ...
    def list_jobs(self) -> list[JobState]: ...
    def save_result(self, job_id: str, result: dict) -> None: ...
    def get_result(self, job_id: str) -> Optional[dict]: ...


class InMemoryJobStore:
    """Process-local store; everything is lost on restart."""

    def __init__(self):
        self._jobs: dict[str, JobState] = {}
        self._results: dict[str, dict] = {}

    def create(self, job: JobState):
        self._jobs[job.job_id] = replace(job)

    def get(self, job_id: str) -> Optional[JobState]:
        job = self._jobs.get(job_id)
        return replace(job) if job else None

    def update(self, job: JobState):
        if job.job_id in self._jobs:
            self._jobs[job.job_id] = replace(job)

    def delete(self, job_id: str) -> bool:
        self._results.pop(job_id, None)
        return self._jobs.pop(job_id, None) is not None

    def list_jobs(self) -> list[JobState]:
        return [replace(job) for job in self._jobs.values()]

    def save_result(self, job_id: str, result: dict):
        if job_id in self._jobs:
            self._results[job_id] = result

    def get_result(self, job_id: str) -> Optional[dict]:
        return self._results.get(job_id)


class DatabaseJobStore:
    """Keeps job state in the `jobs` table so several workers can answer status queries."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_state(row: Job) -> JobState:
        return JobState(
            job_id=row.id,
            total_records=row.total_records,
            start_time=row.start_time,
            processed_count=row.processed_count,
            progress=row.progress,
            status=row.status,
            estimated_time_remaining=row.estimated_time_remaining,
            completed=bool(row.completed),
        )

    def create(self, job: JobState):
        with self.session_factory() as db:
            db.add(Job(
                id=job.job_id,
                total_records=job.total_records,
                processed_count=job.processed_count,
                progress=job.progress,
                status=job.status,
                start_time=job.start_time,
                estimated_time_remaining=job.estimated_time_remaining,
                completed=job.completed,
            ))
            db.commit()

    def _get_row(self, db: Session, job_id: str) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_id).first()

    def get(self, job_id: str) -> Optional[JobState]:
        with self.session_factory() as db:
            row = self._get_row(db, job_id)
            return self._to_state(row) if row else None

    def update(self, job: JobState):
        with self.session_factory() as db:
            row = self._get_row(db, job.job_id)
            if not row:
                return
            row.processed_count = job.processed_count
            row.progress = job.progress
            row.status = job.status
            row.estimated_time_remaining = job.estimated_time_remaining
            row.completed = job.completed
            db.commit()

    def delete(self, job_id: str) -> bool:
        with self.session_factory() as db:
            deleted = db.query(Job).filter(Job.id == job_id).delete()
            db.commit()
            return deleted > 0

    def list_jobs(self) -> list[JobState]:
        with self.session_factory() as db:
            return [self._to_state(row) for row in db.query(Job).all()]

    def save_result(self, job_id: str, result: dict):
        with self.session_factory() as db:
            row = self._get_row(db, job_id)
            if row:
                row.result = json.dumps(result)
                db.commit()

    def get_result(self, job_id: str) -> Optional[dict]:
        with self.session_factory() as db:
            row = self._get_row(db, job_id)
            if row and row.result:
                return json.loads(row.result)
            return None
