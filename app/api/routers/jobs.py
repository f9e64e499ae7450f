from fastapi import APIRouter, HTTPException, Depends
from app.services.job_service import JobService, job_service
from app.schemas.jobs import CancelJobResponse, HealthResponse, JobStatusResponse

router = APIRouter()


def get_job_service() -> JobService:
    return job_service


@router.get("/job-status/{job_id}", response_model=JobStatusResponse)
async def get_status(job_id: str, service: JobService = Depends(get_job_service)):
    """Retrieves progress and, once finished, the result of an async job."""
    status = service.get_job_status(job_id)
    if not status:
        raise HTTPException(status_code=404, detail="Job not found")
    job, result = status
    return JobStatusResponse(**job.to_wire(), result=result)

@router.post("/cancel-job/{job_id}", response_model=CancelJobResponse)
async def cancel_job(job_id: str, service: JobService = Depends(get_job_service)):
    """Forgets a job. Records already in flight still finish against the remote API."""
    if not service.cancel_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    return CancelJobResponse(success=True, message="Job cancelled successfully")

@router.get("/health", response_model=HealthResponse)
async def health(service: JobService = Depends(get_job_service)):
    return HealthResponse(status="ok", active_jobs=service.tracker.active_jobs())
