import logging
import os
from typing import Optional, Union
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from app.api.routers.jobs import get_job_service
from app.config import config
from app.schemas.uploads import AsyncJobResponse, FileInfo, ProcessedResponse, RecordsSubmission
from app.services.ingestion_service import IngestionError, ingestion_service
from app.services.job_service import JobService, Submission

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(submission: Submission, message: str, file_info: FileInfo = None):
    if submission.run_async:
        return AsyncJobResponse(
            success=True,
            message="Async processing started",
            job_id=submission.job_id,
            total_records=submission.total_records,
            estimated_time=submission.estimated_time,
            file=file_info,
        )
    return ProcessedResponse(
        success=True,
        message=message,
        file=file_info,
        total_time=submission.total_time,
        processed_data=[r.to_wire() for r in submission.results],
    )


@router.post("/xlsxfileupload", response_model=Union[ProcessedResponse, AsyncJobResponse])
async def upload_workbook(
    file: UploadFile = File(...),
    url: Optional[str] = Form(None),
    cookie: Optional[str] = Form(None),
    worksheet: Optional[str] = Form(None),
    run_async: bool = Form(False, alias="async"),
    service: JobService = Depends(get_job_service),
):
    """Reads an Excel workbook and configures one Space per data row."""
    extension = os.path.splitext(file.filename or "")[1].lower()
    if extension not in config.ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only Excel files (.xlsx, .xlsm) are allowed")
    if not url or not cookie:
        raise HTTPException(status_code=400, detail="Missing 'url' or 'cookie' in request body")

    content = await file.read()
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File exceeds the 10MB upload limit")

    try:
        workbook = ingestion_service.read_workbook(content, worksheet)
    except IngestionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    file_info = FileInfo(
        filename=file.filename,
        originalname=file.filename,
        size=len(content),
        worksheet=workbook.worksheet,
        total_sheets=len(workbook.sheet_names),
        available_sheets=workbook.sheet_names,
        hyperlinks=workbook.hyperlink_count,
    )

    try:
        submission = await service.submit(workbook.records, url, cookie, run_async=run_async)
    except Exception as e:
        logger.exception("Excel upload handler error")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "An error occurred during Excel file processing.",
                "details": str(e),
            },
        )

    return _to_response(submission, "Excel file uploaded and processed successfully", file_info)


@router.post("/records", response_model=Union[ProcessedResponse, AsyncJobResponse])
async def submit_records(payload: RecordsSubmission, service: JobService = Depends(get_job_service)):
    """Processes row records that were already parsed by the caller."""
    if not payload.records:
        raise HTTPException(status_code=400, detail="No records submitted")

    records = ingestion_service.read_rows(payload.records)
    submission = await service.submit(records, payload.url, payload.cookie, run_async=payload.run_async)
    return _to_response(submission, "Records processed successfully")
