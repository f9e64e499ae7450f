from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional
from app.schemas.jobs import CamelModel

class RecordResultResponse(BaseModel):
    Company_GSID: Optional[str] = None
    Video_URL: Optional[str] = None
    Invite_Email: Optional[str] = None
    status: str
    messages: list[str]
    recordIndex: int
    error: Optional[str] = None

class FileInfo(CamelModel):
    filename: str
    originalname: str
    size: int
    worksheet: str
    total_sheets: int
    available_sheets: list[str] = []
    hyperlinks: int = 0

class ProcessedResponse(CamelModel):
    success: bool
    message: str
    file: Optional[FileInfo] = None
    total_time: Optional[int] = None
    processed_data: list[RecordResultResponse]

class AsyncJobResponse(CamelModel):
    success: bool
    message: str
    job_id: str
    total_records: int
    estimated_time: int
    file: Optional[FileInfo] = None

class RecordsSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    cookie: str
    records: list[dict[str, Any]]
    run_async: bool = Field(False, alias="async")
