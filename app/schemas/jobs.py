from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Optional

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class JobStatusResponse(CamelModel):
    job_id: str
    total_records: int
    processed_count: int
    progress: int
    status: str
    start_time: int
    estimated_time_remaining: Optional[int] = None
    completed: bool
    result: Optional[dict[str, Any]] = None

class CancelJobResponse(BaseModel):
    success: bool
    message: str

class HealthResponse(CamelModel):
    status: str
    active_jobs: int
