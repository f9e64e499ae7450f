from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.api.routers import jobs, uploads
from app.config import config
from app.database import engine, Base
from app.scheduler import start_scheduler, stop_scheduler
from app.services.job_service import job_service
import logging

logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT, datefmt=config.LOG_DATEFMT)

logger = logging.getLogger(__name__)

api_prefix = '/api'

# Job state only goes to the database when one is configured
if engine is not None:
    Base.metadata.create_all(bind=engine)

app = FastAPI(title="Spaces Bulk Configurator API")

@app.on_event("startup")
async def startup_event():
    start_scheduler()

@app.on_event("shutdown")
async def shutdown_event():
    stop_scheduler()
    await job_service.shutdown()

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal Server Error", "details": str(exc)},
    )

app.include_router(uploads.router, prefix=api_prefix, tags=["uploads"])
app.include_router(jobs.router, prefix=api_prefix, tags=["jobs"])
