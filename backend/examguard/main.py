import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from examguard import __version__
from examguard.core.config import settings
from examguard.core.cache import cache
from examguard.core.database import create_db_and_tables
from examguard.core.exceptions import ServiceError, service_error_handler
from examguard.api.v1.api import api_router
from examguard.tasks.maintenance import run_exam_sweep

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="ExamGuard API",
    description="Proctored exam sessions, violation logging and risk scoring",
    version=__version__,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ServiceError, service_error_handler)

_background_tasks: set = set()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


async def schedule_periodic_tasks():
    """Run the expired-exam sweep on a fixed period inside the API process"""
    while True:
        await asyncio.sleep(settings.exam_sweep_interval_seconds)
        try:
            await run_in_threadpool(run_exam_sweep)
        except Exception as e:
            logger.error(f"Scheduled exam sweep failed: {e}", exc_info=True)


@app.on_event("startup")
async def startup_event():
    logger.info("Starting ExamGuard API...")

    create_db_and_tables()
    logger.info("Database initialized")

    if await cache.ahealth_check():
        logger.info("Cache connection established")
    else:
        logger.warning("Cache connection failed - running without cache")

    await run_in_threadpool(run_exam_sweep)

    if settings.exam_sweep_inprocess:
        task = asyncio.create_task(schedule_periodic_tasks())
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        logger.info(f"Exam sweep scheduled every {settings.exam_sweep_interval_seconds} seconds")

    logger.info("ExamGuard API startup completed")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down ExamGuard API...")

    for task in list(_background_tasks):
        task.cancel()

    try:
        await cache.aclose()
        logger.info("Cache connections closed")
    except Exception as e:
        logger.error(f"Error closing cache connections: {e}")


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": __version__}
