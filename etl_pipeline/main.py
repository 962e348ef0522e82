import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from etl_pipeline.api.routes import health_router, metrics_router
from etl_pipeline.core.config import settings
from etl_pipeline.core.db import create_db_engine
from etl_pipeline.core.errors import PersistenceError
from etl_pipeline.core.logging import configure_logging, get_logger
from etl_pipeline.core.metrics import PipelineMetrics
from etl_pipeline.services.etl_service import build_etl_service
from etl_pipeline.services.scheduler import Scheduler
from etl_pipeline.storage.database import PersistenceSink

configure_logging()
log = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting ETL Pipeline Service in {settings.ENV.upper()} mode")
    log.info(f"Configuration loaded: API={settings.API_URL}, Interval={settings.FETCH_INTERVAL}s")

    metrics = PipelineMetrics()

    # Startup: the process must not come up without its store
    try:
        persistence = await asyncio.to_thread(
            PersistenceSink, create_db_engine(settings.DATABASE_URL), settings.AUTO_MIGRATE
        )
    except PersistenceError:
        log.exception("Failed to connect to database")
        raise
    log.info("Connected to database")

    app.state.metrics = metrics
    app.state.persistence = persistence
    app.state.health_check_timeout = settings.HEALTH_CHECK_TIMEOUT_SECONDS

    scheduler: Optional[Scheduler] = None
    scheduler_task: Optional[asyncio.Task] = None
    if settings.ETL_ENABLED:
        service = build_etl_service(persistence, metrics)
        scheduler = Scheduler(service.run_cycle, settings.FETCH_INTERVAL, metrics)
        scheduler_task = asyncio.create_task(scheduler.run())
    else:
        log.info("Scheduled ETL is disabled (ETL_ENABLED=false)")

    yield

    # Shutdown
    log.info("Shutdown signal received, stopping ETL pipeline...")
    if scheduler is not None and scheduler_task is not None:
        scheduler.stop()
        await scheduler_task

    persistence.close()
    log.info("ETL Pipeline Service stopped gracefully")


app = FastAPI(
    title="ETL Pipeline",
    description="Scheduled fetch, normalize and load of a JSON endpoint",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.include_router(health_router)
app.include_router(metrics_router)


def run() -> None:
    """Console entry point. uvicorn handles SIGINT/SIGTERM."""
    log.info(f"Starting HTTP server on port {settings.SERVER_PORT}")
    uvicorn.run(
        app,
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_config=None,
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_SECONDS,
    )


if __name__ == "__main__":
    run()
