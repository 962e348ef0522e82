"""ETL entrypoint - run a single cycle without the HTTP server.

Usage:
    python -m etl_pipeline.etl_entrypoint
"""

import asyncio
import sys

from etl_pipeline.core.config import settings
from etl_pipeline.core.db import create_db_engine
from etl_pipeline.core.errors import PersistenceError
from etl_pipeline.core.logging import configure_logging, get_logger
from etl_pipeline.core.metrics import PipelineMetrics
from etl_pipeline.schemas.cycle import CycleResult
from etl_pipeline.services.etl_service import build_etl_service
from etl_pipeline.storage.database import PersistenceSink

logger = get_logger("etl_entrypoint")


async def run_once() -> CycleResult:
    """Run one cycle against the configured endpoint and store."""
    metrics = PipelineMetrics()
    persistence = PersistenceSink(create_db_engine(settings.DATABASE_URL), auto_migrate=settings.AUTO_MIGRATE)
    try:
        service = build_etl_service(persistence, metrics)
        return await service.run_cycle()
    finally:
        persistence.close()


def main() -> None:
    """Main entry point for a one-off ETL run."""
    configure_logging()
    logger.info("ETL Pipeline starting...")

    try:
        result = asyncio.run(run_once())
    except PersistenceError as exc:
        logger.error(f"Database connection failed: {exc}")
        sys.exit(1)

    logger.info(f"ETL Pipeline completed: {result.summary()}")

    # Exit with error code if the cycle aborted
    if result.aborted:
        sys.exit(1)


if __name__ == "__main__":
    main()
