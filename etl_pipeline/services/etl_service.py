"""One fetch -> persist -> normalize -> persist pass over the upstream source."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Protocol, Sequence

from etl_pipeline.core.config import settings
from etl_pipeline.core.errors import FetchError, FileSinkError, PersistenceError
from etl_pipeline.core.logging import get_logger
from etl_pipeline.core.metrics import PipelineMetrics
from etl_pipeline.ingestion.fetcher import HTTPFetcher
from etl_pipeline.schemas.cycle import CycleResult, CycleState, Stage, StageStatus
from etl_pipeline.schemas.normalized import NormalizedRecord
from etl_pipeline.storage.database import PersistenceSink
from etl_pipeline.storage.files import FileSink
from etl_pipeline.transform.normalizer import normalize_batch

log = get_logger("etl_service")


class Fetcher(Protocol):
    async def fetch(self) -> List[Dict[str, Any]]: ...


class _CycleAborted(Exception):
    def __init__(self, stage: Stage, error: Exception):
        super().__init__(str(error))
        self.stage = stage
        self.error = error


class ETLService:
    """Runs a single ETL cycle.

    Responsibilities:
    - Fetch raw records from the upstream endpoint
    - Store raw payloads (database is required, file is best effort)
    - Normalize and validate each record
    - Store normalized records (database is required, file is best effort)
    - Log the outcome and advance the pipeline metrics

    Blocking store and file writes run in worker threads so the HTTP
    surface keeps answering while a cycle is in progress.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        persistence: PersistenceSink,
        files: FileSink,
        metrics: PipelineMetrics,
    ):
        self.fetcher = fetcher
        self.persistence = persistence
        self.files = files
        self.metrics = metrics
        self.state = CycleState.IDLE

    async def run_cycle(self) -> CycleResult:
        log.info("========== Starting ETL Pipeline Cycle ==========")
        start = time.perf_counter()
        result = CycleResult()

        try:
            await self._run_stages(result)
        except _CycleAborted as aborted:
            self.state = CycleState.ABORTED
            result.stages[aborted.stage] = StageStatus.FAILED
            result.aborted_at = aborted.stage
            result.error = str(aborted.error)
        finally:
            result.final_state = self.state
            result.duration_seconds = time.perf_counter() - start
            self.state = CycleState.IDLE

        if result.aborted:
            log.error(
                f"========== ETL Pipeline Cycle Aborted at {result.aborted_at.value} "
                f"after {result.duration_seconds:.2f}s | {result.summary()} =========="
            )
        else:
            log.info(
                f"========== ETL Pipeline Cycle Completed in {result.duration_seconds:.2f}s "
                f"| {result.summary()} =========="
            )
        return result

    async def _run_stages(self, result: CycleResult) -> None:
        # 1. Extract
        self.state = CycleState.FETCHING
        try:
            raw_records = await self.fetcher.fetch()
        except FetchError as exc:
            log.error(f"Extraction failed: {exc}")
            raise _CycleAborted(Stage.FETCH, exc) from exc
        result.fetched = len(raw_records)
        result.stages[Stage.FETCH] = StageStatus.SUCCESS

        # 2. Raw data -> database (required downstream)
        self.state = CycleState.PERSISTING_RAW
        await self._persist(Stage.RAW_PERSIST, self.persistence.persist_raw, raw_records, "Raw")
        result.stages[Stage.RAW_PERSIST] = StageStatus.SUCCESS

        # 3. Raw data -> file (best effort)
        self.state = CycleState.WRITING_RAW_FILE
        result.stages[Stage.RAW_FILE] = await self._save_file(self.files.write_raw_batch, raw_records, "raw")

        # 4. Transform
        self.state = CycleState.NORMALIZING
        normalized = self._normalize(raw_records, result)

        # 5. Normalized data -> database
        self.state = CycleState.PERSISTING_NORMALIZED
        await self._persist(
            Stage.NORMALIZED_PERSIST, self.persistence.persist_normalized, normalized, "Processed"
        )
        result.stages[Stage.NORMALIZED_PERSIST] = StageStatus.SUCCESS

        # 6. Normalized data -> file (best effort)
        self.state = CycleState.WRITING_NORMALIZED_FILE
        result.stages[Stage.NORMALIZED_FILE] = await self._save_file(
            self.files.write_normalized_batch, normalized, "processed"
        )

        self.state = CycleState.IDLE

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------
    def _normalize(self, raw_records: List[Dict[str, Any]], result: CycleResult) -> List[NormalizedRecord]:
        log.info(f"Starting transformation of {len(raw_records)} records")
        batch = normalize_batch(raw_records)

        for rejection in batch.rejections:
            self.metrics.transformation_errors_total.inc()
            log.warning(f"Failed to transform record {rejection.index}: {rejection.reason}")
        self.metrics.records_processed_total.inc(len(batch.records))

        result.normalized = len(batch.records)
        result.rejected = len(batch.rejections)
        result.stages[Stage.NORMALIZE] = StageStatus.PARTIAL if batch.rejections else StageStatus.SUCCESS

        if batch.rejections:
            log.warning(f"Transformation completed with {len(batch.rejections)} errors")
        else:
            log.info(f"Transformation successful: {len(batch.records)} records processed")
        return batch.records

    async def _persist(self, stage: Stage, write, records: Sequence[Any], label: str) -> None:
        self.metrics.database_writes_total.inc()
        try:
            count = await asyncio.to_thread(write, records)
        except PersistenceError as exc:
            self.metrics.database_write_errors_total.inc()
            log.error(f"Failed to insert {label.lower()} data into database: {exc}")
            raise _CycleAborted(stage, exc) from exc
        log.info(f"{label} data inserted into database: {count} records")

    async def _save_file(self, write, records: Sequence[Any], label: str) -> StageStatus:
        try:
            await asyncio.to_thread(write, records)
        except FileSinkError as exc:
            log.error(f"Failed to save {label} data to file: {exc}")
            return StageStatus.FAILED
        self.metrics.data_saved_total.inc()
        return StageStatus.SUCCESS


def build_etl_service(persistence: PersistenceSink, metrics: PipelineMetrics) -> ETLService:
    """Wire the fetcher and file sink from settings around an existing store."""
    fetcher = HTTPFetcher(settings.API_URL, metrics, timeout=settings.FETCH_TIMEOUT_SECONDS)
    return ETLService(fetcher, persistence, FileSink(settings.DATA_DIR), metrics)
