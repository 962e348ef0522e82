"""Cycle orchestration tests"""

import httpx
import pytest

from etl_pipeline.core.errors import FileSinkError, NetworkError, PersistenceError, ProtocolError
from etl_pipeline.ingestion.fetcher import HTTPFetcher
from etl_pipeline.schemas.cycle import CycleState, Stage, StageStatus
from etl_pipeline.services.data_service import DataService
from etl_pipeline.services.etl_service import ETLService
from etl_pipeline.storage.files import FileSink
from etl_pipeline.tests.conftest import sample

RAW = [
    {"userId": 1, "title": "  A  ", "body": "  B  "},
    {"title": "x", "body": "y"},
    {"userId": 2, "title": "", "body": "z"},
]


class MockFetcher:
    def __init__(self, records=None, error=None):
        self.records = records if records is not None else list(RAW)
        self.error = error
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.records


class MockPersistence:
    def __init__(self, fail_raw=False, fail_normalized=False):
        self.fail_raw = fail_raw
        self.fail_normalized = fail_normalized
        self.raw = []
        self.normalized = []

    def persist_raw(self, records):
        if self.fail_raw:
            raise PersistenceError("raw insert failed")
        self.raw.append(list(records))
        return len(records)

    def persist_normalized(self, records):
        if self.fail_normalized:
            raise PersistenceError("processed insert failed")
        self.normalized.append(list(records))
        return len(records)


class MockFiles:
    def __init__(self, fail_raw=False, fail_normalized=False):
        self.fail_raw = fail_raw
        self.fail_normalized = fail_normalized
        self.raw = []
        self.normalized = []

    def write_raw_batch(self, records):
        if self.fail_raw:
            raise FileSinkError("disk full")
        self.raw.append(list(records))

    def write_normalized_batch(self, records):
        if self.fail_normalized:
            raise FileSinkError("disk full")
        self.normalized.append(list(records))


class TestETLService:
    """Stage ordering and failure policy"""

    @pytest.mark.asyncio
    async def test_full_cycle(self, metrics):
        persistence, files = MockPersistence(), MockFiles()
        service = ETLService(MockFetcher(), persistence, files, metrics)

        result = await service.run_cycle()

        assert not result.aborted
        assert result.final_state == CycleState.IDLE
        assert (result.fetched, result.normalized, result.rejected) == (3, 1, 2)
        assert result.stages[Stage.FETCH] == StageStatus.SUCCESS
        assert result.stages[Stage.NORMALIZE] == StageStatus.PARTIAL
        assert result.stages[Stage.NORMALIZED_FILE] == StageStatus.SUCCESS

        assert persistence.raw == [RAW]
        assert [r.model_dump() for r in persistence.normalized[0]] == [{"user_id": 1, "title": "A", "body": "B"}]
        assert files.raw == [RAW]
        assert len(files.normalized) == 1

        assert sample(metrics, "etl_records_processed_total") == 1
        assert sample(metrics, "etl_transformation_errors_total") == 2
        assert sample(metrics, "etl_database_writes_total") == 2
        assert sample(metrics, "etl_database_write_errors_total") == 0
        assert sample(metrics, "etl_data_saved_total") == 2
        assert service.state == CycleState.IDLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [NetworkError("timeout"), ProtocolError("500", status_code=500)])
    async def test_fetch_failure_aborts(self, metrics, error):
        persistence, files = MockPersistence(), MockFiles()
        service = ETLService(MockFetcher(error=error), persistence, files, metrics)

        result = await service.run_cycle()

        assert result.aborted
        assert result.aborted_at == Stage.FETCH
        assert result.stages[Stage.FETCH] == StageStatus.FAILED
        assert result.stages[Stage.RAW_PERSIST] == StageStatus.SKIPPED
        assert persistence.raw == [] and files.raw == []
        assert sample(metrics, "etl_database_writes_total") == 0
        assert service.state == CycleState.IDLE

    @pytest.mark.asyncio
    async def test_undecodable_response_aborts_at_fetch(self, metrics):
        def handler(request):
            return httpx.Response(200, content=b"not gzip", headers={"Content-Encoding": "gzip"})

        fetcher = HTTPFetcher("https://example.test/posts", metrics, transport=httpx.MockTransport(handler))
        persistence, files = MockPersistence(), MockFiles()
        service = ETLService(fetcher, persistence, files, metrics)

        result = await service.run_cycle()

        assert result.aborted_at == Stage.FETCH
        assert persistence.raw == [] and files.raw == []
        assert service.state == CycleState.IDLE

    @pytest.mark.asyncio
    async def test_raw_persist_failure_aborts(self, metrics):
        persistence, files = MockPersistence(fail_raw=True), MockFiles()
        service = ETLService(MockFetcher(), persistence, files, metrics)

        result = await service.run_cycle()

        assert result.aborted_at == Stage.RAW_PERSIST
        assert files.raw == []
        assert persistence.normalized == []
        assert result.stages[Stage.NORMALIZE] == StageStatus.SKIPPED
        assert sample(metrics, "etl_database_write_errors_total") == 1

    @pytest.mark.asyncio
    async def test_raw_file_failure_is_not_fatal(self, metrics):
        persistence, files = MockPersistence(), MockFiles(fail_raw=True)
        service = ETLService(MockFetcher(), persistence, files, metrics)

        result = await service.run_cycle()

        assert not result.aborted
        assert result.stages[Stage.RAW_FILE] == StageStatus.FAILED
        assert len(persistence.normalized) == 1
        assert len(files.normalized) == 1
        assert sample(metrics, "etl_data_saved_total") == 1

    @pytest.mark.asyncio
    async def test_normalized_persist_failure_aborts_before_file(self, metrics):
        persistence, files = MockPersistence(fail_normalized=True), MockFiles()
        service = ETLService(MockFetcher(), persistence, files, metrics)

        result = await service.run_cycle()

        assert result.aborted_at == Stage.NORMALIZED_PERSIST
        assert result.stages[Stage.RAW_FILE] == StageStatus.SUCCESS
        assert result.stages[Stage.NORMALIZED_FILE] == StageStatus.SKIPPED
        assert files.normalized == []

    @pytest.mark.asyncio
    async def test_normalized_file_failure_still_succeeds(self, metrics):
        service = ETLService(MockFetcher(), MockPersistence(), MockFiles(fail_normalized=True), metrics)

        result = await service.run_cycle()

        assert not result.aborted
        assert result.stages[Stage.NORMALIZED_FILE] == StageStatus.FAILED

    @pytest.mark.asyncio
    async def test_empty_fetch_runs_every_stage(self, metrics):
        persistence, files = MockPersistence(), MockFiles()
        service = ETLService(MockFetcher(records=[]), persistence, files, metrics)

        result = await service.run_cycle()

        assert not result.aborted
        assert all(status == StageStatus.SUCCESS for status in result.stages.values())
        assert persistence.raw == [[]] and persistence.normalized == [[]]


class TestETLServiceWithStore:
    """Cycle against the real sinks"""

    @pytest.mark.asyncio
    async def test_cycle_lands_in_store_and_files(self, metrics, persistence, session, tmp_path):
        service = ETLService(MockFetcher(), persistence, FileSink(tmp_path / "data"), metrics)

        result = await service.run_cycle()

        assert not result.aborted
        data = DataService(session)
        assert [row.data for row in data.get_raw_records()] == RAW
        processed = data.get_processed_records()
        assert [(p.user_id, p.title, p.body) for p in processed] == [(1, "A", "B")]
        assert len(list((tmp_path / "data" / "raw").iterdir())) == 1
        assert len(list((tmp_path / "data" / "processed").iterdir())) == 1
