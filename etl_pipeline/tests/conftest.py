"""Shared fixtures"""

import pytest

from etl_pipeline.core.db import create_db_engine, create_session_factory
from etl_pipeline.core.metrics import PipelineMetrics
from etl_pipeline.storage.database import PersistenceSink


@pytest.fixture
def metrics():
    """Fresh registry per test"""
    return PipelineMetrics()


@pytest.fixture
def sqlite_url(tmp_path):
    return f"sqlite:///{tmp_path / 'etl.db'}"


@pytest.fixture
def engine(sqlite_url):
    engine = create_db_engine(sqlite_url)
    yield engine
    engine.dispose()


@pytest.fixture
def persistence(engine):
    """Sink with the schema migrated to head"""
    return PersistenceSink(engine)


@pytest.fixture
def session(engine, persistence):
    factory = create_session_factory(engine)
    with factory() as session:
        yield session


def sample(metrics: PipelineMetrics, name: str) -> float:
    """Current value of a counter (``_total`` series) or histogram count."""
    value = metrics.registry.get_sample_value(name)
    return value or 0.0
