"""API dependencies"""

from fastapi import Request

from etl_pipeline.core.metrics import PipelineMetrics
from etl_pipeline.storage.database import PersistenceSink


def get_persistence(request: Request) -> PersistenceSink:
    """Persistence sink built in the application lifespan"""
    return request.app.state.persistence


def get_metrics(request: Request) -> PipelineMetrics:
    """Shared metrics registry"""
    return request.app.state.metrics


def get_health_timeout(request: Request) -> float:
    return getattr(request.app.state, "health_check_timeout", 2.0)
