"""Health routes - liveness and readiness checks."""

from fastapi import APIRouter, Depends, Response

from etl_pipeline.api.deps import get_health_timeout, get_persistence
from etl_pipeline.schemas.api import HealthResponse, ReadyResponse
from etl_pipeline.storage.database import PersistenceSink

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    response: Response,
    persistence: PersistenceSink = Depends(get_persistence),
    timeout: float = Depends(get_health_timeout),
):
    """
    Health check endpoint for load balancer and Docker health checks.

    Returns 503 if the database is unreachable.
    """
    if await persistence.health_check(timeout=timeout):
        return HealthResponse(status="healthy", database="healthy")

    response.status_code = 503
    return HealthResponse(status="unhealthy", database="unhealthy")


@router.get("/ready", response_model=ReadyResponse)
async def readiness(
    response: Response,
    persistence: PersistenceSink = Depends(get_persistence),
    timeout: float = Depends(get_health_timeout),
):
    """
    Kubernetes/ELB readiness check, mirrors database reachability.
    """
    if await persistence.health_check(timeout=timeout):
        return ReadyResponse(status="ready")

    response.status_code = 503
    return ReadyResponse(status="not ready")
