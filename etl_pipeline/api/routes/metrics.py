"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Depends, Response

from etl_pipeline.api.deps import get_metrics
from etl_pipeline.core.metrics import PipelineMetrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics(pipeline_metrics: PipelineMetrics = Depends(get_metrics)) -> Response:
    return Response(content=pipeline_metrics.render(), media_type=pipeline_metrics.content_type)
