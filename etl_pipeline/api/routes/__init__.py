from etl_pipeline.api.routes.health import router as health_router
from etl_pipeline.api.routes.metrics import router as metrics_router

__all__ = ["health_router", "metrics_router"]
