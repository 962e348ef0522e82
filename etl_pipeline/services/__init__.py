# Services package
from etl_pipeline.services.data_service import DataService
from etl_pipeline.services.etl_service import ETLService, build_etl_service
from etl_pipeline.services.scheduler import Scheduler

__all__ = [
    "DataService",
    "ETLService",
    "build_etl_service",
    "Scheduler",
]
