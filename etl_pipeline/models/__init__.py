from etl_pipeline.models.base import Base
from etl_pipeline.models.raw import RawData
from etl_pipeline.models.processed import ProcessedData

__all__ = [
    "Base",
    "RawData",
    "ProcessedData",
]
