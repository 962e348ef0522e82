"""Data Service - read-only queries over the pipeline tables."""

from __future__ import annotations

from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from etl_pipeline.models.processed import ProcessedData
from etl_pipeline.models.raw import RawData


class DataService:
    """Handles read queries - the pipeline itself never reads back."""

    def __init__(self, db: Session):
        self.db = db

    def get_raw_records(self, limit: int = 100, offset: int = 0) -> List[RawData]:
        """Raw rows in insertion order."""
        stmt = select(RawData).order_by(RawData.id.asc()).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def get_processed_records(
        self,
        user_id: int | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProcessedData]:
        """Normalized rows in insertion order, optionally for one user."""
        stmt = select(ProcessedData)
        if user_id is not None:
            stmt = stmt.where(ProcessedData.user_id == user_id)
        stmt = stmt.order_by(ProcessedData.id.asc()).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def count_raw(self) -> int:
        return self.db.execute(select(func.count()).select_from(RawData)).scalar() or 0

    def count_processed(self) -> int:
        return self.db.execute(select(func.count()).select_from(ProcessedData)).scalar() or 0
