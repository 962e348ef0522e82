"""Raw table is schema-less: one JSON payload per upstream record, stored verbatim."""

from typing import Any

from sqlalchemy import DateTime, Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from etl_pipeline.models.base import Base, JSONPayload


class RawData(Base):
    __tablename__ = "raw_data"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    data: Mapped[Any] = mapped_column(JSONPayload, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (Index("idx_raw_data_created_at", "created_at"),)
