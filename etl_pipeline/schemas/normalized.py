"""Normalized record schemas"""

from typing import List, NamedTuple

from pydantic import BaseModel, ConfigDict, Field


class NormalizedRecord(BaseModel):
    """Validated, trimmed record ready for durable storage."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: int
    title: str = Field(min_length=1)
    body: str = ""


class Rejection(NamedTuple):
    """Position of a dropped raw record in its batch and why it was dropped."""

    index: int
    reason: str


class BatchResult(NamedTuple):
    records: List[NormalizedRecord]
    rejections: List[Rejection]


class ProcessedBatch(BaseModel):
    """Envelope written to the processed file set."""

    records: List[NormalizedRecord]
    processed_at: str
    total_records: int
