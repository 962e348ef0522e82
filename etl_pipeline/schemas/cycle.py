"""Per-cycle outcome summary"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class CycleState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PERSISTING_RAW = "persisting_raw"
    WRITING_RAW_FILE = "writing_raw_file"
    NORMALIZING = "normalizing"
    PERSISTING_NORMALIZED = "persisting_normalized"
    WRITING_NORMALIZED_FILE = "writing_normalized_file"
    ABORTED = "aborted"


class Stage(str, Enum):
    FETCH = "fetch"
    RAW_PERSIST = "raw_persist"
    RAW_FILE = "raw_file"
    NORMALIZE = "normalize"
    NORMALIZED_PERSIST = "normalized_persist"
    NORMALIZED_FILE = "normalized_file"


class StageStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"  # normalize only: some records rejected
    FAILED = "failed"
    SKIPPED = "skipped"  # not reached because an earlier stage aborted


def _all_skipped() -> Dict[Stage, StageStatus]:
    return {stage: StageStatus.SKIPPED for stage in Stage}


class CycleResult(BaseModel):
    """Ephemeral summary of one orchestration pass. Logged, never stored."""

    fetched: int = 0
    normalized: int = 0
    rejected: int = 0
    stages: Dict[Stage, StageStatus] = Field(default_factory=_all_skipped)
    final_state: CycleState = CycleState.IDLE
    aborted_at: Optional[Stage] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def aborted(self) -> bool:
        return self.final_state == CycleState.ABORTED

    def summary(self) -> str:
        stages = " ".join(f"{stage.value}={status.value}" for stage, status in self.stages.items())
        return f"fetched={self.fetched} normalized={self.normalized} rejected={self.rejected} | {stages}"
