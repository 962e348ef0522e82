"""Timestamped JSON files for raw and processed batches."""

from __future__ import annotations

import itertools
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from etl_pipeline.core.errors import FileSinkError
from etl_pipeline.core.logging import get_logger
from etl_pipeline.schemas.normalized import NormalizedRecord, ProcessedBatch

log = get_logger("storage.files")

RAW_DIR = "raw"
PROCESSED_DIR = "processed"

# Per-process, so two writes in the same microsecond still get distinct names
_sequence = itertools.count(1)
_sequence_lock = threading.Lock()


def _next_sequence() -> int:
    with _sequence_lock:
        return next(_sequence)


def batch_filename(prefix: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{prefix}_{now.strftime('%Y%m%d_%H%M%S_%f')}_{_next_sequence():06d}.json"


class FileSink:
    """Writes each batch to a new file; never appends, never overwrites."""

    def __init__(self, base_dir: str | Path = "data"):
        self.base_dir = Path(base_dir)

    def write_raw_batch(self, records: Iterable[Mapping[str, Any]]) -> Path:
        return self._write(RAW_DIR, "raw_data", [dict(record) for record in records])

    def write_normalized_batch(self, records: Iterable[NormalizedRecord]) -> Path:
        records = list(records)
        batch = ProcessedBatch(
            records=records,
            processed_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            total_records=len(records),
        )
        return self._write(PROCESSED_DIR, "processed_data", batch.model_dump())

    def _write(self, kind: str, prefix: str, payload: Any) -> Path:
        directory = self.base_dir / kind
        path = directory / batch_filename(prefix)

        try:
            directory.mkdir(parents=True, exist_ok=True)
            content = json.dumps(payload, indent=2, ensure_ascii=False)
            # "x": a name collision fails instead of clobbering an earlier batch
            with open(path, "x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError as exc:
            log.error(f"Refusing to overwrite existing batch file: {path}")
            raise FileSinkError(f"batch file already exists: {path}") from exc
        except (OSError, TypeError, ValueError) as exc:
            log.error(f"Failed to write {kind} batch to {path}: {exc}")
            raise FileSinkError(f"failed to write {path}: {exc}") from exc

        log.info(f"{kind.capitalize()} data saved successfully: {path}")
        return path
