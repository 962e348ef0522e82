"""Record validation and normalization.

Pure functions: nothing here logs or touches metrics. The cycle orchestrator
reports rejections.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, List, Mapping

from etl_pipeline.core.errors import ValidationRejection
from etl_pipeline.schemas.normalized import BatchResult, NormalizedRecord, Rejection

ID_FIELD = "userId"
TITLE_FIELD = "title"
BODY_FIELD = "body"

INVALID_IDENTIFIER = "missing or invalid identifier"
EMPTY_TITLE = "title cannot be empty"


def _as_identifier(value: Any) -> int:
    # bool is an int subclass but never a JSON number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationRejection(INVALID_IDENTIFIER)
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationRejection(INVALID_IDENTIFIER)
    # int() truncates toward zero
    return int(value)


def _as_text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def normalize(raw: Mapping[str, Any]) -> NormalizedRecord:
    """Validate one raw record; raise ValidationRejection if it must be dropped."""
    user_id = _as_identifier(raw.get(ID_FIELD))
    title = _as_text(raw.get(TITLE_FIELD))
    body = _as_text(raw.get(BODY_FIELD))

    if not title:
        raise ValidationRejection(EMPTY_TITLE)

    return NormalizedRecord(user_id=user_id, title=title, body=body)


def normalize_batch(raws: Iterable[Mapping[str, Any]]) -> BatchResult:
    """Normalize every record independently, keeping the order of successes."""
    records: List[NormalizedRecord] = []
    rejections: List[Rejection] = []

    for index, raw in enumerate(raws):
        try:
            records.append(normalize(raw))
        except ValidationRejection as exc:
            rejections.append(Rejection(index=index, reason=exc.reason))

    return BatchResult(records=records, rejections=rejections)
