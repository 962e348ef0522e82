"""Error taxonomy for the pipeline stages."""

from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for stage failures that end a cycle or a side channel."""


class FetchError(PipelineError):
    """Base class for fetch stage failures."""


class NetworkError(FetchError):
    """Connection failure or timeout talking to the upstream source."""


class ProtocolError(FetchError):
    """Upstream answered with a non-success status code."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(FetchError):
    """Response body is not a JSON array of objects."""


class PersistenceError(PipelineError):
    """Store write or connectivity failure."""


class FileSinkError(PipelineError):
    """Batch file could not be written."""


class ValidationRejection(Exception):
    """A single record was dropped during normalization.

    Not a system error: the batch keeps going and the caller counts it.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
