"""HTTP source: one GET per cycle, JSON array of objects expected."""

from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional

import httpx

from etl_pipeline.core.errors import DecodeError, FetchError, NetworkError, ProtocolError
from etl_pipeline.core.logging import get_logger
from etl_pipeline.core.metrics import PipelineMetrics

log = get_logger("ingestion.fetcher")

DEFAULT_TIMEOUT_SECONDS = 30.0


def _reject_constant(name: str) -> Any:
    # json.loads accepts NaN and Infinity; standard JSON does not
    raise DecodeError(f"response body is not valid JSON: bare {name} literal")


class HTTPFetcher:
    """Fetches raw records from the configured endpoint. No retries."""

    def __init__(
        self,
        url: str,
        metrics: PipelineMetrics,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.metrics = metrics
        self.timeout = timeout
        self._transport = transport

    async def fetch(self) -> List[Dict[str, Any]]:
        self.metrics.api_requests_total.inc()
        log.info(f"Fetching data from API: {self.url}")

        start = time.perf_counter()
        try:
            response = await self._get()
        finally:
            duration = time.perf_counter() - start
            self.metrics.api_request_duration_seconds.observe(duration)

        try:
            records = self._decode(response)
        except FetchError as exc:
            self.metrics.api_requests_failed_total.inc()
            log.error(f"API response rejected: {exc}")
            raise

        log.info(f"API request successful: fetched {len(records)} records in {duration:.2f}s")
        return records

    async def _get(self) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.DecodingError as exc:
            # Content-Encoding says gzip/deflate/br but the bytes do not decompress
            self.metrics.api_requests_failed_total.inc()
            log.error(f"API response could not be decoded: {exc!r}")
            raise DecodeError(f"undecodable response body from {self.url}: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            self.metrics.api_requests_failed_total.inc()
            log.error(f"API request failed: {exc!r}")
            raise NetworkError(f"failed to fetch {self.url}: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response) -> List[Dict[str, Any]]:
        if not response.is_success:
            raise ProtocolError(
                f"API returned status code: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = json.loads(response.content, parse_constant=_reject_constant)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodeError(f"response body is not valid JSON: {exc}") from exc

        if not isinstance(data, list):
            raise DecodeError(f"expected a JSON array, got {type(data).__name__}")

        for position, item in enumerate(data):
            if not isinstance(item, dict):
                raise DecodeError(f"element {position} is {type(item).__name__}, expected an object")

        return data
