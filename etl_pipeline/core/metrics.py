"""
Prometheus metrics for the ETL pipeline.

A single PipelineMetrics instance is built at startup and handed to every
component that records something. Each instance owns its registry, so tests
can build as many as they like without duplicate-registration errors.
"""
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class PipelineMetrics:
    """Process-wide counters and the API latency histogram."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        # =======================
        # EXTRACT
        # =======================
        self.api_requests_total = Counter(
            name="etl_api_requests_total",
            documentation="Total number of API requests made",
            registry=self.registry,
        )
        self.api_requests_failed_total = Counter(
            name="etl_api_requests_failed_total",
            documentation="Total number of failed API requests",
            registry=self.registry,
        )
        self.api_request_duration_seconds = Histogram(
            name="etl_api_request_duration_seconds",
            documentation="Duration of API requests in seconds",
            registry=self.registry,
        )

        # =======================
        # TRANSFORM
        # =======================
        self.records_processed_total = Counter(
            name="etl_records_processed_total",
            documentation="Total number of records processed",
            registry=self.registry,
        )
        self.transformation_errors_total = Counter(
            name="etl_transformation_errors_total",
            documentation="Total number of transformation errors",
            registry=self.registry,
        )

        # =======================
        # LOAD
        # =======================
        self.data_saved_total = Counter(
            name="etl_data_saved_total",
            documentation="Total number of successful data saves",
            registry=self.registry,
        )
        self.database_writes_total = Counter(
            name="etl_database_writes_total",
            documentation="Total number of database write operations",
            registry=self.registry,
        )
        self.database_write_errors_total = Counter(
            name="etl_database_write_errors_total",
            documentation="Total number of database write errors",
            registry=self.registry,
        )

        # =======================
        # SCHEDULER
        # =======================
        self.cycles_skipped_total = Counter(
            name="etl_cycles_skipped_total",
            documentation="Ticks skipped because the previous cycle was still running",
            registry=self.registry,
        )

    def render(self) -> bytes:
        """Text exposition of every series in this registry."""
        return generate_latest(self.registry)
