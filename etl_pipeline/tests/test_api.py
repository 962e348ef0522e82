"""API endpoint tests"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from etl_pipeline.api.routes import health_router, metrics_router


class StubPersistence:
    def __init__(self, healthy: bool):
        self.healthy = healthy
        self.timeouts = []

    async def health_check(self, timeout: float = 2.0) -> bool:
        self.timeouts.append(timeout)
        return self.healthy


def build_app(persistence, metrics) -> FastAPI:
    app = FastAPI()
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.state.persistence = persistence
    app.state.metrics = metrics
    app.state.health_check_timeout = 2.0
    return app


class TestAPI:
    """Health, readiness and metrics endpoints"""

    @pytest.fixture
    def healthy_client(self, metrics):
        return TestClient(build_app(StubPersistence(healthy=True), metrics))

    @pytest.fixture
    def unhealthy_client(self, metrics):
        return TestClient(build_app(StubPersistence(healthy=False), metrics))

    def test_health_ok(self, healthy_client):
        response = healthy_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "etl-pipeline", "database": "healthy"}

    def test_health_database_down(self, unhealthy_client):
        response = unhealthy_client.get("/health")
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "unhealthy"

    def test_ready(self, healthy_client):
        response = healthy_client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "service": "etl-pipeline"}

    def test_not_ready(self, unhealthy_client):
        response = unhealthy_client.get("/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not ready"

    def test_health_check_uses_configured_timeout(self, metrics):
        persistence = StubPersistence(healthy=True)
        app = build_app(persistence, metrics)
        app.state.health_check_timeout = 0.5

        TestClient(app).get("/health")

        assert persistence.timeouts == [0.5]

    def test_metrics_exposition(self, healthy_client, metrics):
        metrics.api_requests_total.inc()
        metrics.api_request_duration_seconds.observe(0.2)

        response = healthy_client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert "etl_api_requests_total 1.0" in body
        assert "etl_api_request_duration_seconds_count 1.0" in body
        for name in (
            "etl_api_requests_failed_total",
            "etl_records_processed_total",
            "etl_transformation_errors_total",
            "etl_data_saved_total",
            "etl_database_writes_total",
            "etl_database_write_errors_total",
            "etl_cycles_skipped_total",
        ):
            assert name in body

    def test_invalid_endpoint(self, healthy_client):
        response = healthy_client.get("/invalid")
        assert response.status_code == 404
