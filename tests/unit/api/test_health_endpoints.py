"""Tests for health, smoke test and metrics endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from cinerate.api.app import create_app
from cinerate.cache import CacheConnectionManager
from cinerate.config import Settings
from tests.fakes import CountingReviewStore, FakeRedis


class TestSmokeTest:
    """Test /test endpoint."""

    def test_returns_plain_text(self, client: TestClient) -> None:
        """Smoke test answers with a fixed text body."""
        response = client.get("/test")

        assert response.status_code == 200
        assert response.text == "Review service is running"
        assert response.headers["content-type"].startswith("text/plain")


class TestHealthEndpoint:
    """Test /health endpoint."""

    def test_healthy(self, client: TestClient) -> None:
        """Store up and cache connected on startup."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["review_store"]["status"] == "healthy"
        assert data["checks"]["cache"]["state"] == "connected"
        assert data["checks"]["cache"]["live"] is True

    def test_store_down_is_unhealthy(
        self, client: TestClient, review_store: CountingReviewStore
    ) -> None:
        """A failing review store makes the service unavailable."""
        review_store.healthy = False

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["checks"]["review_store"]["message"] == "Review store check failed"


class TestHealthStartupWithoutCache:
    """Service started while Redis is unreachable."""

    def test_degraded(
        self,
        app_settings: Settings,
        review_store: CountingReviewStore,
        connection: CacheConnectionManager,
        fake_redis: FakeRedis,
    ) -> None:
        """Startup succeeds and health reports the failed connection."""
        fake_redis.down = True
        app = create_app(app_settings, review_store=review_store, cache_connection=connection)

        with TestClient(app) as client:
            response = client.get("/health")
            reviews = client.get("/movie/c1")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["checks"]["cache"]["state"] == "failed"
        assert reviews.status_code == 200
        assert reviews.headers["X-Cache"] == "BYPASS"


class TestProbes:
    """Test liveness and readiness probes."""

    def test_live(self, client: TestClient) -> None:
        """Liveness always answers ok."""
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_ready(self, client: TestClient) -> None:
        """Readiness follows the review store."""
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready_result_is_reused(
        self, client: TestClient, review_store: CountingReviewStore
    ) -> None:
        """Readiness is cached briefly to absorb probe storms."""
        client.get("/health/ready")
        review_store.healthy = False

        response = client.get("/health/ready")

        assert response.status_code == 200


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_exposes_review_metrics(self, client: TestClient) -> None:
        """Prometheus exposition includes the review service metrics."""
        client.get("/movie/c1")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "review_service_response_time" in response.text
        assert "review_service_cache_hit_ratio" in response.text


class TestCorrelation:
    """Test request correlation headers."""

    def test_request_id_generated(self, client: TestClient) -> None:
        """Every response carries a request id."""
        response = client.get("/test")
        assert response.headers["x-request-id"]
        assert response.headers["x-correlation-id"] == response.headers["x-request-id"]

    def test_correlation_id_passed_through(self, client: TestClient) -> None:
        """Caller's correlation id is echoed back."""
        response = client.get("/test", headers={"x-correlation-id": "abc-123"})
        assert response.headers["x-correlation-id"] == "abc-123"
