"""
Tests for health check endpoints

Tests both basic and dependency health checks. Provider calls are patched
so the suite runs offline.
"""
import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from guestglow.main import app
from guestglow.routes import health
from guestglow.routes.health import DependencyStatus, determine_overall_status

client = TestClient(app)


def dep(name, state):
    return DependencyStatus(
        name=name,
        status=state,
        latency_ms=1.0 if state == "healthy" else None,
        error_message=None if state == "healthy" else "boom"
    )


@pytest.fixture(autouse=True)
def reset_cache():
    health._dependency_cache = None
    health._cache_timestamp = 0.0
    yield
    health._dependency_cache = None


@pytest.fixture
def all_healthy():
    with patch.object(health, "check_supabase", AsyncMock(return_value=dep("supabase", "healthy"))), \
         patch.object(health, "check_resend_api", AsyncMock(return_value=dep("resend_api", "healthy"))), \
         patch.object(health, "check_openai_api", AsyncMock(return_value=dep("openai_api", "healthy"))):
        yield


class TestBasicHealthCheck:
    """Test basic health check endpoint"""

    def test_basic_health_returns_200(self):
        """Basic health check should always return 200"""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

    def test_basic_health_response_structure(self):
        """Basic health check should have correct response structure"""
        data = client.get("/api/v1/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert data["uptime_seconds"] >= 0
        assert "timestamp" in data


class TestDependencyHealthCheck:
    """Test dependency health check endpoint"""

    def test_checks_all_services(self, all_healthy):
        """Dependency health check should report every provider"""
        data = client.get("/api/v1/health/dependencies").json()

        assert data["overall_status"] == "healthy"
        assert set(data["dependencies"]) == {"supabase", "resend_api", "openai_api"}

    def test_caching_behavior(self, all_healthy):
        """Second call within the TTL returns the cached result"""
        first = client.get("/api/v1/health/dependencies").json()
        second = client.get("/api/v1/health/dependencies").json()

        assert first["checked_at"] == second["checked_at"]
        assert health.check_supabase.await_count == 1

    def test_unexpected_exception_marks_unhealthy(self):
        with patch.object(health, "check_supabase", AsyncMock(side_effect=RuntimeError("kaboom"))), \
             patch.object(health, "check_resend_api", AsyncMock(return_value=dep("resend_api", "healthy"))), \
             patch.object(health, "check_openai_api", AsyncMock(return_value=dep("openai_api", "healthy"))):
            data = client.get("/api/v1/health/dependencies").json()

        assert data["overall_status"] == "unhealthy"
        assert "kaboom" in data["dependencies"]["supabase"]["error_message"]

    @pytest.mark.asyncio
    async def test_missing_api_key_is_degraded(self):
        result = await health._check_http("openai_api", "https://example.invalid", "")

        assert result.status == "degraded"
        assert result.error_message == "API key not configured"


class TestOverallStatus:

    @pytest.mark.parametrize("supabase,resend,openai,expected", [
        ("healthy", "healthy", "healthy", "healthy"),
        ("healthy", "healthy", "unhealthy", "degraded"),
        ("healthy", "degraded", "healthy", "degraded"),
        ("unhealthy", "healthy", "healthy", "unhealthy"),
        ("healthy", "unhealthy", "healthy", "unhealthy"),
    ])
    def test_overall_status(self, supabase, resend, openai, expected):
        dependencies = {
            "supabase": dep("supabase", supabase),
            "resend_api": dep("resend_api", resend),
            "openai_api": dep("openai_api", openai),
        }
        assert determine_overall_status(dependencies) == expected


class TestHealthCheckIntegration:
    """Integration tests for health check system"""

    def test_root_endpoint_still_works(self):
        """Root endpoint should still work after adding health routes"""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert "message" in data
        assert "version" in data

    def test_openapi_docs_include_health(self):
        """OpenAPI docs should include health endpoints"""
        openapi = client.get("/openapi.json").json()

        assert "/api/v1/health" in openapi["paths"]
        assert "/api/v1/health/dependencies" in openapi["paths"]
