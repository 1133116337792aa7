"""
Unit tests for health checks.
"""

from unittest.mock import MagicMock

from photojournal.config import get_config
from photojournal.health import check_environment_health, check_storage_health, get_health_status


class TestStorageHealth:
    def test_healthy(self, gateway):
        result = check_storage_health(gateway)

        assert result["status"] == "healthy"
        assert result["backend"] == "memory"

    def test_unreachable(self):
        gateway = MagicMock()
        gateway.check_health.return_value = False

        assert check_storage_health(gateway)["status"] == "unhealthy"

    def test_exception(self):
        gateway = MagicMock()
        gateway.check_health.side_effect = RuntimeError("connection reset")

        result = check_storage_health(gateway)

        assert result["status"] == "unhealthy"
        assert "connection reset" in result["message"]


class TestEnvironmentHealth:
    def test_memory_backend_needs_only_environment(self, monkeypatch):
        monkeypatch.delenv("GCS_PHOTOS_BUCKET")

        assert check_environment_health()["status"] == "healthy"

    def test_reports_names_without_values(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "gcs")
        get_config().clear_cache()

        result = check_environment_health()

        assert result["present_vars"] == ["ENVIRONMENT", "GOOGLE_CLOUD_PROJECT", "GCS_PHOTOS_BUCKET"]
        assert "test-photos-bucket" not in str(result)
        assert "test-project" not in str(result)

    def test_gcs_backend_requires_cloud_settings(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "gcs")
        monkeypatch.delenv("GCS_PHOTOS_BUCKET")
        get_config().clear_cache()

        result = check_environment_health()

        assert result["status"] == "unhealthy"
        assert result["missing_vars"] == ["GCS_PHOTOS_BUCKET"]


class TestHealthStatus:
    def test_all_healthy(self, gateway):
        status = get_health_status(gateway)

        assert status["status"] == "healthy"
        assert set(status["checks"]) == {"storage", "environment"}
        assert status["application"]["name"] == "photojournal"
        assert "unhealthy_services" not in status

    def test_unhealthy_service_is_listed(self):
        gateway = MagicMock()
        gateway.check_health.return_value = False

        status = get_health_status(gateway)

        assert status["status"] == "unhealthy"
        assert status["unhealthy_services"] == ["storage"]
