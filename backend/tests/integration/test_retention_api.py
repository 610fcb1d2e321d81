"""Integration tests for the retention admin API and observability endpoints.

Uses the TestClient fixture; the eviction job is registered on an unstarted
scheduler during application startup.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from user_limit.retention import router as retention_router
from user_limit.retention.config_store import KEEP_COUNT
from user_limit.retention.schemas import ScheduleInterval


class TestAuthentication:
    """Test the admin token guard."""

    def test_missing_token_rejected(self, client: TestClient):
        response = client.get("/retention/settings", headers={"Authorization": ""})

        assert response.status_code == 401

    def test_wrong_token_rejected(self, client: TestClient):
        response = client.get(
            "/retention/settings",
            headers={"Authorization": "Bearer not-the-token"},
        )

        assert response.status_code == 401


class TestSettingsEndpoints:
    """Test GET and PATCH /retention/settings."""

    def test_get_defaults(self, client: TestClient):
        response = client.get("/retention/settings")

        assert response.status_code == 200
        assert response.json() == {"keep_count": 100, "schedule_interval": "hourly"}

    def test_patch_keep_count(self, client: TestClient, plugin):
        response = client.patch("/retention/settings", json={"keep_count": 25})

        assert response.status_code == 200
        assert response.json()["keep_count"] == 25
        assert plugin.config_store.get(KEEP_COUNT) == 25

    def test_patch_keep_count_clamped(self, client: TestClient):
        response = client.patch("/retention/settings", json={"keep_count": 0})

        assert response.status_code == 200
        assert response.json()["keep_count"] == 1

    def test_patch_schedule_reschedules(self, client: TestClient, plugin, clock):
        """Test that a new interval replaces the job before the response."""
        response = client.patch("/retention/settings", json={"schedule_interval": "daily"})

        assert response.status_code == 200
        assert response.json()["schedule_interval"] == "daily"
        assert plugin.scheduler.current_interval() == ScheduleInterval.DAILY
        assert plugin.scheduler.next_fire_time() >= clock.now + timedelta(hours=24)
        assert len(plugin.scheduler.scheduler.get_jobs()) == 1

    def test_patch_invalid_schedule(self, client: TestClient, plugin):
        response = client.patch(
            "/retention/settings",
            json={"keep_count": 5, "schedule_interval": "monthly"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "schedule_interval"
        assert plugin.config_store.get(KEEP_COUNT) == 100

    def test_patch_non_numeric_keep_count(self, client: TestClient, plugin):
        response = client.patch("/retention/settings", json={"keep_count": "lots"})

        assert response.status_code == 400
        assert response.json()["detail"]["field"] == "keep_count"
        assert plugin.config_store.get(KEEP_COUNT) == 100

    def test_patch_numeric_string_keep_count(self, client: TestClient, plugin):
        response = client.patch("/retention/settings", json={"keep_count": "30"})

        assert response.status_code == 200
        assert plugin.config_store.get(KEEP_COUNT) == 30

    @pytest.mark.parametrize("value", [True, False])
    def test_patch_boolean_keep_count_rejected(
        self, client: TestClient, plugin, add_users, remaining_ids, value
    ):
        """Test that a JSON boolean is not read as 1 or 0 and nothing is deleted."""
        ids = add_users("2023-01-01", "2023-02-01", "2023-03-01")

        response = client.patch("/retention/settings", json={"keep_count": value})

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert plugin.config_store.get(KEEP_COUNT) == 100

        client.post("/retention/run")
        assert remaining_ids() == set(ids)


class TestScheduleEndpoints:
    """Test schedule listing and job status."""

    def test_list_schedules(self, client: TestClient):
        response = client.get("/retention/schedules")

        assert response.status_code == 200
        assert [c["value"] for c in response.json()] == [
            "every_15_min", "hourly", "daily", "weekly",
        ]
        assert response.json()[0]["seconds"] == 900

    def test_schedule_status_after_startup(self, client: TestClient):
        """Test that startup registered the job."""
        response = client.get("/retention/schedule")

        assert response.status_code == 200
        body = response.json()
        assert body["scheduled"] is True
        assert body["interval"] == "hourly"
        assert body["next_fire_time"] is not None
        assert body["running"] is False


class TestRunEndpoints:
    """Test report, run and cleanup."""

    def test_report_and_run(self, client: TestClient, plugin, add_users, remaining_ids):
        ids = add_users("2023-01-01", "2023-02-01", "2023-03-01")
        plugin.config_store.set(KEEP_COUNT, 2)

        report = client.get("/retention/report")
        assert report.status_code == 200
        assert report.json()["users_to_delete"] == 1

        response = client.post("/retention/run")

        assert response.status_code == 200
        assert response.json()["deleted_count"] == 1
        assert remaining_ids() == {ids[0], ids[1]}

    def test_run_failure_returns_500(self, client: TestClient, plugin, monkeypatch):
        def boom(trigger="manual"):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(plugin.service, "run", boom)

        response = client.post("/retention/run")

        assert response.status_code == 500
        assert "database is locked" in response.json()["detail"]

    def test_cleanup_enqueues_task(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(
            retention_router.enforce_user_limit_task,
            "delay",
            lambda: SimpleNamespace(id="task-123"),
        )

        response = client.post("/retention/cleanup")

        assert response.status_code == 202
        assert response.json() == {"status": "enqueued", "task_id": "task-123"}


class TestObservabilityEndpoints:
    """Test /health and /metrics."""

    def test_health_reports_components(self, client: TestClient):
        response = client.get("/health", headers={"Authorization": ""})

        assert response.status_code == 200
        body = response.json()
        assert body["components"]["database"]["status"] == "healthy"
        # Timer thread is not started in tests
        assert body["components"]["scheduler"]["status"] == "degraded"
        assert body["status"] == "degraded"

    def test_metrics_exposed(self, client: TestClient):
        client.post("/retention/run")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "user_limit_eviction_runs_total" in response.text

    @pytest.mark.parametrize("path", ["/retention/settings", "/retention/schedule"])
    def test_request_id_header(self, client: TestClient, path):
        response = client.get(path, headers={"X-Request-ID": "req-42"})

        assert response.headers.get("X-Request-ID") == "req-42"
