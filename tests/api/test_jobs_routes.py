"""Tests for job-tracked task routes."""

from unittest.mock import AsyncMock

from src.api.main import app
from src.errors import UpstreamUnavailableError
from src.models import CanonicalStatus, JobMetadata, JobType
from src.services.provider import get_agent_client


class TestCreateJob:
    """POST /api/v1/jobs/analyze and /api/v1/jobs/remove."""

    def test_analyze_job(self, client, analyze_body, job_store):
        response = client.post("/api/v1/jobs/analyze", json=analyze_body)

        assert response.status_code == 201
        data = response.json()
        assert data["jobId"].startswith("job_")
        assert data["streamUrl"] == f"/api/v1/jobs/{data['jobId']}/stream"

        job = job_store.get(data["jobId"])
        assert job.type is JobType.analyze
        assert job.status is CanonicalStatus.running
        assert job.session_handle.startswith("mock-")
        assert job.metadata.flags == ["old_ui"]

    def test_remove_job(self, client, remove_body, job_store):
        response = client.post("/api/v1/jobs/remove", json=remove_body)
        assert response.status_code == 201
        assert job_store.get(response.json()["jobId"]).type is JobType.remove

    def test_invalid_request_creates_no_job(self, client, remove_body, job_store):
        response = client.post("/api/v1/jobs/remove", json={**remove_body, "targetBehavior": None})
        assert response.status_code == 400
        assert response.json()["error_code"] == "E-1002"
        assert job_store.list_jobs() == []

    def test_session_start_failure_fails_job(self, client, analyze_body, job_store):
        broken = AsyncMock()
        broken.mode = "live"
        broken.create_session.side_effect = UpstreamUnavailableError(reason="connection refused")
        app.dependency_overrides[get_agent_client] = lambda: broken

        response = client.post("/api/v1/jobs/analyze", json=analyze_body)

        assert response.status_code == 503
        (job,) = job_store.list_jobs()
        assert job.status is CanonicalStatus.failed
        assert "connection refused" in job.error


class TestGetJob:
    """GET /api/v1/jobs and /api/v1/jobs/{job_id}."""

    def test_refreshes_from_session(self, client, analyze_body):
        job_id = client.post("/api/v1/jobs/analyze", json=analyze_body).json()["jobId"]

        response = client.get(f"/api/v1/jobs/{job_id}")

        assert response.status_code == 200
        assert "no-store" in response.headers["Cache-Control"]
        data = response.json()
        assert data["id"] == job_id
        assert data["type"] == "analyze"
        assert data["status"] == "completed"
        assert data["sessionId"].startswith("mock-")
        assert data["result"]["kind"] == "analysis"
        assert data["metadata"] == {"owner": "acme", "repo": "webapp", "branch": "main", "flags": ["old_ui"]}
        assert data["logs"][0]["message"] == "Created analyze job for acme/webapp (old_ui)"

    def test_poll_failure_keeps_job(self, client, job_store):
        job = job_store.create(JobType.analyze, JobMetadata(owner="acme", repo="webapp", branch="main"))
        job_store.attach_session_handle(job.id, "devin-1")
        job_store.set_status(job.id, CanonicalStatus.running)
        broken = AsyncMock()
        broken.get_session_status.side_effect = UpstreamUnavailableError(reason="connection reset")
        app.dependency_overrides[get_agent_client] = lambda: broken

        response = client.get(f"/api/v1/jobs/{job.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert "connection reset" in data["error"]

    def test_unknown_job(self, client):
        response = client.get("/api/v1/jobs/job_missing")
        assert response.status_code == 404
        assert response.json()["error_code"] == "E-4002"
        assert "no-store" in response.headers["Cache-Control"]

    def test_list_jobs(self, client, analyze_body, remove_body):
        client.post("/api/v1/jobs/analyze", json=analyze_body)
        client.post("/api/v1/jobs/remove", json=remove_body)

        data = client.get("/api/v1/jobs").json()

        assert data["total"] == 2
        assert {job["type"] for job in data["jobs"]} == {"analyze", "remove"}

    def test_stream_unknown_job(self, client):
        response = client.get("/api/v1/jobs/job_missing/stream")
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"
