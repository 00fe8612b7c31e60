"""Shared fixtures for API tests.

Every route dependency is overridden with an isolated instance, so tests
never touch the process-global singletons or the network.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.config import Settings
from src.services.provider import (
    get_agent_client,
    get_app_settings,
    get_job_store,
    get_result_extractor,
)
from src.services.result_extractor import ResultExtractor


@pytest.fixture
def settings() -> Settings:
    return Settings(mock_mode=True, github_token="ghp_test", poll_interval_seconds=0.01, drain_grace_seconds=0)


@pytest.fixture
def extractor() -> ResultExtractor:
    return ResultExtractor()


@pytest.fixture
def client(job_store, mock_client, extractor, settings):
    """TestClient wired to the test job store, mock agent and settings."""
    app.dependency_overrides[get_job_store] = lambda: job_store
    app.dependency_overrides[get_agent_client] = lambda: mock_client
    app.dependency_overrides[get_result_extractor] = lambda: extractor
    app.dependency_overrides[get_app_settings] = lambda: settings
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def analyze_body() -> dict:
    return {"owner": "acme", "repo": "webapp", "branch": "main", "flags": ["old_ui"]}


@pytest.fixture
def remove_body() -> dict:
    return {
        "owner": "acme",
        "repo": "webapp",
        "branch": "main",
        "flags": ["legacy_checkout"],
        "targetBehavior": "off",
        "registryFiles": ["config/flags.json"],
        "testCommand": "npm test",
    }
