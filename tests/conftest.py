"""Root-level pytest fixtures for all tests.

Provides shared fixtures for:
- Environment isolation (no real credentials, no cached settings)
- Sample analyze/remove tasks
- Job store and mock session registry with a controllable clock
"""

import pytest

from src.models import AnalyzeTask, RemoveTask, RepoCoordinates, TargetBehavior
from src.services.job_store import JobStore
from src.services.mock_agent import MockAgentClient, MockSessionRegistry
from src.services.provider import reset_providers

_ENV_VARS = (
    "DEVIN_API_URL",
    "DEVIN_API_KEY",
    "DEVIN_MOCK_MODE",
    "GITHUB_TOKEN",
    "FLAGSWEEP_REQUEST_TIMEOUT",
    "FLAGSWEEP_POLL_INTERVAL",
    "FLAGSWEEP_DRAIN_GRACE",
    "FLAGSWEEP_MOCK_STEP_SECONDS",
    "ALLOWED_ORIGINS",
    "FLAGSWEEP_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Clear flagsweep env vars and process-global singletons around each test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_providers()
    yield
    reset_providers()


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repo() -> RepoCoordinates:
    return RepoCoordinates(owner="acme", repo="webapp", branch="main")


@pytest.fixture
def analyze_task(repo) -> AnalyzeTask:
    return AnalyzeTask(repo=repo, flag_keys=("old_ui",))


@pytest.fixture
def remove_task(repo) -> RemoveTask:
    return RemoveTask(
        repo=repo,
        flag_keys=("legacy_checkout",),
        target_behavior=TargetBehavior.off,
        registry_file_paths=("config/flags.json",),
        test_command="npm test",
    )


@pytest.fixture
def job_store() -> JobStore:
    return JobStore()


@pytest.fixture
def mock_registry() -> MockSessionRegistry:
    """Registry whose sessions complete immediately."""
    return MockSessionRegistry(step_seconds=0)


@pytest.fixture
def mock_client(mock_registry) -> MockAgentClient:
    return MockAgentClient(mock_registry)
