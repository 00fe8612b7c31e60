"""Centralized service provider - single owner of process-global singletons.

API routes and the CLI obtain the job store, mock session registry, agent
client and result extractor from HERE, usually through FastAPI Depends,
so tests can swap any of them with app.dependency_overrides. Never
instantiate these services elsewhere for request handling.
"""

import logging
import threading

from src.config import Settings, get_settings
from src.services.agent_client import AgentClient, build_agent_client
from src.services.job_store import JobStore
from src.services.mock_agent import MockSessionRegistry
from src.services.result_extractor import ResultExtractor

logger = logging.getLogger(__name__)

_lock = threading.Lock()

_job_store: JobStore | None = None
_mock_registry: MockSessionRegistry | None = None
_agent_client: AgentClient | None = None
_result_extractor: ResultExtractor | None = None


def get_job_store() -> JobStore:
    """Return the process-global JobStore."""
    global _job_store
    if _job_store is None:
        with _lock:
            if _job_store is None:
                _job_store = JobStore()
                logger.info("JobStore singleton initialized")
    return _job_store


def get_mock_registry() -> MockSessionRegistry:
    """Return the process-global MockSessionRegistry."""
    global _mock_registry
    if _mock_registry is None:
        with _lock:
            if _mock_registry is None:
                _mock_registry = MockSessionRegistry(step_seconds=get_settings().mock_step_seconds)
                logger.info("MockSessionRegistry singleton initialized")
    return _mock_registry


def get_agent_client() -> AgentClient:
    """Return the process-global agent client for the configured mode.

    Raises:
        ConfigurationError: If live mode is selected without an API key.
    """
    global _agent_client
    if _agent_client is None:
        settings = get_settings()
        registry = get_mock_registry() if settings.mock_mode else None
        with _lock:
            if _agent_client is None:
                _agent_client = build_agent_client(settings, registry)
                logger.info("Agent client initialized (mode=%s)", settings.mode)
    return _agent_client


def get_result_extractor() -> ResultExtractor:
    """Return the process-global ResultExtractor.

    Attachments are fetched through the agent client so live-mode
    downloads carry the API credential.
    """
    global _result_extractor
    if _result_extractor is None:
        client = get_agent_client()
        with _lock:
            if _result_extractor is None:
                _result_extractor = ResultExtractor(fetch_attachment=client.fetch_attachment)
    return _result_extractor


def get_app_settings() -> Settings:
    """FastAPI dependency wrapper around get_settings()."""
    return get_settings()


def reset_providers() -> None:
    """Drop every singleton and the cached settings (tests only)."""
    global _job_store, _mock_registry, _agent_client, _result_extractor
    with _lock:
        _job_store = None
        _mock_registry = None
        _agent_client = None
        _result_extractor = None
    get_settings.cache_clear()
