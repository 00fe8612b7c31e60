"""Environment-driven settings for flagsweep.

Settings are read once per process from environment variables and
validated with Pydantic. Credentials are optional at load time; the
require_* helpers fail fast with an actionable ConfigurationError when
the mode actually in use needs one.
"""

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, Field

from src.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_AGENT_API_URL = "https://api.devin.ai/v1"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, value, default)
        return default


class Settings(BaseModel):
    """Resolved runtime configuration."""

    agent_api_url: str = DEFAULT_AGENT_API_URL
    agent_api_key: str | None = None
    mock_mode: bool = False
    github_token: str | None = None
    request_timeout_seconds: float = Field(30.0, gt=0)
    poll_interval_seconds: float = Field(0.5, gt=0)
    drain_grace_seconds: float = Field(8.0, ge=0)
    mock_step_seconds: float = Field(0.5, ge=0)
    allowed_origins: list[str] = Field(default_factory=list)
    log_level: str = "INFO"

    @property
    def mode(self) -> str:
        """Return 'mock' or 'live'."""
        return "mock" if self.mock_mode else "live"

    def require_agent_api_key(self) -> str:
        """Return the agent API key, or fail when live mode has none.

        Raises:
            ConfigurationError: If DEVIN_API_KEY is unset.
        """
        if not self.agent_api_key:
            raise ConfigurationError(
                suggestions=[
                    "Set DEVIN_API_KEY environment variable",
                    "Or set DEVIN_MOCK_MODE=true for local development",
                ],
            )
        return self.agent_api_key

    def require_github_token(self) -> str:
        """Return the GitHub token, or fail when none is configured.

        Raises:
            ConfigurationError: If GITHUB_TOKEN is unset.
        """
        if not self.github_token:
            raise ConfigurationError(
                code="E-5002",
                suggestions=[
                    "Set GITHUB_TOKEN environment variable",
                    "Ensure .env file contains valid GitHub token",
                ],
            )
        return self.github_token


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    raw_origins = os.environ.get("ALLOWED_ORIGINS", "").strip()
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()] if raw_origins else []
    return Settings(
        agent_api_url=os.environ.get("DEVIN_API_URL", "").strip() or DEFAULT_AGENT_API_URL,
        agent_api_key=os.environ.get("DEVIN_API_KEY", "").strip() or None,
        mock_mode=_env_bool("DEVIN_MOCK_MODE"),
        github_token=os.environ.get("GITHUB_TOKEN", "").strip() or None,
        request_timeout_seconds=_env_float("FLAGSWEEP_REQUEST_TIMEOUT", 30.0),
        poll_interval_seconds=_env_float("FLAGSWEEP_POLL_INTERVAL", 0.5),
        drain_grace_seconds=_env_float("FLAGSWEEP_DRAIN_GRACE", 8.0),
        mock_step_seconds=_env_float("FLAGSWEEP_MOCK_STEP_SECONDS", 0.5),
        allowed_origins=origins,
        log_level=os.environ.get("FLAGSWEEP_LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide Settings, loading them on first use."""
    return load_settings()


def validate_startup_config(settings: Settings) -> None:
    """Validate credentials at server boot.

    Called from the FastAPI lifespan. Live mode without an agent API key
    fails immediately; a missing GitHub token only disables the registry
    endpoint, so it is reported as a warning.

    Raises:
        ConfigurationError: If live mode is selected without DEVIN_API_KEY.
    """
    if not settings.mock_mode:
        settings.require_agent_api_key()
    if not settings.github_token:
        logger.warning(
            "GITHUB_TOKEN is not set; GET /api/v1/flags will fail until it is configured."
        )
