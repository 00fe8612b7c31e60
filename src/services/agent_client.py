"""Upstream agent session clients.

AgentClient is the one interface the rest of the service talks to.
LiveAgentClient calls the Devin sessions API over HTTP; MockAgentClient
(see mock_agent.py) simulates sessions in memory. build_agent_client()
picks one based on Settings.mock_mode.

Neither client retries: callers poll on their own cadence and decide what
a transient failure means for them.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from src.config import Settings
from src.errors import (
    ForbiddenError,
    RateLimitedError,
    SessionNotFoundError,
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from src.models import AgentTask, Attachment, Message, SessionStatus
from src.services.instructions import build_instruction
from src.services.status_normalizer import normalize_status, origin_for_type
from src.utils.redaction import redact_for_logging, redact_tokens

logger = logging.getLogger(__name__)


class AgentClient(ABC):
    """Creates agent sessions and reports their status."""

    mode: str = "live"

    @abstractmethod
    async def create_session(self, task: AgentTask) -> str:
        """Validate a task, start a session for it and return its handle.

        Returns immediately; the session runs on its own.

        Raises:
            InvalidRequestError: If the task is missing required fields.
        """

    @abstractmethod
    async def get_session_status(self, handle: str) -> SessionStatus:
        """Fetch the current status of a session in one round trip.

        Raises:
            SessionNotFoundError: If the handle is unknown.
            UpstreamUnavailableError: On transport failure.
        """

    async def fetch_attachment(self, url: str) -> Any:
        """Download a JSON attachment produced by a session."""
        raise UpstreamUnavailableError(reason=f"Attachments are not available in {self.mode} mode")


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return redact_tokens(response.text[:200])
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error") or body.get("message")
        if detail:
            return redact_tokens(str(detail))
    return redact_tokens(str(body)[:200])


def parse_session_payload(handle: str, payload: dict[str, Any]) -> SessionStatus:
    """Normalize a raw session payload into a SessionStatus.

    Args:
        handle: Session handle the payload belongs to.
        payload: Decoded GET /sessions/{id} response body.

    Returns:
        SessionStatus with canonical status, ordered transcript, structured
        output and attachments.
    """
    raw_status = payload.get("status_enum") or payload.get("status")
    transcript = []
    for item in payload.get("messages") or []:
        if not isinstance(item, dict):
            continue
        text = item.get("message")
        if text is None:
            text = item.get("content", "")
        transcript.append(Message(origin=origin_for_type(item.get("type")), text=str(text or "")))

    attachments = []
    for item in payload.get("attachments") or []:
        if isinstance(item, dict) and item.get("url"):
            name = item.get("name") or item.get("filename") or item["url"].rsplit("/", 1)[-1]
            attachments.append(Attachment(name=str(name), url=str(item["url"])))

    structured = payload.get("structured_output")
    error = payload.get("error")
    return SessionStatus(
        session_id=handle,
        status=normalize_status(raw_status),
        raw_status=raw_status,
        transcript=transcript,
        structured_output=structured if isinstance(structured, dict) else None,
        attachments=attachments,
        error=str(error) if error else None,
    )


class LiveAgentClient(AgentClient):
    """Client for the hosted agent sessions API.

    Every request opens its own httpx.AsyncClient with the configured
    timeout, so a slow call never outlives its ceiling and no connection
    state is shared between streams.
    """

    mode = "live"

    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0) -> None:
        """Initialize the client.

        Args:
            base_url: API root, e.g. https://api.devin.ai/v1.
            api_key: Bearer credential for the API.
            timeout: Per-request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, headers=self._headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Agent API %s %s timed out after %ss", method, path, self._timeout)
            raise UpstreamTimeoutError(timeout=self._timeout) from e
        except httpx.RequestError as e:
            logger.warning("Agent API %s %s failed: %s", method, path, redact_tokens(str(e)))
            raise UpstreamUnavailableError(reason=redact_tokens(str(e)) or type(e).__name__) from e
        if response.is_error:
            logger.warning(
                "Agent API %s %s answered HTTP %s; request %s",
                method, path, response.status_code,
                redact_for_logging({"headers": self._headers, **kwargs}),
            )
        return response

    def _raise_for_status(self, response: httpx.Response, handle: str | None = None) -> None:
        status = response.status_code
        if status < 400:
            return
        if status == 404 and handle is not None:
            raise SessionNotFoundError(handle)
        if status == 429:
            raise RateLimitedError(retry_after=_retry_after(response))
        if status in (401, 403):
            raise ForbiddenError(code="E-3006", status=status)
        if status == 408:
            raise UpstreamTimeoutError(timeout=self._timeout)
        if status >= 500:
            raise UpstreamUnavailableError(reason=f"HTTP {status}: {_error_detail(response)}")
        raise UpstreamError(status=status, reason=_error_detail(response))

    async def create_session(self, task: AgentTask) -> str:
        task.validate()
        body = {
            "prompt": build_instruction(task),
            "repository_url": task.repo.url,
            "branch": task.repo.branch,
        }
        response = await self._request("POST", "/sessions", json=body)
        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(status=response.status_code, reason="Response was not JSON") from e
        handle = data.get("session_id") if isinstance(data, dict) else None
        if not handle:
            raise UpstreamError(status=response.status_code, reason="Response carried no session_id")
        logger.info("Created %s session %s for %s", task.kind.value, handle, task.repo.full_name)
        return str(handle)

    async def get_session_status(self, handle: str) -> SessionStatus:
        response = await self._request("GET", f"/sessions/{handle}")
        self._raise_for_status(response, handle=handle)
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(reason="Session response was not JSON") from e
        if not isinstance(payload, dict):
            raise UpstreamUnavailableError(reason="Session response was not an object")
        return parse_session_payload(handle, payload)

    async def fetch_attachment(self, url: str) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                response = await client.get(url, headers={"Authorization": f"Bearer {self._api_key}"})
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(timeout=self._timeout) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailableError(reason=redact_tokens(str(e)) or type(e).__name__) from e
        self._raise_for_status(response)
        return response.json()


def build_agent_client(settings: Settings, mock_registry: Any = None) -> AgentClient:
    """Create the agent client for the configured mode.

    Args:
        settings: Resolved settings.
        mock_registry: Shared MockSessionRegistry used in mock mode.

    Raises:
        ConfigurationError: If live mode is selected without an API key.
    """
    if settings.mock_mode:
        from src.services.mock_agent import MockAgentClient, MockSessionRegistry

        registry = mock_registry if mock_registry is not None else MockSessionRegistry(
            step_seconds=settings.mock_step_seconds
        )
        logger.info("Using mock agent client")
        return MockAgentClient(registry)
    return LiveAgentClient(
        settings.agent_api_url,
        settings.require_agent_api_key(),
        timeout=settings.request_timeout_seconds,
    )
