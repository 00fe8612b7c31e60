"""Result extraction from agent sessions.

The agent does not always hand its result back through a structured
channel. ResultExtractor runs an ordered chain of strategies, from most
to least trusted, and stops at the first one that yields a valid result:

1. StructuredOutputStrategy - the dedicated structured-output field
2. AttachmentStrategy - a JSON attachment fetched over HTTP
3. FencedBlockStrategy - a ```json fenced block in agent messages
4. BraceScanStrategy - a brace-balanced object with a known result shape
5. RecentMessagesStrategy - any JSON object in the last few agent messages

A strategy that finds nothing (or hits unparseable text) returns None and
the chain moves on. Only agent-originated text is searched, because the
instruction echoed back as a user message contains an example result.

The first successful extraction per session is cached and returned for
every later call, so a result once delivered is never replaced.
"""

import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from src.errors import FlagSweepError
from src.models import AgentResult, CanonicalStatus, Origin, SessionStatus, build_result
from src.models.results import ResultKind

logger = logging.getLogger(__name__)

AttachmentFetcher = Callable[[str], Awaitable[Any]]

_FENCED_JSON = re.compile(r"```[ \t]*json[ \t]*\r?\n(.*?)```", re.DOTALL | re.IGNORECASE)
_ANALYSIS_KEY = re.compile(r'"flags"\s*:\s*\[')
_REMOVAL_KEY = re.compile(r'"summary"\s*:\s*\{[^{}]*"flags_removed"\s*:', re.DOTALL)


@dataclass(frozen=True)
class ExtractionSource:
    """Everything a strategy may look at for one extraction attempt."""

    status: SessionStatus
    expected: ResultKind | None = None

    def agent_texts(self) -> list[str]:
        """Agent-originated message texts, oldest first."""
        return [
            m.text
            for m in self.status.transcript
            if m.origin is Origin.agent and m.text and m.text.strip()
        ]


def balanced_object_end(text: str, start: int) -> int | None:
    """Return the index just past the object that opens at text[start].

    Counts brace depth while skipping braces inside JSON strings.

    Args:
        text: Text to scan.
        start: Index of an opening '{'.

    Returns:
        End index (exclusive) where depth returns to zero, or None if the
        object is never closed.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


class ExtractionStrategy(ABC):
    """One way of locating a result in a session."""

    name: str = "strategy"

    @abstractmethod
    async def extract(self, source: ExtractionSource) -> AgentResult | None:
        """Return a result, or None to let the next strategy try."""


class StructuredOutputStrategy(ExtractionStrategy):
    """Use the session's structured-output field as-is."""

    name = "structured_output"

    async def extract(self, source: ExtractionSource) -> AgentResult | None:
        payload = source.status.structured_output
        if not payload:
            return None
        return build_result(payload, source.expected)


async def fetch_json_attachment(url: str, timeout: float = 30.0) -> Any:
    """Download an attachment and decode it as JSON."""
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.json()


class AttachmentStrategy(ExtractionStrategy):
    """Fetch JSON-named attachments, newest first, and parse them."""

    name = "attachment"

    def __init__(self, fetch: AttachmentFetcher | None = None) -> None:
        self._fetch = fetch or fetch_json_attachment

    async def extract(self, source: ExtractionSource) -> AgentResult | None:
        for attachment in reversed(source.status.attachments):
            if not attachment.is_json:
                continue
            try:
                payload = await self._fetch(attachment.url)
            except (httpx.HTTPError, ValueError, FlagSweepError) as e:
                # Attachments can lag behind completion; try again next poll.
                logger.info("Attachment %s not readable yet: %s", attachment.name, e)
                continue
            result = build_result(payload, source.expected)
            if result is not None:
                return result
        return None


class FencedBlockStrategy(ExtractionStrategy):
    """Parse ```json fenced blocks in agent messages, newest first."""

    name = "fenced_block"

    async def extract(self, source: ExtractionSource) -> AgentResult | None:
        for text in reversed(source.agent_texts()):
            for block in reversed(_FENCED_JSON.findall(text)):
                result = build_result(_loads_object(block.strip()), source.expected)
                if result is not None:
                    return result
        return None


class BraceScanStrategy(ExtractionStrategy):
    """Find a brace-balanced object that contains a known result key.

    Every '{' is a candidate start. The span is extended until brace depth
    returns to zero; spans holding a "flags" array or a "summary" object
    with "flags_removed" are parsed. Outer objects are tried before the
    objects nested in them, and later text before earlier text.
    """

    name = "brace_scan"

    async def extract(self, source: ExtractionSource) -> AgentResult | None:
        text = "\n".join(source.agent_texts())
        if not (_ANALYSIS_KEY.search(text) or _REMOVAL_KEY.search(text)):
            return None

        candidates: list[tuple[int, int]] = []
        for start in (i for i, char in enumerate(text) if char == "{"):
            end = balanced_object_end(text, start)
            if end is None:
                continue
            span = text[start:end]
            if _ANALYSIS_KEY.search(span) or _REMOVAL_KEY.search(span):
                candidates.append((start, end))

        # Outermost spans of the latest object first
        candidates.sort(key=lambda span: (-span[1], span[0]))
        for start, end in candidates:
            result = build_result(_loads_object(text[start:end]), source.expected)
            if result is not None:
                return result
        return None


class RecentMessagesStrategy(ExtractionStrategy):
    """Look for any JSON object with a flags or summary key in recent messages."""

    name = "recent_messages"

    def __init__(self, window: int = 5) -> None:
        self.window = window
        self._decoder = json.JSONDecoder()

    def _objects(self, text: str) -> list[dict[str, Any]]:
        whole = _loads_object(text.strip())
        if whole is not None:
            return [whole]
        found = []
        index = text.find("{")
        while index >= 0:
            try:
                value, end = self._decoder.raw_decode(text, index)
            except json.JSONDecodeError:
                index = text.find("{", index + 1)
                continue
            if isinstance(value, dict):
                found.append(value)
            index = text.find("{", end)
        return found

    async def extract(self, source: ExtractionSource) -> AgentResult | None:
        for text in reversed(source.agent_texts()[-self.window:]):
            for payload in reversed(self._objects(text)):
                if "flags" not in payload and "summary" not in payload:
                    continue
                result = build_result(payload, source.expected)
                if result is not None:
                    return result
        return None


def default_strategies(fetch_attachment: AttachmentFetcher | None = None) -> list[ExtractionStrategy]:
    """Build the standard strategy chain in priority order."""
    return [
        StructuredOutputStrategy(),
        AttachmentStrategy(fetch_attachment),
        FencedBlockStrategy(),
        BraceScanStrategy(),
        RecentMessagesStrategy(),
    ]


class ResultExtractor:
    """Runs the strategy chain and caches the first result per session.

    Safe to share across requests: the cache is write-once per session id
    and guarded by a lock.
    """

    def __init__(
        self,
        strategies: list[ExtractionStrategy] | None = None,
        fetch_attachment: AttachmentFetcher | None = None,
    ) -> None:
        self.strategies = strategies if strategies is not None else default_strategies(fetch_attachment)
        self._cache: dict[str, AgentResult] = {}
        self._lock = threading.Lock()

    def cached(self, session_id: str) -> AgentResult | None:
        """Return the result already extracted for a session, if any."""
        with self._lock:
            return self._cache.get(session_id)

    async def extract(
        self,
        status: SessionStatus,
        expected: ResultKind | None = None,
    ) -> AgentResult | None:
        """Extract a result from a session status snapshot.

        Args:
            status: Latest session status.
            expected: Result kind the originating task produces, if known.

        Returns:
            The session's result, or None if none can be found yet. Absence
            is not an error: callers retry on their next poll.
        """
        cached = self.cached(status.session_id)
        if cached is not None:
            return cached

        source = ExtractionSource(status=status, expected=expected)
        for strategy in self.strategies:
            try:
                result = await strategy.extract(source)
            except Exception as e:
                logger.warning(
                    "Extraction strategy %s failed for session %s: %s",
                    strategy.name, status.session_id, e,
                )
                continue
            if result is None:
                continue
            logger.info(
                "Extracted %s result for session %s via %s",
                result.kind, status.session_id, strategy.name,
            )
            with self._lock:
                return self._cache.setdefault(status.session_id, result)

        if status.status is CanonicalStatus.completed:
            logger.warning(
                "Session %s completed but no result could be extracted yet", status.session_id
            )
        return None
