"""Per-job event stream publisher.

EventStreamPublisher turns a job (and the agent session attached to it)
into one ordered sequence of StreamEvents for a single consumer. A
background poll task feeds an asyncio.Queue; events() drains the queue
and cancels the task on every exit path, including client disconnect.

Lifecycle: STREAMING -> DRAINING -> CLOSED. An unexpected exception emits
one error event and closes the stream. A stream is single-use.

Per stream the publisher guarantees:
- log events are emitted once each, in order
- at most one result event and at most one complete event
- status never moves back from a terminal value
- a completed session without a result closes after the grace window
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.errors import TRANSIENT_ERRORS, InvalidStateTransition
from src.models import AgentResult, CanonicalStatus, LogEntry, LogLevel, SessionStatus, utc_now_iso
from src.services.agent_client import AgentClient
from src.services.job_store import JobStore
from src.services.result_extractor import ResultExtractor
from src.services.status_normalizer import LOG_ORIGINS, TranscriptCursor, lines_to_entries, render_transcript
from src.utils.redaction import redact_tokens

logger = logging.getLogger(__name__)

EventType = Literal["log", "status", "result", "error", "complete"]


class StreamEvent(BaseModel):
    """One event pushed to a stream consumer."""

    type: EventType
    data: Any = None
    timestamp: str = Field(default_factory=utc_now_iso)

    def to_sse(self) -> dict[str, str]:
        """Render as an sse-starlette message (unnamed event, JSON data)."""
        return {"data": self.model_dump_json()}


class StreamState(str, Enum):
    """Lifecycle of one stream."""

    streaming = "streaming"
    draining = "draining"
    closed = "closed"


class EventStreamPublisher:
    """Publishes a job's logs, status, result and completion as events."""

    def __init__(
        self,
        job_id: str,
        job_store: JobStore,
        agent_client: AgentClient,
        extractor: ResultExtractor,
        poll_interval: float = 0.5,
        grace_seconds: float = 8.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize a publisher for one consumer.

        Args:
            job_id: Job to publish.
            job_store: Shared job store.
            agent_client: Client used to poll the job's session.
            extractor: Shared result extractor.
            poll_interval: Seconds between poll iterations.
            grace_seconds: How long a completed session without a result is
                still polled before the stream closes.
            clock: Monotonic time source.
        """
        self.job_id = job_id
        self.job_store = job_store
        self.agent_client = agent_client
        self.extractor = extractor
        self.poll_interval = poll_interval
        self.grace_seconds = grace_seconds
        self._clock = clock

        self.state = StreamState.streaming
        self._started = False
        self._log_index = 0
        self._cursor = TranscriptCursor()
        self._last_status: CanonicalStatus | None = None
        self._result_sent = False
        self._complete_sent = False
        self._drain_deadline: float | None = None
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    # =========================================================================
    # Consumer side
    # =========================================================================

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events until the stream closes.

        Raises:
            RuntimeError: If the stream was already consumed.
        """
        if self._started:
            raise RuntimeError(f"Stream for job {self.job_id} was already consumed")
        self._started = True
        self._task = task = asyncio.create_task(self._run())
        try:
            while True:
                event = await self._queue.get()
                if event is None:
                    break
                yield event
        finally:
            # Always stop polling when the consumer goes away
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self.state = StreamState.closed
            logger.debug("Stream for job %s closed", self.job_id)

    # =========================================================================
    # Poll loop
    # =========================================================================

    def _emit(self, event_type: EventType, data: Any, timestamp: str | None = None) -> None:
        event = StreamEvent(type=event_type, data=data, timestamp=timestamp or utc_now_iso())
        self._queue.put_nowait(event)

    def _emit_log(self, entry: LogEntry) -> None:
        self._emit("log", {"level": entry.level.value, "message": entry.message}, entry.timestamp)

    async def _run(self) -> None:
        try:
            job = self.job_store.require(self.job_id)
            self._last_status = job.status
            self._emit("status", {"status": job.status.value})
            while True:
                await self._tick()
                if self.state is StreamState.closed:
                    break
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Stream for job %s failed", self.job_id)
            self._emit("error", {
                "message": redact_tokens(str(e)) or type(e).__name__,
                "code": getattr(e, "code", None),
            })
        finally:
            self.state = StreamState.closed
            self._queue.put_nowait(None)

    async def _tick(self) -> None:
        job = self.job_store.require(self.job_id)

        for entry in job.logs[self._log_index:]:
            self._emit_log(entry)
        self._log_index = len(job.logs)

        if job.session_handle:
            status = await self._poll_session(job.session_handle)
            if status is not None:
                await self._observe_session(status, job.type.result_kind)
        else:
            self._observe_job(job.status, job.result, job.error)

        if self.state is StreamState.draining:
            if self._result_sent:
                self.state = StreamState.closed
            elif self._clock() >= self._drain_deadline:
                self._emit_log(LogEntry(
                    level=LogLevel.warn,
                    message="Session completed but no result was found",
                ))
                logger.warning("Job %s completed without an extractable result", self.job_id)
                self.state = StreamState.closed

    async def _poll_session(self, handle: str) -> SessionStatus | None:
        try:
            return await self.agent_client.get_session_status(handle)
        except TRANSIENT_ERRORS as e:
            logger.warning("Poll of session %s failed: %s", handle, e)
            self._emit_log(LogEntry(level=LogLevel.warn, message=f"Status poll failed: {redact_tokens(e.message)}"))
            return None

    async def _observe_session(self, status: SessionStatus, expected: str) -> None:
        terminal = status.status.is_terminal
        rendered = render_transcript(status.transcript, LOG_ORIGINS)
        for entry in lines_to_entries(self._cursor.advance(rendered, final=terminal)):
            self._emit_log(entry)

        current = self._advance_status(status.status)
        if current is not None:
            self._mirror_status(current, status.error)

        if not self._result_sent:
            result = await self.extractor.extract(status, expected=expected)
            if result is not None:
                self._deliver_result(result, store=True)

        if self._last_status is not None and self._last_status.is_terminal:
            self._on_terminal(self._last_status, status.error)

    def _observe_job(self, status: CanonicalStatus, result: AgentResult | None, error: str | None) -> None:
        self._advance_status(status)
        if result is not None and not self._result_sent:
            self._deliver_result(result, store=False)
        if self._last_status is not None and self._last_status.is_terminal:
            self._on_terminal(self._last_status, error)

    def _advance_status(self, status: CanonicalStatus) -> CanonicalStatus | None:
        """Record a newly observed status and emit it if it changed.

        Returns the status if it was accepted as a change, None otherwise.
        Once terminal, later observations are ignored.
        """
        if self._last_status is not None and self._last_status.is_terminal:
            return None
        if status == self._last_status:
            return None
        self._last_status = status
        self._emit("status", {"status": status.value})
        return status

    def _mirror_status(self, status: CanonicalStatus, error: str | None) -> None:
        try:
            if status is CanonicalStatus.failed:
                self.job_store.set_error(self.job_id, error or "Agent session failed")
            else:
                self.job_store.set_status(self.job_id, status)
        except InvalidStateTransition as e:
            logger.debug("Job %s keeps its status: %s", self.job_id, e)

    def _deliver_result(self, result: AgentResult, store: bool) -> None:
        self._result_sent = True
        if store:
            try:
                self.job_store.set_result(self.job_id, result)
            except InvalidStateTransition as e:
                logger.warning("Result for job %s not stored: %s", self.job_id, e)
        self._emit("result", result.model_dump(mode="json"))

    def _on_terminal(self, status: CanonicalStatus, error: str | None) -> None:
        if not self._complete_sent:
            self._complete_sent = True
            data: dict[str, Any] = {"status": status.value}
            if error:
                data["error"] = redact_tokens(error)
            self._emit("complete", data)

        if self.state is not StreamState.streaming:
            return
        if status is CanonicalStatus.completed and not self._result_sent:
            self.state = StreamState.draining
            self._drain_deadline = self._clock() + self.grace_seconds
            logger.info("Job %s completed without a result; draining for %ss", self.job_id, self.grace_seconds)
        else:
            self.state = StreamState.closed
