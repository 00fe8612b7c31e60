"""Point-in-time snapshots of sessions and jobs.

Snapshots are the polling alternative to the event stream. Every call
fetches the session afresh and re-derives the complete log list from the
whole transcript, so the caller replaces what it shows rather than
appending. No per-caller state is kept.
"""

import logging

from pydantic import BaseModel, Field

from src.errors import FlagSweepError, InvalidStateTransition
from src.models import AgentResult, CanonicalStatus, Job, LogEntry, SessionStatus
from src.services.agent_client import AgentClient
from src.services.job_store import JobStore
from src.services.result_extractor import ResultExtractor
from src.services.status_normalizer import LOG_ORIGINS, flatten_transcript, render_transcript
from src.utils.redaction import redact_tokens

logger = logging.getLogger(__name__)


class SessionSnapshot(BaseModel):
    """Everything known about a session right now."""

    session_id: str
    status: CanonicalStatus
    output: str = ""
    logs: list[LogEntry] = Field(default_factory=list)
    result: AgentResult | None = None
    error: str | None = None


async def snapshot_session(
    handle: str,
    agent_client: AgentClient,
    extractor: ResultExtractor,
    expected: str | None = None,
) -> SessionSnapshot:
    """Fetch a session and build its full snapshot.

    Args:
        handle: Session handle.
        agent_client: Client for the configured mode.
        extractor: Shared result extractor.
        expected: Result kind the session's task produces, if known.

    Raises:
        SessionNotFoundError: If the handle is unknown.
        UpstreamUnavailableError: If the upstream cannot be reached.
    """
    status = await agent_client.get_session_status(handle)
    return await build_snapshot(status, extractor, expected)


async def build_snapshot(
    status: SessionStatus,
    extractor: ResultExtractor,
    expected: str | None = None,
) -> SessionSnapshot:
    """Build a snapshot from an already-fetched session status."""
    result = await extractor.extract(status, expected=expected)
    return SessionSnapshot(
        session_id=status.session_id,
        status=status.status,
        output=render_transcript(status.transcript, LOG_ORIGINS),
        logs=flatten_transcript(status.transcript),
        result=result,
        error=redact_tokens(status.error) or None,
    )


async def refresh_job(
    job_id: str,
    job_store: JobStore,
    agent_client: AgentClient,
    extractor: ResultExtractor,
) -> tuple[Job, SessionSnapshot | None]:
    """Refresh a job from its session and return the updated job.

    While the job is not terminal and has a session, the session is polled
    and its status and result are mirrored into the job store. A failed
    poll does not fail the call: the stored job is returned with the
    error recorded on the returned copy only.

    Returns:
        The job after refresh, and the session snapshot if one was taken.

    Raises:
        JobNotFoundError: If the id is unknown.
    """
    job = job_store.require(job_id)
    if job.session_handle is None or job.status.is_terminal:
        return job, None

    try:
        snapshot = await snapshot_session(
            job.session_handle, agent_client, extractor, expected=job.type.result_kind
        )
    except FlagSweepError as e:
        logger.warning("Refresh of job %s failed: %s", job_id, e)
        job.error = redact_tokens(e.message)
        return job, None

    try:
        if snapshot.result is not None:
            job_store.set_result(job_id, snapshot.result)
        elif snapshot.status is CanonicalStatus.failed:
            job_store.set_error(job_id, snapshot.error or "Agent session failed")
        elif snapshot.status is not CanonicalStatus.pending:
            job_store.set_status(job_id, snapshot.status)
    except InvalidStateTransition as e:
        logger.warning("Job %s not updated from session: %s", job_id, e)
    return job_store.require(job_id), snapshot
