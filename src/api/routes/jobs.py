"""FastAPI routes for job-tracked tasks.

A job wraps an agent session with server-side state: creation returns a
job id and a stream URL, GET /jobs/{job_id}/stream pushes the job's logs,
status, result and completion over Server-Sent Events, and
GET /jobs/{job_id} serves a refreshed snapshot for non-SSE clients.
"""

import contextlib
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, Request, Response
from sse_starlette.sse import EventSourceResponse

from src.api.routes.sessions import NO_STORE_HEADERS
from src.api.schemas import (
    AnalyzeRequest,
    JobCreatedResponse,
    JobListResponse,
    JobResponse,
    RemoveRequest,
)
from src.config import Settings
from src.models import JobType
from src.services.agent_client import AgentClient
from src.services.event_stream import EventStreamPublisher
from src.services.job_launcher import start_job
from src.services.job_store import JobStore
from src.services.provider import (
    get_agent_client,
    get_app_settings,
    get_job_store,
    get_result_extractor,
)
from src.services.result_extractor import ResultExtractor
from src.services.session_snapshot import refresh_job

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _created(job_id: str) -> JobCreatedResponse:
    return JobCreatedResponse(job_id=job_id, stream_url=f"/api/v1/jobs/{job_id}/stream")


@router.post("/analyze", response_model=JobCreatedResponse, status_code=201)
async def create_analyze_job(
    body: AnalyzeRequest,
    job_store: JobStore = Depends(get_job_store),
    agent_client: AgentClient = Depends(get_agent_client),
) -> JobCreatedResponse:
    """Create a job that analyzes flags in a repository.

    Args:
        body: Repository coordinates and flags to analyze.
        job_store: Job store dependency.
        agent_client: Agent client dependency.

    Returns:
        The job id and the URL of its event stream.
    """
    job_id = await start_job(JobType.analyze, body.to_task(), body.metadata(), job_store, agent_client)
    return _created(job_id)


@router.post("/remove", response_model=JobCreatedResponse, status_code=201)
async def create_remove_job(
    body: RemoveRequest,
    job_store: JobStore = Depends(get_job_store),
    agent_client: AgentClient = Depends(get_agent_client),
) -> JobCreatedResponse:
    """Create a job that removes flags and opens a pull request.

    Args:
        body: Repository coordinates, flags, target behavior and registry files.
        job_store: Job store dependency.
        agent_client: Agent client dependency.

    Returns:
        The job id and the URL of its event stream.
    """
    job_id = await start_job(JobType.remove, body.to_task(), body.metadata(), job_store, agent_client)
    return _created(job_id)


@router.get("", response_model=JobListResponse)
def list_jobs(job_store: JobStore = Depends(get_job_store)) -> JobListResponse:
    """List all jobs held by this process, newest first."""
    jobs = [JobResponse.from_job(job) for job in job_store.list_jobs()]
    return JobListResponse(jobs=jobs, total=len(jobs))


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: str,
    response: Response,
    job_store: JobStore = Depends(get_job_store),
    agent_client: AgentClient = Depends(get_agent_client),
    extractor: ResultExtractor = Depends(get_result_extractor),
) -> JobResponse:
    """Get a job snapshot, refreshed from its agent session.

    Args:
        job_id: Job id.
        response: Outgoing response, used to disable caching.
        job_store: Job store dependency.
        agent_client: Agent client dependency.
        extractor: Result extractor dependency.

    Returns:
        The job. If the session could not be polled, the stored job is
        returned with the poll error in its error field.

    Raises:
        JobNotFoundError: If the job does not exist (404).
    """
    response.headers.update(NO_STORE_HEADERS)
    job, _ = await refresh_job(job_id, job_store, agent_client, extractor)
    return JobResponse.from_job(job)


async def _event_generator(
    request: Request,
    publisher: EventStreamPublisher,
) -> AsyncGenerator[dict, None]:
    """Generate SSE messages from the publisher's event stream.

    Args:
        request: FastAPI request object for disconnect detection.
        publisher: Single-use publisher for this connection.

    Yields:
        Unnamed SSE messages whose data is the JSON-encoded event.
    """
    async with contextlib.aclosing(publisher.events()) as events:
        async for event in events:
            yield event.to_sse()
            if await request.is_disconnected():
                logger.info("Client disconnected from job %s stream", publisher.job_id)
                break


@router.get("/{job_id}/stream")
async def stream_job(
    request: Request,
    job_id: str,
    job_store: JobStore = Depends(get_job_store),
    agent_client: AgentClient = Depends(get_agent_client),
    extractor: ResultExtractor = Depends(get_result_extractor),
    settings: Settings = Depends(get_app_settings),
) -> EventSourceResponse:
    """Stream job events via Server-Sent Events.

    Events are {type, data, timestamp} with type one of log, status,
    result, error and complete. The stream closes after completion (or
    after the drain window if a completed job has no result yet), and
    polling stops as soon as the client disconnects.

    Args:
        request: FastAPI request object.
        job_id: Job id.
        job_store: Job store dependency.
        agent_client: Agent client dependency.
        extractor: Result extractor dependency.
        settings: Settings dependency.

    Returns:
        EventSourceResponse streaming job events.

    Raises:
        JobNotFoundError: If the job does not exist (404).
    """
    job_store.require(job_id)
    publisher = EventStreamPublisher(
        job_id,
        job_store,
        agent_client,
        extractor,
        poll_interval=settings.poll_interval_seconds,
        grace_seconds=settings.drain_grace_seconds,
    )
    return EventSourceResponse(
        _event_generator(request, publisher),
        media_type="text/event-stream",
        ping=15,
    )
