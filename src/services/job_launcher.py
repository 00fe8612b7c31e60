"""Job creation: validate the task, record the job, start its session."""

import logging

from src.errors import FlagSweepError
from src.models import AgentTask, CanonicalStatus, JobMetadata, JobType, LogLevel
from src.services.agent_client import AgentClient
from src.services.job_store import JobStore

logger = logging.getLogger(__name__)


async def start_job(
    job_type: JobType,
    task: AgentTask,
    metadata: JobMetadata,
    job_store: JobStore,
    agent_client: AgentClient,
) -> str:
    """Validate a task, create its job and start the agent session.

    The task is validated before the job exists, so an invalid request
    never leaves a job behind. If the session cannot be started the job is
    marked failed and the error propagates.

    Args:
        job_type: analyze or remove.
        task: Task handed to the agent.
        metadata: Repository coordinates and flags recorded on the job.
        job_store: Shared job store.
        agent_client: Client for the configured mode.

    Returns:
        The new job id.

    Raises:
        InvalidRequestError: If the task is missing required fields.
        FlagSweepError: If the agent session could not be created.
    """
    task.validate()
    job = job_store.create(job_type, metadata)
    job_store.append_log(
        job.id, LogLevel.info,
        f"Created {job_type.value} job for {task.repo.full_name} ({', '.join(task.flag_keys)})",
    )
    try:
        handle = await agent_client.create_session(task)
    except FlagSweepError as e:
        logger.warning("Job %s could not start its session: %s", job.id, e)
        job_store.append_log(job.id, LogLevel.error, f"Failed to start agent session: {e.message}")
        job_store.set_error(job.id, e.message)
        raise
    job_store.attach_session_handle(job.id, handle)
    job_store.set_status(job.id, CanonicalStatus.running)
    job_store.append_log(job.id, LogLevel.info, f"Agent session {handle} started ({agent_client.mode} mode)")
    return job.id
