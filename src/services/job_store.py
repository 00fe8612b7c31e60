"""In-memory job store with state machine validation.

Jobs live for the lifetime of the process. Every mutation goes through a
JobStore method that holds the store lock, so a concurrent reader never
observes a half-applied update, and get() hands out deep copies that the
caller cannot use to corrupt stored state.
"""

import logging
import threading
from typing import Any
from uuid import uuid4

from src.errors import InvalidStateTransition, JobNotFoundError
from src.models import (
    AgentResult,
    CanonicalStatus,
    Job,
    JobMetadata,
    JobType,
    LogEntry,
    LogLevel,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

# Valid status transitions for the job lifecycle
VALID_TRANSITIONS: dict[CanonicalStatus, list[CanonicalStatus]] = {
    CanonicalStatus.pending: [
        CanonicalStatus.running,
        CanonicalStatus.completed,
        CanonicalStatus.failed,
        CanonicalStatus.cancelled,
    ],
    CanonicalStatus.running: [
        CanonicalStatus.completed,
        CanonicalStatus.failed,
        CanonicalStatus.cancelled,
    ],
    CanonicalStatus.completed: [],  # terminal
    CanonicalStatus.failed: [],  # terminal
    CanonicalStatus.cancelled: [],  # terminal
}


class JobStore:
    """Process-wide registry of jobs keyed by id.

    Thread-safe: FastAPI runs sync handlers in a thread pool while the
    stream publishers run on the event loop, and all of them share one
    store.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def _require(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _transition(self, job: Job, status: CanonicalStatus) -> None:
        if job.status == status:
            return
        allowed = VALID_TRANSITIONS[job.status]
        if status not in allowed:
            raise InvalidStateTransition(
                job.status.value, status.value, [s.value for s in allowed]
            )
        job.status = status

    # =========================================================================
    # Job Operations
    # =========================================================================

    def create(self, job_type: JobType, metadata: JobMetadata | dict[str, Any]) -> Job:
        """Create a pending job with no logs, result or error.

        Args:
            job_type: analyze or remove.
            metadata: Repository coordinates and flags for the job.

        Returns:
            Snapshot of the created job.
        """
        if isinstance(metadata, dict):
            metadata = JobMetadata(**metadata)
        now = utc_now_iso()
        job = Job(
            id=f"job_{uuid4().hex}",
            type=job_type,
            status=CanonicalStatus.pending,
            created_at=now,
            updated_at=now,
            metadata=metadata,
        )
        with self._lock:
            self._jobs[job.id] = job
            logger.info("Created %s job %s", job_type.value, job.id)
            return job.model_copy(deep=True)

    def get(self, job_id: str) -> Job | None:
        """Return a deep-copied snapshot of a job, or None if unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job is not None else None

    def require(self, job_id: str) -> Job:
        """Return a snapshot of a job.

        Raises:
            JobNotFoundError: If the id is unknown.
        """
        with self._lock:
            return self._require(job_id).model_copy(deep=True)

    def list_jobs(self) -> list[Job]:
        """Return snapshots of all jobs, newest first."""
        with self._lock:
            jobs = [job.model_copy(deep=True) for job in self._jobs.values()]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def attach_session_handle(self, job_id: str, handle: str) -> None:
        """Record the agent session working on a job. Idempotent."""
        with self._lock:
            job = self._require(job_id)
            if job.session_handle == handle:
                return
            job.session_handle = handle
            job.updated_at = utc_now_iso()

    def set_status(self, job_id: str, status: CanonicalStatus) -> None:
        """Move a job to a new status.

        Setting the current status again is a no-op.

        Raises:
            JobNotFoundError: If the id is unknown.
            InvalidStateTransition: If the job is terminal or the move goes backwards.
        """
        with self._lock:
            job = self._require(job_id)
            self._transition(job, status)
            job.updated_at = utc_now_iso()

    def append_log(self, job_id: str, level: LogLevel | str, message: str) -> LogEntry:
        """Append one log entry stamped with the current time.

        Existing entries are never modified.
        """
        entry = LogEntry(level=LogLevel(level), message=message)
        with self._lock:
            job = self._require(job_id)
            job.logs.append(entry)
            job.updated_at = entry.timestamp
        return entry.model_copy()

    def set_result(self, job_id: str, result: AgentResult) -> bool:
        """Store a job's result and mark it completed.

        The first result wins; later calls leave the stored result alone.

        Returns:
            True if the result was stored, False if the job already had one.

        Raises:
            JobNotFoundError: If the id is unknown.
            InvalidStateTransition: If the job already failed or was cancelled.
        """
        with self._lock:
            job = self._require(job_id)
            if job.result is not None:
                logger.debug("Job %s already has a result; keeping the first", job_id)
                return False
            self._transition(job, CanonicalStatus.completed)
            job.result = result
            job.updated_at = utc_now_iso()
            return True

    def set_error(self, job_id: str, message: str) -> None:
        """Store a job's error and mark it failed.

        Raises:
            JobNotFoundError: If the id is unknown.
            InvalidStateTransition: If the job already completed or was cancelled.
        """
        with self._lock:
            job = self._require(job_id)
            self._transition(job, CanonicalStatus.failed)
            job.error = message
            job.updated_at = utc_now_iso()

    def clear(self) -> None:
        """Remove every job (tests and admin only)."""
        with self._lock:
            self._jobs.clear()
