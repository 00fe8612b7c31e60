"""Pydantic schemas for API request/response validation.

This module defines the data contracts for the flagsweep REST API. Wire
names are camelCase; Python attributes stay snake_case.

Request models are deliberately lenient: required task fields are
optional here and checked by the task's own validate(), so a missing
field yields an InvalidRequestError with a concrete example body rather
than a generic validation error.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.models import (
    AgentResult,
    AnalyzeTask,
    CanonicalStatus,
    Flag,
    Job,
    JobMetadata,
    JobType,
    LogEntry,
    RemoveTask,
    RepoCoordinates,
    TargetBehavior,
)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Task requests


class TaskRequest(CamelModel):
    """Fields shared by analyze and remove requests."""

    owner: str | None = None
    repo: str | None = None
    branch: str | None = None
    flags: list[str] | None = None
    working_dir: str | None = None

    def _coordinates(self) -> RepoCoordinates:
        return RepoCoordinates(
            owner=(self.owner or "").strip(),
            repo=(self.repo or "").strip(),
            branch=(self.branch or "").strip(),
        )

    def metadata(self) -> JobMetadata:
        """Job metadata recorded for this request."""
        coords = self._coordinates()
        return JobMetadata(owner=coords.owner, repo=coords.repo, branch=coords.branch, flags=list(self.flags or []))


class AnalyzeRequest(TaskRequest):
    """Request body for an analyze task."""

    file_patterns: list[str] | None = Field(None, alias="patterns")

    def to_task(self) -> AnalyzeTask:
        return AnalyzeTask(
            repo=self._coordinates(),
            flag_keys=tuple(self.flags or ()),
            working_dir=self.working_dir or None,
            file_patterns=tuple(self.file_patterns) if self.file_patterns else None,
        )


class RemoveRequest(TaskRequest):
    """Request body for a removal task."""

    target_behavior: str | None = None
    registry_files: list[str] | None = None
    test_command: str | None = None
    build_command: str | None = None

    def to_task(self) -> RemoveTask:
        target: Any = self.target_behavior
        if target in (TargetBehavior.on.value, TargetBehavior.off.value):
            target = TargetBehavior(target)
        return RemoveTask(
            repo=self._coordinates(),
            flag_keys=tuple(self.flags or ()),
            target_behavior=target,
            registry_file_paths=tuple(self.registry_files or ()),
            test_command=self.test_command or None,
            build_command=self.build_command or None,
            working_dir=self.working_dir or None,
        )


# Responses


class SessionCreatedResponse(CamelModel):
    """Stateless task creation result."""

    session_id: str
    poll_url: str
    mode: str


class JobCreatedResponse(CamelModel):
    """Job-tracked task creation result."""

    job_id: str
    stream_url: str


class SessionSnapshotResponse(CamelModel):
    """Point-in-time view of a session."""

    session_id: str
    status: CanonicalStatus
    output: str = ""
    logs: list[LogEntry] = Field(default_factory=list)
    result: AgentResult | None = None
    error: str | None = None


class JobResponse(CamelModel):
    """Point-in-time view of a job."""

    id: str
    type: JobType
    status: CanonicalStatus
    created_at: str
    updated_at: str
    session_id: str | None = None
    logs: list[LogEntry] = Field(default_factory=list)
    result: AgentResult | None = None
    error: str | None = None
    metadata: JobMetadata

    @classmethod
    def from_job(cls, job: Job) -> "JobResponse":
        return cls(
            id=job.id,
            type=job.type,
            status=job.status,
            created_at=job.created_at,
            updated_at=job.updated_at,
            session_id=job.session_handle,
            logs=job.logs,
            result=job.result,
            error=job.error,
            metadata=job.metadata,
        )


class JobListResponse(CamelModel):
    """All jobs, newest first."""

    jobs: list[JobResponse]
    total: int


class RegistrySource(CamelModel):
    """Where a flag registry was read from."""

    owner: str
    repo: str
    branch: str
    path: str


class FlagsResponse(CamelModel):
    """Parsed flag registry."""

    flags: list[Flag]
    source: RegistrySource
