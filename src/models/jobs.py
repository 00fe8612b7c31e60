"""Job and log entry models held by the in-memory job store."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from src.models.results import AgentResult
from src.models.session import CanonicalStatus
from src.models.tasks import JobType


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(timezone.utc).isoformat()


class LogLevel(str, Enum):
    """Severity of a log entry."""

    info = "info"
    warn = "warn"
    error = "error"
    debug = "debug"


class LogEntry(BaseModel):
    """One line of job or transcript output."""

    timestamp: str = Field(default_factory=utc_now_iso)
    level: LogLevel = LogLevel.info
    message: str


class JobMetadata(BaseModel):
    """Repository coordinates and flags a job was created for."""

    owner: str
    repo: str
    branch: str
    flags: list[str] = Field(default_factory=list)


class Job(BaseModel):
    """Logical work item tracked independently of the agent session."""

    id: str
    type: JobType
    status: CanonicalStatus = CanonicalStatus.pending
    created_at: str
    updated_at: str
    session_handle: str | None = None
    logs: list[LogEntry] = Field(default_factory=list)
    result: AgentResult | None = None
    error: str | None = None
    metadata: JobMetadata
