"""Domain models for flagsweep.

Exports session, result, task, job and flag registry models.
"""

from src.models.flags import Flag
from src.models.jobs import Job, JobMetadata, LogEntry, LogLevel, utc_now_iso
from src.models.results import (
    AgentResult,
    AnalysisResult,
    AnalysisSummary,
    FlagAnalysis,
    FlagReference,
    RemovalResult,
    RemovalSummary,
    ResultKind,
    build_result,
)
from src.models.session import (
    TERMINAL_STATUSES,
    Attachment,
    CanonicalStatus,
    Message,
    Origin,
    SessionStatus,
)
from src.models.tasks import (
    ANALYZE_EXAMPLE,
    REMOVE_EXAMPLE,
    AgentTask,
    AnalyzeTask,
    JobType,
    RemoveTask,
    RepoCoordinates,
    TargetBehavior,
)

__all__ = [
    # Session models
    "CanonicalStatus",
    "TERMINAL_STATUSES",
    "Origin",
    "Message",
    "Attachment",
    "SessionStatus",
    # Result models
    "AgentResult",
    "AnalysisResult",
    "AnalysisSummary",
    "FlagAnalysis",
    "FlagReference",
    "RemovalResult",
    "RemovalSummary",
    "ResultKind",
    "build_result",
    # Task models
    "AgentTask",
    "AnalyzeTask",
    "RemoveTask",
    "RepoCoordinates",
    "JobType",
    "TargetBehavior",
    "ANALYZE_EXAMPLE",
    "REMOVE_EXAMPLE",
    # Job models
    "Job",
    "JobMetadata",
    "LogEntry",
    "LogLevel",
    "utc_now_iso",
    # Flag registry
    "Flag",
]
