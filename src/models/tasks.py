"""Task requests handed to the agent.

A task is either an AnalyzeTask or a RemoveTask. Both validate their own
required fields before dispatch so that no session is ever created for a
request the agent could not act on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from src.errors import InvalidRequestError

ANALYZE_EXAMPLE = {
    "owner": "facebook",
    "repo": "react",
    "branch": "main",
    "flags": ["new_feature"],
}

REMOVE_EXAMPLE = {
    "owner": "facebook",
    "repo": "react",
    "branch": "main",
    "flags": ["old_flag"],
    "targetBehavior": "on",
    "registryFiles": ["config/flags.json"],
}


class JobType(str, Enum):
    """Kind of work a task (and the job tracking it) performs."""

    analyze = "analyze"
    remove = "remove"

    @property
    def result_kind(self) -> str:
        """Result kind this task produces ("analysis" or "removal")."""
        return "analysis" if self is JobType.analyze else "removal"


class TargetBehavior(str, Enum):
    """Value a removed flag is inlined as."""

    on = "on"
    off = "off"


@dataclass(frozen=True)
class RepoCoordinates:
    """Repository the agent works in."""

    owner: str
    repo: str
    branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.owner}/{self.repo}"


def _missing_repo_fields(repo: RepoCoordinates) -> list[str]:
    return [
        name
        for name in ("owner", "repo", "branch")
        if not isinstance(getattr(repo, name), str) or not getattr(repo, name).strip()
    ]


def _clean_keys(values: tuple[str, ...]) -> list[str]:
    return [v for v in values if isinstance(v, str) and v.strip()]


@dataclass(frozen=True)
class AnalyzeTask:
    """Analyze-only request: report flag usage, change nothing."""

    repo: RepoCoordinates
    flag_keys: tuple[str, ...]
    working_dir: str | None = None
    file_patterns: tuple[str, ...] | None = None

    kind = JobType.analyze

    def validate(self) -> None:
        """Raise InvalidRequestError unless the task can be dispatched."""
        missing = _missing_repo_fields(self.repo)
        if missing:
            raise InvalidRequestError(
                fields=", ".join(missing),
                suggestions=[f'Provide "{name}" (string)' for name in missing],
                example=ANALYZE_EXAMPLE,
            )
        if not _clean_keys(self.flag_keys) or len(_clean_keys(self.flag_keys)) != len(self.flag_keys):
            raise InvalidRequestError(
                code="E-1003",
                suggestions=['Provide "flags" (array of strings, non-empty)'],
                example=ANALYZE_EXAMPLE,
            )


@dataclass(frozen=True)
class RemoveTask:
    """Removal request: inline the flag, update registries, open a PR."""

    repo: RepoCoordinates
    flag_keys: tuple[str, ...]
    target_behavior: TargetBehavior
    registry_file_paths: tuple[str, ...]
    test_command: str | None = None
    build_command: str | None = None
    working_dir: str | None = None

    kind = JobType.remove

    def validate(self) -> None:
        """Raise InvalidRequestError unless the task can be dispatched."""
        missing = _missing_repo_fields(self.repo)
        if missing:
            raise InvalidRequestError(
                fields=", ".join(missing),
                suggestions=[f'Provide "{name}" (string)' for name in missing],
                example=REMOVE_EXAMPLE,
            )
        if not _clean_keys(self.flag_keys) or len(_clean_keys(self.flag_keys)) != len(self.flag_keys):
            raise InvalidRequestError(
                code="E-1003",
                suggestions=['Provide "flags" (array of strings, non-empty)'],
                example=REMOVE_EXAMPLE,
            )
        if not isinstance(self.target_behavior, TargetBehavior):
            raise InvalidRequestError(
                code="E-1002",
                value=self.target_behavior,
                suggestions=['Provide "targetBehavior" ("on" or "off")'],
                example=REMOVE_EXAMPLE,
            )
        paths = _clean_keys(self.registry_file_paths)
        if not paths or len(paths) != len(self.registry_file_paths):
            raise InvalidRequestError(
                code="E-1004",
                suggestions=['Provide "registryFiles" (array of strings, non-empty)'],
                example=REMOVE_EXAMPLE,
            )


AgentTask = Union[AnalyzeTask, RemoveTask]
