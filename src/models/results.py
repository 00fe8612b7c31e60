"""Pydantic models for agent results.

A result is a tagged union: AnalysisResult (kind="analysis") for analyze
tasks and RemovalResult (kind="removal") for removal tasks. The tag is set
when the result is built, so consumers never re-infer the shape.
"""

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

logger = logging.getLogger(__name__)

ResultKind = Literal["analysis", "removal"]


class FlagReference(BaseModel):
    """A single place in the codebase that reads a flag."""

    file: str
    line: int | None = None
    context: str = ""


class FlagAnalysis(BaseModel):
    """Analysis details for a single flag."""

    key: str
    references: list[FlagReference] = Field(default_factory=list)
    reference_count: int = 0
    affected_files: list[str] = Field(default_factory=list)
    risk_level: Literal["low", "medium", "high"] = "medium"
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    recommendation: str = ""


class AnalysisSummary(BaseModel):
    """Totals across all analyzed flags."""

    total_flags: int
    total_references: int = 0
    estimated_effort_hours: float = 0


class AnalysisResult(BaseModel):
    """Result of an analyze-only session."""

    kind: Literal["analysis"] = "analysis"
    flags: list[FlagAnalysis]
    summary: AnalysisSummary

    @model_validator(mode="before")
    @classmethod
    def _fill_summary(cls, data: Any) -> Any:
        """Derive the summary from the flag list when the agent left it out."""
        if isinstance(data, dict) and data.get("summary") is None and isinstance(data.get("flags"), list):
            flags = [f for f in data["flags"] if isinstance(f, dict)]
            data = {
                **data,
                "summary": {
                    "total_flags": len(flags),
                    "total_references": sum(int(f.get("reference_count") or 0) for f in flags),
                },
            }
        return data


class RemovalSummary(BaseModel):
    """What a removal session changed."""

    model_config = ConfigDict(extra="allow")

    flags_removed: list[str] = Field(default_factory=list)
    files_modified: int = 0
    references_removed: int = 0
    tests_passed: bool | None = None


class RemovalResult(BaseModel):
    """Result of a removal session.

    A successful run carries pr_url; a run that could not open a PR carries
    the diff it produced together with the errors that stopped it.
    """

    kind: Literal["removal"] = "removal"
    pr_url: str | None = None
    branch: str | None = None
    diff: str | None = None
    commit_message: str | None = None
    summary: RemovalSummary = Field(default_factory=RemovalSummary)
    errors: list[str] | None = None


AgentResult = Annotated[Union[AnalysisResult, RemovalResult], Field(discriminator="kind")]

_agent_result_adapter: TypeAdapter[AgentResult] = TypeAdapter(AgentResult)


def looks_like_analysis(payload: Any) -> bool:
    """True if payload has the analysis shape (a "flags" list)."""
    return isinstance(payload, dict) and isinstance(payload.get("flags"), list)


def looks_like_removal(payload: Any) -> bool:
    """True if payload has the removal shape (summary.flags_removed or PR fields)."""
    if not isinstance(payload, dict):
        return False
    summary = payload.get("summary")
    if isinstance(summary, dict) and "flags_removed" in summary:
        return True
    return any(key in payload for key in ("pr_url", "diff", "commit_message"))


def classify_payload(payload: Any, expected: ResultKind | None = None) -> ResultKind | None:
    """Decide which result kind a raw payload should be built as.

    An explicit "kind" in the payload wins, then the kind the producing task
    expects, then the payload shape.
    """
    if not isinstance(payload, dict):
        return None
    declared = payload.get("kind")
    if declared in ("analysis", "removal"):
        return declared
    if expected is not None:
        return expected
    if looks_like_analysis(payload):
        return "analysis"
    if looks_like_removal(payload):
        return "removal"
    return None


def build_result(payload: Any, expected: ResultKind | None = None) -> AgentResult | None:
    """Build a tagged result from a raw payload.

    Args:
        payload: Decoded JSON object from the agent.
        expected: Kind the producing task expects, if known.

    Returns:
        AnalysisResult or RemovalResult, or None if the payload does not
        validate as the chosen kind.
    """
    kind = classify_payload(payload, expected)
    if kind is None:
        return None
    shape_ok = looks_like_analysis(payload) if kind == "analysis" else looks_like_removal(payload)
    if not shape_ok:
        return None
    try:
        return _agent_result_adapter.validate_python({**payload, "kind": kind})
    except ValidationError as e:
        logger.debug("Payload rejected as %s result: %s", kind, e.error_count())
        return None
