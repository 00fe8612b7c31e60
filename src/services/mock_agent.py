"""In-memory agent simulation for local development and tests.

A mock session is a scripted timeline: each message is revealed once its
offset (a multiple of step_seconds) has elapsed since creation, and the
session reports completed once the last step is visible. Nothing runs in
the background; every status call derives the visible prefix from the
clock, so polling from separate requests sees a consistent, growing
transcript.

Sessions live in one MockSessionRegistry per process for the lifetime of
the process.

Example:
    registry = MockSessionRegistry(step_seconds=0.5)
    client = MockAgentClient(registry)
    handle = await client.create_session(task)
    status = await client.get_session_status(handle)
"""

import json
import logging
import random
import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from src.errors import SessionNotFoundError
from src.models import (
    AgentTask,
    AnalyzeTask,
    CanonicalStatus,
    Message,
    Origin,
    RemoveTask,
    SessionStatus,
)
from src.services.agent_client import AgentClient
from src.services.instructions import build_instruction

logger = logging.getLogger(__name__)

MOCK_FILES = (
    "src/components/Header.tsx",
    "src/pages/Dashboard.tsx",
    "src/utils/features.ts",
    "src/hooks/useFeatureFlag.ts",
)

RISK_LEVELS = ("low", "medium", "high")

RECOMMENDATIONS = {
    "low": "Safe to remove - all references are simple conditionals",
    "medium": "Review before removing - flag guards shared rendering logic",
    "high": "Remove with care - flag is read in several code paths",
}


@dataclass
class MockSession:
    """A scripted session.

    Attributes:
        handle: Session handle returned to the caller.
        task: Task the session was created for.
        created_at: Clock reading at creation.
        timeline: (offset seconds, message) pairs in transcript order.
        completes_at: Offset at which the session reports completed.
        structured_output: Payload exposed on the structured channel once complete.
    """

    handle: str
    task: AgentTask
    created_at: float
    timeline: list[tuple[float, Message]] = field(default_factory=list)
    completes_at: float = 0.0
    structured_output: dict[str, Any] | None = None


def _slug(keys: tuple[str, ...]) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", "-".join(keys)).strip("-") or "flags"


def build_mock_analysis(task: AnalyzeTask, rng: random.Random) -> dict[str, Any]:
    """Synthesize an analysis payload with one entry per requested flag."""
    flags = []
    for index, key in enumerate(task.flag_keys):
        files = rng.sample(MOCK_FILES, rng.randint(1, len(MOCK_FILES)))
        references = [
            {"file": path, "line": rng.randint(5, 240), "context": f"if (isEnabled('{key}')) {{"}
            for path in files
        ]
        risk = RISK_LEVELS[index % len(RISK_LEVELS)]
        flags.append({
            "key": key,
            "references": references,
            "reference_count": len(references),
            "affected_files": files,
            "risk_level": risk,
            "confidence": round(0.85 + rng.random() * 0.15, 2),
            "recommendation": RECOMMENDATIONS[risk],
        })
    return {
        "flags": flags,
        "summary": {
            "total_flags": len(flags),
            "total_references": sum(f["reference_count"] for f in flags),
            "estimated_effort_hours": len(flags) * 2,
        },
    }


def build_mock_removal(task: RemoveTask, rng: random.Random, succeed: bool) -> dict[str, Any]:
    """Synthesize a removal payload.

    A successful run carries pr_url and no errors; a failed run carries the
    diff it produced and a non-empty error list, never a pr_url.
    """
    branch = f"remove-{_slug(task.flag_keys)}"
    files_modified = rng.randint(2, 6)
    if succeed:
        return {
            "pr_url": f"{task.repo.url}/pull/{rng.randint(100, 999)}",
            "branch": branch,
            "commit_message": f"Remove feature flags: {', '.join(task.flag_keys)}",
            "summary": {
                "flags_removed": list(task.flag_keys),
                "files_modified": files_modified,
                "references_removed": files_modified + rng.randint(0, 4),
                "tests_passed": True,
            },
        }
    registry_path = task.registry_file_paths[0]
    removed_lines = "\n".join(f'-  {{"key": "{key}", "state": "enabled"}},' for key in task.flag_keys)
    return {
        "branch": branch,
        "diff": f"--- a/{registry_path}\n+++ b/{registry_path}\n@@ -1,6 +1,4 @@\n{removed_lines}\n",
        "summary": {
            "flags_removed": [],
            "files_modified": files_modified,
            "references_removed": 0,
            "tests_passed": False,
        },
        "errors": [f"Test command failed after inlining {task.flag_keys[0]} as {task.target_behavior.value}"],
    }


def _analyze_script(task: AnalyzeTask, rng: random.Random) -> tuple[list[str], dict[str, Any], str | None]:
    lines = [
        "[INFO] Starting analysis...",
        f"[INFO] Scanning {len(task.flag_keys)} flags in {task.repo.full_name}",
    ]
    for key in task.flag_keys:
        lines.append(f"[INFO] Analyzing flag: {key}")
        lines.append("[DEBUG] Found references in codebase")
    lines.append("[INFO] Generating analysis report...")
    lines.append("[INFO] Analysis complete!")
    return lines, build_mock_analysis(task, rng), None


def _removal_script(
    task: RemoveTask, rng: random.Random, failure_rate: float
) -> tuple[list[str], None, str]:
    succeed = rng.random() >= failure_rate
    payload = build_mock_removal(task, rng, succeed)
    lines = [
        "[INFO] Starting flag removal...",
        f"[INFO] Creating branch {payload['branch']} from {task.repo.branch}",
    ]
    for key in task.flag_keys:
        lines.append(f"[INFO] Removing flag: {key} (inlining as {task.target_behavior.value})")
    lines.append(f"[INFO] Updating registry files: {', '.join(task.registry_file_paths)}")
    if task.build_command:
        lines.append(f"[INFO] Running build: {task.build_command}")
    if task.test_command:
        lines.append(f"[INFO] Running tests: {task.test_command}")
    if succeed:
        lines.append(f"[INFO] Opened pull request {payload['pr_url']}")
    else:
        lines.append(f"[ERROR] {payload['errors'][0]}")
    report = f"Removal finished.\n```json\n{json.dumps(payload, indent=2)}\n```"
    return lines, None, report


class MockSessionRegistry:
    """Process-wide store of mock sessions keyed by handle.

    Thread-safe: sessions are created from request handlers and read from
    stream loops concurrently.
    """

    def __init__(
        self,
        step_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        failure_rate: float = 0.2,
    ) -> None:
        """Initialize an empty registry.

        Args:
            step_seconds: Delay between consecutive scripted messages.
            clock: Monotonic time source.
            failure_rate: Probability that a removal session fails to open a PR.
        """
        self.step_seconds = step_seconds
        self.failure_rate = failure_rate
        self._clock = clock
        self._sessions: dict[str, MockSession] = {}
        self._lock = threading.Lock()

    def create(self, task: AgentTask) -> MockSession:
        """Script and register a session for a validated task."""
        handle = f"mock-{uuid4().hex}"
        rng = random.Random(handle)
        if isinstance(task, RemoveTask):
            lines, structured, report = _removal_script(task, rng, self.failure_rate)
        else:
            lines, structured, report = _analyze_script(task, rng)

        timeline = [(0.0, Message(origin=Origin.user, text=build_instruction(task)))]
        for step, line in enumerate(lines, start=1):
            timeline.append((step * self.step_seconds, Message(origin=Origin.agent, text=line)))
        completes_at = len(lines) * self.step_seconds
        if report is not None:
            timeline.append((completes_at, Message(origin=Origin.agent, text=report)))

        session = MockSession(
            handle=handle,
            task=task,
            created_at=self._clock(),
            timeline=timeline,
            completes_at=completes_at,
            structured_output=structured,
        )
        with self._lock:
            self._sessions[handle] = session
        logger.info("Created mock %s session %s", task.kind.value, handle)
        return session

    def get(self, handle: str) -> MockSession | None:
        with self._lock:
            return self._sessions.get(handle)

    def status(self, handle: str) -> SessionStatus:
        """Return the session as it looks right now.

        Raises:
            SessionNotFoundError: If the handle was never created here.
        """
        session = self.get(handle)
        if session is None:
            raise SessionNotFoundError(handle)
        elapsed = self._clock() - session.created_at
        transcript = [message for offset, message in session.timeline if offset <= elapsed]
        done = elapsed >= session.completes_at
        status = CanonicalStatus.completed if done else CanonicalStatus.running
        return SessionStatus(
            session_id=handle,
            status=status,
            raw_status=status.value,
            transcript=transcript,
            structured_output=dict(session.structured_output) if done and session.structured_output else None,
        )

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class MockAgentClient(AgentClient):
    """AgentClient backed by a MockSessionRegistry. Makes no network calls."""

    mode = "mock"

    def __init__(self, registry: MockSessionRegistry) -> None:
        self.registry = registry

    async def create_session(self, task: AgentTask) -> str:
        task.validate()
        return self.registry.create(task).handle

    async def get_session_status(self, handle: str) -> SessionStatus:
        return self.registry.status(handle)
