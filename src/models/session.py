"""Agent session models.

Canonical lifecycle status, transcript messages and the normalized
status snapshot returned by every agent client implementation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CanonicalStatus(str, Enum):
    """Lifecycle status shared by jobs and agent sessions."""

    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """True for completed, failed and cancelled."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    CanonicalStatus.completed,
    CanonicalStatus.failed,
    CanonicalStatus.cancelled,
})


class Origin(str, Enum):
    """Who produced a transcript message."""

    agent = "agent"
    user = "user"
    system = "system"
    tool = "tool"


@dataclass(frozen=True)
class Message:
    """One transcript entry. Position in the transcript is its index."""

    origin: Origin
    text: str = ""


@dataclass(frozen=True)
class Attachment:
    """A file the agent attached to its session."""

    name: str
    url: str

    @property
    def is_json(self) -> bool:
        return self.name.lower().endswith(".json")


@dataclass
class SessionStatus:
    """Normalized result of one get-session-status round trip.

    Attributes:
        session_id: Handle of the polled session.
        status: Canonical status after normalization.
        raw_status: Upstream status token as received, for diagnostics.
        transcript: Ordered messages observed so far.
        structured_output: Dedicated structured-output payload, if any.
        attachments: Files attached to the session so far.
        error: Upstream error text, if the session reported one.
    """

    session_id: str
    status: CanonicalStatus
    raw_status: str | None = None
    transcript: list[Message] = field(default_factory=list)
    structured_output: dict[str, Any] | None = None
    attachments: list[Attachment] = field(default_factory=list)
    error: str | None = None
