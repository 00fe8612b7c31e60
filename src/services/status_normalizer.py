"""Status normalization and transcript flattening.

Maps the agent's status vocabulary onto CanonicalStatus and turns the raw
transcript into ordered log entries. Both are pure functions: flattening
the same transcript prefix twice yields the same text, so a consumer that
remembers how much text it has already emitted can always find exactly
the new suffix.
"""

import re
from collections.abc import Iterable

from src.models import CanonicalStatus, LogEntry, LogLevel, Message, Origin, utc_now_iso

STATUS_MAP: dict[str, CanonicalStatus] = {
    "running": CanonicalStatus.running,
    "blocked": CanonicalStatus.running,  # waiting on a human still counts as in progress
    "completed": CanonicalStatus.completed,
    "failed": CanonicalStatus.failed,
    "cancelled": CanonicalStatus.cancelled,
}

# Upstream message "type" values and the origin they map to
MESSAGE_TYPE_ORIGINS: dict[str, Origin] = {
    "devin_message": Origin.agent,
    "agent_message": Origin.agent,
    "user_message": Origin.user,
    "initial_user_message": Origin.user,
    "system_message": Origin.system,
    "tool_message": Origin.tool,
    "tool_result": Origin.tool,
}

ORIGIN_LABELS: dict[Origin, str] = {
    Origin.agent: "[agent]",
    Origin.user: "[user]",
    Origin.system: "[system]",
    Origin.tool: "[tool]",
}

# Origins that appear in log output; user messages only echo our own instruction.
LOG_ORIGINS: frozenset[Origin] = frozenset({Origin.agent, Origin.system, Origin.tool})

_LEVEL_TAG = re.compile(r"\[(INFO|WARN|WARNING|ERROR|DEBUG)\]", re.IGNORECASE)

_TAG_LEVELS = {
    "info": LogLevel.info,
    "warn": LogLevel.warn,
    "warning": LogLevel.warn,
    "error": LogLevel.error,
    "debug": LogLevel.debug,
}


def normalize_status(token: str | None) -> CanonicalStatus:
    """Map an upstream status token to the canonical status.

    Unknown or absent tokens count as running: a failure shown to the user
    needs positive evidence.
    """
    if not token:
        return CanonicalStatus.running
    return STATUS_MAP.get(token.strip().lower(), CanonicalStatus.running)


def origin_for_type(message_type: str | None) -> Origin:
    """Map an upstream message type to an origin (unknown types are system)."""
    return MESSAGE_TYPE_ORIGINS.get((message_type or "").lower(), Origin.system)


def render_transcript(
    messages: Iterable[Message],
    origins: frozenset[Origin] | None = None,
) -> str:
    """Render messages as labelled text, one message after another.

    Messages with empty text are skipped. Messages are joined with a single
    newline and the result carries no trailing newline, so a growing last
    message only ever extends the rendered text.

    Args:
        messages: Transcript in upstream order.
        origins: Origins to keep (None keeps all).

    Returns:
        The rendered transcript text.
    """
    parts = []
    for message in messages:
        if origins is not None and message.origin not in origins:
            continue
        if not message.text or not message.text.strip():
            continue
        parts.append(f"{ORIGIN_LABELS[message.origin]} {message.text}")
    return "\n".join(parts)


def level_for_line(line: str) -> LogLevel:
    """Derive a log level from a leading [INFO]/[WARN]/[ERROR]/[DEBUG] tag."""
    match = _LEVEL_TAG.search(line[:40])
    if match is None:
        return LogLevel.info
    return _TAG_LEVELS[match.group(1).lower()]


def lines_to_entries(lines: Iterable[str], observed_at: str | None = None) -> list[LogEntry]:
    """Turn text lines into log entries, dropping blank lines.

    Args:
        lines: Lines in order.
        observed_at: Timestamp to stamp on every entry (defaults to now).
    """
    timestamp = observed_at or utc_now_iso()
    return [
        LogEntry(timestamp=timestamp, level=level_for_line(line), message=line)
        for line in lines
        if line.strip()
    ]


def flatten_transcript(
    messages: Iterable[Message],
    origins: frozenset[Origin] | None = LOG_ORIGINS,
    observed_at: str | None = None,
) -> list[LogEntry]:
    """Flatten a transcript into ordered log entries.

    Upstream messages carry no reliable per-line timestamps, so every entry
    is stamped with the time of flattening.
    """
    return lines_to_entries(render_transcript(messages, origins).split("\n"), observed_at)


class TranscriptCursor:
    """Tracks how much rendered transcript text a consumer already emitted.

    The cursor counts characters, not messages, so a last message that grows
    between polls is picked up without re-emitting what was already sent.
    While the session is live only newline-terminated lines are consumed;
    the trailing partial line is held back until it is terminated or the
    session ends.
    """

    def __init__(self) -> None:
        self.consumed = 0

    def advance(self, rendered: str, final: bool = False) -> list[str]:
        """Return the complete lines added since the last call.

        Args:
            rendered: Full rendered transcript text.
            final: Whether the session reached a terminal status, in which
                case the trailing partial line is released too.
        """
        if len(rendered) <= self.consumed:
            return []
        pending = rendered[self.consumed:]
        if not final:
            cut = pending.rfind("\n")
            if cut < 0:
                return []
            pending = pending[: cut + 1]
        self.consumed += len(pending)
        return [line for line in pending.split("\n") if line.strip()]
