"""Tests for status normalization and transcript flattening."""

import pytest

from src.models import CanonicalStatus, LogLevel, Message, Origin
from src.services.status_normalizer import (
    TranscriptCursor,
    flatten_transcript,
    level_for_line,
    normalize_status,
    origin_for_type,
    render_transcript,
)

# =========================================================================
# normalize_status
# =========================================================================


@pytest.mark.parametrize(
    "token, expected",
    [
        ("running", CanonicalStatus.running),
        ("blocked", CanonicalStatus.running),
        ("completed", CanonicalStatus.completed),
        ("failed", CanonicalStatus.failed),
        ("cancelled", CanonicalStatus.cancelled),
        ("COMPLETED", CanonicalStatus.completed),
        ("  failed ", CanonicalStatus.failed),
    ],
)
def test_known_tokens(token, expected):
    assert normalize_status(token) is expected


@pytest.mark.parametrize("token", [None, "", "suspended", "finished", "resumed"])
def test_unknown_tokens_default_to_running(token):
    assert normalize_status(token) is CanonicalStatus.running


def test_terminal_property():
    assert CanonicalStatus.completed.is_terminal
    assert CanonicalStatus.cancelled.is_terminal
    assert not CanonicalStatus.running.is_terminal
    assert not CanonicalStatus.pending.is_terminal


# =========================================================================
# Origins and rendering
# =========================================================================


def test_origin_for_type():
    assert origin_for_type("devin_message") is Origin.agent
    assert origin_for_type("initial_user_message") is Origin.user
    assert origin_for_type("tool_result") is Origin.tool
    assert origin_for_type("something_new") is Origin.system
    assert origin_for_type(None) is Origin.system


def test_render_labels_and_skips_empty():
    messages = [
        Message(Origin.user, "Please analyze"),
        Message(Origin.agent, "[INFO] Starting"),
        Message(Origin.agent, "   "),
        Message(Origin.tool, "grep done"),
    ]
    assert render_transcript(messages) == "[user] Please analyze\n[agent] [INFO] Starting\n[tool] grep done"


def test_render_filters_origins():
    messages = [Message(Origin.user, "instruction"), Message(Origin.agent, "working")]
    assert render_transcript(messages, frozenset({Origin.agent})) == "[agent] working"


def test_flatten_excludes_user_messages():
    messages = [
        Message(Origin.user, "example {\"flags\": []}"),
        Message(Origin.agent, "[WARN] slow repo\nstill going"),
        Message(Origin.system, "[ERROR] sandbox restarted"),
    ]
    entries = flatten_transcript(messages, observed_at="2026-01-01T00:00:00+00:00")
    assert [e.message for e in entries] == [
        "[agent] [WARN] slow repo",
        "still going",
        "[system] [ERROR] sandbox restarted",
    ]
    assert [e.level for e in entries] == [LogLevel.warn, LogLevel.info, LogLevel.error]
    assert {e.timestamp for e in entries} == {"2026-01-01T00:00:00+00:00"}


def test_flatten_is_stable_for_same_prefix():
    messages = [Message(Origin.agent, "one"), Message(Origin.agent, "two")]
    first = flatten_transcript(messages, observed_at="t")
    second = flatten_transcript(messages, observed_at="t")
    assert first == second


@pytest.mark.parametrize(
    "line, level",
    [
        ("[agent] [DEBUG] Found references", LogLevel.debug),
        ("[agent] [WARNING] careful", LogLevel.warn),
        ("[agent] [error] lowercase tag", LogLevel.error),
        ("[agent] plain text", LogLevel.info),
    ],
)
def test_level_for_line(line, level):
    assert level_for_line(line) is level


# =========================================================================
# TranscriptCursor
# =========================================================================


class TestTranscriptCursor:
    """The cursor never re-emits text and never skips any."""

    def test_holds_back_partial_line_until_final(self):
        cursor = TranscriptCursor()
        assert cursor.advance("[agent] partial") == []
        assert cursor.advance("[agent] partial line") == []
        assert cursor.advance("[agent] partial line", final=True) == ["[agent] partial line"]
        assert cursor.advance("[agent] partial line", final=True) == []

    def test_emits_complete_lines_incrementally(self):
        cursor = TranscriptCursor()
        assert cursor.advance("[agent] a\n[agent] b") == ["[agent] a"]
        assert cursor.advance("[agent] a\n[agent] b\n[agent] c") == ["[agent] b"]
        assert cursor.consumed == len("[agent] a\n[agent] b\n")

    def test_growing_last_message_is_not_duplicated(self):
        cursor = TranscriptCursor()
        emitted = []
        snapshots = [
            [Message(Origin.agent, "step 1")],
            [Message(Origin.agent, "step 1"), Message(Origin.agent, "step 2 in")],
            [Message(Origin.agent, "step 1"), Message(Origin.agent, "step 2 in progress")],
            [Message(Origin.agent, "step 1"), Message(Origin.agent, "step 2 in progress"), Message(Origin.agent, "done")],
        ]
        for index, messages in enumerate(snapshots):
            final = index == len(snapshots) - 1
            emitted.extend(cursor.advance(render_transcript(messages), final=final))
        assert emitted == ["[agent] step 1", "[agent] step 2 in progress", "[agent] done"]

    def test_concatenation_reconstructs_flattened_transcript(self):
        messages = [Message(Origin.agent, f"[INFO] line {i}") for i in range(6)]
        cursor = TranscriptCursor()
        emitted = []
        for end in range(1, len(messages) + 1):
            emitted.extend(cursor.advance(render_transcript(messages[:end]), final=end == len(messages)))
        assert emitted == [e.message for e in flatten_transcript(messages)]

    def test_shorter_text_emits_nothing(self):
        cursor = TranscriptCursor()
        cursor.advance("[agent] abc\n")
        assert cursor.advance("[agent]") == []
