"""Tests for typed domain exceptions and error formatting."""

import pytest

from src.errors import (
    TRANSIENT_ERRORS,
    ConfigurationError,
    FlagSweepError,
    ForbiddenError,
    InvalidRequestError,
    InvalidStateTransition,
    JobNotFoundError,
    NotFoundError,
    ParseError,
    RateLimitedError,
    RegistryFileNotFoundError,
    SessionNotFoundError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    error_response_body,
    format_error,
)


class TestStatusMapping:
    """Each exception carries its own kind and HTTP status."""

    @pytest.mark.parametrize(
        "error, kind, status",
        [
            (InvalidRequestError(fields="owner"), "invalid_request", 400),
            (JobNotFoundError("job_1"), "not_found", 404),
            (SessionNotFoundError("sess_1"), "not_found", 404),
            (RegistryFileNotFoundError("acme", "webapp", "config/flags.json"), "not_found", 404),
            (ForbiddenError(), "forbidden", 403),
            (InvalidStateTransition("completed", "running", []), "conflict", 409),
            (ParseError("config/flags.json", "bad"), "parse_error", 422),
            (RateLimitedError(retry_after=30), "rate_limited", 429),
            (UpstreamUnavailableError(reason="boom"), "upstream_unavailable", 503),
            (UpstreamTimeoutError(timeout=30), "upstream_timeout", 504),
            (ConfigurationError(), "configuration_error", 500),
            (FlagSweepError(reason="x"), "internal_error", 500),
        ],
    )
    def test_kind_and_status(self, error, kind, status):
        assert error.kind == kind
        assert error.status_code == status

    def test_not_found_subclasses(self):
        assert isinstance(JobNotFoundError("j"), NotFoundError)
        assert isinstance(SessionNotFoundError("s"), NotFoundError)
        assert isinstance(RegistryFileNotFoundError("o", "r", "p"), NotFoundError)

    def test_timeout_is_transient(self):
        assert isinstance(UpstreamTimeoutError(timeout=1), TRANSIENT_ERRORS)
        assert isinstance(RateLimitedError(), TRANSIENT_ERRORS)
        assert not isinstance(SessionNotFoundError("s"), TRANSIENT_ERRORS)


class TestMessages:
    """Messages are rendered from registry templates."""

    def test_job_not_found_message(self):
        error = JobNotFoundError("job_abc")
        assert error.code == "E-4002"
        assert error.message == "Job not found: job_abc"
        assert error.details == {"job_id": "job_abc"}
        assert str(error) == "E-4002: Job not found: job_abc"

    def test_session_not_found_message(self):
        error = SessionNotFoundError("mock-123")
        assert error.code == "E-3004"
        assert "mock-123" in error.message

    def test_registry_file_not_found_includes_ref(self):
        error = RegistryFileNotFoundError("acme", "webapp", "config/flags.json", ref="dev")
        assert error.message == "File not found: config/flags.json in acme/webapp (ref: dev)"
        assert error.suggestions

    def test_parse_error_hints_expected_structure(self):
        error = ParseError("config/flags.json", "invalid JSON")
        assert "config/flags.json" in error.message
        assert "invalid JSON" in error.message
        assert '"flags"' in error.message
        assert any("Expected format" in s for s in error.suggestions)

    def test_invalid_state_transition_lists_allowed(self):
        error = InvalidStateTransition("pending", "pending2", ["running", "failed"])
        assert "Cannot transition from 'pending' to 'pending2'" in error.message
        assert "running, failed" in error.message
        assert error.allowed_transitions == ["running", "failed"]

    def test_terminal_transition_says_none(self):
        error = InvalidStateTransition("completed", "running", [])
        assert "none (terminal)" in error.message

    def test_rate_limited_carries_retry_after(self):
        error = RateLimitedError(retry_after=12.0)
        assert error.retry_after == 12.0
        assert "12.0" in error.message
        assert error.is_retryable is True

    def test_missing_placeholder_keeps_template(self):
        error = UpstreamUnavailableError()
        assert "{reason}" in error.message

    def test_explicit_message_wins(self):
        error = InvalidRequestError("flags must not be empty", code="E-1003")
        assert error.message == "flags must not be empty"
        assert error.code == "E-1003"

    def test_configuration_error_codes(self):
        assert ConfigurationError().message == "Devin API key not configured."
        assert ConfigurationError(code="E-5002").message == "GitHub token not configured."


class TestErrorResponseBody:
    """Tests for error_response_body."""

    def test_body_shape(self):
        error = InvalidRequestError(
            fields="owner",
            suggestions=['Provide "owner" (string)'],
            example={"owner": "acme"},
        )
        body = error_response_body(error)
        assert body["error_code"] == "E-1001"
        assert body["kind"] == "invalid_request"
        assert "owner" in body["message"]
        assert body["remediation"]
        assert body["suggestions"] == ['Provide "owner" (string)']
        assert body["example"] == {"owner": "acme"}
        assert "details" not in body

    def test_body_redacts_tokens(self):
        token = "ghp_" + "a" * 36
        error = UpstreamUnavailableError(reason=f"failed with token {token}")
        body = error_response_body(error)
        assert token not in body["message"]
        assert "[TOKEN_REDACTED]" in body["message"]


class TestFormatError:
    """Tests for CLI formatting."""

    def test_includes_code_suggestions_and_action(self):
        error = ConfigurationError(suggestions=["Set DEVIN_API_KEY environment variable"])
        text = format_error(error)
        assert text.startswith("E-5001: Devin API key not configured.")
        assert "  - Set DEVIN_API_KEY environment variable" in text
        assert "Action:" in text

    def test_without_remediation(self):
        text = format_error(ConfigurationError(), include_remediation=False)
        assert "Action:" not in text
