"""Typed domain exceptions for API error mapping.

Every exception raised by the service layer derives from FlagSweepError
and carries its own error code, machine-readable kind and HTTP status,
so the API layer renders them through a single exception handler.

Usage:
    # In service layer
    raise JobNotFoundError(job_id)

    # In route handler: nothing to do, the app-level handler maps
    # the exception to a 404 response body.
"""

from typing import Any

from src.errors.registry import get_error


class FlagSweepError(Exception):
    """Base exception for all domain errors.

    Attributes:
        code: Error code in E-XXXX format.
        kind: Machine-readable error kind rendered in API responses.
        status_code: HTTP status the API layer responds with.
        message: Human-readable error message.
        remediation: Action the caller should take.
        suggestions: Concrete hints for unblocking the caller.
        example: Example input for request errors.
        details: Additional context dictionary.
    """

    default_code = "E-4001"
    kind = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        suggestions: list[str] | None = None,
        example: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
        **context: Any,
    ) -> None:
        self.code = code or self.default_code
        error_def = get_error(self.code)
        if message is None:
            message = error_def.message_template if error_def else f"Unknown error: {self.code}"
            try:
                message = message.format(**context)
            except (KeyError, IndexError):
                # Keep template if some placeholders are missing
                pass
        self.message = message
        self.remediation = error_def.remediation if error_def else "Check server logs."
        self.is_retryable = error_def.is_retryable if error_def else False
        self.suggestions = list(suggestions or [])
        self.example = example
        self.details = dict(details or {})
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return f"{self.code}: {self.message}"


class InvalidRequestError(FlagSweepError):
    """Client-caused request error. Maps to HTTP 400."""

    default_code = "E-1001"
    kind = "invalid_request"
    status_code = 400


class NotFoundError(FlagSweepError):
    """Resource was not found. Maps to HTTP 404."""

    kind = "not_found"
    status_code = 404


class JobNotFoundError(NotFoundError):
    """Job id unknown to the job store."""

    default_code = "E-4002"

    def __init__(self, job_id: str) -> None:
        super().__init__(job_id=job_id, details={"job_id": job_id})
        self.job_id = job_id


class SessionNotFoundError(NotFoundError):
    """Session handle unknown to the agent backend."""

    default_code = "E-3004"

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id=session_id, details={"session_id": session_id})
        self.session_id = session_id


class RegistryFileNotFoundError(NotFoundError):
    """Registry file missing from the repository (GitHub 404)."""

    default_code = "E-2001"

    def __init__(self, owner: str, repo: str, path: str, ref: str | None = None) -> None:
        super().__init__(
            owner=owner,
            repo=repo,
            path=path,
            ref_suffix=f" (ref: {ref})" if ref else "",
            suggestions=[
                "Check that the repository and file path are correct",
                "Ensure the repository is accessible with the provided credentials",
            ],
        )
        self.path = path


class ForbiddenError(FlagSweepError):
    """Upstream access control refused the request. Maps to HTTP 403."""

    default_code = "E-2002"
    kind = "forbidden"
    status_code = 403


class InvalidStateTransition(FlagSweepError):
    """Raised when attempting an invalid job status transition. Maps to HTTP 409.

    Attributes:
        current_state: The current status of the job.
        attempted_state: The status that was attempted.
        allowed_transitions: Valid transition targets from the current status.
    """

    default_code = "E-4003"
    kind = "conflict"
    status_code = 409

    def __init__(self, current_state: str, attempted_state: str, allowed_transitions: list[str]) -> None:
        allowed_str = ", ".join(allowed_transitions) or "none (terminal)"
        super().__init__(
            f"Cannot transition from '{current_state}' to '{attempted_state}'. "
            f"Allowed transitions: {allowed_str}",
        )
        self.current_state = current_state
        self.attempted_state = attempted_state
        self.allowed_transitions = allowed_transitions


class ParseError(FlagSweepError):
    """Malformed registry content. Maps to HTTP 422."""

    default_code = "E-2003"
    kind = "parse_error"
    status_code = 422

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            path=path,
            reason=reason,
            suggestions=[
                "Verify the file is valid JSON or YAML",
                "Check that the file structure matches expected format",
                'Expected format: array of flags or object with "flags" property',
            ],
        )
        self.path = path
        self.reason = reason


class UpstreamError(FlagSweepError):
    """Base for failures talking to an upstream service."""

    default_code = "E-3005"
    kind = "upstream_error"
    status_code = 502


class RateLimitedError(UpstreamError):
    """Upstream answered HTTP 429. Maps to HTTP 429 with a Retry-After hint."""

    default_code = "E-3002"
    kind = "rate_limited"
    status_code = 429

    def __init__(self, retry_after: float | None = None, **kwargs: Any) -> None:
        super().__init__(
            retry_after=retry_after if retry_after is not None else "a few",
            details={"retry_after": retry_after},
            **kwargs,
        )
        self.retry_after = retry_after


class UpstreamUnavailableError(UpstreamError):
    """Transport failure or 5xx from upstream. Maps to HTTP 503."""

    default_code = "E-3001"
    kind = "upstream_unavailable"
    status_code = 503


class UpstreamTimeoutError(UpstreamUnavailableError):
    """Upstream call exceeded its request timeout. Maps to HTTP 504."""

    default_code = "E-3003"
    kind = "upstream_timeout"
    status_code = 504


class ConfigurationError(FlagSweepError):
    """A credential required by the selected mode is missing. Maps to HTTP 500."""

    default_code = "E-5001"
    kind = "configuration_error"
    status_code = 500


# Errors a polling loop survives: the next poll may well succeed.
TRANSIENT_ERRORS: tuple[type[FlagSweepError], ...] = (
    UpstreamUnavailableError,
    RateLimitedError,
)
