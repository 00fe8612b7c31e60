"""Error code registry with E-XXXX format codes.

This module defines the error code system for flagsweep, organizing errors
into categories:
- E-1xxx: Request validation errors
- E-2xxx: Flag registry access errors (GitHub contents, parsing)
- E-3xxx: Agent API errors
- E-4xxx: System/internal errors
- E-5xxx: Configuration and credential errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    REQUEST = "request"  # E-1xxx: Request validation errors
    REGISTRY = "registry"  # E-2xxx: Flag registry access errors
    AGENT_API = "agent_api"  # E-3xxx: Agent API errors
    SYSTEM = "system"  # E-4xxx: System/internal errors
    CONFIG = "config"  # E-5xxx: Configuration errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str  # E-XXXX format
    category: ErrorCategory
    title: str  # Short title for display
    message_template: str  # Message with {placeholders}
    remediation: str  # Action user should take
    is_retryable: bool = False  # Can be retried without user action


# Error registry - all defined error codes
ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Request errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.REQUEST,
        title="Missing Required Parameters",
        message_template="Required parameters missing or invalid: {fields}.",
        remediation="Provide every required field and retry. See the example request.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.REQUEST,
        title="Invalid Target Behavior",
        message_template="targetBehavior must be 'on' or 'off', got {value!r}.",
        remediation="Set targetBehavior to 'on' to inline the flag as enabled, or 'off' to inline it as disabled.",
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.REQUEST,
        title="Empty Flag Selection",
        message_template="At least one flag key is required.",
        remediation="Select one or more flags from the registry and retry.",
    ),
    "E-1004": ErrorCode(
        code="E-1004",
        category=ErrorCategory.REQUEST,
        title="Empty Registry File List",
        message_template="At least one registry file path is required for flag removal.",
        remediation="List the registry files that declare the flags, e.g. config/flags.json.",
    ),
    # Registry access errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.REGISTRY,
        title="Registry File Not Found",
        message_template="File not found: {path} in {owner}/{repo}{ref_suffix}",
        remediation="Check that the repository, branch and registry path are correct.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.REGISTRY,
        title="Registry Access Denied",
        message_template="GitHub API rate limit exceeded or insufficient permissions.",
        remediation="Verify the GitHub token has 'contents: read' scope on the repository.",
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.REGISTRY,
        title="Registry Parse Error",
        message_template=(
            "Failed to parse {path}: {reason}. Expected an array of flags "
            "or an object with a \"flags\" array."
        ),
        remediation=(
            "Verify the file is valid JSON or YAML. Expected format: array of flags "
            "or object with \"flags\" property."
        ),
    ),
    "E-2004": ErrorCode(
        code="E-2004",
        category=ErrorCategory.REGISTRY,
        title="Registry Path Is Not A File",
        message_template="Path {path} is not a file (type: {kind}).",
        remediation="Point registryPath at the flag registry file, not a directory.",
    ),
    "E-2005": ErrorCode(
        code="E-2005",
        category=ErrorCategory.REGISTRY,
        title="GitHub Unavailable",
        message_template="Failed to fetch from GitHub: {reason}",
        remediation="Wait a moment and retry. Check githubstatus.com if the issue persists.",
        is_retryable=True,
    ),
    # Agent API errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.AGENT_API,
        title="Agent API Unavailable",
        message_template="Agent API is not responding: {reason}",
        remediation="Wait a few seconds and retry. Polling clients retry automatically.",
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.AGENT_API,
        title="Agent API Rate Limit Exceeded",
        message_template="Too many requests to the agent API. Retry after {retry_after} seconds.",
        remediation="Slow down polling or wait for the retry-after window to elapse.",
        is_retryable=True,
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.AGENT_API,
        title="Agent API Timeout",
        message_template="Agent API did not answer within {timeout} seconds.",
        remediation="Retry the request. Raise FLAGSWEEP_REQUEST_TIMEOUT if the API is consistently slow.",
        is_retryable=True,
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.AGENT_API,
        title="Agent Session Not Found",
        message_template="Session not found: {session_id}",
        remediation="Check the session id. Mock sessions only live as long as the server process.",
    ),
    "E-3005": ErrorCode(
        code="E-3005",
        category=ErrorCategory.AGENT_API,
        title="Agent Request Rejected",
        message_template="Agent API rejected the request ({status}): {reason}",
        remediation="Check the request parameters and the agent API documentation.",
    ),
    "E-3006": ErrorCode(
        code="E-3006",
        category=ErrorCategory.AGENT_API,
        title="Agent Authentication Failed",
        message_template="Agent API refused the credential ({status}).",
        remediation="Check DEVIN_API_KEY. The key may be revoked or lack session scope.",
    ),
    # System errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Internal Error",
        message_template="An unexpected error occurred: {reason}",
        remediation="This is a system error. Retry the operation. Check server logs if issue persists.",
    ),
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.SYSTEM,
        title="Job Not Found",
        message_template="Job not found: {job_id}",
        remediation="Jobs are held in memory only; a server restart discards them. Create a new job.",
    ),
    "E-4003": ErrorCode(
        code="E-4003",
        category=ErrorCategory.SYSTEM,
        title="Invalid Status Transition",
        message_template="Cannot transition from '{current}' to '{attempted}'.",
        remediation="Terminal jobs cannot be reopened. Create a new job instead.",
    ),
    # Configuration errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.CONFIG,
        title="Agent API Key Missing",
        message_template="Devin API key not configured.",
        remediation="Set DEVIN_API_KEY, or set DEVIN_MOCK_MODE=true to run without the agent API.",
    ),
    "E-5002": ErrorCode(
        code="E-5002",
        category=ErrorCategory.CONFIG,
        title="GitHub Token Missing",
        message_template="GitHub token not configured.",
        remediation="Set the GITHUB_TOKEN environment variable to a token with 'contents: read' scope.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
