"""Error formatting utilities.

This module provides:
- Response-body rendering for API error responses
- Multi-line formatting for CLI display
"""

from typing import Any

from src.errors.domain import FlagSweepError
from src.utils.redaction import redact_tokens


def error_response_body(error: FlagSweepError) -> dict[str, Any]:
    """Render an error as the JSON body every API error response shares.

    Args:
        error: The FlagSweepError to render.

    Returns:
        Dict with error_code, kind, message, remediation, suggestions and,
        when present, example and details.
    """
    body: dict[str, Any] = {
        "error_code": error.code,
        "kind": error.kind,
        "message": redact_tokens(error.message),
        "remediation": error.remediation,
        "suggestions": error.suggestions,
    }
    if error.example is not None:
        body["example"] = error.example
    if error.details:
        body["details"] = error.details
    return body


def format_error(error: FlagSweepError, include_remediation: bool = True) -> str:
    """Format error for display to user.

    Args:
        error: The FlagSweepError to format.
        include_remediation: Whether to include remediation steps.

    Returns:
        Multi-line formatted string suitable for user display.
    """
    lines = [f"{error.code}: {redact_tokens(error.message)}"]

    for suggestion in error.suggestions:
        lines.append(f"  - {suggestion}")

    if include_remediation:
        lines.append(f"  Action: {error.remediation}")

    return "\n".join(lines)
