"""Secret redaction utility for safe logging and error responses.

Keeps GitHub tokens and agent API keys out of logs, error messages and
API error bodies. Dict redaction uses case-insensitive substring matching
on keys; free-text redaction matches known token shapes and
Authorization headers.
"""

import re

# Substring patterns matched case-insensitively against dict keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "secret", "token", "authorization", "api_key", "apikey", "password",
    "credential",
})

_REDACTED = "***REDACTED***"

# GitHub classic/fine-grained tokens, Authorization headers, Devin API keys.
_TOKEN_PATTERNS = re.compile(
    r"(?:"
    r"gh[pousr]_[A-Za-z0-9]{36,}"
    r"|"
    r"github_pat_[A-Za-z0-9_]{22,}"
    r"|"
    r"(?i:Bearer)\s+[A-Za-z0-9._\-]+"
    r"|"
    r"apk_(?:user_)?[A-Za-z0-9_\-]{16,}"
    r")"
)


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    """Check if a key matches any sensitive pattern (case-insensitive substring).

    Args:
        key: Dict key to check.
        sensitive_patterns: Patterns to match against.

    Returns:
        True if the key matches any sensitive pattern.
    """
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact sensitive values from a dict (headers, request bodies) for logging.

    Args:
        obj: Dict to redact (not mutated; a copy is returned).
        sensitive_patterns: Substring patterns whose matching keys' values
            should be replaced. Matching is case-insensitive.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
        Nested dicts are redacted recursively.
    """
    result = {}
    for key, value in obj.items():
        if _is_sensitive_key(str(key), sensitive_patterns):
            result[key] = _REDACTED
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value, sensitive_patterns)
        else:
            result[key] = value
    return result


def redact_tokens(text: str | None) -> str:
    """Replace anything that looks like a credential in free text.

    Args:
        text: Message that may embed a token (None yields empty string).

    Returns:
        Text with token-shaped substrings replaced by '[TOKEN_REDACTED]'.
    """
    if not text:
        return ""
    return _TOKEN_PATTERNS.sub("[TOKEN_REDACTED]", text)
