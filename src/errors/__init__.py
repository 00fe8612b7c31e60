"""Error handling framework for flagsweep.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions mapped to HTTP statuses
- Error formatting for API responses and CLI output

Error categories:
- E-1xxx: Request validation errors
- E-2xxx: Flag registry access errors
- E-3xxx: Agent API errors
- E-4xxx: System/internal errors
- E-5xxx: Configuration errors
"""

from src.errors.domain import (
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
    UpstreamError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from src.errors.formatter import error_response_body, format_error
from src.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    # Domain exceptions
    "FlagSweepError",
    "InvalidRequestError",
    "NotFoundError",
    "JobNotFoundError",
    "SessionNotFoundError",
    "RegistryFileNotFoundError",
    "ForbiddenError",
    "InvalidStateTransition",
    "ParseError",
    "UpstreamError",
    "RateLimitedError",
    "UpstreamUnavailableError",
    "UpstreamTimeoutError",
    "ConfigurationError",
    "TRANSIENT_ERRORS",
    # Formatter
    "error_response_body",
    "format_error",
]
