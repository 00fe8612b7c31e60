"""GitHub contents API client for flag registry files."""

import base64
import binascii
import logging

import httpx

from src.errors import (
    ForbiddenError,
    InvalidRequestError,
    ParseError,
    RegistryFileNotFoundError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from src.utils.redaction import redact_tokens

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


def _headers(token: str | None) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def fetch_registry_file(
    owner: str,
    repo: str,
    path: str,
    ref: str | None = None,
    token: str | None = None,
    timeout: float = 30.0,
    api_url: str = GITHUB_API_URL,
) -> str:
    """Fetch the decoded text of a file from a GitHub repository.

    Args:
        owner: Repository owner.
        repo: Repository name.
        path: File path inside the repository.
        ref: Branch, tag or commit (default branch if None).
        token: GitHub token with contents read access.
        timeout: Request timeout in seconds.
        api_url: GitHub API root.

    Returns:
        The file content as UTF-8 text.

    Raises:
        RegistryFileNotFoundError: If GitHub answers 404.
        ForbiddenError: If GitHub answers 401 or 403.
        InvalidRequestError: If the path is not a file.
        ParseError: If the content encoding is unsupported or undecodable.
        UpstreamUnavailableError: On transport failure or any other status.
    """
    url = f"{api_url.rstrip('/')}/repos/{owner}/{repo}/contents/{path.lstrip('/')}"
    params = {"ref": ref} if ref else None
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url, headers=_headers(token), params=params)
    except httpx.TimeoutException as e:
        raise UpstreamTimeoutError(timeout=timeout) from e
    except httpx.RequestError as e:
        raise UpstreamUnavailableError(code="E-2005", reason=redact_tokens(str(e)) or type(e).__name__) from e

    if response.status_code == 404:
        raise RegistryFileNotFoundError(owner, repo, path, ref)
    if response.status_code in (401, 403):
        logger.warning("GitHub refused access to %s/%s/%s (%s)", owner, repo, path, response.status_code)
        raise ForbiddenError(
            details={"status": response.status_code},
            suggestions=[
                "Check that GITHUB_TOKEN has 'contents: read' scope",
                "Wait for the GitHub rate limit window to reset",
            ],
        )
    if response.status_code >= 400:
        raise UpstreamUnavailableError(
            code="E-2005",
            reason=f"HTTP {response.status_code}: {redact_tokens(response.text[:200])}",
        )

    body = response.json()
    if isinstance(body, list):
        raise InvalidRequestError(code="E-2004", path=path, kind="dir")
    if body.get("type") != "file":
        raise InvalidRequestError(code="E-2004", path=path, kind=body.get("type", "unknown"))

    encoding = body.get("encoding")
    if encoding != "base64":
        raise ParseError(path, f"unsupported content encoding {encoding!r}")
    try:
        return base64.b64decode(body.get("content") or "").decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ParseError(path, f"content could not be decoded: {e}") from e
