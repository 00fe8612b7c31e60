"""FastAPI routes for reading a repository's flag registry."""

import logging

from fastapi import APIRouter, Depends, Query

from src.api.schemas import FlagsResponse, RegistrySource
from src.config import Settings
from src.services.flag_parser import parse_flag_file
from src.services.github_client import fetch_registry_file
from src.services.provider import get_app_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flags", tags=["flags"])

DEFAULT_REGISTRY_PATH = "config/flags.json"


@router.get("", response_model=FlagsResponse)
async def get_flags(
    owner: str = Query(..., min_length=1),
    repo: str = Query(..., min_length=1),
    branch: str = Query("main", min_length=1),
    registry_path: str = Query(DEFAULT_REGISTRY_PATH, alias="registryPath", min_length=1),
    settings: Settings = Depends(get_app_settings),
) -> FlagsResponse:
    """Fetch and parse a flag registry file from GitHub.

    Args:
        owner: Repository owner.
        repo: Repository name.
        branch: Branch to read the registry from.
        registry_path: Path of the registry file in the repository.
        settings: Settings dependency.

    Returns:
        The flags in file order and where they were read from.

    Raises:
        ConfigurationError: If GITHUB_TOKEN is not configured (500).
        RegistryFileNotFoundError: If the file does not exist (404).
        ForbiddenError: If GitHub refuses access (403).
        ParseError: If the file is malformed (422).
    """
    token = settings.require_github_token()
    raw = await fetch_registry_file(
        owner, repo, registry_path, ref=branch, token=token,
        timeout=settings.request_timeout_seconds,
    )
    flags = parse_flag_file(raw, registry_path)
    logger.info("Loaded %d flags from %s/%s:%s", len(flags), owner, repo, registry_path)
    return FlagsResponse(
        flags=flags,
        source=RegistrySource(owner=owner, repo=repo, branch=branch, path=registry_path),
    )
