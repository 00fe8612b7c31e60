"""FastAPI routes for stateless task creation.

A stateless task starts an agent session and hands the session id back to
the caller, who then polls GET /sessions/{session_id}. No job is tracked.
"""

from fastapi import APIRouter, Depends

from src.api.schemas import AnalyzeRequest, RemoveRequest, SessionCreatedResponse
from src.models import AgentTask
from src.services.agent_client import AgentClient
from src.services.provider import get_agent_client

router = APIRouter(tags=["tasks"])


async def _start_session(task: AgentTask, agent_client: AgentClient) -> SessionCreatedResponse:
    handle = await agent_client.create_session(task)
    return SessionCreatedResponse(
        session_id=handle,
        poll_url=f"/api/v1/sessions/{handle}",
        mode=agent_client.mode,
    )


@router.post("/analyze", response_model=SessionCreatedResponse, status_code=201)
async def create_analyze_session(
    body: AnalyzeRequest,
    agent_client: AgentClient = Depends(get_agent_client),
) -> SessionCreatedResponse:
    """Start an analyze-only agent session.

    Args:
        body: Repository coordinates and flags to analyze.
        agent_client: Agent client dependency.

    Returns:
        The session id and the URL to poll it at.
    """
    return await _start_session(body.to_task(), agent_client)


@router.post("/remove", response_model=SessionCreatedResponse, status_code=201)
async def create_remove_session(
    body: RemoveRequest,
    agent_client: AgentClient = Depends(get_agent_client),
) -> SessionCreatedResponse:
    """Start a flag removal agent session.

    Args:
        body: Repository coordinates, flags, target behavior and registry files.
        agent_client: Agent client dependency.

    Returns:
        The session id and the URL to poll it at.
    """
    return await _start_session(body.to_task(), agent_client)
