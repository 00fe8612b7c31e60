"""FastAPI routes for stateless session polling."""

from fastapi import APIRouter, Depends, Response

from src.api.schemas import SessionSnapshotResponse
from src.services.agent_client import AgentClient
from src.services.provider import get_agent_client, get_result_extractor
from src.services.result_extractor import ResultExtractor
from src.services.session_snapshot import snapshot_session

router = APIRouter(prefix="/sessions", tags=["sessions"])

# Snapshots are point-in-time; never let a proxy or browser cache them
NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/{session_id}", response_model=SessionSnapshotResponse)
async def get_session(
    session_id: str,
    response: Response,
    agent_client: AgentClient = Depends(get_agent_client),
    extractor: ResultExtractor = Depends(get_result_extractor),
) -> SessionSnapshotResponse:
    """Get the current status, full log list and result of a session.

    Each call re-derives the whole log list; clients replace what they
    show instead of appending.

    Args:
        session_id: Session handle returned at creation.
        response: Outgoing response, used to disable caching.
        agent_client: Agent client dependency.
        extractor: Result extractor dependency.

    Returns:
        Session snapshot.

    Raises:
        SessionNotFoundError: If the session is unknown (404).
    """
    response.headers.update(NO_STORE_HEADERS)
    snapshot = await snapshot_session(session_id, agent_client, extractor)
    return SessionSnapshotResponse(**snapshot.model_dump())
