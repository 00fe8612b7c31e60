"""Service layer for flagsweep.

Provides the job store, agent session clients, result extraction,
event streaming and registry access.
"""

from src.services.agent_client import AgentClient, LiveAgentClient, build_agent_client
from src.services.event_stream import EventStreamPublisher, StreamEvent
from src.services.job_store import JobStore
from src.services.mock_agent import MockAgentClient, MockSessionRegistry
from src.services.result_extractor import ResultExtractor

__all__ = [
    "AgentClient",
    "LiveAgentClient",
    "MockAgentClient",
    "MockSessionRegistry",
    "build_agent_client",
    "JobStore",
    "ResultExtractor",
    "EventStreamPublisher",
    "StreamEvent",
]
