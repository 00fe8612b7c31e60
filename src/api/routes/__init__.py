"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from src.api.routes import flags, jobs, sessions, tasks

__all__ = [
    "flags",
    "jobs",
    "sessions",
    "tasks",
]
