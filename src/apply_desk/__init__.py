"""
Apply Desk: live autofill sessions for job applications.

Drives one headless browser per application session, streams its
screenshots to the operator over a WebSocket, and advances the application
through OPEN -> ANALYZED -> FILLED -> SUBMITTED.
"""

__version__ = "0.1.0"

from apply_desk.sessions.manager import SessionManager, create_session_manager
from apply_desk.store.memory import InMemoryStore

__all__ = [
    "SessionManager",
    "create_session_manager",
    "InMemoryStore",
]
