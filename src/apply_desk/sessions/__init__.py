"""Live autofill sessions: registry, lifecycle, streaming and their owner."""

from apply_desk.sessions.controller import GoResult, SessionLifecycleController, SessionStateMachine
from apply_desk.sessions.events import EventLog
from apply_desk.sessions.manager import SessionManager, create_session_manager
from apply_desk.sessions.registry import SessionRegistry
from apply_desk.sessions.streaming import ChannelState, FrameStreamChannel

__all__ = [
    "ChannelState",
    "EventLog",
    "FrameStreamChannel",
    "GoResult",
    "SessionLifecycleController",
    "SessionManager",
    "SessionRegistry",
    "SessionStateMachine",
    "create_session_manager",
]
