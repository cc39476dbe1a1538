"""Append-only audit trail of lifecycle events."""

from typing import Any, Dict, List, Optional, Tuple, Union

from apply_desk.core.models import ApplicationEvent, EventType
from apply_desk.utils.logging import get_logger

logger = get_logger(__name__)

# Session id recorded on events that do not belong to a session
ADMIN_EVENT_SESSION_ID = "admin-event"


class EventLog:
    """Ordered, append-only list of immutable events. Not used for replay."""

    def __init__(self):
        self._events: List[ApplicationEvent] = []

    def append(
        self,
        session_id: str,
        event_type: Union[EventType, str],
        payload: Optional[Dict[str, Any]] = None,
    ) -> ApplicationEvent:
        event = ApplicationEvent(
            session_id=session_id,
            event_type=EventType(event_type),
            payload=payload,
        )
        self._events.append(event)
        logger.debug("Event recorded", session_id=session_id, event_type=event.event_type.value)
        return event

    def for_session(self, session_id: str) -> List[ApplicationEvent]:
        return [e for e in self._events if e.session_id == session_id]

    def all(self) -> Tuple[ApplicationEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)
