"""In-memory registry of live browser handles keyed by session id."""

from dataclasses import replace as replace_fields
from typing import Any, Dict, Iterator, List, Optional, Tuple

from apply_desk.browser.handle import LiveBrowserHandle
from apply_desk.utils.logging import get_logger

logger = get_logger(__name__)

# Fields a replace() call may never touch
PINNED_FIELDS = frozenset({"browser", "page"})


class SessionRegistry:
    """
    Single source of truth for "is there a live browser for session X".

    ``put`` and ``replace`` are the only mutation paths. ``put`` keeps the
    first handle registered for an id, so there is never more than one browser
    per session. ``replace`` copies the browser and page references forward
    and only changes the fields it is given.

    Mutated from request handlers and WebSocket handlers without locks; this
    is sound only on a single asyncio event loop.
    """

    def __init__(self):
        self._handles: Dict[str, LiveBrowserHandle] = {}

    def get(self, session_id: str) -> Optional[LiveBrowserHandle]:
        return self._handles.get(session_id)

    def put(self, session_id: str, handle: LiveBrowserHandle) -> LiveBrowserHandle:
        """
        Register ``handle`` unless the session already has one.

        Returns:
            The handle now registered for the session. When it is not the
            handle passed in, the caller owns the rejected one and must
            dispose it.
        """
        existing = self._handles.get(session_id)
        if existing is not None:
            logger.warning("Session already has a live browser", session_id=session_id)
            return existing
        self._handles[session_id] = handle
        return handle

    def replace(self, session_id: str, **changes: Any) -> Optional[LiveBrowserHandle]:
        """Update selected fields of a registered handle. Returns None if there is none."""
        pinned = PINNED_FIELDS.intersection(changes)
        if pinned:
            raise ValueError(f"Cannot replace pinned handle fields: {sorted(pinned)}")

        current = self._handles.get(session_id)
        if current is None:
            return None
        updated = replace_fields(current, **changes)
        self._handles[session_id] = updated
        return updated

    def pop(self, session_id: str) -> Optional[LiveBrowserHandle]:
        return self._handles.pop(session_id, None)

    def ids(self) -> List[str]:
        return list(self._handles)

    def items(self) -> Iterator[Tuple[str, LiveBrowserHandle]]:
        return iter(list(self._handles.items()))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)
