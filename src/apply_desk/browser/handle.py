"""Runtime pairing of a browser process and page bound to one session."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from apply_desk.core.models import utcnow


@dataclass(frozen=True)
class LiveBrowserHandle:
    """
    One browser, one page, and the optional frame-capture task streaming it.

    Frozen so that the only way to change a registered handle is through the
    registry, which copies the browser and page references forward.
    """
    browser: Any
    page: Any
    capture_task: Optional[asyncio.Task] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_streaming(self) -> bool:
        return self.capture_task is not None and not self.capture_task.done()
