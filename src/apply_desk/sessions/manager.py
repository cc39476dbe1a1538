"""Composition root owning the registry, driver, event log and controller."""

from typing import Optional

from starlette.websockets import WebSocket

from apply_desk.browser.driver import BrowserDriver, create_browser_driver
from apply_desk.config import settings
from apply_desk.sessions.controller import SessionLifecycleController
from apply_desk.sessions.events import EventLog
from apply_desk.sessions.registry import SessionRegistry
from apply_desk.sessions.streaming import FrameStreamChannel
from apply_desk.store.base import ProfileStore
from apply_desk.store.files import ResumeFiles
from apply_desk.utils.logging import get_logger, log_error_context

logger = get_logger(__name__)


class SessionManager:
    """
    Owns every live browser of the process.

    Built once at startup and handed to request handlers. ``shutdown`` must
    run on process exit; it is the only thing that guarantees no orphaned
    Chromium processes.
    """

    def __init__(
        self,
        store: ProfileStore,
        driver: Optional[BrowserDriver] = None,
        registry: Optional[SessionRegistry] = None,
        event_log: Optional[EventLog] = None,
        frame_interval: Optional[float] = None,
        resume_files: Optional[ResumeFiles] = None,
    ):
        """
        Initialize the manager.

        Args:
            store: Profile/Resume Store backend
            driver: Browser driver; built from settings when omitted
            registry: Session registry; a fresh one when omitted
            event_log: Audit log; a fresh one when omitted
            frame_interval: Seconds between streamed frames
            resume_files: Resume file resolver rooted at the resume directory
        """
        self.logger = logger.bind(component="session_manager")
        self.store = store
        self.driver = driver or create_browser_driver()
        self.registry = registry or SessionRegistry()
        self.event_log = event_log or EventLog()
        self.frame_interval = settings.frame_interval_seconds if frame_interval is None else frame_interval
        self.resume_files = resume_files or ResumeFiles(settings.resume_dir)

        self.controller = SessionLifecycleController(
            store=self.store,
            registry=self.registry,
            driver=self.driver,
            event_log=self.event_log,
        )
        self._closed = False

    def open_channel(self, session_id: str, websocket: WebSocket) -> FrameStreamChannel:
        return FrameStreamChannel(
            session_id=session_id,
            websocket=websocket,
            registry=self.registry,
            driver=self.driver,
            frame_interval=self.frame_interval,
        )

    async def shutdown(self) -> int:
        """
        Cancel every capture task and dispose every live browser.

        Returns:
            Number of browsers disposed
        """
        if self._closed:
            return 0
        self._closed = True

        disposed = 0
        for session_id in self.registry.ids():
            try:
                if await self.controller.stop_browser(session_id):
                    disposed += 1
            except Exception as e:
                self.logger.error("Failed to stop browser on shutdown", **log_error_context(e, session_id=session_id))

        await self.driver.close()
        self.logger.info("Session manager shut down", browsers_disposed=disposed)
        return disposed


def create_session_manager(store: ProfileStore, **kwargs) -> SessionManager:
    """
    Factory function to create a session manager from settings.

    Args:
        store: Profile/Resume Store backend
        **kwargs: Overrides passed to SessionManager

    Returns:
        Configured SessionManager instance
    """
    return SessionManager(store=store, **kwargs)
