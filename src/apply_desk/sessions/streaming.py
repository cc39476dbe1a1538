"""Frame streaming channel: periodic screenshots of a session's browser pushed to one viewer."""

import asyncio
import base64
from enum import Enum
from typing import Any, Dict, Optional

from starlette.websockets import WebSocket, WebSocketState

from apply_desk.browser.driver import BrowserDriver
from apply_desk.core.errors import TransientCaptureError
from apply_desk.sessions.registry import SessionRegistry
from apply_desk.utils.logging import get_logger, log_error_context

logger = get_logger(__name__)

NO_LIVE_BROWSER = "No live browser"
CAPTURE_FAILED = "Could not capture frame"


class ChannelState(str, Enum):
    """Lifecycle of a viewer connection."""
    IDLE = "idle"
    STREAMING = "streaming"
    CLOSED = "closed"


def frame_message(frame: bytes) -> Dict[str, Any]:
    return {"type": "frame", "data": base64.b64encode(frame).decode("ascii")}


def error_message(message: str) -> Dict[str, Any]:
    return {"type": "error", "message": message}


class FrameStreamChannel:
    """
    Server-push stream of one session's browser to one viewer.

    Idle -> Streaming when a viewer connects to a session that already has a
    live browser; Streaming -> Closed when the viewer disconnects, the socket
    dies, a newer viewer takes over, or the browser is torn down. Closing the
    channel cancels the capture task only; the browser keeps running.

    The channel never creates a browser and never reconnects.
    """

    def __init__(
        self,
        session_id: str,
        websocket: WebSocket,
        registry: SessionRegistry,
        driver: BrowserDriver,
        frame_interval: float = 1.0,
    ):
        self.session_id = session_id
        self.websocket = websocket
        self.registry = registry
        self.driver = driver
        self.frame_interval = frame_interval
        self.logger = logger.bind(component="frame_stream", session_id=session_id)

        self.state = ChannelState.IDLE
        self.frames_sent = 0
        self.errors_sent = 0
        self._capture_task: Optional[asyncio.Task] = None

    async def run(self) -> None:
        """Serve the viewer until the channel closes. The socket must already be accepted."""
        handle = self.registry.get(self.session_id)
        if handle is None:
            self.logger.info("Viewer connected without a live browser")
            await self._send(error_message(NO_LIVE_BROWSER))
            await self.close()
            return

        if handle.is_streaming:
            self.logger.info("Replacing previous viewer")
            handle.capture_task.cancel()

        self._capture_task = asyncio.create_task(self._capture_loop())
        self.registry.replace(self.session_id, capture_task=self._capture_task)
        self.state = ChannelState.STREAMING
        self.logger.info("Streaming started", frame_interval=self.frame_interval)

        receiver = asyncio.create_task(self._wait_for_disconnect())
        try:
            await asyncio.wait(
                {receiver, self._capture_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            receiver.cancel()
            await self.close()

    async def _wait_for_disconnect(self) -> None:
        # No viewer->server messages are defined; anything received is ignored
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                self.logger.info("Viewer disconnected")
                return

    async def _capture_loop(self) -> None:
        while True:
            await asyncio.sleep(self.frame_interval)
            handle = self.registry.get(self.session_id)
            if handle is None:
                self.logger.info("Live browser went away")
                await self._send(error_message(NO_LIVE_BROWSER))
                return

            try:
                frame = await self.driver.capture_frame(handle.page)
            except TransientCaptureError as e:
                self.logger.warning("Frame capture failed", **log_error_context(e))
                await self._send(error_message(CAPTURE_FAILED))
                continue

            await self._send(frame_message(frame))

    async def _send(self, message: Dict[str, Any]) -> None:
        await self.websocket.send_json(message)
        if message["type"] == "frame":
            self.frames_sent += 1
        else:
            self.errors_sent += 1

    async def close(self) -> None:
        """Stop streaming and close the socket, leaving the browser running."""
        if self.state == ChannelState.CLOSED:
            return
        self.state = ChannelState.CLOSED

        task = self._capture_task
        if task is not None:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
            except Exception as e:
                self.logger.warning("Capture loop ended with error", **log_error_context(e))
            finally:
                handle = self.registry.get(self.session_id)
                if handle is not None and handle.capture_task is task:
                    self.registry.replace(self.session_id, capture_task=None)

        if self.websocket.application_state == WebSocketState.CONNECTED and \
                self.websocket.client_state == WebSocketState.CONNECTED:
            try:
                await self.websocket.close()
            except Exception as e:
                self.logger.debug("Socket close failed", **log_error_context(e))

        self.logger.info("Streaming closed", frames_sent=self.frames_sent, errors_sent=self.errors_sent)
