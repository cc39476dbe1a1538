"""Tests for the frame streaming channel."""

import asyncio
import base64
from unittest.mock import AsyncMock

import pytest

from apply_desk.sessions.streaming import (
    CAPTURE_FAILED,
    NO_LIVE_BROWSER,
    ChannelState,
    FrameStreamChannel,
    error_message,
    frame_message,
)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def live_session(registry, driver):
    """Register a launched browser for session ``s-1`` and return its handle."""

    async def _launch():
        handle = await driver.launch("https://jobs.example.com/apply/1")
        return registry.put("s-1", handle)

    return _launch


def make_channel(registry, driver, websocket, session_id="s-1"):
    return FrameStreamChannel(
        session_id=session_id,
        websocket=websocket,
        registry=registry,
        driver=driver,
        frame_interval=0.01,
    )


def test_message_shapes():
    assert frame_message(b"abc") == {"type": "frame", "data": base64.b64encode(b"abc").decode("ascii")}
    assert error_message("boom") == {"type": "error", "message": "boom"}


class TestFrameStreamChannel:
    """Test cases for FrameStreamChannel."""

    @pytest.mark.asyncio
    async def test_no_live_browser(self, registry, driver, websocket_factory):
        """Exactly one error, zero frames, then closed."""
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)

        await channel.run()

        assert websocket.sent == [{"type": "error", "message": NO_LIVE_BROWSER}]
        assert websocket.frames() == []
        assert websocket.closed is True
        assert channel.state == ChannelState.CLOSED

    @pytest.mark.asyncio
    async def test_streams_frames_until_disconnect(self, registry, driver, websocket_factory, live_session):
        handle = await live_session()
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)

        task = asyncio.create_task(channel.run())
        await wait_until(lambda: len(websocket.frames()) >= 2)
        assert channel.state == ChannelState.STREAMING
        assert registry.get("s-1").is_streaming

        websocket.disconnect()
        await asyncio.wait_for(task, timeout=2)

        expected = base64.b64encode(handle.page.screenshot.return_value).decode("ascii")
        assert all(frame["data"] == expected for frame in websocket.frames())
        assert websocket.errors() == []
        assert channel.state == ChannelState.CLOSED

        # The browser outlives the viewer
        current = registry.get("s-1")
        assert current is not None
        assert current.capture_task is None
        handle.browser.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_frames_after_close(self, registry, driver, websocket_factory, live_session):
        await live_session()
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)

        task = asyncio.create_task(channel.run())
        await wait_until(lambda: len(websocket.frames()) >= 1)
        websocket.disconnect()
        await asyncio.wait_for(task, timeout=2)

        sent = len(websocket.sent)
        await asyncio.sleep(0.05)

        assert len(websocket.sent) == sent

    @pytest.mark.asyncio
    async def test_transient_capture_error(self, registry, driver, websocket_factory, live_session):
        """A failed screenshot produces an error message and streaming continues."""
        handle = await live_session()
        calls = {"count": 0}

        async def flaky_screenshot(**kwargs):
            calls["count"] += 1
            if calls["count"] == 1:
                raise Exception("Execution context was destroyed, most likely because of a navigation")
            return b"frame-after-navigation"

        handle.page.screenshot = AsyncMock(side_effect=flaky_screenshot)
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)

        task = asyncio.create_task(channel.run())
        await wait_until(lambda: len(websocket.frames()) >= 1)
        websocket.disconnect()
        await asyncio.wait_for(task, timeout=2)

        assert websocket.sent[0] == {"type": "error", "message": CAPTURE_FAILED}
        assert websocket.sent[1]["type"] == "frame"
        assert base64.b64decode(websocket.sent[1]["data"]) == b"frame-after-navigation"

    @pytest.mark.asyncio
    async def test_browser_torn_down_mid_stream(self, registry, driver, websocket_factory, live_session):
        await live_session()
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)

        task = asyncio.create_task(channel.run())
        await wait_until(lambda: len(websocket.frames()) >= 1)
        registry.pop("s-1")
        await asyncio.wait_for(task, timeout=2)

        assert websocket.sent[-1] == {"type": "error", "message": NO_LIVE_BROWSER}
        assert websocket.closed is True
        assert channel.state == ChannelState.CLOSED

    @pytest.mark.asyncio
    async def test_new_viewer_replaces_previous(self, registry, driver, websocket_factory, live_session):
        """Only one capture task runs per session."""
        await live_session()
        first_socket = websocket_factory()
        second_socket = websocket_factory()
        first = make_channel(registry, driver, first_socket)
        second = make_channel(registry, driver, second_socket)

        first_task = asyncio.create_task(first.run())
        await wait_until(lambda: len(first_socket.frames()) >= 1)

        second_task = asyncio.create_task(second.run())
        await asyncio.wait_for(first_task, timeout=2)

        assert first.state == ChannelState.CLOSED
        assert first_socket.closed is True

        await wait_until(lambda: len(second_socket.frames()) >= 1)
        assert second.state == ChannelState.STREAMING
        assert registry.get("s-1").capture_task is second._capture_task

        second_socket.disconnect()
        await asyncio.wait_for(second_task, timeout=2)
        assert registry.get("s-1").capture_task is None

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, registry, driver, websocket_factory):
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)

        await channel.close()
        await channel.close()

        assert channel.state == ChannelState.CLOSED
        assert websocket.sent == []

    @pytest.mark.asyncio
    async def test_close_propagates_cancellation_of_caller(self, registry, driver, websocket_factory):
        """Cancelling the task that is closing the channel is not swallowed."""
        websocket = websocket_factory()
        channel = make_channel(registry, driver, websocket)
        release = asyncio.Event()

        async def slow_to_stop():
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                await release.wait()
                raise

        channel._capture_task = asyncio.create_task(slow_to_stop())
        channel.state = ChannelState.STREAMING
        await asyncio.sleep(0)

        closing = asyncio.create_task(channel.close())
        await asyncio.sleep(0.01)
        closing.cancel()

        with pytest.raises(asyncio.CancelledError):
            await closing
        assert channel._capture_task.cancelled()

    @pytest.mark.asyncio
    async def test_dead_socket_ends_streaming(self, registry, driver, websocket_factory, live_session):
        """A send failure ends the capture loop without touching the browser."""
        handle = await live_session()
        websocket = websocket_factory()
        websocket.send_json = AsyncMock(side_effect=RuntimeError("socket gone"))
        channel = make_channel(registry, driver, websocket)

        await asyncio.wait_for(channel.run(), timeout=2)

        assert channel.state == ChannelState.CLOSED
        assert registry.get("s-1") is not None
        assert registry.get("s-1").capture_task is None
        handle.browser.close.assert_not_awaited()
