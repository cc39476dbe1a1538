"""Tests for the session manager composition root."""

import asyncio

import pytest

from apply_desk.sessions.manager import SessionManager, create_session_manager
from apply_desk.sessions.streaming import FrameStreamChannel

APPLY_URL = "https://jobs.example.com/apply/7"


class TestSessionManager:
    """Test cases for SessionManager."""

    def test_wiring(self, manager):
        controller = manager.controller

        assert controller.registry is manager.registry
        assert controller.driver is manager.driver
        assert controller.event_log is manager.event_log
        assert controller.store is manager.store
        assert manager.frame_interval == 0.01

    def test_factory_builds_defaults(self, store):
        manager = create_session_manager(store=store)

        assert isinstance(manager, SessionManager)
        assert manager.driver.viewport_size == (1400, 1400)
        assert manager.frame_interval == 1.0
        assert len(manager.registry) == 0

    def test_open_channel_shares_registry(self, manager, websocket_factory):
        channel = manager.open_channel("s-1", websocket_factory())

        assert isinstance(channel, FrameStreamChannel)
        assert channel.registry is manager.registry
        assert channel.driver is manager.driver
        assert channel.frame_interval == manager.frame_interval

    @pytest.mark.asyncio
    async def test_shutdown_disposes_every_browser(self, manager, fake_playwright):
        sessions = [
            await manager.controller.create("u-bidder", "p-1", APPLY_URL),
            await manager.controller.create("u-bidder-2", "p-2", APPLY_URL),
        ]
        for session in sessions:
            await manager.controller.go(session.id)
        capture = asyncio.create_task(asyncio.sleep(60))
        manager.registry.replace(sessions[0].id, capture_task=capture)

        disposed = await manager.shutdown()

        assert disposed == 2
        assert len(manager.registry) == 0
        for browser in fake_playwright.browsers:
            browser.close.assert_awaited_once()
        fake_playwright.stop.assert_awaited_once()
        with pytest.raises(asyncio.CancelledError):
            await capture

    @pytest.mark.asyncio
    async def test_shutdown_runs_once(self, manager, fake_playwright):
        session = await manager.controller.create("u-bidder", "p-1", APPLY_URL)
        await manager.controller.go(session.id)

        assert await manager.shutdown() == 1
        assert await manager.shutdown() == 0
        fake_playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_with_nothing_running(self, manager, fake_playwright):
        assert await manager.shutdown() == 0
        fake_playwright.stop.assert_not_awaited()
