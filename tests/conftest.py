"""Shared fixtures: Playwright fakes, a seeded store and a wired session manager."""

import asyncio
import copy
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState

from apply_desk.browser.driver import BrowserDriver
from apply_desk.sessions.controller import SessionLifecycleController
from apply_desk.sessions.events import EventLog
from apply_desk.sessions.manager import SessionManager
from apply_desk.sessions.registry import SessionRegistry
from apply_desk.store.files import ResumeFiles
from apply_desk.store.memory import InMemoryStore

FRAME_BYTES = b"\x89PNG-fake-frame"


def make_page(goto_error=None) -> MagicMock:
    """A Playwright page double: async goto/screenshot/close, sync locator()."""
    page = MagicMock()
    page.goto = AsyncMock(side_effect=goto_error)
    page.screenshot = AsyncMock(return_value=FRAME_BYTES)
    page.close = AsyncMock()
    locator = MagicMock()
    locator.first.scroll_into_view_if_needed = AsyncMock()
    page.locator = MagicMock(return_value=locator)
    return page


def make_browser(goto_error=None) -> MagicMock:
    browser = MagicMock()
    browser.pages = []

    async def new_page(**kwargs):
        page = make_page(goto_error)
        browser.pages.append(page)
        return page

    browser.new_page = AsyncMock(side_effect=new_page)
    browser.close = AsyncMock()
    return browser


class FakePlaywright:
    """Stands in for the object returned by ``async_playwright().start()``."""

    def __init__(self):
        self.browsers: List[MagicMock] = []
        self.chromium = MagicMock()
        self.chromium.launch = AsyncMock(side_effect=self._launch)
        self.stop = AsyncMock()
        self.starts = 0
        # Raised by goto on pages of browsers launched from now on
        self.goto_error = None

    async def _launch(self, **kwargs):
        browser = make_browser(self.goto_error)
        self.browsers.append(browser)
        return browser

    def factory(self):
        playwright = self

        class _Context:
            async def start(self):
                playwright.starts += 1
                return playwright

        return _Context()


class FakeWebSocket:
    """Accepted WebSocket double recording everything the server sends."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.closed:
            raise RuntimeError("Cannot send on a closed socket")
        self.sent.append(data)

    async def receive(self) -> Dict[str, Any]:
        return await self._incoming.get()

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.application_state = WebSocketState.DISCONNECTED

    def disconnect(self) -> None:
        self.client_state = WebSocketState.DISCONNECTED
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": 1000})

    def frames(self) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["type"] == "frame"]

    def errors(self) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["type"] == "error"]


SEED: Dict[str, Any] = {
    "users": [
        {"id": "u-manager", "email": "manager@example.com", "name": "Morgan", "role": "MANAGER", "password": "secret"},
        {"id": "u-bidder", "email": "bidder@example.com", "name": "Blake", "role": "BIDDER", "password": "secret"},
        {"id": "u-bidder-2", "email": "bidder2@example.com", "name": "Casey", "role": "BIDDER", "password": "secret"},
        {"id": "u-observer", "email": "observer@example.com", "name": "Owen", "role": "OBSERVER", "password": "secret"},
    ],
    "profiles": [
        {
            "id": "p-1",
            "displayName": "Ada Lovelace",
            "baseInfo": {
                "name": {"first": "Ada", "last": "Lovelace"},
                "contact": {"email": "ada@example.com", "phone": "+1 555 0100"},
                "EEO": {"gender": "prefer not to say"},
                "veteran_status": "no",
            },
        },
        {
            "id": "p-2",
            "displayName": "Grace Hopper",
            "baseInfo": {"name": {"first": "Grace", "last": ""}, "contact": {}},
        },
    ],
    "resumes": [
        {"id": "r-old", "profileId": "p-1", "label": "Backend 2023", "filePath": "/data/resumes/r-old.pdf",
         "createdAt": "2024-01-01T00:00:00+00:00"},
        {"id": "r-new", "profileId": "p-1", "label": "Backend 2024", "filePath": "/resumes/r-new.pdf",
         "createdAt": "2024-06-01T00:00:00+00:00"},
    ],
}


@pytest.fixture
def fake_playwright() -> FakePlaywright:
    return FakePlaywright()


@pytest.fixture
def driver(fake_playwright) -> BrowserDriver:
    return BrowserDriver(headless=True, focus_timeout=50, playwright_factory=fake_playwright.factory)


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore.from_seed(copy.deepcopy(SEED))


@pytest.fixture
def controller(store, registry, driver, event_log) -> SessionLifecycleController:
    return SessionLifecycleController(store=store, registry=registry, driver=driver, event_log=event_log)


@pytest.fixture
def resume_files(tmp_path) -> ResumeFiles:
    return ResumeFiles(tmp_path / "resumes", project_root=tmp_path)


@pytest.fixture
def manager(store, driver, resume_files) -> SessionManager:
    return SessionManager(store=store, driver=driver, frame_interval=0.01, resume_files=resume_files)


@pytest.fixture
def seed() -> Dict[str, Any]:
    return copy.deepcopy(SEED)


@pytest.fixture
def websocket_factory():
    return FakeWebSocket
