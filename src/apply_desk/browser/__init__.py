"""Browser automation components for live sessions."""

from apply_desk.browser.handle import LiveBrowserHandle
from apply_desk.browser.driver import BrowserDriver, create_browser_driver

__all__ = ["LiveBrowserHandle", "BrowserDriver", "create_browser_driver"]
