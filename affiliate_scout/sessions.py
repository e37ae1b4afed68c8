from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from .automation import PageDriver, PlaywrightPage
from .config import Settings
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

USERNAME_INPUT = "input#username"
PASSWORD_INPUT = "input#password"
LOGIN_BUTTON = "button.btn.btn-at.rounded-lg.shadow-lg.py-2.px-5"
LOGIN_SETTLE_TIMEOUT_MS = 60000
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)


class SessionFactory(Protocol):
    def open_page(self, storage_state: Optional[Dict[str, Any]] = None) -> Any: ...


class BrowserSessionFactory:
    """Opens one browser per call; Playwright's sync objects never leave the calling thread."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @contextmanager
    def open_page(self, storage_state: Optional[Dict[str, Any]] = None) -> Iterator[PageDriver]:
        with sync_playwright() as playwright:
            browser = playwright.chromium.launch(
                headless=self.settings.headless,
                args=["--disable-blink-features=AutomationControlled"],
            )
            context = browser.new_context(
                storage_state=storage_state,
                viewport={"width": 1366, "height": 900},
                locale="id-ID",
                timezone_id="Asia/Jakarta",
                user_agent=USER_AGENT,
                extra_http_headers={"Accept-Language": "id-ID,id;q=0.9,en;q=0.8"},
            )
            page = PlaywrightPage(context.new_page())
            page.block_resources(self.settings.blocked_resource_types)
            try:
                yield page
            finally:
                try:
                    page.close()
                    context.close()
                finally:
                    browser.close()


class SessionStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as file_handle:
                return json.load(file_handle)
        except (OSError, json.JSONDecodeError):
            logger.warning("ignoring unreadable session file: %s", self.path)
            return None

    def save(self, state: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as file_handle:
            json.dump(state, file_handle)


class Authenticator:
    def __init__(self, settings: Settings, factory: SessionFactory) -> None:
        self.settings = settings
        self.factory = factory

    def is_login_url(self, url: str) -> bool:
        return self.settings.login_path_marker in url

    def probe(self, state: Dict[str, Any]) -> bool:
        try:
            with self.factory.open_page(storage_state=state) as page:
                page.navigate(self.settings.listing_url, timeout_ms=self.settings.nav_timeout_ms)
                return not self.is_login_url(page.current_url())
        except PlaywrightError:
            logger.warning("session probe failed", exc_info=True)
            return False

    def login(self) -> Dict[str, Any]:
        settings = self.settings
        settings.require_credentials()
        with self.factory.open_page(storage_state=None) as page:
            page.navigate(settings.login_url, timeout_ms=settings.nav_timeout_ms)
            if not page.wait_for(USERNAME_INPUT, timeout_ms=settings.selector_timeout_ms):
                raise AuthenticationError("Login form did not load.")
            page.fill(USERNAME_INPUT, settings.email)
            page.fill(PASSWORD_INPUT, settings.password)
            page.click(LOGIN_BUTTON, timeout_ms=settings.selector_timeout_ms)
            page.wait_for_load("networkidle", timeout_ms=LOGIN_SETTLE_TIMEOUT_MS)

            page.navigate(settings.listing_url, timeout_ms=settings.nav_timeout_ms)
            if self.is_login_url(page.current_url()):
                raise AuthenticationError("Login failed.")
            return page.storage_state()


class SessionManager:
    """
    Owns the authenticated storage state shared by every browser session.

    The state is created on first use, reused while the liveness probe passes,
    replaced after a failed probe, and dropped on shutdown.
    """

    def __init__(self, store: SessionStore, authenticator: Authenticator) -> None:
        self.store = store
        self.authenticator = authenticator
        self._state: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    def ensure_authenticated(self) -> Dict[str, Any]:
        with self._lock:
            if self._state is None:
                self._state = self.store.load()
            if self._state is not None and self.authenticator.probe(self._state):
                return self._state
            logger.info("session missing or expired; logging in")
            self._state = self.authenticator.login()
            self.store.save(self._state)
            return self._state

    def invalidate(self) -> None:
        with self._lock:
            self._state = None

    def shutdown(self) -> None:
        self.invalidate()
        logger.info("session manager shut down")
