from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Optional

from .automation import PageDriver
from .config import Settings
from .errors import ExtractionTimeout

logger = logging.getLogger(__name__)

GET_LINK_BUTTON = 'button:has-text("GET LINK")'
GENERATE_PANEL = "#generate_link_at"
SHOW_PANEL = "#show_link_at"
PENDING_PANEL = "#generate_link_at:not(.d-none)"
OPEN_PANEL = "#generate_link_at:not(.d-none), #show_link_at:not(.d-none)"
WITHOUT_SUB_ID = "#withoutSubId"
GENERATE_BUTTON = "#generate_link_now"
CLOSE_BUTTON = "button.btn-close.backToModal"
RESULT_FIELDS = (
    "#getAffiliateSosmed",
    "#show_link_at input[type=text]",
    "#show_link_at textarea",
)
URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)


class PanelState(str, Enum):
    CLOSED = "closed"
    OPENING = "opening"
    GENERATING = "generating"
    READY = "ready"
    TIMED_OUT = "timed_out"


class LinkPanel:
    """
    The "GET LINK" modal of one page, driven as a state machine.

    A link is only read from a panel this instance opened against the row it
    was given, and a value equal to the previous link read here counts as stale.
    """

    def __init__(self, page: PageDriver, settings: Settings) -> None:
        self.page = page
        self.settings = settings
        self.state = PanelState.CLOSED
        self.last_link: Optional[str] = None

    def fetch(self, row_handle: Any) -> str:
        if self.state is not PanelState.CLOSED and not self.close():
            raise ExtractionTimeout("link panel could not be reset before opening")
        self.open(row_handle)
        return self.read_link()

    def open(self, row_handle: Any) -> None:
        settings = self.settings
        self.state = PanelState.OPENING
        if not self.page.click_in(row_handle, GET_LINK_BUTTON, timeout_ms=settings.panel_open_timeout_ms):
            self.state = PanelState.TIMED_OUT
            raise ExtractionTimeout("row has no usable GET LINK control")
        if not self.page.wait_for(
            f"{GENERATE_PANEL}, {SHOW_PANEL}",
            state="attached",
            timeout_ms=settings.panel_open_timeout_ms,
        ):
            self.state = PanelState.TIMED_OUT
            raise ExtractionTimeout("link panel did not open")
        self.state = PanelState.GENERATING
        if self.page.is_visible(PENDING_PANEL):
            self.request_generation()

    def request_generation(self) -> None:
        self.page.check(WITHOUT_SUB_ID)
        self.page.click(GENERATE_BUTTON, timeout_ms=self.settings.panel_open_timeout_ms)

    def poll_fields(self) -> Optional[str]:
        for selector in RESULT_FIELDS:
            value = self.page.input_value(selector).strip()
            if not value or not URL_PATTERN.match(value):
                continue
            if value == self.last_link:
                logger.debug("ignoring stale link in %s", selector)
                continue
            return value
        return None

    def read_link(self) -> str:
        settings = self.settings
        delay = settings.link_poll_ms
        retry_generation_at = settings.link_poll_attempts // 2
        for attempt in range(settings.link_poll_attempts):
            link = self.poll_fields()
            if link:
                self.state = PanelState.READY
                self.last_link = link
                return link
            if attempt == retry_generation_at and self.page.is_visible(PENDING_PANEL):
                self.request_generation()
            self.page.wait(delay)
            delay = min(int(delay * 1.5), settings.link_poll_max_ms)
        self.state = PanelState.TIMED_OUT
        raise ExtractionTimeout("affiliate link never appeared")

    def close(self) -> bool:
        page = self.page
        if self.state is PanelState.CLOSED and not page.is_visible(OPEN_PANEL):
            return True
        if page.count(CLOSE_BUTTON):
            page.click(CLOSE_BUTTON, timeout_ms=self.settings.panel_close_timeout_ms)
        else:
            page.press("body", "Escape")
        closed = page.wait_for(
            RESULT_FIELDS[0],
            state="detached",
            timeout_ms=self.settings.panel_close_timeout_ms,
        ) or not page.is_visible(OPEN_PANEL)
        self.state = PanelState.CLOSED if closed else PanelState.TIMED_OUT
        return closed
