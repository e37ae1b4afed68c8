from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Tuple

from .automation import PageDriver
from .config import Settings
from .errors import AuthenticationError, ListingUnavailable
from .listing import (
    GRID,
    MAX_PRICE_INPUT,
    MIN_PRICE_INPUT,
    RATING_SELECT,
    ROW,
    SEARCH_FORM,
    SEARCH_INPUT,
    SUBMIT_BUTTON,
)
from .models import SearchQuery

logger = logging.getLogger(__name__)

SUBMIT_CLICK_TIMEOUT_MS = 8000


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    STABILIZED = "stabilized"
    TIMED_OUT = "timed_out"


class SearchBootstrap:
    """Brings a page to a settled listing for one query; used by the scan page and every worker."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def open_listing(self, page: PageDriver, query: SearchQuery) -> int:
        settings = self.settings
        page.navigate(settings.listing_url, timeout_ms=settings.nav_timeout_ms)
        if settings.login_path_marker in page.current_url():
            raise AuthenticationError("Session is no longer authenticated.")
        if not page.wait_for(SEARCH_INPUT, timeout_ms=settings.selector_timeout_ms):
            raise ListingUnavailable("Search form not found.")
        page.wait_for(GRID, state="attached", timeout_ms=settings.grid_timeout_ms)

        state = self.run_submission(page, query, settings.rating_filter)
        if state is not SubmissionState.STABILIZED and settings.relaxed_rating_filter != settings.rating_filter:
            logger.info("no rows for %r with rating filter %r; retrying relaxed", query.text, settings.rating_filter)
            state = self.run_submission(page, query, settings.relaxed_rating_filter)
        if state is not SubmissionState.STABILIZED:
            raise ListingUnavailable(f"No listing rows rendered for {query.text!r}.")
        return self.row_count(page)

    def fill_form(self, page: PageDriver, query: SearchQuery, rating: str) -> None:
        page.fill(SEARCH_INPUT, query.text)
        page.fill(MIN_PRICE_INPUT, str(query.min_price) if query.min_price > 0 else "")
        page.fill(MAX_PRICE_INPUT, str(query.max_price) if query.max_price > 0 else "")
        if not page.select_option(RATING_SELECT, rating):
            logger.debug("rating filter %r not applied", rating)

    def run_submission(self, page: PageDriver, query: SearchQuery, rating: str) -> SubmissionState:
        settings = self.settings
        state = SubmissionState.IDLE
        self.fill_form(page, query, rating)
        before = page.inner_html(GRID)
        had_rows = self.row_count(page) >= settings.min_rows

        for name, step in self._fallbacks():
            if not step(page):
                logger.debug("submission via %s not available", name)
                continue
            state = SubmissionState.SUBMITTED
            if self.wait_for_change(page, before, had_rows):
                logger.debug("submission via %s changed the listing", name)
                break
            logger.debug("submission via %s produced no change", name)

        if self.row_count(page) < settings.min_rows:
            page.wait_for(ROW, state="attached", timeout_ms=settings.grid_timeout_ms)
        if self.row_count(page) < settings.min_rows:
            logger.debug("submission ended in state %s without rows", state.value)
            return SubmissionState.TIMED_OUT
        self.stabilize(page)
        return SubmissionState.STABILIZED

    def _fallbacks(self) -> List[Tuple[str, Callable[[PageDriver], bool]]]:
        return [
            ("form", self._submit_form),
            ("keyboard", self._submit_keyboard),
            ("button", self._submit_button),
        ]

    def _submit_form(self, page: PageDriver) -> bool:
        return page.submit_form(SEARCH_FORM)

    def _submit_keyboard(self, page: PageDriver) -> bool:
        target = MAX_PRICE_INPUT if page.count(MAX_PRICE_INPUT) else SEARCH_INPUT
        return page.press(target, "Enter")

    def _submit_button(self, page: PageDriver) -> bool:
        if not page.is_visible(SUBMIT_BUTTON):
            return False
        return page.click(SUBMIT_BUTTON, timeout_ms=SUBMIT_CLICK_TIMEOUT_MS)

    def row_count(self, page: PageDriver) -> int:
        return page.count(ROW)

    def has_changed(self, page: PageDriver, before: str, had_rows: bool) -> bool:
        if not had_rows and self.row_count(page) >= self.settings.min_rows:
            return True
        after = page.inner_html(GRID)
        return bool(after) and after != before

    def wait_for_change(self, page: PageDriver, before: str, had_rows: bool) -> bool:
        poll = self.settings.poll_interval_ms
        waited = 0
        while True:
            if self.has_changed(page, before, had_rows):
                return True
            if waited >= self.settings.submit_timeout_ms:
                return False
            page.wait(poll)
            waited += poll

    def stabilize(self, page: PageDriver) -> int:
        settings = self.settings
        poll = settings.poll_interval_ms
        last = self.row_count(page)
        quiet = 0
        waited = 0
        while quiet < settings.stabilize_quiet_ms and waited < settings.stabilize_max_ms:
            page.wait(poll)
            waited += poll
            current = self.row_count(page)
            if current != last:
                last = current
                quiet = 0
            else:
                quiet += poll
        return last
