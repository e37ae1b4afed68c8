"""
Page automation seam.

Everything above this module talks to a ``PageDriver``; only ``PlaywrightPage``
knows about Playwright. Timeouts and missing elements are reported as ``False``
or empty values so the flows above can decide whether a miss is fatal.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, TimeoutError


class PageDriver(Protocol):
    def navigate(self, url: str, *, timeout_ms: int) -> None: ...

    def current_url(self) -> str: ...

    def wait_for(self, selector: str, *, state: str = "visible", timeout_ms: int) -> bool: ...

    def wait(self, ms: int) -> None: ...

    def wait_for_load(self, state: str, *, timeout_ms: int) -> bool: ...

    def fill(self, selector: str, value: str) -> None: ...

    def select_option(self, selector: str, value: str) -> bool: ...

    def check(self, selector: str) -> None: ...

    def click(self, selector: str, *, timeout_ms: int) -> bool: ...

    def press(self, selector: str, key: str) -> bool: ...

    def submit_form(self, form_selector: str) -> bool: ...

    def count(self, selector: str) -> int: ...

    def is_visible(self, selector: str) -> bool: ...

    def inner_html(self, selector: str) -> str: ...

    def input_value(self, selector: str) -> str: ...

    def locate(self, selector: str) -> List[Any]: ...

    def read_text(self, handle: Any, selector: str) -> str: ...

    def read_attribute(self, handle: Any, selector: Optional[str], name: str) -> Optional[str]: ...

    def click_in(self, handle: Any, selector: str, *, timeout_ms: int) -> bool: ...

    def block_resources(self, resource_types: Iterable[str]) -> None: ...

    def storage_state(self) -> Dict[str, Any]: ...

    def close(self) -> None: ...


class PlaywrightPage:
    def __init__(self, page: Page) -> None:
        self._page = page

    def navigate(self, url: str, *, timeout_ms: int) -> None:
        self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

    def current_url(self) -> str:
        return self._page.url

    def wait_for(self, selector: str, *, state: str = "visible", timeout_ms: int) -> bool:
        try:
            self._page.wait_for_selector(selector, state=state, timeout=timeout_ms)
        except TimeoutError:
            return False
        return True

    def wait(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def wait_for_load(self, state: str, *, timeout_ms: int) -> bool:
        try:
            self._page.wait_for_load_state(state, timeout=timeout_ms)
        except TimeoutError:
            return False
        return True

    def fill(self, selector: str, value: str) -> None:
        self._page.fill(selector, value)

    def select_option(self, selector: str, value: str) -> bool:
        try:
            self._page.select_option(selector, value=value)
            self._page.dispatch_event(selector, "change")
        except PlaywrightError:
            return False
        return True

    def check(self, selector: str) -> None:
        locator = self._page.locator(selector)
        if not locator.count():
            return
        try:
            if not locator.first.is_checked():
                locator.first.check()
        except PlaywrightError:
            pass

    def click(self, selector: str, *, timeout_ms: int) -> bool:
        locator = self._page.locator(selector)
        if not locator.count():
            return False
        try:
            locator.first.scroll_into_view_if_needed(timeout=timeout_ms)
            locator.first.click(timeout=timeout_ms)
        except PlaywrightError:
            return False
        return True

    def press(self, selector: str, key: str) -> bool:
        try:
            self._page.focus(selector)
            self._page.keyboard.press(key)
        except PlaywrightError:
            return False
        return True

    def submit_form(self, form_selector: str) -> bool:
        form = self._page.locator(form_selector)
        if not form.count():
            return False
        try:
            form.first.evaluate("f => f.requestSubmit()")
        except PlaywrightError:
            return False
        return True

    def count(self, selector: str) -> int:
        return self._page.locator(selector).count()

    def is_visible(self, selector: str) -> bool:
        locator = self._page.locator(selector)
        if not locator.count():
            return False
        try:
            return locator.first.is_visible()
        except PlaywrightError:
            return False

    def inner_html(self, selector: str) -> str:
        locator = self._page.locator(selector)
        if not locator.count():
            return ""
        try:
            return locator.first.inner_html()
        except PlaywrightError:
            return ""

    def input_value(self, selector: str) -> str:
        locator = self._page.locator(selector)
        if not locator.count():
            return ""
        try:
            return locator.first.input_value() or ""
        except PlaywrightError:
            return ""

    def locate(self, selector: str) -> List[Any]:
        return self._page.locator(selector).element_handles()

    def read_text(self, handle: Any, selector: str) -> str:
        try:
            node = handle.query_selector(selector)
            if node is None:
                return ""
            return (node.text_content() or "").strip()
        except PlaywrightError:
            return ""

    def read_attribute(self, handle: Any, selector: Optional[str], name: str) -> Optional[str]:
        try:
            node = handle if selector is None else handle.query_selector(selector)
            if node is None:
                return None
            return node.get_attribute(name)
        except PlaywrightError:
            return None

    def click_in(self, handle: Any, selector: str, *, timeout_ms: int) -> bool:
        try:
            node = handle.query_selector(selector)
            if node is None:
                return False
            node.scroll_into_view_if_needed(timeout=timeout_ms)
            node.click(timeout=timeout_ms)
        except PlaywrightError:
            return False
        return True

    def block_resources(self, resource_types: Iterable[str]) -> None:
        blocked = frozenset(resource_types)
        if not blocked:
            return

        def handle_route(route) -> None:
            if route.request.resource_type in blocked:
                route.abort()
            else:
                route.continue_()

        self._page.route("**/*", handle_route)

    def storage_state(self) -> Dict[str, Any]:
        return self._page.context.storage_state()

    def close(self) -> None:
        self._page.close()
