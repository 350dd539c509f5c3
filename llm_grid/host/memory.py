"""In-process host: windows, tabs and pages kept in dictionaries.

Used by the test-suite and by ``llm-grid demo``. Pages answer through the
real ``TargetAgent`` so broadcast, verification and location lookups follow
the same code path as a live browser page.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any

from loguru import logger

from llm_grid.errors import HostError, TargetUnreachable
from llm_grid.host.base import Display, Host, Rect, TabInfo, WindowInfo, WindowRemovedHandler
from llm_grid.providers.adapters import TargetAgent, adapter_for_url

DEFAULT_DISPLAY = Display(
    id="primary",
    bounds=Rect(0, 0, 1920, 1080),
    work_area=Rect(0, 0, 1920, 1040),
    is_primary=True,
)


@dataclass
class PageInput:
    """The single prompt box of a simulated page."""

    value: str = ""


@dataclass
class MemoryPage:
    """Simulated provider page.

    ``url`` is the live location; the host's ``TabInfo.url`` may lag behind
    it after ``MemoryHost.navigate(..., update_tab=False)``.
    """

    url: str
    has_input: bool = True
    has_send_button: bool = True
    accepts_enter: bool = True
    has_form: bool = True
    rewrite_input: bool = False          # page drops injected text (mismatch)
    unreachable_for: int = 0             # number of messages to fail before answering
    silent: bool = False                 # answers get_location without a url
    input: PageInput = field(default_factory=PageInput)
    submissions: list[str] = field(default_factory=list)
    submit_paths: list[str] = field(default_factory=list)

    async def location(self) -> str:
        return "" if self.silent else self.url

    async def find_input(self, selectors: tuple[str, ...]) -> PageInput | None:
        return self.input if self.has_input else None

    async def find_button(self, selectors: tuple[str, ...]) -> str | None:
        return "send-button" if self.has_send_button else None

    async def set_value(self, element: PageInput, value: str) -> None:
        element.value = "" if self.rewrite_input else value

    async def read_value(self, element: PageInput) -> str:
        return element.value

    async def click(self, element: Any) -> None:
        self._submit("button")

    async def press_enter(self, element: PageInput) -> bool:
        if not self.accepts_enter:
            return False
        self._submit("enter")
        return True

    async def submit_form(self, element: PageInput) -> bool:
        if not self.has_form:
            return False
        self._submit("form")
        return True

    def _submit(self, path: str) -> None:
        self.submissions.append(self.input.value)
        self.submit_paths.append(path)
        self.input.value = ""


class MemoryHost(Host):
    """Host implementation backed by plain dictionaries."""

    def __init__(
        self,
        displays: list[Display] | None = None,
        control_url: str = "llm-grid://control",
        verify_attempts: int = 12,
        verify_delay_s: float = 0.05,
    ) -> None:
        self._control_url = control_url
        self.verify_attempts = verify_attempts
        self.verify_delay_s = verify_delay_s
        self.displays = list(displays or [DEFAULT_DISPLAY])
        self.windows: dict[int, WindowInfo] = {}
        self.pages: dict[int, MemoryPage] = {}
        self.sent: list[tuple[int, dict[str, Any]]] = []
        self.created: list[str] = []
        self.fail_calls: set[str] = set()
        self._handlers: list[WindowRemovedHandler] = []
        self._next_window_id = 1
        self._next_tab_id = 100

    # ------------------------------------------------------------------ #
    # Test/demo helpers                                                    #
    # ------------------------------------------------------------------ #

    def add_window(
        self,
        urls: list[str],
        type: str = "popup",
        bounds: Rect | None = None,
        state: str = "normal",
    ) -> WindowInfo:
        """Open a window the way a user would (not managed)."""
        window = WindowInfo(
            id=self._next_window_id,
            type=type,
            state=state,
            bounds=bounds or Rect(100, 100, 800, 600),
        )
        self._next_window_id += 1
        self.windows[window.id] = window
        for index, url in enumerate(urls):
            self._open_tab(window, url, active=index == 0)
        return window

    def navigate(self, tab_id: int, url: str, update_tab: bool = False) -> None:
        """Change a page's live location; the tab's cached URL stays stale by default."""
        self.pages[tab_id].url = url
        if update_tab:
            tab = self._find_tab(tab_id)
            if tab is not None:
                tab.url = url

    def tab_ids(self) -> list[int]:
        return [tab.id for window in self.windows.values() for tab in window.tabs]

    async def close_window_externally(self, window_id: int) -> None:
        """Simulate the user closing a window."""
        await self.remove_window(window_id)

    # ------------------------------------------------------------------ #
    # Host API                                                             #
    # ------------------------------------------------------------------ #

    @property
    def control_url(self) -> str:
        return self._control_url

    async def get_all_windows(self) -> list[WindowInfo]:
        self._maybe_fail("get_all_windows")
        return [replace(window, tabs=list(window.tabs)) for window in self.windows.values()]

    async def get_window(self, window_id: int) -> WindowInfo | None:
        self._maybe_fail("get_window")
        return self.windows.get(window_id)

    async def create_window(self, url: str, type: str = "popup", bounds: Rect | None = None) -> WindowInfo | None:
        self._maybe_fail("create_window")
        self.created.append(url)
        return self.add_window([url], type=type, bounds=bounds)

    async def update_window(
        self,
        window_id: int,
        bounds: Rect | None = None,
        focused: bool | None = None,
        state: str | None = None,
    ) -> None:
        self._maybe_fail("update_window")
        window = self.windows.get(window_id)
        if window is None:
            raise HostError(f"No window with id {window_id}")
        if state is not None:
            window.state = state
        if bounds is not None:
            window.bounds = bounds
        if focused:
            for other in self.windows.values():
                other.focused = other.id == window_id

    async def remove_window(self, window_id: int) -> None:
        self._maybe_fail("remove_window")
        window = self.windows.pop(window_id, None)
        if window is None:
            raise HostError(f"No window with id {window_id}")
        for tab in window.tabs:
            self.pages.pop(tab.id, None)
        for handler in list(self._handlers):
            await handler(window_id)

    async def get_tab(self, tab_id: int) -> TabInfo | None:
        self._maybe_fail("get_tab")
        return self._find_tab(tab_id)

    async def remove_tab(self, tab_id: int) -> None:
        self._maybe_fail("remove_tab")
        tab = self._find_tab(tab_id)
        if tab is None:
            raise HostError(f"No tab with id {tab_id}")
        window = self.windows[tab.window_id]
        window.tabs = [t for t in window.tabs if t.id != tab_id]
        self.pages.pop(tab_id, None)
        if not window.tabs:
            await self.remove_window(window.id)

    async def activate_tab(self, tab_id: int) -> None:
        self._maybe_fail("activate_tab")
        tab = self._find_tab(tab_id)
        if tab is None:
            raise HostError(f"No tab with id {tab_id}")
        for other in self.windows[tab.window_id].tabs:
            other.active = other.id == tab_id

    async def get_displays(self) -> list[Display]:
        self._maybe_fail("get_displays")
        return list(self.displays)

    async def send_to_tab(self, tab_id: int, message: dict[str, Any]) -> dict[str, Any]:
        self.sent.append((tab_id, dict(message)))
        page = self.pages.get(tab_id)
        if page is None:
            raise TargetUnreachable(tab_id, "no page")
        if page.unreachable_for > 0:
            page.unreachable_for -= 1
            raise TargetUnreachable(tab_id, "receiving end does not exist")
        agent = TargetAgent(
            page,
            adapter_for_url(page.url),
            verify_attempts=self.verify_attempts,
            verify_delay_s=self.verify_delay_s,
            sleep=_yield,
        )
        return await agent.handle(message)

    def on_window_removed(self, handler: WindowRemovedHandler) -> None:
        self._handlers.append(handler)

    # ------------------------------------------------------------------ #
    # Private helpers                                                      #
    # ------------------------------------------------------------------ #

    def _open_tab(self, window: WindowInfo, url: str, active: bool) -> TabInfo:
        tab = TabInfo(id=self._next_tab_id, window_id=window.id, url=url, title="", active=active)
        self._next_tab_id += 1
        window.tabs.append(tab)
        if not self.is_control_url(url):
            self.pages[tab.id] = MemoryPage(url=url)
        return tab

    def _find_tab(self, tab_id: int) -> TabInfo | None:
        for window in self.windows.values():
            for tab in window.tabs:
                if tab.id == tab_id:
                    return tab
        return None

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_calls:
            logger.debug(f"[memory-host] simulated failure: {name}")
            raise HostError(f"{name} failed")


async def _yield(_delay: float) -> None:
    await asyncio.sleep(0)
