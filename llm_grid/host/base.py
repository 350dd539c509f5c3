"""Host environment interface (browser windows, tabs, displays)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from llm_grid.errors import HostError

T = TypeVar("T")

WindowRemovedHandler = Callable[[int], Awaitable[None]]


@dataclass(frozen=True)
class Rect:
    """Screen rectangle in pixels."""

    left: int
    top: int
    width: int
    height: int

    @property
    def center(self) -> tuple[float, float]:
        return (self.left + self.width / 2, self.top + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        return (
            self.left <= x < self.left + self.width
            and self.top <= y < self.top + self.height
        )


@dataclass(frozen=True)
class Display:
    """One physical display."""

    id: str
    bounds: Rect
    work_area: Rect
    is_primary: bool = False


@dataclass
class TabInfo:
    """Host view of one tab."""

    id: int
    window_id: int
    url: str = ""
    title: str = ""
    active: bool = False


@dataclass
class WindowInfo:
    """Host view of one top-level window (tabs populated)."""

    id: int
    type: str = "normal"          # "normal" | "popup"
    state: str = "normal"         # "normal" | "maximized" | "fullscreen" | "minimized"
    bounds: Rect = field(default_factory=lambda: Rect(0, 0, 0, 0))
    focused: bool = False
    tabs: list[TabInfo] = field(default_factory=list)

    @property
    def is_popup(self) -> bool:
        return self.type == "popup"


class Host(ABC):
    """Async facade over the host window/tab API.

    Every call may raise ``HostError``; callers that treat failures as an
    absence wrap the call with ``host_call``.
    """

    @property
    @abstractmethod
    def control_url(self) -> str:
        """URL of the control surface page."""

    @abstractmethod
    async def get_all_windows(self) -> list[WindowInfo]:
        ...

    @abstractmethod
    async def get_window(self, window_id: int) -> WindowInfo | None:
        ...

    @abstractmethod
    async def create_window(self, url: str, type: str = "popup", bounds: Rect | None = None) -> WindowInfo | None:
        ...

    @abstractmethod
    async def update_window(
        self,
        window_id: int,
        bounds: Rect | None = None,
        focused: bool | None = None,
        state: str | None = None,
    ) -> None:
        ...

    @abstractmethod
    async def remove_window(self, window_id: int) -> None:
        ...

    @abstractmethod
    async def get_tab(self, tab_id: int) -> TabInfo | None:
        ...

    @abstractmethod
    async def remove_tab(self, tab_id: int) -> None:
        ...

    @abstractmethod
    async def activate_tab(self, tab_id: int) -> None:
        ...

    @abstractmethod
    async def get_displays(self) -> list[Display]:
        ...

    @abstractmethod
    async def send_to_tab(self, tab_id: int, message: dict[str, Any]) -> dict[str, Any]:
        """Deliver a message to the tab's Target Agent; raises TargetUnreachable."""

    @abstractmethod
    def on_window_removed(self, handler: WindowRemovedHandler) -> None:
        """Register a callback for window-closed notifications."""

    def is_control_url(self, url: str | None) -> bool:
        return bool(url) and url.startswith(self.control_url)


async def host_call(call: Awaitable[T], default: T) -> T:
    """Await a host call, turning host failures into ``default``."""
    try:
        return await call
    except HostError as exc:
        logger.debug(f"[host] call failed: {exc}")
        return default
