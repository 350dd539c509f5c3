"""Window lifecycle: open, tile, focus and close provider popups."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from llm_grid.broadcast.locator import classify_windows
from llm_grid.errors import ManagementError
from llm_grid.host.base import Host, Rect, WindowInfo, host_call
from llm_grid.providers.registry import PROVIDER_DEFS, provider_for_url
from llm_grid.windows.layout import assign, select_work_area
from llm_grid.windows.registry import WindowRegistry


def normalize_urls(urls: Any, control_url: str = "") -> list[str]:
    """Trimmed, non-empty, de-duplicated URL strings; the control page is excluded."""
    if not isinstance(urls, list):
        return []
    unique: list[str] = []
    for url in urls:
        if not isinstance(url, str):
            continue
        trimmed = url.strip()
        if not trimmed:
            continue
        if control_url and trimmed.startswith(control_url):
            continue
        if trimmed not in unique:
            unique.append(trimmed)
    return unique


class WindowManager:
    """Owns every host window operation of the orchestrator."""

    def __init__(
        self,
        host: Host,
        registry: WindowRegistry,
        stagger_s: float = 0.12,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.host = host
        self.registry = registry
        self.stagger_s = stagger_s
        self._sleep = sleep

    # ------------------------------------------------------------------ #
    # Classification helpers                                               #
    # ------------------------------------------------------------------ #

    def has_control_tab(self, window: WindowInfo) -> bool:
        return any(self.host.is_control_url(tab.url) for tab in window.tabs)

    @staticmethod
    def has_provider_tab(window: WindowInfo) -> bool:
        return any(provider_for_url(tab.url) for tab in window.tabs)

    def find_control_window(self, windows: list[WindowInfo]) -> WindowInfo | None:
        return next((w for w in windows if self.has_control_tab(w)), None)

    async def _windows(self) -> list[WindowInfo]:
        return await host_call(self.host.get_all_windows(), [])

    async def _managed_popups(self) -> list[WindowInfo]:
        managed = set(await self.registry.all())
        return [
            w for w in await self._windows()
            if w.id in managed
            and w.is_popup
            and (self.has_control_tab(w) or self.has_provider_tab(w))
        ]

    # ------------------------------------------------------------------ #
    # Creation & layout                                                    #
    # ------------------------------------------------------------------ #

    async def create_managed_window(self, url: str, bounds: Rect | None = None) -> WindowInfo | None:
        window = await host_call(self.host.create_window(url, type="popup", bounds=bounds), None)
        if window is not None:
            await self.registry.add(window.id)
        else:
            logger.warning(f"[windows] Failed to create window for {url}")
        return window

    async def exit_fullscreen_if_needed(self, window_id: int) -> None:
        window = await host_call(self.host.get_window(window_id), None)
        if window is not None and window.state in ("fullscreen", "maximized"):
            await host_call(self.host.update_window(window_id, state="normal"), None)

    async def ensure_control_window(self, bounds: Rect | None = None) -> WindowInfo | None:
        """Bring the control surface forward, creating it when absent."""
        existing = self.find_control_window(await self._windows())
        if existing is not None:
            await self.exit_fullscreen_if_needed(existing.id)
            await host_call(self.host.update_window(existing.id, bounds=bounds, focused=True), None)
            await self.registry.add(existing.id)
            return existing
        return await self.create_managed_window(self.host.control_url, bounds)

    async def work_area_for(self, window_id: int | None) -> Rect | None:
        displays = await host_call(self.host.get_displays(), [])
        reference = await host_call(self.host.get_window(window_id), None) if window_id else None
        return select_work_area(displays, reference)

    async def _resolve_control_window_id(self, control_window_id: int | None) -> int | None:
        if control_window_id:
            window = await host_call(self.host.get_window(control_window_id), None)
            if window is not None:
                return window.id
            logger.debug(f"[windows] Control window {control_window_id} is gone, looking for another")
        existing = self.find_control_window(await self._windows())
        return existing.id if existing else None

    async def open_grid(self, urls: list[str], control_window_id: int | None = None) -> None:
        """Tile the control surface and one new popup per URL, in order."""
        control_id = await self._resolve_control_window_id(control_window_id)
        area = await self.work_area_for(control_id)
        if area is None:
            logger.warning("[windows] No display available for layout")
            return

        for index, (url, rect) in enumerate(assign(area, control_id, urls)):
            if index == 0:
                if control_id:
                    await self.exit_fullscreen_if_needed(control_id)
                    await host_call(self.host.update_window(control_id, bounds=rect, focused=True), None)
                    await self.registry.add(control_id)
                else:
                    await self.create_managed_window(self.host.control_url, rect)
                continue
            await self.create_managed_window(url, rect)
            await self._sleep(self.stagger_s)

    async def open_auto_grid(self, provider_ids: list[str], control_window_id: int | None = None) -> None:
        """Open a fresh home page for every selected provider (catalog order)."""
        wanted = set(provider_ids or [])
        urls = [p.home_url for pid, p in PROVIDER_DEFS.items() if pid in wanted]
        logger.info(f"[windows] Opening auto grid for {len(urls)} provider(s)")
        await self.open_grid(urls, control_window_id)

    async def open_conversation_grid(self, urls: Any, control_window_id: int | None = None) -> None:
        safe_urls = normalize_urls(urls, self.host.control_url)
        if not safe_urls:
            return
        logger.info(f"[windows] Opening conversation grid with {len(safe_urls)} link(s)")
        await self.open_grid(safe_urls, control_window_id)

    async def relayout_managed_windows(self) -> None:
        """Re-tile managed popups: control first, then providers by window id."""
        popups = await self._managed_popups()
        if not popups:
            return
        control = self.find_control_window(popups)
        providers = sorted(
            (w for w in popups if control is None or w.id != control.id),
            key=lambda w: w.id,
        )
        area = await self.work_area_for(control.id if control else None)
        if area is None:
            return
        for window, rect in assign(area, control, providers):
            if window is None:
                continue
            await host_call(self.host.update_window(window.id, bounds=rect, focused=True), None)

    # ------------------------------------------------------------------ #
    # Focus & close                                                        #
    # ------------------------------------------------------------------ #

    async def focus_managed_windows(self) -> None:
        for window in await self._managed_popups():
            await host_call(self.host.update_window(window.id, focused=True), None)

    async def close_provider_windows(self, include_unmanaged: bool = False) -> int:
        """Close popups holding a provider tab (never the control window)."""
        managed = set(await self.registry.all())
        removals = []
        for window in await self._windows():
            if not window.is_popup:
                continue
            if window.id not in managed and not include_unmanaged:
                continue
            if self.has_provider_tab(window) and not self.has_control_tab(window):
                removals.append(host_call(self.host.remove_window(window.id), None))
        await asyncio.gather(*removals)
        if removals:
            logger.info(f"[windows] Closed {len(removals)} provider window(s)")
        return len(removals)

    async def _managed_tab(self, tab_id: Any):
        if not isinstance(tab_id, int) or isinstance(tab_id, bool):
            raise ManagementError("Missing tabId")
        tab = await host_call(self.host.get_tab(tab_id), None)
        if tab is None:
            raise ManagementError("Tab not found")
        if not await self.registry.contains(tab.window_id):
            raise ManagementError("Tab not managed")
        return tab

    async def close_tab(self, tab_id: Any) -> None:
        tab = await self._managed_tab(tab_id)
        await host_call(self.host.remove_tab(tab.id), None)

    async def focus_tab(self, tab_id: Any) -> None:
        tab = await self._managed_tab(tab_id)
        await host_call(self.host.update_window(tab.window_id, focused=True), None)
        await host_call(self.host.activate_tab(tab.id), None)

    # ------------------------------------------------------------------ #
    # Status                                                               #
    # ------------------------------------------------------------------ #

    async def detect_status(self) -> dict[str, Any]:
        """Which providers have an open popup, which popups host them, and their tabs."""
        provider_status = {pid: False for pid in PROVIDER_DEFS}
        llm_windows: list[dict[str, Any]] = []
        windows = await self._windows()
        for window in windows:
            if not window.is_popup:
                continue
            providers: list[str] = []
            for tab in window.tabs:
                provider = provider_for_url(tab.url)
                if provider is not None:
                    provider_status[provider.id] = True
                    if provider.id not in providers:
                        providers.append(provider.id)
            if providers:
                llm_windows.append({"id": window.id, "providers": providers})
        return {
            "llmWindows": llm_windows,
            "providerStatus": provider_status,
            "targets": [t.to_dict() for t in classify_windows(windows)],
        }
