"""Discover open provider tabs and their live locations."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, replace
from typing import Any, Awaitable, Callable

from loguru import logger

from llm_grid.errors import HostError
from llm_grid.host.base import Host, WindowInfo, host_call
from llm_grid.providers.registry import provider_for_url


@dataclass(frozen=True)
class Target:
    """A tab hosting a recognised provider page."""

    window_id: int
    tab_id: int
    provider_id: str
    provider_name: str
    title: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "windowId": data["window_id"],
            "tabId": data["tab_id"],
            "providerId": data["provider_id"],
            "providerName": data["provider_name"],
            "title": data["title"],
            "url": data["url"],
        }


def classify_windows(windows: list[WindowInfo], popup_only: bool = True) -> list[Target]:
    """Flatten window tabs into provider targets; non-provider tabs are dropped."""
    targets: list[Target] = []
    for window in windows:
        if popup_only and not window.is_popup:
            continue
        for tab in window.tabs:
            provider = provider_for_url(tab.url or "")
            if provider is None:
                continue
            targets.append(Target(
                window_id=window.id,
                tab_id=tab.id,
                provider_id=provider.id,
                provider_name=provider.name,
                title=tab.title or provider.name,
                url=tab.url or "",
            ))
    return targets


def links_by_provider(targets: list[Target]) -> dict[str, list[str]]:
    """Group distinct target URLs per provider in first-seen order."""
    links: dict[str, list[str]] = {}
    for target in targets:
        if not target.provider_id or not target.url:
            continue
        bucket = links.setdefault(target.provider_id, [])
        if target.url not in bucket:
            bucket.append(target.url)
    return links


class TabLocator:
    """Lists provider targets, refreshing URLs from the pages themselves.

    Single-page apps change their location without the host noticing, so the
    host's tab URL is only a fallback for the Target Agent's answer.
    """

    def __init__(
        self,
        host: Host,
        attempts: int = 3,
        delay_s: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.host = host
        self.attempts = attempts
        self.delay_s = delay_s
        self._sleep = sleep

    async def classify_tabs(self, popup_only: bool = True) -> list[Target]:
        """Targets as reported by the host, without asking the pages."""
        windows = await host_call(self.host.get_all_windows(), [])
        return classify_windows(windows, popup_only=popup_only)

    async def list_targets(self) -> list[Target]:
        targets = await self.classify_tabs(popup_only=True)
        return list(await asyncio.gather(*(self._with_location(t) for t in targets)))

    async def get_tab_location(self, tab_id: int) -> str | None:
        """Ask the tab's Target Agent for its location, with bounded retry."""
        for attempt in range(self.attempts):
            try:
                response = await self.host.send_to_tab(tab_id, {"type": "get_location"})
            except HostError as exc:
                logger.debug(f"[locator] tab {tab_id} attempt {attempt + 1}: {exc}")
                response = None
            url = (response or {}).get("url") if isinstance(response, dict) else None
            if url:
                return url
            if attempt + 1 < self.attempts:
                await self._sleep(self.delay_s)
        return None

    async def _with_location(self, target: Target) -> Target:
        location = await self.get_tab_location(target.tab_id)
        return replace(target, url=location) if location else target
