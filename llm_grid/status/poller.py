"""Background status poller - refreshes observers when the open-target set changes.

Usage:
    poller = StatusPoller(locator, interval_s=1.0)
    poller.on_change = refresh_everything      # async, set before start()
    poller.on_targets = update_send_button     # cheap, every tick
    await poller.start()
    ...
    poller.set_visible(False)   # observer hidden: stop ticking
    poller.set_visible(True)    # visible again: restart + immediate check
    poller.stop()
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from llm_grid.broadcast.locator import TabLocator, Target

OnChange = Callable[[list[Target]], Awaitable[None]]
OnTargets = Callable[[list[Target]], None]


def targets_signature(targets: list[Target]) -> str:
    """Order-independent summary of the open-target set."""
    return ",".join(sorted(f"{t.provider_id}:{t.tab_id}" for t in targets))


class StatusPoller:
    """Async poller with signature de-bounce."""

    def __init__(
        self,
        locator: TabLocator,
        interval_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.locator = locator
        self.interval_s = interval_s
        self._sleep = sleep

        # Callbacks - set these before calling start().
        self.on_change: OnChange | None = None
        self.on_targets: OnTargets | None = None

        self._task: asyncio.Task | None = None
        self._running = False
        self._last_signature = ""
        self.refresh_count = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_signature(self) -> str:
        return self._last_signature

    async def start(self) -> None:
        """Start the polling task (no-op when already running)."""
        if self.running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop(), name="status-poller")
        logger.info(f"[poller] started, interval={self.interval_s}s")

    def stop(self) -> None:
        """Cancel the polling task."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    async def set_visible(self, visible: bool) -> None:
        """Suspend while hidden; on becoming visible resume and check once right away."""
        if not visible:
            self.stop()
            logger.debug("[poller] suspended (observer hidden)")
            return
        await self.tick()
        await self.start()

    async def tick(self) -> bool:
        """One poll. Returns True when a full refresh was triggered."""
        try:
            targets = await self.locator.list_targets()
            if self.on_targets is not None:
                self.on_targets(targets)
            signature = targets_signature(targets)
            if signature == self._last_signature:
                return False
            self._last_signature = signature
            self.refresh_count += 1
            if self.on_change is not None:
                await self.on_change(targets)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug(f"[poller] tick error: {exc}")
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _loop(self) -> None:
        while self._running:
            try:
                await self._sleep(self.interval_s)
                if self._running:
                    await self.tick()
            except asyncio.CancelledError:
                break
