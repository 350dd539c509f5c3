"""Managed-window registry.

Tracks the windows this system created or took ownership of, as opposed to
every window the host reports. The host's window list stays the source of
truth: ids are pruned when the host announces a window closed.
"""

from __future__ import annotations

from loguru import logger

from llm_grid.session.kv_store import KeyValueStore

MANAGED_KEY = "managedWindowIds"


class WindowRegistry:
    """Set of managed window ids persisted under ``managedWindowIds``."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def all(self) -> list[int]:
        data = await self._store.get([MANAGED_KEY])
        ids = data.get(MANAGED_KEY)
        if not isinstance(ids, list):
            return []
        return [i for i in ids if isinstance(i, int) and not isinstance(i, bool)]

    async def contains(self, window_id: int) -> bool:
        return window_id in await self.all()

    async def add(self, window_id: int) -> None:
        ids = await self.all()
        if window_id in ids:
            return
        ids.append(window_id)
        await self._store.set({MANAGED_KEY: ids})
        logger.debug(f"[windows] managing window {window_id}")

    async def remove(self, window_id: int) -> None:
        ids = await self.all()
        remaining = [i for i in ids if i != window_id]
        if len(remaining) != len(ids):
            await self._store.set({MANAGED_KEY: remaining})
            logger.debug(f"[windows] released window {window_id}")
