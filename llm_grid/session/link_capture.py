"""Background reconciliation of provider deep links into conversations.

A provider page navigates to its conversation URL some time after the first
prompt is submitted, and nothing notifies us when it does. The scheduler
therefore re-reads the open targets a bounded number of times and stops as
soon as a conversation-specific link has been captured.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from loguru import logger

from llm_grid.broadcast.locator import TabLocator, links_by_provider
from llm_grid.session.conversation_store import ConversationStore

OnCaptured = Callable[[str], Awaitable[None]]


class LinkCaptureScheduler:
    """Runs at most one capture task per conversation."""

    def __init__(
        self,
        conversations: ConversationStore,
        locator: TabLocator,
        delay_s: float = 2.5,
        max_attempts: int = 6,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.conversations = conversations
        self.locator = locator
        self.delay_s = delay_s
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task] = {}
        self.attempts: dict[str, int] = {}

        # Called after a merge changed stored links; set before scheduling.
        self.on_captured: OnCaptured | None = None

    def schedule(self, conversation_id: str, attempt: int = 0) -> asyncio.Task | None:
        """Start capturing links for a conversation unless a capture is running."""
        if not conversation_id:
            return None
        running = self._tasks.get(conversation_id)
        if running is not None and not running.done():
            return running
        task = asyncio.create_task(
            self._run(conversation_id, attempt),
            name=f"link-capture-{conversation_id}",
        )
        self._tasks[conversation_id] = task
        task.add_done_callback(lambda t, cid=conversation_id: self._forget(cid, t))
        return task

    def is_running(self, conversation_id: str) -> bool:
        task = self._tasks.get(conversation_id)
        return task is not None and not task.done()

    async def wait_idle(self) -> None:
        """Join every in-flight capture."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def dispose(self) -> None:
        """Cancel all in-flight captures."""
        for task in list(self._tasks.values()):
            task.cancel()
        self._tasks.clear()

    async def capture_once(self, conversation_id: str) -> bool:
        """One reconciliation pass. Returns True once a non-home link is held."""
        targets = await self.locator.list_targets()
        discovered = links_by_provider(targets)
        if not any(discovered.values()):
            return False
        outcome = await self.conversations.merge_links(conversation_id, discovered)
        if not outcome.found:
            logger.debug(f"[capture] {conversation_id} no longer exists, merge skipped")
            return True
        if outcome.changed and self.on_captured is not None:
            try:
                await self.on_captured(conversation_id)
            except Exception as exc:
                logger.warning(f"[capture] on_captured callback error: {exc}")
        return outcome.has_specific

    async def _run(self, conversation_id: str, attempt: int) -> None:
        while attempt < self.max_attempts:
            await self._sleep(self.delay_s)
            attempt += 1
            self.attempts[conversation_id] = attempt
            try:
                done = await self.capture_once(conversation_id)
            except Exception:
                logger.exception(f"[capture] Attempt {attempt} failed for {conversation_id}")
                done = False
            if done:
                logger.info(f"[capture] {conversation_id}: links captured after {attempt} attempt(s)")
                return
        logger.info(f"[capture] {conversation_id}: gave up after {attempt} attempt(s)")

    def _forget(self, conversation_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(conversation_id) is task:
            del self._tasks[conversation_id]
