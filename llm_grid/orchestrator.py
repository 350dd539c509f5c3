"""Orchestrator context: wires host, storage and the core components together.

One ``Orchestrator`` replaces the process-wide state of a browser extension
(cached conversations, active id, settings, polling handle). It exposes the
internal message protocol through ``handle_message`` and the control-surface
actions (send a prompt, start a session, reopen a conversation) as methods.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

from loguru import logger

from llm_grid.broadcast.dispatcher import MODE_PASTE, MODE_SUBMIT, BroadcastDispatcher, BroadcastResult
from llm_grid.broadcast.locator import TabLocator, Target
from llm_grid.config.schema import Config
from llm_grid.errors import ManagementError
from llm_grid.host.base import Host, Rect
from llm_grid.session.conversation_store import ConversationStore, RecordResult, conversation_urls
from llm_grid.session.kv_store import KeyValueStore
from llm_grid.session.link_capture import LinkCaptureScheduler
from llm_grid.session.models import Settings
from llm_grid.status.poller import OnChange, OnTargets, StatusPoller
from llm_grid.windows.manager import WindowManager
from llm_grid.windows.registry import WindowRegistry

Handler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


def _provider_ids(value: Any) -> list[str]:
    """Provider ids from a message payload; a bare string is one id."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [p for p in value if isinstance(p, str) and p]


class Orchestrator:
    """Explicit context object with an ``init``/``dispose`` lifecycle."""

    def __init__(
        self,
        host: Host,
        store: KeyValueStore,
        config: Config | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.host = host
        self.store = store
        self.config = config or Config()
        timing = self.config.timing

        self.registry = WindowRegistry(store)
        self.windows = WindowManager(host, self.registry, stagger_s=timing.window_stagger_s, sleep=sleep)
        self.locator = TabLocator(
            host,
            attempts=timing.location_attempts,
            delay_s=timing.location_delay_s,
            sleep=sleep,
        )
        self.dispatcher = BroadcastDispatcher(
            host,
            self.locator,
            settle_delay_s=timing.settle_delay_s,
            delivery_timeout_s=timing.delivery_timeout_s,
            sleep=sleep,
        )
        self.conversations = ConversationStore(store, clock=clock, dedupe_window_s=timing.dedupe_window_s)
        self.link_capture = LinkCaptureScheduler(
            self.conversations,
            self.locator,
            delay_s=timing.capture_delay_s,
            max_attempts=timing.capture_max_attempts,
            sleep=sleep,
        )
        self.poller = StatusPoller(self.locator, interval_s=timing.poll_interval_s, sleep=sleep)

        self._handlers: dict[str, Handler] = {
            "get_status": self._on_get_status,
            "list_tabs": self._on_list_tabs,
            "new_chat": self._on_new_chat,
            "broadcast": self._on_broadcast,
            "open_conversation": self._on_open_conversation,
            "close_all": self._on_close_all,
            "focus_all": self._on_focus_all,
            "close_tab": self._on_close_tab,
            "focus_tab": self._on_focus_tab,
        }
        self._initialized = False

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def init(self) -> Orchestrator:
        if self._initialized:
            return self
        await self.conversations.load_settings()
        self.host.on_window_removed(self._on_window_removed)
        self._initialized = True
        logger.info("[orchestrator] initialised")
        return self

    def dispose(self) -> None:
        self.poller.stop()
        self.link_capture.dispose()
        logger.info("[orchestrator] disposed")

    async def __aenter__(self) -> Orchestrator:
        return await self.init()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.dispose()

    async def _on_window_removed(self, window_id: int) -> None:
        await self.registry.remove(window_id)

    @property
    def settings(self) -> Settings:
        return self.conversations.settings

    # ------------------------------------------------------------------ #
    # Message protocol                                                     #
    # ------------------------------------------------------------------ #

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        """Route one protocol request; never raises."""
        msg_type = message.get("type") if isinstance(message, dict) else None
        handler = self._handlers.get(msg_type or "")
        if handler is None:
            return {"ok": False, "error": "Unknown message"}
        try:
            return await handler(message)
        except ManagementError as exc:
            return {"ok": False, "error": exc.message}
        except Exception as exc:
            logger.exception(f"[orchestrator] Error handling {msg_type}")
            return {"ok": False, "error": str(exc)}

    async def _on_get_status(self, message: dict[str, Any]) -> dict[str, Any]:
        status = await self.windows.detect_status()
        return {"ok": True, "status": status}

    async def _on_list_tabs(self, message: dict[str, Any]) -> dict[str, Any]:
        targets = await self.locator.list_targets()
        return {"ok": True, "tabs": [t.to_dict() for t in targets]}

    async def _on_new_chat(self, message: dict[str, Any]) -> dict[str, Any]:
        await self.windows.close_provider_windows(include_unmanaged=True)
        await self.windows.open_auto_grid(
            _provider_ids(message.get("providers")),
            message.get("controlWindowId") or None,
        )
        return {"ok": True}

    async def _on_broadcast(self, message: dict[str, Any]) -> dict[str, Any]:
        result = await self.dispatcher.broadcast(
            message.get("prompt") or "",
            _provider_ids(message.get("providers")),
            message.get("mode") or MODE_PASTE,
        )
        return {"ok": True, "result": result.to_dict()}

    async def _on_open_conversation(self, message: dict[str, Any]) -> dict[str, Any]:
        await self.windows.close_provider_windows(include_unmanaged=True)
        await self.windows.open_conversation_grid(
            message.get("urls") or [],
            message.get("controlWindowId") or None,
        )
        return {"ok": True}

    async def _on_close_all(self, message: dict[str, Any]) -> dict[str, Any]:
        await self.windows.close_provider_windows()
        return {"ok": True}

    async def _on_focus_all(self, message: dict[str, Any]) -> dict[str, Any]:
        await self.windows.relayout_managed_windows()
        await self.windows.focus_managed_windows()
        return {"ok": True}

    async def _on_close_tab(self, message: dict[str, Any]) -> dict[str, Any]:
        await self.windows.close_tab(message.get("tabId"))
        return {"ok": True}

    async def _on_focus_tab(self, message: dict[str, Any]) -> dict[str, Any]:
        await self.windows.focus_tab(message.get("tabId"))
        return {"ok": True}

    # ------------------------------------------------------------------ #
    # Control-surface actions                                              #
    # ------------------------------------------------------------------ #

    async def open_control_window(self) -> None:
        control = self.config.control
        await self.windows.ensure_control_window(Rect(0, 0, control.width, control.height))

    async def send_prompt(
        self,
        prompt: str,
        mode: str = MODE_SUBMIT,
        providers: list[str] | None = None,
    ) -> tuple[BroadcastResult, RecordResult | None]:
        """Broadcast, record into history, and start link capture."""
        selected = list(providers or self.settings.default_providers)
        result = await self.dispatcher.broadcast(prompt, selected, mode)
        recorded: RecordResult | None = None
        if self.conversations.should_record(mode, prompt):
            recorded = await self.conversations.record_prompt(prompt)
        active_id = await self.conversations.active_id()
        if active_id:
            self.link_capture.schedule(active_id)
        await self.conversations.save_draft("")
        return result, recorded

    async def new_session(
        self,
        providers: list[str] | None = None,
        control_window_id: int | None = None,
    ) -> None:
        """Start a new conversation and open fresh provider windows."""
        await self.conversations.start_new_conversation()
        await self.handle_message({
            "type": "new_chat",
            "providers": list(providers or self.settings.default_providers),
            "controlWindowId": control_window_id,
        })

    async def open_conversation(self, conversation_id: str, control_window_id: int | None = None) -> bool:
        """Make a conversation active and reopen its deep links in a grid."""
        if not await self.conversations.activate(conversation_id):
            return False
        conversation = await self.conversations.get(conversation_id)
        urls = conversation_urls(conversation, self.settings.default_providers)
        if not urls:
            return True
        await self.handle_message({
            "type": "open_conversation",
            "urls": urls,
            "controlWindowId": control_window_id,
        })
        return True

    async def delete_conversation(self, conversation_id: str) -> bool:
        return await self.conversations.delete(conversation_id)

    async def update_settings(
        self,
        history_limit: int | None = None,
        default_providers: list[str] | None = None,
        theme: str | None = None,
    ) -> Settings:
        current = self.settings
        updated = Settings(
            history_limit=current.history_limit if history_limit is None else history_limit,
            default_providers=list(current.default_providers if default_providers is None else default_providers),
            theme=current.theme if theme is None else theme,
        )
        return await self.conversations.save_settings(updated)

    async def start_status_polling(
        self,
        on_change: OnChange | None = None,
        on_targets: OnTargets | None = None,
    ) -> None:
        self.poller.on_change = on_change
        self.poller.on_targets = on_targets
        await self.poller.start()

    async def set_visible(self, visible: bool) -> None:
        await self.poller.set_visible(visible)

    async def list_targets(self) -> list[Target]:
        return await self.locator.list_targets()
