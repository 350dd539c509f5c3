"""Target Agent: per-site capability to inject, read back and submit a prompt.

Each provider page gets a ``SiteAdapter`` (CSS selectors for the prompt input
and the send control) chosen by URL, and a ``TargetAgent`` that answers the
two messages the dispatcher sends to a tab:

    {"type": "get_location"}                       -> {"ok": True, "url": ...}
    {"type": "broadcast", "prompt": ..., "mode": "paste" | "submit" | "send"}

The page itself is reached through a ``PageDriver`` so the same agent logic
runs against a real browser page or the in-memory pages of ``MemoryHost``.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from loguru import logger

_DEFAULT_INPUT_SELECTORS = ("textarea", "div[contenteditable='true']")


class PageDriver(Protocol):
    """Minimal page automation surface the agent needs."""

    async def location(self) -> str:
        ...

    async def find_input(self, selectors: tuple[str, ...]) -> Any | None:
        ...

    async def find_button(self, selectors: tuple[str, ...]) -> Any | None:
        ...

    async def set_value(self, element: Any, value: str) -> None:
        ...

    async def read_value(self, element: Any) -> str:
        ...

    async def click(self, element: Any) -> None:
        ...

    async def press_enter(self, element: Any) -> bool:
        ...

    async def submit_form(self, element: Any) -> bool:
        ...


@dataclass(frozen=True)
class SiteAdapter:
    """DOM quirks of one provider site."""

    provider_id: str
    host_pattern: str
    input_selectors: tuple[str, ...]
    send_selectors: tuple[str, ...]

    def matches(self, url: str) -> bool:
        return re.search(self.host_pattern, url or "") is not None


SITE_ADAPTERS: tuple[SiteAdapter, ...] = (
    SiteAdapter(
        provider_id="chatgpt",
        host_pattern=r"chatgpt\.com",
        input_selectors=(
            "#prompt-textarea",
            "div.ProseMirror#prompt-textarea",
            "div[contenteditable='true'][role='textbox']",
            "textarea[name='prompt-textarea']",
            "textarea",
        ),
        send_selectors=(
            "button[data-testid='send-button']",
            "button[aria-label*='Send']",
            "button[class*='composer-submit-button']",
            "button[type='submit']",
        ),
    ),
    SiteAdapter(
        provider_id="claude",
        host_pattern=r"claude\.ai",
        input_selectors=(
            "div[data-testid='chat-input']",
            "div[contenteditable='true'][role='textbox']",
            "div[contenteditable='true']",
            "textarea",
        ),
        send_selectors=(
            "button[aria-label='Send message']",
            "button[aria-label*='Send']",
            "button[aria-label*='Submit']",
            "button[class*='Button_claude']",
            "button[type='submit']",
        ),
    ),
    SiteAdapter(
        provider_id="gemini",
        host_pattern=r"gemini\.google\.com",
        input_selectors=(
            "textarea",
            "div[contenteditable='true'][role='textbox']",
            "div[contenteditable='true']",
        ),
        send_selectors=(
            "button[aria-label*='Send']",
            "button[type='submit']",
        ),
    ),
    SiteAdapter(
        provider_id="grok",
        host_pattern=r"grok\.com",
        input_selectors=(
            "form .ProseMirror[contenteditable='true']",
            "div[contenteditable='true'].tiptap.ProseMirror",
            "textarea",
            "div[contenteditable='true'][role='textbox']",
            "div[contenteditable='true']",
        ),
        send_selectors=(
            "form button[aria-label='Submit']",
            "button[aria-label='Submit']",
            "button[aria-label*='Send']",
            "button[type='submit']",
        ),
    ),
    SiteAdapter(
        provider_id="perplexity",
        host_pattern=r"perplexity\.ai",
        input_selectors=(
            "#ask-input",
            "span[data-lexical-text='true']",
            "div[data-lexical-editor='true'][role='textbox']",
            "textarea",
            "div[contenteditable='true'][role='textbox']",
            "div[contenteditable='true']",
        ),
        send_selectors=(
            "button[aria-label='Submit']",
            "button[aria-label*='Send']",
            "button[aria-label*='Submit']",
            "button[type='submit']",
        ),
    ),
)


def adapter_for_url(url: str) -> SiteAdapter | None:
    """Pick the site adapter for a page URL."""
    for adapter in SITE_ADAPTERS:
        if adapter.matches(url):
            return adapter
    return None


def normalize_text(value: str | None) -> str:
    """Collapse whitespace runs and trim."""
    return re.sub(r"\s+", " ", value or "").strip()


class TargetAgent:
    """Answers dispatcher messages for one page."""

    def __init__(
        self,
        page: PageDriver,
        adapter: SiteAdapter | None = None,
        verify_attempts: int = 12,
        verify_delay_s: float = 0.05,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.page = page
        self.adapter = adapter
        self.verify_attempts = verify_attempts
        self.verify_delay_s = verify_delay_s
        self._sleep = sleep

    async def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        msg_type = message.get("type")
        if msg_type == "get_location":
            return {"ok": True, "url": await self.page.location()}
        if msg_type != "broadcast":
            return {"ok": False, "error": "Unknown message"}

        adapter = self.adapter or adapter_for_url(await self.page.location())
        selectors = adapter.input_selectors if adapter else _DEFAULT_INPUT_SELECTORS
        element = await self.page.find_input(selectors)
        if element is None:
            return {"ok": False, "error": "Input not found"}

        mode = message.get("mode") or "paste"
        prompt = message.get("prompt") or ""

        if mode == "paste":
            await self.page.set_value(element, prompt)
            if await self.wait_for_input_match(element, normalize_text(prompt)):
                return {"ok": True}
            return {"ok": False, "error": "Input mismatch"}

        if mode in ("submit", "send"):
            await self.trigger_send(adapter, element)
            return {"ok": True}

        return {"ok": False, "error": f"Unknown mode '{mode}'"}

    async def wait_for_input_match(self, element: Any, expected: str) -> bool:
        """Poll the input until it contains ``expected`` (normalised)."""
        for attempt in range(self.verify_attempts):
            current = normalize_text(await self.page.read_value(element))
            if not expected or expected in current:
                return True
            if attempt + 1 < self.verify_attempts:
                await self._sleep(self.verify_delay_s)
        return False

    async def trigger_send(self, adapter: SiteAdapter | None, element: Any) -> str:
        """Send button, else Enter key, else form submit. Returns the path taken."""
        selectors = adapter.send_selectors if adapter else ()
        button = await self.page.find_button(selectors) if selectors else None
        if button is not None:
            await self.page.click(button)
            return "button"
        if await self.page.press_enter(element):
            return "enter"
        if await self.page.submit_form(element):
            return "form"
        logger.debug("[agent] No submit path available on page")
        return "none"
