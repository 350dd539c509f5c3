"""Durable conversation history on top of a key-value store."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from llm_grid.providers.registry import PROVIDER_DEFS, is_home_url
from llm_grid.session.kv_store import KeyValueStore
from llm_grid.session.models import (
    Conversation,
    Message,
    Settings,
    load_conversations,
    new_id,
    sort_conversations,
)

CONVERSATIONS_KEY = "conversations"
ACTIVE_KEY = "activeConversationId"
SETTINGS_KEY = "settings"
DRAFT_KEY = "lastPrompt"


@dataclass(frozen=True)
class RecordResult:
    """Outcome of ``record_prompt``."""

    conversation: Conversation
    created: bool


@dataclass(frozen=True)
class MergeOutcome:
    """Outcome of ``merge_links``."""

    found: bool          # conversation still exists
    changed: bool        # something was persisted
    has_specific: bool   # at least one provider holds a non-home link


def has_conversation_specific_links(links_by_provider: dict[str, list[str]]) -> bool:
    return any(
        url and not is_home_url(provider_id, url)
        for provider_id, links in links_by_provider.items()
        for url in links
    )


def merge_provider_links(
    existing: dict[str, list[str]],
    discovered: dict[str, list[str]],
) -> dict[str, list[str]]:
    """Merge discovered links into a conversation's link map.

    Non-home links extend what is already recorded and evict home-page
    placeholders. A provider with nothing recorded yet takes whatever was
    discovered, home URL included, as a placeholder.
    """
    merged = {provider_id: list(links) for provider_id, links in existing.items()}
    for provider_id, links in discovered.items():
        found: list[str] = []
        for url in links:
            if url and url not in found:
                found.append(url)
        if not found:
            continue
        specific = [url for url in found if not is_home_url(provider_id, url)]
        current = merged.get(provider_id, [])
        if specific:
            kept = [url for url in current if not is_home_url(provider_id, url)]
            merged[provider_id] = kept + [url for url in specific if url not in kept]
        elif not current:
            merged[provider_id] = found
    return merged


class ConversationStore:
    """Owns conversations, the active pointer, settings and the prompt draft.

    Every mutation re-reads the stored snapshot and writes it back whole.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
        dedupe_window_s: float = 5.0,
    ) -> None:
        self._store = store
        self._clock = clock
        self.dedupe_window_s = dedupe_window_s
        self.settings = Settings()
        self._last_recorded_prompt = ""
        self._last_recorded_at = 0.0

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------ #
    # Settings & draft                                                     #
    # ------------------------------------------------------------------ #

    async def load_settings(self) -> Settings:
        data = await self._store.get([SETTINGS_KEY])
        self.settings = Settings.from_dict(data.get(SETTINGS_KEY))
        return self.settings

    async def save_settings(self, settings: Settings) -> Settings:
        self.settings = Settings.from_dict(settings.to_dict())
        await self._store.set({SETTINGS_KEY: self.settings.to_dict()})
        conversations = await self.list()
        if len(conversations) > self.settings.history_limit:
            kept = conversations[: self.settings.history_limit]
            updates: dict[str, Any] = {CONVERSATIONS_KEY: [c.to_dict() for c in kept]}
            active_id = await self.active_id()
            if active_id and all(c.id != active_id for c in kept):
                updates[ACTIVE_KEY] = kept[0].id if kept else None
            await self._store.set(updates)
        return self.settings

    async def save_draft(self, text: str) -> None:
        await self._store.set({DRAFT_KEY: text or ""})

    async def load_draft(self) -> str:
        data = await self._store.get([DRAFT_KEY])
        value = data.get(DRAFT_KEY)
        return value if isinstance(value, str) else ""

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    async def list(self) -> list[Conversation]:
        """All conversations, most recently updated first."""
        data = await self._store.get([CONVERSATIONS_KEY])
        return sort_conversations(load_conversations(data.get(CONVERSATIONS_KEY)))

    async def get(self, conversation_id: str) -> Conversation | None:
        for conversation in await self.list():
            if conversation.id == conversation_id:
                return conversation
        return None

    async def active_id(self) -> str | None:
        data = await self._store.get([ACTIVE_KEY])
        value = data.get(ACTIVE_KEY)
        return value if isinstance(value, str) and value else None

    async def active(self) -> Conversation | None:
        active_id = await self.active_id()
        return await self.get(active_id) if active_id else None

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    def should_record(self, mode: str, prompt: str) -> bool:
        """Duplicate guard: identical submit within the dedupe window is dropped."""
        trimmed = (prompt or "").strip()
        if not trimmed:
            return False
        now = self._clock()
        if mode == "submit":
            if (
                trimmed == self._last_recorded_prompt
                and now - self._last_recorded_at < self.dedupe_window_s
            ):
                logger.debug("[store] Duplicate submit within dedupe window, not recorded")
                return False
        self._last_recorded_prompt = trimmed
        self._last_recorded_at = now
        return True

    async def record_prompt(self, prompt: str) -> RecordResult | None:
        """Append to the active conversation, or start one."""
        if not prompt or not prompt.strip():
            return None
        data = await self._store.get([CONVERSATIONS_KEY, ACTIVE_KEY])
        conversations = load_conversations(data.get(CONVERSATIONS_KEY))
        active_id = data.get(ACTIVE_KEY) or None
        existing = next((c for c in conversations if c.id == active_id), None)
        now = self._now_ms()

        if existing is None:
            taken = {c.id for c in conversations}
            conversation_id = new_id("conv", now)
            while conversation_id in taken:
                conversation_id = new_id("conv", now)
            conversation = Conversation(
                id=conversation_id,
                root_prompt=prompt,
                created_at=now,
                last_updated=now,
                messages=[Message(id=new_id("msg", now), prompt=prompt, created_at=now)],
            )
            conversations.insert(0, conversation)
            active_id = conversation.id
            created = True
            logger.info(f"[store] Started conversation {conversation.id}")
        else:
            conversation = existing
            conversation.messages.append(Message(id=new_id("msg", now), prompt=prompt, created_at=now))
            conversation.last_updated = max(now, conversation.created_at)
            if not conversation.root_prompt:
                conversation.root_prompt = prompt
            created = False

        conversations = sort_conversations(conversations)
        limit = self.settings.history_limit
        if limit and len(conversations) > limit:
            dropped = conversations[limit:]
            conversations = conversations[:limit]
            logger.debug(f"[store] History limit {limit}: dropped {[c.id for c in dropped]}")

        await self._store.set({
            CONVERSATIONS_KEY: [c.to_dict() for c in conversations],
            ACTIVE_KEY: active_id,
        })
        return RecordResult(
            conversation=conversation,
            created=created,
        )

    async def start_new_conversation(self) -> None:
        """Clear the active pointer; the next prompt opens a fresh conversation."""
        await self._store.set({ACTIVE_KEY: None})

    async def activate(self, conversation_id: str) -> bool:
        if await self.get(conversation_id) is None:
            return False
        await self._store.set({ACTIVE_KEY: conversation_id})
        return True

    async def delete(self, conversation_id: str) -> bool:
        """Remove a conversation; the active pointer falls back to the newest one left."""
        data = await self._store.get([CONVERSATIONS_KEY, ACTIVE_KEY])
        conversations = sort_conversations(load_conversations(data.get(CONVERSATIONS_KEY)))
        remaining = [c for c in conversations if c.id != conversation_id]
        if len(remaining) == len(conversations):
            return False
        active_id = data.get(ACTIVE_KEY) or None
        if active_id == conversation_id:
            active_id = remaining[0].id if remaining else None
        await self._store.set({
            CONVERSATIONS_KEY: [c.to_dict() for c in remaining],
            ACTIVE_KEY: active_id,
        })
        logger.info(f"[store] Deleted conversation {conversation_id}")
        return True

    async def merge_links(
        self,
        conversation_id: str,
        discovered: dict[str, list[str]],
    ) -> MergeOutcome:
        """Fold discovered deep links into a conversation (no-op when unchanged)."""
        data = await self._store.get([CONVERSATIONS_KEY])
        conversations = load_conversations(data.get(CONVERSATIONS_KEY))
        target = next((c for c in conversations if c.id == conversation_id), None)
        if target is None:
            return MergeOutcome(found=False, changed=False, has_specific=False)

        merged = merge_provider_links(target.links_by_provider, discovered)
        if merged == target.links_by_provider:
            return MergeOutcome(
                found=True,
                changed=False,
                has_specific=has_conversation_specific_links(merged),
            )

        target.links_by_provider = merged
        target.last_updated = max(self._now_ms(), target.created_at)
        await self._store.set({CONVERSATIONS_KEY: [c.to_dict() for c in conversations]})
        return MergeOutcome(
            found=True,
            changed=True,
            has_specific=has_conversation_specific_links(merged),
        )


def conversation_urls(conversation: Conversation | None, default_providers: list[str]) -> list[str]:
    """URLs to reopen a conversation: recorded links, else home pages of default providers."""
    urls: list[str] = []
    if conversation is None:
        return urls
    links = conversation.links_by_provider
    for provider_id, provider in PROVIDER_DEFS.items():
        recorded = links.get(provider_id) or []
        for url in recorded:
            if url not in urls:
                urls.append(url)
        if not recorded and provider_id in default_providers and provider.home_url not in urls:
            urls.append(provider.home_url)
    return urls
