"""Conversation history and settings data models.

Stored JSON keeps camelCase keys (``rootPrompt``, ``linksByProvider``...);
timestamps are epoch milliseconds.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from llm_grid.providers.registry import PROVIDER_IDS

VALID_THEMES = ("system", "light", "dark")
DEFAULT_HISTORY_LIMIT = 50


def new_id(prefix: str, now_ms: int) -> str:
    """``<prefix>_<ms>_<4 hex>``, e.g. ``conv_1718000000000_9f3a``."""
    return f"{prefix}_{now_ms}_{uuid.uuid4().hex[:4]}"


@dataclass
class Message:
    """One prompt sent within a conversation."""

    id: str
    prompt: str
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "prompt": self.prompt, "createdAt": self.created_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            id=str(data.get("id") or ""),
            prompt=str(data.get("prompt") or ""),
            created_at=int(data.get("createdAt") or 0),
        )


@dataclass
class Conversation:
    """A broadcast thread: root prompt, messages and per-provider deep links."""

    id: str
    root_prompt: str = ""
    created_at: int = 0
    last_updated: int = 0
    links_by_provider: dict[str, list[str]] = field(default_factory=dict)
    messages: list[Message] = field(default_factory=list)

    def has_link_data(self) -> bool:
        return any(links for links in self.links_by_provider.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rootPrompt": self.root_prompt,
            "createdAt": self.created_at,
            "lastUpdated": self.last_updated,
            "linksByProvider": {k: list(v) for k, v in self.links_by_provider.items()},
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        created_at = int(data.get("createdAt") or 0)
        links: dict[str, list[str]] = {}
        raw_links = data.get("linksByProvider")
        if isinstance(raw_links, dict):
            for provider_id, value in raw_links.items():
                items = value if isinstance(value, list) else [value]
                links[provider_id] = [url for url in items if isinstance(url, str) and url]
        raw_messages = data.get("messages")
        messages = [
            Message.from_dict(m) for m in (raw_messages if isinstance(raw_messages, list) else [])
            if isinstance(m, dict)
        ]
        return cls(
            id=str(data.get("id") or ""),
            root_prompt=str(data.get("rootPrompt") or ""),
            created_at=created_at,
            last_updated=max(int(data.get("lastUpdated") or created_at), created_at),
            links_by_provider=links,
            messages=messages,
        )


def load_conversations(raw: Any) -> list[Conversation]:
    """Parse stored conversations, dropping entries without an id."""
    if not isinstance(raw, list):
        return []
    result: list[Conversation] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        conversation = Conversation.from_dict(entry)
        if conversation.id:
            result.append(conversation)
    return result


def sort_conversations(conversations: list[Conversation]) -> list[Conversation]:
    """Most recently updated first (stable for equal timestamps)."""
    return sorted(conversations, key=lambda c: c.last_updated or c.created_at, reverse=True)


@dataclass
class Settings:
    """User settings persisted under the ``settings`` key."""

    history_limit: int = DEFAULT_HISTORY_LIMIT
    default_providers: list[str] = field(default_factory=lambda: list(PROVIDER_IDS))
    theme: str = "system"

    def to_dict(self) -> dict[str, Any]:
        return {
            "historyLimit": self.history_limit,
            "defaultProviders": list(self.default_providers),
            "theme": self.theme,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Settings:
        """Normalise stored settings, falling back to defaults field by field."""
        if not isinstance(data, dict):
            return cls()
        try:
            history_limit = int(data.get("historyLimit"))
        except (TypeError, ValueError):
            history_limit = DEFAULT_HISTORY_LIMIT
        if history_limit <= 0:
            history_limit = DEFAULT_HISTORY_LIMIT

        raw_providers = data.get("defaultProviders")
        if isinstance(raw_providers, list):
            providers = [p for p in PROVIDER_IDS if p in raw_providers]
        else:
            providers = list(PROVIDER_IDS)
        if not providers:
            providers = list(PROVIDER_IDS)

        theme = data.get("theme")
        if theme not in VALID_THEMES:
            theme = "system"
        return cls(history_limit=history_limit, default_providers=providers, theme=theme)
