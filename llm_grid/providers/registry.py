"""Registry of supported chat-agent providers."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderDef:
    """Chat-agent provider metadata."""

    id: str
    name: str
    patterns: tuple[str, ...]
    home_url: str
    extra_home_urls: tuple[str, ...] = ()

    def matches(self, url: str) -> bool:
        """Return True when the URL belongs to this provider."""
        return any(re.search(pattern, url) for pattern in self.patterns)

    @property
    def home_urls(self) -> tuple[str, ...]:
        return (self.home_url, *self.extra_home_urls)


PROVIDER_DEFS: dict[str, ProviderDef] = {
    "chatgpt": ProviderDef(
        id="chatgpt",
        name="ChatGPT",
        patterns=(r"chatgpt\.com", r"chat\.openai\.com"),
        home_url="https://chatgpt.com/",
    ),
    "claude": ProviderDef(
        id="claude",
        name="Claude",
        patterns=(r"claude\.ai",),
        home_url="https://claude.ai/",
    ),
    "gemini": ProviderDef(
        id="gemini",
        name="Gemini",
        patterns=(r"gemini\.google\.com",),
        home_url="https://gemini.google.com/app",
        extra_home_urls=("https://gemini.google.com/",),
    ),
    "grok": ProviderDef(
        id="grok",
        name="Grok",
        patterns=(r"grok\.com", r"x\.com/i/grok"),
        home_url="https://grok.com/",
    ),
    "perplexity": ProviderDef(
        id="perplexity",
        name="Perplexity",
        patterns=(r"perplexity\.ai",),
        home_url="https://www.perplexity.ai/",
    ),
}

PROVIDER_IDS: tuple[str, ...] = tuple(PROVIDER_DEFS)


def get_provider(provider_id: str) -> ProviderDef:
    """Get a provider definition by id."""
    key = (provider_id or "").strip().lower()
    if key not in PROVIDER_DEFS:
        choices = ", ".join(sorted(PROVIDER_DEFS))
        raise ValueError(f"Unknown provider '{provider_id}'. Expected one of: {choices}")
    return PROVIDER_DEFS[key]


def provider_for_url(url: str | None) -> ProviderDef | None:
    """Classify a URL; None when it belongs to no known provider."""
    if not url:
        return None
    for provider in PROVIDER_DEFS.values():
        if provider.matches(url):
            return provider
    return None


def _normalize_base_url(url: str | None) -> str:
    return (url or "").strip().rstrip("/")


def is_home_url(provider_id: str, url: str | None) -> bool:
    """True when ``url`` is the generic landing page of the provider."""
    provider = PROVIDER_DEFS.get(provider_id)
    candidate = _normalize_base_url(url)
    if provider is None or not candidate:
        return False
    return any(_normalize_base_url(home) == candidate for home in provider.home_urls)
