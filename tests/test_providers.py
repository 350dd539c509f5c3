"""Tests for the provider catalog."""

import pytest

from llm_grid.providers.registry import PROVIDER_IDS, get_provider, is_home_url, provider_for_url


def test_catalog_order() -> None:
    assert PROVIDER_IDS == ("chatgpt", "claude", "gemini", "grok", "perplexity")


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://chatgpt.com/c/123", "chatgpt"),
        ("https://chat.openai.com/", "chatgpt"),
        ("https://claude.ai/new", "claude"),
        ("https://gemini.google.com/app/abc", "gemini"),
        ("https://x.com/i/grok?conversation=1", "grok"),
        ("https://www.perplexity.ai/search/q", "perplexity"),
        ("https://example.com/", None),
        ("", None),
    ],
)
def test_provider_for_url(url, expected) -> None:
    provider = provider_for_url(url)
    assert (provider.id if provider else None) == expected


def test_home_url_detection() -> None:
    assert is_home_url("chatgpt", "https://chatgpt.com")
    assert is_home_url("gemini", " https://gemini.google.com/ ")
    assert is_home_url("gemini", "https://gemini.google.com/app/")
    assert not is_home_url("gemini", "https://gemini.google.com/app/4f2a")
    assert not is_home_url("unknown", "https://chatgpt.com/")
    assert not is_home_url("claude", "")


def test_get_provider() -> None:
    assert get_provider(" Claude ").name == "Claude"
    with pytest.raises(ValueError, match="Unknown provider"):
        get_provider("bard")
