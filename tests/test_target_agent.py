"""Tests for the per-page Target Agent and site adapters."""

import asyncio

from llm_grid.host.memory import MemoryPage
from llm_grid.providers.adapters import SITE_ADAPTERS, TargetAgent, adapter_for_url, normalize_text


async def _no_wait(_delay: float) -> None:
    return None


def _agent(page: MemoryPage, **kwargs) -> TargetAgent:
    return TargetAgent(page, adapter_for_url(page.url), sleep=_no_wait, **kwargs)


def test_every_provider_has_an_adapter() -> None:
    assert [a.provider_id for a in SITE_ADAPTERS] == ["chatgpt", "claude", "gemini", "grok", "perplexity"]
    assert adapter_for_url("https://claude.ai/chat/1").provider_id == "claude"
    assert adapter_for_url("https://example.com/") is None


def test_normalize_text() -> None:
    assert normalize_text("  a \n\t b  ") == "a b"
    assert normalize_text(None) == ""


def test_get_location() -> None:
    page = MemoryPage(url="https://grok.com/chat/1")
    assert asyncio.run(_agent(page).handle({"type": "get_location"})) == {"ok": True, "url": "https://grok.com/chat/1"}


def test_paste_verifies_input() -> None:
    page = MemoryPage(url="https://chatgpt.com/")
    response = asyncio.run(_agent(page).handle({"type": "broadcast", "prompt": "line one\nline two", "mode": "paste"}))

    assert response == {"ok": True}
    assert page.input.value == "line one\nline two"
    assert page.submissions == []


def test_paste_mismatch_after_bounded_polling() -> None:
    page = MemoryPage(url="https://claude.ai/", rewrite_input=True)
    delays = []

    async def record(delay):
        delays.append(delay)

    agent = TargetAgent(page, adapter_for_url(page.url), verify_attempts=4, verify_delay_s=0.05, sleep=record)
    response = asyncio.run(agent.handle({"type": "broadcast", "prompt": "hi", "mode": "paste"}))

    assert response == {"ok": False, "error": "Input mismatch"}
    assert delays == [0.05, 0.05, 0.05]


def test_missing_input() -> None:
    page = MemoryPage(url="https://gemini.google.com/app", has_input=False)
    response = asyncio.run(_agent(page).handle({"type": "broadcast", "prompt": "hi", "mode": "submit"}))
    assert response == {"ok": False, "error": "Input not found"}


def test_submit_path_priority() -> None:
    button = MemoryPage(url="https://grok.com/")
    enter = MemoryPage(url="https://grok.com/", has_send_button=False)
    form = MemoryPage(url="https://grok.com/", has_send_button=False, accepts_enter=False)
    nothing = MemoryPage(url="https://grok.com/", has_send_button=False, accepts_enter=False, has_form=False)

    async def run():
        paths = []
        for page in (button, enter, form, nothing):
            agent = _agent(page)
            element = await page.find_input(agent.adapter.input_selectors)
            paths.append(await agent.trigger_send(agent.adapter, element))
        return paths

    assert asyncio.run(run()) == ["button", "enter", "form", "none"]


def test_unknown_requests() -> None:
    page = MemoryPage(url="https://chatgpt.com/")
    agent = _agent(page)

    assert asyncio.run(agent.handle({"type": "ping"})) == {"ok": False, "error": "Unknown message"}
    response = asyncio.run(agent.handle({"type": "broadcast", "prompt": "x", "mode": "shout"}))
    assert response["ok"] is False and "shout" in response["error"]
