"""Tests for target discovery and live-location refresh."""

import asyncio

from llm_grid.broadcast.locator import TabLocator, Target, links_by_provider


def test_classify_keeps_provider_popups_only(host, sleep) -> None:
    popup = host.add_window(["https://claude.ai/", "https://example.com/"])
    host.add_window(["https://chatgpt.com/"], type="normal")
    host.add_window([host.control_url])

    targets = asyncio.run(TabLocator(host, sleep=sleep).classify_tabs())

    assert [(t.window_id, t.provider_id) for t in targets] == [(popup.id, "claude")]
    assert targets[0].title == "Claude"


def test_list_targets_refreshes_stale_urls(host, sleep) -> None:
    tab = host.add_window(["https://chatgpt.com/"]).tabs[0].id
    host.navigate(tab, "https://chatgpt.com/c/abc")

    (target,) = asyncio.run(TabLocator(host, sleep=sleep).list_targets())

    assert target.url == "https://chatgpt.com/c/abc"
    assert sleep.calls == []
    assert target.to_dict() == {
        "windowId": target.window_id,
        "tabId": tab,
        "providerId": "chatgpt",
        "providerName": "ChatGPT",
        "title": "ChatGPT",
        "url": "https://chatgpt.com/c/abc",
    }


def test_location_retries_until_page_answers(host, sleep) -> None:
    tab = host.add_window(["https://grok.com/"]).tabs[0].id
    host.pages[tab].unreachable_for = 2
    host.navigate(tab, "https://grok.com/chat/42")

    url = asyncio.run(TabLocator(host, sleep=sleep).get_tab_location(tab))

    assert url == "https://grok.com/chat/42"
    assert sleep.calls == [0.5, 0.5]


def test_location_falls_back_to_host_url(host, sleep) -> None:
    tab = host.add_window(["https://claude.ai/"]).tabs[0].id
    host.pages[tab].silent = True
    locator = TabLocator(host, sleep=sleep)

    assert asyncio.run(locator.get_tab_location(tab)) is None
    assert sleep.calls == [0.5, 0.5]
    assert len(host.sent) == 3

    (target,) = asyncio.run(locator.list_targets())
    assert target.url == "https://claude.ai/"


def test_host_failure_means_no_targets(host, sleep) -> None:
    host.add_window(["https://claude.ai/"])
    host.fail_calls.add("get_all_windows")

    assert asyncio.run(TabLocator(host, sleep=sleep).list_targets()) == []


def test_links_by_provider_groups_distinct_urls() -> None:
    targets = [
        Target(1, 10, "chatgpt", "ChatGPT", "", "https://chatgpt.com/c/a"),
        Target(2, 11, "chatgpt", "ChatGPT", "", "https://chatgpt.com/c/a"),
        Target(3, 12, "chatgpt", "ChatGPT", "", "https://chatgpt.com/c/b"),
        Target(4, 13, "claude", "Claude", "", ""),
    ]
    assert links_by_provider(targets) == {"chatgpt": ["https://chatgpt.com/c/a", "https://chatgpt.com/c/b"]}
