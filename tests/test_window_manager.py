"""Tests for window lifecycle, grid layout and managed-tab operations."""

import asyncio

import pytest

from llm_grid.errors import ManagementError
from llm_grid.host.base import Rect
from llm_grid.windows.manager import WindowManager, normalize_urls
from llm_grid.windows.registry import MANAGED_KEY, WindowRegistry


def _manager(host, store, sleep) -> WindowManager:
    return WindowManager(host, WindowRegistry(store), sleep=sleep)


def test_auto_grid_tiles_control_and_providers(host, store, sleep) -> None:
    control = host.add_window([host.control_url])
    manager = _manager(host, store, sleep)

    asyncio.run(manager.open_auto_grid(["gemini", "chatgpt", "claude"], control.id))

    assert host.created == [
        "https://chatgpt.com/",
        "https://claude.ai/",
        "https://gemini.google.com/app",
    ]
    assert host.windows[control.id].bounds == Rect(0, 0, 960, 520)
    bounds = [w.bounds for w in host.windows.values() if w.id != control.id]
    assert bounds == [Rect(960, 0, 960, 520), Rect(0, 520, 960, 520), Rect(960, 520, 960, 520)]
    assert sorted(store.data[MANAGED_KEY]) == sorted(host.windows)
    assert sleep.calls == [0.12, 0.12, 0.12]


def test_grid_creates_control_surface_when_missing(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)

    asyncio.run(manager.open_grid(["https://claude.ai/chat/1"]))

    assert host.created == [host.control_url, "https://claude.ai/chat/1"]
    assert [w.bounds for w in host.windows.values()] == [Rect(0, 0, 960, 1040), Rect(960, 0, 960, 1040)]


def test_grid_restores_fullscreen_control_window(host, store, sleep) -> None:
    control = host.add_window([host.control_url], state="fullscreen")

    asyncio.run(_manager(host, store, sleep).open_grid(["https://grok.com/"], control.id))

    assert host.windows[control.id].state == "normal"
    assert host.windows[control.id].focused


def test_conversation_grid_filters_urls(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)

    asyncio.run(manager.open_conversation_grid(["", "  ", 42, host.control_url + "#x"]))
    assert host.created == []

    asyncio.run(manager.open_conversation_grid([" https://claude.ai/chat/1 ", "https://claude.ai/chat/1"]))
    assert host.created == [host.control_url, "https://claude.ai/chat/1"]


def test_normalize_urls_rejects_non_lists() -> None:
    assert normalize_urls("https://claude.ai/") == []
    assert normalize_urls(None) == []


def test_ensure_control_window_reuses_existing(host, store, sleep) -> None:
    control = host.add_window([host.control_url], state="maximized")
    manager = _manager(host, store, sleep)

    window = asyncio.run(manager.ensure_control_window(Rect(0, 0, 420, 600)))

    assert window.id == control.id
    assert host.created == []
    assert host.windows[control.id].bounds == Rect(0, 0, 420, 600)
    assert host.windows[control.id].state == "normal"
    assert store.data[MANAGED_KEY] == [control.id]


def test_close_all_spares_unmanaged_and_control(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)
    asyncio.run(manager.open_auto_grid(["chatgpt", "claude"]))
    stray = host.add_window(["https://grok.com/"])
    browser = host.add_window(["https://chatgpt.com/"], type="normal")

    closed = asyncio.run(manager.close_provider_windows())

    assert closed == 2
    remaining = set(host.windows)
    assert stray.id in remaining and browser.id in remaining
    assert any(manager.has_control_tab(w) for w in host.windows.values())


def test_new_chat_close_includes_unmanaged_popups(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)
    stray = host.add_window(["https://grok.com/"])
    browser = host.add_window(["https://chatgpt.com/"], type="normal")

    closed = asyncio.run(manager.close_provider_windows(include_unmanaged=True))

    assert closed == 1
    assert stray.id not in host.windows
    assert browser.id in host.windows


def test_relayout_orders_control_then_providers(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)
    asyncio.run(manager.open_auto_grid(["chatgpt", "claude", "grok"]))
    for window in host.windows.values():
        window.bounds = Rect(5, 5, 100, 100)

    asyncio.run(manager.relayout_managed_windows())

    by_id = sorted(host.windows.values(), key=lambda w: w.id)
    assert [w.bounds for w in by_id] == [
        Rect(0, 0, 960, 520),
        Rect(960, 0, 960, 520),
        Rect(0, 520, 960, 520),
        Rect(960, 520, 960, 520),
    ]


def test_managed_tab_checks(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)
    asyncio.run(manager.open_auto_grid(["claude"]))
    managed_tab = next(t.id for w in host.windows.values() for t in w.tabs if "claude" in t.url)
    foreign_tab = host.add_window(["https://grok.com/"]).tabs[0].id

    with pytest.raises(ManagementError, match="Missing tabId"):
        asyncio.run(manager.close_tab(None))
    with pytest.raises(ManagementError, match="Tab not found"):
        asyncio.run(manager.close_tab(9999))
    with pytest.raises(ManagementError, match="Tab not managed"):
        asyncio.run(manager.focus_tab(foreign_tab))

    asyncio.run(manager.focus_tab(managed_tab))
    window_id = next(w.id for w in host.windows.values() if any(t.id == managed_tab for t in w.tabs))
    assert host.windows[window_id].focused

    asyncio.run(manager.close_tab(managed_tab))
    assert window_id not in host.windows


def test_detect_status_reports_open_providers(host, store, sleep) -> None:
    window = host.add_window(["https://chatgpt.com/c/1", "https://chat.openai.com/", "https://claude.ai/"])
    host.add_window(["https://grok.com/"], type="normal")

    status = asyncio.run(_manager(host, store, sleep).detect_status())

    assert status["llmWindows"] == [{"id": window.id, "providers": ["chatgpt", "claude"]}]
    assert status["providerStatus"] == {
        "chatgpt": True,
        "claude": True,
        "gemini": False,
        "grok": False,
        "perplexity": False,
    }
    assert [(t["tabId"], t["providerId"]) for t in status["targets"]] == [(100, "chatgpt"), (101, "chatgpt"), (102, "claude")]


def test_host_failures_do_not_escape(host, store, sleep) -> None:
    host.fail_calls.update({"create_window", "get_displays"})
    manager = _manager(host, store, sleep)

    asyncio.run(manager.open_auto_grid(["claude"]))

    assert host.windows == {}
    assert MANAGED_KEY not in store.data


def test_grid_ignores_stale_control_window_id(host, store, sleep) -> None:
    manager = _manager(host, store, sleep)

    async def run():
        control = await manager.ensure_control_window()
        await host.close_window_externally(control.id)
        await manager.registry.remove(control.id)
        await manager.open_auto_grid(["claude"], control.id)
        return control.id

    dead_id = asyncio.run(run())

    assert dead_id not in store.data[MANAGED_KEY]
    assert set(store.data[MANAGED_KEY]) == set(host.windows)
    assert host.created == [host.control_url, host.control_url, "https://claude.ai/"]
    assert any(manager.has_control_tab(w) for w in host.windows.values())


def test_grid_reuses_live_control_when_given_id_is_stale(host, store, sleep) -> None:
    control = host.add_window([host.control_url])
    manager = _manager(host, store, sleep)

    asyncio.run(manager.open_auto_grid(["grok"], 999))

    assert host.created == ["https://grok.com/"]
    assert store.data[MANAGED_KEY] == [control.id, control.id + 1]
