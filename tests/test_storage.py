"""Tests for the key-value stores."""

import asyncio
import json

from llm_grid.session.kv_store import JsonFileStore, MemoryStore


def test_memory_store_copies_values() -> None:
    store = MemoryStore({"a": [1]})

    async def run():
        value = (await store.get(["a", "missing"]))
        value["a"].append(2)
        return value, await store.get(["a"])

    value, fresh = asyncio.run(run())

    assert value == {"a": [1, 2]}
    assert fresh == {"a": [1]}


def test_json_store_round_trip(tmp_path) -> None:
    path = tmp_path / "deep" / "state.json"
    store = JsonFileStore(path)

    async def run():
        assert await store.set({"managedWindowIds": [1, 2]})
        assert await store.set({"lastPrompt": "héllo"})
        return await store.get(["managedWindowIds", "lastPrompt", "settings"])

    assert asyncio.run(run()) == {"managedWindowIds": [1, 2], "lastPrompt": "héllo"}
    assert json.loads(path.read_text(encoding="utf-8"))["managedWindowIds"] == [1, 2]
    assert not path.with_suffix(".tmp").exists()


def test_json_store_treats_corrupt_file_as_empty(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text("[1, 2")

    assert asyncio.run(JsonFileStore(path).get(["conversations"])) == {}


def test_json_store_write_failure_returns_false(tmp_path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("")

    assert asyncio.run(JsonFileStore(blocker / "state.json").set({"a": 1})) is False


def test_json_store_concurrent_writes_are_not_lost(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "state.json")

    async def run():
        await asyncio.gather(*(store.set({f"key{i}": i}) for i in range(5)))
        return await store.get([f"key{i}" for i in range(5)])

    assert asyncio.run(run()) == {f"key{i}": i for i in range(5)}
