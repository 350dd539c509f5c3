"""Key-value state store with whole-snapshot get/set semantics.

Layout of the JSON document::

    ~/.llm-grid/state.json
      {
        "managedWindowIds": [3, 5],
        "settings": {...},
        "conversations": [...],
        "activeConversationId": "conv_...",
        "lastPrompt": "..."
      }
"""

from __future__ import annotations

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable

from loguru import logger

_STATE_PATH = Path.home() / ".llm-grid" / "state.json"


class KeyValueStore(ABC):
    """Async get/set facade over durable state.

    Read failures come back as an empty mapping and write failures as
    ``False``; the store never raises into the orchestration core.
    """

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        ...

    @abstractmethod
    async def set(self, values: dict[str, Any]) -> bool:
        ...


class MemoryStore(KeyValueStore):
    """Dictionary-backed store (values are deep-copied in and out)."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = copy.deepcopy(initial or {})
        self.writes = 0

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        return {key: copy.deepcopy(self.data[key]) for key in keys if key in self.data}

    async def set(self, values: dict[str, Any]) -> bool:
        self.data.update(copy.deepcopy(values))
        self.writes += 1
        return True


class JsonFileStore(KeyValueStore):
    """Single JSON document on disk, rewritten on every ``set``.

    The orchestrator runs on one event loop, so a full read-modify-write per
    call is enough; concurrent logical writers get last-writer-wins. File
    access runs in a worker thread so the event loop never blocks on disk.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _STATE_PATH
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get(self, keys: Iterable[str]) -> dict[str, Any]:
        data = await asyncio.to_thread(self._read)
        return {key: data[key] for key in keys if key in data}

    async def set(self, values: dict[str, Any]) -> bool:
        async with self._write_lock:
            return await asyncio.to_thread(self._write, values)

    def _write(self, values: dict[str, Any]) -> bool:
        data = self._read()
        data.update(values)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as exc:
            logger.warning(f"[store] Failed to write {self._path}: {exc}")
            return False
        return True

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
        except Exception as exc:
            logger.warning(f"[store] Unreadable state file {self._path}: {exc}")
            return {}
