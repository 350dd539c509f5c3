"""Broadcast a prompt to every open target of the selected providers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from loguru import logger

from llm_grid.broadcast.locator import TabLocator
from llm_grid.errors import HostError
from llm_grid.host.base import Host

MODE_PASTE = "paste"
MODE_SUBMIT = "submit"
MODE_SEND = "send"


@dataclass(frozen=True)
class TargetResult:
    """Delivery outcome for one target."""

    target_id: int
    ok: bool
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"targetId": self.target_id, "ok": self.ok}
        if self.error:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class BroadcastResult:
    """Aggregate of one broadcast.

    ``ok`` is True when at least one target accepted the message; callers
    inspect ``results`` for per-target detail. An empty target set is
    reported as ``ok=False`` with ``reason="no_targets"``.
    """

    ok_count: int
    total: int
    results: list[TargetResult] = field(default_factory=list)
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.ok_count > 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "ok": self.ok,
            "okCount": self.ok_count,
            "total": self.total,
            "results": [r.to_dict() for r in self.results],
        }
        if self.reason:
            data["reason"] = self.reason
        return data


class BroadcastDispatcher:
    """Fan-out delivery with paste-then-submit semantics."""

    def __init__(
        self,
        host: Host,
        locator: TabLocator,
        settle_delay_s: float = 0.6,
        delivery_timeout_s: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.host = host
        self.locator = locator
        self.settle_delay_s = settle_delay_s
        self.delivery_timeout_s = delivery_timeout_s
        self._sleep = sleep

    async def broadcast(self, prompt: str, provider_ids: list[str], mode: str = MODE_PASTE) -> BroadcastResult:
        wanted = set(provider_ids or [])
        targets = [
            t.tab_id
            for t in await self.locator.classify_tabs(popup_only=False)
            if t.provider_id in wanted
        ]
        if not targets:
            logger.info(f"[broadcast] No open targets for providers {sorted(wanted)}")
            return BroadcastResult(ok_count=0, total=0, reason="no_targets")

        logger.info(f"[broadcast] mode={mode} targets={len(targets)} prompt_len={len(prompt)}")
        if mode == MODE_SUBMIT:
            pasted = await self.send_to_targets(
                targets, {"type": "broadcast", "prompt": prompt, "mode": MODE_PASTE}
            )
            logger.debug(f"[broadcast] paste phase {pasted.ok_count}/{pasted.total}")
            await self._sleep(self.settle_delay_s)
            return await self.send_to_targets(
                targets, {"type": "broadcast", "prompt": prompt, "mode": MODE_SUBMIT}
            )

        return await self.send_to_targets(
            targets, {"type": "broadcast", "prompt": prompt, "mode": mode}
        )

    async def send_to_targets(self, tab_ids: list[int], message: dict[str, Any]) -> BroadcastResult:
        """Deliver one message to all tabs concurrently and join the results."""
        results = await asyncio.gather(*(self._send_one(tab_id, message) for tab_id in tab_ids))
        ok_count = sum(1 for r in results if r.ok)
        return BroadcastResult(ok_count=ok_count, total=len(tab_ids), results=list(results))

    async def _send_one(self, tab_id: int, message: dict[str, Any]) -> TargetResult:
        try:
            response = await asyncio.wait_for(
                self.host.send_to_tab(tab_id, message),
                timeout=self.delivery_timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(f"[broadcast] tab {tab_id} timed out")
            return TargetResult(target_id=tab_id, ok=False, error="Timed out")
        except HostError as exc:
            logger.debug(f"[broadcast] tab {tab_id} unreachable: {exc}")
            return TargetResult(target_id=tab_id, ok=False, error=str(exc))
        except Exception as exc:
            logger.warning(f"[broadcast] tab {tab_id} failed: {exc}")
            return TargetResult(target_id=tab_id, ok=False, error=str(exc))

        if not isinstance(response, dict):
            return TargetResult(target_id=tab_id, ok=False, error="No response")
        ok = bool(response.get("ok"))
        return TargetResult(target_id=tab_id, ok=ok, error="" if ok else str(response.get("error") or ""))
