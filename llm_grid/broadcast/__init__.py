"""Target discovery and broadcast delivery."""

from llm_grid.broadcast.dispatcher import BroadcastDispatcher, BroadcastResult, TargetResult
from llm_grid.broadcast.locator import TabLocator, Target, links_by_provider

__all__ = [
    "BroadcastDispatcher",
    "BroadcastResult",
    "TabLocator",
    "Target",
    "TargetResult",
    "links_by_provider",
]
