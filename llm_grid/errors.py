"""Error types shared across the orchestration core."""

from __future__ import annotations


class LLMGridError(Exception):
    """Base error for llm-grid."""


class HostError(LLMGridError):
    """A host environment call failed (window/tab/display API)."""


class TargetUnreachable(HostError):
    """The Target Agent of a tab did not answer (page loading, closed, no agent)."""

    def __init__(self, tab_id: int, reason: str = "") -> None:
        self.tab_id = tab_id
        self.reason = reason
        super().__init__(f"Tab {tab_id} unreachable" + (f": {reason}" if reason else ""))


class ManagementError(LLMGridError):
    """Operation requested against a tab or window this system does not own."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
