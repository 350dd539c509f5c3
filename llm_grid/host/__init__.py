"""Host environment facade and the in-memory host."""

from llm_grid.host.base import Display, Host, Rect, TabInfo, WindowInfo, host_call
from llm_grid.host.memory import MemoryHost, MemoryPage

__all__ = ["Display", "Host", "MemoryHost", "MemoryPage", "Rect", "TabInfo", "WindowInfo", "host_call"]
