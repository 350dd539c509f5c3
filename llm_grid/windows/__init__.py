"""Managed windows: registry, grid layout and lifecycle."""

from llm_grid.windows.layout import GridDimensions, assign, cells, grid_dimensions, select_work_area, tile
from llm_grid.windows.manager import WindowManager, normalize_urls
from llm_grid.windows.registry import WindowRegistry

__all__ = [
    "GridDimensions",
    "WindowManager",
    "WindowRegistry",
    "assign",
    "cells",
    "grid_dimensions",
    "normalize_urls",
    "select_work_area",
    "tile",
]
