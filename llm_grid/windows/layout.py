"""Grid tiling of the control surface and provider windows."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, TypeVar

from llm_grid.host.base import Display, Rect, WindowInfo

T = TypeVar("T")


@dataclass(frozen=True)
class GridDimensions:
    columns: int
    rows: int

    @property
    def capacity(self) -> int:
        return self.columns * self.rows


def grid_dimensions(count: int) -> GridDimensions:
    """Square-ish grid: ``ceil(sqrt(n))`` columns, as many rows as needed."""
    if count <= 0:
        return GridDimensions(0, 0)
    columns = math.ceil(math.sqrt(count))
    rows = math.ceil(count / columns)
    return GridDimensions(columns, rows)


def cells(area: Rect, dims: GridDimensions) -> list[Rect]:
    """Every cell of the grid, row-major."""
    if dims.columns <= 0 or dims.rows <= 0:
        return []
    width = area.width // dims.columns
    height = area.height // dims.rows
    return [
        Rect(area.left + col * width, area.top + row * height, width, height)
        for row in range(dims.rows)
        for col in range(dims.columns)
    ]


def tile(area: Rect, count: int) -> list[Rect]:
    """Rectangles for the first ``count`` slots; unplaceable slots are dropped."""
    dims = grid_dimensions(count)
    if dims.columns <= 0 or dims.rows <= 0:
        return []
    width = area.width // dims.columns
    height = area.height // dims.rows
    rects: list[Rect] = []
    for index in range(count):
        col = index % dims.columns
        row = index // dims.columns
        if row >= dims.rows:
            break
        rects.append(Rect(area.left + col * width, area.top + row * height, width, height))
    return rects


def assign(area: Rect, control: T, targets: Sequence[T]) -> list[tuple[T, Rect]]:
    """Pair slot 0 with the control surface and slots 1..N with ``targets`` in order."""
    slots = [control, *targets]
    return list(zip(slots, tile(area, len(slots))))


def select_display(displays: list[Display], reference: WindowInfo | None) -> Display | None:
    """Display containing the reference window's center, else the primary one."""
    if not displays:
        return None
    if reference is not None:
        x, y = reference.bounds.center
        for display in displays:
            if display.bounds.contains(x, y):
                return display
    return next((d for d in displays if d.is_primary), displays[0])


def select_work_area(displays: list[Display], reference: WindowInfo | None) -> Rect | None:
    display = select_display(displays, reference)
    return display.work_area if display else None
