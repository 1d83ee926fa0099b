from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)


class PointerResolver(ABC):
    """Resolve a pointer position to the nearest text offset."""

    @abstractmethod
    def resolve(self, x: float, y: float) -> int | None:
        """Return the nearest offset, or None when the pointer is too far away."""
        raise NotImplementedError


class CallablePointerResolver(PointerResolver):
    """Adapt an arbitrary callable into the PointerResolver interface."""

    def __init__(self, func: Callable[[float, float], int | None]) -> None:
        self._func = func

    def resolve(self, x: float, y: float) -> int | None:
        return self._func(x, y)


class GridPointerResolver(PointerResolver):
    """Estimate caret positions from fixed font metrics.

    The text is laid out on a monospace grid starting at ``(origin_x, origin_y)``;
    lines break on ``\\n`` and wrap after ``columns`` characters when set.
    Each caret position is measured at its top-left corner.
    """

    def __init__(
        self,
        text: str,
        *,
        char_width: float = 8.0,
        line_height: float = 20.0,
        columns: int | None = None,
        origin_x: float = 0.0,
        origin_y: float = 0.0,
        margin_x: float = 50.0,
        margin_y: float = 20.0,
        tolerance: float = 100.0,
    ) -> None:
        if char_width <= 0 or line_height <= 0:
            raise ValueError("char_width and line_height must be positive.")
        self._char_width = char_width
        self._line_height = line_height
        self._origin_x = origin_x
        self._origin_y = origin_y
        self._margin_x = margin_x
        self._margin_y = margin_y
        self._tolerance = tolerance
        self._cells = _layout(text, columns)
        widest = max(col for col, _ in self._cells)
        if columns:
            widest = max(widest, columns)
        rows = self._cells[-1][1] + 1
        self._width = widest * char_width
        self._height = rows * line_height

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        """Document rectangle as ``(left, top, right, bottom)``."""
        return (
            self._origin_x,
            self._origin_y,
            self._origin_x + self._width,
            self._origin_y + self._height,
        )

    def caret_point(self, offset: int) -> Tuple[float, float]:
        col, row = self._cells[offset]
        return (
            self._origin_x + col * self._char_width,
            self._origin_y + row * self._line_height,
        )

    def resolve(self, x: float, y: float) -> int | None:
        left, top, right, bottom = self.bounds
        if (
            x < left - self._margin_x
            or x > right + self._margin_x
            or y < top - self._margin_y
            or y > bottom + self._margin_y
        ):
            return None
        nearest = 0
        min_distance = math.inf
        for offset in range(len(self._cells)):
            cx, cy = self.caret_point(offset)
            distance = math.hypot(x - cx, y - cy)
            if distance < min_distance:
                min_distance = distance
                nearest = offset
        if min_distance >= self._tolerance:
            logger.debug("Pointer (%s, %s) beyond tolerance of every caret", x, y)
            return None
        return nearest


def _layout(text: str, columns: int | None) -> List[Tuple[int, int]]:
    """Grid cell ``(col, row)`` of every caret position ``0..len(text)``."""
    cells: List[Tuple[int, int]] = []
    col = row = 0
    for char in text:
        cells.append((col, row))
        if char == "\n":
            row += 1
            col = 0
            continue
        col += 1
        if columns and col >= columns:
            row += 1
            col = 0
    cells.append((col, row))
    return cells
