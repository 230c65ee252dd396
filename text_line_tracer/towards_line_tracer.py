"""Tracing a text line from one of its ends toward a bound line."""

from __future__ import annotations

import math
from typing import Optional, Tuple

import numpy as np

from .config import CONTENT_SEARCH_RADIUS
from .geometry import Line, project_to_line, projection_distance


class TowardsLineTracer:
    """
    Follows dark, masked pixels from an origin toward a line.

    The walk direction is fixed: from the origin straight toward its
    projection on the line. At every pixel step the walk may also shift by
    one pixel sideways, picking the darkest of the three candidates inside
    the thick mask. The reported positions are the furthest ones with ink of
    the binarized content nearby, so that lines are not extended into the
    blurred halo past their last character.
    """

    def __init__(
        self,
        content: np.ndarray,
        blurred: np.ndarray,
        thick_mask: np.ndarray,
        line: Line,
        origin: Tuple[int, int],
    ) -> None:
        self._content = content
        self._blurred = blurred
        self._thick_mask = thick_mask
        self._line = line
        self._height, self._width = blurred.shape
        self._pos = (float(origin[0]), float(origin[1]))

        target = project_to_line(line, self._pos)
        dx, dy = target[0] - self._pos[0], target[1] - self._pos[1]
        dist = math.hypot(dx, dy)
        self._finished = dist < 1.0
        if self._finished:
            self._direction = (0.0, 0.0)
        else:
            self._direction = (dx / dist, dy / dist)
        self._normal = (-self._direction[1], self._direction[0])
        self._remaining = dist

    def trace(self, max_dist: float) -> Optional[Tuple[int, int]]:
        """
        Advance up to max_dist pixels toward the line.

        Returns:
            The next point of the line, or None if no progress is possible.
        """
        if self._finished:
            return None

        steps = int(min(max_dist, self._remaining))
        x, y = self._pos
        reached: Optional[Tuple[float, float]] = None

        for _ in range(steps):
            step = self._best_step(x, y)
            if step is None:
                break
            x, y = step
            if self._has_content_near(x, y):
                reached = (x, y)

        if reached is None:
            self._finished = True
            return None

        self._pos = reached
        self._remaining = projection_distance(self._line, reached)
        if self._remaining < 1.0:
            self._finished = True
        return (int(round(reached[0])), int(round(reached[1])))

    def _best_step(self, x: float, y: float) -> Optional[Tuple[float, float]]:
        best: Optional[Tuple[int, float, float]] = None
        for offset in (0, -1, 1):
            cx = x + self._direction[0] + offset * self._normal[0]
            cy = y + self._direction[1] + offset * self._normal[1]
            ix, iy = int(round(cx)), int(round(cy))
            if not (0 <= ix < self._width and 0 <= iy < self._height):
                continue
            if not self._thick_mask[iy, ix]:
                continue
            gray = int(self._blurred[iy, ix])
            if best is None or gray < best[0]:
                best = (gray, cx, cy)
        if best is None:
            return None
        return best[1], best[2]

    def _has_content_near(self, x: float, y: float) -> bool:
        ix, iy = int(round(x)), int(round(y))
        top = max(0, iy - CONTENT_SEARCH_RADIUS)
        bottom = min(self._height, iy + CONTENT_SEARCH_RADIUS + 1)
        return bool(self._content[top:bottom, ix].any())
