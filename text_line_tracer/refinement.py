"""Refinement of traced text lines against the page image."""

from __future__ import annotations

from typing import List, Tuple

import cv2
import numpy as np

from .config import REFINE_SMOOTHING, TARGET_DPI
from .geometry import Polyline
from .settings import logger


class TextLineRefiner:
    """
    Snaps polylines onto the dark cores of their text lines.

    On every iteration each interior vertex may move one pixel up or down,
    toward the darker side of a lightly blurred copy of the page, and is
    then pulled toward the midpoint of its neighbours. Endpoints stay put.
    """

    def __init__(self, image: np.ndarray, dpi: Tuple[float, float] = (TARGET_DPI, TARGET_DPI)) -> None:
        sigma = 2.0 * dpi[1] / TARGET_DPI
        self._gray = cv2.GaussianBlur(image, (0, 0), sigmaX=sigma, sigmaY=sigma).astype(np.int32)
        self._height, self._width = image.shape

    def refine(self, polylines: List[Polyline], iterations: int) -> List[Polyline]:
        """
        Refine every polyline.

        Raises:
            ValueError: If a polyline holds non-finite coordinates.

        Returns:
            New polylines, one per input polyline, in the same order.
        """
        refined = [self._refine_one(polyline, iterations) for polyline in polylines]
        logger.debug(f"Refined {len(refined)} polylines over {iterations} iterations")
        return refined

    def _refine_one(self, polyline: Polyline, iterations: int) -> Polyline:
        points = np.array(polyline, dtype=np.float64).reshape(-1, 2)
        if not np.all(np.isfinite(points)):
            raise ValueError(f"Polyline with non-finite coordinates: {polyline}")
        if len(points) < 3:
            return [(float(x), float(y)) for x, y in points]

        xs = np.clip(np.rint(points[1:-1, 0]).astype(int), 0, self._width - 1)
        ys = points[:, 1].copy()
        for _ in range(iterations):
            inner = ys[1:-1]
            iy = np.clip(np.rint(inner).astype(int), 0, self._height - 1)
            up = self._gray[np.clip(iy - 1, 0, self._height - 1), xs]
            here = self._gray[iy, xs]
            down = self._gray[np.clip(iy + 1, 0, self._height - 1), xs]

            step = np.zeros_like(inner)
            step[(up < here) & (up <= down)] = -1.0
            step[(down < here) & (down < up)] = 1.0

            moved = inner + step
            midpoints = (ys[:-2] + ys[2:]) / 2.0
            moved += REFINE_SMOOTHING * (midpoints - moved)
            moved = np.clip(moved, 0, self._height - 1)

            converged = np.max(np.abs(moved - inner)) < 0.01
            ys[1:-1] = moved
            if converged:
                break

        return [(float(x), float(y)) for x, y in zip(points[:, 0], ys)]
