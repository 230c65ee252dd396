"""Detection of the left and right boundaries of page content."""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .geometry import Line
from .settings import logger


def _fit_bound(rows: np.ndarray, xs: np.ndarray, height: int, outward: int) -> Line:
    """
    Fit a near-vertical line through boundary samples and push it outward.

    Args:
        rows: Row of each sample.
        xs: Column of each sample.
        height: Image height; the returned segment spans [0, height].
        outward: -1 for a left bound, +1 for a right bound.
    """
    if rows.size < 2 or np.ptp(rows) == 0:
        x = float(xs.min() if outward < 0 else xs.max())
        return ((x, 0.0), (x, float(height)))

    points = np.column_stack([xs, rows]).astype(np.float32)
    vx, vy, x0, y0 = cv2.fitLine(points, cv2.DIST_HUBER, 0, 0.01, 0.01).ravel()
    if abs(vy) < 1e-6:
        x = float(xs.min() if outward < 0 else xs.max())
        return ((x, 0.0), (x, float(height)))

    slope = float(vx / vy)
    fitted = x0 + (rows - y0) * slope
    residuals = xs - fitted
    shift = float(residuals.min() if outward < 0 else residuals.max())
    top_x = float(x0 + (0 - y0) * slope + shift)
    bottom_x = float(x0 + (height - y0) * slope + shift)
    return ((top_x, 0.0), (bottom_x, float(height)))


def detect_vert_content_bounds(binary: np.ndarray) -> Tuple[Line, Line]:
    """
    Find lines bounding the page content from the left and from the right.

    The leftmost and rightmost ink pixel of every row are collected, a line
    is fitted through each set and shifted so that no sample lies outside.

    Args:
        binary: Boolean ink mask, preferably sanitized.

    Returns:
        A (left, right) pair of lines spanning the full image height. Without
        any ink these are the image's own left and right edges.
    """
    height, width = binary.shape
    rows = np.flatnonzero(binary.any(axis=1))
    if rows.size == 0:
        logger.info("No content found, using image edges as vertical bounds")
        return ((0.0, 0.0), (0.0, float(height))), ((float(width), 0.0), (float(width), float(height)))

    ink_rows = binary[rows]
    left_xs = ink_rows.argmax(axis=1)
    right_xs = width - ink_rows[:, ::-1].argmax(axis=1)

    left = _fit_bound(rows, left_xs, height, outward=-1)
    right = _fit_bound(rows, right_xs, height, outward=1)
    logger.debug(f"Vertical bounds: left={left}, right={right}")
    return left, right
