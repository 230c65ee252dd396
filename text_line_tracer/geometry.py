"""Geometry helpers for bound lines and polylines."""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

Point = Tuple[float, float]
Line = Tuple[Point, Point]
Polyline = List[Point]


def intersect_horizontal(line: Line, y: float) -> Optional[float]:
    """
    Intersect an (infinitely extended) line with the scanline at height y.

    Args:
        line: Line given by two points.
        y: Scanline height.

    Returns:
        The x coordinate of the intersection, or None if the line is
        horizontal (parallel to the scanline).
    """
    (x1, y1), (x2, y2) = line
    dy = y2 - y1
    if dy == 0:
        return None
    return x1 + (y - y1) * (x2 - x1) / dy


def normal_vector(line: Line) -> Point:
    """Return the normal of a line, rotated clockwise from its direction."""
    (x1, y1), (x2, y2) = line
    return (y2 - y1, -(x2 - x1))


def is_inside_bounds(point: Point, left_bound: Line, right_bound: Line) -> bool:
    """
    Test whether a point lies between two vertical-ish bound lines.

    Each bound defines a half-plane through its first point, with the normal
    oriented toward the page interior (rightward for the left bound, leftward
    for the right bound). Points exactly on a bound count as inside.
    """
    left_normal = normal_vector(left_bound)
    if left_normal[0] < 0:
        left_normal = (-left_normal[0], -left_normal[1])
    left_vec = (point[0] - left_bound[0][0], point[1] - left_bound[0][1])
    if left_normal[0] * left_vec[0] + left_normal[1] * left_vec[1] < 0:
        return False

    right_normal = normal_vector(right_bound)
    if right_normal[0] > 0:
        right_normal = (-right_normal[0], -right_normal[1])
    right_vec = (point[0] - right_bound[0][0], point[1] - right_bound[0][1])
    if right_normal[0] * right_vec[0] + right_normal[1] * right_vec[1] < 0:
        return False

    return True


def project_to_line(line: Line, point: Point) -> Point:
    """Orthogonally project a point onto the infinite extension of a line."""
    (x1, y1), (x2, y2) = line
    dx, dy = x2 - x1, y2 - y1
    sqlen = dx * dx + dy * dy
    if sqlen == 0:
        return (x1, y1)
    t = ((point[0] - x1) * dx + (point[1] - y1) * dy) / sqlen
    return (x1 + t * dx, y1 + t * dy)


def projection_distance(line: Line, point: Point) -> float:
    """Distance from a point to its projection onto a line."""
    px, py = project_to_line(line, point)
    return math.hypot(point[0] - px, point[1] - py)


def scale_point(point: Point, sx: float, sy: float) -> Point:
    return (point[0] * sx, point[1] * sy)


def scale_line(line: Line, sx: float, sy: float) -> Line:
    return (scale_point(line[0], sx, sy), scale_point(line[1], sx, sy))


def scale_polyline(polyline: Polyline, sx: float, sy: float) -> Polyline:
    return [scale_point(point, sx, sy) for point in polyline]


def scale_rect(rect: Tuple[int, int, int, int], sx: float, sy: float) -> Tuple[int, int, int, int]:
    """
    Scale an (x, y, width, height) rectangle, keeping it pixel aligned.

    The scaled rectangle covers every pixel touched by the original one.
    """
    x, y, width, height = rect
    left = int(math.floor(x * sx))
    top = int(math.floor(y * sy))
    right = int(math.ceil((x + width) * sx))
    bottom = int(math.ceil((y + height) * sy))
    return (left, top, max(0, right - left), max(0, bottom - top))
