"""Sink collecting the geometry a distortion model is built from."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from .geometry import Line, Point, Polyline


class DistortionModelBuilder:
    """
    Collects vertical content bounds and horizontal text line curves.

    Any object offering set_vertical_bounds() and add_horizontal_curve()
    can stand in for this class.
    """

    def __init__(self) -> None:
        self.vertical_bounds: Optional[Tuple[Line, Line]] = None
        self.horizontal_curves: List[Polyline] = []

    def set_vertical_bounds(self, left: Line, right: Line) -> None:
        self.vertical_bounds = (left, right)

    def add_horizontal_curve(self, points: Sequence[Point]) -> None:
        self.horizontal_curves.append([(float(x), float(y)) for x, y in points])
