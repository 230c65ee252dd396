"""Turning edge paths into polylines, extending them and weeding out bad ones."""

from __future__ import annotations

import math
from collections import deque
from typing import Callable, Deque, List, Optional, Tuple

import numpy as np

from .config import CURVATURE_TOLERANCE_DEG, MAX_EXTENSION_STEP
from .edge_graph import EdgeNode, GraphInvariantError
from .geometry import Line, Point, Polyline, is_inside_bounds, projection_distance
from .regions import Edge, Region
from .settings import logger
from .towards_line_tracer import TowardsLineTracer

TracerFactory = Callable[[np.ndarray, np.ndarray, np.ndarray, Line, Tuple[int, int]], TowardsLineTracer]


def find_connecting_region(edge1: Edge, edge2: Edge) -> Optional[int]:
    """Return the region shared by two edges, or None if there is none."""
    for idx1 in edge1:
        for idx2 in edge2:
            if idx1 == idx2:
                return idx1
    return None


def edge_sequences_to_polylines(
    edge_node_paths: List[List[int]],
    edge_nodes: List[EdgeNode],
    regions: List[Region],
) -> List[Polyline]:
    """
    Convert paths of edge nodes into polylines through region centroids.

    Consecutive edges of a path share exactly one region. The ordered
    sequence of regions is recovered from those shared regions plus the
    outer regions of the first and last edge.

    Args:
        edge_node_paths: Paths ordered from the leftmost edge node.
        edge_nodes: All edge nodes.
        regions: All regions.

    Returns:
        One polyline per non-empty path, starting at the leftmost region.

    Raises:
        GraphInvariantError: If two consecutive edges share no region.
    """
    polylines: List[Polyline] = []
    for path in edge_node_paths:
        if not path:
            continue

        if len(path) == 1:
            edge_node = edge_nodes[path[0]]
            first = edge_node.leftmost_region_idx
            if first is None or not edge_node.edge.touches(first):
                first = edge_node.edge.lesser
            region_indexes = [first, edge_node.edge.other(first)]
        else:
            connecting: List[int] = []
            for node1_idx, node2_idx in zip(path, path[1:]):
                edge1 = edge_nodes[node1_idx].edge
                edge2 = edge_nodes[node2_idx].edge
                region_idx = find_connecting_region(edge1, edge2)
                if region_idx is None:
                    raise GraphInvariantError(f"Consecutive path edges {edge1} and {edge2} share no region")
                connecting.append(region_idx)

            first_edge = edge_nodes[path[0]].edge
            last_edge = edge_nodes[path[-1]].edge
            region_indexes = [first_edge.other(connecting[0])] + connecting + [last_edge.other(connecting[-1])]

        polylines.append([(float(regions[idx].centroid[0]), float(regions[idx].centroid[1])) for idx in region_indexes])
    return polylines


def extend_towards_vertical_bounds(
    polyline: Polyline,
    vert_bounds: Tuple[Line, Line],
    content: np.ndarray,
    blurred: np.ndarray,
    thick_mask: np.ndarray,
    max_dist: float = MAX_EXTENSION_STEP,
    tracer_factory: TracerFactory = TowardsLineTracer,
) -> Polyline:
    """
    Grow both ends of a polyline toward the vertical bounds.

    The head grows toward whichever bound is nearer to it (jointly with the
    tail growing toward the other one). Each end keeps growing as long as
    the tracer produces new points.

    Returns:
        A new, possibly longer polyline.
    """
    if not polyline:
        return []

    bound1, bound2 = vert_bounds
    head, tail = polyline[0], polyline[-1]
    if (projection_distance(bound1, head) + projection_distance(bound2, tail)
            > projection_distance(bound1, tail) + projection_distance(bound2, head)):
        bound1, bound2 = bound2, bound1

    growable: Deque[Point] = deque(polyline)

    tracer = tracer_factory(content, blurred, thick_mask, bound1, _to_pixel(head))
    point = tracer.trace(max_dist)
    while point is not None:
        growable.appendleft((float(point[0]), float(point[1])))
        point = tracer.trace(max_dist)

    tracer = tracer_factory(content, blurred, thick_mask, bound2, _to_pixel(tail))
    point = tracer.trace(max_dist)
    while point is not None:
        growable.append((float(point[0]), float(point[1])))
        point = tracer.trace(max_dist)

    return list(growable)


def _to_pixel(point: Point) -> Tuple[int, int]:
    return (int(round(point[0])), int(round(point[1])))


def is_curvature_consistent(polyline: Polyline, tolerance_deg: float = CURVATURE_TOLERANCE_DEG) -> bool:
    """
    Check a polyline for significant turns at its interior vertices.

    A turn is significant if the next segment deviates from the previous
    one by at least tolerance_deg. Its sign tells convexity from concavity.

    Polylines of one point or fewer are rejected, two-point ones accepted.
    Longer ones are rejected as soon as a significant positive turn (one
    bending toward +y when walking in +x) is present.
    """
    num_nodes = len(polyline)
    if num_nodes <= 1:
        return False
    if num_nodes == 2:
        return True

    # Threshold angle between a segment and the normal to the previous one.
    cos_threshold = math.cos(math.radians(90.0 - tolerance_deg))
    cos_sq_threshold = cos_threshold * cos_threshold
    significant_positive = False
    significant_negative = False

    prev_normal = (-(polyline[1][1] - polyline[0][1]), polyline[1][0] - polyline[0][0])
    prev_normal_sqlen = prev_normal[0] * prev_normal[0] + prev_normal[1] * prev_normal[1]

    for i in range(1, num_nodes - 1):
        next_segment = (polyline[i + 1][0] - polyline[i][0], polyline[i + 1][1] - polyline[i][1])
        next_segment_sqlen = next_segment[0] * next_segment[0] + next_segment[1] * next_segment[1]

        cos_sq = 0.0
        sqlen_mult = prev_normal_sqlen * next_segment_sqlen
        if sqlen_mult > np.finfo(np.float32).eps:
            dot = prev_normal[0] * next_segment[0] + prev_normal[1] * next_segment[1]
            cos_sq = abs(dot) * dot / sqlen_mult

        if abs(cos_sq) >= cos_sq_threshold:
            if cos_sq > 0:
                significant_positive = True
            else:
                significant_negative = True

        prev_normal = (-next_segment[1], next_segment[0])
        prev_normal_sqlen = next_segment_sqlen

    logger.debug(f"Curvature flags: positive={significant_positive}, negative={significant_negative}")
    # Only the positive flag takes part in the decision; negative turns alone never reject.
    return not (significant_positive and significant_positive)


def filter_out_of_bounds_curves(polylines: List[Polyline], left_bound: Line, right_bound: Line) -> List[Polyline]:
    """Drop polylines with both endpoints outside the area between the bounds."""
    kept = [
        polyline
        for polyline in polylines
        if polyline and (
            is_inside_bounds(polyline[0], left_bound, right_bound)
            or is_inside_bounds(polyline[-1], left_bound, right_bound)
        )
    ]
    if len(kept) != len(polylines):
        logger.debug(f"Dropped {len(polylines) - len(kept)} out of bounds curves")
    return kept


def filter_edgy_curves(polylines: List[Polyline]) -> List[Polyline]:
    """Drop polylines failing is_curvature_consistent()."""
    kept = [polyline for polyline in polylines if is_curvature_consistent(polyline)]
    if len(kept) != len(polylines):
        logger.debug(f"Dropped {len(polylines) - len(kept)} edgy curves")
    return kept
