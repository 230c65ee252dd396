from __future__ import annotations

import unittest
from typing import Dict, List, Optional, Tuple

import numpy as np

from text_line_tracer.edge_graph import EdgeNode, GraphInvariantError
from text_line_tracer.polylines import (
    edge_sequences_to_polylines,
    extend_towards_vertical_bounds,
    filter_edgy_curves,
    filter_out_of_bounds_curves,
    find_connecting_region,
    is_curvature_consistent,
)
from text_line_tracer.regions import Edge, Region
from text_line_tracer.towards_line_tracer import TowardsLineTracer

LEFT = ((0.0, 0.0), (0.0, 100.0))
RIGHT = ((100.0, 0.0), (100.0, 100.0))


class ScriptedTracer:
    """Replays fixed points, chosen by which bound is being approached."""

    scripts: Dict[str, List[Tuple[int, int]]] = {}

    def __init__(self, content, blurred, thick_mask, line, origin) -> None:
        side = "left" if line[0][0] < 50 else "right"
        self.points = list(self.scripts[side])

    def trace(self, max_dist: float) -> Optional[Tuple[int, int]]:
        return self.points.pop(0) if self.points else None


class TestAssembly(unittest.TestCase):
    def setUp(self) -> None:
        self.regions = [Region((x, 5 + x // 10)) for x in (0, 10, 20, 30)]

    def test_find_connecting_region(self) -> None:
        self.assertEqual(find_connecting_region(Edge(0, 1), Edge(1, 2)), 1)
        self.assertIsNone(find_connecting_region(Edge(0, 1), Edge(2, 3)))

    def test_multi_edge_path(self) -> None:
        edge_nodes = [EdgeNode(Edge(0, 1)), EdgeNode(Edge(1, 2)), EdgeNode(Edge(2, 3))]
        polylines = edge_sequences_to_polylines([[0, 1, 2]], edge_nodes, self.regions)
        self.assertEqual(polylines, [[(0.0, 5.0), (10.0, 6.0), (20.0, 7.0), (30.0, 8.0)]])

        polylines = edge_sequences_to_polylines([[2, 1, 0]], edge_nodes, self.regions)
        self.assertEqual(polylines, [[(30.0, 8.0), (20.0, 7.0), (10.0, 6.0), (0.0, 5.0)]])

    def test_single_edge_path_starts_at_leftmost_region(self) -> None:
        edge_nodes = [EdgeNode(Edge(0, 1), leftmost_region_idx=1)]
        polylines = edge_sequences_to_polylines([[0]], edge_nodes, self.regions)
        self.assertEqual(polylines, [[(10.0, 6.0), (0.0, 5.0)]])

    def test_empty_paths_are_skipped(self) -> None:
        self.assertEqual(edge_sequences_to_polylines([[]], [], self.regions), [])

    def test_disconnected_consecutive_edges(self) -> None:
        edge_nodes = [EdgeNode(Edge(0, 1)), EdgeNode(Edge(2, 3))]
        with self.assertRaises(GraphInvariantError):
            edge_sequences_to_polylines([[0, 1]], edge_nodes, self.regions)


class TestExtension(unittest.TestCase):
    def setUp(self) -> None:
        ScriptedTracer.scripts = {"left": [(8, 5), (4, 5)], "right": [(95, 5)]}
        self.image = np.zeros((10, 100), dtype=np.uint8)

    def _extend(self, polyline):
        return extend_towards_vertical_bounds(
            polyline, (LEFT, RIGHT), self.image, self.image, self.image, tracer_factory=ScriptedTracer
        )

    def test_both_ends_grow(self) -> None:
        extended = self._extend([(20.0, 5.0), (80.0, 5.0)])
        self.assertEqual(extended, [(4.0, 5.0), (8.0, 5.0), (20.0, 5.0), (80.0, 5.0), (95.0, 5.0)])

    def test_reversed_polyline_grows_toward_nearer_bounds(self) -> None:
        extended = self._extend([(80.0, 5.0), (20.0, 5.0)])
        self.assertEqual(extended, [(95.0, 5.0), (80.0, 5.0), (20.0, 5.0), (8.0, 5.0), (4.0, 5.0)])

    def test_empty_polyline(self) -> None:
        self.assertEqual(self._extend([]), [])


class TestTowardsLineTracer(unittest.TestCase):
    def test_follows_line_until_content_ends(self) -> None:
        height, width = 40, 100
        content = np.zeros((height, width), dtype=bool)
        content[18:23, 10:91] = True
        blurred = np.tile((np.abs(np.arange(height) - 20) * 10).astype(np.uint8)[:, None], (1, width))
        thick_mask = np.zeros((height, width), dtype=bool)
        thick_mask[14:27, :] = True

        tracer = TowardsLineTracer(content, blurred, thick_mask, ((0.0, 0.0), (0.0, 40.0)), (50, 20))
        self.assertEqual(tracer.trace(30), (20, 20))
        self.assertEqual(tracer.trace(30), (10, 20))
        self.assertIsNone(tracer.trace(30))
        self.assertIsNone(tracer.trace(30))

    def test_walk_drifts_toward_darker_rows(self) -> None:
        height, width = 40, 100
        content = np.ones((height, width), dtype=bool)
        blurred = np.tile((np.abs(np.arange(height) - 25) * 10).astype(np.uint8)[:, None], (1, width))
        thick_mask = np.ones((height, width), dtype=bool)

        tracer = TowardsLineTracer(content, blurred, thick_mask, ((0.0, 0.0), (0.0, 40.0)), (50, 20))
        self.assertEqual(tracer.trace(30), (20, 25))

    def test_origin_on_the_line(self) -> None:
        image = np.zeros((10, 10), dtype=np.uint8)
        tracer = TowardsLineTracer(image, image, image, ((3.0, 0.0), (3.0, 10.0)), (3, 5))
        self.assertIsNone(tracer.trace(30))


class TestFilters(unittest.TestCase):
    def test_out_of_bounds_curves(self) -> None:
        inside = [(-10.0, 5.0), (50.0, 5.0)]
        outside = [(-10.0, 5.0), (50.0, 6.0), (150.0, 5.0)]
        kept = filter_out_of_bounds_curves([inside, outside, []], LEFT, RIGHT)
        self.assertEqual(kept, [inside])

    def test_short_polylines(self) -> None:
        self.assertFalse(is_curvature_consistent([]))
        self.assertFalse(is_curvature_consistent([(0.0, 0.0)]))
        self.assertTrue(is_curvature_consistent([(0.0, 0.0), (10.0, 50.0)]))

    def test_straight_and_gently_bent_curves(self) -> None:
        self.assertTrue(is_curvature_consistent([(0.0, 0.0), (10.0, 0.0), (20.0, 0.0), (30.0, 0.0)]))
        self.assertTrue(is_curvature_consistent([(0.0, 0.0), (100.0, 0.0), (200.0, 5.0)]))

    def test_only_positive_turns_reject(self) -> None:
        bends_down = [(0.0, 0.0), (10.0, 0.0), (20.0, 10.0)]
        bends_up = [(0.0, 0.0), (10.0, 0.0), (20.0, -10.0)]
        mixed = [(0.0, 0.0), (10.0, 0.0), (20.0, -10.0), (30.0, -10.0), (40.0, 0.0)]
        self.assertFalse(is_curvature_consistent(bends_down))
        self.assertTrue(is_curvature_consistent(bends_up))
        self.assertFalse(is_curvature_consistent(mixed))
        self.assertEqual(filter_edgy_curves([bends_down, bends_up, [(1.0, 1.0)]]), [bends_up])

    def test_repeated_points_are_not_turns(self) -> None:
        self.assertTrue(is_curvature_consistent([(0.0, 0.0), (10.0, 0.0), (10.0, 0.0), (20.0, 0.0)]))


if __name__ == "__main__":
    unittest.main()
