from __future__ import annotations

import math
import unittest
from typing import List, Sequence, Tuple

from text_line_tracer.edge_graph import (
    EdgeConnection,
    EdgeNode,
    GraphInvariantError,
    build_edge_nodes,
    extract_edge_node_paths,
    find_bottleneck_paths,
)
from text_line_tracer.polylines import edge_sequences_to_polylines
from text_line_tracer.regions import Edge, Region


def make_regions(count: int, leftmost: Sequence[int] = (), rightmost: Sequence[int] = ()) -> List[Region]:
    return [Region((idx, 0), leftmost=idx in leftmost, rightmost=idx in rightmost) for idx in range(count)]


def connect(edge_nodes: List[EdgeNode], idx1: int, idx2: int, cost: float) -> None:
    edge_nodes[idx1].connected_edges.append(EdgeConnection(idx2, cost))
    edge_nodes[idx2].connected_edges.append(EdgeConnection(idx1, cost))


def solve(regions: List[Region], edge_nodes: List[EdgeNode]) -> List[List[int]]:
    find_bottleneck_paths(edge_nodes, regions)
    return extract_edge_node_paths(edge_nodes, regions)


class TestBuildEdgeNodes(unittest.TestCase):
    def test_straight_chain_connects_at_zero_cost(self) -> None:
        regions = [Region((x, 0)) for x in (0, 10, 20, 30)]
        edge_nodes = build_edge_nodes(regions, [Edge(2, 3), Edge(0, 1), Edge(1, 2)])

        self.assertEqual([node.edge for node in edge_nodes], [Edge(0, 1), Edge(1, 2), Edge(2, 3)])
        self.assertEqual(edge_nodes[0].connected_edges, [EdgeConnection(1, 0.0)])
        self.assertEqual(sorted(edge_nodes[1].connected_edges), [EdgeConnection(0, 0.0), EdgeConnection(2, 0.0)])
        self.assertEqual(regions[1].connected_regions, [0, 2])

    def test_slight_bend_has_small_cost(self) -> None:
        regions = [Region((0, 0)), Region((10, 1)), Region((20, 0))]
        edge_nodes = build_edge_nodes(regions, [Edge(0, 1), Edge(1, 2)])
        (connection,) = edge_nodes[0].connected_edges
        self.assertAlmostEqual(connection.cost, 1.0 - 99.0 * 99.0 / (101.0 * 101.0))

    def test_sharp_turns_are_not_connected(self) -> None:
        regions = [Region((0, 0)), Region((10, 0)), Region((10, 10))]
        edge_nodes = build_edge_nodes(regions, [Edge(0, 1), Edge(1, 2)])
        self.assertTrue(all(not node.connected_edges for node in edge_nodes))

    def test_same_direction_is_not_connected(self) -> None:
        regions = [Region((0, 0)), Region((10, 0)), Region((20, 0))]
        # Both neighbours of region 0 lie to its right.
        edge_nodes = build_edge_nodes(regions, [Edge(0, 1), Edge(0, 2)])
        self.assertTrue(all(not node.connected_edges for node in edge_nodes))

    def test_unknown_region_is_an_invariant_violation(self) -> None:
        with self.assertRaises(GraphInvariantError):
            build_edge_nodes(make_regions(2), [Edge(0, 5)])


class TestBottleneckPaths(unittest.TestCase):
    def test_worst_turn_beats_sum_of_turns(self) -> None:
        regions = make_regions(6, leftmost=[0], rightmost=[5])
        edge_nodes = [EdgeNode(edge) for edge in (Edge(0, 1), Edge(1, 5), Edge(0, 2), Edge(2, 3), Edge(3, 4), Edge(4, 5))]
        # One turn of 0.3 versus three turns of 0.2 each.
        connect(edge_nodes, 0, 1, 0.3)
        connect(edge_nodes, 2, 3, 0.2)
        connect(edge_nodes, 3, 4, 0.2)
        connect(edge_nodes, 4, 5, 0.2)

        self.assertEqual(solve(regions, edge_nodes), [[2, 3, 4, 5]])
        self.assertAlmostEqual(edge_nodes[5].path_cost, 0.2006)
        self.assertAlmostEqual(edge_nodes[1].path_cost, 0.3003)
        self.assertEqual(edge_nodes[5].leftmost_region_idx, 0)

    def test_epsilon_prefers_fewer_turns_at_equal_bottleneck(self) -> None:
        regions = make_regions(5, leftmost=[0], rightmost=[3])
        edge_nodes = [EdgeNode(edge) for edge in (Edge(0, 1), Edge(1, 2), Edge(2, 3), Edge(0, 4), Edge(3, 4))]
        connect(edge_nodes, 0, 1, 0.2)
        connect(edge_nodes, 1, 2, 0.2)
        connect(edge_nodes, 3, 4, 0.2)

        self.assertEqual(solve(regions, edge_nodes), [[3, 4]])

    def test_unreached_nodes_keep_infinite_cost(self) -> None:
        regions = make_regions(4, leftmost=[0], rightmost=[3])
        edge_nodes = [EdgeNode(Edge(0, 1)), EdgeNode(Edge(2, 3))]
        self.assertEqual(solve(regions, edge_nodes), [])
        self.assertTrue(math.isinf(edge_nodes[1].path_cost))
        self.assertIsNone(edge_nodes[1].leftmost_region_idx)


class TestTerminalReduction(unittest.TestCase):
    def _graph(self, cost_from_first_left: float) -> Tuple[List[Region], List[EdgeNode]]:
        # Leftmost regions 0 and 1, rightmost regions 2 and 3, inner 4 and 5.
        regions = make_regions(6, leftmost=[0, 1], rightmost=[2, 3])
        edge_nodes = [EdgeNode(edge) for edge in (Edge(0, 4), Edge(2, 4), Edge(1, 5), Edge(2, 5), Edge(3, 5))]
        connect(edge_nodes, 0, 1, cost_from_first_left)
        connect(edge_nodes, 2, 3, 0.5)
        connect(edge_nodes, 2, 4, 0.3)
        return regions, edge_nodes

    def test_one_path_per_leftmost_region(self) -> None:
        regions, edge_nodes = self._graph(0.1)
        self.assertEqual(solve(regions, edge_nodes), [[0, 1], [2, 4]])

    def test_rightmost_region_keeps_only_its_best_incoming_path(self) -> None:
        regions, edge_nodes = self._graph(0.6)
        # Region 2 is now best reached from region 1, which prefers region 3.
        self.assertEqual(solve(regions, edge_nodes), [[2, 4]])

    def test_broken_predecessor_chain_is_an_invariant_violation(self) -> None:
        regions = make_regions(4, leftmost=[0], rightmost=[3])
        edge_nodes = [EdgeNode(Edge(2, 3), path_cost=0.1, leftmost_region_idx=0)]
        with self.assertRaises(GraphInvariantError):
            extract_edge_node_paths(edge_nodes, regions)


class TestOrderInvariance(unittest.TestCase):
    CENTROIDS = [(0, 0), (10, 1), (20, 0), (30, 1), (20, 10), (0, 30), (15, 31), (30, 30)]
    EDGES = [(0, 1), (1, 2), (2, 3), (1, 4), (3, 4), (5, 6), (6, 7)]
    LEFTMOST = {0, 5}
    RIGHTMOST = {3, 7}

    def _trace(self, permutation: Sequence[int]) -> List[Tuple[Tuple[float, float], ...]]:
        regions: List[Region] = [Region((0, 0))] * len(self.CENTROIDS)
        for old_idx, centroid in enumerate(self.CENTROIDS):
            regions[permutation[old_idx]] = Region(
                centroid, leftmost=old_idx in self.LEFTMOST, rightmost=old_idx in self.RIGHTMOST
            )
        edges = [Edge.between(permutation[a], permutation[b]) for a, b in self.EDGES]
        edge_nodes = build_edge_nodes(regions, edges)
        paths = solve(regions, edge_nodes)
        return sorted(tuple(polyline) for polyline in edge_sequences_to_polylines(paths, edge_nodes, regions))

    def test_region_numbering_does_not_matter(self) -> None:
        expected = self._trace(list(range(8)))
        self.assertEqual(
            expected,
            [
                ((0.0, 0.0), (10.0, 1.0), (20.0, 0.0), (30.0, 1.0)),
                ((0.0, 30.0), (15.0, 31.0), (30.0, 30.0)),
            ],
        )
        self.assertEqual(self._trace([3, 7, 1, 0, 5, 2, 6, 4]), expected)
        self.assertEqual(self._trace([7, 6, 5, 4, 3, 2, 1, 0]), expected)


if __name__ == "__main__":
    unittest.main()
