"""
Graph over region edges and the bottleneck path search on it.

Each node of this graph is an edge of the region adjacency graph, i.e. a
segment between two region centroids. Two such segments sharing a region are
connected if they continue each other in a nearly straight line. A text line
is then the path from a leftmost to a rightmost region whose sharpest turn
is as gentle as possible.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Optional

from .config import BOTTLENECK_EPSILON, STRAIGHTNESS_TOLERANCE_DEG
from .priority_queue import IndexedPriorityQueue
from .regions import Edge, Region
from .settings import logger


class GraphInvariantError(RuntimeError):
    """Raised when the region or edge graph contradicts how it was built."""


class EdgeConnection(NamedTuple):
    edge_node_idx: int
    cost: float


@dataclass
class EdgeNode:
    edge: Edge
    connected_edges: List[EdgeConnection] = field(default_factory=list)
    path_cost: float = math.inf
    prev_edge_node_idx: Optional[int] = None
    leftmost_region_idx: Optional[int] = None


def build_edge_nodes(
    regions: List[Region],
    edges: Iterable[Edge],
    tolerance_deg: float = STRAIGHTNESS_TOLERANCE_DEG,
) -> List[EdgeNode]:
    """
    Create one node per edge and connect nodes that continue each other.

    Fills Region.connected_regions as a side effect. For every region and
    every pair of its edges, the vectors from the region's centroid to the
    two other centroids are compared. The pair is connected in both
    directions only if the vectors point in nearly opposite directions, with
    a cost of 1 - cos^2 of the angle between them.

    Args:
        regions: All regions; their connected_regions lists must be empty.
        edges: Canonical edges between regions, in any order.
        tolerance_deg: Largest allowed deviation from a straight continuation.

    Returns:
        Edge nodes, ordered by edge.
    """
    edge_nodes: List[EdgeNode] = []
    edge_to_index: Dict[Edge, int] = {}
    num_regions = len(regions)

    for edge in sorted(set(edges)):
        if not (0 <= edge.lesser < edge.greater < num_regions):
            raise GraphInvariantError(f"Edge {edge} does not join two distinct known regions")
        edge_to_index[edge] = len(edge_nodes)
        edge_nodes.append(EdgeNode(edge))
        regions[edge.lesser].connected_regions.append(edge.greater)
        regions[edge.greater].connected_regions.append(edge.lesser)

    cos_threshold = math.cos(math.radians(tolerance_deg))
    cos_sq_threshold = cos_threshold * cos_threshold
    num_connections = 0

    for region_idx, region in enumerate(regions):
        cx, cy = region.centroid
        neighbours = region.connected_regions
        for i, region1_idx in enumerate(neighbours):
            edge1_node_idx = edge_to_index[Edge.between(region_idx, region1_idx)]
            x1, y1 = regions[region1_idx].centroid
            vec1 = (x1 - cx, y1 - cy)
            sqlen1 = vec1[0] * vec1[0] + vec1[1] * vec1[1]

            for region2_idx in neighbours[i + 1:]:
                edge2_node_idx = edge_to_index[Edge.between(region_idx, region2_idx)]
                x2, y2 = regions[region2_idx].centroid
                vec2 = (x2 - cx, y2 - cy)
                sqlen2 = vec2[0] * vec2[0] + vec2[1] * vec2[1]
                if sqlen1 == 0 or sqlen2 == 0:
                    continue

                dot = vec1[0] * vec2[0] + vec1[1] * vec2[1]
                # Positive when the vectors point away from each other.
                cos_sq = (abs(dot) * -dot) / (sqlen1 * sqlen2)
                if cos_sq >= cos_sq_threshold:
                    cost = max(1.0 - cos_sq, 0.0)
                    edge_nodes[edge1_node_idx].connected_edges.append(EdgeConnection(edge2_node_idx, cost))
                    edge_nodes[edge2_node_idx].connected_edges.append(EdgeConnection(edge1_node_idx, cost))
                    num_connections += 1

    logger.debug(f"Built {len(edge_nodes)} edge nodes with {num_connections} connections")
    return edge_nodes


def find_bottleneck_paths(
    edge_nodes: List[EdgeNode],
    regions: List[Region],
    epsilon: float = BOTTLENECK_EPSILON,
) -> None:
    """
    Compute minimax path costs from the leftmost regions.

    Every edge touching a leftmost region starts with a cost of zero. A
    transition costing c moves a path of cost p to max(p, c) + epsilon * c,
    so the cost is dominated by the worst single turn, with the sum of turns
    deciding between otherwise equal paths. Fills path_cost,
    prev_edge_node_idx and leftmost_region_idx of every reachable node.
    """
    queue = IndexedPriorityQueue(lambda idx: edge_nodes[idx].path_cost)

    for edge_node_idx, edge_node in enumerate(edge_nodes):
        lesser, greater = edge_node.edge
        if regions[lesser].leftmost:
            edge_node.path_cost = 0.0
            edge_node.leftmost_region_idx = lesser
            queue.push(edge_node_idx)
        elif regions[greater].leftmost:
            edge_node.path_cost = 0.0
            edge_node.leftmost_region_idx = greater
            queue.push(edge_node_idx)

    logger.debug(f"Seeded bottleneck search with {len(queue)} leftmost edges")

    while queue:
        edge_node_idx = queue.pop()
        edge_node = edge_nodes[edge_node_idx]

        for connection in edge_node.connected_edges:
            edge_node2 = edge_nodes[connection.edge_node_idx]
            new_path_cost = max(edge_node.path_cost, connection.cost) + epsilon * connection.cost
            if new_path_cost < edge_node2.path_cost:
                edge_node2.path_cost = new_path_cost
                edge_node2.prev_edge_node_idx = edge_node_idx
                edge_node2.leftmost_region_idx = edge_node.leftmost_region_idx
                if connection.edge_node_idx in queue:
                    queue.reposition(connection.edge_node_idx)
                else:
                    queue.push(connection.edge_node_idx)


def extract_edge_node_paths(edge_nodes: List[EdgeNode], regions: List[Region]) -> List[List[int]]:
    """
    Pick the best path for every leftmost region that reaches the right side.

    First, for each rightmost region, the cheapest edge node touching it is
    chosen. Then those are grouped by the leftmost region their path starts
    from, keeping the cheapest of each group. Each winner is followed back
    through its predecessors to the leftmost region.

    Returns:
        Paths as lists of edge node indices, ordered from the leftmost edge
        to the rightmost one.
    """
    best_incoming: Dict[int, int] = {}  # rightmost region -> edge node
    for edge_node_idx, edge_node in enumerate(edge_nodes):
        lesser, greater = edge_node.edge
        if regions[lesser].rightmost:
            rightmost_region_idx = lesser
        elif regions[greater].rightmost:
            rightmost_region_idx = greater
        else:
            continue

        if edge_node.leftmost_region_idx is None:
            # No path reached this node.
            continue

        current = best_incoming.get(rightmost_region_idx)
        if current is None or edge_node.path_cost < edge_nodes[current].path_cost:
            best_incoming[rightmost_region_idx] = edge_node_idx

    best_outgoing: Dict[int, int] = {}  # leftmost region -> edge node
    for rightmost_region_idx in sorted(best_incoming):
        edge_node_idx = best_incoming[rightmost_region_idx]
        leftmost_region_idx = edge_nodes[edge_node_idx].leftmost_region_idx
        current = best_outgoing.get(leftmost_region_idx)
        if current is None or edge_nodes[edge_node_idx].path_cost < edge_nodes[current].path_cost:
            best_outgoing[leftmost_region_idx] = edge_node_idx

    paths: List[List[int]] = []
    for leftmost_region_idx in sorted(best_outgoing):
        path: List[int] = []
        edge_node_idx: Optional[int] = best_outgoing[leftmost_region_idx]
        while True:
            if edge_node_idx is None or len(path) > len(edge_nodes):
                raise GraphInvariantError(
                    f"Path ending at edge node {best_outgoing[leftmost_region_idx]} "
                    f"does not lead back to region {leftmost_region_idx}"
                )
            path.append(edge_node_idx)
            edge_node = edge_nodes[edge_node_idx]
            if edge_node.edge.touches(leftmost_region_idx):
                break
            edge_node_idx = edge_node.prev_edge_node_idx
        path.reverse()
        paths.append(path)

    logger.debug(f"Extracted {len(paths)} edge node paths")
    return paths
