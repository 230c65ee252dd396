"""Regions grown from seeds and the adjacency between them."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, NamedTuple, Set, Tuple

import cv2
import numpy as np

from .geometry import Line, intersect_horizontal
from .region_grid import INVALID_LABEL
from .settings import logger


@dataclass
class Region:
    """
    A seed blob and what is known about its neighbourhood.

    The centroid is computed from the seed pixels only, not from the full
    grown region.
    """

    centroid: Tuple[int, int]
    connected_regions: List[int] = field(default_factory=list)
    leftmost: bool = False
    rightmost: bool = False


class Edge(NamedTuple):
    """Unordered pair of adjacent regions, stored as (lesser, greater)."""

    lesser: int
    greater: int

    @classmethod
    def between(cls, region_idx1: int, region_idx2: int) -> "Edge":
        if region_idx1 < region_idx2:
            return cls(region_idx1, region_idx2)
        return cls(region_idx2, region_idx1)

    def other(self, region_idx: int) -> int:
        return self.greater if region_idx == self.lesser else self.lesser

    def touches(self, region_idx: int) -> bool:
        return region_idx == self.lesser or region_idx == self.greater


def centroid_of(xs: np.ndarray, ys: np.ndarray) -> Tuple[int, int]:
    """Arithmetic mean of pixel coordinates, rounded half up."""
    count = int(xs.size)
    if count == 0:
        return (0, 0)
    half = count >> 1
    return ((int(xs.sum()) + half) // count, (int(ys.sum()) + half) // count)


def init_regions(region_seeds: np.ndarray) -> List[Region]:
    """
    Create one region per 8-connected seed blob.

    Regions are numbered in the order OpenCV labels the blobs.
    """
    num_labels, labels = cv2.connectedComponents(region_seeds.astype(np.uint8), connectivity=8)
    regions: List[Region] = []
    if num_labels <= 1:
        return regions

    ys, xs = np.nonzero(labels)
    blob_labels = labels[ys, xs]
    order = np.argsort(blob_labels, kind="stable")
    ys, xs, blob_labels = ys[order], xs[order], blob_labels[order]
    boundaries = np.searchsorted(blob_labels, np.arange(1, num_labels + 1))

    for label in range(1, num_labels):
        start, end = boundaries[label - 1], boundaries[label]
        regions.append(Region(centroid_of(xs[start:end], ys[start:end])))

    logger.debug(f"Initialized {len(regions)} regions")
    return regions


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def mark_edge_regions(regions: List[Region], labels: np.ndarray, left_bound: Line, right_bound: Line) -> None:
    """
    Walk along the vertical bounds and mark the regions they pass through.

    For every scanline the pixel where it crosses a bound (clamped to the
    image) decides which region is leftmost or rightmost. A region may end
    up both, or neither.
    """
    height, width = labels.shape
    for y in range(height):
        left_x = 0
        x = intersect_horizontal(left_bound, y)
        if x is not None:
            left_x = min(max(_round_half_up(x), 0), width - 1)
        label = int(labels[y, left_x])
        if label != INVALID_LABEL:
            regions[label - 1].leftmost = True

        right_x = width - 1
        x = intersect_horizontal(right_bound, y)
        if x is not None:
            right_x = min(max(_round_half_up(x), 0), width - 1)
        label = int(labels[y, right_x])
        if label != INVALID_LABEL:
            regions[label - 1].rightmost = True


def _pair_edges(labels1: np.ndarray, labels2: np.ndarray, mask: np.ndarray) -> Set[Edge]:
    differ = mask & (labels1 != labels2) & (labels1 != INVALID_LABEL) & (labels2 != INVALID_LABEL)
    first = labels1[differ] - 1
    second = labels2[differ] - 1
    lesser = np.minimum(first, second).tolist()
    greater = np.maximum(first, second).tolist()
    return {Edge(a, b) for a, b in zip(lesser, greater)}


def find_region_edges(labels: np.ndarray, thick_mask: np.ndarray) -> Set[Edge]:
    """
    Collect pairs of regions meeting inside the thick mask.

    Both horizontally and vertically adjacent pixel pairs are examined. Only
    pairs with both pixels in the mask and two distinct valid labels count.

    Returns:
        A set of canonical edges.
    """
    mask = thick_mask.astype(bool)
    edges = _pair_edges(labels[:, 1:], labels[:, :-1], mask[:, 1:] & mask[:, :-1])
    edges |= _pair_edges(labels[1:, :], labels[:-1, :], mask[1:, :] & mask[:-1, :])
    logger.debug(f"Found {len(edges)} region edges")
    return edges
