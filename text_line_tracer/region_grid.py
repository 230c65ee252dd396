"""
Region growing over a packed per-pixel grid.

Every grid cell is a 32-bit word laid out (MSB to LSB) as
[finalized: 1 bit][label: 23 bits][gray level: 8 bits]. Label 0 means the
cell belongs to no region; label N refers to region index N - 1. The three
fields are only ever touched through the masked accessors below, so that
updating one never corrupts the others.
"""

from __future__ import annotations

import heapq
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import VERT_DIST_SCALE
from .settings import logger

GRAY_LEVEL_MASK = 0x000000FF
LABEL_MASK = 0x7FFFFF00
FINALIZED_MASK = 0x80000000
WORD_MASK = 0xFFFFFFFF

LABEL_SHIFT = 8
FINALIZED_SHIFT = 31

INVALID_LABEL = 0
MAX_LABEL = LABEL_MASK >> LABEL_SHIFT

# Work on python ints and uint32 arrays alike.
_CLEAR_GRAY_LEVEL = WORD_MASK ^ GRAY_LEVEL_MASK
_CLEAR_LABEL = WORD_MASK ^ LABEL_MASK
_CLEAR_FINALIZED = WORD_MASK ^ FINALIZED_MASK


def make_cell(gray_level: int, label: int = INVALID_LABEL, finalized: int = 0) -> int:
    return (finalized << FINALIZED_SHIFT) | (label << LABEL_SHIFT) | gray_level


def cell_gray_level(cell):
    return cell & GRAY_LEVEL_MASK


def cell_label(cell):
    return (cell & LABEL_MASK) >> LABEL_SHIFT


def cell_finalized(cell):
    return (cell & FINALIZED_MASK) >> FINALIZED_SHIFT


def with_gray_level(cell, gray_level):
    return (cell & _CLEAR_GRAY_LEVEL) | gray_level


def with_label(cell, label):
    return (cell & _CLEAR_LABEL) | (label << LABEL_SHIFT)


def with_finalized(cell, finalized):
    return (cell & _CLEAR_FINALIZED) | (finalized << FINALIZED_SHIFT)


class RegionGrid:
    """
    Label grid used to grow regions from seed centroids.

    The grid carries a one-cell border of finalized, unlabeled cells so that
    4-neighbour lookups never need bounds checks. Cells outside the thick
    mask start finalized, which keeps the priority flood inside the mask.
    """

    def __init__(self, gray: np.ndarray, thick_mask: np.ndarray) -> None:
        if gray.shape != thick_mask.shape:
            raise ValueError(f"Gray image {gray.shape} and mask {thick_mask.shape} differ in size")
        self.height, self.width = gray.shape
        self.stride = self.width + 2
        cells = np.full((self.height + 2, self.width + 2), make_cell(0, INVALID_LABEL, 1), dtype=np.uint32)
        interior = gray.astype(np.uint32)
        interior = with_finalized(interior, (~thick_mask.astype(bool)).astype(np.uint32))
        cells[1:-1, 1:-1] = interior
        self.cells = cells

    @property
    def interior(self) -> np.ndarray:
        return self.cells[1:-1, 1:-1]

    def labels(self) -> np.ndarray:
        """Return an (height, width) int64 array of cell labels."""
        return cell_label(self.interior).astype(np.int64)

    def finalized(self) -> np.ndarray:
        return cell_finalized(self.interior).astype(bool)

    def seed(self, centroids: Sequence[Tuple[int, int]]) -> None:
        """Label and finalize the cell under each region centroid."""
        if len(centroids) > MAX_LABEL:
            raise ValueError(f"Too many regions for the label field: {len(centroids)}")
        for region_idx, (x, y) in enumerate(centroids):
            cell = int(self.cells[y + 1, x + 1])
            cell = with_finalized(with_label(cell, region_idx + 1), 1)
            self.cells[y + 1, x + 1] = cell

    def grow_within_mask(self, centroids: Sequence[Tuple[int, int]]) -> int:
        """
        Flood labels outward from the seed centroids, darkest pixels first.

        Cells are processed in ascending gray level, ties going to the cell
        queued earliest. A popped cell hands its label to every 4-connected
        neighbour that is not finalized yet, finalizing it in the process.

        Args:
            centroids: Region centroids, already labeled by seed().

        Returns:
            The number of cells that were popped from the queue.
        """
        flat: List[int] = self.cells.ravel().tolist()
        stride = self.stride
        neighbour_offsets = (-stride, -1, 1, stride)

        queue: List[Tuple[int, int, int]] = []
        order = 0
        for x, y in centroids:
            offset = (y + 1) * stride + x + 1
            heapq.heappush(queue, (flat[offset] & GRAY_LEVEL_MASK, order, offset))
            order += 1

        iterations = 0
        while queue:
            _, _, offset = heapq.heappop(queue)
            iterations += 1
            label_bits = flat[offset] & LABEL_MASK

            for delta in neighbour_offsets:
                nbh_offset = offset + delta
                nbh = flat[nbh_offset]
                if not nbh & FINALIZED_MASK:
                    flat[nbh_offset] = (nbh & _CLEAR_LABEL) | label_bits | FINALIZED_MASK
                    heapq.heappush(queue, (nbh & GRAY_LEVEL_MASK, order, nbh_offset))
                    order += 1

        self.cells = np.array(flat, dtype=np.uint32).reshape(self.cells.shape)
        logger.debug(f"Priority flood processed {iterations} cells")
        return iterations

    def grow_by_distance(self, vert_scale: int = VERT_DIST_SCALE) -> None:
        """
        Give every unlabeled cell the label of its nearest labeled cell.

        Distances are Euclidean with vertical offsets multiplied by
        vert_scale, so that labels spread sideways more readily than up and
        down. Labeled cells keep their labels, finalized flags are untouched.
        """
        labels = self.labels()
        grown = distance_driven_labels(labels, vert_scale)
        if grown is None:
            logger.debug("No labeled cells, distance driven growth skipped")
            return
        self.cells[1:-1, 1:-1] = with_label(self.interior, grown.astype(np.uint32))


def _column_nearest(labels: np.ndarray, vert_scale: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-column pass of the distance transform.

    Returns the scaled squared distance from each cell to the closest labeled
    cell in its column (-1 where the column has none) along with that cell's
    label. Equidistant cells above win over cells below.
    """
    height, width = labels.shape
    valid = labels != INVALID_LABEL
    rows = np.arange(height)[:, None]

    above = np.maximum.accumulate(np.where(valid, rows, -1), axis=0)
    below = np.minimum.accumulate(np.where(valid, rows, height)[::-1], axis=0)[::-1]

    unreachable = height + 1
    dist_above = np.where(above >= 0, rows - above, unreachable)
    dist_below = np.where(below < height, below - rows, unreachable)

    nearest_row = np.where(dist_below < dist_above, below, above)
    vert_dist = np.minimum(dist_above, dist_below)
    has_label = vert_dist < unreachable

    cols = np.broadcast_to(np.arange(width), labels.shape)
    nearest_labels = np.where(has_label, labels[np.clip(nearest_row, 0, height - 1), cols], INVALID_LABEL)
    scaled = vert_dist.astype(np.int64) * vert_scale
    sqdists = np.where(has_label, scaled * scaled, -1)
    return sqdists, nearest_labels


def nearest_columns(sqdists: Sequence[int]) -> Optional[List[int]]:
    """
    Row pass of the Meijster distance transform.

    For each x finds the column c minimising (x - c)^2 + sqdists[c], where
    negative entries stand for columns with no labeled cell at all. The lower
    envelope of those parabolas is kept on a stack; ties go to the left.

    Returns:
        The winning column for every x, or None if every column is empty.
    """
    width = len(sqdists)
    origins: List[int] = []
    starts: List[int] = []

    for x in range(width):
        g = sqdists[x]
        if g < 0:
            continue
        while origins:
            s, t = origins[-1], starts[-1]
            if (t - s) * (t - s) + sqdists[s] > (t - x) * (t - x) + g:
                origins.pop()
                starts.pop()
            else:
                break
        if not origins:
            origins.append(x)
            starts.append(0)
            continue
        s = origins[-1]
        take_over = (x * x - s * s + g - sqdists[s]) // (2 * (x - s)) + 1
        if take_over < width:
            origins.append(x)
            starts.append(take_over)

    if not origins:
        return None

    result = [0] * width
    top = len(origins) - 1
    for x in range(width - 1, -1, -1):
        result[x] = origins[top]
        if x == starts[top]:
            top -= 1
    return result


def distance_driven_labels(labels: np.ndarray, vert_scale: int = VERT_DIST_SCALE) -> Optional[np.ndarray]:
    """
    Extend labels to every cell by weighted nearest-neighbour assignment.

    Separable linear-time exact distance transform after Meijster, Roerdink
    and Hesselink (2000): a vertical pass per column followed by a lower
    envelope merge per row.

    Args:
        labels: (height, width) array, 0 marking unlabeled cells.
        vert_scale: Multiplier applied to vertical distances.

    Returns:
        A new label array with no zero entries, or None if the input holds
        no label at all.
    """
    if labels.size == 0 or not np.any(labels != INVALID_LABEL):
        return None

    sqdists, column_labels = _column_nearest(labels, vert_scale)
    grown = np.empty_like(labels)
    for y in range(labels.shape[0]):
        # A labeled column is finite in every row, so winners is never None here.
        winners = nearest_columns(sqdists[y].tolist())
        grown[y] = column_labels[y][np.asarray(winners)]
    return grown
