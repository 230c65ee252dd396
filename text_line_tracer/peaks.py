"""Detection of region seeds: dark local extrema of the blurred page."""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np
from skimage.morphology import local_minima

from .config import PEAK_NEIGHBOURHOOD, SEED_DILATION
from .preprocessing import seed_fill
from .settings import logger


def suppress_tied_peaks(candidates: np.ndarray, neighbourhood: Tuple[int, int] = PEAK_NEIGHBOURHOOD) -> np.ndarray:
    """
    Keep one peak per neighbourhood window among equally dark candidates.

    Candidates are visited in raster order. A candidate is kept unless it
    lies within the neighbourhood window centered on a peak kept earlier.
    A long flat plateau thus yields peaks about one window apart.
    """
    brick_w, brick_h = neighbourhood
    half_w, half_h = brick_w // 2, brick_h // 2
    height, width = candidates.shape
    covered = np.zeros((height, width), dtype=bool)
    peaks = np.zeros((height, width), dtype=bool)

    ys, xs = np.nonzero(candidates)
    for y, x in zip(ys.tolist(), xs.tolist()):
        if covered[y, x]:
            continue
        peaks[y, x] = True
        covered[max(0, y - half_h):y + half_h + 1, max(0, x - half_w):x + half_w + 1] = True
    return peaks


def find_peaks(blurred: np.ndarray, neighbourhood: Tuple[int, int] = PEAK_NEIGHBOURHOOD) -> np.ndarray:
    """
    Find the darkest points of the blurred page.

    A pixel is a candidate if it is the darkest pixel within the
    neighbourhood window (pixels outside the image count as white) and it
    belongs to a regional minimum, i.e. a plateau whose every neighbour is
    strictly lighter. The second condition drops plateaus that merely touch
    a darker slope lying outside the window. Ties between candidates are
    then broken by suppress_tied_peaks().

    Args:
        blurred: 2D uint8 image.
        neighbourhood: Window size (width, height).

    Returns:
        A boolean array of peak pixels.
    """
    brick_w, brick_h = neighbourhood
    darkest = cv2.erode(
        blurred,
        np.ones((brick_h, brick_w), np.uint8),
        borderType=cv2.BORDER_CONSTANT,
        borderValue=255,
    )
    candidates = blurred == darkest
    minima = local_minima(blurred, connectivity=2, allow_borders=True)
    return suppress_tied_peaks(candidates & minima.astype(bool), neighbourhood)


def find_region_seeds(
    blurred: np.ndarray,
    thick_mask: np.ndarray,
    dilation: Tuple[int, int] = SEED_DILATION,
) -> np.ndarray:
    """
    Produce region seed blobs, one per probable text line fragment.

    Peak blobs not touching the thick mask are dropped (this mostly happens
    on pictures). The rest are dilated, so peaks of different
    plateaus that ended up close to each other merge into one blob.

    Returns:
        A boolean array of seed pixels.
    """
    peaks = find_peaks(blurred)
    peaks = seed_fill(thick_mask, peaks)
    brick_w, brick_h = dilation
    seeds = cv2.dilate(peaks.astype(np.uint8), np.ones((brick_h, brick_w), np.uint8)).astype(bool)
    logger.debug(f"Found {int(peaks.sum())} peak pixels, {int(seeds.sum())} seed pixels after dilation")
    return seeds
