"""Page preprocessing: downscaling, binarization, cleanup and line blurring."""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .config import (
    ACCEPTED_DPI_RANGE,
    BINARIZATION_WINDOW,
    BLUR_H_SIGMA,
    BLUR_V_SIGMA,
    DESPECKLE_BRICKS,
    TARGET_DPI,
    THICK_MASK_DELTA,
    THICK_MASK_WINDOW,
    WOLF_K,
    WOLF_LOWER_BOUND,
    WOLF_UPPER_BOUND,
)
from .settings import logger


def downscale(image: np.ndarray, dpi: Tuple[float, float]) -> Tuple[np.ndarray, float, float]:
    """
    Bring a grayscale page to roughly TARGET_DPI.

    Images whose horizontal and vertical resolution both lie within
    ACCEPTED_DPI_RANGE are returned as they are. Otherwise each axis is
    scaled by TARGET_DPI / dpi, keeping at least one pixel.

    Args:
        image: 2D uint8 grayscale image.
        dpi: (horizontal, vertical) resolution of the image.

    Returns:
        A tuple of (scaled_image, x_factor, y_factor) where the factors map
        input coordinates to scaled ones.
    """
    dpi_x, dpi_y = dpi
    if dpi_x <= 0 or dpi_y <= 0:
        raise ValueError(f"Invalid DPI: {dpi}")

    height, width = image.shape
    low, high = ACCEPTED_DPI_RANGE
    if low <= dpi_x <= high and low <= dpi_y <= high:
        return image.copy(), 1.0, 1.0

    new_width = max(1, int(width * TARGET_DPI // dpi_x))
    new_height = max(1, int(height * TARGET_DPI // dpi_y))
    scaled = cv2.resize(image, (new_width, new_height), interpolation=cv2.INTER_AREA)
    logger.debug(f"Downscaled {width}x{height} @ {dpi} DPI to {new_width}x{new_height}")
    return scaled, new_width / width, new_height / height


def stretch_gray_range(image: np.ndarray) -> np.ndarray:
    """Linearly map the darkest pixel to 0 and the lightest to 255."""
    low = int(image.min())
    high = int(image.max())
    if high <= low:
        return image.copy()
    stretched = (image.astype(np.float32) - low) * (255.0 / (high - low))
    return np.clip(np.rint(stretched), 0, 255).astype(np.uint8)


def binarize_wolf(
    image: np.ndarray,
    window: Tuple[int, int] = BINARIZATION_WINDOW,
    k: float = WOLF_K,
    lower_bound: int = WOLF_LOWER_BOUND,
    upper_bound: int = WOLF_UPPER_BOUND,
) -> np.ndarray:
    """
    Binarize an image using Wolf and Jolion's adaptive thresholding.

    The local threshold is m - k * (1 - s / R) * (m - M), where m and s are
    the mean and standard deviation over the window, M is the darkest gray
    level of the whole image and R the largest local standard deviation.

    Args:
        image: 2D uint8 grayscale image.
        window: Window size (width, height).
        k: Sensitivity parameter.
        lower_bound: Pixels darker than this are always ink.
        upper_bound: Pixels lighter than this are never ink.

    Returns:
        A boolean array, True for ink.
    """
    src = image.astype(np.float64)
    mean = cv2.boxFilter(src, -1, window, normalize=True, borderType=cv2.BORDER_REPLICATE)
    sq_mean = cv2.boxFilter(src * src, -1, window, normalize=True, borderType=cv2.BORDER_REPLICATE)
    deviation = np.sqrt(np.maximum(sq_mean - mean * mean, 0.0))

    min_gray = float(src.min())
    max_deviation = max(float(deviation.max()), 1e-6)
    threshold = mean - k * (1.0 - deviation / max_deviation) * (mean - min_gray)

    ink = src < threshold
    ink[src < lower_bound] = True
    ink[src > upper_bound] = False
    return ink


def seed_fill(seed: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Keep the 8-connected components of mask that intersect seed.

    Args:
        seed: Boolean array of seed pixels.
        mask: Boolean array whose components are kept or dropped.

    Returns:
        A boolean array holding the surviving components of mask.
    """
    num_labels, labels = cv2.connectedComponents(mask.astype(np.uint8), connectivity=8)
    if num_labels <= 1:
        return np.zeros(mask.shape, dtype=bool)
    keep = np.zeros(num_labels, dtype=bool)
    keep[np.unique(labels[seed.astype(bool) & mask.astype(bool)])] = True
    keep[0] = False
    return keep[labels]


def sanitize_binary_image(binary: np.ndarray, content_rect: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Remove clutter that would confuse vertical bounds detection.

    1. Drops connected components touching the image border.
    2. Drops speckles: components surviving neither a 2x3 nor a 3x2 opening.
    3. Clears everything outside content_rect.

    Args:
        binary: Boolean ink mask.
        content_rect: (x, y, width, height) of the page content.

    Returns:
        A new, cleaned boolean ink mask.
    """
    height, width = binary.shape
    border = np.zeros_like(binary, dtype=bool)
    border[0, :] = border[-1, :] = True
    border[:, 0] = border[:, -1] = True
    cleaned = binary & ~seed_fill(border, binary)

    cleaned_u8 = cleaned.astype(np.uint8)
    content_seeds = np.zeros_like(cleaned)
    for brick_w, brick_h in DESPECKLE_BRICKS:
        opened = cv2.morphologyEx(
            cleaned_u8,
            cv2.MORPH_OPEN,
            np.ones((brick_h, brick_w), np.uint8),
            borderType=cv2.BORDER_CONSTANT,
            borderValue=0,
        )
        content_seeds |= opened.astype(bool)
    cleaned = seed_fill(content_seeds, cleaned)

    x, y, rect_w, rect_h = content_rect
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(width, x + rect_w), min(height, y + rect_h)
    result = np.zeros_like(cleaned)
    if x1 > x0 and y1 > y0:
        result[y0:y1, x0:x1] = cleaned[y0:y1, x0:x1]
    return result


def blur_text_lines(image: np.ndarray) -> np.ndarray:
    """
    Stretch the gray range and smear characters into line-shaped blobs.

    The blur is much stronger horizontally than vertically, so that the
    characters of a line merge while separate lines stay apart.
    """
    stretched = stretch_gray_range(image)
    return cv2.GaussianBlur(stretched, (0, 0), sigmaX=BLUR_H_SIGMA, sigmaY=BLUR_V_SIGMA)


def compute_thick_mask(
    blurred: np.ndarray,
    window: Tuple[int, int] = THICK_MASK_WINDOW,
    delta: int = THICK_MASK_DELTA,
) -> np.ndarray:
    """
    Mark pixels that are clearly darker than their local background.

    The local background is the lightest blurred value within the window.
    A pixel belongs to the thick mask if that background is more than delta
    gray levels lighter than the pixel itself.

    Returns:
        A boolean array, True for probable ink strokes.
    """
    brick_w, brick_h = window
    lightest = cv2.dilate(blurred, np.ones((brick_h, brick_w), np.uint8))
    return lightest.astype(np.int16) > blurred.astype(np.int16) + delta
