"""Optional collection of intermediate images for debugging."""

from __future__ import annotations

import colorsys
from typing import Iterable, List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw

from .geometry import Line, Polyline
from .regions import Edge, Region
from .settings import logger

ImageLike = Union[Image.Image, np.ndarray]

LEFTMOST_COLOR = (255, 0, 255)
RIGHTMOST_COLOR = (0, 255, 255)
BOTH_SIDES_COLOR = (0, 255, 0)
INNER_COLOR = (255, 255, 0)
LINE_COLOR = (0, 0, 255)


def to_pil(image: ImageLike) -> Image.Image:
    """
    Convert a debug image to PIL.

    Boolean arrays are treated as ink masks and rendered black on white.
    """
    if isinstance(image, Image.Image):
        return image
    if image.dtype == bool:
        return Image.fromarray(np.where(image, 0, 255).astype(np.uint8))
    return Image.fromarray(image.astype(np.uint8))


class DebugImages:
    """Accumulates labeled snapshots of the intermediate pipeline stages."""

    def __init__(self) -> None:
        self.images: List[Tuple[str, Image.Image]] = []

    def add(self, image: ImageLike, label: str) -> None:
        self.images.append((label, to_pil(image).copy()))

    @property
    def labels(self) -> List[str]:
        return [label for label, _ in self.images]

    def get(self, label: str) -> Optional[Image.Image]:
        for image_label, image in self.images:
            if image_label == label:
                return image
        return None


def color_for_id(region_id: int) -> Tuple[int, int, int]:
    """Deterministic, well spread color for a region label."""
    hue = (region_id * 0.618033988749895) % 1.0
    r, g, b = colorsys.hsv_to_rgb(hue, 0.8, 0.95)
    return (int(r * 255), int(g * 255), int(b * 255))


def _region_color(region: Region) -> Tuple[int, int, int]:
    if region.leftmost and region.rightmost:
        return BOTH_SIDES_COLOR
    if region.leftmost:
        return LEFTMOST_COLOR
    if region.rightmost:
        return RIGHTMOST_COLOR
    return INNER_COLOR


def _draw_regions(draw: ImageDraw.ImageDraw, regions: List[Region], radius: int = 7) -> None:
    for region in regions:
        x, y = region.centroid
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=_region_color(region))


def visualize_vertical_bounds(background: ImageLike, bounds: Tuple[Line, Line]) -> Image.Image:
    canvas = to_pil(background).convert("RGB")
    draw = ImageDraw.Draw(canvas)
    for line in bounds:
        draw.line(list(line), fill=LINE_COLOR, width=2)
    return canvas


def visualize_regions(labels: np.ndarray, blurred: np.ndarray, seeds: np.ndarray) -> Image.Image:
    """
    Color every pixel by its region label over the blurred page.

    Unlabeled pixels stay transparent; seed pixels are drawn in blue.
    """
    max_label = int(labels.max()) if labels.size else 0
    palette = np.zeros((max_label + 1, 3), dtype=np.uint8)
    for label in range(1, max_label + 1):
        palette[label] = color_for_id(label)
    colored = palette[labels]
    background = np.repeat(blurred[:, :, None], 3, axis=2)
    blended = np.where((labels > 0)[:, :, None], (0.3 * colored + 0.7 * background), background)
    blended[seeds] = LINE_COLOR
    return Image.fromarray(blended.astype(np.uint8))


def visualize_connectivity(
    background: ImageLike, regions: List[Region], edges: Iterable[Edge]
) -> Image.Image:
    canvas = to_pil(background).convert("RGB")
    draw = ImageDraw.Draw(canvas)
    for edge in edges:
        draw.line([regions[edge.lesser].centroid, regions[edge.greater].centroid], fill=LINE_COLOR, width=2)
    _draw_regions(draw, regions)
    return canvas


def visualize_polylines(
    background: ImageLike,
    polylines: List[Polyline],
    vert_bounds: Optional[Tuple[Line, Line]] = None,
) -> Image.Image:
    canvas = to_pil(background).convert("RGB")
    draw = ImageDraw.Draw(canvas)
    for polyline in polylines:
        if len(polyline) >= 2:
            draw.line(polyline, fill=LINE_COLOR, width=3)
    if vert_bounds:
        for line in vert_bounds:
            draw.line(list(line), fill=LINE_COLOR, width=3)
    return canvas


def add_debug_image(dbg: Optional[DebugImages], label: str, producer) -> None:
    """
    Render and store a debug image if a sink is present.

    The image is only produced when dbg is not None. Failures are logged
    and otherwise ignored, they never affect the pipeline.
    """
    if dbg is None:
        return
    try:
        dbg.add(producer(), label)
    except Exception as exc:
        logger.warning(f"Failed to add debug image '{label}': {exc}")
