"""Text line tracing pipeline: from a page image to horizontal curves."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple, Union

import numpy as np
from PIL import Image
from tqdm import tqdm

from .config import REFINE_ITERATIONS, TARGET_DPI
from .debug_images import (
    DebugImages,
    add_debug_image,
    visualize_connectivity,
    visualize_polylines,
    visualize_regions,
    visualize_vertical_bounds,
)
from .distortion_model import DistortionModelBuilder
from .edge_graph import build_edge_nodes, extract_edge_node_paths, find_bottleneck_paths
from .geometry import Line, Polyline, scale_line, scale_polyline, scale_rect
from .peaks import find_region_seeds
from .polylines import (
    TracerFactory,
    edge_sequences_to_polylines,
    extend_towards_vertical_bounds,
    filter_edgy_curves,
    filter_out_of_bounds_curves,
)
from .preprocessing import binarize_wolf, blur_text_lines, compute_thick_mask, downscale, sanitize_binary_image
from .refinement import TextLineRefiner
from .region_grid import RegionGrid
from .regions import Region, find_region_edges, init_regions, mark_edge_regions
from .settings import SHOW_PROGRESS, logger
from .towards_line_tracer import TowardsLineTracer
from .vert_bounds import detect_vert_content_bounds

BoundsDetector = Callable[[np.ndarray], Tuple[Line, Line]]
RefinerFactory = Callable[[np.ndarray, Tuple[float, float]], TextLineRefiner]


def _as_gray(image: Union[Image.Image, np.ndarray]) -> np.ndarray:
    if isinstance(image, Image.Image):
        return np.array(image.convert("L"))
    array = np.asarray(image)
    if array.ndim != 2:
        raise ValueError(f"Expected a 2D grayscale image, got shape {array.shape}")
    if array.dtype != np.uint8:
        raise ValueError(f"Expected a uint8 grayscale image, got dtype {array.dtype}")
    return array


def label_and_grow_regions(blurred: np.ndarray, thick_mask: np.ndarray, regions: List[Region]) -> np.ndarray:
    """
    Assign every pixel to a region.

    Labels are first flooded from the region centroids within the thick
    mask, then extended everywhere else by weighted proximity.

    Returns:
        (height, width) array of labels, label N standing for regions[N - 1].
    """
    centroids = [region.centroid for region in regions]
    grid = RegionGrid(blurred, thick_mask)
    grid.seed(centroids)
    grid.grow_within_mask(centroids)
    grid.grow_by_distance()
    return grid.labels()


def segment_blurred_text_lines(
    blurred: np.ndarray,
    thick_mask: np.ndarray,
    left_bound: Line,
    right_bound: Line,
    dbg: Optional[DebugImages] = None,
) -> List[Polyline]:
    """
    Find text line polylines running from the left bound to the right one.

    Args:
        blurred: Line-blurred page (see blur_text_lines()).
        thick_mask: Probable ink (see compute_thick_mask()).
        left_bound: Left content boundary.
        right_bound: Right content boundary.
        dbg: Optional debug image sink.

    Returns:
        Polylines through region centroids, ordered from left to right.
    """
    region_seeds = find_region_seeds(blurred, thick_mask)
    add_debug_image(dbg, "region_seeds", lambda: region_seeds)

    regions = init_regions(region_seeds)
    if not regions:
        logger.info("No region seeds found, no text lines traced")
        return []

    labels = label_and_grow_regions(blurred, thick_mask, regions)
    mark_edge_regions(regions, labels, left_bound, right_bound)
    edges = find_region_edges(labels, thick_mask)
    add_debug_image(dbg, "regions", lambda: visualize_regions(labels, blurred, region_seeds))
    add_debug_image(dbg, "connectivity", lambda: visualize_connectivity(blurred, regions, edges))

    edge_nodes = build_edge_nodes(regions, edges)
    find_bottleneck_paths(edge_nodes, regions)
    edge_node_paths = extract_edge_node_paths(edge_nodes, regions)

    add_debug_image(
        dbg,
        "refined_graph",
        lambda: visualize_connectivity(
            blurred, regions, [edge_nodes[idx].edge for path in edge_node_paths for idx in path]
        ),
    )

    polylines = edge_sequences_to_polylines(edge_node_paths, edge_nodes, regions)
    logger.debug(
        f"{len(regions)} regions, {len(edges)} edges, {len(edge_node_paths)} paths, {len(polylines)} polylines"
    )
    return polylines


def trace_text_lines(
    image: Union[Image.Image, np.ndarray],
    dpi: Tuple[float, float],
    content_rect: Tuple[int, int, int, int],
    output: DistortionModelBuilder,
    dbg: Optional[DebugImages] = None,
    *,
    bounds_detector: BoundsDetector = detect_vert_content_bounds,
    refiner_factory: RefinerFactory = TextLineRefiner,
    tracer_factory: TracerFactory = TowardsLineTracer,
    refine_iterations: int = REFINE_ITERATIONS,
) -> List[Polyline]:
    """
    Trace text lines on a page and feed them to a distortion model builder.

    The pipeline:
    1. Downscales the page to about 200 DPI
    2. Binarizes and sanitizes it, then detects vertical content bounds
    3. Blurs the page into line-shaped blobs and derives the thick mask
    4. Segments lines through region growing and a bottleneck path search
    5. Extends the lines toward the bounds and drops those outside them
    6. Refines the lines and drops those with inconsistent curvature
    7. Maps everything back to input coordinates and hands it to output

    Args:
        image: Grayscale page (PIL image or 2D uint8 array).
        dpi: (horizontal, vertical) resolution of the page.
        content_rect: (x, y, width, height) of the content area in input pixels.
        output: Receives the bounds once and every surviving curve.
        dbg: Optional debug image sink. Its presence never changes results.
        bounds_detector: Finds (left, right) bounds on the sanitized binary page.
        refiner_factory: Builds the curve refiner from the downscaled page.
        tracer_factory: Builds the tracer used to extend line ends.
        refine_iterations: Iterations passed to the refiner.

    Returns:
        The polylines delivered to output, in input coordinates.
    """
    gray = _as_gray(image)
    height, width = gray.shape
    if gray.size == 0:
        logger.warning("Empty image, no text lines traced")
        output.set_vertical_bounds(((0.0, 0.0), (0.0, float(height))), ((float(width), 0.0), (float(width), float(height))))
        return []

    downscaled, x_factor, y_factor = downscale(gray, dpi)
    add_debug_image(dbg, "downscaled", lambda: downscaled)
    downscaled_content_rect = scale_rect(content_rect, x_factor, y_factor)

    binarized = binarize_wolf(downscaled)
    add_debug_image(dbg, "binarized", lambda: binarized)

    # Bounds detection is sensitive to clutter and speckles.
    binarized = sanitize_binary_image(binarized, downscaled_content_rect)
    add_debug_image(dbg, "sanitized", lambda: binarized)

    left_bound, right_bound = bounds_detector(binarized)
    vert_bounds = (left_bound, right_bound)
    add_debug_image(dbg, "vert_bounds", lambda: visualize_vertical_bounds(binarized, vert_bounds))

    blurred = blur_text_lines(downscaled)
    add_debug_image(dbg, "blurred", lambda: blurred)

    thick_mask = compute_thick_mask(blurred)
    add_debug_image(dbg, "thick_mask", lambda: thick_mask)

    polylines = segment_blurred_text_lines(blurred, thick_mask, left_bound, right_bound, dbg)

    polylines = [
        extend_towards_vertical_bounds(polyline, vert_bounds, binarized, blurred, thick_mask, tracer_factory=tracer_factory)
        for polyline in tqdm(polylines, desc="Extending polylines", disable=not SHOW_PROGRESS)
    ]
    add_debug_image(dbg, "extended", lambda: visualize_polylines(downscaled, polylines))

    polylines = filter_out_of_bounds_curves(polylines, left_bound, right_bound)

    refiner = refiner_factory(downscaled, (TARGET_DPI, TARGET_DPI))
    polylines = refiner.refine(polylines, refine_iterations)

    polylines = filter_edgy_curves(polylines)
    add_debug_image(dbg, "edgy_curves_removed", lambda: visualize_polylines(downscaled, polylines))

    to_orig_x, to_orig_y = 1.0 / x_factor, 1.0 / y_factor
    output.set_vertical_bounds(
        scale_line(left_bound, to_orig_x, to_orig_y),
        scale_line(right_bound, to_orig_x, to_orig_y),
    )

    delivered: List[Polyline] = []
    for polyline in polylines:
        mapped = scale_polyline(polyline, to_orig_x, to_orig_y)
        output.add_horizontal_curve(mapped)
        delivered.append(mapped)

    logger.info(f"Traced {len(delivered)} text lines")
    return delivered
