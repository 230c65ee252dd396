"""Configuration constants for text line tracing."""

from __future__ import annotations

import os

TARGET_DPI = 200
"""Resolution the page is brought to before any analysis."""

ACCEPTED_DPI_RANGE = (180, 220)
"""Inclusive DPI band within which no downscaling is performed."""

BINARIZATION_WINDOW = (31, 31)
"""Window size (width, height) for Wolf binarization."""

WOLF_K = 0.3
"""Sensitivity parameter for Wolf binarization."""

WOLF_LOWER_BOUND = 1
"""Gray levels below this are always treated as ink by Wolf binarization."""

WOLF_UPPER_BOUND = 254
"""Gray levels above this are never treated as ink by Wolf binarization."""

DESPECKLE_BRICKS = ((2, 3), (3, 2))
"""Opening bricks (width, height). Components surviving neither opening are speckles."""

BLUR_H_SIGMA = 17.0
"""Horizontal sigma of the Gaussian blur that smears characters into lines."""

BLUR_V_SIGMA = 5.0
"""Vertical sigma of the Gaussian blur."""

THICK_MASK_WINDOW = (31, 31)
"""Window (width, height) of the gray erosion that estimates local background."""

THICK_MASK_DELTA = 8
"""A pixel is ink if local background is more than this many levels lighter."""

PEAK_NEIGHBOURHOOD = (31, 15)
"""Window (width, height) within which a peak must be the darkest pixel."""

SEED_DILATION = (9, 9)
"""Brick (width, height) used to merge nearby peaks into one region seed."""

VERT_DIST_SCALE = 3
"""Vertical distances are multiplied by this when growing regions outside the thick mask."""

STRAIGHTNESS_TOLERANCE_DEG = 15.0
"""Maximum deviation from a straight continuation through a shared region."""

BOTTLENECK_EPSILON = 0.001
"""Weight of the summed transition cost that breaks ties between equal bottlenecks."""

MAX_EXTENSION_STEP = 30.0
"""Maximum distance (at TARGET_DPI) a polyline end grows per tracer step."""

CONTENT_SEARCH_RADIUS = 2
"""Rows above and below the traced path checked for ink when extending polylines."""

CURVATURE_TOLERANCE_DEG = 6.0
"""Turns sharper than this count as significant curvature."""

REFINE_ITERATIONS = int(os.getenv("TEXT_LINE_TRACER_REFINE_ITERATIONS", "100"))
"""
Number of iterations of the curve refiner.

Can be overridden via the TEXT_LINE_TRACER_REFINE_ITERATIONS environment variable.
"""

REFINE_SMOOTHING = 0.5
"""Weight pulling each refined vertex toward the midpoint of its neighbours."""
