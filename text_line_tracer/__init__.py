"""
Text line tracing for page dewarping.

This package extracts quasi-horizontal text line curves from a scanned page
image. Together with the left and right content bounds, these curves are the
input of a page distortion model.

Main components:
- preprocessing: Downscaling, Wolf binarization, sanitizing, line blurring and the thick mask
- peaks: Region seeds from dark local extrema
- region_grid: Packed label grid, priority flood and distance driven growth
- regions: Regions, edges between them and leftmost/rightmost marking
- edge_graph: Straightness graph over edges and the bottleneck path search
- polylines: Polyline assembly, extension toward the bounds and curve filters
- tracer: Pipeline entry points
- config: Configuration constants for tracing parameters
"""

from .debug_images import DebugImages
from .distortion_model import DistortionModelBuilder
from .edge_graph import GraphInvariantError
from .tracer import segment_blurred_text_lines, trace_text_lines

__all__ = [
    "DebugImages",
    "DistortionModelBuilder",
    "GraphInvariantError",
    "segment_blurred_text_lines",
    "trace_text_lines",
]
