"""
Tiled inference: run a fixed-size object detector over large images

Computes an evenly spaced, overlapping tile layout for an image and merges
the per-tile detections of objects that straddle tile boundaries.
"""

from .tiling import Rect, Tiling, TilingConfig, TilingEngine, make_tiling
from .merging import Box, MergeEngine, MergeOptions, MergeResult, merge_boxes, merge_objects

__all__ = [
    "Rect",
    "Tiling",
    "TilingConfig",
    "TilingEngine",
    "make_tiling",
    "Box",
    "MergeEngine",
    "MergeOptions",
    "MergeResult",
    "merge_boxes",
    "merge_objects"
]
