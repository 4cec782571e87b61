"""
Merging Module
Collapses detections of one object that were found in several tiles
"""

from .merge_engine import MergeEngine, TiledObject, boxes_from_arrays, merge_boxes, merge_objects
from .schemas import Box, MergeOptions, MergeResult, make_box

__all__ = [
    "MergeEngine",
    "TiledObject",
    "boxes_from_arrays",
    "merge_boxes",
    "merge_objects",
    "Box",
    "MergeOptions",
    "MergeResult",
    "make_box"
]
