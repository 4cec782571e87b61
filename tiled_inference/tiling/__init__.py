"""
Tiling Module
Splits large images into network-sized, overlapping tiles
"""

from .engine import TilingEngine, compute_tile_spacing_and_count, make_tiling
from .schemas import Rect, Tiling, TilingConfig, origin_at

__all__ = [
    "TilingEngine",
    "compute_tile_spacing_and_count",
    "make_tiling",
    "origin_at",
    "Rect",
    "Tiling",
    "TilingConfig"
]
