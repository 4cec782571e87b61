"""
Tiling Engine - Split an image into tiles for neural network inference

Outer tiles get no padding on their outer edge, because that would mean
running the network outside of the image. Padding is only added on the
inside. Along one axis, with network size NN:

    ExteriorValid = NN - Padding        (edge tiles lose padding on one side)
    InteriorValid = NN - Padding * 2    (inner tiles lose it on both sides)
    InnerValid    = ImageSize - 2 * ExteriorValid
    InnerTiles    = ceil(InnerValid / InteriorValid)
    TotalTiles    = 2 + InnerTiles

The tiles are then spread evenly so that the first starts at 0 and the
last ends exactly on the image edge. In practice the real overlap is often
larger than min_padding, and rounding can make it differ by 1 pixel
between neighbouring tiles.
"""

import logging
from typing import Generator, Optional, Tuple
import numpy as np

from .schemas import Rect, Tiling, TilingConfig, origin_at
from ..common.config import settings

logger = logging.getLogger(__name__)


def compute_tile_spacing_and_count(
    image_size: int,
    network_size: int,
    min_padding: int
) -> Tuple[float, int]:
    """
    Split one dimension (X or Y) into evenly spaced tiles

    Args:
        image_size: Image size along the axis
        network_size: Network input size along the axis
        min_padding: Minimum overlap between adjacent tiles

    Returns:
        Tuple of (space between tile origins, number of tiles)

    Raises:
        ValueError: If the sizes are not positive or the padding is too large
    """
    if image_size <= 0 or network_size <= 0:
        raise ValueError(f"Sizes must be positive: image={image_size}, network={network_size}")
    if min_padding < 0:
        raise ValueError(f"Padding must be non-negative: {min_padding}")
    if min_padding >= network_size // 2:
        raise ValueError(
            f"Padding for tiled inference is too large: {min_padding} >= {network_size} // 2"
        )

    if image_size <= network_size:
        return 0.0, 1

    exterior_valid = network_size - min_padding
    interior_valid = network_size - 2 * min_padding
    inner_valid = image_size - 2 * exterior_valid

    # round up
    num_inner_tiles = max(0, -(-inner_valid // interior_valid))
    num_total_tiles = 2 + num_inner_tiles

    return (image_size - network_size) / (num_total_tiles - 1), num_total_tiles


def make_tiling(
    image_width: int,
    image_height: int,
    network_width: int,
    network_height: int,
    min_padding: int
) -> Tiling:
    """
    Split an image up into tiles

    Both axes are validated before the layout is built.
    """
    space_x, num_x = compute_tile_spacing_and_count(image_width, network_width, min_padding)
    space_y, num_y = compute_tile_spacing_and_count(image_height, network_height, min_padding)

    return Tiling(
        space_x=space_x,
        space_y=space_y,
        num_x=num_x,
        num_y=num_y,
        network_width=network_width,
        network_height=network_height,
        image_width=image_width,
        image_height=image_height
    )


class TilingEngine:
    """
    Computes tile layouts for a fixed network input size
    and cuts images into network-sized crops
    """

    def __init__(self, config: Optional[TilingConfig] = None):
        """
        Initialize tiling engine

        Args:
            config: Tiling configuration, defaults to the global settings
        """
        self.config = config or TilingConfig(
            network_width=settings.network_width,
            network_height=settings.network_height,
            min_padding=settings.min_padding
        )

    def create_tiling(self, image_width: int, image_height: int) -> Tiling:
        """
        Compute the tile layout for an image of the given size

        Args:
            image_width: Image width in pixels
            image_height: Image height in pixels

        Returns:
            Tiling for the image
        """
        tiling = make_tiling(
            image_width,
            image_height,
            self.config.network_width,
            self.config.network_height,
            self.config.min_padding
        )

        logger.info(
            f"Tiled {image_width}x{image_height} image into {tiling.num_x}x{tiling.num_y} tiles "
            f"(spacing {tiling.space_x:.2f}, {tiling.space_y:.2f})"
        )

        return tiling

    def create_tiling_for_image(self, image: np.ndarray) -> Tiling:
        """Compute the tile layout for an (H, W) or (H, W, C) array"""
        height, width = image.shape[:2]
        return self.create_tiling(width, height)

    def extract_tile(
        self,
        image: np.ndarray,
        tiling: Tiling,
        tx: int,
        ty: int
    ) -> np.ndarray:
        """
        Extract a single tile from the image

        Returns a view into `image`, not a copy.
        """
        height, width = image.shape[:2]
        if (width, height) != (tiling.image_width, tiling.image_height):
            raise ValueError(
                f"Image size {width}x{height} does not match tiling "
                f"{tiling.image_width}x{tiling.image_height}"
            )

        rect = tiling.tile_rect(tx, ty)
        return image[rect.y1:rect.y2, rect.x1:rect.x2]

    def generate_tiles(
        self,
        image: np.ndarray,
        tiling: Optional[Tiling] = None
    ) -> Generator[Tuple[int, Rect, np.ndarray], None, None]:
        """
        Generate the crops to feed to the network

        Args:
            image: Source image array
            tiling: Layout to use, computed from the image shape if omitted

        Yields:
            Tuple of (tile_index, tile_rect, tile_array) for each tile
        """
        tiling = tiling or self.create_tiling_for_image(image)

        for index, tx, ty, rect in tiling.iter_tiles():
            yield index, rect, self.extract_tile(image, tiling, tx, ty)
