"""
Schemas for tiling module
"""

import math
from typing import Iterator, Tuple
from pydantic import BaseModel, Field, validator


class Rect(BaseModel):
    """Axis-aligned integer rectangle (x2, y2 exclusive)"""
    x1: int
    y1: int
    x2: int
    y2: int

    class Config:
        frozen = True

    @validator('x2')
    def validate_x2(cls, v, values):
        """x2 may not be left of x1"""
        if 'x1' in values and v < values['x1']:
            raise ValueError(f"x2 ({v}) must be >= x1 ({values['x1']})")
        return v

    @validator('y2')
    def validate_y2(cls, v, values):
        """y2 may not be above y1"""
        if 'y1' in values and v < values['y1']:
            raise ValueError(f"y2 ({v}) must be >= y1 ({values['y1']})")
        return v

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        """Build a rectangle from corner coordinates, rounding half up to pixels"""
        return cls(
            x1=int(math.floor(x1 + 0.5)),
            y1=int(math.floor(y1 + 0.5)),
            x2=int(math.floor(x2 + 0.5)),
            y2=int(math.floor(y2 + 0.5))
        )

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """(minx, miny, maxx, maxy), the layout used by the spatial index"""
        return (self.x1, self.y1, self.x2, self.y2)

    def iou(self, other: "Rect") -> float:
        """
        Intersection over Union with another rectangle

        Degenerate rectangles contribute no area, so two of them
        have an IoU of 0 rather than an undefined ratio.
        """
        inter_w = min(self.x2, other.x2) - max(self.x1, other.x1)
        inter_h = min(self.y2, other.y2) - max(self.y1, other.y1)
        intersection = max(0, inter_w) * max(0, inter_h)

        union = self.area + other.area - intersection
        if union <= 0:
            return 0.0

        return intersection / union

    def clip_to(self, clip: "Rect") -> "Rect":
        """
        Return a copy clipped to `clip`

        Disjoint rectangles produce a zero-area result anchored at the
        clipped top-left corner.
        """
        x1 = max(self.x1, clip.x1)
        y1 = max(self.y1, clip.y1)
        x2 = min(self.x2, clip.x2)
        y2 = min(self.y2, clip.y2)
        return Rect(x1=x1, y1=y1, x2=max(x1, x2), y2=max(y1, y2))

    def union(self, other: "Rect") -> "Rect":
        """Bounding rectangle of this rectangle and `other`"""
        return Rect(
            x1=min(self.x1, other.x1),
            y1=min(self.y1, other.y1),
            x2=max(self.x2, other.x2),
            y2=max(self.y2, other.y2)
        )

    def offset(self, dx: int, dy: int) -> "Rect":
        """Return a copy moved by (dx, dy)"""
        return Rect(
            x1=self.x1 + dx,
            y1=self.y1 + dy,
            x2=self.x2 + dx,
            y2=self.y2 + dy
        )


def origin_at(i: int, space_between: float) -> int:
    """
    X or Y origin of the i-th tile along an axis

    Rounds half up, so neighbouring tiles may be spaced 1 pixel apart
    from one another.
    """
    return int(math.floor(i * space_between + 0.5))


class Tiling(BaseModel):
    """How an image has been split into tiles"""
    space_x: float = Field(default=0.0, ge=0.0, description="Horizontal pixels between tile origins")
    space_y: float = Field(default=0.0, ge=0.0, description="Vertical pixels between tile origins")
    num_x: int = Field(default=1, ge=1, description="Number of tiles horizontally")
    num_y: int = Field(default=1, ge=1, description="Number of tiles vertically")
    network_width: int = Field(gt=0, description="Width of neural network input")
    network_height: int = Field(gt=0, description="Height of neural network input")
    image_width: int = Field(gt=0, description="Width of original image")
    image_height: int = Field(gt=0, description="Height of original image")

    class Config:
        frozen = True

    @property
    def num_tiles(self) -> int:
        return self.num_x * self.num_y

    def _check_tile(self, tx: int, ty: int) -> None:
        if not (0 <= tx < self.num_x and 0 <= ty < self.num_y):
            raise ValueError(f"Tile ({tx}, {ty}) outside {self.num_x}x{self.num_y} tiling")

    def is_single(self) -> bool:
        """True if the tiling consists of just a single tile"""
        return self.num_x == 1 and self.num_y == 1

    def tile_origin(self, tx: int, ty: int) -> Tuple[int, int]:
        """Pixel origin of tile (tx, ty)"""
        self._check_tile(tx, ty)
        return origin_at(tx, self.space_x), origin_at(ty, self.space_y)

    def tile_rect(self, tx: int, ty: int) -> Rect:
        """Rectangle covered by tile (tx, ty) in image coordinates"""
        x1, y1 = self.tile_origin(tx, ty)
        x2 = min(x1 + self.network_width, self.image_width)
        y2 = min(y1 + self.network_height, self.image_height)
        return Rect(x1=x1, y1=y1, x2=x2, y2=y2)

    def tile_rect_for_index(self, index: int) -> Rect:
        """Rectangle of the tile identified by a tile index"""
        return self.tile_rect(*self.split_tile_index(index))

    def make_tile_index(self, tx: int, ty: int) -> int:
        """Return a single number that uniquely identifies tile (tx, ty)"""
        self._check_tile(tx, ty)
        return ty * self.num_x + tx

    def split_tile_index(self, index: int) -> Tuple[int, int]:
        """Inverse of make_tile_index"""
        if not 0 <= index < self.num_tiles:
            raise ValueError(f"Tile index {index} outside {self.num_x}x{self.num_y} tiling")
        return index % self.num_x, index // self.num_x

    def iter_tiles(self) -> Iterator[Tuple[int, int, int, Rect]]:
        """Yield (tile_index, tx, ty, rect) in tile index order"""
        for ty in range(self.num_y):
            for tx in range(self.num_x):
                yield ty * self.num_x + tx, tx, ty, self.tile_rect(tx, ty)


class TilingConfig(BaseModel):
    """Configuration for tiling operation"""
    network_width: int = Field(default=640, description="Neural network input width")
    network_height: int = Field(default=640, description="Neural network input height")
    min_padding: int = Field(default=32, description="Minimum overlap between adjacent tiles")

    @validator('network_width', 'network_height')
    def validate_network_size(cls, v):
        """Validate network size"""
        if v <= 0:
            raise ValueError(f"Network size must be positive: {v}")
        return v

    @validator('min_padding')
    def validate_min_padding(cls, v, values):
        """Padding must leave room for at least two tiles per axis"""
        if v < 0:
            raise ValueError(f"Padding must be non-negative: {v}")
        for key in ('network_width', 'network_height'):
            size = values.get(key)
            if size is not None and v >= size // 2:
                raise ValueError(f"Padding {v} is too large for {key} {size}")
        return v
