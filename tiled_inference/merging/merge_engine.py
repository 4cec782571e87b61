"""
Merge Engine - Collapse detections of one object split across tile boundaries
"""

import logging
import time
from itertools import groupby
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable
import numpy as np
from rtree import index

from .schemas import Box, MergeOptions, MergeResult
from ..tiling.schemas import Rect, Tiling

logger = logging.getLogger(__name__)


@runtime_checkable
class TiledObject(Protocol):
    """Anything that can present itself as a detection box"""

    def tiled_inference_box(self) -> Box:
        ...


def _build_spatial_index(boxes: Sequence[Box]) -> index.Index:
    """
    Build spatial index for efficient overlap detection

    Args:
        boxes: Boxes in image coordinates

    Returns:
        R-tree spatial index keyed by box position
    """
    properties = index.Property()
    properties.dimension = 2

    idx = index.Index(properties=properties)
    for i, box in enumerate(boxes):
        idx.insert(i, box.rect.bounds)

    return idx


def _merged_confidence(boxes: Sequence[Box], group: List[int]) -> Optional[float]:
    confidences = [boxes[i].confidence for i in group if boxes[i].confidence is not None]
    return max(confidences) if confidences else None


def merge_boxes(
    tiling: Tiling,
    boxes: Sequence[Box],
    options: Optional[MergeOptions] = None
) -> Tuple[List[List[int]], List[Box]]:
    """
    Merge boxes that were detected more than once across tiles

    Most groups hold a single box. A group with more than one member means
    those boxes are the same object. The integers in each group index into
    `boxes`, the group's seed first. merged_boxes is parallel to groups:
    each rectangle is the bounding box of its group, and the tile and class
    come from the seed.

    Args:
        tiling: Tiling that produced the boxes
        boxes: Detections in image coordinates
        options: Merge options, MergeOptions.default() if omitted

    Returns:
        Tuple of (groups, merged_boxes)
    """
    options = options or MergeOptions.default()

    for box in boxes:
        if box.tile >= tiling.num_tiles:
            raise ValueError(f"Box tile {box.tile} outside {tiling.num_x}x{tiling.num_y} tiling")

    groups: List[List[int]] = []
    merged_boxes: List[Box] = []
    if not boxes:
        return groups, merged_boxes

    spatial_idx = _build_spatial_index(boxes)

    # A consumed box is never touched again
    consumed = [False] * len(boxes)

    for i, seed in enumerate(boxes):
        if consumed[i]:
            continue
        consumed[i] = True

        group = [i]
        # At most one box per tile: more would mean redoing the detector's own NMS
        tiles_in_group = {seed.tile}

        # Grows as neighbours are folded in, since a large object
        # can be split across a tile boundary
        merged_rect = seed.rect

        # Shrinks with every tile folded into this group
        clipper = tiling.tile_rect_for_index(seed.tile)

        # Same-tile candidates end up adjacent, worst overlap first
        nearby = sorted(
            spatial_idx.intersection(seed.rect.bounds),
            key=lambda j: (boxes[j].tile, boxes[j].rect.iou(merged_rect), j)
        )

        for tile, candidates in groupby(nearby, key=lambda j: boxes[j].tile):
            if tile in tiles_in_group:
                continue

            # Compare only inside the region both tiles saw. A sliver of the
            # object in the neighbouring tile otherwise has a tiny IoU and
            # survives as a duplicate. The candidate is clipped too, since
            # detectors do not always clip their output to the network input.
            new_clipper = clipper.clip_to(tiling.tile_rect_for_index(tile))
            merged_clipped = merged_rect.clip_to(new_clipper)

            best = None
            for j in candidates:
                if consumed[j]:
                    continue
                if not options.merge_different_classes and boxes[j].class_id != seed.class_id:
                    continue
                if merged_clipped.iou(boxes[j].rect.clip_to(new_clipper)) >= options.min_iou:
                    best = j

            if best is not None:
                consumed[best] = True
                merged_rect = merged_rect.union(boxes[best].rect)
                clipper = new_clipper
                group.append(best)
                tiles_in_group.add(tile)

        if len(group) > 1:
            logger.debug(f"Merged boxes {group} into {merged_rect.bounds}")

        groups.append(group)
        merged_boxes.append(Box(
            rect=merged_rect,
            tile=seed.tile,
            class_id=seed.class_id,
            confidence=_merged_confidence(boxes, group)
        ))

    return groups, merged_boxes


def merge_objects(
    tiling: Tiling,
    objects: Sequence[Any],
    options: Optional[MergeOptions] = None,
    to_box: Optional[Callable[[Any], Box]] = None
) -> Tuple[List[List[int]], List[Box]]:
    """
    Merge arbitrary detection objects

    Each object is projected to a Box with `to_box`, or through its
    tiled_inference_box() method when no projection is given.
    See merge_boxes for the return format.
    """
    if to_box is None:
        to_box = _box_of

    return merge_boxes(tiling, [to_box(obj) for obj in objects], options)


def _box_of(obj: Any) -> Box:
    if isinstance(obj, Box):
        return obj
    if not isinstance(obj, TiledObject):
        raise TypeError(f"{type(obj).__name__} has no tiled_inference_box() and no projection was given")
    return obj.tiled_inference_box()


def boxes_from_arrays(
    tiling: Tiling,
    tx: int,
    ty: int,
    xyxy: np.ndarray,
    class_ids: np.ndarray,
    confidences: Optional[np.ndarray] = None,
    tile_local: bool = True
) -> List[Box]:
    """
    Convert one tile's detector output into boxes

    Args:
        tiling: Tiling the tile belongs to
        tx, ty: Tile position
        xyxy: (N, 4) array of x1, y1, x2, y2
        class_ids: (N,) array of class ids
        confidences: Optional (N,) array of scores
        tile_local: True if xyxy is relative to the tile origin

    Returns:
        List of boxes in image coordinates
    """
    xyxy = np.asarray(xyxy, dtype=np.float64).reshape(-1, 4)
    class_ids = np.asarray(class_ids).reshape(-1)
    if len(class_ids) != len(xyxy):
        raise ValueError(f"Got {len(xyxy)} boxes but {len(class_ids)} class ids")
    if confidences is not None:
        confidences = np.asarray(confidences, dtype=np.float64).reshape(-1)
        if len(confidences) != len(xyxy):
            raise ValueError(f"Got {len(xyxy)} boxes but {len(confidences)} confidences")

    tile = tiling.make_tile_index(tx, ty)
    dx, dy = tiling.tile_origin(tx, ty) if tile_local else (0, 0)

    boxes = []
    for k, (x1, y1, x2, y2) in enumerate(xyxy):
        rect = Rect.from_xyxy(x1, y1, x2, y2).offset(dx, dy)
        boxes.append(Box(
            rect=rect,
            tile=tile,
            class_id=int(class_ids[k]),
            confidence=float(confidences[k]) if confidences is not None else None
        ))

    return boxes


class MergeEngine:
    """
    Engine for merging tile-based detection results
    """

    def __init__(self, config: Optional[MergeOptions] = None):
        """
        Initialize merge engine

        Args:
            config: Merge options, defaults to the global settings
        """
        self.config = config or MergeOptions.from_settings()

    def merge(self, tiling: Tiling, boxes: Sequence[Box]) -> MergeResult:
        """
        Merge detection results from all tiles of one image

        Args:
            tiling: Tiling that produced the boxes
            boxes: Detections in image coordinates

        Returns:
            MergeResult object
        """
        start_time = time.time()

        groups, merged_boxes = merge_boxes(tiling, boxes, self.config)

        merge_time = time.time() - start_time

        result = MergeResult(
            groups=groups,
            boxes=merged_boxes,
            merge_time=merge_time,
            metadata={
                'num_tiles': tiling.num_tiles,
                'input_boxes': len(boxes)
            }
        )

        logger.info(f"Merged {len(boxes)} boxes from {tiling.num_tiles} tiles into {result.total_groups} detections in {merge_time:.3f}s")

        return result

    def merge_objects(
        self,
        tiling: Tiling,
        objects: Sequence[Any],
        to_box: Optional[Callable[[Any], Box]] = None
    ) -> MergeResult:
        """Project objects to boxes and merge them"""
        if to_box is None:
            to_box = _box_of
        return self.merge(tiling, [to_box(obj) for obj in objects])
