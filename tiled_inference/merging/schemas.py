"""
Schemas for merging module
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, validator

from ..common.config import settings
from ..tiling.schemas import Rect


class Box(BaseModel):
    """Object detection rectangle tagged with the tile that produced it"""
    rect: Rect  # Image coordinates
    tile: int = Field(ge=0, description="Tile index in which this box was detected")
    class_id: int = Field(description="Detection class")
    confidence: Optional[float] = None

    class Config:
        frozen = True

    @validator('confidence')
    def validate_confidence(cls, v):
        """Validate confidence score"""
        if v is not None and not 0.0 <= v <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1: {v}")
        return v


def make_box(
    x1: int,
    y1: int,
    x2: int,
    y2: int,
    tile: int,
    class_id: int,
    confidence: Optional[float] = None
) -> Box:
    """Shorthand for building a Box from corner coordinates"""
    return Box(
        rect=Rect(x1=x1, y1=y1, x2=x2, y2=y2),
        tile=tile,
        class_id=class_id,
        confidence=confidence
    )


class MergeOptions(BaseModel):
    """Options for merging boxes across tiles"""
    min_iou: float = Field(default=0.5, description="Minimum IoU for two boxes to be considered equal")
    merge_different_classes: bool = Field(default=False, description="Merge boxes with different classes")

    class Config:
        frozen = True

    @validator('min_iou')
    def validate_iou(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"IOU threshold must be between 0 and 1: {v}")
        return v

    @classmethod
    def default(cls) -> "MergeOptions":
        """Options used when none are given"""
        return cls()

    @classmethod
    def from_settings(cls) -> "MergeOptions":
        return cls(
            min_iou=settings.merge_min_iou,
            merge_different_classes=settings.merge_different_classes
        )


class MergeResult(BaseModel):
    """Result of merging operation"""
    groups: List[List[int]]  # Original box indices per merged box
    boxes: List[Box]
    merge_time: float = 0.0  # seconds
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def total_groups(self) -> int:
        return len(self.groups)

    @property
    def total_merged(self) -> int:
        """Number of input boxes that were folded into another box's group"""
        return sum(len(group) - 1 for group in self.groups)

    def get_class_summary(self) -> Dict[int, Dict[str, Any]]:
        """Get summary statistics by class"""
        summary = {}
        for group, box in zip(self.groups, self.boxes):
            if box.class_id not in summary:
                summary[box.class_id] = {
                    'count': 0,
                    'source_boxes': 0
                }

            summary[box.class_id]['count'] += 1
            summary[box.class_id]['source_boxes'] += len(group)

        return summary
