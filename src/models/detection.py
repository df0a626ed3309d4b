"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def x(self) -> float:
        return self.x1

    @property
    def y(self) -> float:
        return self.y1

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.x1 + self.x2) / 2, (self.y1 + self.y2) / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def iou(self, other: "BoundingBox") -> float:
        """Intersection over union with another box, between 0 and 1."""
        x1_i = max(self.x1, other.x1)
        y1_i = max(self.y1, other.y1)
        x2_i = min(self.x2, other.x2)
        y2_i = min(self.y2, other.y2)

        if x2_i <= x1_i or y2_i <= y1_i:
            return 0.0

        intersection = (x2_i - x1_i) * (y2_i - y1_i)
        union = self.area + other.area - intersection
        if union <= 0:
            return 0.0
        return intersection / union

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)


@dataclass(frozen=True, eq=False)
class Detection:
    """
    A single detection from an object detector.

    Detections compare and hash by identity: two detections with the same
    coordinates in the same frame are still different keys.

    Attributes:
        bbox: Bounding box in pixel coordinates.
        confidence: Detection confidence score (0-1).
        frame_index: Index of the frame the detection was observed in.
        detection_id: Label unique within the frame (used in logs).
        class_id: Optional class ID from the detector.
        class_name: Optional human-readable class name.
    """
    bbox: BoundingBox
    confidence: float = 1.0
    frame_index: int = 0
    detection_id: int = 0
    class_id: Optional[int] = None
    class_name: Optional[str] = None

    @property
    def x1(self) -> float:
        return self.bbox.x1

    @property
    def y1(self) -> float:
        return self.bbox.y1

    @property
    def x2(self) -> float:
        return self.bbox.x2

    @property
    def y2(self) -> float:
        return self.bbox.y2

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @classmethod
    def from_xyxy(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        confidence: float = 1.0,
        frame_index: int = 0,
        detection_id: int = 0,
        class_id: Optional[int] = None,
        class_name: Optional[str] = None,
    ) -> "Detection":
        """Create Detection from x1, y1, x2, y2 coordinates."""
        return cls(
            bbox=BoundingBox(x1=x1, y1=y1, x2=x2, y2=y2),
            confidence=confidence,
            frame_index=frame_index,
            detection_id=detection_id,
            class_id=class_id,
            class_name=class_name,
        )

    @classmethod
    def from_xywh(
        cls,
        x: float,
        y: float,
        w: float,
        h: float,
        confidence: float = 1.0,
        frame_index: int = 0,
        detection_id: int = 0,
    ) -> "Detection":
        """Create Detection from x, y, width, height."""
        return cls(
            bbox=BoundingBox.from_xywh(x, y, w, h),
            confidence=confidence,
            frame_index=frame_index,
            detection_id=detection_id,
        )

    def __repr__(self) -> str:
        return (
            f"Detection(id={self.detection_id}, frame={self.frame_index}, "
            f"bbox={self.bbox.as_int_tuple()}, confidence={self.confidence:.2f})"
        )
