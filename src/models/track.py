"""
Track models for object tracking state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Deque, Optional, Tuple

from collections import deque

from .detection import BoundingBox


@dataclass(eq=False)
class TrackTarget:
    """
    A tracked object across video frames.

    Targets are owned by a tracker. Everything else holds non-owning
    references and must not mutate them.

    Attributes:
        target_id: Identifier, stable across frames for the same object.
        bbox: Current bounding box in pixel coordinates.
        is_open: False once the tracker has closed the target.
        frames_since_seen: Frames since last matched detection.
        hits: Number of frames a detection was matched to this target.
        first_frame: Frame index the target was created in.
        last_frame: Frame index of the last matched detection.
        closed_frame: Frame index the target was closed in, if closed.
        trajectory: History of center positions (newest last).
    """
    target_id: int
    bbox: BoundingBox
    is_open: bool = True
    frames_since_seen: int = 0
    hits: int = 1
    first_frame: int = 0
    last_frame: int = 0
    closed_frame: Optional[int] = None
    trajectory: Deque[Tuple[float, float]] = field(default_factory=lambda: deque(maxlen=20))

    def __post_init__(self):
        if not self.trajectory:
            self.trajectory.append(self.bbox.center)

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @property
    def age(self) -> int:
        """Number of frames between creation and the last match, inclusive."""
        return self.last_frame - self.first_frame + 1

    def update(self, bbox: BoundingBox, frame_index: int) -> None:
        """Apply a matched detection."""
        self.bbox = bbox
        self.frames_since_seen = 0
        self.hits += 1
        self.last_frame = frame_index
        self.trajectory.append(bbox.center)

    def mark_missed(self) -> None:
        self.frames_since_seen += 1

    def close(self, frame_index: int) -> None:
        """Transition to closed. Closing twice is a no-op."""
        if not self.is_open:
            return
        self.is_open = False
        self.closed_frame = frame_index

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"TrackTarget(id={self.target_id}, bbox={self.bbox.as_int_tuple()}, {status})"
