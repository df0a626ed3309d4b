"""
FrameData model for decoded video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class FrameData:
    """
    A decoded frame plus the metadata the pipeline logs and forwards.

    Attributes:
        frame: Pixel buffer as a numpy array (BGR). Only the tracker and
            sinks look at pixel content.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when the frame was read.
        frame_index: 0-based position of the frame in its sequence.
        source: Identifier for the video source.
    """
    frame: np.ndarray
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        """Create FrameData from a numpy array."""
        h, w = frame.shape[:2]
        return cls(
            frame=frame,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def channels(self) -> int:
        return self.frame.shape[2] if self.frame.ndim == 3 else 1

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)
