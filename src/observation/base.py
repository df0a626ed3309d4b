"""
Frame sources for the tracking pipeline.

A source yields one frame sequence per open(). The FrameOrchestrator only
accepts frame 0 and then previous + 1, so the base class stamps indices
itself: subclasses hand back raw pixel buffers and never pick an index.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings shared by all sources.

    Attributes:
        source_id: Name stamped on every FrameData (e.g. "main-video").
        resolution: Requested (width, height); None keeps the native size.
        fps: Requested capture rate; None keeps the native rate.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    A finite, ordered sequence of frames.

    Index contract:
        After open(), read() returns frame 0, then 1, 2, ... with no gaps and
        no repeats, then None forever. A frame the backend fails to deliver
        ends the sequence instead of being skipped. Reopening starts again
        at 0.

    Subclasses implement _open(), _next_frame() and _close().
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._exhausted = False

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Index the next frame will carry."""
        return self._frame_index

    def open(self) -> None:
        """
        Start a new sequence at frame 0. Opening an open source is a no-op.

        Raises:
            RuntimeError: If the backend cannot be opened.
        """
        if self._is_open:
            return
        self._open()
        self._is_open = True
        self._frame_index = 0
        self._exhausted = False

    def read(self) -> Optional[FrameData]:
        """Next frame of the sequence, or None once it has ended."""
        if not self._is_open or self._exhausted:
            return None

        frame = self._next_frame()
        if frame is None:
            self._exhausted = True
            return None

        frame_data = FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )
        self._frame_index += 1
        return frame_data

    def close(self) -> None:
        """Release the backend. Safe to call more than once."""
        self._close()
        self._is_open = False

    @abstractmethod
    def _open(self) -> None:
        """Acquire the backend; raise RuntimeError on failure."""

    @abstractmethod
    def _next_frame(self) -> Optional[np.ndarray]:
        """Return the next pixel buffer, or None when no more frames come."""

    @abstractmethod
    def _close(self) -> None:
        """Release the backend."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
