"""
In-memory observation source.

Replays a list of numpy frames. Used by tools and tests that synthesize
sequences instead of decoding video.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .base import ObservationSource, ObservationConfig


class MemorySource(ObservationSource):
    """Yields the given frames once per open(), in order."""

    def __init__(self, frames: Sequence[np.ndarray], config: Optional[ObservationConfig] = None):
        super().__init__(config or ObservationConfig(source_id="memory"))
        self._frames: List[np.ndarray] = list(frames)
        self._pos = 0

    def _open(self) -> None:
        self._pos = 0

    def _next_frame(self) -> Optional[np.ndarray]:
        if self._pos >= len(self._frames):
            return None
        frame = self._frames[self._pos]
        self._pos += 1
        return frame

    def _close(self) -> None:
        pass
