"""
Sink interface for per-frame tracking output.

Sinks render or persist what the orchestrator produced for a frame. Output
is best-effort: the engine logs a sink failure and keeps going.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Sequence

import numpy as np

from models.detection import Detection
from models.track import TrackTarget


class Sink(ABC):
    """
    Consumer of per-frame output.

    Lifecycle:
        1. present() once per processed frame
        2. finish() once after tracking finished
        3. close() to release resources (safe to call multiple times)

    Sinks must accept empty detection lists and empty target maps, and must
    not mutate the targets they are given.
    """

    name: str = "sink"

    @abstractmethod
    def present(
        self,
        frame: np.ndarray,
        detections: Sequence[Detection],
        open_targets: Mapping[int, TrackTarget],
        frame_index: int,
    ) -> None:
        """Consume one frame's output."""

    def finish(self, result: Any) -> None:
        """Called with the orchestrator's FinishResult."""

    def close(self) -> None:
        """Release resources."""
